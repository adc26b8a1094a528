"""
DSL モジュール

デモスクリプトのスキーマ定義、変数展開、ローダーを提供する。
"""

from .parser import ScriptLoader
from .schema import STEP_KINDS, DemoScript, ScriptDocument, Step
from .variables import VariableExpander

__all__ = [
    "STEP_KINDS",
    "DemoScript",
    "ScriptDocument",
    "ScriptLoader",
    "Step",
    "VariableExpander",
]
