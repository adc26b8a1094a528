"""
ステップモジュール

ステップレジストリと標準ステップハンドラを提供する。
"""

from .builtin import create_default_registry
from .registry import StepContext, StepHandler, StepInfo, StepRegistry, describe_step

__all__ = [
    "StepContext",
    "StepHandler",
    "StepInfo",
    "StepRegistry",
    "create_default_registry",
    "describe_step",
]
