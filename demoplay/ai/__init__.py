"""
AI ナレーションモジュール

デモの各ステップに付ける字幕テキストを生成する。

- NarrationGenerator: 生成器の Protocol 定義
- AnthropicNarrationGenerator: Anthropic API による生成
- FallbackNarrationGenerator: 定型文言による生成
"""

from .narration import (  # noqa: F401
    AnthropicNarrationGenerator,
    FallbackNarrationGenerator,
    NarrationContext,
    NarrationGenerator,
    create_narration_generator,
    generate_for_steps,
)

__all__ = [
    "AnthropicNarrationGenerator",
    "FallbackNarrationGenerator",
    "NarrationContext",
    "NarrationGenerator",
    "create_narration_generator",
    "generate_for_steps",
]
