"""
ナレーション生成 — ステップ文脈から字幕テキストを生成

生成器は NarrationGenerator Protocol で抽象化し、構築時に実装を選ぶ。

  - AnthropicNarrationGenerator: Anthropic API で生成（失敗時はフォールバック文言）
  - FallbackNarrationGenerator: ステップ種別のキーワードから決まった文言を返す
  - create_narration_generator: API キーの有無で上記のどちらかを生成
  - generate_for_steps: スクリプトの全ステップ分を間隔を空けて順に生成
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

from anthropic import AsyncAnthropic

from demoplay.core.config import NarrationSettings

from .prompts import NARRATION_PROMPT_TEMPLATE, PAGE_TITLE_LINE, PREVIOUS_STEPS_LINE

if TYPE_CHECKING:
    from demoplay.dsl.schema import DemoScript

logger = logging.getLogger(__name__)

# 直前何ステップ分の種別を文脈に含めるか
PREVIOUS_STEP_WINDOW = 2

# キーワード → フォールバック文言（先に一致したものを使う）
FALLBACK_NARRATIONS: dict[str, str] = {
    "navigate": "Navigating to the next section",
    "click": "Clicking to explore this feature",
    "type": "Entering information",
    "highlight": "Notice this key feature",
    "zoom": "Taking a closer look",
    "spotlight": "Focusing on this important element",
    "scroll": "Scrolling to see more",
}
DEFAULT_FALLBACK_NARRATION = "Exploring the next feature"


@dataclass
class NarrationContext:
    """ナレーション生成に渡す文脈。

    Attributes:
        demo_name: デモ名
        current_step: 現在のステップの説明（例: "Step 2: click"）
        page_title: ページタイトル（取得できた場合）
        previous_steps: 直前のステップ種別
    """

    demo_name: str
    current_step: str
    page_title: Optional[str] = None
    previous_steps: list[str] = field(default_factory=list)


@runtime_checkable
class NarrationGenerator(Protocol):
    """ナレーション生成器のインターフェース。

    generate() は失敗しても例外を送出せず、フォールバック文言を返す。
    """

    async def generate(self, context: NarrationContext) -> str:
        ...


# ---------------------------------------------------------------------------
# フォールバック
# ---------------------------------------------------------------------------

def fallback_narration(context: NarrationContext) -> str:
    """ステップ説明に含まれるキーワードから決まった文言を返す。"""
    current = context.current_step.lower()
    for keyword, text in FALLBACK_NARRATIONS.items():
        if keyword in current:
            return text
    return DEFAULT_FALLBACK_NARRATION


class FallbackNarrationGenerator:
    """外部サービスを使わずにフォールバック文言だけを返す生成器。"""

    async def generate(self, context: NarrationContext) -> str:
        return fallback_narration(context)


# ---------------------------------------------------------------------------
# Anthropic API
# ---------------------------------------------------------------------------

class AnthropicNarrationGenerator:
    """Anthropic API でナレーションを生成する生成器。

    API 呼び出しやレスポンスの解釈に失敗した場合は警告を出し、
    フォールバック文言を返す。
    """

    def __init__(self, settings: NarrationSettings, client: Any = None) -> None:
        """生成器を初期化する。

        Args:
            settings: モデル名・トークン上限・温度などの設定
            client: AsyncAnthropic 互換クライアント。None の場合は settings.api_key で生成

        Raises:
            ValueError: client も api_key も指定されていない場合
        """
        if client is None:
            if not settings.api_key:
                raise ValueError("Anthropic API キーが設定されていません（ANTHROPIC_API_KEY）")
            client = AsyncAnthropic(api_key=settings.api_key)
        self._client = client
        self._settings = settings

    async def generate(self, context: NarrationContext) -> str:
        prompt = build_prompt(context)
        try:
            message = await self._client.messages.create(
                model=self._settings.model,
                max_tokens=self._settings.max_tokens,
                temperature=self._settings.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
            text = _first_text(message)
        except Exception as exc:
            logger.warning("ナレーション生成に失敗しました。フォールバック文言を使用します: %s", exc)
            return fallback_narration(context)

        logger.debug("ナレーションを生成しました: %s", text)
        return text


def _first_text(message: Any) -> str:
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return block.text.strip()
    raise ValueError("API レスポンスにテキストが含まれていません")


def build_prompt(context: NarrationContext) -> str:
    """文脈からプロンプトを組み立てる。"""
    extra = ""
    if context.page_title:
        extra += PAGE_TITLE_LINE.format(page_title=context.page_title)
    if context.previous_steps:
        extra += PREVIOUS_STEPS_LINE.format(previous_steps=", ".join(context.previous_steps))
    return NARRATION_PROMPT_TEMPLATE.format(
        demo_name=context.demo_name,
        current_step=context.current_step,
        extra_context=extra,
    )


# ---------------------------------------------------------------------------
# ファクトリ・一括生成
# ---------------------------------------------------------------------------

def create_narration_generator(settings: NarrationSettings) -> NarrationGenerator:
    """API キーが設定されていれば Anthropic 版、なければフォールバック版を返す。"""
    if settings.api_key:
        logger.debug("Anthropic API でナレーションを生成します (model=%s)", settings.model)
        return AnthropicNarrationGenerator(settings)
    logger.info("ANTHROPIC_API_KEY が未設定のため、定型のナレーションを使用します")
    return FallbackNarrationGenerator()


async def generate_for_steps(
    generator: NarrationGenerator,
    script: DemoScript,
    *,
    delay_ms: int = 500,
) -> list[str]:
    """スクリプトの各ステップのナレーションを順に生成する。

    外部サービスのレート制限を避けるため、呼び出しの間に delay_ms 待機する。

    Args:
        generator: ナレーション生成器
        script: 対象のデモスクリプト
        delay_ms: 呼び出し間の待機（ミリ秒）

    Returns:
        ステップ順のナレーション
    """
    targets = script.steps
    narrations: list[str] = []

    for index, step in enumerate(targets):
        context = NarrationContext(
            demo_name=script.name,
            current_step=f"Step {index + 1}: {step.type}",
            previous_steps=[
                s.type for s in targets[max(0, index - PREVIOUS_STEP_WINDOW):index]
            ],
        )
        narrations.append(await generator.generate(context))

        if index < len(targets) - 1 and delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    return narrations
