"""
標準ステップハンドラ — 11 種のデモステップ

スクリプトの各ステップを Playwright API 呼び出しと演出レンダラの呼び出しに変換する。
各ハンドラは StepHandler Protocol を満たし、StepRegistry に登録される。
待機・リトライは demoplay.core.waits の共通関数を使う。

カテゴリ:
  - ブラウザ操作: navigate, click, type, wait, scroll, screenshot
  - 演出: highlight, zoom, spotlight, narration
  - 制御: pause

click のみ失敗時に一定間隔で再試行する。他のハンドラは最初の失敗で例外を送出する。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import BaseModel

from demoplay.core.control import DEFAULT_PAUSE_MESSAGE
from demoplay.core.waits import retry_async, wait_for_visible
from demoplay.dsl.schema import (
    STEP_KINDS,
    ClickStep,
    HighlightStep,
    NarrationStep,
    NavigateStep,
    PauseStep,
    ScreenshotStep,
    ScrollStep,
    SpotlightStep,
    TypeStep,
    WaitStep,
    ZoomStep,
)
from demoplay.errors import StepTimeoutError

from .registry import StepContext, StepHandler, StepInfo, StepRegistry

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


# ===========================================================================
# ブラウザ操作ハンドラ
# ===========================================================================

class NavigateHandler:
    """navigate ステップ — URL へ遷移し、指定のロード状態まで待機。"""

    async def execute(self, page: Page, step: NavigateStep, context: StepContext) -> None:
        timeout = context.timing.default_timeout_ms
        try:
            await page.goto(step.url, wait_until=step.wait, timeout=timeout)
        except PlaywrightTimeoutError as exc:
            raise StepTimeoutError(step.url, timeout) from exc

    def get_schema(self) -> type[BaseModel]:
        return NavigateStep


class ClickHandler:
    """click ステップ — 可視化を待ってクリック。失敗時は再試行する。"""

    async def execute(self, page: Page, step: ClickStep, context: StepContext) -> None:
        timing = context.timing

        async def _attempt() -> None:
            await wait_for_visible(page, step.selector, timing.default_timeout_ms)
            await page.click(step.selector, button=step.button, click_count=step.clickCount)

        await retry_async(
            _attempt,
            page=page,
            attempts=timing.click_retries,
            delay_ms=timing.retry_delay_ms,
            description=f"click {step.selector}",
        )
        await page.wait_for_timeout(timing.click_settle_ms)

    def get_schema(self) -> type[BaseModel]:
        return ClickStep


class TypeHandler:
    """type ステップ — 1 文字ずつ speed ミリ秒間隔で入力。"""

    async def execute(self, page: Page, step: TypeStep, context: StepContext) -> None:
        await wait_for_visible(page, step.selector, context.timing.default_timeout_ms)
        if step.clear:
            await page.fill(step.selector, "")
        await page.type(step.selector, step.text, delay=step.speed)

    def get_schema(self) -> type[BaseModel]:
        return TypeStep


class WaitHandler:
    """wait ステップ — 要素の可視化、または一定時間を待機。"""

    async def execute(self, page: Page, step: WaitStep, context: StepContext) -> None:
        if step.selector is not None:
            timeout = step.timeout if step.timeout is not None else context.timing.default_timeout_ms
            await wait_for_visible(page, step.selector, timeout)
        else:
            await page.wait_for_timeout(step.duration)

    def get_schema(self) -> type[BaseModel]:
        return WaitStep


class ScrollHandler:
    """scroll ステップ — 要素が表示領域に入るまでスクロール。"""

    async def execute(self, page: Page, step: ScrollStep, context: StepContext) -> None:
        element = await wait_for_visible(page, step.target, context.timing.default_timeout_ms)
        await element.evaluate(
            "(el, options) => el.scrollIntoView(options)",
            {"behavior": step.behavior, "block": step.block},
        )
        await page.wait_for_timeout(context.timing.scroll_settle_ms)

    def get_schema(self) -> type[BaseModel]:
        return ScrollStep


class ScreenshotHandler:
    """screenshot ステップ — ページ全体または要素のスクリーンショットを保存。"""

    async def execute(self, page: Page, step: ScreenshotStep, context: StepContext) -> None:
        if step.selector is not None:
            await wait_for_visible(page, step.selector, context.timing.default_timeout_ms)
            await page.locator(step.selector).screenshot(path=step.path)
        else:
            await page.screenshot(path=step.path, full_page=step.fullPage)
        logger.info("スクリーンショット保存: %s", step.path)

    def get_schema(self) -> type[BaseModel]:
        return ScreenshotStep


# ===========================================================================
# 演出ハンドラ
# ===========================================================================

class HighlightHandler:
    """highlight ステップ — 要素を枠線で強調。"""

    async def execute(self, page: Page, step: HighlightStep, context: StepContext) -> None:
        await context.effects.highlight(
            step.selector,
            color=step.color,
            border_width=step.borderWidth,
            style=step.style,
            duration=step.duration,
        )

    def get_schema(self) -> type[BaseModel]:
        return HighlightStep


class ZoomHandler:
    """zoom ステップ — 要素を中心にページを拡大。"""

    async def execute(self, page: Page, step: ZoomStep, context: StepContext) -> None:
        await context.effects.zoom(
            step.selector, scale=step.scale, duration=step.duration, padding=step.padding,
        )

    def get_schema(self) -> type[BaseModel]:
        return ZoomStep


class SpotlightHandler:
    """spotlight ステップ — 要素以外を暗くする。"""

    async def execute(self, page: Page, step: SpotlightStep, context: StepContext) -> None:
        await context.effects.spotlight(
            step.selector,
            dimness=step.dimness,
            border_radius=step.borderRadius,
            duration=step.duration,
        )

    def get_schema(self) -> type[BaseModel]:
        return SpotlightStep


class NarrationHandler:
    """narration ステップ — 字幕を表示。

    autoGenerate は未対応のため、指定されたテキストをそのまま表示する。
    """

    async def execute(self, page: Page, step: NarrationStep, context: StepContext) -> None:
        if step.autoGenerate:
            logger.info("autoGenerate は未対応のため、指定されたテキストを表示します")
        await context.effects.show_narration(
            step.text,
            position=step.position,
            font_size=step.fontSize,
            duration=step.duration,
        )

    def get_schema(self) -> type[BaseModel]:
        return NarrationStep


# ===========================================================================
# 制御ハンドラ
# ===========================================================================

class PauseHandler:
    """pause ステップ — 操作者の確認入力までプロセス全体を止める。

    確認入力の読み取りは同期的に行うため、待機中は他の処理も進まない。
    """

    async def execute(self, page: Page, step: PauseStep, context: StepContext) -> None:
        message = f"{step.message}（Enter で再開）" if step.message else DEFAULT_PAUSE_MESSAGE
        logger.info("デモを一時停止しました")
        context.control.confirm(message)
        logger.info("デモを再開します")

    def get_schema(self) -> type[BaseModel]:
        return PauseStep


# ===========================================================================
# 標準ステップ登録
# ===========================================================================

_BUILTIN_STEPS: list[tuple[str, StepHandler, StepInfo]] = [
    # ブラウザ操作
    ("navigate", NavigateHandler(), StepInfo("navigate", "指定 URL へ遷移（ロード状態を待機）", "browser")),
    ("click", ClickHandler(), StepInfo("click", "要素をクリック（失敗時は再試行）", "browser")),
    ("type", TypeHandler(), StepInfo("type", "入力欄に 1 文字ずつテキストを入力", "browser")),
    ("wait", WaitHandler(), StepInfo("wait", "要素の表示または一定時間を待機", "browser")),
    ("scroll", ScrollHandler(), StepInfo("scroll", "要素が表示領域に入るまでスクロール", "browser")),
    ("screenshot", ScreenshotHandler(), StepInfo("screenshot", "スクリーンショットを保存", "browser")),
    # 演出
    ("highlight", HighlightHandler(), StepInfo("highlight", "要素を枠線で強調", "effect")),
    ("zoom", ZoomHandler(), StepInfo("zoom", "要素を中心にページを拡大", "effect")),
    ("spotlight", SpotlightHandler(), StepInfo("spotlight", "要素以外を暗くする", "effect")),
    ("narration", NarrationHandler(), StepInfo("narration", "字幕を表示", "effect")),
    # 制御
    ("pause", PauseHandler(), StepInfo("pause", "確認入力があるまで一時停止", "control")),
]


def register_builtin_steps(registry: StepRegistry) -> None:
    """全標準ステップハンドラをレジストリに登録する。"""
    for name, handler, info in _BUILTIN_STEPS:
        registry.register(name, handler, info=info)
    logger.debug("標準ステップ %d 種を登録しました", len(_BUILTIN_STEPS))


def create_default_registry() -> StepRegistry:
    """標準ステップが登録済みの StepRegistry を生成する。

    Returns:
        全ステップ種別のハンドラが登録された StepRegistry

    Raises:
        ValueError: ハンドラのないステップ種別がある場合
    """
    registry = StepRegistry()
    register_builtin_steps(registry)
    registry.ensure_complete(STEP_KINDS)
    return registry
