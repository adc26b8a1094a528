"""
演出レンダラ — ハイライト・ズーム・スポットライト・字幕のオーバーレイ描画

ページに DOM オーバーレイを注入・削除して演出を表示する。

処理の流れ（各演出共通）:
  1. スタイルシートを注入（ドキュメントごとに 1 回、メインフレームの遷移で再注入）
  2. セレクタで要素を計測（存在しなければ ElementNotFoundError）
  3. geometry モジュールで位置・変換を計算
  4. オーバーレイを挿入（ズームは body の transform を変更）
  5. duration > 0 の場合、経過後に自動で解除

clear_all() は 4 種の演出を並行して解除し、再生終了時に必ず呼ばれる。
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from demoplay.effects import assets
from demoplay.effects.geometry import ElementRect, highlight_box, zoom_transform
from demoplay.errors import ElementNotFoundError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

ZOOM_RESET_MS = 500
NARRATION_FADE_MS = 400


class VisualEffects:
    """1 つの Page に紐づく演出レンダラ。

    DemoPlayer が再生ごとに生成し、StepContext 経由でハンドラに渡す。
    """

    def __init__(self, page: Page) -> None:
        self._page = page
        self._styles_injected = False
        page.on("framenavigated", self._on_frame_navigated)

    @property
    def styles_injected(self) -> bool:
        return self._styles_injected

    def _on_frame_navigated(self, frame) -> None:
        # 遷移で <style> が破棄されるため、次の演出で再注入する
        if frame is self._page.main_frame:
            self._styles_injected = False

    async def inject_styles(self) -> None:
        """演出用スタイルシートを注入する。同じドキュメントでは 2 回目以降は何もしない。"""
        if self._styles_injected:
            return
        await self._page.add_style_tag(content=assets.STYLESHEET)
        self._styles_injected = True
        logger.debug("演出用スタイルシートを注入しました")

    # -------------------------------------------------------------------
    # 演出
    # -------------------------------------------------------------------

    async def highlight(
        self,
        selector: str,
        *,
        color: str = "#4A90E2",
        border_width: int = 3,
        style: str = "pulse",
        duration: int = 2000,
    ) -> None:
        """要素を枠線で囲む。

        Args:
            selector: 対象要素の CSS セレクタ
            color: 枠線の色
            border_width: 枠線の太さ（px）
            style: pulse / solid / glow（アニメーションの違いのみ）
            duration: 表示時間（ミリ秒）。0 以下なら自動解除しない

        Raises:
            ElementNotFoundError: 要素が存在しない場合
        """
        await self.inject_styles()
        box = highlight_box(await self._measure(selector))
        await self._page.evaluate(
            assets.INSERT_HIGHLIGHT_JS,
            {"box": box.to_dict(), "color": color, "borderWidth": border_width, "style": style},
        )
        logger.debug("ハイライトを表示: %s %s", selector, box)

        if duration > 0:
            await self._page.wait_for_timeout(duration)
            await self.clear_highlights()

    async def zoom(
        self,
        selector: str,
        *,
        scale: float = 1.5,
        duration: int = 3000,
        padding: int = 20,
    ) -> None:
        """要素の中心を基準にページ全体を拡大する。

        padding は現在の変換計算には使用しない。

        Raises:
            ElementNotFoundError: 要素が存在しない場合
        """
        await self.inject_styles()
        transform = zoom_transform(await self._measure(selector), scale)
        await self._page.evaluate(
            assets.APPLY_ZOOM_JS,
            {
                "origin": transform.transform_origin,
                "transform": transform.transform,
                "transition": assets.BODY_TRANSITION,
            },
        )
        logger.debug("ズーム: %s (%s)", selector, transform.transform)

        if duration > 0:
            await self._page.wait_for_timeout(duration)
            await self.clear_zoom()

    async def spotlight(
        self,
        selector: str,
        *,
        dimness: float = 0.7,
        border_radius: int = 8,
        duration: int = 2500,
    ) -> None:
        """要素以外を暗くする。切り抜きはハイライトと同じ矩形になる。

        Raises:
            ElementNotFoundError: 要素が存在しない場合
        """
        await self.inject_styles()
        box = highlight_box(await self._measure(selector))
        await self._page.evaluate(
            assets.INSERT_SPOTLIGHT_JS,
            {"box": box.to_dict(), "dimness": dimness, "borderRadius": border_radius},
        )
        logger.debug("スポットライト: %s %s", selector, box)

        if duration > 0:
            await self._page.wait_for_timeout(duration)
            await self.clear_spotlight()

    async def show_narration(
        self,
        text: str,
        *,
        position: str = "bottom",
        font_size: int = 24,
        duration: int = 3000,
    ) -> None:
        """字幕を表示する。字幕ノードは既存のものを再利用する。"""
        await self.inject_styles()
        await self._page.evaluate(
            assets.SHOW_NARRATION_JS,
            {"text": text, "position": position, "fontSize": font_size},
        )
        logger.debug("字幕を表示 (%s): %s", position, text)

        if duration > 0:
            await self._page.wait_for_timeout(duration)
            await self.clear_narration()

    # -------------------------------------------------------------------
    # 解除
    # -------------------------------------------------------------------

    async def clear_highlights(self) -> None:
        await self._page.evaluate(assets.CLEAR_HIGHLIGHTS_JS)

    async def clear_zoom(self) -> None:
        """ズームを解除し、戻りのトランジション完了まで待機する。"""
        await self._page.evaluate(assets.CLEAR_ZOOM_JS, assets.BODY_TRANSITION)
        await self._page.wait_for_timeout(ZOOM_RESET_MS)

    async def clear_spotlight(self) -> None:
        await self._page.evaluate(assets.CLEAR_SPOTLIGHTS_JS)

    async def clear_narration(self) -> None:
        """字幕をフェードアウトさせて削除する。"""
        await self._page.evaluate(assets.CLEAR_NARRATION_JS, NARRATION_FADE_MS)
        await self._page.wait_for_timeout(NARRATION_FADE_MS)

    async def clear_all(self) -> None:
        """全ての演出を並行して解除する。"""
        await asyncio.gather(
            self.clear_highlights(),
            self.clear_zoom(),
            self.clear_spotlight(),
            self.clear_narration(),
        )

    # -------------------------------------------------------------------
    # 内部メソッド
    # -------------------------------------------------------------------

    async def _measure(self, selector: str) -> ElementRect:
        data = await self._page.evaluate(assets.MEASURE_ELEMENT_JS, selector)
        if data is None:
            raise ElementNotFoundError(selector)
        return ElementRect.from_measurement(data)
