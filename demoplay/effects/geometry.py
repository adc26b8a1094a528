"""
演出ジオメトリ — オーバーレイ位置とズーム変換の計算

ページ上で計測した要素の矩形から、ハイライト枠・スポットライト切り抜きの位置と
ズーム時の transform を計算する。ブラウザに依存しない純粋関数のみを置く。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class ElementRect:
    """getBoundingClientRect() の結果と計測時のスクロール量・ビューポートサイズ。

    x / y はビューポート基準の座標（px）。
    """

    x: float
    y: float
    width: float
    height: float
    scroll_x: float = 0.0
    scroll_y: float = 0.0
    viewport_width: float = 0.0
    viewport_height: float = 0.0

    @classmethod
    def from_measurement(cls, data: Mapping[str, Any]) -> "ElementRect":
        """ページ側の計測スクリプトが返した辞書から生成する。"""
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            scroll_x=float(data.get("scrollX", 0)),
            scroll_y=float(data.get("scrollY", 0)),
            viewport_width=float(data.get("viewportWidth", 0)),
            viewport_height=float(data.get("viewportHeight", 0)),
        )

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class OverlayBox:
    """ドキュメント基準で配置するオーバーレイの矩形（px）。"""

    top: float
    left: float
    width: float
    height: float

    def to_dict(self) -> dict[str, float]:
        return {"top": self.top, "left": self.left, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class ZoomTransform:
    """body に適用する拡大・平行移動。

    Attributes:
        origin_x: transform-origin の X（要素中心）
        origin_y: transform-origin の Y（要素中心）
        scale: 拡大率
        translate_x: 拡大後に適用する X 方向の移動量
        translate_y: 拡大後に適用する Y 方向の移動量
    """

    origin_x: float
    origin_y: float
    scale: float
    translate_x: float
    translate_y: float

    @property
    def transform_origin(self) -> str:
        return f"{self.origin_x}px {self.origin_y}px"

    @property
    def transform(self) -> str:
        return f"scale({self.scale}) translate({self.translate_x}px, {self.translate_y}px)"


def highlight_box(rect: ElementRect) -> OverlayBox:
    """要素の矩形にちょうど重なるオーバーレイ位置を返す。

    オーバーレイは body 直下に absolute 配置するため、スクロール量を加算する。
    スポットライトの切り抜きも同じ矩形を使う。
    """
    return OverlayBox(
        top=rect.y + rect.scroll_y,
        left=rect.x + rect.scroll_x,
        width=rect.width,
        height=rect.height,
    )


def zoom_transform(rect: ElementRect, scale: float) -> ZoomTransform:
    """要素中心を基準に拡大し、拡大後の中心がビューポート中央に来る変換を返す。

    移動量 = (ビューポート中心 - 要素中心) * (scale - 1) / scale

    Raises:
        ValueError: scale が 0 以下の場合
    """
    if scale <= 0:
        raise ValueError(f"scale は正の値を指定してください: {scale}")

    factor = (scale - 1) / scale
    return ZoomTransform(
        origin_x=rect.center_x,
        origin_y=rect.center_y,
        scale=scale,
        translate_x=(rect.viewport_width / 2 - rect.center_x) * factor,
        translate_y=(rect.viewport_height / 2 - rect.center_y) * factor,
    )
