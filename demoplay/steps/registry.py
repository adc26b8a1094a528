"""
ステップレジストリ — ステップ種別とハンドラの対応表

検証済みスクリプトの各ステップを、type の値に対応するハンドラへディスパッチする。

主な構成:
  - StepHandler Protocol: ステップハンドラの共通インターフェース
  - StepContext: ステップ実行時に共有する資源（演出レンダラ、待機設定、操作チャネル）
  - StepInfo: ステップのメタ情報（名前、説明、カテゴリ）
  - StepRegistry: ハンドラの登録・検索・ディスパッチ・網羅性検証
  - describe_step: ログ用のステップ説明文
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from demoplay.core.config import StepTiming
from demoplay.dsl import schema
from demoplay.errors import UnknownStepKindError

if TYPE_CHECKING:
    from playwright.async_api import Page

    from demoplay.core.control import ControlChannel
    from demoplay.effects.visual import VisualEffects

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ステップ実行コンテキスト
# ---------------------------------------------------------------------------

@dataclass
class StepContext:
    """ステップ実行時のコンテキスト情報。

    DemoPlayer が 1 回の再生ごとに生成し、各ハンドラの execute() に渡す。

    Attributes:
        effects: ページに紐づく演出レンダラ
        control: pause ステップの確認入力チャネル
        timing: 待機・リトライ設定
    """

    effects: VisualEffects
    control: ControlChannel
    timing: StepTiming = field(default_factory=StepTiming)


# ---------------------------------------------------------------------------
# ステップメタ情報
# ---------------------------------------------------------------------------

@dataclass
class StepInfo:
    """ステップのメタ情報。CLI の list-steps で一覧表示に使用する。

    Attributes:
        name: ステップ種別（スクリプトの type の値）
        description: ステップの説明文
        category: カテゴリ（browser, effect, control）
    """

    name: str
    description: str
    category: str


# ---------------------------------------------------------------------------
# ステップハンドラ Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class StepHandler(Protocol):
    """ステップハンドラの共通インターフェース。

    execute() は操作の効果が観測可能な状態になってから返ること。
    """

    async def execute(self, page: Page, step: BaseModel, context: StepContext) -> None:
        """ステップを実行する。

        Args:
            page: Playwright の Page オブジェクト
            step: 検証済みのステップモデル
            context: ステップ実行コンテキスト
        """
        ...

    def get_schema(self) -> type[BaseModel]:
        """ハンドラが受け付けるステップモデルのクラスを返す。"""
        ...


# ---------------------------------------------------------------------------
# StepRegistry 本体
# ---------------------------------------------------------------------------

class StepRegistry:
    """ステップハンドラの登録・検索・ディスパッチを管理するレジストリ。

    使用例::

        registry = StepRegistry()
        registry.register("click", ClickHandler(), info=StepInfo(...))
        await registry.dispatch(page, step, context)
    """

    def __init__(self) -> None:
        """空のレジストリを初期化する。"""
        self._handlers: dict[str, StepHandler] = {}
        self._info: dict[str, StepInfo] = {}

    def register(
        self,
        name: str,
        handler: StepHandler,
        *,
        info: Optional[StepInfo] = None,
    ) -> None:
        """ステップハンドラを登録する。

        同名のハンドラが既に登録されている場合は上書きする（警告を出力）。

        Args:
            name: ステップ種別
            handler: ステップハンドラインスタンス
            info: ステップのメタ情報。None の場合はデフォルト値を使用

        Raises:
            TypeError: handler が StepHandler Protocol を満たさない場合
            ValueError: handler のスキーマの type が name と一致しない場合
        """
        if not isinstance(handler, StepHandler):
            raise TypeError(
                f"handler は StepHandler Protocol を満たす必要があります: "
                f"{type(handler).__name__}"
            )

        schema_kind = _schema_kind(handler.get_schema())
        if schema_kind != name:
            raise ValueError(
                f"ハンドラ {type(handler).__name__} のスキーマは '{schema_kind}' 用です"
                f"（登録名: '{name}'）"
            )

        if name in self._handlers:
            logger.warning(
                "ステップ '%s' のハンドラを上書きします（既存: %s → 新規: %s）",
                name,
                type(self._handlers[name]).__name__,
                type(handler).__name__,
            )

        self._handlers[name] = handler
        if info is not None:
            self._info[name] = info
        elif name not in self._info:
            self._info[name] = StepInfo(name=name, description=f"{name} ステップ", category="unknown")

        logger.debug("ステップ '%s' を登録しました: %s", name, type(handler).__name__)

    def get(self, name: str) -> StepHandler:
        """種別名でステップハンドラを取得する。

        Raises:
            UnknownStepKindError: 指定種別のハンドラが未登録の場合
        """
        if name not in self._handlers:
            raise UnknownStepKindError(name, self.names)
        return self._handlers[name]

    async def dispatch(self, page: Page, step: BaseModel, context: StepContext) -> None:
        """ステップの type に対応するハンドラで実行する。

        Args:
            page: Playwright の Page オブジェクト
            step: 検証済みのステップモデル
            context: ステップ実行コンテキスト

        Raises:
            UnknownStepKindError: ステップ種別のハンドラが未登録の場合
        """
        handler = self.get(getattr(step, "type", type(step).__name__))
        await handler.execute(page, step, context)

    def ensure_complete(self, kinds: Iterable[str] = schema.STEP_KINDS) -> None:
        """全ステップ種別にハンドラが登録されていることを検証する。

        Raises:
            ValueError: ハンドラのない種別がある場合
        """
        missing = [kind for kind in kinds if kind not in self._handlers]
        if missing:
            raise ValueError(f"ハンドラが登録されていないステップ種別があります: {missing}")

    def list_all(self) -> list[StepInfo]:
        """登録済み全ステップのメタ情報を名前順で返す。"""
        return sorted(self._info.values(), key=lambda s: s.name)

    def has(self, name: str) -> bool:
        """指定種別のステップが登録されているかを返す。"""
        return name in self._handlers

    @property
    def names(self) -> list[str]:
        """登録済み全ステップ種別をソート済みリストで返す。"""
        return sorted(self._handlers.keys())


def _schema_kind(model: type[BaseModel]) -> Optional[str]:
    """ステップモデルの type フィールドのデフォルト値（判別子）を返す。"""
    field_info = model.model_fields.get("type")
    if field_info is None:
        return None
    args = getattr(field_info.annotation, "__args__", ())
    return args[0] if args else None


# ---------------------------------------------------------------------------
# ステップ説明文
# ---------------------------------------------------------------------------

def describe_step(step: BaseModel) -> str:
    """ログ・エラーメッセージ用にステップの説明文を返す。"""
    if isinstance(step, schema.NavigateStep):
        return f"Navigate to {step.url}"
    if isinstance(step, schema.ClickStep):
        return f"Click {step.selector}"
    if isinstance(step, schema.TypeStep):
        return f'Type "{step.text}" into {step.selector}'
    if isinstance(step, schema.WaitStep):
        if step.selector is not None:
            return f"Wait for {step.selector}"
        return f"Wait {step.duration}ms"
    if isinstance(step, schema.HighlightStep):
        return f"Highlight {step.selector}"
    if isinstance(step, schema.ZoomStep):
        return f"Zoom to {step.selector}"
    if isinstance(step, schema.SpotlightStep):
        return f"Spotlight {step.selector}"
    if isinstance(step, schema.ScrollStep):
        return f"Scroll to {step.target}"
    if isinstance(step, schema.ScreenshotStep):
        return f"Capture screenshot: {step.path}"
    if isinstance(step, schema.NarrationStep):
        return f'Show narration: "{step.text}"'
    if isinstance(step, schema.PauseStep):
        return f"Pause: {step.message}" if step.message else "Pause"
    return f"Unknown step: {getattr(step, 'type', type(step).__name__)}"
