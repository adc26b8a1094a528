"""
DSL スキーマ定義 — デモスクリプトの Pydantic モデル

JSON / YAML のデモスクリプト（トップレベル `demo:`）を表現する Pydantic v2 モデルを定義する。
全モデルは不変（frozen）で未知フィールドを拒否する。数値・真偽値は文字列などからの暗黙変換を行わない（小数フィールドは整数も受け付ける）。

構成:
  - 設定: Viewport, DemoConfig
  - 認証: FormAuth / BasicAuth / NoAuth（type による判別共用体）
  - ステップ: 11 種のステップモデル（type による判別共用体）
  - ルート: DemoScript, ScriptDocument
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union, get_args
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    field_validator,
    model_validator,
)


class _StrictModel(BaseModel):
    """スクリプトモデル共通の設定。"""

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# 設定
# ---------------------------------------------------------------------------

class Viewport(_StrictModel):
    """ブラウザのビューポートサイズ（録画サイズも兼ねる）。"""

    width: StrictInt = Field(default=1920, gt=0, description="幅（px）")
    height: StrictInt = Field(default=1080, gt=0, description="高さ（px）")


class DemoConfig(_StrictModel):
    """デモ実行時のブラウザ・録画設定。

    storageStatePath を指定する場合、ファイルは起動前に存在している必要がある。
    saveStorageStatePath を指定すると、正常終了時にログイン状態を保存する。
    """

    baseUrl: str = Field(..., description="基準 URL（相対 URL の解決に使用）")
    viewport: Viewport = Field(default_factory=Viewport, description="ビューポートサイズ")
    videoPath: str = Field(
        default="./recordings/demo.webm", description="録画ファイルの出力先"
    )
    slowMo: Optional[StrictInt] = Field(
        default=None, ge=0, description="各ブラウザ操作間の遅延（ミリ秒）"
    )
    headless: StrictBool = Field(default=False, description="ヘッドレスモードで起動するか")
    storageStatePath: Optional[str] = Field(
        default=None, description="復元するストレージ状態ファイル"
    )
    saveStorageStatePath: Optional[str] = Field(
        default=None, description="正常終了時にストレージ状態を保存するパス"
    )

    @field_validator("baseUrl")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """baseUrl がスキームとホストを持つ URL であることを検証する。"""
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"有効な URL ではありません: {v!r}")
        return v


# ---------------------------------------------------------------------------
# 認証
# ---------------------------------------------------------------------------

class FormCredentials(_StrictModel):
    """フォーム認証で入力する資格情報。"""

    username: str
    password: str


class FormSelectors(_StrictModel):
    """ログインフォームの各要素を指す CSS セレクタ。"""

    usernameField: str
    passwordField: str
    submitButton: str


class FormAuth(_StrictModel):
    """ログインフォームへの入力による認証。

    url が相対パスの場合は config.baseUrl を基準に解決される。
    """

    type: Literal["form"]
    url: str = Field(..., description="ログインページの URL")
    credentials: FormCredentials
    selectors: FormSelectors


class BasicAuth(_StrictModel):
    """HTTP Basic 認証。ナビゲーションは行わず、資格情報をコンテキストに設定する。"""

    type: Literal["basic"]
    username: str
    password: str


class NoAuth(_StrictModel):
    """認証なし。"""

    type: Literal["none"]


Auth = Annotated[Union[FormAuth, BasicAuth, NoAuth], Field(discriminator="type")]


# ===========================================================================
# ステップモデル定義
# ===========================================================================

# ---------------------------------------------------------------------------
# ブラウザ操作ステップ
# ---------------------------------------------------------------------------

class NavigateStep(_StrictModel):
    """指定 URL へ遷移するステップ。"""

    type: Literal["navigate"]
    url: str = Field(..., description="遷移先 URL（相対 URL は baseUrl 基準）")
    wait: Literal["load", "domcontentloaded", "networkidle"] = Field(
        default="load", description="遷移完了とみなすロード状態"
    )


class ClickStep(_StrictModel):
    """要素をクリックするステップ。"""

    type: Literal["click"]
    selector: str
    button: Literal["left", "right", "middle"] = "left"
    clickCount: StrictInt = Field(default=1, gt=0)


class TypeStep(_StrictModel):
    """入力欄に 1 文字ずつテキストを入力するステップ。"""

    type: Literal["type"]
    selector: str
    text: str
    speed: StrictInt = Field(default=100, gt=0, description="1 文字あたりの遅延（ミリ秒）")
    clear: StrictBool = Field(default=False, description="入力前に欄を空にするか")


class WaitStep(_StrictModel):
    """要素の表示、または一定時間を待機するステップ。

    selector と duration はどちらか一方のみ指定する。
    timeout は selector 指定時のみ有効（省略時 30000ms）。
    """

    type: Literal["wait"]
    duration: Optional[StrictInt] = Field(default=None, gt=0, description="待機時間（ミリ秒）")
    selector: Optional[str] = None
    timeout: Optional[StrictInt] = Field(default=None, gt=0, description="タイムアウト（ミリ秒）")

    @model_validator(mode="after")
    def check_exactly_one_target(self) -> "WaitStep":
        """selector と duration のどちらか一方だけが指定されていることを検証する。"""
        if (self.selector is None) == (self.duration is None):
            raise ValueError("wait ステップには selector と duration のどちらか一方を指定してください")
        if self.timeout is not None and self.selector is None:
            raise ValueError("timeout は selector と組み合わせて指定してください")
        return self


class ScrollStep(_StrictModel):
    """要素が表示領域に入るまでスクロールするステップ。"""

    type: Literal["scroll"]
    target: str
    behavior: Literal["auto", "smooth"] = "smooth"
    block: Literal["start", "center", "end", "nearest"] = "center"


class ScreenshotStep(_StrictModel):
    """スクリーンショットを保存するステップ。selector 指定時は要素のみを撮影する。"""

    type: Literal["screenshot"]
    path: str
    fullPage: StrictBool = False
    selector: Optional[str] = None


class PauseStep(_StrictModel):
    """操作者の確認入力があるまで再生を止めるステップ。"""

    type: Literal["pause"]
    message: Optional[str] = None


# ---------------------------------------------------------------------------
# 演出ステップ
# ---------------------------------------------------------------------------

class HighlightStep(_StrictModel):
    """要素を枠線で強調するステップ。"""

    type: Literal["highlight"]
    selector: str
    color: str = "#4A90E2"
    duration: StrictInt = Field(default=2000, gt=0)
    style: Literal["pulse", "solid", "glow"] = "pulse"
    borderWidth: StrictInt = Field(default=3, gt=0)


class ZoomStep(_StrictModel):
    """ページ全体を拡大して要素を中央に寄せるステップ。"""

    type: Literal["zoom"]
    selector: str
    scale: StrictFloat = Field(default=1.5, gt=0)
    duration: StrictInt = Field(default=3000, gt=0)
    padding: StrictInt = Field(default=20, ge=0)


class SpotlightStep(_StrictModel):
    """要素以外を暗くするステップ。"""

    type: Literal["spotlight"]
    selector: str
    duration: StrictInt = Field(default=2500, gt=0)
    dimness: StrictFloat = Field(default=0.7, ge=0, le=1)
    borderRadius: StrictInt = Field(default=8, ge=0)


class NarrationStep(_StrictModel):
    """字幕（ナレーション）を表示するステップ。"""

    type: Literal["narration"]
    text: str
    duration: StrictInt = Field(default=3000, gt=0)
    position: Literal["top", "bottom", "center"] = "bottom"
    fontSize: StrictInt = Field(default=24, gt=0)
    autoGenerate: StrictBool = False


_StepUnion = Union[
    # ブラウザ操作
    NavigateStep,
    ClickStep,
    TypeStep,
    WaitStep,
    # 演出
    HighlightStep,
    ZoomStep,
    SpotlightStep,
    # ブラウザ操作（続き）
    ScrollStep,
    ScreenshotStep,
    # 演出（続き）
    NarrationStep,
    # 制御
    PauseStep,
]

Step = Annotated[_StepUnion, Field(discriminator="type")]
"""全ステップ型の判別共用体。type フィールドの値で構造が決まる。"""

STEP_MODELS: tuple[type[BaseModel], ...] = get_args(_StepUnion)

STEP_KINDS: tuple[str, ...] = tuple(
    get_args(model.model_fields["type"].annotation)[0] for model in STEP_MODELS
)
"""スキーマが受け付ける全ステップ種別（スクリプト内の定義順）。"""


# ---------------------------------------------------------------------------
# ルートモデル
# ---------------------------------------------------------------------------

class DemoScript(_StrictModel):
    """1 本のデモを表現するモデル。読み込み後は不変。"""

    name: str = Field(..., description="デモ名")
    description: Optional[str] = Field(default=None, description="デモの説明")
    config: DemoConfig
    auth: Optional[Auth] = None
    steps: list[Step] = Field(..., description="実行順に並んだステップ")

    @field_validator("steps")
    @classmethod
    def validate_steps_not_empty(cls, v: list) -> list:
        """ステップが 1 つ以上あることを検証する。"""
        if not v:
            raise ValueError("steps には少なくとも 1 つのステップが必要です")
        return v


class ScriptDocument(_StrictModel):
    """スクリプトファイル全体（`demo:` をトップレベルに持つ）。"""

    demo: DemoScript
