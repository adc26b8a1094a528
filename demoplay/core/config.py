"""
実行設定 — 再生エンジン・ナレーション生成の設定読み込み

CLI 引数 > 環境変数 > デフォルト値 の優先順位で適用される。
設定オブジェクトは DemoPlayer / ナレーション生成器のコンストラクタへ明示的に渡し、
エンジン内部では環境変数を参照しない。

環境変数一覧:
  DEMOPLAY_HEADLESS            : ヘッドレスモード（true/false, 未設定時はスクリプト設定に従う）
  DEMOPLAY_SLOW_MO             : 各ブラウザ操作間の遅延（ミリ秒）
  DEMOPLAY_SCREENSHOT_ON_ERROR : 失敗時スクリーンショット（true/false, デフォルト: true）
  ANTHROPIC_API_KEY            : ナレーション生成用 API キー（未設定時はフォールバック文言）
  DEMOPLAY_NARRATION_MODEL     : ナレーション生成に使うモデル名
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_HEADLESS = "DEMOPLAY_HEADLESS"
_ENV_SLOW_MO = "DEMOPLAY_SLOW_MO"
_ENV_SCREENSHOT_ON_ERROR = "DEMOPLAY_SCREENSHOT_ON_ERROR"
_ENV_API_KEY = "ANTHROPIC_API_KEY"
_ENV_NARRATION_MODEL = "DEMOPLAY_NARRATION_MODEL"

DEFAULT_NARRATION_MODEL = "claude-3-5-sonnet-latest"


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class StepTiming:
    """ステップハンドラ共通の待機・リトライ設定（ミリ秒）。

    Attributes:
        default_timeout_ms: 要素の可視化待機のタイムアウト
        click_retries: click の最大試行回数
        retry_delay_ms: click リトライ間の待機
        click_settle_ms: click 後の待機
        scroll_settle_ms: スクロール後の待機
    """

    default_timeout_ms: int = 30_000
    click_retries: int = 3
    retry_delay_ms: int = 1_000
    click_settle_ms: int = 300
    scroll_settle_ms: int = 500


@dataclass
class PlayerConfig:
    """DemoPlayer の実行設定。

    headless / slow_mo が None の場合はスクリプトの config の値を使う。

    Attributes:
        headless: ヘッドレスモードの上書き
        slow_mo: 各ブラウザ操作間の遅延の上書き（ミリ秒）
        screenshot_on_error: ステップ失敗時にスクリーンショットを保存するか
        error_screenshot_path: ステップ失敗時のスクリーンショット保存先
        auth_screenshot_path: 認証失敗時のスクリーンショット保存先
        auth_field_timeout_ms: ログインフォーム各要素の可視化待機タイムアウト
        timing: ステップハンドラの待機・リトライ設定
    """

    headless: Optional[bool] = None
    slow_mo: Optional[int] = None
    screenshot_on_error: bool = True
    error_screenshot_path: str = "./error-screenshot.png"
    auth_screenshot_path: str = "./auth-error.png"
    auth_field_timeout_ms: int = 10_000
    timing: StepTiming = field(default_factory=StepTiming)


@dataclass
class NarrationSettings:
    """ナレーション生成の設定。

    api_key が None の場合、生成器はフォールバック文言のみを返す。
    """

    api_key: Optional[str] = None
    model: str = DEFAULT_NARRATION_MODEL
    max_tokens: int = 150
    temperature: float = 0.7
    batch_delay_ms: int = 500


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> Optional[bool]:
    """文字列を bool に変換する。解釈できない値は None を返す。"""
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    return None


def load_config_from_env(environ: Mapping[str, str]) -> PlayerConfig:
    """環境変数から PlayerConfig を生成する。

    設定されていない環境変数はデフォルト値を使用する。不正な値は警告を出して無視する。

    Args:
        environ: 環境変数辞書（os.environ 相当。テスタビリティのため直接渡す）

    Returns:
        環境変数から読み込んだ設定
    """
    config = PlayerConfig()

    if _ENV_HEADLESS in environ:
        parsed = _parse_bool(environ[_ENV_HEADLESS])
        if parsed is None:
            logger.warning("%s の値が不正です: %s", _ENV_HEADLESS, environ[_ENV_HEADLESS])
        else:
            config.headless = parsed

    if _ENV_SLOW_MO in environ:
        try:
            slow_mo = int(environ[_ENV_SLOW_MO])
        except ValueError:
            logger.warning("%s の値が不正です: %s", _ENV_SLOW_MO, environ[_ENV_SLOW_MO])
        else:
            if slow_mo < 0:
                logger.warning("%s は 0 以上を指定してください: %d", _ENV_SLOW_MO, slow_mo)
            else:
                config.slow_mo = slow_mo

    if _ENV_SCREENSHOT_ON_ERROR in environ:
        parsed = _parse_bool(environ[_ENV_SCREENSHOT_ON_ERROR])
        if parsed is None:
            logger.warning(
                "%s の値が不正です: %s",
                _ENV_SCREENSHOT_ON_ERROR, environ[_ENV_SCREENSHOT_ON_ERROR],
            )
        else:
            config.screenshot_on_error = parsed

    logger.debug("設定を読み込みました: %s", config)
    return config


def apply_cli_overrides(
    config: PlayerConfig,
    headless: Optional[bool] = None,
    slow_mo: Optional[int] = None,
    screenshot_on_error: Optional[bool] = None,
) -> PlayerConfig:
    """CLI 引数を PlayerConfig に適用する。

    None でない引数のみ上書きする。

    Args:
        config: ベースとなる設定（環境変数から読み込み済み）
        headless: --headless / --headed
        slow_mo: --slow-mo
        screenshot_on_error: --screenshot-on-error / --no-screenshot-on-error

    Returns:
        CLI 引数が適用された設定
    """
    if headless is not None:
        config.headless = headless
    if slow_mo is not None:
        config.slow_mo = slow_mo
    if screenshot_on_error is not None:
        config.screenshot_on_error = screenshot_on_error
    return config


def load_narration_settings(environ: Mapping[str, str]) -> NarrationSettings:
    """環境変数から NarrationSettings を生成する。

    API キーが空文字の場合は未設定として扱う。
    """
    settings = NarrationSettings()
    api_key = environ.get(_ENV_API_KEY, "").strip()
    if api_key:
        settings.api_key = api_key
    model = environ.get(_ENV_NARRATION_MODEL, "").strip()
    if model:
        settings.model = model
    return settings
