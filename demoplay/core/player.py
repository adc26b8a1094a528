"""
DemoPlayer — デモ再生エンジン

検証済みの DemoScript を受け取り、Playwright でブラウザを操作しながら録画する。

状態遷移:
  INIT → AUTH（auth.type が none 以外の場合のみ）→ RUNNING → COMPLETE / FAILED → CLEANUP → DONE

  - INIT: storageStatePath の存在確認、ブラウザ起動、録画コンテキスト・ページ・演出レンダラの生成
  - AUTH: フォーム認証（ログインページで入力・送信）または Basic 認証
  - RUNNING: ステップを 1 つずつ順に実行（前のステップの効果が確定してから次へ）
  - FAILED: エラーログとスクリーンショット（二次的な失敗は握りつぶし、元の例外を優先）
  - CLEANUP: 演出解除 → page → context → 録画保存 → browser の順に、それぞれ独立して後始末

後始末は成功・失敗に関わらず必ず行い、元の例外は後始末の後に再送出する。
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from playwright.async_api import async_playwright

from demoplay.core.config import PlayerConfig
from demoplay.core.control import ConsoleControlChannel, ControlChannel
from demoplay.core.waits import wait_for_visible
from demoplay.effects.visual import VisualEffects
from demoplay.errors import (
    AuthenticationError,
    PlaybackCancelledError,
    StepExecutionError,
    StorageStateNotFoundError,
)
from demoplay.steps.builtin import create_default_registry
from demoplay.steps.registry import StepContext, StepRegistry, describe_step

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from demoplay.dsl.schema import DemoConfig, DemoScript, FormAuth

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 状態・結果
# ---------------------------------------------------------------------------

class PlaybackState(enum.Enum):
    """再生エンジンの状態。"""

    INIT = "init"
    AUTH = "auth"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    CLEANUP = "cleanup"
    DONE = "done"


@dataclass
class PlaybackResult:
    """正常終了した再生の結果。

    Attributes:
        demo_name: デモ名
        steps_completed: 実行したステップ数
        duration_ms: 再生時間（ミリ秒、後始末を含む）
        video_path: 保存した録画ファイル（保存に失敗した場合は None）
        storage_state_path: 保存したストレージ状態ファイル
    """

    demo_name: str
    steps_completed: int
    duration_ms: float = 0.0
    video_path: Optional[str] = None
    storage_state_path: Optional[str] = None


@dataclass
class _Session:
    """1 回の再生で確保するブラウザ資源。"""

    browser: Optional[Browser] = None
    context: Optional[BrowserContext] = None
    page: Optional[Page] = None
    effects: Optional[VisualEffects] = None
    video_saved: bool = False


# ---------------------------------------------------------------------------
# DemoPlayer 本体
# ---------------------------------------------------------------------------

class DemoPlayer:
    """デモ再生エンジン。

    1 回の play() で確保したブラウザ資源はその呼び出しの中で専有し、必ず解放する。

    使用例::

        player = DemoPlayer(PlayerConfig(headless=True))
        result = await player.play(script)
    """

    def __init__(
        self,
        config: Optional[PlayerConfig] = None,
        *,
        registry: Optional[StepRegistry] = None,
        control: Optional[ControlChannel] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        """DemoPlayer を初期化する。

        Args:
            config: 実行設定。None の場合はデフォルト値
            registry: ステップレジストリ。None の場合は標準ステップ登録済みのもの
            control: pause ステップの確認入力チャネル。None の場合は端末入力
            playwright_factory: async_playwright 互換のファクトリ（テストで差し替える）
        """
        self._config = config or PlayerConfig()
        self._registry = registry or create_default_registry()
        self._control = control or ConsoleControlChannel()
        self._playwright_factory = playwright_factory
        self.state = PlaybackState.INIT
        self.history: list[PlaybackState] = []

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def play(self, script: DemoScript) -> PlaybackResult:
        """デモを再生する。

        Args:
            script: 検証済みのデモスクリプト

        Returns:
            再生結果

        Raises:
            StorageStateNotFoundError: storageStatePath のファイルが存在しない場合（ブラウザ起動前）
            AuthenticationError: フォーム認証に失敗した場合
            StepExecutionError: ステップの実行に失敗した場合
            PlaybackCancelledError: 一時停止中に中断された場合
        """
        self.history = []
        self._transition(PlaybackState.INIT)
        config = script.config
        self._check_storage_state(config)

        logger.info("デモを開始します: %s", script.name)
        if script.description:
            logger.info("  %s", script.description)

        Path(config.videoPath).parent.mkdir(parents=True, exist_ok=True)
        session = _Session()
        steps_completed = 0
        start_time = time.perf_counter()

        async with self._playwright_factory() as pw:
            try:
                await self._open_session(pw, script, session)

                if script.auth is not None and script.auth.type != "none":
                    self._transition(PlaybackState.AUTH)
                    await self._authenticate(script, session)

                self._transition(PlaybackState.RUNNING)
                steps_completed = await self._run_steps(script, session)

                if config.saveStorageStatePath:
                    Path(config.saveStorageStatePath).parent.mkdir(parents=True, exist_ok=True)
                    await session.context.storage_state(path=config.saveStorageStatePath)
                    logger.info("ストレージ状態を保存しました: %s", config.saveStorageStatePath)

                self._transition(PlaybackState.COMPLETE)
                logger.info("デモが完了しました: %s", script.name)

            except PlaybackCancelledError:
                self._transition(PlaybackState.FAILED)
                logger.warning("デモ再生が中断されました")
                raise
            except Exception as exc:
                self._transition(PlaybackState.FAILED)
                logger.error("デモ再生に失敗しました: %s", exc)
                if self._config.screenshot_on_error and session.page is not None:
                    await self._best_effort_screenshot(
                        session.page, self._config.error_screenshot_path, full_page=True,
                    )
                raise
            finally:
                self._transition(PlaybackState.CLEANUP)
                await self._cleanup(session, config)
                self._transition(PlaybackState.DONE)

        if session.video_saved:
            logger.info("録画を保存しました: %s", config.videoPath)

        return PlaybackResult(
            demo_name=script.name,
            steps_completed=steps_completed,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            video_path=config.videoPath if session.video_saved else None,
            storage_state_path=config.saveStorageStatePath,
        )

    # -------------------------------------------------------------------
    # INIT
    # -------------------------------------------------------------------

    def _check_storage_state(self, config: DemoConfig) -> None:
        if config.storageStatePath and not Path(config.storageStatePath).is_file():
            raise StorageStateNotFoundError(config.storageStatePath)

    async def _open_session(self, pw: Playwright, script: DemoScript, session: _Session) -> None:
        config = script.config
        headless = self._config.headless if self._config.headless is not None else config.headless
        slow_mo = self._config.slow_mo if self._config.slow_mo is not None else config.slowMo

        launch_options: dict[str, Any] = {"headless": headless}
        if slow_mo is not None:
            launch_options["slow_mo"] = slow_mo
        session.browser = await pw.chromium.launch(**launch_options)
        logger.debug("ブラウザを起動しました: %s", launch_options)

        session.context = await session.browser.new_context(**self._context_options(script))
        session.page = await session.context.new_page()
        session.effects = VisualEffects(session.page)

    def _context_options(self, script: DemoScript) -> dict[str, Any]:
        """録画コンテキストの生成オプションを組み立てる。"""
        config = script.config
        viewport = {"width": config.viewport.width, "height": config.viewport.height}
        options: dict[str, Any] = {
            "viewport": viewport,
            "base_url": config.baseUrl,
            "record_video_dir": str(Path(config.videoPath).parent),
            "record_video_size": viewport,
        }
        if config.storageStatePath:
            options["storage_state"] = config.storageStatePath
        if script.auth is not None and script.auth.type == "basic":
            options["http_credentials"] = {
                "username": script.auth.username,
                "password": script.auth.password,
            }
        return options

    # -------------------------------------------------------------------
    # AUTH
    # -------------------------------------------------------------------

    async def _authenticate(self, script: DemoScript, session: _Session) -> None:
        auth = script.auth
        logger.info("認証を開始します (%s)", auth.type)

        if auth.type == "form":
            await self._form_login(auth, script.config.baseUrl, session.page)
        else:
            # Basic 認証の資格情報はコンテキスト生成時に設定済み
            logger.debug("Basic 認証の資格情報をコンテキストに設定しました")

        logger.info("認証が完了しました")

    async def _form_login(self, auth: FormAuth, base_url: str, page: Page) -> None:
        login_url = resolve_login_url(base_url, auth.url)
        selectors = auth.selectors
        timeout = self._config.auth_field_timeout_ms

        try:
            await page.goto(login_url)
            await wait_for_visible(page, selectors.usernameField, timeout)
            await page.fill(selectors.usernameField, auth.credentials.username)
            await wait_for_visible(page, selectors.passwordField, timeout)
            await page.fill(selectors.passwordField, auth.credentials.password)
            await wait_for_visible(page, selectors.submitButton, timeout)
            await page.click(selectors.submitButton)
            await page.wait_for_load_state("networkidle")
        except Exception as exc:
            current_url = _current_url(page)
            logger.error("フォーム認証に失敗しました: %s (現在の URL: %s)", login_url, current_url)
            await self._best_effort_screenshot(page, self._config.auth_screenshot_path)
            raise AuthenticationError(
                login_url=login_url,
                current_url=current_url,
                selectors=selectors.model_dump(),
                cause=exc,
            ) from exc

    # -------------------------------------------------------------------
    # RUNNING
    # -------------------------------------------------------------------

    async def _run_steps(self, script: DemoScript, session: _Session) -> int:
        """ステップを順に実行し、実行したステップ数を返す。"""
        context = StepContext(
            effects=session.effects,
            control=self._control,
            timing=self._config.timing,
        )
        total = len(script.steps)

        for index, step in enumerate(script.steps, start=1):
            description = describe_step(step)
            logger.info("[%d/%d] %s", index, total, description)
            try:
                await self._registry.dispatch(session.page, step, context)
            except PlaybackCancelledError:
                raise
            except Exception as exc:
                logger.error("ステップ %d が失敗しました: %s", index, exc)
                raise StepExecutionError(index, description, exc) from exc

        return total

    # -------------------------------------------------------------------
    # FAILED / CLEANUP
    # -------------------------------------------------------------------

    async def _best_effort_screenshot(self, page: Page, path: str, *, full_page: bool = False) -> None:
        """スクリーンショットを保存する。失敗は警告のみで握りつぶす。"""
        try:
            await page.screenshot(path=path, full_page=full_page)
            logger.info("エラー時のスクリーンショットを保存しました: %s", path)
        except Exception as exc:
            logger.warning("スクリーンショット保存に失敗: %s", exc)

    async def _cleanup(self, session: _Session, config: DemoConfig) -> None:
        """確保した資源を解放する。各処理は独立して試み、失敗は警告のみとする。"""
        if session.effects is not None:
            await _guarded("演出の解除", session.effects.clear_all)

        video = _page_video(session.page)

        if session.page is not None:
            await _guarded("page のクローズ", session.page.close)
        if session.context is not None:
            await _guarded("context のクローズ", session.context.close)

        if video is not None:
            session.video_saved = await _guarded(
                "録画の保存", lambda: _save_video(video, config.videoPath),
            )

        if session.browser is not None:
            await _guarded("browser のクローズ", session.browser.close)

    def _transition(self, state: PlaybackState) -> None:
        logger.debug("状態遷移: %s → %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)


# ---------------------------------------------------------------------------
# ヘルパー関数
# ---------------------------------------------------------------------------

def resolve_login_url(base_url: str, url: str) -> str:
    """ログイン URL を解決する。http で始まらない場合は base_url に連結する。"""
    if url.startswith("http"):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


async def _guarded(label: str, action: Callable[[], Awaitable[Any]]) -> bool:
    try:
        await action()
    except Exception as exc:
        logger.warning("%s に失敗しました: %s", label, exc)
        return False
    return True


async def _save_video(video: Any, path: str) -> None:
    await video.save_as(path)
    await video.delete()


def _page_video(page: Optional[Page]) -> Any:
    if page is None:
        return None
    try:
        return page.video
    except Exception as exc:
        logger.warning("録画の取得に失敗しました: %s", exc)
        return None


def _current_url(page: Page) -> Optional[str]:
    try:
        return page.url
    except Exception as exc:
        logger.debug("現在の URL を取得できません: %s", exc)
        return None
