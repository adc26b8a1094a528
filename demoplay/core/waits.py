"""
待機・リトライ — ステップハンドラ共通のユーティリティ

各ステップハンドラから呼び出す待機・リトライ処理を提供する。
ハンドラは継承ではなく、このモジュールの関数を直接利用する。

主な機能:
  - wait_for_visible: セレクタの可視化待機（タイムアウトは StepTimeoutError に変換）
  - retry_async: 一定間隔での再試行（使い切ると RetryExhaustedError）
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from demoplay.errors import RetryExhaustedError, StepTimeoutError

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# 可視化待機
# ---------------------------------------------------------------------------

async def wait_for_visible(page: Page, selector: str, timeout: int) -> ElementHandle:
    """セレクタに一致する要素が可視になるまで待機する。

    Args:
        page: Playwright の Page オブジェクト
        selector: 待機対象の CSS セレクタ
        timeout: タイムアウト（ミリ秒）

    Returns:
        可視になった要素の ElementHandle

    Raises:
        StepTimeoutError: タイムアウト時間内に要素が可視にならなかった場合
    """
    try:
        element = await page.wait_for_selector(selector, state="visible", timeout=timeout)
    except PlaywrightTimeoutError as exc:
        raise StepTimeoutError(selector, timeout) from exc
    logger.debug("要素が可視になりました: %s", selector)
    return element


# ---------------------------------------------------------------------------
# リトライ
# ---------------------------------------------------------------------------

async def retry_async(
    action: Callable[[], Awaitable[T]],
    *,
    page: Page,
    attempts: int,
    delay_ms: int,
    description: str,
) -> T:
    """操作を最大 attempts 回試行する。

    失敗するたびに page.wait_for_timeout(delay_ms) で待機してから再試行する。
    最後の試行の後は待機しない。

    Args:
        action: 試行する非同期操作（引数なし）
        page: 待機に使う Page オブジェクト
        attempts: 最大試行回数（1 以上）
        delay_ms: 試行間の待機（ミリ秒）
        description: ログ・エラーメッセージ用の操作説明

    Returns:
        成功した試行の戻り値

    Raises:
        RetryExhaustedError: 全ての試行が失敗した場合
    """
    if attempts < 1:
        raise ValueError(f"attempts は 1 以上を指定してください: {attempts}")

    attempt = 1
    while True:
        try:
            return await action()
        except Exception as exc:
            logger.warning(
                "%s に失敗しました（%d/%d 回目）: %s",
                description, attempt, attempts, exc,
            )
            if attempt >= attempts:
                raise RetryExhaustedError(description, attempts, exc) from exc
        await page.wait_for_timeout(delay_ms)
        attempt += 1
