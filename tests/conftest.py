"""
テスト共通フィクスチャ・ヘルパー

Playwright の Page / BrowserContext / Browser は unittest.mock で代替する。
実際のブラウザは起動しない。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# getBoundingClientRect 相当の計測結果
SAMPLE_RECT = {
    "x": 100.0,
    "y": 200.0,
    "width": 300.0,
    "height": 50.0,
    "scrollX": 0.0,
    "scrollY": 40.0,
    "viewportWidth": 1920.0,
    "viewportHeight": 1080.0,
}


# ---------------------------------------------------------------------------
# ヘルパー: モックオブジェクト生成
# ---------------------------------------------------------------------------

def make_mock_page(*, rect: Optional[dict] = SAMPLE_RECT, url: str = "https://example.com/") -> MagicMock:
    """モック Page を生成する。

    evaluate() は常に rect を返す（計測以外のスクリプトでは戻り値を使わない）。
    """
    page = AsyncMock()
    page.url = url
    page.evaluate = AsyncMock(return_value=rect)
    element = AsyncMock()
    page.wait_for_selector = AsyncMock(return_value=element)
    locator = MagicMock()
    locator.screenshot = AsyncMock()
    page.locator = MagicMock(return_value=locator)
    page.on = MagicMock()
    page.video = None
    return page


def make_mock_playwright(page: MagicMock) -> tuple[MagicMock, MagicMock, MagicMock]:
    """page を返すモック async_playwright ファクトリを生成する。

    Returns:
        (factory, browser, context) のタプル
    """
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=page)
    browser = AsyncMock()
    browser.new_context = AsyncMock(return_value=context)

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=pw)
    manager.__aexit__ = AsyncMock(return_value=False)
    factory = MagicMock(return_value=manager)
    return factory, browser, context


def make_script_dict(steps: list[dict], **config: Any) -> dict:
    """`{demo: {...}}` 形式のスクリプト辞書を生成する。"""
    base_config = {"baseUrl": "https://example.com"}
    base_config.update(config)
    return {"demo": {"name": "テストデモ", "config": base_config, "steps": steps}}


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def minimal_script_dict() -> dict:
    """navigate → highlight の最小スクリプト。"""
    return make_script_dict([
        {"type": "navigate", "url": "/"},
        {"type": "highlight", "selector": ".cta"},
    ])


@pytest.fixture
def write_script(tmp_path: Path):
    """スクリプト辞書または文字列をファイルに書き出すフィクスチャ。"""

    def _write(content: Any, name: str = "demo.json") -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content, ensure_ascii=False), encoding="utf-8")
        return path

    return _write
