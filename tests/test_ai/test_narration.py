"""
ナレーション生成のユニットテスト

Anthropic クライアントは偽オブジェクトで代替し、外部 API は呼び出さない。

テスト対象:
  - フォールバック文言の選択
  - AnthropicNarrationGenerator: 成功時の文言、失敗時のフォールバック
  - create_narration_generator: API キー有無による実装の選択
  - generate_for_steps: 各ステップの文脈と呼び出し間隔
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_script_dict
from demoplay.ai.narration import (
    DEFAULT_FALLBACK_NARRATION,
    AnthropicNarrationGenerator,
    FallbackNarrationGenerator,
    NarrationContext,
    build_prompt,
    create_narration_generator,
    fallback_narration,
    generate_for_steps,
)
from demoplay.core.config import NarrationSettings
from demoplay.dsl.parser import ScriptLoader


# ---------------------------------------------------------------------------
# ヘルパー
# ---------------------------------------------------------------------------

def _fake_client(*, text: str | None = None, error: Exception | None = None) -> SimpleNamespace:
    """messages.create() だけを持つ偽の Anthropic クライアント。"""
    if error is not None:
        create = AsyncMock(side_effect=error)
    else:
        blocks = [] if text is None else [SimpleNamespace(type="text", text=text)]
        create = AsyncMock(return_value=SimpleNamespace(content=blocks))
    return SimpleNamespace(messages=SimpleNamespace(create=create))


class _RecordingGenerator:
    def __init__(self) -> None:
        self.contexts: list[NarrationContext] = []

    async def generate(self, context: NarrationContext) -> str:
        self.contexts.append(context)
        return f"narration {len(self.contexts)}"


# ===========================================================================
# フォールバック
# ===========================================================================

class TestFallback:
    """フォールバック文言のテスト。"""

    @pytest.mark.parametrize("step,expected", [
        ("Step 1: navigate", "Navigating to the next section"),
        ("Step 2: CLICK", "Clicking to explore this feature"),
        ("Step 3: type", "Entering information"),
        ("Step 4: highlight", "Notice this key feature"),
        ("Step 5: zoom", "Taking a closer look"),
        ("Step 6: spotlight", "Focusing on this important element"),
        ("Step 7: scroll", "Scrolling to see more"),
        ("Step 8: pause", DEFAULT_FALLBACK_NARRATION),
    ])
    def test_keyword_table(self, step: str, expected: str) -> None:
        assert fallback_narration(NarrationContext(demo_name="d", current_step=step)) == expected

    async def test_fallback_generator(self) -> None:
        context = NarrationContext(demo_name="d", current_step="Step 1: zoom")
        assert await FallbackNarrationGenerator().generate(context) == "Taking a closer look"


# ===========================================================================
# Anthropic
# ===========================================================================

class TestAnthropicGenerator:
    """AnthropicNarrationGenerator のテスト。"""

    async def test_returns_generated_text(self) -> None:
        client = _fake_client(text="  Let's open the dashboard.  ")
        settings = NarrationSettings(api_key="sk-test", model="claude-test")
        generator = AnthropicNarrationGenerator(settings, client=client)
        context = NarrationContext(
            demo_name="製品ツアー", current_step="Step 2: click",
            page_title="Dashboard", previous_steps=["navigate"],
        )

        assert await generator.generate(context) == "Let's open the dashboard."

        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 150
        assert kwargs["temperature"] == 0.7
        prompt = kwargs["messages"][0]["content"]
        assert "製品ツアー" in prompt
        assert "Dashboard" in prompt
        assert "navigate" in prompt

    async def test_api_error_falls_back(self) -> None:
        generator = AnthropicNarrationGenerator(
            NarrationSettings(api_key="sk-test"), client=_fake_client(error=RuntimeError("rate limited")),
        )
        context = NarrationContext(demo_name="d", current_step="Step 1: scroll")
        assert await generator.generate(context) == "Scrolling to see more"

    async def test_empty_response_falls_back(self) -> None:
        generator = AnthropicNarrationGenerator(NarrationSettings(api_key="sk-test"), client=_fake_client())
        context = NarrationContext(demo_name="d", current_step="Step 1: type")
        assert await generator.generate(context) == "Entering information"

    def test_requires_api_key_without_client(self) -> None:
        with pytest.raises(ValueError):
            AnthropicNarrationGenerator(NarrationSettings())


class TestBuildPrompt:
    """build_prompt のテスト。"""

    def test_optional_context_omitted(self) -> None:
        prompt = build_prompt(NarrationContext(demo_name="ツアー", current_step="Step 1: navigate"))
        assert "ツアー" in prompt
        assert "Step 1: navigate" in prompt
        assert "{" not in prompt


# ===========================================================================
# ファクトリ・一括生成
# ===========================================================================

class TestFactory:
    """create_narration_generator のテスト。"""

    def test_without_key(self) -> None:
        assert isinstance(create_narration_generator(NarrationSettings()), FallbackNarrationGenerator)

    def test_with_key(self) -> None:
        with patch("demoplay.ai.narration.AsyncAnthropic") as client_cls:
            generator = create_narration_generator(NarrationSettings(api_key="sk-test"))

        assert isinstance(generator, AnthropicNarrationGenerator)
        client_cls.assert_called_once_with(api_key="sk-test")


class TestGenerateForSteps:
    """generate_for_steps のテスト。"""

    def _script(self):
        return ScriptLoader().validate(make_script_dict([
            {"type": "navigate", "url": "/"},
            {"type": "click", "selector": "#a"},
            {"type": "zoom", "selector": "#b"},
            {"type": "pause"},
        ]))

    async def test_contexts_and_delays(self) -> None:
        generator = _RecordingGenerator()
        with patch("demoplay.ai.narration.asyncio.sleep", new_callable=AsyncMock) as sleep:
            narrations = await generate_for_steps(generator, self._script(), delay_ms=500)

        assert narrations == ["narration 1", "narration 2", "narration 3", "narration 4"]
        assert [c.current_step for c in generator.contexts] == [
            "Step 1: navigate", "Step 2: click", "Step 3: zoom", "Step 4: pause",
        ]
        assert generator.contexts[0].previous_steps == []
        assert generator.contexts[1].previous_steps == ["navigate"]
        assert generator.contexts[3].previous_steps == ["click", "zoom"]
        assert all(c.demo_name == "テストデモ" for c in generator.contexts)

        # 最後の呼び出しの後は待機しない
        assert sleep.await_count == 3
        sleep.assert_awaited_with(0.5)

    async def test_zero_delay_skips_sleep(self) -> None:
        with patch("demoplay.ai.narration.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await generate_for_steps(_RecordingGenerator(), self._script(), delay_ms=0)
        sleep.assert_not_awaited()
