"""
ScriptLoader のユニットテスト

テスト対象:
  - JSON / YAML スクリプトの読み込み
  - 未対応拡張子・ファイル不在・構文エラー・空ファイル
  - スキーマ違反の一括報告（フィールドパス付き）
  - 変数展開と未定義変数
  - validate() とファイル経由の読み込みの一致
  - dump() → load() の往復
  - check() による問題一覧の取得
"""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_script_dict
from demoplay.dsl.parser import ScriptLoader
from demoplay.dsl.schema import HighlightStep, NavigateStep
from demoplay.errors import MissingVariableError, ScriptFormatError, ScriptValidationError

YAML_SCRIPT = """\
demo:
  name: 製品ツアー
  description: ダッシュボードの紹介
  config:
    baseUrl: https://app.example.com
    viewport:
      width: 1280
      height: 720
  steps:
    - type: navigate
      url: /dashboard
    - type: click
      selector: "#menu"
    - type: wait
      duration: 500
"""


# ===========================================================================
# 読み込み
# ===========================================================================

class TestLoad:
    """load() の正常系テスト。"""

    def test_load_yaml(self, write_script) -> None:
        path = write_script(YAML_SCRIPT, name="tour.yaml")
        script = ScriptLoader().load(path)

        assert script.name == "製品ツアー"
        assert script.config.viewport.width == 1280
        assert [s.type for s in script.steps] == ["navigate", "click", "wait"]

    def test_load_yml_extension(self, write_script) -> None:
        path = write_script(YAML_SCRIPT, name="tour.yml")
        assert ScriptLoader().load(path).name == "製品ツアー"

    def test_load_json(self, write_script, minimal_script_dict) -> None:
        path = write_script(minimal_script_dict)
        script = ScriptLoader().load(path)

        assert len(script.steps) == 2
        assert isinstance(script.steps[0], NavigateStep)
        assert isinstance(script.steps[1], HighlightStep)
        assert script.steps[1].duration == 2000

    def test_validate_matches_load(self, write_script, minimal_script_dict) -> None:
        loader = ScriptLoader()
        path = write_script(minimal_script_dict)
        assert loader.validate(minimal_script_dict) == loader.load(path)


# ===========================================================================
# 形式エラー
# ===========================================================================

class TestFormatErrors:
    """ScriptFormatError になるケースのテスト。"""

    def test_unsupported_extension(self, write_script) -> None:
        path = write_script("demo: {}", name="demo.txt")
        with pytest.raises(ScriptFormatError, match="未対応のファイル形式"):
            ScriptLoader().load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ScriptFormatError, match="見つかりません"):
            ScriptLoader().load(tmp_path / "nothing.yaml")

    def test_json_syntax_error(self, write_script) -> None:
        path = write_script('{"demo": {', name="broken.json")
        with pytest.raises(ScriptFormatError, match="JSON 構文エラー"):
            ScriptLoader().load(path)

    def test_yaml_syntax_error(self, write_script) -> None:
        path = write_script("demo:\n  name: [unclosed\n", name="broken.yaml")
        with pytest.raises(ScriptFormatError, match="YAML 構文エラー"):
            ScriptLoader().load(path)

    def test_empty_file(self, write_script) -> None:
        path = write_script("", name="empty.yaml")
        with pytest.raises(ScriptFormatError, match="空です"):
            ScriptLoader().load(path)

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "latin.yaml"
        path.write_bytes(b"demo:\n  name: \xff\xfe\n")
        with pytest.raises(ScriptFormatError, match="UTF-8") as exc_info:
            ScriptLoader().load(path)
        assert "latin.yaml" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_directory_path(self, tmp_path: Path) -> None:
        path = tmp_path / "scripts.yaml"
        path.mkdir()
        with pytest.raises(ScriptFormatError, match="読み込めません"):
            ScriptLoader().load(path)


# ===========================================================================
# スキーマ違反
# ===========================================================================

class TestValidationErrors:
    """ScriptValidationError のテスト。"""

    def test_empty_steps(self) -> None:
        with pytest.raises(ScriptValidationError, match="少なくとも 1 つ"):
            ScriptLoader().validate(make_script_dict([]))

    def test_all_issues_reported(self) -> None:
        """複数の違反がまとめて報告される。"""
        raw = make_script_dict(
            [
                {"type": "click"},
                {"type": "type", "selector": "#q", "text": "a", "speed": "fast"},
            ],
            baseUrl="not a url",
        )
        with pytest.raises(ScriptValidationError) as exc_info:
            ScriptLoader().validate(raw)

        issues = exc_info.value.issues
        assert len(issues) >= 3
        locations = [issue.location for issue in issues]
        assert any(loc.startswith("demo.config.baseUrl") for loc in locations)
        assert any(loc.startswith("demo.steps.0") for loc in locations)
        assert any(loc.startswith("demo.steps.1") for loc in locations)

    def test_missing_demo_root(self) -> None:
        with pytest.raises(ScriptValidationError):
            ScriptLoader().validate({"name": "demo"})


# ===========================================================================
# 変数展開
# ===========================================================================

class TestVariables:
    """${NAME} 展開のテスト。"""

    def test_placeholders_expanded(self, write_script) -> None:
        raw = make_script_dict(
            [{"type": "type", "selector": "#user", "text": "${DEMO_USER}"}],
            baseUrl="${BASE_URL}",
        )
        path = write_script(raw)
        script = ScriptLoader({"DEMO_USER": "alice", "BASE_URL": "https://staging.example.com"}).load(path)

        assert script.config.baseUrl == "https://staging.example.com"
        assert script.steps[0].text == "alice"

    def test_missing_variable(self) -> None:
        raw = make_script_dict([{"type": "navigate", "url": "${START_PATH}"}])
        with pytest.raises(MissingVariableError) as exc_info:
            ScriptLoader().validate(raw)
        assert exc_info.value.var_name == "START_PATH"


# ===========================================================================
# 書き出し
# ===========================================================================

class TestDump:
    """dump() / to_dict() のテスト。"""

    @pytest.mark.parametrize("name", ["out.yaml", "out.json"])
    def test_dump_then_load(self, tmp_path: Path, minimal_script_dict, name: str) -> None:
        loader = ScriptLoader()
        script = loader.validate(minimal_script_dict)

        path = tmp_path / "nested" / name
        loader.dump(script, path)

        assert loader.load(path).model_dump() == script.model_dump()

    def test_to_dict_omits_unset_optionals(self, minimal_script_dict) -> None:
        loader = ScriptLoader()
        data = loader.to_dict(loader.validate(minimal_script_dict))

        assert "auth" not in data["demo"]
        assert "slowMo" not in data["demo"]["config"]

    def test_dump_unsupported_extension(self, tmp_path: Path, minimal_script_dict) -> None:
        loader = ScriptLoader()
        with pytest.raises(ScriptFormatError):
            loader.dump(loader.validate(minimal_script_dict), tmp_path / "out.toml")


# ===========================================================================
# check
# ===========================================================================

class TestCheck:
    """check() のテスト。"""

    def test_valid_script_has_no_issues(self, write_script, minimal_script_dict) -> None:
        assert ScriptLoader().check(write_script(minimal_script_dict)) == []

    def test_format_error_reported_as_file_issue(self, write_script) -> None:
        issues = ScriptLoader().check(write_script("x", name="demo.ini"))
        assert len(issues) == 1
        assert issues[0].location == "file"

    def test_undecodable_file_reported_as_file_issue(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_bytes(b"\xff\xfe")
        issues = ScriptLoader().check(path)
        assert [issue.location for issue in issues] == ["file"]

    def test_missing_variable_reported(self, write_script) -> None:
        path = write_script(make_script_dict([{"type": "navigate", "url": "${NOPE}"}]))
        issues = ScriptLoader().check(path)
        assert [issue.location for issue in issues] == ["variables"]
        assert "NOPE" in issues[0].message

    def test_schema_issues_returned(self, write_script) -> None:
        path = write_script(make_script_dict([{"type": "wait"}]))
        issues = ScriptLoader().check(path)
        assert issues
        assert all(issue.location.startswith("demo.steps.0") for issue in issues)
