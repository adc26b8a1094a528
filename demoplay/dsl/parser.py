"""
スクリプトローダー — デモスクリプトの読み込み・検証・書き出し

JSON / YAML のスクリプトファイルを読み込み、${NAME} を展開してから
Pydantic モデルで検証し、不変の DemoScript を返す。

処理順:
  1. 拡張子で JSON / YAML を判別してパース（未対応拡張子は ScriptFormatError）
  2. 全文字列の ${NAME} を展開（未定義変数は MissingVariableError で即時失敗）
  3. スキーマ検証（違反は全件を ScriptValidationError にまとめて報告）

ブラウザ資源を確保する前に失敗させるため、Playback Engine より先に呼び出す。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from demoplay.dsl.schema import DemoScript, ScriptDocument
from demoplay.dsl.variables import VariableExpander
from demoplay.errors import (
    MissingVariableError,
    ScriptFormatError,
    ScriptValidationError,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yaml", ".yml")


class ScriptLoader:
    """デモスクリプトの読み込み・検証・書き出しを担当するローダー。

    変数辞書はコンストラクタで明示的に受け取る。
    """

    def __init__(self, variables: Optional[Mapping[str, str]] = None) -> None:
        """ローダーを初期化する。

        Args:
            variables: ${NAME} の置換に使う変数辞書（省略時は空）
        """
        self._expander = VariableExpander(variables or {})
        # 読み込みは safe モード（プレーンな dict / list を返す）
        self._reader = YAML(typ="safe")
        self._writer = YAML()
        self._writer.default_flow_style = False

    # ----- load -----

    def load(self, path: Path) -> DemoScript:
        """スクリプトファイルを読み込み、検証済みの DemoScript を返す。

        Args:
            path: .json / .yaml / .yml のスクリプトファイル

        Returns:
            検証済みの DemoScript

        Raises:
            ScriptFormatError: 未対応の拡張子、構文エラー、ファイル不在の場合
            MissingVariableError: 未定義の変数が参照された場合
            ScriptValidationError: スキーマ違反がある場合
        """
        path = Path(path)
        raw = self._read_raw(path)
        script = self.validate(raw)
        logger.debug("スクリプトを読み込みました: %s (%d ステップ)", path, len(script.steps))
        return script

    # ----- validate -----

    def validate(self, raw: Any) -> DemoScript:
        """パース済みのデータを展開・検証して DemoScript を返す。

        ファイルシステムにもブラウザにも触れないため、ドライラン検証に使える。

        Args:
            raw: `{demo: {...}}` 形式のパース済みデータ

        Returns:
            検証済みの DemoScript

        Raises:
            MissingVariableError: 未定義の変数が参照された場合
            ScriptValidationError: スキーマ違反がある場合
        """
        expanded = self._expander.expand_value(raw)
        try:
            document = ScriptDocument.model_validate(expanded)
        except PydanticValidationError as e:
            raise ScriptValidationError(_to_issues(e)) from e
        return document.demo

    # ----- check -----

    def check(self, path: Path) -> list[ValidationIssue]:
        """スクリプトファイルを検証し、検出された問題を一覧で返す。

        load() と異なり例外を送出せず、問題がなければ空リストを返す。

        Args:
            path: 検証するスクリプトファイル

        Returns:
            検出された問題のリスト
        """
        path = Path(path)
        try:
            self.load(path)
        except ScriptFormatError as e:
            return [ValidationIssue(location="file", message=str(e))]
        except MissingVariableError as e:
            return [ValidationIssue(location="variables", message=str(e))]
        except ScriptValidationError as e:
            return list(e.issues)
        return []

    # ----- dump -----

    def to_dict(self, script: DemoScript) -> dict[str, Any]:
        """DemoScript を `{demo: {...}}` 形式のプレーンな辞書に変換する。

        未指定（None）のフィールドは出力しない。
        """
        return {"demo": script.model_dump(mode="json", exclude_none=True)}

    def dump(self, script: DemoScript, path: Path) -> None:
        """DemoScript をファイルに書き出す。形式は拡張子で決まる。

        Args:
            script: 書き出す DemoScript
            path: 出力先（.json / .yaml / .yml）

        Raises:
            ScriptFormatError: 未対応の拡張子の場合
        """
        path = Path(path)
        suffix = _checked_suffix(path)
        data = self.to_dict(script)

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if suffix in JSON_SUFFIXES:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.write("\n")
            else:
                self._writer.dump(data, f)

    # ----- 内部メソッド -----

    def _read_raw(self, path: Path) -> Any:
        suffix = _checked_suffix(path)

        if not path.exists():
            raise ScriptFormatError(f"スクリプトファイルが見つかりません: {path}")

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ScriptFormatError(
                f"スクリプトファイルが UTF-8 ではありません: {path} ({e.reason}, 位置 {e.start})"
            ) from e
        except OSError as e:
            raise ScriptFormatError(f"スクリプトファイルを読み込めません: {path} ({e})") from e

        if suffix in JSON_SUFFIXES:
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise ScriptFormatError(
                    f"JSON 構文エラー (行 {e.lineno}, 列 {e.colno}): {e.msg}"
                ) from e
        else:
            try:
                data = self._reader.load(text)
            except YAMLError as e:
                line_info = ""
                mark = getattr(e, "problem_mark", None)
                if mark is not None:
                    line_info = f" (行 {mark.line + 1}, 列 {mark.column + 1})"
                raise ScriptFormatError(f"YAML 構文エラー{line_info}: {e}") from e

        if data is None:
            raise ScriptFormatError(f"スクリプトファイルが空です: {path}")
        return data


def _checked_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in JSON_SUFFIXES + YAML_SUFFIXES:
        raise ScriptFormatError(
            f"未対応のファイル形式です: {path.name}"
            f"（.json / .yaml / .yml のいずれかを指定してください）"
        )
    return suffix


def _to_issues(error: PydanticValidationError) -> list[ValidationIssue]:
    """Pydantic の検証エラーをフィールドパス付きの ValidationIssue に変換する。"""
    issues: list[ValidationIssue] = []
    for err in error.errors():
        loc_parts = [str(part) for part in err.get("loc", ())]
        location = ".".join(loc_parts) if loc_parts else "(root)"
        issues.append(ValidationIssue(location=location, message=err.get("msg", "不明なエラー")))
    return issues
