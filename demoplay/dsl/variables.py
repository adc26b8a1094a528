"""
変数展開エンジン — ${NAME} プレースホルダの置換

スクリプト読み込み時、スキーマ検証の前に、パース済みデータ内の全文字列に含まれる
${NAME} を外部から渡された変数辞書の値で置換する。

  - 変数辞書は明示的に渡す（os.environ を直接参照しない）
  - 未定義の変数を参照した時点で MissingVariableError を送出する（部分置換はしない）
  - 辞書のキーは展開せず、値のみを再帰的に展開する
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from demoplay.errors import MissingVariableError


# ${NAME} にマッチする正規表現
PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class VariableExpander:
    """パース済みスクリプト内の ${NAME} を展開するエンジン。"""

    def __init__(self, variables: Mapping[str, str]) -> None:
        """変数展開エンジンを初期化する。

        Args:
            variables: 置換に使う変数辞書（CLI からは環境変数のスナップショットが渡される）
        """
        self._variables: dict[str, str] = dict(variables)

    # ----- 公開メソッド -----

    def expand(self, text: str) -> str:
        """テキスト内の ${NAME} を全て置換する。

        Args:
            text: 展開対象のテキスト

        Returns:
            プレースホルダが置換されたテキスト

        Raises:
            MissingVariableError: 未定義の変数が参照された場合
        """
        return PLACEHOLDER_PATTERN.sub(self._replace_match, text)

    def expand_value(self, value: Any) -> Any:
        """値を再帰的に展開する。

        - str: expand() で置換
        - dict: 各値を再帰的に展開（キーは展開しない）
        - list: 各要素を再帰的に展開
        - その他: そのまま返す

        Args:
            value: 展開対象の値

        Returns:
            展開後の値（入力は変更せず、新しいオブジェクトを返す）
        """
        if isinstance(value, str):
            return self.expand(value)
        if isinstance(value, dict):
            return {k: self.expand_value(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.expand_value(item) for item in value]
        return value

    @property
    def variables(self) -> dict[str, str]:
        """変数辞書の読み取り専用コピーを返す。"""
        return dict(self._variables)

    # ----- 内部メソッド -----

    def _replace_match(self, match: re.Match) -> str:
        var_name = match.group(1)
        if var_name not in self._variables:
            raise MissingVariableError(var_name)
        return self._variables[var_name]
