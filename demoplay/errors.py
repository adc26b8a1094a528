"""
例外定義 — デモ再生で発生するエラーの分類

スクリプト読み込み・検証・ブラウザ操作・認証・ステップ実行の各段階で
送出される例外をまとめて定義する。全て DemoPlayError を基底とする。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class DemoPlayError(Exception):
    """demoplay が送出する全例外の基底クラス。"""


# ---------------------------------------------------------------------------
# スクリプト読み込み・検証
# ---------------------------------------------------------------------------

class ScriptFormatError(DemoPlayError):
    """スクリプトファイルの形式が不正な場合に送出される例外。

    未対応の拡張子、JSON / YAML の構文エラー、ファイル不在を含む。
    """


@dataclass(frozen=True)
class ValidationIssue:
    """スキーマ検証で検出された 1 件の違反。

    Attributes:
        location: 違反箇所のフィールドパス（例: demo.steps.0.selector）
        message: エラーメッセージ
    """

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


class ScriptValidationError(DemoPlayError):
    """スキーマ違反をまとめて報告する例外。

    最初の 1 件だけでなく、検出された全ての違反を issues に保持する。
    """

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"スクリプトの検証に失敗しました:\n{lines}")


class MissingVariableError(DemoPlayError):
    """${NAME} プレースホルダが参照する変数が未定義の場合に送出される例外。

    Attributes:
        var_name: 参照された変数名
    """

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(
            f"変数 \"{var_name}\" が定義されていません。"
            f"デモ実行前に環境変数または .env で設定してください"
            f"（例: export {var_name}=...）"
        )


# ---------------------------------------------------------------------------
# ブラウザ操作
# ---------------------------------------------------------------------------

class ElementNotFoundError(DemoPlayError):
    """セレクタに一致する要素がページ上に存在しない場合の例外。"""

    def __init__(self, selector: str) -> None:
        self.selector = selector
        super().__init__(f"要素が見つかりません: {selector}")


class StepTimeoutError(DemoPlayError, TimeoutError):
    """セレクタの可視化待機やナビゲーションがタイムアウトした場合の例外。

    組み込みの TimeoutError も継承するため、汎用の except TimeoutError でも捕捉できる。
    """

    def __init__(self, target: str, timeout_ms: int) -> None:
        self.target = target
        self.timeout_ms = timeout_ms
        super().__init__(
            f"{timeout_ms}ms 以内に要素が表示されませんでした: {target}"
        )


class RetryExhaustedError(DemoPlayError):
    """リトライ回数を使い切っても操作が成功しなかった場合の例外。

    Attributes:
        attempts: 試行回数
        last_error: 最後の試行で発生した例外
    """

    def __init__(self, action: str, attempts: int, last_error: BaseException) -> None:
        self.action = action
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{attempts} 回試行しましたが失敗しました: {action} ({last_error})"
        )


class StorageStateNotFoundError(DemoPlayError, FileNotFoundError):
    """config.storageStatePath に指定されたファイルが存在しない場合の例外。"""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"ストレージ状態ファイルが見つかりません: {path}\n"
            f"一度ログインして saveStorageStatePath で保存するか、"
            f"storageStatePath の指定を外してください。"
        )


# ---------------------------------------------------------------------------
# 認証・ステップ実行
# ---------------------------------------------------------------------------

class AuthenticationError(DemoPlayError):
    """フォーム認証に失敗した場合の例外。

    原因調査に必要な情報（ログイン URL、失敗時点の URL、全セレクタ）を保持する。
    """

    def __init__(
        self,
        login_url: str,
        current_url: Optional[str],
        selectors: dict[str, str],
        cause: BaseException,
    ) -> None:
        self.login_url = login_url
        self.current_url = current_url
        self.selectors = dict(selectors)
        self.cause = cause
        selector_lines = "\n".join(
            f"    {name}: {value}" for name, value in self.selectors.items()
        )
        super().__init__(
            "フォーム認証に失敗しました。\n"
            f"  ログイン URL: {login_url}\n"
            f"  現在の URL: {current_url or '(不明)'}\n"
            f"  セレクタ:\n{selector_lines}\n"
            f"  原因: {cause}"
        )


class StepExecutionError(DemoPlayError):
    """ステップの実行に失敗した場合の例外。

    Attributes:
        step_index: 失敗したステップの番号（1 始まり）
        description: ステップの説明文
        cause: ハンドラで発生した元の例外
    """

    def __init__(self, step_index: int, description: str, cause: BaseException) -> None:
        self.step_index = step_index
        self.description = description
        self.cause = cause
        super().__init__(f"ステップ {step_index} ({description}) で失敗しました: {cause}")


class UnknownStepKindError(DemoPlayError, KeyError):
    """ステップ種別に対応するハンドラが登録されていない場合の例外。"""

    def __init__(self, kind: str, registered: list[str]) -> None:
        self.kind = kind
        self.registered = list(registered)
        super().__init__(
            f"ステップ '{kind}' のハンドラは登録されていません。"
            f"登録済みステップ: [{', '.join(self.registered)}]"
        )

    def __str__(self) -> str:
        # KeyError は repr 形式で表示されるため、通常のメッセージに戻す
        return str(self.args[0])


class PlaybackCancelledError(DemoPlayError):
    """一時停止中に中断シグナルを受け取った場合の例外。"""

    def __init__(self, message: str = "デモ再生が中断されました") -> None:
        super().__init__(message)
