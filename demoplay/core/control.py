"""
操作チャネル — pause ステップの確認入力

pause ステップは操作者の確認入力があるまでプロセス全体を止める。
入力元は ControlChannel プロトコルで抽象化し、再生エンジンへ注入する。

  - ConsoleControlChannel: 端末から 1 行の入力を読む（CLI 用）
  - ScriptedControlChannel: あらかじめ用意した応答を返す（テスト用）

中断（Ctrl+C / EOF）は PlaybackCancelledError として通知される。
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, runtime_checkable

import typer

from demoplay.errors import PlaybackCancelledError

logger = logging.getLogger(__name__)

DEFAULT_PAUSE_MESSAGE = "一時停止中です。Enter キーで再開します"


@runtime_checkable
class ControlChannel(Protocol):
    """pause ステップの確認入力を提供するプロトコル。"""

    def confirm(self, message: str) -> None:
        """確認入力があるまでブロックする。

        Raises:
            PlaybackCancelledError: 中断シグナルを受け取った場合
        """
        ...


class ConsoleControlChannel:
    """端末から確認入力を読む ControlChannel 実装。"""

    def confirm(self, message: str) -> None:
        try:
            typer.prompt(message, default="", show_default=False, prompt_suffix=" ")
        except typer.Abort as exc:
            # Ctrl+C / EOF は click により Abort に変換される
            raise PlaybackCancelledError() from exc


class ScriptedControlChannel:
    """あらかじめ用意した応答を順に返す ControlChannel 実装。

    応答 "cancel" は中断シグナルとして扱う。応答を使い切った後の呼び出しも中断となる。
    """

    CANCEL = "cancel"

    def __init__(self, responses: Optional[Iterable[str]] = None) -> None:
        self._responses = list(responses) if responses is not None else []
        self.messages: list[str] = []

    def confirm(self, message: str) -> None:
        self.messages.append(message)
        if not self._responses:
            raise PlaybackCancelledError("確認入力がありません")
        response = self._responses.pop(0)
        if response == self.CANCEL:
            raise PlaybackCancelledError()
        logger.debug("確認入力を受け取りました: %r", response)
