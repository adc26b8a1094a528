"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

demoplay コマンドとして以下のサブコマンドを提供する:
  - play: デモを再生・録画
  - validate: スクリプトの検証（ブラウザは起動しない）
  - narrate: 各ステップのナレーション文を生成
  - list-steps: 全ステップ一覧

起動時にカレントディレクトリの .env を読み込む（既存の環境変数は上書きしない）。
スクリプト内の ${NAME} は環境変数から置換される。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

# 中断時の終了コード（SIGINT 相当）
EXIT_CANCELLED = 130

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "demoplay — スクリプトからブラウザ上の製品デモを再生・録画するツール\n\n"
        "基本の流れ:\n"
        "  1. demoplay validate demos/xxx.yaml  スクリプトを検証\n"
        "  2. demoplay play demos/xxx.yaml      デモを再生して録画\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="デバッグログを表示する"),
) -> None:
    """.env の読み込みとログ設定を行う。"""
    load_dotenv(find_dotenv(usecwd=True), override=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _environ() -> dict[str, str]:
    """置換・設定に使う環境変数のスナップショットを返す。"""
    return dict(os.environ)


# ---------------------------------------------------------------------------
# play コマンド
# ---------------------------------------------------------------------------

@app.command()
def play(
    script_file: Path = typer.Argument(..., help="再生するスクリプト（.json / .yaml / .yml）"),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--headed", help="ヘッドレスモード（省略時はスクリプト設定に従う）",
    ),
    slow_mo: Optional[int] = typer.Option(
        None, "--slow-mo", min=0, help="各ブラウザ操作間の遅延（ミリ秒）",
    ),
    screenshot_on_error: Optional[bool] = typer.Option(
        None, "--screenshot-on-error/--no-screenshot-on-error",
        help="失敗時にスクリーンショットを保存する（デフォルト: 保存する）",
    ),
) -> None:
    """デモスクリプトを再生し、録画する。"""
    import asyncio

    from .core.config import apply_cli_overrides, load_config_from_env
    from .core.player import DemoPlayer
    from .dsl.parser import ScriptLoader
    from .errors import PlaybackCancelledError

    environ = _environ()
    try:
        script = ScriptLoader(environ).load(script_file)

        config = apply_cli_overrides(
            load_config_from_env(environ),
            headless=headless,
            slow_mo=slow_mo,
            screenshot_on_error=screenshot_on_error,
        )

        typer.echo(f"デモ: {script.name}")
        result = asyncio.run(DemoPlayer(config).play(script))

        typer.echo(f"完了: {result.steps_completed} ステップ ({result.duration_ms:.0f}ms)")
        if result.video_path:
            typer.echo(f"録画: {result.video_path}")
        if result.storage_state_path:
            typer.echo(f"ストレージ状態: {result.storage_state_path}")
    except PlaybackCancelledError as exc:
        typer.echo(f"中断: {exc}", err=True)
        raise typer.Exit(code=EXIT_CANCELLED)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# validate コマンド
# ---------------------------------------------------------------------------

@app.command()
def validate(
    script_file: Path = typer.Argument(..., help="検証するスクリプト"),
) -> None:
    """スクリプトを読み込んで検証する。ブラウザは起動しない。"""
    from .dsl.parser import ScriptLoader

    loader = ScriptLoader(_environ())
    issues = loader.check(script_file)

    if issues:
        for issue in issues:
            typer.echo(f"✗ {issue.location}: {issue.message}", err=True)
        raise typer.Exit(code=1)

    script = loader.load(script_file)
    typer.echo(f"✓ {script_file}: 検証 OK")
    typer.echo(f"  名前: {script.name}")
    typer.echo(f"  ステップ数: {len(script.steps)}")
    typer.echo(f"  ベース URL: {script.config.baseUrl}")


# ---------------------------------------------------------------------------
# narrate コマンド
# ---------------------------------------------------------------------------

@app.command()
def narrate(
    script_file: Path = typer.Argument(..., help="対象のスクリプト"),
    delay: Optional[int] = typer.Option(
        None, "--delay", min=0, help="生成呼び出しの間隔（ミリ秒、デフォルト: 500）",
    ),
) -> None:
    """各ステップのナレーション文を生成して表示する。

    ANTHROPIC_API_KEY が未設定の場合は定型文を表示する。
    """
    import asyncio

    from .ai.narration import create_narration_generator, generate_for_steps
    from .core.config import load_narration_settings
    from .dsl.parser import ScriptLoader

    environ = _environ()
    try:
        script = ScriptLoader(environ).load(script_file)
        settings = load_narration_settings(environ)
        generator = create_narration_generator(settings)

        narrations = asyncio.run(generate_for_steps(
            generator, script,
            delay_ms=settings.batch_delay_ms if delay is None else delay,
        ))

        total = len(script.steps)
        for index, (step, text) in enumerate(zip(script.steps, narrations), start=1):
            typer.echo(f"[{index}/{total}] {step.type}: {text}")
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# list-steps コマンド
# ---------------------------------------------------------------------------

@app.command("list-steps")
def list_steps() -> None:
    """登録済み全ステップの一覧を表示する。"""
    from .steps import create_default_registry

    registry = create_default_registry()
    all_steps = registry.list_all()

    categories: dict[str, list] = {}
    for info in all_steps:
        categories.setdefault(info.category, []).append(info)

    for category, steps in sorted(categories.items()):
        typer.echo(f"\n[{category}]")
        for step in steps:
            typer.echo(f"  {step.name:12s} {step.description}")

    typer.echo(f"\n合計: {len(all_steps)} ステップ")
