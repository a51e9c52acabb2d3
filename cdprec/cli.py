"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

cdprec コマンドとして以下のサブコマンドを提供する:
  - init: プロジェクト雛形生成
  - record: ブラウザ操作を記録し、Gherkin シナリオとステップ定義を生成
  - compile: 保存済みアクショントレースからオフラインで再生成
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer

from .config import CONFIG_FILE_NAME, apply_cli_overrides, load_config

if TYPE_CHECKING:
    from .browser import RecordingBrowser
    from .recorder.engine import RecorderEngine

logger = logging.getLogger(__name__)

# 記録ループのイベント処理間隔（ミリ秒）
_PUMP_INTERVAL_MS = 200

_TRACE_SUFFIX = ".actions.json"

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "cdprec — DevTools プロトコルによるブラウザ操作レコーダー\n\n"
        "基本の流れ:\n"
        "  1. cdprec record https://example.com   操作を記録（Chromium が開きます）\n"
        "  2. pytest features/                    生成したシナリオを再実行\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    """ログ出力を設定する。"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# init コマンド
# ---------------------------------------------------------------------------

@app.command()
def init(
    project_dir: Path = typer.Argument(
        Path("."), help="プロジェクトディレクトリ（デフォルト: カレント）",
    ),
) -> None:
    """プロジェクト雛形（features ディレクトリと設定テンプレート）を生成する。"""
    try:
        (project_dir / "features").mkdir(parents=True, exist_ok=True)

        # 既存の設定ファイルは上書きしない
        config_path = project_dir / CONFIG_FILE_NAME
        if not config_path.exists():
            config_path.write_text(
                "# cdprec プロジェクト設定\n"
                "# 環境変数 CDPREC_* と CLI 引数で上書きできます\n"
                "output_dir: features\n"
                "headed: true\n"
                "channel: chromium\n"
                "viewport_width: 1280\n"
                "viewport_height: 720\n"
                "element_timeout_ms: 10000\n",
                encoding="utf-8",
            )

        typer.echo(f"プロジェクトを初期化しました: {project_dir.resolve()}")
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# record コマンド
# ---------------------------------------------------------------------------

@app.command()
def record(
    url: Optional[str] = typer.Argument(
        None, help="記録対象の URL（省略時は対話入力）",
    ),
    feature: Optional[str] = typer.Option(
        None, "--feature", "-f", help="フィーチャー名（省略時はタイムスタンプ名）",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="生成ファイルの出力先ディレクトリ",
    ),
    channel: Optional[str] = typer.Option(
        None, "--channel", "-c", help="ブラウザチャンネル (chromium / chrome / msedge)",
    ),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--headed", help="ブラウザ表示モード（デフォルト: 表示）",
    ),
    viewport: Optional[str] = typer.Option(
        None, "--viewport", help="ビューポートサイズ (幅x高さ)",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help=f"設定ファイル（デフォルト: {CONFIG_FILE_NAME}）",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="イベント単位の詳細ログを出力する",
    ),
) -> None:
    """ブラウザ操作を記録し、Gherkin シナリオとステップ定義を生成する。

    記録中はコンソールから次のコマンドを入力できます:
      stop                 記録を終了して生成
      new feature <name>   現在のフィーチャーを生成し、新しいフィーチャーに切り替え
      reset                現在のフィーチャーのアクションを破棄
      start                記録を再開
    ブラウザを閉じた場合も、その時点までの記録を生成して終了します。
    """
    _configure_logging(verbose)

    if url is None:
        url = typer.prompt("記録する URL を入力してください")

    from .browser import (
        CdpSession,
        RecordingBrowser,
        SessionError,
        load_instrumentation_script,
        negotiate_adapter,
    )
    from playwright.sync_api import Error as PlaywrightError

    from .codegen.naming import timestamped_feature_name
    from .recorder.engine import RecorderEngine

    try:
        config = load_config(config_file)
        apply_cli_overrides(
            config,
            output_dir=str(output) if output is not None else None,
            channel=channel,
            headed=None if headless is None else not headless,
            viewport=viewport,
        )
    except ValueError as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    engine = RecorderEngine(config, feature_name=feature or timestamped_feature_name())
    typer.echo(f"URL: {url}")
    typer.echo(f"フィーチャー: {engine.feature_name}")
    typer.echo("コマンド: stop / new feature <name> / reset / start\n")

    try:
        with RecordingBrowser(config) as browser:
            adapter = negotiate_adapter(
                CdpSession(browser.context, browser.page), config.protocol_versions,
            )
            adapter.attach(engine.normalizer, load_instrumentation_script(config.binding_name))
            try:
                # 最初の遷移も記録するため goto 前に開始する
                engine.start()
                browser.page.goto(url)
                finished = _run_console_loop(engine, browser)
            finally:
                adapter.detach()
    except (SessionError, PlaywrightError, OSError) as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        typer.echo("\n記録を中断しました。")
        finished = False

    if not finished:
        engine.stop()
        try:
            engine.generate_current_feature()
        except OSError as exc:
            typer.echo(f"エラー: {exc}", err=True)
            raise typer.Exit(code=1)
    typer.echo("記録を終了しました。")


def _start_console_reader() -> queue.Queue:
    """標準入力を読み取るスレッドを起動し、行を受け取るキューを返す。

    Playwright の sync API はメインスレッドからしか呼べないため、
    コマンドの処理はキュー経由でメインスレッドが行う。EOF で None を送る。
    """
    lines: queue.Queue = queue.Queue()
    stream = sys.stdin

    def _reader() -> None:
        for line in stream:
            lines.put(line)
        lines.put(None)

    threading.Thread(target=_reader, name="cdprec-console", daemon=True).start()
    return lines


def _run_console_loop(engine: RecorderEngine, browser: RecordingBrowser) -> bool:
    """ブラウザのイベントを処理しながらコンソールコマンドを待つ。

    Returns:
        stop コマンドで終了した場合は True、ブラウザが閉じられた場合は False
    """
    lines = _start_console_reader()
    stdin_open = True
    while browser.pump(_PUMP_INTERVAL_MS):
        while stdin_open:
            try:
                line = lines.get_nowait()
            except queue.Empty:
                break
            if line is None:
                stdin_open = False
                logger.info("標準入力が閉じられました。ブラウザを閉じると記録が終了します。")
                break
            if not engine.process_command(line):
                return True
    logger.info("ブラウザが閉じられました")
    return False


# ---------------------------------------------------------------------------
# compile コマンド
# ---------------------------------------------------------------------------

@app.command("compile")
def compile_trace(
    trace_file: Path = typer.Argument(..., help=f"アクショントレース（*{_TRACE_SUFFIX}）"),
    feature: Optional[str] = typer.Option(
        None, "--feature", "-f", help="フィーチャー名（省略時はファイル名から決定）",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="生成ファイルの出力先ディレクトリ",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help=f"設定ファイル（デフォルト: {CONFIG_FILE_NAME}）",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="詳細ログを出力する"),
) -> None:
    """保存済みのアクショントレースからシナリオとステップ定義を再生成する。"""
    _configure_logging(verbose)

    from .codegen import ScriptCompiler, ScriptWriter, load_trace

    try:
        config = load_config(config_file)
        apply_cli_overrides(config, output_dir=str(output) if output is not None else None)

        actions = load_trace(trace_file)
        name = feature or _feature_name_from_trace(trace_file)

        compiled = ScriptCompiler(element_timeout_ms=config.element_timeout_ms).compile(actions, name)
        if compiled is None:
            typer.echo(f"エラー: アクションが記録されていません: {trace_file}", err=True)
            raise typer.Exit(code=1)

        files = ScriptWriter(Path(config.output_dir)).write(compiled)
        typer.echo(f"シナリオ: {files.feature_path}")
        typer.echo(f"ステップ定義: {files.steps_path}")
    except typer.Exit:
        raise
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


def _feature_name_from_trace(path: Path) -> str:
    """`Login.actions.json` → `Login`"""
    name = path.name
    if name.endswith(_TRACE_SUFFIX):
        return name[: -len(_TRACE_SUFFIX)]
    return path.stem


def main() -> None:
    """`cdprec` コンソールスクリプトのエントリポイント。"""
    app(prog_name="cdprec")


if __name__ == "__main__":
    main()
