"""
RecorderEngine — 記録セッションの制御とフィーチャー単位のスクリプト生成

ActionLog と EventNormalizer を所有し、コンソールコマンド
（stop / new feature <name> / reset / start）に応じて記録状態の切り替えと
ScriptCompiler によるファイル生成を行う。DevTools セッションには依存しない。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..codegen.compiler import ScriptCompiler
from ..codegen.naming import (
    clean_feature_name,
    sanitize_feature_name,
    timestamped_feature_name,
)
from ..codegen.writer import ScriptWriter
from .action_log import DEFAULT_FEATURE_NAME, ActionLog
from .normalizer import EventNormalizer

if TYPE_CHECKING:
    from ..codegen.writer import GeneratedFiles
    from ..config import RecorderConfig

logger = logging.getLogger(__name__)

_NEW_FEATURE_PREFIX = "new feature"


class RecorderEngine:
    """記録セッションのコントローラ。

    使用例::

        engine = RecorderEngine(config, feature_name="Login")
        engine.start()
        ...  # DevTools セッションが engine.normalizer にイベントを中継
        while engine.process_command(input()):
            pass
    """

    def __init__(
        self,
        config: RecorderConfig,
        feature_name: str = DEFAULT_FEATURE_NAME,
        compiler: Optional[ScriptCompiler] = None,
        writer: Optional[ScriptWriter] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._logger = log or logger
        self._action_log = ActionLog(sanitize_feature_name(feature_name))
        self._normalizer = EventNormalizer(
            self._action_log, binding_name=config.binding_name, log=self._logger,
        )
        self._compiler = compiler or ScriptCompiler(element_timeout_ms=config.element_timeout_ms)
        self._writer = writer or ScriptWriter(Path(config.output_dir))

    @property
    def action_log(self) -> ActionLog:
        return self._action_log

    @property
    def normalizer(self) -> EventNormalizer:
        return self._normalizer

    @property
    def feature_name(self) -> str:
        return self._action_log.feature_name

    @property
    def is_recording(self) -> bool:
        return self._normalizer.is_recording

    # ----- 記録状態 -----

    def start(self) -> None:
        """記録を開始する。"""
        self._normalizer.start()
        self._logger.info("記録を開始しました: %s", self.feature_name)

    def stop(self) -> None:
        """記録を停止する。"""
        self._normalizer.stop()
        self._logger.info("記録を停止しました: %s", self.feature_name)

    def reset(self) -> None:
        """現在のフィーチャーのアクションを破棄する。記録状態は変えない。"""
        self._action_log.reset()
        self._logger.info("アクションをリセットしました: %s", self.feature_name)

    def switch_feature(self, name: Optional[str]) -> Optional[GeneratedFiles]:
        """現在のフィーチャーを生成して閉じ、新しいフィーチャーに切り替える。

        名前が空、またはサニタイズ後に使えない場合はタイムスタンプ名を使う。
        ファイル出力に失敗した場合は切り替えず、現在のフィーチャーの
        アクションを保持する。いずれの場合も切り替え前の記録状態に戻す。

        Returns:
            閉じたフィーチャーの生成ファイル（アクションが無い場合、
            または出力に失敗した場合は None）
        """
        was_recording = self.is_recording
        self._normalizer.stop()

        try:
            try:
                generated = self.generate_current_feature()
            except OSError as exc:
                self._logger.error(
                    "ファイル出力に失敗したため、フィーチャー %s を継続します: %s",
                    self.feature_name, exc,
                )
                return None

            new_name = clean_feature_name(name)
            if new_name is None:
                new_name = timestamped_feature_name()
                self._logger.warning("フィーチャー名が不正なためタイムスタンプ名を使用します: %r", name)

            self._action_log.reset(new_name)
            self._logger.info("フィーチャーを切り替えました: %s", new_name)
            return generated
        finally:
            if was_recording:
                self._normalizer.start()

    # ----- 生成 -----

    def generate_current_feature(self) -> Optional[GeneratedFiles]:
        """現在のフィーチャーのシナリオ・ステップ定義・トレースを出力する。

        Returns:
            出力したファイル。アクションが無い場合は None
        """
        actions = self._action_log.snapshot()
        if not actions:
            self._logger.info("記録されたアクションがありません: %s", self.feature_name)
            return None

        compiled = self._compiler.compile(actions, self.feature_name)
        if compiled is None:
            return None
        return self._writer.write(compiled, actions)

    # ----- コンソールコマンド -----

    def process_command(self, line: str) -> bool:
        """コンソールコマンドを 1 行処理する。

        Args:
            line: 入力行（大文字小文字は区別しない）

        Returns:
            記録を継続する場合は True、終了する場合は False
        """
        command = line.strip()
        lowered = command.lower()

        if not lowered:
            return True

        if lowered in ("stop", "quit", "exit"):
            self.stop()
            self.generate_current_feature()
            return False

        if lowered == _NEW_FEATURE_PREFIX or lowered.startswith(_NEW_FEATURE_PREFIX + " "):
            self.switch_feature(command[len(_NEW_FEATURE_PREFIX):].strip())
            return True

        if lowered == "reset":
            self.reset()
            return True

        if lowered == "start":
            self.start()
            return True

        self._logger.warning(
            "不明なコマンドです: %s (stop / new feature <name> / reset / start)", command,
        )
        return True
