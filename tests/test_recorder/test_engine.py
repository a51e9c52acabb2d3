"""
RecorderEngine テスト — コンソールコマンドとフィーチャー切り替えの検証

DevTools セッションは使わず、engine.normalizer にイベントを直接渡す。
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest

from cdprec.config import RecorderConfig
from cdprec.recorder.engine import RecorderEngine
from cdprec.recorder.models import ActionKind
from cdprec.recorder.normalizer import DEFAULT_BINDING_NAME


@pytest.fixture
def engine(recorder_config: RecorderConfig) -> RecorderEngine:
    return RecorderEngine(recorder_config, feature_name="Login")


def _output_dir(config: RecorderConfig) -> Path:
    return Path(config.output_dir)


class TestRecorderEngineState:
    """記録状態の切り替えのテスト。"""

    def test_initial_state(self, engine: RecorderEngine) -> None:
        assert engine.feature_name == "Login"
        assert not engine.is_recording
        assert engine.action_log.is_empty()

    def test_feature_name_is_sanitized(self, recorder_config: RecorderConfig) -> None:
        engine = RecorderEngine(recorder_config, feature_name="Log/in")
        assert engine.feature_name == "Log_in"

    def test_binding_name_from_config(self, recorder_config: RecorderConfig) -> None:
        recorder_config.binding_name = "__rec"
        engine = RecorderEngine(recorder_config)
        assert engine.normalizer.binding_name == "__rec"

    def test_start_and_stop(self, engine: RecorderEngine) -> None:
        engine.start()
        assert engine.is_recording
        engine.stop()
        assert not engine.is_recording

    def test_reset_keeps_recording_state(self, engine: RecorderEngine) -> None:
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")
        engine.reset()
        assert engine.action_log.is_empty()
        assert engine.is_recording


class TestGenerateCurrentFeature:
    """generate_current_feature() のテスト。"""

    def test_empty_log_generates_nothing(
        self, engine: RecorderEngine, recorder_config: RecorderConfig,
    ) -> None:
        assert engine.generate_current_feature() is None
        assert not _output_dir(recorder_config).exists()

    def test_writes_feature_steps_and_trace(
        self, engine: RecorderEngine, make_payload: Callable[..., str],
    ) -> None:
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://example.com/login")
        engine.normalizer.on_binding_called(DEFAULT_BINDING_NAME, make_payload("click", "Id", "go"))

        files = engine.generate_current_feature()

        assert files is not None
        assert files.feature_path.name == "Login.feature"
        assert files.steps_path.name == "test_login_steps.py"
        assert files.trace_path is not None and files.trace_path.name == "Login.actions.json"
        text = files.feature_path.read_text(encoding="utf-8")
        assert 'Given I navigate to "https://example.com/login"' in text
        assert 'When I click the element with Id "go"' in text

    def test_uses_injected_compiler_and_writer(self, recorder_config: RecorderConfig) -> None:
        compiler = MagicMock()
        writer = MagicMock()
        engine = RecorderEngine(recorder_config, "Login", compiler=compiler, writer=writer)
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")

        engine.generate_current_feature()

        compiler.compile.assert_called_once()
        actions, name = compiler.compile.call_args.args
        assert name == "Login"
        assert [a.kind for a in actions] == [ActionKind.NAVIGATE]
        writer.write.assert_called_once_with(compiler.compile.return_value, actions)


class TestSwitchFeature:
    """switch_feature() のテスト。"""

    def test_switch_isolates_features(
        self, engine: RecorderEngine, recorder_config: RecorderConfig,
        make_payload: Callable[..., str],
    ) -> None:
        """切り替え前のアクションが新しいフィーチャーに混ざらないこと。"""
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")
        engine.normalizer.on_binding_called(DEFAULT_BINDING_NAME, make_payload("click", "Id", "a"))

        closed = engine.switch_feature("Checkout")

        assert closed is not None and closed.feature_path.name == "Login.feature"
        assert engine.feature_name == "Checkout"
        assert engine.action_log.is_empty()
        assert engine.is_recording

        engine.normalizer.on_frame_navigated("F1", None, "https://b/")
        files = engine.generate_current_feature()
        text = files.feature_path.read_text(encoding="utf-8")
        assert "https://b/" in text
        assert "https://a/" not in text
        assert 'element with Id "a"' not in text

    def test_switch_while_stopped_stays_stopped(self, engine: RecorderEngine) -> None:
        engine.switch_feature("Other")
        assert not engine.is_recording
        assert engine.feature_name == "Other"

    def test_switch_with_empty_log_generates_nothing(self, engine: RecorderEngine) -> None:
        assert engine.switch_feature("Other") is None

    @pytest.mark.parametrize("name", ["", "   ", "???", None])
    def test_unusable_name_falls_back_to_timestamp(
        self, engine: RecorderEngine, name: str,
    ) -> None:
        engine.switch_feature(name)
        assert re.fullmatch(r"Feature_\d{14}", engine.feature_name)

    def test_name_is_sanitized(self, engine: RecorderEngine) -> None:
        engine.switch_feature("1st: order")
        assert engine.feature_name == "_1st_ order"

    @pytest.mark.parametrize("name", ["InvalidFeatureName", "SanitizedFeatureName"])
    def test_default_names_are_usable(self, engine: RecorderEngine, name: str) -> None:
        """既定名と同じ文字列もそのままフィーチャー名として使えること。"""
        engine.switch_feature(name)
        assert engine.feature_name == name

    def test_write_failure_keeps_feature_and_recording(
        self, tmp_path: Path, make_payload: Callable[..., str],
    ) -> None:
        """出力先に書けない場合、切り替えずに記録を継続すること。"""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        engine = RecorderEngine(RecorderConfig(output_dir=str(blocker / "out")), feature_name="First")
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")

        assert engine.switch_feature("Second") is None

        assert engine.feature_name == "First"
        assert engine.is_recording
        engine.normalizer.on_frame_navigated("F1", None, "https://b/")
        assert [a.value for a in engine.action_log.snapshot()] == ["https://a/", "https://b/"]

    def test_write_failure_while_stopped_stays_stopped(self, recorder_config: RecorderConfig) -> None:
        writer = MagicMock()
        writer.write.side_effect = PermissionError("read-only")
        engine = RecorderEngine(recorder_config, feature_name="First", writer=writer)
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")
        engine.stop()

        engine.switch_feature("Second")

        assert engine.feature_name == "First"
        assert not engine.is_recording


class TestProcessCommand:
    """コンソールコマンドのテスト。"""

    def test_stop_generates_and_ends(
        self, engine: RecorderEngine, recorder_config: RecorderConfig,
    ) -> None:
        engine.start()
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")

        assert engine.process_command("stop\n") is False

        assert not engine.is_recording
        assert (_output_dir(recorder_config) / "Login.feature").exists()

    @pytest.mark.parametrize("command", ["quit", "EXIT", "  Stop  "])
    def test_exit_aliases(self, engine: RecorderEngine, command: str) -> None:
        assert engine.process_command(command) is False

    def test_new_feature(self, engine: RecorderEngine) -> None:
        assert engine.process_command("new feature Search Flow") is True
        assert engine.feature_name == "Search Flow"

    def test_new_feature_keeps_name_case(self, engine: RecorderEngine) -> None:
        engine.process_command("NEW FEATURE MyFeature")
        assert engine.feature_name == "MyFeature"

    def test_new_feature_without_name(self, engine: RecorderEngine) -> None:
        engine.process_command("new feature")
        assert engine.feature_name.startswith("Feature_")

    def test_reset_and_start(self, engine: RecorderEngine) -> None:
        assert engine.process_command("start") is True
        assert engine.is_recording
        engine.normalizer.on_frame_navigated("F1", None, "https://a/")
        assert engine.process_command("reset") is True
        assert engine.action_log.is_empty()

    @pytest.mark.parametrize("command", ["", "  ", "pause", "new featureX"])
    def test_unknown_or_blank_command_continues(
        self, engine: RecorderEngine, command: str,
    ) -> None:
        name = engine.feature_name
        assert engine.process_command(command) is True
        assert engine.feature_name == name
