"""
ScriptWriter — コンパイル結果とアクショントレースのファイル出力
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from ..recorder.models import Action
from .compiler import CompiledScript
from .naming import feature_file_name, steps_module_name, trace_file_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedFiles:
    """出力したファイルのパス。"""

    feature_path: Path
    steps_path: Path
    trace_path: Optional[Path] = None


class ScriptWriter:
    """コンパイル結果をフィーチャー名に基づくファイルへ書き出す。

    使用例::

        writer = ScriptWriter(Path("features"))
        files = writer.write(compiled, actions)
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def write(
        self,
        compiled: CompiledScript,
        actions: Optional[Sequence[Action]] = None,
    ) -> GeneratedFiles:
        """シナリオ・ステップ定義（・トレース）を書き出す。

        Args:
            compiled: コンパイル結果
            actions: 指定時はアクショントレース JSON も出力する

        Returns:
            出力したファイルのパス
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        name = compiled.feature_name

        feature_path = self.output_dir / feature_file_name(name)
        steps_path = self.output_dir / steps_module_name(name)
        feature_path.write_text(compiled.scenario_text, encoding="utf-8")
        steps_path.write_text(compiled.steps_text, encoding="utf-8")
        logger.info("Generated: %s", feature_path)
        logger.info("Generated: %s", steps_path)

        trace_path = None
        if actions is not None:
            trace_path = self.write_trace(actions, name)

        return GeneratedFiles(feature_path, steps_path, trace_path)

    def write_trace(self, actions: Sequence[Action], feature_name: str) -> Path:
        """アクション列を JSON として保存する。"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / trace_file_name(feature_name)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(
                [action.to_dict() for action in actions], f, ensure_ascii=False, indent=2,
            )
        logger.info("Generated: %s", path)
        return path


def load_trace(path: Path) -> list[Action]:
    """write_trace() で保存したアクション列を読み込む。

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: JSON が不正、または形式が一致しない場合
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"トレースファイルが見つかりません: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"トレースファイルの JSON が不正です: {path}: {exc}") from exc

    if not isinstance(data, list):
        raise ValueError(f"トレースファイルはアクションのリストである必要があります: {path}")

    try:
        return [Action.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"トレースファイルの形式が不正です: {path}: {exc}") from exc
