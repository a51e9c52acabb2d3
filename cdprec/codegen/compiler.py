"""
ScriptCompiler — 記録アクション列から 2 種類の成果物を生成する

FeatureBuilder（Gherkin シナリオ）と StepsBuilder（pytest-bdd ステップ定義）を
まとめる純粋関数的なファサード。I/O は行わず、入力も変更しない。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..recorder.models import Action
from .feature_builder import FeatureBuilder
from .naming import sanitize_feature_name
from .steps_builder import (
    DEFAULT_ELEMENT_TIMEOUT_MS,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    StepsBuilder,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledScript:
    """コンパイル結果。

    Attributes:
        feature_name: サニタイズ済みのフィーチャー名
        scenario_text: Gherkin シナリオ（.feature の内容）
        steps_text: ステップ定義モジュール（.py の内容）
    """

    feature_name: str
    scenario_text: str
    steps_text: str


class ScriptCompiler:
    """Action 列をシナリオとステップ定義にコンパイルする。

    使用例::

        compiler = ScriptCompiler()
        compiled = compiler.compile(action_log.snapshot(), "Login")
        if compiled is None:
            ...  # 記録なし
    """

    def __init__(
        self,
        element_timeout_ms: int = DEFAULT_ELEMENT_TIMEOUT_MS,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    ) -> None:
        self._feature_builder = FeatureBuilder()
        self._steps_builder = StepsBuilder(
            element_timeout_ms=element_timeout_ms,
            navigation_timeout_ms=navigation_timeout_ms,
        )

    def compile(
        self,
        actions: Sequence[Action],
        scenario_name: str,
    ) -> Optional[CompiledScript]:
        """アクション列をコンパイルする。

        呼び出し側は空のログをコンパイルしないこと。空の場合は
        締めくくりの 1 行だけのシナリオを作らず、None を返す。

        Args:
            actions: 記録順のアクション列
            scenario_name: シナリオ（フィーチャー）名

        Returns:
            コンパイル結果。アクションが空の場合は None
        """
        if not actions:
            logger.info("コンパイル対象のアクションがありません: %s", scenario_name)
            return None

        feature_name = sanitize_feature_name(scenario_name)
        scenario_text = self._feature_builder.build(actions, feature_name)
        steps_text = self._steps_builder.build(actions, feature_name)

        logger.info(
            "コンパイルしました: %s (%d アクション)", feature_name, len(actions),
        )
        return CompiledScript(
            feature_name=feature_name,
            scenario_text=scenario_text,
            steps_text=steps_text,
        )
