"""
StepsBuilder — pytest-bdd ステップ定義モジュールの生成

記録アクション列に含まれるアクション種別ごとに 1 つずつステップ定義ブロックを
生成し、Jinja2 テンプレートで pytest-bdd + Playwright のモジュールに組み立てる。

主な機能:
  - アクション種別 → ステップ定義ブロックの対応表（シグネチャで重複排除）
  - FeatureBuilder の文言と一致する正規表現パターン
  - セレクタ解決・待機・フォールバックのヘルパーを含むモジュール本体
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..recorder.models import Action, ActionKind
from .feature_builder import CLOSING_STEP
from .naming import feature_file_name
from .selectors import SELECTOR_FORMATS, NON_ATTRIBUTE_CHARS

logger = logging.getLogger(__name__)

# テンプレートディレクトリのパス
_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

DEFAULT_ELEMENT_TIMEOUT_MS = 10_000
DEFAULT_NAVIGATION_TIMEOUT_MS = 20_000

# ステップ引数のパターン部品
_ELEMENT = r'element with (?P<selector_type>\S*) "(?P<selector_value>.*)"'


# ---------------------------------------------------------------------------
# ステップ定義ブロック
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepBlock:
    """生成するステップ定義 1 ブロック。

    Attributes:
        signature: ステップ関数名（重複排除のキー）
        pattern: pytest-bdd の parsers.re に渡す正規表現
        template: ブロックのテンプレート名
    """

    signature: str
    pattern: str
    template: str


STEP_BLOCKS: dict[ActionKind, StepBlock] = {
    ActionKind.NAVIGATE: StepBlock(
        "navigate_to_url",
        r'I navigate to "(?P<url>.*)"',
        "steps/navigate.py.j2",
    ),
    ActionKind.CLICK: StepBlock(
        "click_element",
        rf"I click the {_ELEMENT}",
        "steps/click.py.j2",
    ),
    ActionKind.TYPE_TEXT: StepBlock(
        "type_into_element",
        rf'I type "(?P<text>.*)" into {_ELEMENT}',
        "steps/type_text.py.j2",
    ),
    ActionKind.TYPE_TEXT_AND_SUBMIT: StepBlock(
        "press_enter_in_element",
        rf'I (?:type "(?P<text>.*)" and )?press Enter in {_ELEMENT}',
        "steps/press_enter.py.j2",
    ),
    ActionKind.SELECT_OPTION: StepBlock(
        "select_option_by_value",
        rf'I select option with value "(?P<option_value>.*)" from {_ELEMENT}',
        "steps/select_option.py.j2",
    ),
    ActionKind.SUBMIT: StepBlock(
        "submit_form",
        r'I submit the form with (?P<selector_type>\S*) "(?P<selector_value>.*)"',
        "steps/submit.py.j2",
    ),
}

CLOSING_BLOCK = StepBlock(
    "page_in_expected_state",
    CLOSING_STEP,
    "steps/expected_state.py.j2",
)


def _create_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    env.filters["pyrepr"] = repr
    return env


# ---------------------------------------------------------------------------
# StepsBuilder 本体
# ---------------------------------------------------------------------------

class StepsBuilder:
    """Action 列から pytest-bdd ステップ定義モジュールを生成する。"""

    def __init__(
        self,
        element_timeout_ms: int = DEFAULT_ELEMENT_TIMEOUT_MS,
        navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    ) -> None:
        """StepsBuilder を初期化する。

        Args:
            element_timeout_ms: 生成コードで要素を待つ最大時間
            navigation_timeout_ms: 生成コードでページ読み込みを待つ最大時間
        """
        self._element_timeout_ms = element_timeout_ms
        self._navigation_timeout_ms = navigation_timeout_ms
        self._env = _create_environment()

    def select_blocks(self, actions: Sequence[Action]) -> list[StepBlock]:
        """出力するステップ定義ブロックを選ぶ。

        アクション列に現れた種別ごとに 1 ブロック（定義順）、
        最後に締めくくりのブロックを必ず追加する。

        Args:
            actions: 記録順のアクション列

        Returns:
            出力順のブロック一覧
        """
        present = {action.kind for action in actions}
        emitted: set[str] = set()
        blocks: list[StepBlock] = []

        for kind in ActionKind:
            if kind not in present:
                continue
            block = STEP_BLOCKS[kind]
            if block.signature in emitted:
                continue
            emitted.add(block.signature)
            blocks.append(block)

        if CLOSING_BLOCK.signature not in emitted:
            blocks.append(CLOSING_BLOCK)

        return blocks

    def build(self, actions: Sequence[Action], feature_name: str) -> str:
        """ステップ定義モジュールのソースコードを生成する。

        Args:
            actions: 記録順のアクション列
            feature_name: フィーチャー名（サニタイズ済み）

        Returns:
            Python ソースコード
        """
        blocks = self.select_blocks(actions)
        rendered = [
            self._env.get_template(block.template).render(
                signature=block.signature,
                pattern=block.pattern,
            ).rstrip("\n") + "\n"
            for block in blocks
        ]
        logger.debug(
            "ステップ定義を生成: %s", ", ".join(block.signature for block in blocks),
        )

        module = self._env.get_template("steps_module.py.j2")
        return module.render(
            feature_name=feature_name,
            feature_file=feature_file_name(feature_name),
            element_timeout_ms=self._element_timeout_ms,
            navigation_timeout_ms=self._navigation_timeout_ms,
            selector_formats=SELECTOR_FORMATS,
            non_attribute_chars=NON_ATTRIBUTE_CHARS,
            blocks="\n\n".join(rendered),
        )
