"""
FeatureBuilder — 記録アクションから Gherkin シナリオを組み立てる

Action 列を 1 スロットの先読みバッファで走査し、連続する入力と Enter を
1 ステップにまとめた Gherkin テキストを生成する。

結合ルール:
  - TypeText は即座に出力せずバッファに保持する
  - 同じ要素への TypeTextAndSubmit が続いた場合、バッファの値を優先して
    「type ... and press Enter」の 1 ステップにまとめる
  - それ以外のアクションが続いた場合は、バッファを単独の type ステップとして
    先に出力する
  - 直前が Click / TypeTextAndSubmit の Submit は同じ操作の副作用として出力しない
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..recorder.models import Action, ActionKind

logger = logging.getLogger(__name__)

CLOSING_STEP = "the page should be in the expected state"

# Submit を出力しない直前アクション（送信は既にその操作で再現される）
_SUBMIT_TRIGGER_KINDS = frozenset({ActionKind.CLICK, ActionKind.TYPE_TEXT_AND_SUBMIT})


def escape_step_text(text: str) -> str:
    """ステップ引数の値を 1 行の Gherkin テキスト用にエスケープする。"""
    return (
        text.replace("\\", "\\\\")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )


# ---------------------------------------------------------------------------
# ステップ文言
# ---------------------------------------------------------------------------

def _element(selector_type: Optional[str], selector_value: Optional[str]) -> str:
    return f'element with {selector_type or ""} "{escape_step_text(selector_value or "")}"'


def navigate_phrase(url: str) -> str:
    return f'I navigate to "{escape_step_text(url)}"'


def click_phrase(selector_type: Optional[str], selector_value: Optional[str]) -> str:
    return f"I click the {_element(selector_type, selector_value)}"


def type_phrase(text: str, selector_type: Optional[str], selector_value: Optional[str]) -> str:
    return f'I type "{escape_step_text(text)}" into {_element(selector_type, selector_value)}'


def type_and_enter_phrase(
    text: str,
    selector_type: Optional[str],
    selector_value: Optional[str],
) -> str:
    return (
        f'I type "{escape_step_text(text)}" and press Enter in '
        f"{_element(selector_type, selector_value)}"
    )


def press_enter_phrase(selector_type: Optional[str], selector_value: Optional[str]) -> str:
    return f"I press Enter in {_element(selector_type, selector_value)}"


def select_phrase(
    option_value: str,
    selector_type: Optional[str],
    selector_value: Optional[str],
) -> str:
    return (
        f'I select option with value "{escape_step_text(option_value)}" from '
        f"{_element(selector_type, selector_value)}"
    )


def submit_phrase(selector_type: Optional[str], selector_value: Optional[str]) -> str:
    return f'I submit the form with {selector_type or ""} "{escape_step_text(selector_value or "")}"'


# ---------------------------------------------------------------------------
# FeatureBuilder 本体
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _PendingText:
    """出力を保留している入力値。"""

    value: str
    selector_type: Optional[str]
    selector_value: Optional[str]

    def same_target(self, action: Action) -> bool:
        return (
            self.selector_type == action.selector_type
            and self.selector_value == action.selector_value
        )


class _StepLines:
    """キーワード（Given / When / And）を付けてステップ行を蓄積する。"""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._last_keyword: Optional[str] = None

    def add(self, keyword: str, text: str) -> None:
        shown = "And" if keyword == self._last_keyword else keyword
        self._last_keyword = keyword
        self.lines.append(f"\t{shown} {text}")

    def add_navigation(self, text: str) -> None:
        # シナリオ冒頭の遷移のみ前提条件（Given）として扱う
        self.add("Given" if not self.lines else "When", text)

    def add_action(self, text: str) -> None:
        self.add("When", text)

    def add_closing(self, text: str) -> None:
        self.add("Then", text)


class FeatureBuilder:
    """Action 列から Gherkin フィーチャーファイルの内容を生成する。"""

    def build(self, actions: Sequence[Action], feature_name: str) -> str:
        """フィーチャーファイルの内容を生成する。

        Args:
            actions: 記録順のアクション列
            feature_name: フィーチャー名（サニタイズ済み）

        Returns:
            Gherkin テキスト（末尾改行付き）
        """
        steps = _StepLines()
        pending: Optional[_PendingText] = None
        previous: Optional[Action] = None

        def flush() -> None:
            nonlocal pending
            if pending is not None:
                steps.add_action(
                    type_phrase(pending.value, pending.selector_type, pending.selector_value)
                )
                pending = None

        for action in actions:
            kind = action.kind

            if kind is ActionKind.TYPE_TEXT:
                # 同じ要素への連続した入力は最後の値を採用する
                if pending is not None and not pending.same_target(action):
                    flush()
                pending = _PendingText(
                    action.value or "", action.selector_type, action.selector_value,
                )

            elif kind is ActionKind.TYPE_TEXT_AND_SUBMIT:
                if pending is not None and not pending.same_target(action):
                    flush()
                # 文字単位で入力された最終値を優先する
                text = (pending.value if pending is not None else "") or (action.value or "")
                pending = None
                if text:
                    steps.add_action(
                        type_and_enter_phrase(text, action.selector_type, action.selector_value)
                    )
                else:
                    steps.add_action(
                        press_enter_phrase(action.selector_type, action.selector_value)
                    )

            elif kind is ActionKind.NAVIGATE:
                flush()
                steps.add_navigation(navigate_phrase(action.value or ""))

            elif kind is ActionKind.CLICK:
                flush()
                steps.add_action(click_phrase(action.selector_type, action.selector_value))

            elif kind is ActionKind.SELECT_OPTION:
                flush()
                steps.add_action(
                    select_phrase(action.value or "", action.selector_type, action.selector_value)
                )

            elif kind is ActionKind.SUBMIT:
                flush()
                if previous is not None and previous.kind in _SUBMIT_TRIGGER_KINDS:
                    logger.debug("直前の操作による送信のため Submit を省略: %s", action.describe())
                else:
                    steps.add_action(submit_phrase(action.selector_type, action.selector_value))

            previous = action

        flush()
        steps.add_closing(CLOSING_STEP)

        lines = [
            f"Feature: {feature_name}",
            "",
            f"Scenario: Perform recorded actions on {feature_name}",
            *steps.lines,
        ]
        return "\n".join(lines) + "\n"
