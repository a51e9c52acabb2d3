"""
FeatureBuilder テスト — Gherkin シナリオ生成の検証

入力と Enter の結合、保留中の入力の出力順、Submit の省略、
キーワード（Given / When / And / Then）の付与を確認する。
"""

from __future__ import annotations

from typing import Optional

import pytest

from cdprec.codegen.feature_builder import (
    CLOSING_STEP,
    FeatureBuilder,
    escape_step_text,
    submit_phrase,
)
from cdprec.recorder.models import Action, ActionKind


# ---------------------------------------------------------------------------
# ヘルパー
# ---------------------------------------------------------------------------

def navigate(url: str) -> Action:
    return Action(ActionKind.NAVIGATE, value=url)


def click(selector_type: str, selector_value: str) -> Action:
    return Action(ActionKind.CLICK, selector_type, selector_value)


def type_text(value: str, selector_type: str = "Name", selector_value: str = "q") -> Action:
    return Action(ActionKind.TYPE_TEXT, selector_type, selector_value, value)


def enter(value: Optional[str], selector_type: str = "Name", selector_value: str = "q") -> Action:
    return Action(ActionKind.TYPE_TEXT_AND_SUBMIT, selector_type, selector_value, value)


def select(value: str, selector_type: str = "Id", selector_value: str = "country") -> Action:
    return Action(ActionKind.SELECT_OPTION, selector_type, selector_value, value)


def submit(selector_type: str = "Id", selector_value: str = "search-form") -> Action:
    return Action(ActionKind.SUBMIT, selector_type, selector_value)


def build_steps(*actions: Action) -> list[str]:
    """シナリオのステップ行（タブ除去済み）だけを返す。"""
    text = FeatureBuilder().build(list(actions), "Search")
    return [line[1:] for line in text.splitlines() if line.startswith("\t")]


# ---------------------------------------------------------------------------
# 全体構造
# ---------------------------------------------------------------------------

class TestFeatureLayout:
    """フィーチャーファイル全体の形式のテスト。"""

    def test_full_text(self) -> None:
        text = FeatureBuilder().build(
            [
                navigate("https://example.com/"),
                type_text("c"),
                type_text("cd"),
                type_text("cdp"),
                enter(None),
            ],
            "Search",
        )
        assert text == (
            "Feature: Search\n"
            "\n"
            "Scenario: Perform recorded actions on Search\n"
            '\tGiven I navigate to "https://example.com/"\n'
            '\tWhen I type "cdp" and press Enter in element with Name "q"\n'
            f"\tThen {CLOSING_STEP}\n"
        )

    def test_closing_step_is_always_last(self) -> None:
        steps = build_steps(click("Id", "a"), type_text("x"))
        assert steps[-1] == f"Then {CLOSING_STEP}"

    def test_first_step_without_navigation_uses_when(self) -> None:
        steps = build_steps(click("Id", "a"))
        assert steps[0] == 'When I click the element with Id "a"'

    def test_repeated_keyword_becomes_and(self) -> None:
        steps = build_steps(
            navigate("https://a/"), click("Id", "a"), click("Id", "b"), navigate("https://b/"),
        )
        assert steps == [
            'Given I navigate to "https://a/"',
            'When I click the element with Id "a"',
            'And I click the element with Id "b"',
            'And I navigate to "https://b/"',
            f"Then {CLOSING_STEP}",
        ]


# ---------------------------------------------------------------------------
# 入力の結合
# ---------------------------------------------------------------------------

class TestTypeTextCoalescing:
    """TypeText と TypeTextAndSubmit の結合のテスト。"""

    def test_last_typed_value_wins(self) -> None:
        """同じ要素への連続した入力は最後の値だけを出力すること。"""
        steps = build_steps(type_text("a"), type_text("ab"), type_text("abc"), click("Id", "go"))
        assert steps[:2] == [
            'When I type "abc" into element with Name "q"',
            'And I click the element with Id "go"',
        ]

    def test_typed_value_precedes_click(self) -> None:
        """保留中の入力はクリックより前に出力されること。"""
        steps = build_steps(type_text("x"), click("Id", "submit"))
        assert steps[0].endswith('I type "x" into element with Name "q"')
        assert steps[1].endswith('I click the element with Id "submit"')

    def test_enter_uses_pending_value(self) -> None:
        steps = build_steps(type_text("cdp"), enter("cd"))
        assert steps[0] == 'When I type "cdp" and press Enter in element with Name "q"'
        assert len(steps) == 2

    def test_enter_uses_own_value_without_pending(self) -> None:
        steps = build_steps(enter("cdp"))
        assert steps[0] == 'When I type "cdp" and press Enter in element with Name "q"'

    def test_enter_without_any_value(self) -> None:
        steps = build_steps(enter(None))
        assert steps[0] == 'When I press Enter in element with Name "q"'

    def test_enter_with_empty_pending_value_falls_back(self) -> None:
        steps = build_steps(type_text(""), enter("typed"))
        assert steps[0] == 'When I type "typed" and press Enter in element with Name "q"'

    def test_enter_on_other_element_flushes_pending(self) -> None:
        """別要素で Enter が押された場合、保留中の入力は単独で出力されること。"""
        steps = build_steps(type_text("user", "Id", "name"), enter(None, "Id", "password"))
        assert steps[:2] == [
            'When I type "user" into element with Id "name"',
            'And I press Enter in element with Id "password"',
        ]

    def test_typing_into_other_element_flushes_pending(self) -> None:
        steps = build_steps(type_text("u", "Id", "name"), type_text("p", "Id", "pass"))
        assert steps[:2] == [
            'When I type "u" into element with Id "name"',
            'And I type "p" into element with Id "pass"',
        ]

    def test_pending_value_is_flushed_at_end(self) -> None:
        steps = build_steps(navigate("https://a/"), type_text("tail"))
        assert steps[1] == 'When I type "tail" into element with Name "q"'

    def test_pending_value_precedes_navigation(self) -> None:
        steps = build_steps(type_text("x"), navigate("https://b/"))
        assert steps[:2] == [
            'When I type "x" into element with Name "q"',
            'And I navigate to "https://b/"',
        ]


# ---------------------------------------------------------------------------
# 選択・送信
# ---------------------------------------------------------------------------

class TestSelectAndSubmit:
    """SelectOption と Submit のテスト。"""

    def test_select_option(self) -> None:
        steps = build_steps(select("jp"))
        assert steps[0] == 'When I select option with value "jp" from element with Id "country"'

    def test_submit_after_click_is_omitted(self) -> None:
        """クリックによる送信の直後の Submit は出力しないこと。"""
        steps = build_steps(click("Id", "go"), submit())
        assert steps == ['When I click the element with Id "go"', f"Then {CLOSING_STEP}"]

    def test_submit_after_enter_is_omitted(self) -> None:
        steps = build_steps(type_text("cdp"), enter(None), submit())
        assert len(steps) == 2

    def test_standalone_submit_is_rendered(self) -> None:
        steps = build_steps(navigate("https://a/"), type_text("x"), submit())
        assert steps[1:3] == [
            'When I type "x" into element with Name "q"',
            'And I submit the form with Id "search-form"',
        ]

    def test_submit_phrase(self) -> None:
        assert submit_phrase("Id", "f") == 'I submit the form with Id "f"'


# ---------------------------------------------------------------------------
# エスケープ
# ---------------------------------------------------------------------------

class TestEscaping:
    """ステップ引数のエスケープのテスト。"""

    @pytest.mark.parametrize("raw, escaped", [
        ("plain", "plain"),
        ("a\nb", "a\\nb"),
        ("a\r\nb", "a\\r\\nb"),
        ("tab\there", "tab\\there"),
        ("C:\\path", "C:\\\\path"),
    ])
    def test_escape_step_text(self, raw: str, escaped: str) -> None:
        assert escape_step_text(raw) == escaped

    def test_multiline_value_stays_on_one_line(self) -> None:
        text = FeatureBuilder().build([type_text("line1\nline2")], "Notes")
        assert len(text.splitlines()) == 5
