"""
セレクタ解決 — セレクタ記述子から Playwright セレクタ文字列への変換

ページ側スクリプトが記録する (selector_type, selector_value) の組を、
再生時に Playwright の page.locator() へ渡すセレクタ文字列に変換する。
生成されるステップ定義モジュールにも同じ変換表が埋め込まれる。

対応するセレクタ種別（大文字小文字・前後空白は無視）:
  id, name, classname, cssselector, css, xpath, linktext, partiallinktext,
  tagname, aria-label, placeholder, part, data-test-id
それ以外の種別は `[<type>="<value>"]` の属性セレクタとして扱う。
"""

from __future__ import annotations

# セレクタ種別 → セレクタ書式（{value} は CSS 文字列としてクォート済みの値、
# {raw} は生の値）
SELECTOR_FORMATS: dict[str, str] = {
    "id": "[id={value}]",
    "name": "[name={value}]",
    "classname": "[class~={value}]",
    "cssselector": "css={raw}",
    "css": "css={raw}",
    "xpath": "xpath={raw}",
    "linktext": "a:text-is({value})",
    "partiallinktext": "a:has-text({value})",
    "tagname": "css={raw}",
    "aria-label": "[aria-label={value}]",
    "placeholder": "[placeholder={value}]",
    "part": "[part={value}]",
    "data-test-id": "[data-test-id={value}]",
}

# 属性セレクタへのフォールバックを許可しない文字
NON_ATTRIBUTE_CHARS = (" ", ">", "[", "]", "=", '"', "'")


class UnsupportedSelectorError(ValueError):
    """セレクタ種別をセレクタ文字列に変換できない場合の例外。"""


def css_quote(value: str) -> str:
    """CSS 属性値用にダブルクォートで囲む。"""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\a ")
    return f'"{escaped}"'


def resolve_selector(selector_type: str, selector_value: str) -> str:
    """セレクタ記述子を Playwright セレクタ文字列に変換する。

    Args:
        selector_type: セレクタ種別（Id, ClassName, aria-label 等）
        selector_value: セレクタ値

    Returns:
        page.locator() に渡せるセレクタ文字列

    Raises:
        UnsupportedSelectorError: 種別が空、または属性名として解釈できない場合
    """
    key = (selector_type or "").strip().lower()
    value = selector_value or ""

    fmt = SELECTOR_FORMATS.get(key)
    if fmt is not None:
        return fmt.format(value=css_quote(value), raw=value)

    if key and not any(ch in key for ch in NON_ATTRIBUTE_CHARS):
        return f"[{key}={css_quote(value)}]"

    raise UnsupportedSelectorError(
        f"未対応のセレクタ種別です: '{selector_type}'（値: '{selector_value}'）"
    )
