"""
記録モデル — Action / RecordingState / RawEvent の定義

CDP から届く生イベント（RawEvent）と、正規化後の記録アクション（Action）の
データ構造を定義する。

主な構成:
  - ActionKind: 記録アクション種別
  - Action: 正規化済みの 1 ユーザー操作（イミュータブル）
  - RecordingState: 記録状態（on / off）
  - FrameNavigated / BindingCalled: CDP から届く生イベント
  - ActionPayload: ページ側スクリプトが送る JSON ペイロードの Pydantic モデル
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# アクション種別・記録状態
# ---------------------------------------------------------------------------

class ActionKind(enum.Enum):
    """記録アクションの種別。

    定義順はステップ定義の出力順としても使用する。
    """

    NAVIGATE = "Navigate"
    CLICK = "Click"
    TYPE_TEXT = "TypeText"
    TYPE_TEXT_AND_SUBMIT = "TypeTextAndSubmit"
    SELECT_OPTION = "SelectOption"
    SUBMIT = "Submit"


class RecordingState(enum.Enum):
    """記録状態。"""

    OFF = "off"
    ON = "on"


# ---------------------------------------------------------------------------
# Action データクラス
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Action:
    """正規化済みの 1 ユーザー操作。

    ログに追加された後は変更されない。tag_name / element_type は
    分類時の判定にのみ使われ、生成スクリプトには出力されない。

    Attributes:
        kind: アクション種別
        selector_type: セレクタ種別（Id, ClassName, aria-label 等。Navigate では None）
        selector_value: セレクタ値
        value: 入力値 / 選択値 / 遷移先 URL
        tag_name: 対象要素のタグ名
        element_type: 対象要素の type 属性
        timestamp: 生成時刻（単調増加クロック）
    """

    kind: ActionKind
    selector_type: Optional[str] = None
    selector_value: Optional[str] = None
    value: Optional[str] = None
    tag_name: Optional[str] = None
    element_type: Optional[str] = None
    timestamp: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """JSON シリアライズ可能な辞書に変換する。"""
        data = asdict(self)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Action:
        """to_dict() 形式の辞書から Action を復元する。

        Raises:
            ValueError: kind が未知の値の場合
        """
        return cls(
            kind=ActionKind(data["kind"]),
            selector_type=data.get("selector_type"),
            selector_value=data.get("selector_value"),
            value=data.get("value"),
            tag_name=data.get("tag_name"),
            element_type=data.get("element_type"),
            timestamp=float(data.get("timestamp", 0.0)),
        )

    def describe(self) -> str:
        """ログ出力用の短い説明文字列を返す。"""
        if self.kind is ActionKind.NAVIGATE:
            return f"{self.kind.value} {self.value}"
        return (
            f"{self.kind.value} Tag='{self.tag_name}' Type='{self.element_type}' "
            f"Sel='{self.selector_type}={self.selector_value}' "
            f"Val='{self.value if self.value is not None else 'N/A'}'"
        )


# ---------------------------------------------------------------------------
# 生イベント（CDP から届く通知）
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FrameNavigated:
    """Page.frameNavigated 通知。

    Attributes:
        frame_id: フレーム ID
        parent_id: 親フレーム ID（トップレベルフレームでは None）
        url: フラグメントを含まない URL
        url_fragment: URL フラグメント（'#' 付き）またはフラグメント付き URL
    """

    frame_id: str
    parent_id: Optional[str]
    url: str
    url_fragment: Optional[str] = None

    @property
    def effective_url(self) -> str:
        """フラグメントを反映した URL を返す。"""
        if not self.url_fragment:
            return self.url
        if self.url_fragment.startswith("#"):
            return self.url + self.url_fragment
        return self.url_fragment


@dataclass(frozen=True)
class BindingCalled:
    """Runtime.bindingCalled 通知。

    Attributes:
        name: バインディング名
        payload: ページ側スクリプトが送信した JSON 文字列
    """

    name: str
    payload: str


RawEvent = Union[FrameNavigated, BindingCalled]


# ---------------------------------------------------------------------------
# バインディングペイロード
# ---------------------------------------------------------------------------

class ActionPayload(BaseModel):
    """ページ側スクリプトが送る操作ペイロード。

    `{type, selector, selectorValue, value, tagName, elementType}` 形式の
    JSON を受け取る。未知のキーは無視する。
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    type: str = Field(..., min_length=1, description="ジェスチャー名（click, change 等）")
    selector: Optional[str] = Field(default=None, description="セレクタ種別")
    selector_value: Optional[str] = Field(
        default=None, alias="selectorValue", description="セレクタ値",
    )
    value: Optional[str] = Field(default=None, description="要素の現在値")
    tag_name: Optional[str] = Field(default=None, alias="tagName", description="タグ名")
    element_type: Optional[str] = Field(
        default=None, alias="elementType", description="要素の type 属性",
    )

    @property
    def gesture(self) -> str:
        """小文字化したジェスチャー名を返す。"""
        return self.type.lower()
