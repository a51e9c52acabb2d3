"""
EventNormalizer — CDP 生イベントを Action に正規化する

Page.frameNavigated と Runtime.bindingCalled の通知を受け取り、
記録状態と分類ルールに従って 0 件または 1 件の Action をログに追加する。

分類ルール（binding call の type を小文字化して判定）:
  - click    → Click（値は記録しない）
  - change   → checkbox / radio は無視、SELECT は SelectOption、それ以外は TypeText
  - enterkey → TypeTextAndSubmit（値があれば保持）
  - submit   → Submit
  - その他   → 無視

不正なペイロードはログ出力のみで破棄し、例外を外に出さない。
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from .action_log import ActionLog
from .models import (
    Action,
    ActionKind,
    ActionPayload,
    BindingCalled,
    FrameNavigated,
    RawEvent,
    RecordingState,
)

logger = logging.getLogger(__name__)

DEFAULT_BINDING_NAME = "sendActionToPython"

# ブラウザ内部の中間遷移
_BLANK_URL = "about:blank"

# change を記録しない要素種別（直前の click でトグルを記録済み）
_TOGGLE_ELEMENT_TYPES = frozenset({"checkbox", "radio"})


class EventNormalizer:
    """CDP 生イベントの分類・重複排除を行うノーマライザ。

    ActionLog への唯一の書き込み手。状態の切り替えは start() / stop() で行い、
    ページ側のイベントで切り替わることはない。

    使用例::

        log = ActionLog("Login")
        normalizer = EventNormalizer(log)
        normalizer.start()
        normalizer.on_frame_navigated("F1", None, "https://example.com/", None)
    """

    def __init__(
        self,
        action_log: ActionLog,
        binding_name: str = DEFAULT_BINDING_NAME,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """ノーマライザを初期化する。

        Args:
            action_log: 書き込み先の ActionLog
            binding_name: 受け付けるバインディング名（完全一致）
            log: 診断ログの出力先（省略時はモジュールロガー）
            clock: タイムスタンプ用クロック
        """
        self._action_log = action_log
        self._binding_name = binding_name
        self._logger = log or logger
        self._clock = clock
        self._state = RecordingState.OFF

    # ----- 記録状態 -----

    @property
    def state(self) -> RecordingState:
        """現在の記録状態を返す。"""
        return self._state

    @property
    def is_recording(self) -> bool:
        """記録中かどうかを返す。"""
        return self._state is RecordingState.ON

    @property
    def binding_name(self) -> str:
        """受け付けるバインディング名を返す。"""
        return self._binding_name

    def start(self) -> None:
        """記録を開始する。"""
        self._state = RecordingState.ON

    def stop(self) -> None:
        """記録を停止する。以降のイベントは破棄される。"""
        self._state = RecordingState.OFF

    # ----- CDP コールバック -----

    def on_frame_navigated(
        self,
        frame_id: str,
        parent_id: Optional[str],
        url: str,
        url_fragment: Optional[str] = None,
    ) -> None:
        """Page.frameNavigated のコールバック。"""
        self.handle(FrameNavigated(frame_id, parent_id, url, url_fragment))

    def on_binding_called(self, name: str, payload: str) -> None:
        """Runtime.bindingCalled のコールバック。"""
        self.handle(BindingCalled(name, payload))

    def handle(self, event: RawEvent) -> None:
        """生イベントを処理し、必要なら Action を 1 件追加する。

        Args:
            event: FrameNavigated または BindingCalled
        """
        if isinstance(event, FrameNavigated):
            self._handle_navigation(event)
        elif isinstance(event, BindingCalled):
            self._handle_binding(event)
        else:
            self._logger.debug("未知のイベントを無視: %r", event)

    # ----- ナビゲーション -----

    def _handle_navigation(self, event: FrameNavigated) -> None:
        # トップレベルフレームのみ対象
        if not self.is_recording or event.parent_id:
            return

        url = event.effective_url
        if not url or url.lower() == _BLANK_URL:
            return

        self._logger.debug("---> EVENT: FrameNavigated to: %s", url)

        action = Action(kind=ActionKind.NAVIGATE, value=url, timestamp=self._clock())
        appended = self._action_log.append_unless(
            action,
            lambda last: (
                last is not None
                and last.kind is ActionKind.NAVIGATE
                and last.value == url
            ),
        )
        if appended:
            self._logger.debug("   -> Recorded: %s", action.describe())
        else:
            self._logger.debug("   -> Ignored: 直前と同一 URL への遷移: %s", url)

    # ----- バインディング -----

    def _handle_binding(self, event: BindingCalled) -> None:
        if not self.is_recording or event.name != self._binding_name:
            return

        self._logger.debug("---> EVENT: JS Binding Called. Payload: %s", event.payload)

        payload = self._parse_payload(event.payload)
        if payload is None:
            return

        self._logger.debug(
            "   -> Parsed: Type='%s', Tag='%s', ElType='%s', SelType='%s', SelVal='%s', Val='%s'",
            payload.type, payload.tag_name, payload.element_type,
            payload.selector, payload.selector_value, payload.value,
        )

        action = self._classify(payload)
        if action is None:
            return

        self._action_log.append(action)
        self._logger.debug("   -> Recorded: %s", action.describe())

    def _parse_payload(self, raw: str) -> Optional[ActionPayload]:
        """JSON ペイロードを解析する。失敗時は None を返す。"""
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            self._logger.warning("   -> FAIL: 不正なペイロード (%s): %r", exc, raw)
            return None

        try:
            return ActionPayload.model_validate(data)
        except ValidationError as exc:
            self._logger.warning(
                "   -> FAIL: ペイロードの検証に失敗しました: %s",
                exc.errors(include_url=False),
            )
            return None

    def _classify(self, payload: ActionPayload) -> Optional[Action]:
        """ペイロードを Action に分類する。記録しない場合は None。"""
        gesture = payload.gesture
        if gesture not in ("click", "change", "enterkey", "submit"):
            self._logger.debug("   -> Ignored: 未対応のジェスチャー '%s'", payload.type)
            return None

        if not payload.selector or payload.selector_value is None:
            self._logger.warning(
                "   -> FAIL: セレクタが欠落しています: type='%s'", payload.type,
            )
            return None

        element_type = (payload.element_type or "").lower()
        tag_name = (payload.tag_name or "").upper()

        if gesture == "click":
            return self._make_action(ActionKind.CLICK, payload, value=None)

        if gesture == "change":
            if element_type in _TOGGLE_ELEMENT_TYPES:
                self._logger.debug(
                    "   -> Ignored: 'change' event on element type '%s'", payload.element_type,
                )
                return None
            if tag_name == "SELECT":
                return self._make_action(ActionKind.SELECT_OPTION, payload, payload.value)
            return self._make_action(ActionKind.TYPE_TEXT, payload, payload.value)

        if gesture == "enterkey":
            return self._make_action(
                ActionKind.TYPE_TEXT_AND_SUBMIT, payload, payload.value or None,
            )

        return self._make_action(ActionKind.SUBMIT, payload, payload.value)

    def _make_action(
        self,
        kind: ActionKind,
        payload: ActionPayload,
        value: Optional[str],
    ) -> Action:
        return Action(
            kind=kind,
            selector_type=payload.selector,
            selector_value=payload.selector_value,
            value=value,
            tag_name=payload.tag_name,
            element_type=payload.element_type,
            timestamp=self._clock(),
        )
