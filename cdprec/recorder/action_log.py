"""
ActionLog — 記録アクションのスレッドセーフな追記専用ログ

1 フィーチャー（1 記録セッション）分の Action を記録順に保持する。
全操作は単一のロックで排他され、snapshot() は独立したコピーを返すため
コンパイル中に追記と競合しない。
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .models import Action

logger = logging.getLogger(__name__)

DEFAULT_FEATURE_NAME = "DefaultFeature"


class ActionLog:
    """記録アクションの順序付きログ。

    Attributes:
        feature_name: このログが属するフィーチャー名
    """

    def __init__(self, feature_name: str = DEFAULT_FEATURE_NAME) -> None:
        self.feature_name = feature_name
        self._lock = threading.Lock()
        self._actions: list[Action] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._actions)

    def append(self, action: Action) -> None:
        """アクションを末尾に追加する。"""
        with self._lock:
            self._actions.append(action)

    def append_unless(
        self,
        action: Action,
        is_duplicate: Callable[[Optional[Action]], bool],
    ) -> bool:
        """末尾アクションを判定し、重複でなければ追加する。

        判定と追加は同一ロック内で行う。

        Args:
            action: 追加するアクション
            is_duplicate: 現在の末尾アクション（空なら None）を受け取る判定関数

        Returns:
            追加した場合 True
        """
        with self._lock:
            last = self._actions[-1] if self._actions else None
            if is_duplicate(last):
                return False
            self._actions.append(action)
            return True

    def snapshot(self) -> list[Action]:
        """記録済みアクションのコピーを返す。"""
        with self._lock:
            return list(self._actions)

    def last(self) -> Optional[Action]:
        """末尾のアクションを返す。空の場合は None。"""
        with self._lock:
            return self._actions[-1] if self._actions else None

    def is_empty(self) -> bool:
        """アクションが 1 件も無ければ True を返す。"""
        with self._lock:
            return not self._actions

    def reset(self, feature_name: Optional[str] = None) -> None:
        """ログを空にする。

        Args:
            feature_name: 指定時はフィーチャー名も切り替える
        """
        with self._lock:
            self._actions.clear()
            if feature_name is not None:
                self.feature_name = feature_name
        logger.debug("アクションログをリセットしました: %s", self.feature_name)
