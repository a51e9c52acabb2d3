"""
recorder パッケージ — CDP イベントの正規化と記録

主な機能:
  - Action / ActionKind: 記録されたアクションのデータクラス
  - ActionLog: スレッドセーフな追記専用ログ
  - EventNormalizer: frameNavigated / bindingCalled の分類・重複排除

RecorderEngine は codegen に依存するため cdprec.recorder.engine から import する。
"""

from __future__ import annotations

from .action_log import DEFAULT_FEATURE_NAME, ActionLog
from .models import Action, ActionKind, ActionPayload, BindingCalled, FrameNavigated, RecordingState
from .normalizer import DEFAULT_BINDING_NAME, EventNormalizer

__all__ = [
    "DEFAULT_BINDING_NAME",
    "DEFAULT_FEATURE_NAME",
    "Action",
    "ActionKind",
    "ActionLog",
    "ActionPayload",
    "BindingCalled",
    "EventNormalizer",
    "FrameNavigated",
    "RecordingState",
]
