"""
browser パッケージ — Playwright 経由のブラウザ操作と DevTools セッション

主な機能:
  - RecordingBrowser: 記録用ブラウザの起動・イベント処理・終了
  - CdpSession / negotiate_adapter: プロトコルバージョンのネゴシエーション
  - ProtocolAdapter: バインディング登録とイベントの中継
"""

from __future__ import annotations

from .launcher import RecordingBrowser
from .session import (
    CdpSession,
    DebuggingSession,
    ProtocolAdapter,
    SessionError,
    load_instrumentation_script,
    negotiate_adapter,
)

__all__ = [
    "CdpSession",
    "DebuggingSession",
    "ProtocolAdapter",
    "RecordingBrowser",
    "SessionError",
    "load_instrumentation_script",
    "negotiate_adapter",
]
