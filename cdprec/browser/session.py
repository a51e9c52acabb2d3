"""
CdpSession — DevTools プロトコルセッションとイベント購読

Playwright の CDPSession を介して Page / Runtime ドメインを有効化し、
ページ側スクリプトとのバインディングを登録して、frameNavigated /
bindingCalled 通知を EventNormalizer へ中継する。

構成（依存は下向きのみ）:
  - ActionLog → EventNormalizer（セッションに依存しない）
  - ProtocolAdapter: ネゴシエーション済みの CDP セッションにノーマライザを接続
  - CdpSession: ブラウザのバージョンに応じて ProtocolAdapter を払い出す
  - negotiate_adapter(): 候補バージョンを順に試すオーケストレータ
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol

from playwright.sync_api import Error as PlaywrightError

if TYPE_CHECKING:
    from playwright.sync_api import BrowserContext, CDPSession, Page

    from ..recorder.normalizer import EventNormalizer

logger = logging.getLogger(__name__)

# 注入スクリプトのパス
_INJECTED_JS_PATH = Path(__file__).parent / "injected.js"
_BINDING_PLACEHOLDER = "__BINDING_NAME__"


class SessionError(RuntimeError):
    """DevTools セッションの確立・操作に失敗した場合の例外。"""


def load_instrumentation_script(binding_name: str) -> str:
    """バインディング名を埋め込んだ注入スクリプトを返す。

    Args:
        binding_name: ページ側から呼び出すバインディング名

    Returns:
        JavaScript ソース
    """
    source = _INJECTED_JS_PATH.read_text(encoding="utf-8")
    # JS 文字列リテラル内に埋め込むため JSON エスケープする
    return source.replace(_BINDING_PLACEHOLDER, json.dumps(binding_name)[1:-1])


# ---------------------------------------------------------------------------
# ProtocolAdapter
# ---------------------------------------------------------------------------

class ProtocolAdapter:
    """ネゴシエーション済みの CDP セッション。

    attach() でドメインを有効化し、通知を EventNormalizer に中継する。
    """

    def __init__(
        self,
        cdp: CDPSession,
        version: int,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._cdp = cdp
        self._version = version
        self._logger = log or logger
        self._normalizer: Optional[EventNormalizer] = None
        self._binding_name: Optional[str] = None

    @property
    def version(self) -> int:
        """ネゴシエーションしたバージョンを返す。"""
        return self._version

    @property
    def is_attached(self) -> bool:
        """ノーマライザに接続済みかどうかを返す。"""
        return self._normalizer is not None

    def attach(self, normalizer: EventNormalizer, script: str) -> None:
        """ドメインを有効化し、バインディング登録とスクリプト注入を行う。

        Args:
            normalizer: 通知の中継先
            script: ページに注入する計測スクリプト

        Raises:
            SessionError: 既に接続済み、または CDP コマンドが失敗した場合
        """
        if self.is_attached:
            raise SessionError("既にノーマライザに接続済みです。")

        binding_name = normalizer.binding_name
        self._cdp.on("Page.frameNavigated", self._on_frame_navigated)
        self._cdp.on("Runtime.bindingCalled", self._on_binding_called)

        try:
            self._cdp.send("Page.enable")
            self._cdp.send("Runtime.enable")
            self._logger.info("Page / Runtime ドメインを有効化しました (V%s)", self._version)

            self._cdp.send("Runtime.addBinding", {"name": binding_name})
            self._logger.info("バインディングを登録しました: %s", binding_name)

            # 以降の新規ドキュメントと現在のドキュメントの両方に注入する
            self._cdp.send("Page.addScriptToEvaluateOnNewDocument", {"source": script})
            self._cdp.send("Runtime.evaluate", {"expression": script, "silent": False})
            self._logger.info("計測スクリプトを注入しました")
        except PlaywrightError as exc:
            raise SessionError(f"DevTools セッションの設定に失敗しました: {exc}") from exc

        self._normalizer = normalizer
        self._binding_name = binding_name

    def detach(self) -> None:
        """バインディングを解除し、セッションを切り離す。エラーはログのみ。"""
        if self._binding_name is not None:
            try:
                self._cdp.send("Runtime.removeBinding", {"name": self._binding_name})
                self._logger.info("バインディングを解除しました: %s", self._binding_name)
            except PlaywrightError as exc:
                self._logger.info("バインディング解除中のエラー: %s", exc)

        try:
            self._cdp.detach()
        except PlaywrightError as exc:
            self._logger.info("セッション切り離し中のエラー: %s", exc)
        finally:
            self._normalizer = None
            self._binding_name = None

    # ----- 通知ハンドラ -----

    def _on_frame_navigated(self, params: dict[str, Any]) -> None:
        if self._normalizer is None:
            return
        frame = params.get("frame") or {}
        self._normalizer.on_frame_navigated(
            frame.get("id", ""),
            frame.get("parentId"),
            frame.get("url", ""),
            frame.get("urlFragment"),
        )

    def _on_binding_called(self, params: dict[str, Any]) -> None:
        if self._normalizer is None:
            return
        self._normalizer.on_binding_called(params.get("name", ""), params.get("payload", ""))


# ---------------------------------------------------------------------------
# DebuggingSession
# ---------------------------------------------------------------------------

class DebuggingSession(Protocol):
    """バージョンを指定して ProtocolAdapter を払い出せるセッション。"""

    def try_negotiate(self, version: int) -> Optional[ProtocolAdapter]:
        ...


class CdpSession:
    """Playwright の BrowserContext / Page 上の DevTools セッション。

    ブラウザのメジャーバージョンが要求バージョン以上であれば
    CDPSession を開いて ProtocolAdapter を返す。
    """

    def __init__(
        self,
        context: BrowserContext,
        page: Page,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._context = context
        self._page = page
        self._logger = log or logger

    def browser_major_version(self) -> Optional[int]:
        """ブラウザのメジャーバージョンを返す。取得できない場合は None。"""
        browser = self._context.browser
        version = getattr(browser, "version", None) if browser is not None else None
        if not version:
            return None
        match = re.match(r"(\d+)", str(version))
        return int(match.group(1)) if match else None

    def try_negotiate(self, version: int) -> Optional[ProtocolAdapter]:
        """指定バージョンでのセッション確立を試みる。

        Args:
            version: 要求するブラウザのメジャーバージョン

        Returns:
            確立できた場合は ProtocolAdapter、非対応の場合は None
        """
        major = self.browser_major_version()
        # バージョン不明の場合は最初の候補で接続する
        if major is not None and major < version:
            self._logger.debug("V%s は非対応です (browser=%s)", version, major)
            return None

        try:
            cdp = self._context.new_cdp_session(self._page)
        except PlaywrightError as exc:
            self._logger.warning("V%s で DevTools セッションを開けませんでした: %s", version, exc)
            return None
        return ProtocolAdapter(cdp, version, log=self._logger)


def negotiate_adapter(
    session: DebuggingSession,
    versions: Iterable[int],
    log: Optional[logging.Logger] = None,
) -> ProtocolAdapter:
    """候補バージョンを優先順に試し、最初に確立できた ProtocolAdapter を返す。

    Args:
        session: ネゴシエーション対象のセッション
        versions: 試行するバージョン（優先順）
        log: ログ出力先

    Returns:
        確立した ProtocolAdapter

    Raises:
        SessionError: どのバージョンでも確立できなかった場合
    """
    log = log or logger
    tried: list[int] = []
    for version in versions:
        tried.append(version)
        log.info("V%s のドメインでセッションを確立しています...", version)
        adapter = session.try_negotiate(version)
        if adapter is not None:
            log.info("SUCCESS: V%s でセッションを確立しました", version)
            return adapter

    raise SessionError(
        "DevTools セッションを確立できませんでした。"
        f"試行したバージョン: {', '.join(f'V{v}' for v in tried) or '(なし)'}"
    )
