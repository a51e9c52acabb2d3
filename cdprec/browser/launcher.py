"""
RecordingBrowser — 記録用ブラウザの起動・終了

Playwright sync API で Chromium を起動し、記録対象の Page を提供する。
sync API のイベントは Playwright の呼び出し中にのみ配送されるため、
記録ループは pump() で定期的にイベントを処理する。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from playwright.sync_api import Error as PlaywrightError

if TYPE_CHECKING:
    from playwright.sync_api import Browser, BrowserContext, Page, Playwright

    from ..config import RecorderConfig

logger = logging.getLogger(__name__)


class RecordingBrowser:
    """記録用ブラウザのライフサイクル管理。

    使用例::

        with RecordingBrowser(config) as browser:
            page = browser.page
            while browser.pump(200):
                ...
    """

    def __init__(self, config: RecorderConfig) -> None:
        self._config = config
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    def __enter__(self) -> RecordingBrowser:
        self.launch()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("ブラウザが起動していません。先に launch() を呼んでください。")
        return self._context

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("ブラウザが起動していません。先に launch() を呼んでください。")
        return self._page

    def launch(self) -> Page:
        """ブラウザを起動し、記録対象の Page を返す。"""
        from playwright.sync_api import sync_playwright

        if self._page is not None:
            raise RuntimeError("既にブラウザが起動しています。")

        config = self._config
        logger.info("ブラウザを起動しています... (headed=%s, channel=%s)", config.headed, config.channel)

        self._pw = sync_playwright().start()
        try:
            launch_kwargs: dict = {"headless": not config.headed}
            if config.channel != "chromium":
                launch_kwargs["channel"] = config.channel
            self._browser = self._pw.chromium.launch(**launch_kwargs)
            self._context = self._browser.new_context(
                viewport={"width": config.viewport_width, "height": config.viewport_height},
            )
            self._page = self._context.new_page()
        except Exception:
            logger.exception("ブラウザの起動に失敗しました")
            self.close()
            raise

        logger.info("ブラウザを起動しました (version=%s)", self._browser.version)
        return self._page

    def pump(self, timeout_ms: int) -> bool:
        """イベントを処理しながら待機する。

        Returns:
            ページがまだ開いていれば True
        """
        if self._page is None or self._page.is_closed():
            return False
        try:
            self._page.wait_for_timeout(timeout_ms)
        except PlaywrightError:
            return False
        return not self._page.is_closed()

    def close(self) -> None:
        """ブラウザを終了し、リソースを解放する。"""
        try:
            if self._browser is not None:
                self._browser.close()
            if self._pw is not None:
                self._pw.stop()
        except PlaywrightError as exc:
            logger.info("ブラウザ終了中のエラー: %s", exc)
        finally:
            self._browser = None
            self._context = None
            self._page = None
            self._pw = None
            logger.info("ブラウザを終了しました")
