import logging
from typing import Any, Dict, Optional

from playwright.sync_api import sync_playwright, BrowserContext, Page, Error as PlaywrightError

from scenario_runner import config
from scenario_runner.errors import SessionUnavailable
from scenario_runner.models.dsl import SessionConfig, Viewport
from scenario_runner.session.subscriptions import NetworkLog, SubscriptionRegistry

LOGGER = logging.getLogger("scenario_runner.session")


class Session:
    """An isolated browser context with one active page."""

    def __init__(self, context: BrowserContext, page: Page):
        self.context = context
        self.page = page
        self.subscriptions = SubscriptionRegistry(page)
        self.network = NetworkLog()
        self.variables: Dict[str, Any] = {}
        page.on("dialog", self.subscriptions.dispatch_dialog)
        page.on("response", self.network.record)

    def sleep(self, ms: float) -> None:
        # page.wait_for_timeout keeps dispatching dialog/response events.
        self.page.wait_for_timeout(ms)

    def reset(self) -> None:
        """Forget rules and variables between scenarios sharing this session."""
        self.subscriptions.clear()
        self.network.clear()
        self.variables.clear()


class SessionManager:
    def __init__(self, browser: str = config.BROWSER, headless: bool = config.HEADLESS,
                 timeout_ms: int = config.TIMEOUT_MS,
                 navigation_timeout_ms: int = config.NAVIGATION_TIMEOUT_MS,
                 base_url: Optional[str] = None, viewport: Optional[Viewport] = None):
        self.browser_name = browser
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.base_url = base_url
        self.viewport = viewport
        self._playwright = None
        self._browser = None

    def start(self) -> None:
        if self._browser is not None:
            return
        try:
            self._playwright = sync_playwright().start()
            browser_type = getattr(self._playwright, self.browser_name)
            LOGGER.info("Launching %s (headless=%s)", self.browser_name, self.headless)
            self._browser = browser_type.launch(headless=self.headless)
        except PlaywrightError as e:
            self.stop()
            raise SessionUnavailable(f"Could not launch {self.browser_name}: {e}") from e

    def acquire(self, session_config: Optional[SessionConfig] = None) -> Session:
        """
        Opens a fresh browser context. A base_url given to the manager
        overrides the suite's own; the suite's viewport wins over the default.
        """
        session_config = session_config or SessionConfig()
        self.start()

        context_options: Dict[str, Any] = {}
        base_url = self.base_url or session_config.base_url
        if base_url:
            context_options['base_url'] = base_url
        viewport = session_config.viewport or self.viewport
        if viewport:
            context_options['viewport'] = {"width": viewport.width, "height": viewport.height}
        if session_config.ignore_https_errors:
            context_options['ignore_https_errors'] = True

        try:
            context = self._browser.new_context(**context_options)
            context.set_default_timeout(self.timeout_ms)
            context.set_default_navigation_timeout(self.navigation_timeout_ms)
            page = context.new_page()
        except PlaywrightError as e:
            raise SessionUnavailable(f"Could not open a browser context: {e}") from e

        LOGGER.debug("Acquired session %s", context_options)
        return Session(context, page)

    def release(self, session: Session) -> None:
        try:
            session.context.close()
        except PlaywrightError as e:
            LOGGER.warning("Closing browser context failed: %s", e)

    def stop(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError as e:
                LOGGER.warning("Closing browser failed: %s", e)
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "SessionManager":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
