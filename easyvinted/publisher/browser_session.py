"""
Browser session manager for the Vinted marketplace.

Owns the Playwright driver, one Chromium browser, one context and one page
for the duration of a worker run, and establishes or restores the
marketplace login:
- Launch with a fixed viewport, locale and user agent
- Restore persisted session cookies (absence is not an error)
- Probe the home page for the signed-in indicator
- Fall back to a credential login and persist the new cookies

Example:
    >>> async with BrowserSessionManager(config.vinted) as session:
    ...     await session.ensure_authenticated(credentials)
    ...     await session.navigate(config.vinted.new_item_url)
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from easyvinted.domain.entities.credentials import VintedCredentials
from easyvinted.utils.config import VintedConfig
from easyvinted.utils.exceptions import AuthenticationError, NavigationError
from easyvinted.utils.logger import get_logger

from .session_store import FileSessionStore

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = get_logger(__name__)


# ============================================
# Constants
# ============================================

SIGNED_IN_SELECTOR = '[data-testid="user-menu"]'
LOGIN_EMAIL_SELECTOR = 'input[name="login"]'
LOGIN_PASSWORD_SELECTOR = 'input[name="password"]'
LOGIN_SUBMIT_SELECTOR = 'button[type="submit"]'
LOGIN_FORM_TIMEOUT_MS = 10000

# Cookie consent button selectors (try in order)
COOKIE_CONSENT_SELECTORS = [
    "#onetrust-accept-btn-handler",
    "button[data-testid='cookie-consent-accept']",
    "button:has-text('Tout accepter')",
    "button:has-text('Accepter')",
    "button:has-text('Accept all')",
]

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
]


class BrowserSessionManager:
    """
    One authenticated browsing context per worker run.

    Attributes:
        config: Marketplace and browser settings.
        session_store: Where the session cookies are persisted.
        headless: Whether the browser runs without a window.
    """

    def __init__(
        self,
        config: Optional[VintedConfig] = None,
        session_store: Optional[FileSessionStore] = None,
        headless: Optional[bool] = None,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize the session manager. Nothing is launched until initialize().

        Args:
            config: Browser settings. Defaults to VintedConfig().
            session_store: Session persistence. Defaults to the configured session file.
            headless: Override of config.headless.
            playwright_factory: Returns an object whose ``start()`` yields the driver.
        """
        self.config = config or VintedConfig()
        self.session_store = session_store or FileSessionStore(self.config.session_file)
        self.headless = self.config.headless if headless is None else headless
        self._playwright_factory = playwright_factory or async_playwright

        self._playwright: Optional["Playwright"] = None
        self._browser: Optional["Browser"] = None
        self._context: Optional["BrowserContext"] = None
        self._page: Optional["Page"] = None

    # =========================================
    # Context Manager
    # =========================================

    async def __aenter__(self) -> "BrowserSessionManager":
        try:
            await self.initialize()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================
    # Lifecycle
    # =========================================

    @property
    def is_initialized(self) -> bool:
        return self._page is not None

    @property
    def page(self) -> "Page":
        """The single page of the session."""
        if self._page is None:
            raise RuntimeError(
                "No active browser session. Use 'async with BrowserSessionManager()' "
                "or call initialize() first."
            )
        return self._page

    async def initialize(self) -> None:
        """
        Launch the browser, restore saved cookies and open the page.

        Partial state left by a failure here is released by close().
        """
        if self._page is not None:
            logger.warning("Browser session already initialized")
            return

        logger.info(f"Launching Chromium (headless={self.headless})...")

        self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            slow_mo=self.config.slow_mo_ms,
            args=LAUNCH_ARGS,
        )
        self._context = await self._browser.new_context(
            viewport={"width": self.config.viewport.width, "height": self.config.viewport.height},
            locale=self.config.locale,
            timezone_id=self.config.timezone_id,
            user_agent=self.config.user_agent,
        )

        await self._load_session()

        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.config.navigation_timeout_ms)
        logger.info("Browser session initialized")

    async def _load_session(self) -> bool:
        """Add persisted cookies to the context. Returns True if any were loaded."""
        session = self.session_store.load()
        if session is None or not session.cookies:
            logger.info("No saved session, continuing unauthenticated")
            return False

        try:
            await self._context.add_cookies([cookie.to_playwright() for cookie in session.cookies])
        except PlaywrightError as e:
            logger.warning(f"Saved session rejected by the browser, continuing unauthenticated: {e}")
            return False

        logger.info(f"Restored session with {len(session.cookies)} cookies")
        return True

    async def close(self) -> None:
        """
        Tear down page, context, browser and driver.

        Safe to call when initialize() never ran or failed part-way, and
        safe to call twice.
        """
        resources = [
            ("page", self._page),
            ("context", self._context),
            ("browser", self._browser),
        ]
        playwright = self._playwright

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

        if playwright is None and all(resource is None for _, resource in resources):
            return

        logger.info("Closing browser session...")
        for name, resource in resources:
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Error closing {name}: {e}")

        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")

        logger.info("Browser session closed")

    # =========================================
    # Navigation
    # =========================================

    async def navigate(self, url: str, wait_until: str = "networkidle") -> None:
        """
        Navigate the page, converting timeouts into NavigationError.

        Raises:
            NavigationError: If the page does not load in time.
        """
        timeout_ms = self.config.navigation_timeout_ms
        logger.debug(f"Navigating to {url}")
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(
                f"Timed out after {timeout_ms}ms loading {url}",
                url=url,
                timeout_ms=timeout_ms,
            ) from e
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}", url=url) from e

    async def handle_cookie_consent(self) -> bool:
        """
        Accept the cookie consent banner if it is displayed.

        Returns:
            True if consent was handled, False if no banner was found.
        """
        for selector in COOKIE_CONSENT_SELECTORS:
            try:
                button = self.page.locator(selector).first
                if await button.is_visible():
                    await button.click()
                    logger.info(f"Cookie consent accepted ({selector})")
                    return True
            except PlaywrightError:
                continue

        logger.debug("No cookie consent banner found")
        return False

    # =========================================
    # Authentication
    # =========================================

    async def is_signed_in(self) -> bool:
        """Check the current page for the signed-in indicator, without navigating."""
        return await self.page.locator(SIGNED_IN_SELECTOR).count() > 0

    async def check_authentication(self) -> bool:
        """
        Load the home page and look for the signed-in indicator.

        Raises:
            NavigationError: If the home page does not load.
        """
        logger.info("Checking authentication status...")
        await self.navigate(self.config.base_url)
        await self.handle_cookie_consent()

        if await self.is_signed_in():
            logger.info("Already authenticated")
            return True

        logger.info("Not authenticated")
        return False

    async def login_with_credentials(self, email: Optional[str], password: Optional[str]) -> None:
        """
        Log in through the marketplace login form.

        Raises:
            AuthenticationError: If credentials are missing or the login is rejected.
            NavigationError: If a page does not load in time.
        """
        if not email or not password:
            raise AuthenticationError("Missing marketplace credentials: email and password are required")

        logger.info(f"Logging in as {email}...")
        await self.navigate(self.config.login_url)
        await self.handle_cookie_consent()

        try:
            await self.page.wait_for_selector(LOGIN_EMAIL_SELECTOR, timeout=LOGIN_FORM_TIMEOUT_MS)
        except PlaywrightTimeoutError as e:
            raise AuthenticationError("Login form did not appear", email=email) from e

        await self.page.fill(LOGIN_EMAIL_SELECTOR, email)
        await self.page.fill(LOGIN_PASSWORD_SELECTOR, password)
        await self.page.click(LOGIN_SUBMIT_SELECTOR)

        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.config.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(
                "Timed out waiting for the login to complete",
                url=self.config.login_url,
                timeout_ms=self.config.navigation_timeout_ms,
            ) from e

        if not await self.check_authentication():
            raise AuthenticationError("Login failed - please check credentials", email=email)

        logger.info("Successfully logged in")

    async def save_session(self) -> bool:
        """
        Overwrite the session file with the context's cookies.

        Failures are logged and reported, never raised.
        """
        if self._context is None:
            logger.warning("Cannot save session: browser not initialized")
            return False

        try:
            cookies = await self._context.cookies()
            self.session_store.save(cookies)
        except (PlaywrightError, OSError, ValueError) as e:
            logger.warning(f"Failed to save session: {e}")
            return False
        return True

    async def ensure_authenticated(self, credentials: Optional[VintedCredentials]) -> bool:
        """
        Reuse the restored session or log in with credentials.

        Returns:
            True if the restored session was reused, False if a login was performed.

        Raises:
            AuthenticationError: If signed out and the login fails or no credentials exist.
            NavigationError: If a page does not load in time.
        """
        if await self.check_authentication():
            return True

        if credentials is None:
            raise AuthenticationError("Not signed in and no marketplace credentials available")

        await self.login_with_credentials(credentials.email, credentials.password)
        await self.save_session()
        return False

    async def capture_session_interactively(
        self,
        confirm: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> bool:
        """
        Let an operator log in by hand in a visible browser, then save the cookies.

        Args:
            confirm: Awaited once the operator is done. Defaults to waiting for Enter.

        Returns:
            True if the operator ended signed in and the session was saved.
        """
        await self.navigate(self.config.login_url)
        await self.handle_cookie_consent()

        if confirm is None:
            await asyncio.to_thread(input, "Log in to Vinted in the browser window, then press Enter here... ")
        else:
            await confirm()

        if not await self.check_authentication():
            logger.error("Still not signed in, session not saved")
            return False

        return await self.save_session()
