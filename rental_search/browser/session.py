# rental_search/browser/session.py

"""Browsing session capability and its Selenium/Chrome adapter.

Scrapers only talk to the :class:`BrowsingSession` protocol, so they can
be driven by a real Chrome instance in production and by an in-memory
fake in tests.  A session is owned by exactly one scraper task and is
never shared between threads.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

from bs4 import BeautifulSoup
from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from rental_search.config.settings import Settings
from rental_search.errors import SessionError

logger = logging.getLogger("rental_search.browser")

_LOCATORS: dict[str, str] = {
    "css": By.CSS_SELECTOR,
    "xpath": By.XPATH,
}


class BrowsingSession(Protocol):
    """What a scraper needs from a browser."""

    def navigate(self, url: str) -> None: ...

    def current_document(self) -> BeautifulSoup: ...

    def wait_for_selector(
        self, selector: str, timeout: float, by: str = "css",
    ) -> bool: ...

    def click(self, selector: str, by: str = "css") -> bool: ...

    def open_background_tab(self, url: str) -> str: ...

    def switch_to(self, handle: str) -> None: ...

    def close_current_tab(self) -> None: ...

    def list_open_handles(self) -> list[str]: ...

    def capture_network_log(self) -> list[dict[str, Any]]: ...

    def run_debug_command(
        self, name: str, params: dict[str, Any],
    ) -> dict[str, Any]: ...

    def run_script(self, code: str, *args: Any) -> Any: ...

    def clear_cookies(self) -> None: ...

    def restart(self) -> None: ...

    def close(self) -> None: ...


def _locator(by: str) -> str:
    try:
        return _LOCATORS[by]
    except KeyError:
        raise ValueError(
            f"Unknown locator strategy '{by}', "
            f"expected one of {sorted(_LOCATORS)}"
        ) from None


def build_chrome_options(capture_network: bool) -> Options:
    """Chrome options shared by every session."""
    options = Options()
    if Settings.HEADLESS:
        options.add_argument("--headless=new")
    options.add_argument(f"--window-size={Settings.WINDOW_SIZE}")
    for argument in Settings.CHROME_ARGUMENTS:
        options.add_argument(argument)
    options.page_load_strategy = Settings.PAGE_LOAD_STRATEGY
    if capture_network:
        # Exposes Network.* events through driver.get_log("performance")
        options.set_capability(
            "goog:loggingPrefs", {"performance": "ALL"}
        )
    return options


def build_chrome_driver(capture_network: bool) -> webdriver.Chrome:
    """Start a local Chrome instance, fetching chromedriver if needed."""
    options = build_chrome_options(capture_network)
    try:
        service = Service(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)
    except WebDriverException as exc:
        raise SessionError(f"Could not start Chrome: {exc.msg}") from exc
    except Exception as exc:  # webdriver-manager download/OS errors
        raise SessionError(f"Could not start Chrome: {exc}") from exc


class SeleniumSession:
    """:class:`BrowsingSession` backed by a Selenium WebDriver.

    ``driver_factory`` receives the ``capture_network`` flag and returns
    a ready driver; it is called again by :meth:`restart`, so the
    session object itself survives a browser restart.
    """

    def __init__(
        self,
        capture_network: bool = False,
        driver_factory: Callable[[bool], Any] | None = None,
    ) -> None:
        self.capture_network = capture_network
        self._driver_factory = driver_factory or build_chrome_driver
        self._driver: Any = self._driver_factory(capture_network)
        self._closed = False
        logger.debug(
            "Browser session started (network capture: %s)",
            capture_network,
        )

    def __enter__(self) -> "SeleniumSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def driver(self) -> Any:
        if self._closed:
            raise SessionError("Browser session is closed")
        return self._driver

    # ── Navigation & DOM ─────────────────────────────────

    def navigate(self, url: str) -> None:
        logger.debug("Navigating to %s", url)
        try:
            self.driver.get(url)
        except WebDriverException as exc:
            raise SessionError(
                f"Navigation to {url} failed: {exc.msg}"
            ) from exc

    def current_document(self) -> BeautifulSoup:
        return BeautifulSoup(self.driver.page_source, "lxml")

    def wait_for_selector(
        self, selector: str, timeout: float, by: str = "css",
    ) -> bool:
        """Wait until ``selector`` is present; False on timeout."""
        try:
            WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located((_locator(by), selector))
            )
        except TimeoutException:
            logger.debug(
                "Gave up on %r after %.1fs", selector, timeout
            )
            return False
        return True

    def click(self, selector: str, by: str = "css") -> bool:
        """Activate the first match with ENTER; False if it is absent.

        Pagination buttons are often covered by sticky footers, so a
        key press is more reliable than a pointer click.
        """
        try:
            element = self.driver.find_element(_locator(by), selector)
            element.send_keys(Keys.ENTER)
        except NoSuchElementException:
            return False
        except WebDriverException as exc:
            logger.debug("Could not activate %r: %s", selector, exc.msg)
            return False
        return True

    def run_script(self, code: str, *args: Any) -> Any:
        return self.driver.execute_script(code, *args)

    # ── Tabs ─────────────────────────────────────────────

    def open_background_tab(self, url: str) -> str:
        """Load ``url`` in a new tab and return focus to the caller's tab."""
        driver = self.driver
        origin = driver.current_window_handle
        driver.switch_to.new_window("tab")
        handle: str = driver.current_window_handle
        try:
            driver.get(url)
        except WebDriverException as exc:
            logger.debug("Tab load of %s failed: %s", url, exc.msg)
        driver.switch_to.window(origin)
        return handle

    def switch_to(self, handle: str) -> None:
        self.driver.switch_to.window(handle)

    def close_current_tab(self) -> None:
        self.driver.close()

    def list_open_handles(self) -> list[str]:
        return list(self.driver.window_handles)

    # ── DevTools ─────────────────────────────────────────

    def capture_network_log(self) -> list[dict[str, Any]]:
        """Drain the performance log collected since the last call."""
        if not self.capture_network:
            raise SessionError(
                "Network capture was not enabled for this session"
            )
        entries: list[dict[str, Any]] = self.driver.get_log("performance")
        return entries

    def run_debug_command(
        self, name: str, params: dict[str, Any],
    ) -> dict[str, Any]:
        result: dict[str, Any] = self.driver.execute_cdp_cmd(name, params)
        return result

    # ── Lifecycle ────────────────────────────────────────

    def clear_cookies(self) -> None:
        self.driver.delete_all_cookies()

    def _quit_driver(self) -> None:
        try:
            self._driver.quit()
        except WebDriverException as exc:
            logger.warning("Error while quitting browser: %s", exc.msg)

    def restart(self) -> None:
        """Start over with a fresh browser and an empty cookie jar."""
        logger.info("Restarting browser session")
        try:
            self.clear_cookies()
        except WebDriverException as exc:
            logger.debug("Could not clear cookies: %s", exc.msg)
        self._quit_driver()
        self._driver = self._driver_factory(self.capture_network)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._quit_driver()
        logger.debug("Browser session closed")


def create_session(capture_network: bool = False) -> SeleniumSession:
    """Default session factory used by the orchestrator and CLI."""
    return SeleniumSession(capture_network=capture_network)
