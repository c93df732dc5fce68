import asyncio
import logging
import os
from collections.abc import Callable

from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSessionIdException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from teetimes.exceptions import RendererUnavailable, RenderTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class BrowserRenderer:
    """
    Shared headless Chrome handle used by browser-rendered scrapers.

    The renderer owns a small pool of WebDriver sessions created once at
    startup. Every render borrows one session, opens a fresh tab, loads the
    page, waits briefly for tee sheet content and closes the tab again on
    every exit path, so a failing page never leaks browser state.

    Implementation Note:
        Selenium is blocking, so each render runs in asyncio.to_thread(). A
        session is only handed back to the pool once its worker thread has
        finished, even if the awaiting task was cancelled in the meantime.
    """

    def __init__(
        self,
        contexts: int = 2,
        page_load_timeout: float = 30.0,
        settle_seconds: float = 2.0,
        chrome_binary_path: str = "",
        chromedriver_path: str = "",
        driver_factory: Callable[[], webdriver.Chrome] | None = None,
    ) -> None:
        self.contexts = max(1, contexts)
        self.page_load_timeout = page_load_timeout
        self.settle_seconds = settle_seconds
        self.chrome_binary_path = chrome_binary_path
        self.chromedriver_path = chromedriver_path
        self._driver_factory = driver_factory or self._create_driver
        self._drivers: list[webdriver.Chrome | None] = []
        self._pool: asyncio.Queue[int] = asyncio.Queue()

    @property
    def is_running(self) -> bool:
        return any(driver is not None for driver in self._drivers)

    async def __aenter__(self) -> "BrowserRenderer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _create_driver(self) -> webdriver.Chrome:
        """Create a headless Chrome WebDriver instance."""
        options = Options()
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--no-first-run")
        options.add_argument("--window-size=1920,1080")
        options.add_argument(f"--user-agent={USER_AGENT}")
        options.add_argument("--disable-blink-features=AutomationControlled")
        if self.chrome_binary_path:
            options.binary_location = self.chrome_binary_path

        # Explicit ChromeDriver path first, then ChromeDriverManager
        chromedriver_path = self.chromedriver_path or os.environ.get("CHROMEDRIVER_PATH")
        if chromedriver_path and os.path.exists(chromedriver_path):
            service = Service(chromedriver_path)
        else:
            service = Service(ChromeDriverManager().install())
        driver = webdriver.Chrome(service=service, options=options)
        driver.set_page_load_timeout(self.page_load_timeout)
        return driver

    async def start(self) -> None:
        """Launch the WebDriver pool. Raises RendererUnavailable if Chrome cannot start."""
        if self._drivers:
            return
        drivers: list[webdriver.Chrome | None] = []
        self._drivers = drivers
        try:
            for index in range(self.contexts):
                drivers.append(await asyncio.to_thread(self._driver_factory))
                self._pool.put_nowait(index)
        except Exception as e:
            logger.exception(f"Failed to start headless browser: {e}")
            await self.close()
            raise RendererUnavailable(f"Headless browser failed to start: {e}") from e
        logger.info(f"Headless browser initialized with {self.contexts} context(s)")

    async def render(self, url: str, wait_for: str | None = None) -> str:
        """
        Load a URL in a fresh tab and return the rendered page source.

        Args:
            url: The page to load.
            wait_for: Optional CSS selector; after navigation the renderer waits
                up to settle_seconds for it to appear before capturing the DOM.

        Raises:
            RendererUnavailable: If the browser is not running or a lost
                session could not be replaced.
            RenderTimeout: If navigation exceeds page_load_timeout.
            UpstreamUnavailable: For any other browser-level failure.
        """
        if not self._drivers:
            raise RendererUnavailable("Headless browser is not running")

        drivers = self._drivers
        index = await self._pool.get()
        task = asyncio.ensure_future(
            asyncio.to_thread(self._render_in_slot, drivers, index, url, wait_for)
        )
        task.add_done_callback(lambda finished: self._release(drivers, index, finished))
        return await asyncio.shield(task)

    def _release(
        self, drivers: list[webdriver.Chrome | None], index: int, finished: asyncio.Future[str]
    ) -> None:
        if not finished.cancelled():
            # Marks the exception retrieved when the caller was cancelled
            finished.exception()
        if drivers is self._drivers:
            self._pool.put_nowait(index)

    def _render_in_slot(
        self,
        drivers: list[webdriver.Chrome | None],
        index: int,
        url: str,
        wait_for: str | None,
    ) -> str:
        """
        Render with the driver in one pool slot, replacing the driver when its
        session is gone. A slot whose replacement failed stays empty and is
        retried on its next render.
        """
        driver = drivers[index]
        if driver is None:
            driver = self._replace_driver(drivers, index, None)
        try:
            return self._render_sync(driver, url, wait_for)
        except UpstreamUnavailable as e:
            if isinstance(e.__cause__, InvalidSessionIdException):
                self._replace_driver(drivers, index, driver)
            raise

    def _replace_driver(
        self,
        drivers: list[webdriver.Chrome | None],
        index: int,
        dead: webdriver.Chrome | None,
    ) -> webdriver.Chrome:
        if dead is not None:
            logger.warning(f"Headless browser session {index} lost, starting a replacement")
            self._quit_driver(dead)
        drivers[index] = None
        try:
            driver = self._driver_factory()
        except Exception as e:
            logger.exception(f"Failed to replace headless browser session {index}: {e}")
            raise RendererUnavailable(f"Headless browser session could not be replaced: {e}") from e
        if drivers is not self._drivers:
            # The renderer was closed while the replacement started
            self._quit_driver(driver)
            raise RendererUnavailable("Headless browser is not running")
        drivers[index] = driver
        return driver

    def _render_sync(self, driver: webdriver.Chrome, url: str, wait_for: str | None) -> str:
        """Synchronous render with full tab lifecycle (open -> load -> close)."""
        try:
            base_handle = driver.current_window_handle
            driver.switch_to.new_window("tab")
        except WebDriverException as e:
            raise UpstreamUnavailable(f"Browser failed to open a tab: {e.msg}") from e

        try:
            try:
                driver.get(url)
            except TimeoutException as e:
                raise RenderTimeout(
                    f"Navigation to {url} exceeded {self.page_load_timeout:.0f}s"
                ) from e

            if wait_for:
                try:
                    WebDriverWait(driver, self.settle_seconds).until(
                        expected_conditions.presence_of_element_located(
                            (By.CSS_SELECTOR, wait_for)
                        )
                    )
                except TimeoutException:
                    logger.debug(f"No element matching {wait_for!r} within {self.settle_seconds}s")

            return driver.page_source
        except WebDriverException as e:
            raise UpstreamUnavailable(f"Browser failed to render {url}: {e.msg}") from e
        finally:
            self._close_tab(driver, base_handle)

    def _close_tab(self, driver: webdriver.Chrome, base_handle: str) -> None:
        try:
            driver.close()
            driver.switch_to.window(base_handle)
        except WebDriverException as e:
            logger.warning(f"Failed to close browser tab: {e}")

    def _quit_driver(self, driver: webdriver.Chrome) -> None:
        try:
            driver.quit()
        except WebDriverException as e:
            logger.warning(f"Error while quitting browser: {e}")

    async def close(self) -> None:
        """Quit every WebDriver session."""
        drivers, self._drivers = self._drivers, []
        self._pool = asyncio.Queue()
        for driver in drivers:
            if driver is not None:
                await asyncio.to_thread(self._quit_driver, driver)
        if drivers:
            logger.info("Headless browser closed")
