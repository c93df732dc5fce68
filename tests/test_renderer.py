"""
Tests for the shared headless browser in teetimes/providers/renderer.py.

WebDriver sessions are replaced with MagicMock drivers so the tab lifecycle
can be verified on success and on every failure path.
"""

from unittest.mock import MagicMock, PropertyMock

import pytest
from selenium.common.exceptions import (
    InvalidSessionIdException,
    TimeoutException,
    WebDriverException,
)

from teetimes.exceptions import RendererUnavailable, RenderTimeout, UpstreamUnavailable
from teetimes.providers.renderer import BrowserRenderer


def make_driver(page_source: str = "<html></html>") -> MagicMock:
    driver = MagicMock()
    driver.current_window_handle = "base-tab"
    driver.page_source = page_source
    return driver


@pytest.fixture
def driver() -> MagicMock:
    return make_driver("<div class='tee-time-card'></div>")


@pytest.fixture
def renderer(driver: MagicMock) -> BrowserRenderer:
    return BrowserRenderer(contexts=1, settle_seconds=0.1, driver_factory=lambda: driver)


class TestRendererLifecycle:
    """Tests for starting and stopping the browser pool."""

    @pytest.mark.asyncio
    async def test_start_and_close(self, renderer: BrowserRenderer, driver: MagicMock) -> None:
        assert renderer.is_running is False

        await renderer.start()
        assert renderer.is_running is True

        await renderer.close()
        assert renderer.is_running is False
        driver.quit.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_creates_one_driver_per_context(self) -> None:
        drivers = [make_driver(), make_driver(), make_driver()]
        factory = MagicMock(side_effect=drivers)
        renderer = BrowserRenderer(contexts=3, driver_factory=factory)

        await renderer.start()

        assert factory.call_count == 3
        await renderer.close()
        for created in drivers:
            created.quit.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_failure_raises_and_releases_started_drivers(self) -> None:
        first = make_driver()
        factory = MagicMock(side_effect=[first, WebDriverException("chrome not found")])
        renderer = BrowserRenderer(contexts=2, driver_factory=factory)

        with pytest.raises(RendererUnavailable):
            await renderer.start()

        assert renderer.is_running is False
        first.quit.assert_called_once()

    @pytest.mark.asyncio
    async def test_render_before_start_raises(self, renderer: BrowserRenderer) -> None:
        with pytest.raises(RendererUnavailable):
            await renderer.render("https://example.com")


class TestRender:
    """Tests for rendering a page in a fresh tab."""

    @pytest.mark.asyncio
    async def test_returns_page_source_and_closes_tab(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        await renderer.start()

        html = await renderer.render("https://example.com/tee-times", wait_for=".tee-time-card")

        assert html == "<div class='tee-time-card'></div>"
        driver.switch_to.new_window.assert_called_once_with("tab")
        driver.get.assert_called_once_with("https://example.com/tee-times")
        driver.close.assert_called_once()
        driver.switch_to.window.assert_called_once_with("base-tab")
        await renderer.close()

    @pytest.mark.asyncio
    async def test_navigation_timeout_closes_tab(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        driver.get.side_effect = TimeoutException("page load timeout")
        await renderer.start()

        with pytest.raises(RenderTimeout):
            await renderer.render("https://example.com/slow")

        driver.close.assert_called_once()
        driver.switch_to.window.assert_called_once_with("base-tab")
        await renderer.close()

    @pytest.mark.asyncio
    async def test_browser_error_closes_tab(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        driver.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")
        await renderer.start()

        with pytest.raises(UpstreamUnavailable):
            await renderer.render("https://example.invalid")

        driver.close.assert_called_once()
        await renderer.close()

    @pytest.mark.asyncio
    async def test_driver_returns_to_pool_after_failure(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        driver.get.side_effect = [TimeoutException("slow"), None]
        await renderer.start()

        with pytest.raises(RenderTimeout):
            await renderer.render("https://example.com/slow")
        html = await renderer.render("https://example.com/fast")

        assert html == "<div class='tee-time-card'></div>"
        assert driver.close.call_count == 2
        await renderer.close()

    @pytest.mark.asyncio
    async def test_tab_open_failure_raises_upstream_unavailable(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        driver.switch_to.new_window.side_effect = WebDriverException("no such window")
        await renderer.start()

        with pytest.raises(UpstreamUnavailable):
            await renderer.render("https://example.com/tee-times")

        driver.close.assert_not_called()
        await renderer.close()

    @pytest.mark.asyncio
    async def test_page_source_failure_closes_tab(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        type(driver).page_source = PropertyMock(side_effect=WebDriverException("tab crashed"))
        await renderer.start()

        with pytest.raises(UpstreamUnavailable, match="tab crashed"):
            await renderer.render("https://example.com/tee-times", wait_for=".tee-time-card")

        driver.close.assert_called_once()
        await renderer.close()


class TestSessionRecovery:
    """Tests for replacing WebDriver sessions that died."""

    @pytest.mark.asyncio
    async def test_lost_session_is_replaced(self) -> None:
        dead = make_driver()
        dead.switch_to.new_window.side_effect = InvalidSessionIdException("invalid session id")
        fresh = make_driver("<div>fresh</div>")
        factory = MagicMock(side_effect=[dead, fresh])
        renderer = BrowserRenderer(contexts=1, driver_factory=factory)
        await renderer.start()

        with pytest.raises(UpstreamUnavailable):
            await renderer.render("https://example.com/tee-times")

        dead.quit.assert_called_once()
        assert renderer.is_running is True
        assert await renderer.render("https://example.com/tee-times") == "<div>fresh</div>"
        await renderer.close()
        fresh.quit.assert_called_once()

    @pytest.mark.asyncio
    async def test_failed_replacement_reports_not_running_then_retries(self) -> None:
        dead = make_driver()
        dead.get.side_effect = InvalidSessionIdException("invalid session id")
        fresh = make_driver("<div>fresh</div>")
        factory = MagicMock(side_effect=[dead, WebDriverException("chrome crashed"), fresh])
        renderer = BrowserRenderer(contexts=1, driver_factory=factory)
        await renderer.start()

        with pytest.raises(RendererUnavailable):
            await renderer.render("https://example.com/tee-times")
        assert renderer.is_running is False

        assert await renderer.render("https://example.com/tee-times") == "<div>fresh</div>"
        assert renderer.is_running is True
        await renderer.close()

    @pytest.mark.asyncio
    async def test_ordinary_failures_keep_the_session(
        self, renderer: BrowserRenderer, driver: MagicMock
    ) -> None:
        driver.get.side_effect = WebDriverException("net::ERR_CONNECTION_RESET")
        await renderer.start()

        for _ in range(2):
            with pytest.raises(UpstreamUnavailable):
                await renderer.render("https://example.com/tee-times")

        driver.quit.assert_not_called()
        await renderer.close()
