import pytest
import pytest_asyncio

from ui_tests.api_client import CalculatorApi
from ui_tests.browser import Browser
from ui_tests.config import settings
from ui_tests.playwright_client import PlaywrightClient
from ui_tests.scenarios import ScenarioOrchestrator


@pytest_asyncio.fixture()
async def playwright_client():
    """Create a Playwright client instance."""
    async with PlaywrightClient() as client:
        yield client


@pytest_asyncio.fixture()
async def browser(playwright_client):
    """Create a Browser instance with the Playwright page."""
    return Browser(playwright_client.page)


@pytest_asyncio.fixture()
async def session_manager(playwright_client):
    """Isolated browser contexts for tests that drive several sessions at once.

    Usage:
        async def test_two_users(session_manager):
            first = await session_manager.scenario_session('first')
            second = await session_manager.scenario_session('second')
    """
    from ui_tests.parallel_session_manager import ParallelSessionManager

    async with ParallelSessionManager(
        browser=playwright_client.browser,
        base_url=settings.url(''),
        default_timeout_ms=settings.navigation_timeout_ms,
    ) as manager:
        yield manager


@pytest_asyncio.fixture()
async def api_client():
    """Direct HTTP client for the calculator API."""
    async with CalculatorApi() as api:
        yield api


@pytest_asyncio.fixture()
async def orchestrator(browser, api_client):
    """Scenario orchestrator bound to the test's browser page and API client."""
    return ScenarioOrchestrator(browser, api_client)


@pytest.fixture
def scenario_report():
    """Assertion helper that fails the test with the full checkpoint report."""
    def _assert_passed(result):
        assert result.passed, f"\n{result.report()}"
        return result
    return _assert_passed
