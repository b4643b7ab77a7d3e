"""
Fixtures for journey-based testing.

Journeys need a live application; the reachability probe runs once per test
and skips instead of failing when nothing answers at UI_BASE_URL.
"""
import pytest
import pytest_asyncio

# Import shared fixtures from parent conftest
from ui_tests.conftest import (
    playwright_client,
    browser,
    api_client,
    orchestrator,
    scenario_report,
)
from ui_tests.api_client import CalculatorApi
from ui_tests.config import settings


@pytest_asyncio.fixture(autouse=True)
async def require_application():
    """Skip the journey when the calculator app is not running."""
    async with CalculatorApi() as api:
        if not await api.is_reachable():
            pytest.skip(f"Calculator app not reachable at {settings.base_url}")
