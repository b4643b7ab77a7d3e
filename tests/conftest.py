"""Shared fixtures for the offline harness tests.

Nothing here launches a browser or opens a socket: the page is a FakePage
driven by FakeCalculatorApp and the API client talks to the same app through
httpx.MockTransport.
"""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from fake_app import BASE_URL, FakeCalculatorApp
from ui_tests.api_client import CalculatorApi
from ui_tests.browser import Browser
from ui_tests.config import UiTestConfig

FAST_ENV = {
    "UI_BASE_URL": BASE_URL,
    "UI_NAVIGATION_TIMEOUT_MS": "1000",
    "UI_SETTLE_TIMEOUT": "0.3",
    "UI_RESOLVE_TIMEOUT": "0.05",
    "UI_ACTION_TIMEOUT": "0.2",
    "UI_POLL_INTERVAL": "0.01",
    "UI_API_TIMEOUT": "1",
}


@pytest.fixture
def config():
    return UiTestConfig(environ=FAST_ENV)


@pytest.fixture
def app():
    return FakeCalculatorApp()


@pytest.fixture
def page(app):
    return app.page


@pytest.fixture
def browser(page, config):
    return Browser(page, config=config)


@pytest_asyncio.fixture()
async def api(app, config):
    client = httpx.AsyncClient(transport=app.transport(), base_url=BASE_URL)
    async with CalculatorApi(client=client, config=config) as api:
        yield api
    await client.aclose()
