"""Session bootstrapping: API registration followed by a real UI login."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from ui_tests.api_client import CalculatorApi
from ui_tests.assertions import Exactly, first_satisfied, path_matches, status_matches, target_visible
from ui_tests.browser import Browser
from ui_tests.config import UiTestConfig, settings
from ui_tests.results import FixtureError, Observation, ScenarioResult
from ui_tests.workflows import TestUser, sign_in

logger = logging.getLogger(__name__)

# matched against the URL path only
LANDING = re.compile(r"^/dashboard(?:/|$)")


@dataclass(frozen=True)
class AuthenticatedSession:
    user: TestUser
    credential: Optional[str]
    ui_state: str  # "authenticated" or "unauthenticated"

    @property
    def authenticated(self) -> bool:
        return self.ui_state == "authenticated"


class SessionBootstrapper:
    """Create a user through the API and log it in through the UI.

    The API call makes the fixture deterministic; the UI login exercises the
    real authentication surface. A login that never lands is recorded as a
    failed checkpoint, not raised, so later checkpoints still run.
    """

    def __init__(self, browser: Browser, api: CalculatorApi, config: Optional[UiTestConfig] = None) -> None:
        self.browser = browser
        self.api = api
        self.config = config or settings

    async def register(self, user: TestUser, result: ScenarioResult) -> None:
        """Register ``user``; anything but 201 is a FixtureError."""
        try:
            response = await self.api.register(user.registration_payload())
        except httpx.HTTPError as exc:
            raise FixtureError(f"Could not reach the registration API for {user.username}: {exc}")
        if response.status_code != 201:
            raise FixtureError(
                f"Could not create test user {user.username} via API",
                status=response.status_code,
                body=response.text,
            )
        result.check("register user via API", status_matches(response.status_code, Exactly(201)))

    async def wait_for_login(self) -> Observation:
        """Wait for the success indicator or the landing path, then for the landing path.

        The indicator can show while the client-side redirect is still pending;
        the login only counts once the page sits on the landing path.
        """

        async def landing() -> Observation:
            return await path_matches(self.browser.page, LANDING, config=self.config)

        async def indicator() -> Observation:
            return await target_visible(self.browser, "alert.success", "login success indicator")

        first = await first_satisfied(landing, indicator)
        if not first.passed:
            return first
        return await landing()

    async def extract_credential(self) -> Optional[str]:
        key = self.config.session_token_key
        token = await self.browser.local_storage_item(key)
        if not token:
            token = await self.browser.cookie_value(key)
        if not token:
            logger.warning("No session credential under '%s' after login on %s", key, self.browser.page.url)
        return token or None

    async def create_authenticated_session(self, user: TestUser, result: ScenarioResult) -> AuthenticatedSession:
        await self.register(user, result)
        await sign_in(self.browser, user.username, user.password)

        accepted = result.check("UI login accepted", await self.wait_for_login())
        credential = await self.extract_credential() if accepted else None
        ui_state = "authenticated" if accepted else "unauthenticated"
        logger.info("Session for %s: %s (credential %s)", user.username, ui_state, "present" if credential else "absent")
        return AuthenticatedSession(user=user, credential=credential, ui_state=ui_state)
