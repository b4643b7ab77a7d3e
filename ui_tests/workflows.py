"""Reusable test data and UI workflows for the calculator journeys."""
from __future__ import annotations

import itertools
import logging
import re
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError

from ui_tests.browser import Browser
from ui_tests.results import ActionOutcome, Failed, FailureKind, Ok
from ui_tests.targets import Found, LocatorKind

logger = logging.getLogger(__name__)

_sequence = itertools.count()


def unique_token() -> str:
    """Millisecond timestamp, bumped by a per-process counter so two calls never collide."""
    return str(int(time.time() * 1000) + next(_sequence))


@dataclass(frozen=True)
class TestUser:
    __test__ = False  # not a pytest test class

    username: str
    email: str
    password: str
    first_name: str
    last_name: str

    def registration_payload(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "email": self.email,
            "password": self.password,
            "confirm_password": self.password,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }

    def with_email(self, email: str, username: Optional[str] = None) -> "TestUser":
        return replace(self, email=email, username=username or self.username)


def generate_test_user(
    prefix: str = "e2e_user",
    password: str = "TestPass123!",
    first_name: str = "E2E",
    last_name: str = "User",
    token: Optional[str] = None,
) -> TestUser:
    uniq = token or unique_token()
    return TestUser(
        username=f"{prefix}_{uniq}",
        email=f"{prefix}_{uniq}@example.com",
        password=password,
        first_name=first_name,
        last_name=last_name,
    )


@dataclass(frozen=True)
class Calculation:
    """A calculation as the harness submits it; ``expected`` is what the app should display."""

    type: str
    inputs: Tuple[Any, ...]
    expected: Optional[str] = None


# ---- account workflows ----------------------------------------------------------

REGISTER_FIELDS = ("username", "email", "password", "confirm_password", "first_name", "last_name")


async def fill_register_form(browser: Browser, user: TestUser) -> List[ActionOutcome]:
    """Open /register, fill every field and submit."""
    outcomes: List[ActionOutcome] = [await browser.navigate("/register")]
    payload = user.registration_payload()
    for field in REGISTER_FIELDS:
        outcomes.append(await browser.type_into(field, payload[field]))
    outcomes.append(await browser.click_first("button.register", "button.sign_up", "button.submit"))
    return outcomes


async def sign_in(browser: Browser, username: str, password: str) -> List[ActionOutcome]:
    """Open /login and submit credentials; the redirect that follows is asynchronous."""
    return [
        await browser.navigate("/login"),
        await browser.type_into("username", username),
        await browser.type_into("password", password),
        await browser.click_first("button.login", "button.sign_in", "button.submit"),
    ]


async def sign_out(browser: Browser) -> List[ActionOutcome]:
    """Visit /logout and drop all client-held session state."""
    return [await browser.navigate("/logout"), await browser.clear_session_state()]


# ---- calculation workflows ------------------------------------------------------

async def _fill_calculation_form(browser: Browser, calc: Calculation) -> List[ActionOutcome]:
    return [
        await browser.choose("calculation.type", calc.type),
        await browser.type_into_many("calculation.inputs", calc.inputs),
    ]


async def add_calculation(browser: Browser, calc: Calculation) -> List[ActionOutcome]:
    outcomes = [await browser.navigate("/dashboard")]
    outcomes.extend(await _fill_calculation_form(browser, calc))
    outcomes.append(
        await browser.click_first("button.add", "button.create", "button.submit_text", "button.submit")
    )
    return outcomes


async def edit_calculation_form(browser: Browser, calc: Calculation) -> List[ActionOutcome]:
    """Fill the edit form already on screen and save it."""
    outcomes = await _fill_calculation_form(browser, calc)
    outcomes.append(await browser.click_first("button.update", "button.save", "button.submit"))
    return outcomes


async def delete_first(browser: Browser) -> ActionOutcome:
    """Click the first delete control, accepting the confirm dialog if one opens."""
    browser.accept_next_dialog()
    return await browser.click("calculation.delete")


_ID_IN_HREF = re.compile(r"/(?:view|edit)-calculation/([^/?#]+)")


async def first_calculation_id(browser: Browser) -> Optional[str]:
    """Read the id of the first listed calculation from a view/edit link href."""
    for target in ("calculation.view", "calculation.edit"):
        resolved = await browser.resolver.resolve(target, browser.page)
        if not isinstance(resolved, Found):
            continue
        try:
            href = await resolved.locator.first.get_attribute("href", timeout=browser.config.action_timeout * 1000)
        except PlaywrightError:
            continue
        match = _ID_IN_HREF.search(href or "")
        if match:
            return match.group(1)
    return None


async def listing_scope(browser: Browser) -> Optional[Any]:
    """Locator for the calculations listing, or None when the page has none."""
    resolved = await browser.resolver.resolve("calculations.listing", browser.page)
    return resolved.locator.first if isinstance(resolved, Found) else None


def rows_locator(browser: Browser) -> Any:
    """One locator matching every known row shape; counts zero on an empty listing."""
    selectors = [
        strategy.value
        for strategy in browser.resolver.strategies("calculations.rows")
        if strategy.kind is LocatorKind.CSS
    ]
    return browser.page.locator(", ".join(selectors))


def all_ok(outcomes: Sequence[ActionOutcome]) -> ActionOutcome:
    """Collapse a workflow's outcomes: the first failure, else a single Ok."""
    for outcome in outcomes:
        if not outcome.ok:
            return outcome
    if not outcomes:
        return Failed("workflow", "-", FailureKind.INTERACTION, "no steps ran")
    return Ok("workflow", outcomes[-1].target)
