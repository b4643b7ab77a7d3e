"""Scenario orchestration for the calculator BREAD journeys.

Each scenario is a fixed sequence: setup (API registration + UI login), then
alternating actions and checkpoints. A ``FixtureError`` during setup ends the
scenario; every other failure is recorded and the journey moves on to the next
checkpoint that does not depend on the failed one.

Every action that can start an asynchronous UI transition (login, save,
delete, logout) is followed by a bounded-wait checkpoint.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import httpx

from ui_tests.api_client import CalculatorApi, calculation_id
from ui_tests.assertions import (
    InClass,
    Not,
    NotInClass,
    StatusExpectation,
    count_stays,
    first_satisfied,
    path_matches,
    result_pattern,
    status_matches,
    target_visible,
    text_absent,
    text_visible,
)
from ui_tests.browser import Browser
from ui_tests.config import UiTestConfig, settings
from ui_tests.results import FailureKind, FixtureError, Observation, ScenarioResult, outcome_observation
from ui_tests.session import LANDING, AuthenticatedSession, SessionBootstrapper
from ui_tests.targets import Found
from ui_tests.workflows import (
    Calculation,
    add_calculation,
    all_ok,
    delete_first,
    edit_calculation_form,
    fill_register_form,
    first_calculation_id,
    generate_test_user,
    listing_scope,
    rows_locator,
    sign_in,
    sign_out,
)

logger = logging.getLogger(__name__)

# path patterns, matched against the URL path only
LOGIN = re.compile(r"^/login(?:/|$)")
VIEW_PAGE = re.compile(r"^/view-calculation/")
EDIT_PAGE = re.compile(r"^/edit-calculation/")
AFTER_SAVE = re.compile(r"^/(?:dashboard(?:/|$)|view-calculation/)")

INVALID_INPUTS = ("abc", "def")
PROTECTED_PROBE_ID = "00000000-0000-0000-0000-000000000000"


@dataclass(frozen=True)
class CrudPlan:
    """Expected values are literals: the harness never computes results."""

    create: Calculation = Calculation("addition", (7, 3), "10")
    edit: Calculation = Calculation("multiplication", (8, 2), "16")


class ScenarioOrchestrator:
    """Run named scenarios against one browser page and one API client."""

    SCENARIOS: Dict[str, str] = {
        "auth": "auth_scenario",
        "crud": "crud_scenario",
        "negative": "negative_scenario",
        "registration_ui": "registration_ui_scenario",
    }

    def __init__(
        self,
        browser: Browser,
        api: CalculatorApi,
        config: Optional[UiTestConfig] = None,
        crud_plan: Optional[CrudPlan] = None,
    ) -> None:
        self.browser = browser
        self.api = api
        self.config = config or settings
        self.crud_plan = crud_plan or CrudPlan()
        self.bootstrapper = SessionBootstrapper(browser, api, self.config)

    @property
    def page(self):
        return self.browser.page

    async def run(self, name: str) -> ScenarioResult:
        if name not in self.SCENARIOS:
            raise KeyError(f"Unknown scenario '{name}'. Known: {', '.join(sorted(self.SCENARIOS))}")
        result = ScenarioResult(name)
        first_action = len(self.browser.action_log)
        logger.info("Scenario '%s' starting against %s", name, self.config.base_url)
        try:
            await getattr(self, self.SCENARIOS[name])(result)
        except FixtureError as exc:
            result.abort(exc)
        finally:
            result.attach_actions(self.browser.action_log[first_action:])
            result.finish()
        logger.info("Scenario '%s' %s", name, "passed" if result.passed else "failed")
        return result

    # ---- helpers -----------------------------------------------------------------
    async def _expect_status(
        self,
        result: ScenarioResult,
        name: str,
        request: Callable[[], Awaitable[httpx.Response]],
        expectation: StatusExpectation,
    ) -> Optional[httpx.Response]:
        try:
            response = await request()
        except httpx.HTTPError as exc:
            result.fail(name, expectation.description, f"{type(exc).__name__}: {exc}", FailureKind.ASSERTION)
            return None
        result.check(name, status_matches(response.status_code, expectation, response.text))
        return response

    async def _listing_checks(self, result: ScenarioResult, visible: str, absent: Optional[str] = None) -> None:
        scope = await listing_scope(self.browser)
        result.check(
            f"result {visible} shown in listing",
            await text_visible(self.page, result_pattern(visible), scope=scope, config=self.config),
        )
        if absent is not None:
            result.check(
                f"result {absent} no longer shown in listing",
                await text_absent(self.page, result_pattern(absent), scope=scope, config=self.config),
            )

    def _missing_credential(self, result: ScenarioResult) -> None:
        result.fail(
            "session credential available",
            f"'{self.config.session_token_key}' held by the browser after login",
            "no credential",
            FailureKind.ASSERTION,
        )

    async def _create(
        self, calc: Calculation, session: AuthenticatedSession, result: ScenarioResult
    ) -> Optional[str]:
        """Create ``calc`` through the configured channel; return its id when known."""
        if self.config.calc_create_mode == "api":
            if session.credential:
                response = await self._expect_status(
                    result,
                    "calculation created via API",
                    lambda: self.api.create_calculation(calc.type, calc.inputs, session.credential),
                    InClass(2),
                )
                return calculation_id(response) if response is not None else None
            self._missing_credential(result)
            logger.warning("Falling back to UI creation for %s", calc)

        outcome = all_ok(await add_calculation(self.browser, calc))
        result.check("calculation submitted via UI", outcome_observation(outcome, "calculation form filled and submitted"))
        return None

    # ---- scenarios ---------------------------------------------------------------
    async def auth_scenario(self, result: ScenarioResult) -> None:
        """Register via API, log in via UI, then duplicate and malformed registrations."""
        user = generate_test_user("e2e_user", first_name="E2E", last_name="User")
        await self.bootstrapper.create_authenticated_session(user, result)
        result.check("authenticated landing reached", await path_matches(self.page, LANDING, config=self.config))

        await self._expect_status(
            result,
            "duplicate registration rejected",
            lambda: self.api.register(user.registration_payload()),
            Not(201),
        )
        malformed = user.with_email("not-an-email", username=f"bad_{user.username}")
        await self._expect_status(
            result,
            "malformed email registration rejected",
            lambda: self.api.register(malformed.registration_payload()),
            Not(201),
        )

    async def crud_scenario(self, result: ScenarioResult) -> None:
        """Add, browse, read, edit and delete one calculation."""
        plan = self.crud_plan
        user = generate_test_user("e2e_calc", password="CalcPass123!", first_name="Calc", last_name="Tester")
        session = await self.bootstrapper.create_authenticated_session(user, result)

        # Add
        calc_id = await self._create(plan.create, session, result)

        # Browse
        await self.browser.navigate("/dashboard")
        listing = await self.browser.resolver.resolve("calculations.listing", self.page)
        if isinstance(listing, Found):
            result.check("listing view present", Observation(True, "calculations listing present", str(listing.strategy)))
        else:
            result.fail("listing view present", "calculations listing present", listing.describe(), FailureKind.RESOLUTION)
        await self._listing_checks(result, plan.create.expected)
        if calc_id is None:
            calc_id = await first_calculation_id(self.browser)

        # Read
        view = await self.browser.click("calculation.view")
        if result.check("view control clicked", outcome_observation(view, "a View/Details control is clickable")):
            if result.check("view page opened", await path_matches(self.page, VIEW_PAGE, config=self.config)):
                for value in plan.create.inputs:
                    result.check(
                        f"input {value} shown on view page",
                        await text_visible(self.page, result_pattern(value), config=self.config),
                    )

        # Edit
        await self.browser.navigate("/dashboard")
        edit = await self.browser.click("calculation.edit")
        if not edit.ok and calc_id:
            logger.info("Edit control not found, opening /edit-calculation/%s directly", calc_id)
            edit = await self.browser.navigate(f"/edit-calculation/{calc_id}")
        latest = plan.create.expected
        if result.check("edit control reachable", outcome_observation(edit, "an Edit control or a known calculation id")):
            if result.check("edit page opened", await path_matches(self.page, EDIT_PAGE, config=self.config)):
                saved = all_ok(await edit_calculation_form(self.browser, plan.edit))
                if result.check("edit form submitted", outcome_observation(saved, "edit form filled and saved")):
                    result.check("edit saved", await self._saved())
                    await self.browser.navigate("/dashboard")
                    await self._listing_checks(result, plan.edit.expected, absent=plan.create.expected)
                    latest = plan.edit.expected

        # Delete
        await self.browser.navigate("/dashboard")
        deleted = await delete_first(self.browser)
        if result.check("delete control clicked", outcome_observation(deleted, "a Delete control is clickable")):
            scope = await listing_scope(self.browser)
            for value in dict.fromkeys((latest, plan.create.expected, plan.edit.expected)):
                result.check(
                    f"result {value} absent after delete",
                    await text_absent(self.page, result_pattern(value), scope=scope, config=self.config),
                )

    async def _saved(self) -> Observation:
        async def left_edit_page() -> Observation:
            return await path_matches(self.page, AFTER_SAVE, config=self.config)

        async def success_alert() -> Observation:
            return await target_visible(self.browser, "alert.success", "save success indicator")

        return await first_satisfied(left_edit_page, success_alert)

    async def negative_scenario(self, result: ScenarioResult) -> None:
        """Reject non-numeric inputs, then deny protected routes once signed out."""
        user = generate_test_user("e2e_neg", password="NegPass123!", first_name="Neg", last_name="User")
        session = await self.bootstrapper.create_authenticated_session(user, result)
        invalid = Calculation("addition", INVALID_INPUTS)

        if session.credential:
            await self._expect_status(
                result,
                "non-numeric inputs rejected by API",
                lambda: self.api.create_calculation(invalid.type, invalid.inputs, session.credential),
                NotInClass(2),
            )
        else:
            self._missing_credential(result)

        await self.browser.navigate("/dashboard")
        rows = rows_locator(self.browser)
        before = await rows.count()
        submitted = all_ok(await add_calculation(self.browser, invalid))
        if not submitted.ok:
            logger.info("Invalid calculation form not fully submitted: %s", submitted.message)

        async def error_shown() -> Observation:
            return await target_visible(self.browser, "calculation.error", "validation error")

        async def nothing_added() -> Observation:
            return await count_stays(rows, before, "listing rows", config=self.config)

        result.check("non-numeric inputs rejected in UI", await first_satisfied(error_shown, nothing_added))

        await sign_out(self.browser)
        for route in (f"/edit-calculation/{PROTECTED_PROBE_ID}", "/dashboard"):
            await self.browser.navigate(route)
            result.check(
                f"{route} redirects to login when signed out",
                await path_matches(self.page, LOGIN, config=self.config),
            )

        await self._expect_status(
            result,
            "calculation API rejects unauthenticated writes",
            lambda: self.api.create_calculation("addition", (1, 2)),
            NotInClass(2),
        )

    async def registration_ui_scenario(self, result: ScenarioResult) -> None:
        """Register through the form, then log in with the new account."""
        user = generate_test_user("e2e_reg", first_name="Reg", last_name="User")
        submitted = all_ok(await fill_register_form(self.browser, user))
        if not result.check("registration form submitted", outcome_observation(submitted, "register form filled and submitted")):
            return

        async def sent_to_login() -> Observation:
            return await path_matches(self.page, LOGIN, config=self.config)

        async def success_alert() -> Observation:
            return await target_visible(self.browser, "alert.success", "registration success indicator")

        result.check("registration accepted", await first_satisfied(sent_to_login, success_alert))

        await sign_in(self.browser, user.username, user.password)
        result.check("UI login accepted", await self.bootstrapper.wait_for_login())
        result.check("authenticated landing reached", await path_matches(self.page, LANDING, config=self.config))
