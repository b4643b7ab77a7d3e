"""Action primitives return Ok/Failed and never raise on a missing element."""

from __future__ import annotations

import anyio
import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from fake_page import FakeDialog, FakeElement, FakePage, button, field, option_pairs
from ui_tests.browser import Browser, ToolError
from ui_tests.results import FailureKind, Ok
from ui_tests.targets import LocatorKind, SelectorResolver, SelectorStrategy

pytestmark = pytest.mark.asyncio


@pytest.fixture
def blank(config):
    page = FakePage()
    return page, Browser(page, config=config)


class TestNavigate:

    async def test_navigate_joins_base_url(self, blank):
        page, browser = blank

        outcome = await browser.navigate("/login")

        assert outcome.ok
        assert page.visits == ["http://testserver/login"]
        assert browser.current_url == "http://testserver/login"

    async def test_navigate_retries_after_networkidle_timeout(self, blank):
        page, browser = blank
        page.goto_errors.append(PlaywrightTimeout("networkidle timed out"))

        outcome = await browser.navigate("/dashboard")

        assert outcome.ok, outcome
        assert len(page.visits) == 2

    async def test_navigate_failure_is_recorded_not_raised(self, blank):
        page, browser = blank
        page.goto_errors.append(PlaywrightError("net::ERR_CONNECTION_REFUSED"))

        outcome = await browser.navigate("/dashboard")

        assert not outcome.ok
        assert outcome.kind is FailureKind.TIMEOUT
        assert browser.failures == [outcome]

    async def test_goto_raises_tool_error(self, blank):
        page, browser = blank
        page.goto_errors.append(PlaywrightError("boom"))

        with pytest.raises(ToolError) as excinfo:
            await browser.goto("http://testserver/x", wait_until="load")

        assert excinfo.value.payload["url"] == "http://testserver/x"


class TestTypeInto:

    async def test_fills_first_match(self, blank):
        page, browser = blank
        username = field(page, "username")

        outcome = await browser.type_into("username", "alice")

        assert outcome == Ok("type_into", "username", "name=username")
        assert username.value == "alice"

    async def test_missing_field_is_resolution_failure(self, blank):
        _, browser = blank

        outcome = await browser.type_into("username", "alice")

        assert not outcome.ok
        assert outcome.kind is FailureKind.RESOLUTION
        assert "name=username" in outcome.message

    async def test_disabled_field_is_interaction_failure(self, blank):
        page, browser = blank
        field(page, "username", disabled=True)

        outcome = await browser.type_into("username", "alice")

        assert outcome.kind is FailureKind.INTERACTION

    async def test_values_are_stringified(self, blank):
        page, browser = blank
        email = field(page, "email")

        await browser.type_into("email", 42)

        assert email.value == "42"


class TestTypeIntoMany:

    async def test_discrete_inputs_filled_in_order(self, blank):
        page, browser = blank
        inputs = [page.add(FakeElement(), '[name="inputs[]"]') for _ in range(2)]

        outcome = await browser.type_into_many("calculation.inputs", [7, 3])

        assert outcome.ok
        assert [el.value for el in inputs] == ["7", "3"]

    async def test_combined_field_gets_comma_joined_values(self, config):
        page = FakePage()
        combined = page.add(FakeElement(), "#inputs")
        resolver = SelectorResolver(
            table={
                "calculation.inputs": (SelectorStrategy(LocatorKind.NAME, "inputs[]"),),
                "calculation.inputs.combined": (SelectorStrategy(LocatorKind.ID, "inputs"),),
            },
            config=config,
        )
        browser = Browser(page, resolver=resolver, config=config)

        outcome = await browser.type_into_many("calculation.inputs", [8, 2])

        assert outcome.ok
        assert "(combined)" in outcome.detail
        assert combined.value == "8,2"


class TestChoose:

    async def test_selects_by_value(self, blank):
        page, browser = blank
        select = page.add(FakeElement(options=option_pairs("addition", "division")), 'select[name="type"]')

        outcome = await browser.choose("calculation.type", "division")

        assert outcome.ok
        assert select.value == "division"

    async def test_falls_back_to_label(self, blank):
        page, browser = blank
        select = page.add(FakeElement(options=[("add", "addition")]), 'select[name="type"]')

        outcome = await browser.choose("calculation.type", "addition")

        assert outcome.ok
        assert select.value == "add"

    async def test_unknown_option_fails(self, blank):
        page, browser = blank
        page.add(FakeElement(options=option_pairs("addition")), 'select[name="type"]')

        outcome = await browser.choose("calculation.type", "modulo")

        assert outcome.kind is FailureKind.INTERACTION


class TestClick:

    async def test_click_runs_handler(self, blank):
        page, browser = blank
        clicked = []
        button(page, "Save", on_click=lambda: clicked.append(True))

        outcome = await browser.click("button.save")

        assert outcome.ok
        assert clicked == [True]

    async def test_click_first_clicks_only_the_winner(self, blank):
        page, browser = blank
        login = button(page, "Login")
        submit = page.add(FakeElement("Go", role="button"), 'button[type="submit"]')

        outcome = await browser.click_first("button.login", "button.sign_in", "button.submit")

        assert outcome.ok
        assert outcome.target in ("button.login", "button.submit")
        assert login.clicks + submit.clicks == 1, "exactly one candidate may be clicked"

    async def test_click_first_skips_candidate_that_rejects_the_click(self, blank):
        page, browser = blank
        collapsed = button(page, "Login", disabled=True)
        submit = page.add(FakeElement("Go", role="button"), 'button[type="submit"]')

        outcome = await browser.click_first("button.login", "button.sign_in", "button.submit")

        assert outcome.ok, outcome
        assert outcome.target == "button.submit"
        assert submit.clicks == 1
        assert collapsed.clicks == 0

    async def test_click_first_reports_click_failure_when_nothing_takes_it(self, blank):
        page, browser = blank
        button(page, "Login", disabled=True)

        outcome = await browser.click_first("button.login", "button.sign_in")

        assert not outcome.ok
        assert outcome.target == "button.login"
        assert outcome.kind is FailureKind.TIMEOUT

    async def test_click_first_waits_for_late_candidate(self, blank):
        page, browser = blank

        async def render_later():
            await anyio.sleep(0.03)
            button(page, "Sign in")

        async with anyio.create_task_group() as tg:
            tg.start_soon(render_later)
            outcome = await browser.click_first("button.login", "button.sign_in")

        assert outcome == Ok("click", "button.sign_in", 'css=button:has-text("Sign in")')

    async def test_click_first_without_candidates_fails(self, blank):
        _, browser = blank

        outcome = await browser.click_first("button.update", "button.save", timeout=0.05)

        assert not outcome.ok
        assert outcome.kind is FailureKind.RESOLUTION
        assert outcome.target == "button.update | button.save"

    async def test_disabled_button_times_out(self, blank):
        page, browser = blank
        button(page, "Delete", disabled=True)

        outcome = await browser.click("calculation.delete")

        assert outcome.kind is FailureKind.TIMEOUT


class TestClientState:

    async def test_local_storage_and_cookie_lookup(self, blank):
        page, browser = blank
        page.local_storage["access_token"] = "abc"
        page.context.cookie_jar.append({"name": "session", "value": "xyz"})

        assert await browser.local_storage_item("access_token") == "abc"
        assert await browser.cookie_value("session") == "xyz"
        assert await browser.cookie_value("missing") is None

    async def test_local_storage_unavailable_returns_none(self, blank):
        page, browser = blank
        page.evaluate_error = PlaywrightError("SecurityError: localStorage is not available")

        assert await browser.local_storage_item("access_token") is None

    async def test_clear_session_state(self, blank):
        page, browser = blank
        page.local_storage["access_token"] = "abc"
        page.session_storage["x"] = "y"
        page.context.cookie_jar.append({"name": "session", "value": "xyz"})

        outcome = await browser.clear_session_state()

        assert outcome.ok
        assert page.local_storage == {} and page.session_storage == {}
        assert page.context.cookie_jar == []

    async def test_dialog_accepted_when_registered_before_click(self, blank):
        page, browser = blank
        dialog = FakeDialog()

        browser.accept_next_dialog()
        delivered = await page.emit("dialog", dialog)

        assert delivered and dialog.accepted
        assert not await page.emit("dialog", FakeDialog()), "handler must fire only once"
