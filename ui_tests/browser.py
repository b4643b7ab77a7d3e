"""Thin wrapper around direct Playwright exposing the journey action primitives.

``type_into``, ``click``, ``click_first``, ``choose`` and ``navigate`` resolve a
semantic target, interact within a bounded timeout and return ``Ok`` or
``Failed``. They never raise on a missing element or a failed interaction; the
caller decides whether the step mattered.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import anyio
from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from ui_tests.config import UiTestConfig, settings
from ui_tests.results import ActionOutcome, Failed, FailureKind, Ok
from ui_tests.targets import Found, SelectorResolver

logger = logging.getLogger(__name__)


@dataclass
class ToolError(Exception):
    """Raised when a raw browser operation fails."""

    name: str
    payload: Dict[str, Any]
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


def _failure_kind(exc: Exception) -> FailureKind:
    return FailureKind.TIMEOUT if isinstance(exc, PlaywrightTimeout) else FailureKind.INTERACTION


class Browser:
    """Convenience wrapper over a Playwright page with semantic-target primitives."""

    def __init__(
        self,
        page: Page,
        resolver: Optional[SelectorResolver] = None,
        config: Optional[UiTestConfig] = None,
    ) -> None:
        self._page = page
        self.config = config or settings
        self.resolver = resolver or SelectorResolver(config=self.config)
        self.current_url: str | None = None
        self.action_log: List[ActionOutcome] = []

    @property
    def page(self) -> Page:
        return self._page

    def _record(self, outcome: ActionOutcome) -> ActionOutcome:
        self.action_log.append(outcome)
        if not outcome.ok:
            logger.warning("%s(%s) did not complete: %s", outcome.action, outcome.target, outcome.message)
        return outcome

    def _timeout_ms(self, timeout: Optional[float]) -> float:
        return (timeout if timeout is not None else self.config.action_timeout) * 1000

    @property
    def failures(self) -> List[Failed]:
        return [outcome for outcome in self.action_log if not outcome.ok]

    # ---- raw operations (raise ToolError) -----------------------------------------
    async def goto(self, url: str, wait_until: str = "networkidle", timeout: Optional[int] = None) -> Dict[str, Any]:
        """Navigate to URL and return response with status.

        "networkidle" can time out on pages holding background connections, so a
        timeout is retried once with "domcontentloaded".
        """
        timeout = timeout if timeout is not None else self.config.navigation_timeout_ms
        try:
            response = await self._page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeout as exc:
            if wait_until != "networkidle":
                raise ToolError(name="goto", payload={"url": url, "wait_until": wait_until}, message=str(exc))
            try:
                response = await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout)
            except PlaywrightError:
                raise ToolError(name="goto", payload={"url": url, "wait_until": wait_until}, message=str(exc))
        except PlaywrightError as exc:
            raise ToolError(name="goto", payload={"url": url, "wait_until": wait_until}, message=str(exc))
        self.current_url = self._page.url
        return {"url": self.current_url, "status": response.status if response else None}

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Execute JavaScript in the page context."""
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise ToolError(name="evaluate", payload={"script": script}, message=str(exc))

    # ---- action primitives (return Ok | Failed) ------------------------------------
    async def navigate(self, path: str, timeout: Optional[int] = None) -> ActionOutcome:
        """Open ``path`` (relative to the base URL, or absolute)."""
        url = path if "://" in path else self.config.url(path)
        try:
            result = await self.goto(url, timeout=timeout)
        except ToolError as exc:
            return self._record(Failed("navigate", path, FailureKind.TIMEOUT, exc.message))
        return self._record(Ok("navigate", path, f"{result['url']} ({result['status']})"))

    async def type_into(self, target: str, value: Any, timeout: Optional[float] = None) -> ActionOutcome:
        """Fill the first element of ``target`` with ``value``."""
        resolved = await self.resolver.resolve(target, self._page)
        if not isinstance(resolved, Found):
            return self._record(Failed("type_into", target, FailureKind.RESOLUTION, resolved.describe()))
        try:
            await resolved.locator.first.fill(str(value), timeout=self._timeout_ms(timeout))
        except PlaywrightError as exc:
            return self._record(Failed("type_into", target, _failure_kind(exc), str(exc)))
        return self._record(Ok("type_into", target, str(resolved.strategy)))

    async def type_into_many(self, target: str, values: Sequence[Any], timeout: Optional[float] = None) -> ActionOutcome:
        """Fill ``len(values)`` discrete inputs in order.

        Falls back to a single combined field holding the comma-joined values when
        the page does not expose enough discrete inputs.
        """
        values = [str(v) for v in values]
        resolved = await self.resolver.resolve(target, self._page, minimum=len(values))
        if not isinstance(resolved, Found):
            return self._record(Failed("type_into_many", target, FailureKind.RESOLUTION, resolved.describe()))
        timeout_ms = self._timeout_ms(timeout)
        try:
            if resolved.combined:
                await resolved.locator.first.fill(",".join(values), timeout=timeout_ms)
            else:
                for index, value in enumerate(values):
                    await resolved.locator.nth(index).fill(value, timeout=timeout_ms)
        except PlaywrightError as exc:
            return self._record(Failed("type_into_many", target, _failure_kind(exc), str(exc)))
        detail = f"{resolved.strategy}{' (combined)' if resolved.combined else ''}"
        return self._record(Ok("type_into_many", target, detail))

    async def choose(self, target: str, option: str, timeout: Optional[float] = None) -> ActionOutcome:
        """Select ``option`` by value, then by visible label."""
        resolved = await self.resolver.resolve(target, self._page)
        if not isinstance(resolved, Found):
            return self._record(Failed("choose", target, FailureKind.RESOLUTION, resolved.describe()))
        select = resolved.locator.first
        timeout_ms = self._timeout_ms(timeout)
        try:
            await select.select_option(option, timeout=timeout_ms)
        except PlaywrightError:
            try:
                await select.select_option(label=option, timeout=timeout_ms)
            except PlaywrightError as exc:
                return self._record(Failed("choose", target, _failure_kind(exc), str(exc)))
        return self._record(Ok("choose", target, option))

    async def click(self, target: str, timeout: Optional[float] = None) -> ActionOutcome:
        resolved = await self.resolver.resolve(target, self._page)
        if not isinstance(resolved, Found):
            return self._record(Failed("click", target, FailureKind.RESOLUTION, resolved.describe()))
        return await self._click_resolved(resolved, timeout)

    async def _click_resolved(self, resolved: Found, timeout: Optional[float]) -> ActionOutcome:
        try:
            await resolved.locator.first.click(timeout=self._timeout_ms(timeout))
        except PlaywrightError as exc:
            return self._record(Failed("click", resolved.target, _failure_kind(exc), str(exc)))
        self.current_url = self._page.url
        return self._record(Ok("click", resolved.target, str(resolved.strategy)))

    async def click_first(self, *targets: str, timeout: Optional[float] = None) -> ActionOutcome:
        """Race equivalent targets; the first one that takes the click wins.

        Targets resolve concurrently and resolved candidates click one at a time,
        so at most one element is ever clicked. A candidate whose click fails
        (hidden, disabled) hands over to the next resolved one. Once a click
        lands the remaining attempts are cancelled, never retried.
        """
        winner: Optional[Ok] = None
        misses: List[Failed] = []
        turn = anyio.Lock()
        race_timeout = timeout if timeout is not None else self.config.action_timeout

        async def attempt(target: str, scope: anyio.CancelScope) -> None:
            nonlocal winner
            resolved = await self.resolver.resolve(target, self._page, timeout=race_timeout)
            if not isinstance(resolved, Found):
                return
            async with turn:
                if winner is not None:
                    return
                try:
                    await resolved.locator.first.click(timeout=self._timeout_ms(timeout))
                except PlaywrightError as exc:
                    logger.debug("click_first: %s resolved but did not take the click: %s", target, exc)
                    misses.append(Failed("click", target, _failure_kind(exc), str(exc)))
                    return
                winner = Ok("click", target, str(resolved.strategy))
                scope.cancel()

        async with anyio.create_task_group() as tg:
            for target in targets:
                tg.start_soon(attempt, target, tg.cancel_scope)

        if winner is not None:
            self.current_url = self._page.url
            return self._record(winner)
        if misses:
            return self._record(misses[0])
        label = " | ".join(targets)
        return self._record(Failed("click_first", label, FailureKind.RESOLUTION, "no candidate resolved"))

    # ---- client-held state ---------------------------------------------------------
    async def local_storage_item(self, key: str) -> Optional[str]:
        try:
            return await self.evaluate("(key) => window.localStorage.getItem(key)", key)
        except ToolError as exc:
            logger.debug("localStorage unavailable on %s: %s", self._page.url, exc.message)
            return None

    async def cookie_value(self, name: str) -> Optional[str]:
        for cookie in await self._page.context.cookies():
            if cookie.get("name") == name:
                return cookie.get("value")
        return None

    async def clear_session_state(self) -> ActionOutcome:
        """Drop cookies, local storage and session storage for the current context."""
        await self._page.context.clear_cookies()
        try:
            await self.evaluate("() => { window.localStorage.clear(); window.sessionStorage.clear(); }")
        except ToolError as exc:
            return self._record(Failed("clear_session_state", "storage", FailureKind.INTERACTION, exc.message))
        return self._record(Ok("clear_session_state", "storage"))

    def accept_next_dialog(self) -> None:
        """Accept the next confirm/alert dialog; register before the triggering click."""
        self._page.once("dialog", lambda dialog: dialog.accept())

    async def wait(self, seconds: float) -> None:
        await anyio.sleep(seconds)
