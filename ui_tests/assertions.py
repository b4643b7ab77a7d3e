"""Observation predicates evaluated at journey checkpoints.

URL and visibility predicates poll until they hold or their bound expires; the
status-class predicate inspects a response that already arrived. None of them
touch application state. Each returns an ``Observation`` for
``ScenarioResult.check``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Pattern, Union
from urllib.parse import urlsplit

import anyio
from playwright.async_api import Error as PlaywrightError, Page

from ui_tests.config import UiTestConfig, settings
from ui_tests.results import FailureKind, Observation
from ui_tests.targets import Found

if TYPE_CHECKING:
    from ui_tests.browser import Browser

TextPattern = Union[str, Pattern[str]]
Check = Callable[[], Awaitable[Observation]]


def result_pattern(value: Union[int, float, str]) -> Pattern[str]:
    """Match a rendered number as a standalone token.

    ``10`` matches "10", "10.0" and "7 + 3 = 10" but not "110", "10.5" or the
    "10" inside a date or time such as "2026-10-19".
    """
    text = str(value)
    suffix = r"(?:\.0+)?" if re.fullmatch(r"-?\d+", text) else ""
    return re.compile(rf"(?<![\d.:/-]){re.escape(text)}{suffix}(?![\d.:/-])")


def _describe(pattern: TextPattern) -> str:
    return pattern.pattern if hasattr(pattern, "pattern") else str(pattern)


def _compile(pattern: TextPattern) -> Pattern[str]:
    return pattern if hasattr(pattern, "search") else re.compile(re.escape(pattern))


async def _poll(
    probe: Callable[[], Awaitable[bool]],
    timeout: float,
    interval: float,
) -> bool:
    deadline = anyio.current_time() + timeout
    while True:
        if await probe():
            return True
        if anyio.current_time() >= deadline:
            return False
        await anyio.sleep(interval)


async def url_matches(
    page: Page,
    pattern: TextPattern,
    timeout: Optional[float] = None,
    config: Optional[UiTestConfig] = None,
) -> Observation:
    """Poll ``page.url`` until it matches ``pattern``."""
    return await _watch_url(page, pattern, lambda url: url, "url", timeout, config)


async def path_matches(
    page: Page,
    pattern: TextPattern,
    timeout: Optional[float] = None,
    config: Optional[UiTestConfig] = None,
) -> Observation:
    """Poll the path of ``page.url`` until it matches ``pattern``.

    Query string and fragment are ignored, so ``/login?next=/dashboard`` never
    satisfies a ``^/dashboard`` pattern.
    """
    return await _watch_url(page, pattern, lambda url: urlsplit(url).path, "path", timeout, config)


async def _watch_url(
    page: Page,
    pattern: TextPattern,
    part: Callable[[str], str],
    label: str,
    timeout: Optional[float],
    config: Optional[UiTestConfig],
) -> Observation:
    config = config or settings
    regex = _compile(pattern)

    async def probe() -> bool:
        return regex.search(part(page.url)) is not None

    passed = await _poll(probe, timeout if timeout is not None else config.settle_timeout, config.poll_interval)
    return Observation(passed, f"{label} matches /{_describe(pattern)}/", page.url, FailureKind.TIMEOUT)


async def _visible_count(locator: Any) -> int:
    visible = 0
    try:
        for index in range(await locator.count()):
            if await locator.nth(index).is_visible():
                visible += 1
    except PlaywrightError:
        return 0
    return visible


def _text_locator(page: Page, text: TextPattern, scope: Any = None) -> Any:
    root = scope if scope is not None else page
    return root.get_by_text(text if hasattr(text, "search") else str(text), exact=False)


async def text_visible(
    page: Page,
    text: TextPattern,
    scope: Any = None,
    timeout: Optional[float] = None,
    config: Optional[UiTestConfig] = None,
) -> Observation:
    """Poll until an element containing ``text`` (inside ``scope``) is visible."""
    config = config or settings
    locator = _text_locator(page, text, scope)
    seen = 0

    async def probe() -> bool:
        nonlocal seen
        seen = await _visible_count(locator)
        return seen > 0

    passed = await _poll(probe, timeout if timeout is not None else config.settle_timeout, config.poll_interval)
    return Observation(
        passed,
        f"text /{_describe(text)}/ visible",
        f"{seen} visible match(es) on {page.url}",
        FailureKind.TIMEOUT,
    )


async def text_absent(
    page: Page,
    text: TextPattern,
    scope: Any = None,
    timeout: Optional[float] = None,
    config: Optional[UiTestConfig] = None,
) -> Observation:
    """Poll until no visible element contains ``text`` (inside ``scope``)."""
    config = config or settings
    locator = _text_locator(page, text, scope)
    seen = 0

    async def probe() -> bool:
        nonlocal seen
        seen = await _visible_count(locator)
        return seen == 0

    passed = await _poll(probe, timeout if timeout is not None else config.settle_timeout, config.poll_interval)
    return Observation(
        passed,
        f"text /{_describe(text)}/ absent",
        f"{seen} visible match(es) on {page.url}",
        FailureKind.TIMEOUT,
    )


async def locator_visible(
    locator: Any,
    description: str,
    timeout: Optional[float] = None,
    config: Optional[UiTestConfig] = None,
) -> Observation:
    config = config or settings
    seen = 0

    async def probe() -> bool:
        nonlocal seen
        seen = await _visible_count(locator)
        return seen > 0

    passed = await _poll(probe, timeout if timeout is not None else config.settle_timeout, config.poll_interval)
    return Observation(passed, f"{description} visible", f"{seen} visible", FailureKind.TIMEOUT)


async def count_stays(
    locator: Any,
    expected: int,
    description: str,
    timeout: Optional[float] = None,
    config: Optional[UiTestConfig] = None,
) -> Observation:
    """Watch ``locator`` for ``timeout`` seconds; pass if its count never differs from ``expected``."""
    config = config or settings
    observed = expected

    async def probe() -> bool:
        nonlocal observed
        try:
            observed = await locator.count()
        except PlaywrightError:
            return False
        return observed != expected

    changed = await _poll(probe, timeout if timeout is not None else config.settle_timeout, config.poll_interval)
    return Observation(not changed, f"{description} count stays {expected}", f"{observed}", FailureKind.ASSERTION)


# ---- status classes -----------------------------------------------------------------

@dataclass(frozen=True)
class StatusExpectation:
    """``Exactly(201)``, ``Not(201)`` or ``InClass(2)`` (any 2xx)."""

    description: str
    accepts: Callable[[int], bool]

    def __call__(self, status: int) -> bool:
        return self.accepts(status)


def Exactly(status: int) -> StatusExpectation:
    return StatusExpectation(f"status == {status}", lambda s: s == status)


def Not(status: int) -> StatusExpectation:
    return StatusExpectation(f"status != {status}", lambda s: s != status)


def InClass(hundreds: int) -> StatusExpectation:
    return StatusExpectation(f"status is {hundreds}xx", lambda s: s // 100 == hundreds)


def NotInClass(hundreds: int) -> StatusExpectation:
    return StatusExpectation(f"status is not {hundreds}xx", lambda s: s // 100 != hundreds)


def status_matches(status: int, expectation: StatusExpectation, body: str = "") -> Observation:
    observed = str(status) if not body else f"{status} {body[:200]}"
    return Observation(expectation(status), expectation.description, observed, FailureKind.ASSERTION)


# ---- combinators ---------------------------------------------------------------------

async def first_satisfied(*checks: Check) -> Observation:
    """Run ``checks`` concurrently; the first passing observation wins.

    The remaining checks are cancelled. When none pass, the failed observations
    are folded into one.
    """
    winner: Optional[Observation] = None
    misses: List[Observation] = []

    async def run(check: Check, scope: anyio.CancelScope) -> None:
        nonlocal winner
        observation = await check()
        if observation.passed:
            if winner is None:
                winner = observation
                scope.cancel()
        else:
            misses.append(observation)

    async with anyio.create_task_group() as tg:
        for check in checks:
            tg.start_soon(run, check, tg.cancel_scope)

    if winner is not None:
        return winner
    return Observation(
        False,
        " or ".join(m.predicate for m in misses),
        "; ".join(m.observed for m in misses),
        FailureKind.TIMEOUT,
    )


async def target_visible(
    browser: "Browser",
    target: str,
    description: str,
    timeout: Optional[float] = None,
) -> Observation:
    """Resolve a semantic target within ``timeout`` and wait for it to be visible."""
    config = browser.config
    timeout = timeout if timeout is not None else config.settle_timeout
    attempts = len(browser.resolver.strategies(target)) or 1
    resolved = await browser.resolver.resolve(target, browser.page, timeout=timeout / attempts)
    if not isinstance(resolved, Found):
        return Observation(False, f"{description} visible", resolved.describe(), FailureKind.TIMEOUT)
    return await locator_visible(resolved.locator, description, timeout=timeout, config=config)
