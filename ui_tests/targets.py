"""Semantic UI targets and the ordered strategies used to find them.

The calculator's markup is not fixed across implementations, so every target
the journeys touch ("username field", "submit button") maps to an ordered tuple
of ``SelectorStrategy`` entries. ``SelectorResolver.resolve`` walks the tuple in
declared order and returns the first strategy that locates enough elements as
``Found``; when every strategy misses it returns ``NotFound`` and never raises.

New markup variants are supported by editing ``SELECTOR_TABLE``; the workflows
and scenarios only ever refer to target names.
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeout

from ui_tests.config import UiTestConfig, settings

logger = logging.getLogger(__name__)


class LocatorKind(str, enum.Enum):
    NAME = "name"    # name attribute
    ID = "id"        # id attribute
    CSS = "css"      # any CSS / Playwright selector (generic type, positional)
    TEXT = "text"    # visible text, substring match
    ROLE = "role"    # ARIA role, value is "role" or "role:accessible name regex"


@dataclass(frozen=True)
class SelectorStrategy:
    kind: LocatorKind
    value: str

    def locate(self, page: Page) -> Any:
        """Build a (lazy) Playwright locator for this strategy."""
        if self.kind is LocatorKind.NAME:
            return page.locator(f'[name="{self.value}"]')
        if self.kind is LocatorKind.ID:
            return page.locator(f"#{self.value}")
        if self.kind is LocatorKind.CSS:
            return page.locator(self.value)
        if self.kind is LocatorKind.TEXT:
            return page.get_by_text(self.value, exact=False)
        role, _, name = self.value.partition(":")
        if name:
            return page.get_by_role(role, name=re.compile(name, re.I))
        return page.get_by_role(role)

    def __str__(self) -> str:
        return f"{self.kind.value}={self.value}"


@dataclass(frozen=True)
class Found:
    target: str
    strategy: SelectorStrategy
    locator: Any
    count: int
    combined: bool = False

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    target: str
    tried: Tuple[SelectorStrategy, ...] = ()

    @property
    def found(self) -> bool:
        return False

    def describe(self) -> str:
        tried = ", ".join(str(s) for s in self.tried) or "no strategies registered"
        return f"no strategy matched '{self.target}' (tried {tried})"


Resolution = Union[Found, NotFound]


def _fields(name: str) -> Tuple[SelectorStrategy, ...]:
    """name attribute, then id attribute."""
    return (SelectorStrategy(LocatorKind.NAME, name), SelectorStrategy(LocatorKind.ID, name))


def _button(label: str) -> Tuple[SelectorStrategy, ...]:
    return (
        SelectorStrategy(LocatorKind.CSS, f'button:has-text("{label}")'),
        SelectorStrategy(LocatorKind.ROLE, f"button:^\\s*{label}\\s*$"),
    )


SUBMIT = (
    SelectorStrategy(LocatorKind.CSS, 'button[type="submit"]'),
    SelectorStrategy(LocatorKind.CSS, 'input[type="submit"]'),
)

SELECTOR_TABLE: Dict[str, Tuple[SelectorStrategy, ...]] = {
    # account forms
    "username": _fields("username"),
    "email": _fields("email"),
    "password": _fields("password"),
    "confirm_password": _fields("confirm_password"),
    "first_name": _fields("first_name"),
    "last_name": _fields("last_name"),
    "button.register": _button("Register"),
    "button.sign_up": _button("Sign up"),
    "button.login": _button("Login"),
    "button.sign_in": _button("Sign in"),
    "button.submit": SUBMIT,
    "alert.success": (
        SelectorStrategy(LocatorKind.ID, "successAlert"),
        SelectorStrategy(LocatorKind.CSS, ".alert-success"),
    ),
    # calculation form
    "calculation.type": (
        SelectorStrategy(LocatorKind.CSS, 'select[name="type"]'),
        SelectorStrategy(LocatorKind.CSS, "select#type"),
        SelectorStrategy(LocatorKind.CSS, "select >> nth=0"),
    ),
    "calculation.inputs": (
        SelectorStrategy(LocatorKind.NAME, "inputs[]"),
        SelectorStrategy(LocatorKind.NAME, "inputs"),
        SelectorStrategy(LocatorKind.CSS, "input.input-value"),
        SelectorStrategy(LocatorKind.CSS, 'input[type="number"]'),
        SelectorStrategy(LocatorKind.CSS, "input"),
    ),
    "calculation.inputs.combined": (
        SelectorStrategy(LocatorKind.NAME, "inputs"),
        SelectorStrategy(LocatorKind.ID, "inputs"),
        SelectorStrategy(LocatorKind.CSS, 'textarea[name="inputs"]'),
    ),
    "button.add": _button("Add"),
    "button.create": _button("Create"),
    "button.submit_text": _button("Submit"),
    "button.update": _button("Update"),
    "button.save": _button("Save"),
    "calculation.error": (
        SelectorStrategy(LocatorKind.ID, "errorAlert"),
        SelectorStrategy(LocatorKind.CSS, ".alert-danger"),
        SelectorStrategy(LocatorKind.TEXT, "Invalid"),
        SelectorStrategy(LocatorKind.TEXT, "must be a number"),
    ),
    # listing / detail
    "calculations.listing": (
        SelectorStrategy(LocatorKind.CSS, "table"),
        SelectorStrategy(LocatorKind.CSS, ".history"),
        SelectorStrategy(LocatorKind.CSS, ".calculations"),
    ),
    "calculations.rows": (
        SelectorStrategy(LocatorKind.CSS, "[data-calculation-id]"),
        SelectorStrategy(LocatorKind.CSS, "table tbody tr"),
        SelectorStrategy(LocatorKind.CSS, ".history li"),
        SelectorStrategy(LocatorKind.CSS, ".calculations .calculation"),
    ),
    "calculation.view": (
        SelectorStrategy(LocatorKind.CSS, 'a:has-text("View")'),
        SelectorStrategy(LocatorKind.CSS, 'button:has-text("View")'),
        SelectorStrategy(LocatorKind.CSS, 'a:has-text("Details")'),
    ),
    "calculation.edit": (
        SelectorStrategy(LocatorKind.CSS, 'a:has-text("Edit")'),
        SelectorStrategy(LocatorKind.CSS, 'button:has-text("Edit")'),
    ),
    "calculation.delete": (
        SelectorStrategy(LocatorKind.CSS, 'button:has-text("Delete")'),
        SelectorStrategy(LocatorKind.CSS, 'a:has-text("Delete")'),
    ),
}

# When a target needs N discrete inputs but the page only offers one field,
# the values are joined into the combined field instead.
COMBINED_FALLBACKS: Dict[str, str] = {
    "calculation.inputs": "calculation.inputs.combined",
}


class SelectorResolver:
    """Resolve semantic targets against a page using ordered strategies."""

    def __init__(
        self,
        table: Optional[Mapping[str, Tuple[SelectorStrategy, ...]]] = None,
        combined: Optional[Mapping[str, str]] = None,
        config: Optional[UiTestConfig] = None,
    ) -> None:
        self.table = dict(SELECTOR_TABLE if table is None else table)
        self.combined = dict(COMBINED_FALLBACKS if combined is None else combined)
        self.config = config or settings

    def strategies(self, target: str) -> Tuple[SelectorStrategy, ...]:
        return self.table.get(target, ())

    async def resolve(
        self,
        target: str,
        page: Page,
        minimum: int = 1,
        timeout: Optional[float] = None,
    ) -> Resolution:
        """Return the first strategy that locates at least ``minimum`` elements.

        Each attempt waits at most ``timeout`` seconds (default
        ``config.resolve_timeout``) for the first match to attach.
        """
        strategies = self.strategies(target)
        found = await self.resolve_first(target, strategies, page, minimum, timeout)
        if found.found:
            return found

        fallback = self.combined.get(target)
        if minimum > 1 and fallback:
            logger.debug("'%s' has fewer than %d inputs, trying combined field '%s'", target, minimum, fallback)
            joined = await self.resolve_first(fallback, self.strategies(fallback), page, 1, timeout)
            if isinstance(joined, Found):
                return Found(target, joined.strategy, joined.locator, joined.count, combined=True)
            strategies = strategies + joined.tried

        logger.warning("Could not resolve '%s' on %s", target, page.url)
        return NotFound(target, strategies)

    async def resolve_first(
        self,
        target: str,
        strategies: Tuple[SelectorStrategy, ...],
        page: Page,
        minimum: int = 1,
        timeout: Optional[float] = None,
    ) -> Resolution:
        timeout_ms = (timeout if timeout is not None else self.config.resolve_timeout) * 1000
        for strategy in strategies:
            try:
                locator = strategy.locate(page)
                await locator.first.wait_for(state="attached", timeout=timeout_ms)
                count = await locator.count()
            except PlaywrightTimeout:
                logger.debug("'%s': %s matched nothing", target, strategy)
                continue
            except PlaywrightError as exc:
                logger.debug("'%s': %s failed: %s", target, strategy, exc)
                continue
            if count >= minimum:
                logger.debug("'%s' resolved via %s (%d matches)", target, strategy, count)
                return Found(target, strategy, locator, count)
            logger.debug("'%s': %s matched %d < %d", target, strategy, count, minimum)
        return NotFound(target, strategies)
