"""
Per-scenario browser isolation.

Each running scenario gets its own Playwright BrowserContext, so cookies,
local storage and the session credential of one scenario are invisible to the
others, even when they run concurrently against the same browser.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, TypedDict
import itertools
import logging

from playwright.async_api import Browser, BrowserContext, Page

logger = logging.getLogger(__name__)


class ViewportSize(TypedDict):
    width: int
    height: int


@dataclass
class SessionHandle:
    """One scenario's context and page."""
    session_id: str
    context: BrowserContext
    page: Page
    scenario: str

    def __repr__(self) -> str:
        return f"SessionHandle(id={self.session_id}, scenario={self.scenario})"


class ParallelSessionManager:
    """
    Hands out isolated sessions and closes whatever is still open on exit.

    Usage:
        async with ParallelSessionManager(browser, base_url=settings.url('')) as manager:
            auth = await manager.scenario_session('auth')
            crud = await manager.scenario_session('crud')
    """

    DEFAULT_VIEWPORT: ViewportSize = {'width': 1280, 'height': 720}

    def __init__(
        self,
        browser: Browser,
        base_url: Optional[str] = None,
        viewport: Optional[ViewportSize] = None,
        locale: str = 'en-US',
        default_timeout_ms: Optional[int] = None,
    ):
        self.browser = browser
        self.context_options: Dict[str, Any] = {
            'viewport': viewport or self.DEFAULT_VIEWPORT,
            'locale': locale,
            'base_url': base_url,
        }
        self.default_timeout_ms = default_timeout_ms
        self.sessions: Dict[str, SessionHandle] = {}
        self._ids = itertools.count(1)

    async def __aenter__(self) -> 'ParallelSessionManager':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_all()

    async def scenario_session(self, scenario: str) -> SessionHandle:
        """Open a fresh context for ``scenario``; ids stay unique across repeated runs."""
        context = await self.browser.new_context(**self.context_options)
        if self.default_timeout_ms is not None:
            context.set_default_timeout(self.default_timeout_ms)
        handle = SessionHandle(
            session_id=f"{scenario}_{next(self._ids)}",
            context=context,
            page=await context.new_page(),
            scenario=scenario,
        )
        self.sessions[handle.session_id] = handle
        logger.debug("Opened %r", handle)
        return handle

    async def close_session(self, session_id: str) -> None:
        handle = self.sessions.pop(session_id, None)
        if handle is None:
            return
        try:
            await handle.context.close()
        except Exception as exc:
            # the browser may already be gone when a run is torn down
            logger.warning("Could not close %r: %s", handle, exc)
        else:
            logger.debug("Closed %r", handle)

    async def close_all(self) -> None:
        for session_id in list(self.sessions):
            await self.close_session(session_id)

    @property
    def session_count(self) -> int:
        return len(self.sessions)

    def list_sessions(self) -> List[str]:
        return list(self.sessions)
