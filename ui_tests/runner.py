"""Run scenarios in isolated browser contexts, sequentially or concurrently."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import anyio

from ui_tests.api_client import CalculatorApi
from ui_tests.browser import Browser
from ui_tests.config import UiTestConfig, settings
from ui_tests.parallel_session_manager import ParallelSessionManager
from ui_tests.playwright_client import PlaywrightClient
from ui_tests.results import ScenarioResult
from ui_tests.scenarios import CrudPlan, ScenarioOrchestrator

logger = logging.getLogger(__name__)


async def run_isolated(
    manager: ParallelSessionManager,
    name: str,
    config: Optional[UiTestConfig] = None,
    crud_plan: Optional[CrudPlan] = None,
) -> ScenarioResult:
    """Run one scenario in its own browser context with its own HTTP client."""
    config = config or settings
    handle = await manager.scenario_session(name)
    try:
        async with CalculatorApi(config=config) as api:
            orchestrator = ScenarioOrchestrator(Browser(handle.page, config=config), api, config, crud_plan)
            return await orchestrator.run(name)
    finally:
        await manager.close_session(handle.session_id)


async def run_scenarios(
    names: Sequence[str],
    config: Optional[UiTestConfig] = None,
    parallel: bool = False,
    crud_plan: Optional[CrudPlan] = None,
) -> List[ScenarioResult]:
    """Run ``names`` and return their results in the order requested."""
    config = config or settings
    results: Dict[int, ScenarioResult] = {}

    async with PlaywrightClient(config=config) as client:
        async with ParallelSessionManager(
            client.browser,
            base_url=config.url(""),
            default_timeout_ms=config.navigation_timeout_ms,
        ) as manager:

            async def run_one(index: int, name: str) -> None:
                results[index] = await run_isolated(manager, name, config, crud_plan)

            if parallel:
                logger.info("Running %d scenario(s) concurrently", len(names))
                async with anyio.create_task_group() as tg:
                    for index, name in enumerate(names):
                        tg.start_soon(run_one, index, name)
            else:
                for index, name in enumerate(names):
                    await run_one(index, name)

    return [results[index] for index in range(len(names))]
