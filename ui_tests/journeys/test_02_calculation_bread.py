"""
Journey 02: Calculation BREAD

Add 7 + 3, find 10 in the listing, open it, edit it to 8 x 2, find 16 (and no
longer 10), then delete it and confirm neither value is listed.
"""
import pytest

from ui_tests.config import settings
from ui_tests.scenarios import CrudPlan
from ui_tests.workflows import Calculation


class TestCalculationBread:

    @pytest.mark.asyncio
    async def test_crud_scenario_passes(self, orchestrator, scenario_report):
        result = scenario_report(await orchestrator.run("crud"))

        assert "edit saved" in [c.name for c in result.checkpoints], \
            "Edit step did not reach the save checkpoint"

    @pytest.mark.asyncio
    async def test_crud_with_api_creation(self, orchestrator, scenario_report):
        """Same journey with the calculation created through the API."""
        with settings.overrides(calc_create_mode="api"):
            scenario_report(await orchestrator.run("crud"))

    @pytest.mark.asyncio
    async def test_crud_with_subtraction(self, orchestrator, scenario_report):
        orchestrator.crud_plan = CrudPlan(
            create=Calculation("subtraction", (20, 5), "15"),
            edit=Calculation("addition", (20, 7), "27"),
        )
        scenario_report(await orchestrator.run("crud"))
