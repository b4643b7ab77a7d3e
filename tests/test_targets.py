"""Selector resolution: ordered strategies, NotFound instead of exceptions, combined inputs."""

from __future__ import annotations

import re

import anyio
import pytest

from fake_page import FakeElement, FakePage, button, field
from ui_tests.targets import (
    COMBINED_FALLBACKS,
    SELECTOR_TABLE,
    Found,
    LocatorKind,
    NotFound,
    SelectorResolver,
    SelectorStrategy,
)


@pytest.fixture
def resolver(config):
    return SelectorResolver(config=config)


@pytest.mark.asyncio
async def test_declared_order_wins_when_several_strategies_match(resolver):
    page = FakePage()
    page.add(FakeElement(), "#username")
    field(page, "username")

    resolved = await resolver.resolve("username", page)

    assert isinstance(resolved, Found)
    assert resolved.strategy == SelectorStrategy(LocatorKind.NAME, "username"), \
        f"Expected the name strategy to win, got {resolved.strategy}"


@pytest.mark.asyncio
async def test_later_strategy_used_when_earlier_ones_miss(resolver):
    page = FakePage()
    page.add(FakeElement(attrs={"id": "email"}), "#email")

    resolved = await resolver.resolve("email", page)

    assert isinstance(resolved, Found)
    assert resolved.strategy.kind is LocatorKind.ID


@pytest.mark.asyncio
async def test_missing_target_returns_not_found_listing_every_strategy(resolver):
    resolved = await resolver.resolve("calculation.delete", FakePage())

    assert isinstance(resolved, NotFound)
    assert resolved.tried == SELECTOR_TABLE["calculation.delete"]
    assert "calculation.delete" in resolved.describe()
    assert 'css=button:has-text("Delete")' in resolved.describe()


@pytest.mark.asyncio
async def test_unknown_target_is_not_found(resolver):
    resolved = await resolver.resolve("no.such.target", FakePage())

    assert not resolved.found
    assert "no strategies registered" in resolved.describe()


@pytest.mark.asyncio
async def test_role_strategy_matches_accessible_name(resolver):
    page = FakePage()
    page.add(FakeElement("  Sign in ", role="button"))

    resolved = await resolver.resolve("button.sign_in", page)

    assert isinstance(resolved, Found)
    assert resolved.strategy.kind is LocatorKind.ROLE


@pytest.mark.asyncio
async def test_role_strategy_does_not_match_other_labels(resolver):
    page = FakePage()
    page.add(FakeElement("Sign in with Google", role="button"))

    resolved = await resolver.resolve("button.sign_in", page)

    assert isinstance(resolved, NotFound)


@pytest.mark.asyncio
async def test_minimum_count_skips_strategies_with_too_few_matches(resolver):
    page = FakePage()
    page.add(FakeElement(), '[name="inputs[]"]')
    for _ in range(2):
        page.add(FakeElement(), "input.input-value")

    resolved = await resolver.resolve("calculation.inputs", page, minimum=2)

    assert isinstance(resolved, Found)
    assert resolved.strategy.value == "input.input-value"
    assert resolved.count == 2
    assert not resolved.combined


@pytest.mark.asyncio
async def test_single_combined_field_used_when_discrete_inputs_missing(config):
    resolver = SelectorResolver(
        table={
            "calculation.inputs": (SelectorStrategy(LocatorKind.NAME, "inputs[]"),),
            "calculation.inputs.combined": SELECTOR_TABLE["calculation.inputs.combined"],
        },
        config=config,
    )
    page = FakePage()
    page.add(FakeElement(attrs={"name": "inputs"}), '[name="inputs"]')

    resolved = await resolver.resolve("calculation.inputs", page, minimum=2)

    assert isinstance(resolved, Found)
    assert resolved.combined
    assert resolved.target == "calculation.inputs"


@pytest.mark.asyncio
async def test_combined_fallback_not_used_for_single_value(config):
    resolver = SelectorResolver(
        table={
            "calculation.inputs": (SelectorStrategy(LocatorKind.NAME, "inputs[]"),),
            "calculation.inputs.combined": SELECTOR_TABLE["calculation.inputs.combined"],
        },
        config=config,
    )
    page = FakePage()
    page.add(FakeElement(attrs={"name": "inputs"}), '[name="inputs"]')

    resolved = await resolver.resolve("calculation.inputs", page, minimum=1)

    assert isinstance(resolved, NotFound)


@pytest.mark.asyncio
async def test_not_found_after_fallback_lists_both_tables(config):
    table = {
        "calculation.inputs": (SelectorStrategy(LocatorKind.NAME, "inputs[]"),),
        "calculation.inputs.combined": (SelectorStrategy(LocatorKind.ID, "inputs"),),
    }
    resolver = SelectorResolver(table=table, combined=COMBINED_FALLBACKS, config=config)

    resolved = await resolver.resolve("calculation.inputs", FakePage(), minimum=2)

    assert isinstance(resolved, NotFound)
    assert [str(s) for s in resolved.tried] == ["name=inputs[]", "id=inputs"]


@pytest.mark.asyncio
async def test_element_attached_during_wait_is_found(resolver):
    page = FakePage()

    async def attach_later():
        await anyio.sleep(0.02)
        button(page, "Save")

    async with anyio.create_task_group() as tg:
        tg.start_soon(attach_later)
        resolved = await resolver.resolve("button.save", page, timeout=0.5)

    assert isinstance(resolved, Found)


def test_locate_builds_expected_selectors():
    page = FakePage()
    page.add(FakeElement(), '[name="type"]', "#type", "select")

    assert SelectorStrategy(LocatorKind.NAME, "type").locate(page).elements()
    assert SelectorStrategy(LocatorKind.ID, "type").locate(page).elements()
    assert SelectorStrategy(LocatorKind.CSS, "select").locate(page).elements()


def test_every_target_has_at_least_one_strategy():
    empty = [name for name, strategies in SELECTOR_TABLE.items() if not strategies]
    assert not empty, f"Targets without strategies: {empty}"


def test_role_values_compile():
    for strategies in SELECTOR_TABLE.values():
        for strategy in strategies:
            if strategy.kind is LocatorKind.ROLE:
                _, _, name = strategy.value.partition(":")
                re.compile(name)
