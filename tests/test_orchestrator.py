"""End-to-end tests for the outfit orchestrator with a scripted model."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Callable

import pytest

from fitcomposer.config.settings import Settings
from fitcomposer.errors import GenerationTimeout, InsufficientInventory, OracleError, SchemaViolation
from fitcomposer.nlp.oracle_client import OracleClient
from fitcomposer.recommender.strategies import MultiStageStrategy, StrategyName, TemplateStrategy
from fitcomposer.services.outfit import OutfitOrchestrator
from fitcomposer.services.variants import VariantBatch
from fitcomposer.wardrobe.inventory import ClothingItem
from tests.fakes import BLACK_BLAZER, BLUE_JEANS, WHITE_SHIRT, WHITE_SNEAKERS, FakeTransport, fit_payload

OrchestratorFactory = Callable[[FakeTransport], OutfitOrchestrator]


@pytest.mark.asyncio
async def test_casual_date_returns_outfit_from_inventory(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport([fit_payload()])
    orchestrator = make_orchestrator(transport)

    result = await orchestrator.generate_outfit("casual coffee date", wardrobe)

    assert result.top_id == WHITE_SHIRT
    assert result.bottom_id == BLUE_JEANS
    assert result.shoes_id == WHITE_SNEAKERS
    assert 0 <= result.confidence_score <= 100
    assert transport.calls == 1
    assert orchestrator.variants.pending == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", list(StrategyName))
async def test_small_inventory_fails_before_any_model_call(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
    strategy: StrategyName,
) -> None:
    transport = FakeTransport()
    orchestrator = make_orchestrator(transport)

    with pytest.raises(InsufficientInventory):
        await orchestrator.generate_outfit("casual coffee date", wardrobe[:2], strategy)

    assert transport.calls == 0


@pytest.mark.asyncio
async def test_borrowed_items_count_towards_minimum(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport([fit_payload()])
    orchestrator = make_orchestrator(transport)

    result = await orchestrator.generate_outfit(
        "casual coffee date",
        wardrobe[:2],
        borrowed_items=[wardrobe[2]],
    )

    assert result.shoes_id == WHITE_SNEAKERS
    assert WHITE_SNEAKERS in transport.requests[0].system_instruction


@pytest.mark.asyncio
async def test_retry_exhaustion_surfaces_oracle_error(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
    sleeps: list[float],
) -> None:
    transport = FakeTransport([OracleError("503 overloaded", status_code=503) for _ in range(3)])
    orchestrator = make_orchestrator(transport)

    with pytest.raises(OracleError) as excinfo:
        await orchestrator.generate_outfit("casual coffee date", wardrobe)

    assert excinfo.value.attempts == 3
    assert transport.calls == 3
    assert len(sleeps) == 2
    assert 0.2 <= sum(sleeps) <= 1.4


@pytest.mark.asyncio
async def test_time_budget_aborts_generation(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport([lambda request: asyncio.sleep(10)])
    orchestrator = make_orchestrator(transport)

    with pytest.raises(GenerationTimeout) as excinfo:
        await orchestrator.generate_outfit("casual coffee date", wardrobe, timeout=0.05)

    assert excinfo.value.timeout == 0.05


@pytest.mark.asyncio
async def test_archetype_requires_template_strategy(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    orchestrator = make_orchestrator(FakeTransport())

    with pytest.raises(ValueError):
        await orchestrator.generate_outfit("dinner", wardrobe, StrategyName.SINGLE_PASS, archetype="party")


@pytest.mark.asyncio
async def test_template_strategy_honours_archetype_override(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport([fit_payload(top_id=BLACK_BLAZER)])
    orchestrator = make_orchestrator(transport)

    result = await orchestrator.generate_outfit("dinner", wardrobe, "template", archetype="formal-event")

    assert result.top_id == BLACK_BLAZER
    assert "FORMAL-EVENT" in transport.requests[0].system_instruction


@pytest.mark.asyncio
async def test_variants_are_delivered_after_primary(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport(
        [
            fit_payload(),
            fit_payload(top_id=BLACK_BLAZER),
            fit_payload(shoes_id=WHITE_SNEAKERS, confidence_score=70),
        ],
    )
    orchestrator = make_orchestrator(transport)
    delivered: list[VariantBatch] = []

    result = await orchestrator.generate_outfit("casual coffee date", wardrobe, on_variants=delivered.append)

    assert result.top_id == WHITE_SHIRT
    assert delivered == []

    await orchestrator.variants.drain()

    (batch,) = delivered
    assert not batch.cancelled
    assert batch.failures == ()
    assert [alternate.top_id for alternate in batch.alternates] == [BLACK_BLAZER, WHITE_SHIRT]
    variant_users = [request.user_instruction for request in transport.requests[1:]]
    assert "another color combination" in variant_users[0]
    assert "slightly different style" in variant_users[1]


@pytest.mark.asyncio
async def test_variant_failures_never_reach_the_caller(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport(
        [
            fit_payload(),
            OracleError("401 unauthorized", status_code=401, transient=False),
            OracleError("401 unauthorized", status_code=401, transient=False),
        ],
    )
    orchestrator = make_orchestrator(transport)
    delivered: list[VariantBatch] = []

    result = await orchestrator.generate_outfit("casual coffee date", wardrobe, on_variants=delivered.append)
    await orchestrator.variants.drain()

    assert result.top_id == WHITE_SHIRT
    (batch,) = delivered
    assert batch.alternates == ()
    assert len(batch.failures) == 2
    assert "401" in batch.failures[0].error
    assert transport.calls == 3


@pytest.mark.asyncio
async def test_close_cancels_pending_variants(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport(
        [
            fit_payload(),
            lambda request: asyncio.sleep(10),
            lambda request: asyncio.sleep(10),
        ],
    )
    orchestrator = make_orchestrator(transport)
    delivered: list[VariantBatch] = []

    await orchestrator.generate_outfit("casual coffee date", wardrobe, on_variants=delivered.append)
    await asyncio.sleep(0.01)
    await orchestrator.close()

    assert orchestrator.variants.pending == 0
    (batch,) = delivered
    assert batch.cancelled


@pytest.mark.asyncio
async def test_same_garment_in_every_role_is_rejected(
    make_orchestrator: OrchestratorFactory,
    wardrobe: list[ClothingItem],
) -> None:
    transport = FakeTransport([fit_payload(WHITE_SHIRT, WHITE_SHIRT, WHITE_SHIRT)])
    orchestrator = make_orchestrator(transport)

    with pytest.raises(SchemaViolation):
        await orchestrator.generate_outfit("casual coffee date", wardrobe)

    assert transport.calls == 1


def test_strategy_lookup_accepts_names(make_orchestrator: OrchestratorFactory) -> None:
    orchestrator = make_orchestrator(FakeTransport())

    assert isinstance(orchestrator.strategy("multi_stage"), MultiStageStrategy)
    assert isinstance(orchestrator.strategy(StrategyName.TEMPLATE), TemplateStrategy)
    with pytest.raises(ValueError):
        orchestrator.strategy("freestyle")


@pytest.mark.asyncio
async def test_configured_tone_reaches_prompts(settings: Settings, wardrobe: list[ClothingItem]) -> None:
    transport = FakeTransport([fit_payload()])
    oracle = OracleClient(transport)
    orchestrator = OutfitOrchestrator(oracle, settings=replace(settings, response_tone="concise"))

    await orchestrator.generate_outfit("casual coffee date", wardrobe)

    assert "RESPONSE TONE: concise" in transport.requests[0].system_instruction
