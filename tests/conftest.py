"""Shared fixtures: a small wardrobe and orchestrators wired to fake transports."""

from __future__ import annotations

from typing import Callable

import pytest

from fitcomposer.config.settings import Settings
from fitcomposer.nlp.oracle_client import OracleClient
from fitcomposer.nlp.retry import RetryPolicy
from fitcomposer.services.outfit import OutfitOrchestrator
from fitcomposer.wardrobe.inventory import ClothingCategory, ClothingItem
from tests.fakes import BLACK_BLAZER, BLUE_JEANS, WHITE_SHIRT, WHITE_SNEAKERS, FakeTransport


@pytest.fixture
def wardrobe() -> list[ClothingItem]:
    return [
        ClothingItem(
            id=WHITE_SHIRT,
            category=ClothingCategory.TOP,
            name="white shirt",
            attributes={"color_primary": "white", "subcategory": "shirt"},
        ),
        ClothingItem(
            id=BLUE_JEANS,
            category=ClothingCategory.BOTTOM,
            name="blue jeans",
            attributes={"color_primary": "blue", "subcategory": "jeans"},
        ),
        ClothingItem(
            id=WHITE_SNEAKERS,
            category=ClothingCategory.SHOES,
            name="white sneakers",
            attributes={"color_primary": "white", "subcategory": "sneakers"},
        ),
        ClothingItem(
            id=BLACK_BLAZER,
            category=ClothingCategory.TOP,
            name="black blazer",
            attributes={"color_primary": "black", "subcategory": "blazer"},
        ),
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        oracle_api_key="test-key",
        generation_timeout=5.0,
        variant_start_delay=0.0,
    )


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_orchestrator(
    settings: Settings,
    sleeps: list[float],
) -> Callable[[FakeTransport], OutfitOrchestrator]:
    async def _fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def _build(transport: FakeTransport) -> OutfitOrchestrator:
        oracle = OracleClient(transport, RetryPolicy.from_settings(settings), sleep=_fake_sleep)
        return OutfitOrchestrator(oracle, settings=settings)

    return _build
