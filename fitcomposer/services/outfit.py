"""Outfit orchestration pipeline that coordinates projection, strategies and variants."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from fitcomposer.config.settings import Settings, get_settings
from fitcomposer.errors import GenerationTimeout, OutfitGenerationError
from fitcomposer.metrics.prometheus_exporter import outfit_generation_total
from fitcomposer.nlp.occasion import OccasionClassifier, load_archetypes
from fitcomposer.nlp.oracle_client import OpenAITransport, OracleClient
from fitcomposer.nlp.retry import RetryPolicy
from fitcomposer.recommender.prompt_builder import PromptBuilder
from fitcomposer.recommender.schemas import FitResult
from fitcomposer.recommender.strategies import (
    GenerationStrategy,
    MultiStageStrategy,
    SinglePassStrategy,
    StrategyName,
    TemplateStrategy,
)
from fitcomposer.services.variants import BackgroundVariantGenerator, VariantCallback
from fitcomposer.wardrobe.inventory import ClothingItem, ProjectedItem, project_inventory

logger = logging.getLogger(__name__)


class OutfitOrchestrator:
    """Entry point for outfit generation across all strategies."""

    def __init__(
        self,
        oracle: OracleClient,
        *,
        settings: Settings | None = None,
        classifier: OccasionClassifier | None = None,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._oracle = oracle
        prompts = prompt_builder or PromptBuilder(self._settings.response_tone)
        if classifier is None:
            classifier = OccasionClassifier(load_archetypes(self._settings.occasions_path or None))

        single_pass = SinglePassStrategy(oracle, prompts)
        self._template = TemplateStrategy(oracle, classifier, prompts)
        self._strategies: dict[StrategyName, GenerationStrategy] = {
            StrategyName.SINGLE_PASS: single_pass,
            StrategyName.MULTI_STAGE: MultiStageStrategy(oracle, prompts),
            StrategyName.TEMPLATE: self._template,
        }
        self._variants = BackgroundVariantGenerator(
            single_pass,
            start_delay=self._settings.variant_start_delay,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "OutfitOrchestrator":
        """Wire the orchestrator to the configured OpenAI-compatible endpoint."""

        settings = settings or get_settings()
        oracle = OracleClient(OpenAITransport(settings), RetryPolicy.from_settings(settings))
        return cls(oracle, settings=settings)

    @property
    def variants(self) -> BackgroundVariantGenerator:
        return self._variants

    def strategy(self, name: StrategyName | str) -> GenerationStrategy:
        return self._strategies[StrategyName(name)]

    async def generate_outfit(
        self,
        intent: str,
        inventory: Iterable[ClothingItem],
        strategy: StrategyName | str = StrategyName.SINGLE_PASS,
        *,
        borrowed_items: Iterable[ClothingItem] = (),
        archetype: str | None = None,
        timeout: float | None = None,
        on_variants: VariantCallback | None = None,
    ) -> FitResult:
        """
        Generate one validated outfit for ``intent`` from ``inventory``.

        ``timeout`` overrides the configured generation budget and aborts any
        in-flight retry loop when it expires. When ``on_variants`` is given, two
        alternates are generated in the background after the result is ready and
        delivered to that callback; their failures never reach this caller.
        """

        name = StrategyName(strategy)
        if archetype is not None and name is not StrategyName.TEMPLATE:
            raise ValueError("An occasion archetype can only be forced for the template strategy.")

        try:
            projected = project_inventory(
                inventory,
                borrowed_items,
                minimum=self._settings.min_inventory_items,
            )
            result = await self._run_with_budget(name, intent, projected, archetype, timeout)
        except OutfitGenerationError as exc:
            outfit_generation_total.labels(strategy=name.value, outcome=type(exc).__name__).inc()
            logger.warning("Outfit generation with %s failed: %s", name.value, exc)
            raise

        outfit_generation_total.labels(strategy=name.value, outcome="ok").inc()
        logger.info(
            "Generated outfit with %s (confidence %.0f) from %d items",
            name.value,
            result.confidence_score,
            len(projected),
        )

        if on_variants is not None and self._settings.variants_enabled:
            self._variants.schedule(intent, projected, on_complete=on_variants)
        return result

    async def close(self) -> None:
        """Cancel background work and release the transport."""

        await self._variants.aclose()
        close = getattr(self._oracle.transport, "close", None)
        if close is not None:
            await close()

    async def _run_with_budget(
        self,
        name: StrategyName,
        intent: str,
        projected: list[ProjectedItem],
        archetype: str | None,
        timeout: float | None,
    ) -> FitResult:
        budget = timeout if timeout is not None else self._settings.generation_timeout
        if name is StrategyName.TEMPLATE:
            call = self._template.generate(intent, projected, archetype=archetype)
        else:
            call = self.strategy(name).generate(intent, projected)

        if not budget or budget <= 0:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=budget)
        except asyncio.TimeoutError:
            raise GenerationTimeout(budget) from None
