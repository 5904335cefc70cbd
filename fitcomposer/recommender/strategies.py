"""Interchangeable outfit generation strategies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Sequence

from fitcomposer.errors import OutfitGenerationError, StageMismatch
from fitcomposer.nlp.occasion import OccasionArchetype, OccasionClassifier
from fitcomposer.nlp.oracle_client import OracleClient, OracleRequest
from fitcomposer.recommender.prompt_builder import PromptBuilder, PromptPair
from fitcomposer.recommender.schemas import (
    CandidateBatch,
    FitReasoning,
    FitResult,
    MultiStageResult,
    OutfitCandidate,
    SelectionVerdict,
    response_schema,
)
from fitcomposer.recommender.validator import (
    ensure_distinct,
    validate_candidates,
    validate_fit_result,
)
from fitcomposer.wardrobe.inventory import ProjectedItem

logger = logging.getLogger(__name__)


class StrategyName(str, Enum):
    """Generation strategies selectable by callers."""

    SINGLE_PASS = "single_pass"
    MULTI_STAGE = "multi_stage"
    TEMPLATE = "template"


class GenerationStrategy(ABC):
    """Turns a projected inventory and an intent into a validated outfit."""

    name: StrategyName

    def __init__(self, oracle: OracleClient, prompt_builder: PromptBuilder | None = None) -> None:
        self._oracle = oracle
        self._prompts = prompt_builder or PromptBuilder()

    @abstractmethod
    async def generate(self, intent: str, projected: Sequence[ProjectedItem]) -> FitResult:
        """Return an outfit whose ids all belong to ``projected``."""

    async def _request_fit(
        self,
        prompt: PromptPair,
        projected: Sequence[ProjectedItem],
        *,
        temperature: float,
    ) -> FitResult:
        request = OracleRequest(
            system_instruction=prompt.system,
            user_instruction=prompt.user,
            response_schema=response_schema(FitResult),
            temperature=temperature,
            schema_name="fit_result",
        )
        result = await self._oracle.generate(request, FitResult)
        return validate_fit_result(result, projected)


class SinglePassStrategy(GenerationStrategy):
    """One chain-of-thought call with few-shot examples."""

    name = StrategyName.SINGLE_PASS
    temperature = 0.3

    async def generate(self, intent: str, projected: Sequence[ProjectedItem]) -> FitResult:
        prompt = self._prompts.single_pass(intent, projected)
        return await self._request_fit(prompt, projected, temperature=self.temperature)


class MultiStageState(str, Enum):
    """Progress of a generate-critique-select run."""

    GENERATING_CANDIDATES = "generating_candidates"
    CRITIQUING = "critiquing"
    SELECTED = "selected"
    FAILED = "failed"


class MultiStageStrategy(GenerationStrategy):
    """
    Proposes several outfits in one call, then judges them in a second call.

    Costs two model calls; the candidate stage runs warmer for diversity and the
    critique stage runs cold for consistency.
    """

    name = StrategyName.MULTI_STAGE
    candidate_count = 3
    candidate_temperature = 0.7
    critique_temperature = 0.2

    async def generate(self, intent: str, projected: Sequence[ProjectedItem]) -> FitResult:
        result = await self.run_detailed(intent, projected)
        return result.selected

    async def run_detailed(self, intent: str, projected: Sequence[ProjectedItem]) -> MultiStageResult:
        """Run both stages and return the selection along with every candidate."""

        state = MultiStageState.GENERATING_CANDIDATES
        try:
            candidates = await self._generate_candidates(intent, projected)
            state = self._transition(state, MultiStageState.CRITIQUING)
            verdict = await self._critique(intent, candidates, projected)
            selected = self._select(candidates, verdict, projected)
            state = self._transition(state, MultiStageState.SELECTED)
        except OutfitGenerationError as exc:
            self._transition(state, MultiStageState.FAILED)
            logger.info("Multi-stage generation failed while %s: %s", state.value, exc)
            raise

        return MultiStageResult(
            selected=selected,
            candidates=tuple(candidates),
            selection_rationale=verdict.selection_rationale,
        )

    @staticmethod
    def _transition(current: MultiStageState, target: MultiStageState) -> MultiStageState:
        logger.debug("Multi-stage transition %s -> %s", current.value, target.value)
        return target

    async def _generate_candidates(
        self,
        intent: str,
        projected: Sequence[ProjectedItem],
    ) -> list[OutfitCandidate]:
        prompt = self._prompts.candidates(intent, projected, count=self.candidate_count)
        request = OracleRequest(
            system_instruction=prompt.system,
            user_instruction=prompt.user,
            response_schema=response_schema(CandidateBatch),
            temperature=self.candidate_temperature,
            schema_name="outfit_candidates",
        )
        batch = await self._oracle.generate(request, CandidateBatch)
        ensure_distinct(batch.candidates, expected=self.candidate_count)
        return validate_candidates(batch.candidates, projected)

    async def _critique(
        self,
        intent: str,
        candidates: Sequence[OutfitCandidate],
        projected: Sequence[ProjectedItem],
    ) -> SelectionVerdict:
        prompt = self._prompts.critique(intent, candidates, projected)
        request = OracleRequest(
            system_instruction=prompt.system,
            user_instruction=prompt.user,
            response_schema=response_schema(SelectionVerdict),
            temperature=self.critique_temperature,
            schema_name="outfit_selection",
        )
        return await self._oracle.generate(request, SelectionVerdict)

    def _select(
        self,
        candidates: Sequence[OutfitCandidate],
        verdict: SelectionVerdict,
        projected: Sequence[ProjectedItem],
    ) -> FitResult:
        by_ordinal = {candidate.ordinal: candidate for candidate in candidates}
        chosen = by_ordinal.get(verdict.selected_ordinal)
        if chosen is None:
            raise StageMismatch(verdict.selected_ordinal, by_ordinal)

        result = FitResult(
            top_id=chosen.top_id,
            bottom_id=chosen.bottom_id,
            shoes_id=chosen.shoes_id,
            explanation=chosen.rationale,
            reasoning=FitReasoning(
                color_harmony=chosen.rationale,
                style_coherence=verdict.critique or verdict.selection_rationale,
                occasion_fit=verdict.selection_rationale,
            ),
            confidence_score=chosen.score,
        )
        return validate_fit_result(result, projected)


class TemplateStrategy(GenerationStrategy):
    """Single call specialised with the style rules of the detected occasion."""

    name = StrategyName.TEMPLATE
    temperature = 0.4

    def __init__(
        self,
        oracle: OracleClient,
        classifier: OccasionClassifier,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        super().__init__(oracle, prompt_builder)
        self._classifier = classifier

    def build_prompt(
        self,
        intent: str,
        projected: Sequence[ProjectedItem],
        *,
        archetype: str | None = None,
    ) -> tuple[OccasionArchetype, PromptPair]:
        """Resolve the archetype (override or keyword match) and build its prompt."""

        occasion = self._classifier.get(archetype) if archetype else self._classifier.classify(intent)
        logger.debug("Intent classified as occasion %s", occasion.name)
        return occasion, self._prompts.templated(occasion, intent, projected)

    async def generate(
        self,
        intent: str,
        projected: Sequence[ProjectedItem],
        *,
        archetype: str | None = None,
    ) -> FitResult:
        _, prompt = self.build_prompt(intent, projected, archetype=archetype)
        return await self._request_fit(prompt, projected, temperature=self.temperature)
