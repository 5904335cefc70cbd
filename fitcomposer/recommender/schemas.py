"""Structured payloads exchanged with the model and returned to callers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FitReasoning(BaseModel):
    """Step-by-step justification of an outfit."""

    model_config = ConfigDict(frozen=True)

    color_harmony: str
    style_coherence: str
    occasion_fit: str


class AlternativeItems(BaseModel):
    """Optional swaps the user could make without breaking the outfit."""

    model_config = ConfigDict(frozen=True)

    alternative_top_id: str | None = None
    alternative_bottom_id: str | None = None
    alternative_shoes_id: str | None = None
    why_alternative: str


class MissingPieceSuggestion(BaseModel):
    """A garment worth buying because the wardrobe lacks it."""

    model_config = ConfigDict(frozen=True)

    item_name: str
    reason: str


class FitResult(BaseModel):
    """Final, validated outfit recommendation."""

    model_config = ConfigDict(frozen=True)

    top_id: str = Field(min_length=1, description="Exact id of the selected top, copied from the inventory.")
    bottom_id: str = Field(min_length=1, description="Exact id of the selected bottom, copied from the inventory.")
    shoes_id: str = Field(min_length=1, description="Exact id of the selected shoes, copied from the inventory.")
    explanation: str = Field(min_length=1, description="Two or three friendly sentences on why the outfit works.")
    reasoning: FitReasoning
    confidence_score: float = Field(ge=0, le=100, description="0-100; 90+ only for exceptional outfits.")
    alternative_items: AlternativeItems | None = None
    missing_piece_suggestion: MissingPieceSuggestion | None = None

    def item_ids(self) -> dict[str, str]:
        """Return every referenced inventory id keyed by field name."""

        ids = {"top_id": self.top_id, "bottom_id": self.bottom_id, "shoes_id": self.shoes_id}
        if self.alternative_items is not None:
            for name in ("alternative_top_id", "alternative_bottom_id", "alternative_shoes_id"):
                value = getattr(self.alternative_items, name)
                if value:
                    ids[f"alternative_items.{name}"] = value
        return ids


class OutfitCandidate(BaseModel):
    """One outfit proposed during the candidate generation stage."""

    model_config = ConfigDict(frozen=True)

    ordinal: int = Field(ge=1, description="1, 2 or 3")
    top_id: str = Field(min_length=1)
    bottom_id: str = Field(min_length=1)
    shoes_id: str = Field(min_length=1)
    rationale: str = Field(min_length=1, description="Why this outfit works")
    score: float = Field(ge=0, le=100, description="Weighted score 0-100")

    def item_ids(self) -> dict[str, str]:
        return {"top_id": self.top_id, "bottom_id": self.bottom_id, "shoes_id": self.shoes_id}

    def shared_items(self, other: "OutfitCandidate") -> int:
        """Return how many of the three roles hold the same garment in both outfits."""

        return sum(
            1
            for mine, theirs in zip(self.item_ids().values(), other.item_ids().values())
            if mine == theirs
        )


class CandidateBatch(BaseModel):
    """Response of the candidate generation stage."""

    candidates: list[OutfitCandidate]


class SelectionVerdict(BaseModel):
    """Response of the critique stage."""

    selected_ordinal: int = Field(description="Ordinal of the chosen candidate (1, 2 or 3)")
    selection_rationale: str = Field(min_length=1, description="Why this candidate beats the others")
    critique: str | None = Field(default=None, description="Constructive critique of the discarded outfits")


class MultiStageResult(BaseModel):
    """Selected outfit together with the candidates it was chosen from."""

    model_config = ConfigDict(frozen=True)

    selected: FitResult
    candidates: tuple[OutfitCandidate, ...]
    selection_rationale: str


def response_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Return the JSON schema sent to the model for ``model``."""

    return model.model_json_schema()
