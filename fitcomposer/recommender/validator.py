"""Checks that model output only references garments the user actually has."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from fitcomposer.errors import HallucinatedReference, SchemaViolation
from fitcomposer.recommender.schemas import FitResult, OutfitCandidate
from fitcomposer.wardrobe.inventory import ClothingCategory, ProjectedItem, inventory_ids

logger = logging.getLogger(__name__)

# Garment categories that may fill each outfit role.
_ROLE_CATEGORIES: dict[str, frozenset[str]] = {
    "top": frozenset({ClothingCategory.TOP.value, ClothingCategory.OUTERWEAR.value, ClothingCategory.ONE_PIECE.value}),
    "bottom": frozenset({ClothingCategory.BOTTOM.value, ClothingCategory.ONE_PIECE.value}),
    "shoes": frozenset({ClothingCategory.SHOES.value}),
}


def _check_ids(references: dict[str, str], known_ids: frozenset[str], *, prefix: str = "") -> None:
    for field, item_id in references.items():
        if item_id not in known_ids:
            logger.warning("Rejected hallucinated %s%s=%r", prefix, field, item_id)
            raise HallucinatedReference(f"{prefix}{field}", item_id)


def _role(field: str) -> str:
    """Map ``top_id`` or ``alternative_items.alternative_top_id`` to ``top``."""

    return field.rsplit(".", 1)[-1].removeprefix("alternative_").removesuffix("_id")


def _check_roles(
    references: dict[str, str],
    categories: dict[str, str | None],
    *,
    prefix: str = "",
) -> None:
    for field, item_id in references.items():
        role = _role(field)
        category = categories.get(item_id)
        if category not in _ROLE_CATEGORIES[role]:
            logger.warning("Rejected %s%s=%r with category %s", prefix, field, item_id, category)
            raise SchemaViolation(f"{prefix}{field} references a {category} item, not a {role} item.")

    primary = [references[name] for name in ("top_id", "bottom_id", "shoes_id")]
    for item_id in set(primary):
        if primary.count(item_id) > 1 and categories.get(item_id) != ClothingCategory.ONE_PIECE.value:
            raise SchemaViolation(f"{prefix}item {item_id!r} fills more than one role.")


def _categories(projected: Sequence[ProjectedItem]) -> dict[str, str | None]:
    return {item.id: item.attributes.get("category") for item in projected}


def validate_fit_result(result: FitResult, projected: Sequence[ProjectedItem]) -> FitResult:
    """
    Return ``result`` unchanged if every id it references is in ``projected``
    and each garment fills a role its category allows.
    """

    references = result.item_ids()
    _check_ids(references, inventory_ids(projected))
    _check_roles(references, _categories(projected))
    return result


def validate_candidates(
    candidates: Iterable[OutfitCandidate],
    projected: Sequence[ProjectedItem],
) -> list[OutfitCandidate]:
    """Apply the id and role checks to every candidate outfit."""

    known_ids = inventory_ids(projected)
    categories = _categories(projected)
    checked: list[OutfitCandidate] = []
    for candidate in candidates:
        prefix = f"candidates[{candidate.ordinal}]."
        _check_ids(candidate.item_ids(), known_ids, prefix=prefix)
        _check_roles(candidate.item_ids(), categories, prefix=prefix)
        checked.append(candidate)
    return checked


def ensure_distinct(candidates: Sequence[OutfitCandidate], *, expected: int) -> None:
    """
    Require ``expected`` candidates with unique ordinals that differ in more than one item.
    """

    if len(candidates) != expected:
        raise SchemaViolation(f"Expected {expected} outfit candidates, got {len(candidates)}.")

    ordinals = [candidate.ordinal for candidate in candidates]
    if len(set(ordinals)) != len(ordinals):
        raise SchemaViolation(f"Candidate ordinals are not unique: {ordinals}.")

    for index, first in enumerate(candidates):
        for second in candidates[index + 1 :]:
            # Differing in a single garment is not a different outfit.
            if first.shared_items(second) >= 2:
                raise SchemaViolation(
                    f"Candidates {first.ordinal} and {second.ordinal} differ in at most one item.",
                )
