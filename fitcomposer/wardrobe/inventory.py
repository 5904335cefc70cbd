"""Wardrobe records and their minimal projection sent to the model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from fitcomposer.errors import InsufficientInventory

MIN_DISTINCT_ITEMS = 3


class ClothingCategory(str, Enum):
    """Garment categories understood by the wardrobe."""

    TOP = "top"
    BOTTOM = "bottom"
    SHOES = "shoes"
    OUTERWEAR = "outerwear"
    ONE_PIECE = "one-piece"
    ACCESSORY = "accessory"


class ClothingItem(BaseModel):
    """A garment owned (or borrowed) by the user. Read-only for the recommender."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    category: ClothingCategory
    name: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProjectedItem:
    """The per-request view of a garment: just its id and descriptive attributes."""

    id: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_item(cls, item: ClothingItem) -> "ProjectedItem":
        attributes: dict[str, Any] = {"category": item.category.value}
        if item.name:
            attributes["name"] = item.name
        attributes.update(
            {key: value for key, value in item.attributes.items() if value not in (None, "", [])},
        )
        return cls(id=item.id, attributes=attributes)

    def as_prompt_dict(self) -> dict[str, Any]:
        return {"id": self.id, "attributes": self.attributes}


def project_inventory(
    inventory: Iterable[ClothingItem],
    borrowed_items: Iterable[ClothingItem] = (),
    *,
    minimum: int = MIN_DISTINCT_ITEMS,
) -> list[ProjectedItem]:
    """
    Merge owned and borrowed garments, drop duplicate ids and project them.

    Items keep the position of their first appearance; when an id repeats, the
    later record wins, so a borrowed copy replaces the owned one.
    Raises ``InsufficientInventory`` when fewer than ``minimum`` distinct items remain.
    """

    unique: dict[str, ClothingItem] = {}
    for item in (*inventory, *borrowed_items):
        unique[item.id] = item

    if len(unique) < minimum:
        raise InsufficientInventory(minimum=minimum, found=len(unique))

    return [ProjectedItem.from_item(item) for item in unique.values()]


def inventory_ids(projected: Sequence[ProjectedItem]) -> frozenset[str]:
    """Return the id set used as ground truth for validation."""

    return frozenset(item.id for item in projected)


def inventory_as_json(projected: Sequence[ProjectedItem]) -> str:
    """Serialise the projection for embedding in a prompt."""

    return json.dumps([item.as_prompt_dict() for item in projected], ensure_ascii=False, indent=2)
