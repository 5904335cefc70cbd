"""Occasion archetypes and the keyword classifier that picks one for a request."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_OCCASIONS_PATH = Path(__file__).resolve().parent.parent / "config" / "occasions.json"
CUSTOM_ARCHETYPE = "custom"


@dataclass(frozen=True, slots=True)
class OccasionArchetype:
    """Pre-authored style constraints for one kind of occasion."""

    name: str
    keywords: tuple[str, ...] = ()
    style_guidelines: str = ""
    color_preferences: str = ""
    must_haves: tuple[str, ...] = ()
    avoidances: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, name: str, raw: Mapping[str, object]) -> "OccasionArchetype":
        def _strings(key: str) -> tuple[str, ...]:
            value = raw.get(key) or []
            if not isinstance(value, list):
                raise ValueError(f"Archetype {name!r}: {key} must be a list")
            return tuple(str(entry) for entry in value)

        return cls(
            name=name,
            keywords=tuple(keyword.lower() for keyword in _strings("keywords")),
            style_guidelines=str(raw.get("style_guidelines", "")),
            color_preferences=str(raw.get("color_preferences", "")),
            must_haves=_strings("must_haves"),
            avoidances=_strings("avoidances"),
        )


def load_archetypes(path: str | Path | None = None) -> tuple[OccasionArchetype, ...]:
    """Read archetypes from a JSON mapping of name to record, keeping file order."""

    source = Path(path) if path else DEFAULT_OCCASIONS_PATH
    raw = json.loads(source.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{source} must contain a JSON object of archetypes")
    archetypes = tuple(OccasionArchetype.from_mapping(name, record) for name, record in raw.items())
    logger.debug("Loaded %d occasion archetypes from %s", len(archetypes), source)
    return archetypes


class OccasionClassifier:
    """Keyword-based occasion detection; the first archetype with a matching keyword wins."""

    def __init__(self, archetypes: Iterable[OccasionArchetype] | None = None) -> None:
        ordered = tuple(archetypes) if archetypes is not None else load_archetypes()
        self._archetypes = {archetype.name: archetype for archetype in ordered}
        if CUSTOM_ARCHETYPE not in self._archetypes:
            self._archetypes[CUSTOM_ARCHETYPE] = OccasionArchetype(name=CUSTOM_ARCHETYPE)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._archetypes)

    def get(self, name: str) -> OccasionArchetype:
        """Return the archetype called ``name``."""

        try:
            return self._archetypes[name]
        except KeyError:
            raise ValueError(f"Unknown occasion archetype: {name!r}") from None

    def classify(self, intent: str) -> OccasionArchetype:
        """Return the archetype whose keywords appear in ``intent``, or ``custom``."""

        lower = intent.lower()
        for archetype in self._archetypes.values():
            if any(keyword in lower for keyword in archetype.keywords):
                return archetype
        return self._archetypes[CUSTOM_ARCHETYPE]
