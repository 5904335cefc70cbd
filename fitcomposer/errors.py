"""Failure taxonomy surfaced by outfit generation."""

from __future__ import annotations

from typing import Iterable


class OutfitGenerationError(RuntimeError):
    """Base class for every error the orchestrator surfaces to callers."""


class InsufficientInventory(OutfitGenerationError):
    """Raised before any oracle call when the wardrobe cannot fill top/bottom/shoes."""

    def __init__(self, minimum: int, found: int) -> None:
        self.minimum = minimum
        self.found = found
        super().__init__(
            f"Not enough items in the wardrobe: found {found}, need at least {minimum}. "
            "Add at least one top, one bottom and one pair of shoes.",
        )


class OracleError(OutfitGenerationError):
    """Raised when the generative model endpoint fails.

    ``transient`` errors (rate limiting, overload, timeouts) are retried by the
    retry policy; ``attempts`` is filled in once the policy gives up.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        attempts: int | None = None,
        transient: bool = True,
    ) -> None:
        self.status_code = status_code
        self.attempts = attempts
        self.transient = transient
        super().__init__(message)


class GenerationTimeout(OracleError):
    """Raised when the caller's time budget for a generation runs out."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Outfit generation took longer than {timeout:g}s.", transient=True)


class SchemaViolation(OutfitGenerationError):
    """Raised when the oracle response is empty, not JSON, or does not match the schema."""

    def __init__(self, message: str, *, raw_text: str | None = None) -> None:
        self.raw_text = raw_text
        super().__init__(message)


class HallucinatedReference(OutfitGenerationError):
    """Raised when the oracle references an item id absent from the request inventory."""

    def __init__(self, field: str, offending_id: str) -> None:
        self.field = field
        self.offending_id = offending_id
        super().__init__(f"Model selected unknown item id for {field}: {offending_id!r}")


class StageMismatch(SchemaViolation):
    """Raised when the critique stage selects an ordinal the candidate stage never produced."""

    def __init__(self, selected_ordinal: int, available: Iterable[int]) -> None:
        self.selected_ordinal = selected_ordinal
        self.available = tuple(available)
        super().__init__(
            f"Critique selected outfit {selected_ordinal}, "
            f"but candidates were {list(self.available)}.",
        )


def is_transient(error: BaseException) -> bool:
    """Return ``True`` for oracle failures worth retrying."""

    return isinstance(error, OracleError) and error.transient
