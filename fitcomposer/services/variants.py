"""Background generation of alternate outfits after the primary result is delivered."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from fitcomposer.metrics.prometheus_exporter import background_variant_tasks, variant_failures_total
from fitcomposer.recommender.schemas import FitResult
from fitcomposer.recommender.strategies import SinglePassStrategy
from fitcomposer.wardrobe.inventory import ProjectedItem

logger = logging.getLogger(__name__)

VARIANT_INSTRUCTIONS: tuple[str, ...] = (
    "Generate a different variation that uses another color combination.",
    "Generate another alternative with a slightly different style.",
)


@dataclass(frozen=True, slots=True)
class VariantFailure:
    """A background alternate that could not be produced."""

    instruction: str
    error: str


@dataclass(frozen=True, slots=True)
class VariantBatch:
    """
    Outcome of background alternate generation.

    This wrapper is the only thing the background path hands back: failures are
    recorded here and never raised.
    """

    alternates: tuple[FitResult, ...] = ()
    failures: tuple[VariantFailure, ...] = ()
    cancelled: bool = False


VariantCallback = Callable[[VariantBatch], None]


class VariantHandle:
    """Side channel for one background batch."""

    def __init__(self, task: asyncio.Task[VariantBatch]) -> None:
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        self._task.cancel()

    async def wait(self) -> VariantBatch:
        """Return the batch once finished; a cancelled batch yields ``cancelled=True``."""

        await asyncio.wait({self._task})
        return _batch_from_task(self._task)


def _batch_from_task(task: asyncio.Task[VariantBatch]) -> VariantBatch:
    if task.cancelled():
        return VariantBatch(cancelled=True)
    error = task.exception()
    if error is not None:
        return VariantBatch(failures=(VariantFailure(instruction="*", error=str(error)),))
    return task.result()


class BackgroundVariantGenerator:
    """Fires alternate single-pass generations without blocking the caller."""

    def __init__(
        self,
        strategy: SinglePassStrategy,
        *,
        start_delay: float = 0.1,
        instructions: Sequence[str] = VARIANT_INSTRUCTIONS,
    ) -> None:
        self._strategy = strategy
        self._start_delay = start_delay
        self._instructions = tuple(instructions)
        self._pending: set[asyncio.Task[VariantBatch]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(
        self,
        intent: str,
        projected: Sequence[ProjectedItem],
        *,
        on_complete: VariantCallback | None = None,
    ) -> VariantHandle:
        """Start alternate generation in a detached task and return its handle."""

        task = asyncio.create_task(self._run(intent, tuple(projected)), name="outfit-variants")
        self._pending.add(task)
        background_variant_tasks.inc()
        task.add_done_callback(self._forget)
        if on_complete is not None:
            task.add_done_callback(lambda finished: self._deliver(finished, on_complete))
        return VariantHandle(task)

    async def drain(self) -> None:
        """Wait for every outstanding batch to finish."""

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding batches, e.g. when the owning session is torn down."""

        for task in list(self._pending):
            task.cancel()
        await self.drain()

    async def _run(self, intent: str, projected: tuple[ProjectedItem, ...]) -> VariantBatch:
        # Yield to the primary path before competing for the model endpoint.
        await asyncio.sleep(self._start_delay)
        outcomes = await asyncio.gather(
            *(self._strategy.generate(f"{intent}. {instruction}", projected) for instruction in self._instructions),
            return_exceptions=True,
        )

        alternates: list[FitResult] = []
        failures: list[VariantFailure] = []
        for instruction, outcome in zip(self._instructions, outcomes):
            if isinstance(outcome, FitResult):
                alternates.append(outcome)
                continue
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            variant_failures_total.inc()
            logger.warning(
                "Background variant generation failed (%s): %s",
                instruction,
                outcome,
                exc_info=outcome if isinstance(outcome, BaseException) else None,
            )
            failures.append(VariantFailure(instruction=instruction, error=str(outcome)))
        return VariantBatch(alternates=tuple(alternates), failures=tuple(failures))

    def _forget(self, task: asyncio.Task[VariantBatch]) -> None:
        self._pending.discard(task)
        background_variant_tasks.dec()
        if not task.cancelled() and task.exception() is not None:
            logger.error("Variant batch crashed: %s", task.exception())

    @staticmethod
    def _deliver(task: asyncio.Task[VariantBatch], callback: VariantCallback) -> None:
        try:
            callback(_batch_from_task(task))
        except Exception:
            logger.exception("Variant callback raised")
