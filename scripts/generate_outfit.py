"""Generate one outfit from an inventory JSON file and print it."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from pydantic import TypeAdapter

from fitcomposer.monitoring.logging import configure_logging
from fitcomposer.recommender.strategies import StrategyName
from fitcomposer.services.outfit import OutfitOrchestrator
from fitcomposer.services.variants import VariantBatch
from fitcomposer.wardrobe.inventory import ClothingItem

_INVENTORY = TypeAdapter(list[ClothingItem])


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("inventory", type=Path, help="JSON list of clothing items")
    parser.add_argument("intent", help='Free-text occasion, e.g. "casual coffee date"')
    parser.add_argument(
        "--strategy",
        choices=[name.value for name in StrategyName],
        default=StrategyName.SINGLE_PASS.value,
    )
    parser.add_argument("--archetype", help="Force an occasion archetype (template strategy only)")
    parser.add_argument("--variants", action="store_true", help="Also wait for two background alternates")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> None:
    inventory = _INVENTORY.validate_json(args.inventory.read_text(encoding="utf-8"))
    orchestrator = OutfitOrchestrator.from_settings()
    batches: list[VariantBatch] = []
    try:
        result = await orchestrator.generate_outfit(
            args.intent,
            inventory,
            args.strategy,
            archetype=args.archetype,
            on_variants=batches.append if args.variants else None,
        )
        print(json.dumps(result.model_dump(exclude_none=True), ensure_ascii=False, indent=2))
        if args.variants:
            await orchestrator.variants.drain()
            for batch in batches:
                for alternate in batch.alternates:
                    print(json.dumps(alternate.model_dump(exclude_none=True), ensure_ascii=False, indent=2))
    finally:
        await orchestrator.close()


def main() -> None:
    args = _parse_args()
    configure_logging(args.log_level)
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
