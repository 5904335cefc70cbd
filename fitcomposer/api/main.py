"""FastAPI entrypoint and HTTP routes."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from fitcomposer.config.settings import get_settings
from fitcomposer.errors import (
    GenerationTimeout,
    HallucinatedReference,
    InsufficientInventory,
    OracleError,
    OutfitGenerationError,
    SchemaViolation,
)
from fitcomposer.recommender.schemas import FitResult
from fitcomposer.recommender.strategies import StrategyName
from fitcomposer.services.outfit import OutfitOrchestrator
from fitcomposer.wardrobe.inventory import ClothingItem


class GenerateOutfitRequest(BaseModel):
    """Body of ``POST /outfits``."""

    intent: str = Field(min_length=1)
    inventory: list[ClothingItem]
    strategy: StrategyName = StrategyName.SINGLE_PASS
    borrowed_items: list[ClothingItem] = Field(default_factory=list)
    archetype: str | None = None


@lru_cache(maxsize=1)
def get_orchestrator() -> OutfitOrchestrator:
    """Return the process-wide orchestrator bound to the configured model endpoint."""

    return OutfitOrchestrator.from_settings(get_settings())


def _status_for(error: OutfitGenerationError) -> int:
    if isinstance(error, InsufficientInventory):
        return 422
    if isinstance(error, GenerationTimeout):
        return 504
    if isinstance(error, OracleError):
        return 503
    if isinstance(error, (SchemaViolation, HallucinatedReference)):
        return 502
    return 500


def create_app() -> FastAPI:
    """Initialise the FastAPI application."""

    settings = get_settings()
    app = FastAPI(
        title="Outfit Composer API",
        version="0.1.0",
        docs_url="/docs" if settings.environment != "prod" else None,
        redoc_url="/redoc" if settings.environment != "prod" else None,
    )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple health endpoint used for readiness probes."""

        return {"status": "ok"}

    @app.get("/metrics", tags=["system"])
    async def metrics() -> Response:
        """Expose Prometheus counters."""

        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.post("/outfits", response_model=FitResult, tags=["outfits"])
    async def generate_outfit(
        body: GenerateOutfitRequest,
        orchestrator: OutfitOrchestrator = Depends(get_orchestrator),
    ) -> FitResult:
        """Recommend one outfit from the submitted inventory."""

        try:
            return await orchestrator.generate_outfit(
                body.intent,
                body.inventory,
                body.strategy,
                borrowed_items=body.borrowed_items,
                archetype=body.archetype,
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except OutfitGenerationError as exc:
            raise HTTPException(status_code=_status_for(exc), detail=str(exc)) from exc

    return app


app = create_app()
