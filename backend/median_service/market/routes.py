"""Read-only REST endpoints over the tracker registry."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .registry import TrackerRegistry
from .validation import pair_not_found, validate_pair


def create_median_router(registry: TrackerRegistry) -> APIRouter:
    """Create the /median router with a reference to the registry."""
    router = APIRouter(prefix="/median", tags=["median"])

    @router.get("/stats/all")
    async def get_all_stats() -> dict:
        """Per-pair tracker statistics plus the latest raw price."""
        stats = []
        for pair, snapshot in registry.snapshot_all().items():
            stats.append({"pair": pair, **snapshot.stats.to_dict(), "latestPrice": snapshot.latest_price})
        return {"success": True, "data": stats}

    @router.get("/{pair}")
    async def get_median(pair: str):
        """Median snapshot for one pair; 404 with the tracked pairs if unknown."""
        if not validate_pair(pair):
            return JSONResponse(
                status_code=400,
                content={"error": "Invalid pair format", "message": "Pair must be a non-empty string"},
            )

        snapshot = registry.snapshot(pair)
        if snapshot is None:
            return JSONResponse(status_code=404, content=pair_not_found(pair, registry))
        return {"success": True, "data": snapshot.to_dict()}

    @router.get("")
    async def get_all_medians() -> dict:
        medians = {pair: snap.to_dict() for pair, snap in registry.snapshot_all().items()}
        return {"success": True, "count": len(medians), "data": medians}

    return router
