"""REST endpoints for reading scores.

    GET /api/scores?limit=N        most radioactive entities right now
    GET /api/scores/{entity_id}    one entity's score, decayed to now

Reads apply decay lazily and never write.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from radioactivity.core.aggregator import Aggregator
from radioactivity.domain.errors import StoreUnavailable

logger = logging.getLogger(__name__)


def create_score_router(aggregator: Aggregator) -> APIRouter:
    """Factory that wires the score query routes to an Aggregator."""

    router = APIRouter(prefix="/api", tags=["scores"])

    @router.get("/scores")
    async def list_scores(
        limit: int = Query(10, ge=1, le=1000),
    ) -> dict[str, Any]:
        try:
            scores = await aggregator.top(limit)
        except StoreUnavailable as exc:
            raise HTTPException(status_code=503, detail=exc.reason)
        return {
            "count": len(scores),
            "scores": [s.to_dict() for s in scores],
        }

    @router.get("/scores/{entity_id:path}")
    async def get_score(entity_id: str) -> dict[str, Any]:
        try:
            score = await aggregator.score_at(entity_id)
        except StoreUnavailable as exc:
            raise HTTPException(status_code=503, detail=exc.reason)
        if score is None:
            raise HTTPException(status_code=404, detail=f"No score for '{entity_id}'")
        return score.to_dict()

    return router
