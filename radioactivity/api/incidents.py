"""REST endpoint for batched incident ingestion.

Path: POST /api/incidents

Body is a JSON array of incident payloads (a single object is accepted as
a batch of one).  The response always lists one outcome per item; per-item
rejections do not change the HTTP status.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from radioactivity.core.ingestion import IngestionEndpoint

logger = logging.getLogger(__name__)


def create_incident_router(endpoint: IngestionEndpoint) -> APIRouter:
    """Factory that wires the batch route to an IngestionEndpoint."""

    router = APIRouter(prefix="/api", tags=["incidents"])

    @router.post("/incidents")
    async def ingest_incidents(request: Request) -> dict[str, Any]:
        try:
            body = await request.json()
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail=f"Malformed JSON: {exc.msg}")

        if isinstance(body, dict):
            body = [body]
        if not isinstance(body, list):
            raise HTTPException(
                status_code=422,
                detail="Expected a JSON array of incidents or a single incident object",
            )

        report = await endpoint.ingest_batch(body)
        return report.model_dump(mode="json")

    return router
