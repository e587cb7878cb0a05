"""WebSocket endpoint for streaming incident ingestion.

Path: /ws/incident

Each message is one incident payload or an array of them.  A single
payload is acknowledged with its outcome, an array with a batch report.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from radioactivity.core.ingestion import IngestionEndpoint

logger = logging.getLogger(__name__)


def create_incident_ws_router(endpoint: IngestionEndpoint) -> APIRouter:
    """Factory that wires the incident stream to an IngestionEndpoint."""

    router = APIRouter()

    @router.websocket("/ws/incident")
    async def ingest_incident_stream(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Incident source connected")

        try:
            while True:
                text = await websocket.receive_text()
                try:
                    raw = json.loads(text)
                except json.JSONDecodeError as exc:
                    await websocket.send_json({
                        "status": "error",
                        "detail": f"Malformed JSON: {exc.msg}",
                    })
                    continue

                if isinstance(raw, list):
                    report = await endpoint.ingest_batch(raw)
                    await websocket.send_json(report.model_dump(mode="json"))
                else:
                    outcome = await endpoint.ingest_one(raw)
                    await websocket.send_json(outcome.model_dump(mode="json"))

        except WebSocketDisconnect:
            logger.info("Incident source disconnected")

    return router
