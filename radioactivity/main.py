"""radioactivity-engine — incident ingestion, decay and score queries.

This is the application entry point.  It wires the ScoreStore,
Aggregator, IngestionEndpoint, AdapterRegistry, DecaySweeper and the
HTTP/WebSocket routes together.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from radioactivity.adapters.emitter import EmitterPayloadAdapter
from radioactivity.adapters.registry import AdapterRegistry
from radioactivity.api.incidents import create_incident_router
from radioactivity.api.scores import create_score_router
from radioactivity.api.ws_incident import create_incident_ws_router
from radioactivity.config import Settings, settings
from radioactivity.core.aggregator import Aggregator
from radioactivity.core.decay import build_decay_profile
from radioactivity.core.ingestion import IngestionEndpoint
from radioactivity.services.sweeper import DecaySweeper
from radioactivity.store.score_store import InMemoryScoreStore, ScoreStore
from radioactivity.store.sql_store import SqlScoreStore

logger = logging.getLogger(__name__)


def build_store(cfg: Settings) -> ScoreStore:
    if cfg.database_url:
        return SqlScoreStore(
            cfg.database_url,
            shards=cfg.lock_shards,
            timeout=cfg.store_timeout_seconds,
            echo=cfg.debug,
        )
    return InMemoryScoreStore(
        shards=cfg.lock_shards,
        timeout=cfg.store_timeout_seconds,
    )


def create_app(cfg: Settings) -> FastAPI:
    """Build the application.  Raises ConfigurationError on bad settings."""

    # ── Engine ───────────────────────────────────────────────────────────

    store = build_store(cfg)
    aggregator = Aggregator(
        store,
        build_decay_profile(
            cfg.decay_profile,
            half_life=cfg.half_life_seconds,
            rate=cfg.linear_rate_per_second,
        ),
        cutoff=cfg.cutoff,
        retention=timedelta(seconds=cfg.retention_seconds),
    )

    registry = AdapterRegistry()
    registry.register(EmitterPayloadAdapter(hash_salt=cfg.hash_salt))

    endpoint = IngestionEndpoint(
        aggregator,
        registry,
        require_signature=bool(cfg.hash_salt),
    )
    sweeper = DecaySweeper(aggregator, interval=cfg.sweep_interval_seconds)

    # ── App ──────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()
            await store.close()

    app = FastAPI(
        title=cfg.app_name,
        description="Incident ingestion, decay and radioactivity scores",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.aggregator = aggregator
    app.state.registry = registry
    app.state.sweeper = sweeper

    # ── Routes ───────────────────────────────────────────────────────────

    app.include_router(create_incident_router(endpoint))
    app.include_router(create_incident_ws_router(endpoint))
    app.include_router(create_score_router(aggregator))

    # ── Health ───────────────────────────────────────────────────────────

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "decay_profile": repr(aggregator.decay),
            "stored_scores": await store.count(),
            "sweeper_running": sweeper.running,
            "sweeper_runs": sweeper.runs,
            "adapters": registry.stats,
            "total_adapted": registry.total_accepted,
            "total_rejected": registry.total_rejected,
        }

    logger.info("%s ready (%s store)", cfg.app_name, type(store).__name__)
    return app


# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

app = create_app(settings)
