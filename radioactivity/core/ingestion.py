"""Ingestion Endpoint — validates incident batches and forwards them.

Every item in a batch is handled on its own: a malformed payload is
reported as rejected and its siblings still go through.  Items are
applied strictly in arrival order, so two incidents for the same entity
in one batch merge sequentially.

Validation order per item:
    1. strict canonical Incident schema
    2. fallback through the AdapterRegistry (e.g. compact emitter payloads)
    3. otherwise rejected with the schema errors as the reason

The endpoint keeps no state of its own.  Nothing is dropped silently:
each item ends up accepted, rejected, or store_unavailable.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from radioactivity.adapters.registry import (
    AdaptationError,
    AdapterRegistry,
    NoAdapterFoundError,
)
from radioactivity.core.aggregator import Aggregator
from radioactivity.domain.errors import InvalidIncident, StoreUnavailable
from radioactivity.domain.incident import Incident

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    STORE_UNAVAILABLE = "store_unavailable"


class IncidentOutcome(BaseModel):
    """What happened to one item of a batch."""

    index: int = Field(..., ge=0, description="Position of the item in the batch")
    status: OutcomeStatus
    entity_id: Optional[str] = None
    error: Optional[str] = Field(None, description="Reason for rejection or store failure")
    score: Optional[float] = Field(None, description="Entity score after the merge")


class BatchReport(BaseModel):
    """Per-item outcomes of one batch, in input order."""

    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    outcomes: list[IncidentOutcome] = Field(default_factory=list)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class IngestionEndpoint:
    """Validates payloads and forwards valid incidents to the Aggregator.

    Args:
        aggregator: Receives every valid incident.
        registry: Optional adapters for non-canonical payload shapes.
        require_signature: Accept only payloads an adapter has verified.
            The canonical shape carries no signature, so it is refused.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        registry: AdapterRegistry | None = None,
        require_signature: bool = False,
    ) -> None:
        self._aggregator = aggregator
        self._registry = registry
        self._require_signature = require_signature

    def parse(self, raw: Any) -> Incident:
        """Turn one raw payload into an Incident.

        Raises:
            InvalidIncident: the payload is not a usable incident.
        """
        if not isinstance(raw, dict):
            raise InvalidIncident(f"expected a JSON object, got {type(raw).__name__}")

        schema_error: ValidationError | None = None
        if not self._require_signature:
            try:
                return Incident.model_validate(raw)
            except ValidationError as exc:
                schema_error = exc

        if self._registry is not None:
            try:
                return self._registry.adapt(raw)
            except NoAdapterFoundError:
                pass
            except AdaptationError as exc:
                raise InvalidIncident(exc.reason) from exc

        if schema_error is None:
            raise InvalidIncident("unsigned payload refused: signed emitter payloads are required")
        raise InvalidIncident(_describe(schema_error)) from schema_error

    async def ingest_one(self, raw: Any, index: int = 0) -> IncidentOutcome:
        """Validate and apply a single payload, reporting its outcome."""
        try:
            incident = self.parse(raw)
        except InvalidIncident as exc:
            entity_id = raw.get("entity_id") if isinstance(raw, dict) else None
            logger.info("Rejected incident #%d: %s", index, exc.reason)
            return IncidentOutcome(
                index=index,
                status=OutcomeStatus.REJECTED,
                entity_id=entity_id if isinstance(entity_id, str) else None,
                error=exc.reason,
            )

        try:
            score = await self._aggregator.merge(incident)
        except InvalidIncident as exc:
            logger.info("Rejected incident #%d: %s", index, exc.reason)
            return IncidentOutcome(
                index=index,
                status=OutcomeStatus.REJECTED,
                entity_id=incident.entity_id,
                error=exc.reason,
            )
        except StoreUnavailable as exc:
            logger.warning(
                "Incident #%d for %s not applied: %s",
                index,
                incident.entity_id,
                exc.reason,
            )
            return IncidentOutcome(
                index=index,
                status=OutcomeStatus.STORE_UNAVAILABLE,
                entity_id=incident.entity_id,
                error=exc.reason,
            )

        return IncidentOutcome(
            index=index,
            status=OutcomeStatus.ACCEPTED,
            entity_id=incident.entity_id,
            score=score.value,
        )

    async def ingest_batch(self, payloads: Sequence[Any]) -> BatchReport:
        """Apply 0..N payloads in order; one outcome per item."""
        report = BatchReport()
        for index, raw in enumerate(payloads):
            outcome = await self.ingest_one(raw, index)
            if outcome.status == OutcomeStatus.ACCEPTED:
                report.accepted += 1
            elif outcome.status == OutcomeStatus.REJECTED:
                report.rejected += 1
            else:
                report.failed += 1
            report.outcomes.append(outcome)

        logger.debug(
            "Batch of %d: %d accepted, %d rejected, %d failed",
            len(payloads),
            report.accepted,
            report.rejected,
            report.failed,
        )
        return report
