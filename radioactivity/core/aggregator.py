"""Aggregator — merges incidents into per-entity scores with decay.

For one incident against the stored score:

    value' = max(0, decay(value, t_incident - last_update)) + energy

Decay is applied first, then the new energy is added.  The decayed part
snaps to zero once it falls below ``cutoff`` so exponential profiles can
actually reach the "decayed" state.

The same decay is used for read-time evaluation (score_at) and for
scheduled recomputation (recompute / sweep), so a stored score never needs
its incident history to stay accurate.

All writes go through ScoreStore.update(), which holds the entity's lock
for the whole read-modify-write.  The aggregator itself holds no lock.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from radioactivity.core.decay import DecayProfile
from radioactivity.domain.errors import (
    ConfigurationError,
    InvalidIncident,
    StoreUnavailable,
)
from radioactivity.domain.incident import Incident
from radioactivity.domain.score import Score, ScoreLifecycle
from radioactivity.foundation.clock import ensure_utc, utc_now
from radioactivity.store.score_store import ScoreStore

logger = logging.getLogger(__name__)


class SweepReport:
    """Outcome counts of one sweep over the store."""

    __slots__ = ("scanned", "recomputed", "decayed", "reclaimed", "failed")

    def __init__(self) -> None:
        self.scanned = 0
        self.recomputed = 0
        self.decayed = 0
        self.reclaimed = 0
        self.failed = 0

    def to_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "recomputed": self.recomputed,
            "decayed": self.decayed,
            "reclaimed": self.reclaimed,
            "failed": self.failed,
        }


class Aggregator:
    """Applies incidents and decay to scores held in a ScoreStore.

    Args:
        store: Where scores live.  The store serializes per entity.
        decay: Profile mapping (value, elapsed seconds) to a decayed value.
        cutoff: Decayed values below this snap to zero.
        retention: How long a decayed score is kept before reclaiming.
    """

    def __init__(
        self,
        store: ScoreStore,
        decay: DecayProfile,
        cutoff: float = 0.0,
        retention: timedelta = timedelta(days=7),
    ) -> None:
        if cutoff < 0:
            raise ConfigurationError(f"cutoff must be >= 0, got {cutoff}")
        if retention < timedelta(0):
            raise ConfigurationError(f"retention must be >= 0, got {retention}")

        self._store = store
        self._decay = decay
        self._cutoff = cutoff
        self._retention = retention

    @property
    def store(self) -> ScoreStore:
        return self._store

    @property
    def decay(self) -> DecayProfile:
        return self._decay

    # ── Pure decay ───────────────────────────────────────────────────────

    def decayed_value(self, score: Score, at: datetime) -> float:
        """Value of *score* decayed forward to *at*."""
        elapsed = (at - score.last_update).total_seconds()
        value = self._decay.apply(score.value, elapsed)
        if value < self._cutoff:
            return 0.0
        return max(0.0, value)

    def decay_score(self, score: Score, at: datetime) -> Score:
        """Return *score* decayed to *at*.

        Returns the same object when nothing changes (no elapsed time, or
        the value is already stable), so a decayed score keeps its
        last_update and its retention clock keeps running.
        """
        if at <= score.last_update:
            return score
        value = self.decayed_value(score, at)
        if value == score.value:
            return score
        return Score(entity_id=score.entity_id, value=value, last_update=at)

    # ── Writes ───────────────────────────────────────────────────────────

    async def merge(self, incident: Incident) -> Score:
        """Decay the entity's score up to the incident, then add its energy.

        Incidents older than the stored last_update add their energy
        without decay and never move last_update backwards.

        Raises:
            InvalidIncident: the merged value would overflow to infinity;
                the stored score is left unchanged.
            StoreUnavailable: the store could not complete the update.
        """

        def apply(current: Score | None) -> Score:
            if current is None:
                return Score(
                    entity_id=incident.entity_id,
                    value=incident.energy,
                    last_update=incident.timestamp,
                )
            at = max(current.last_update, incident.timestamp)
            base = self.decay_score(current, at)
            value = base.value + incident.energy
            if not math.isfinite(value):
                raise InvalidIncident(
                    f"energy {incident.energy!r} overflows the score of "
                    f"'{incident.entity_id}'"
                )
            return Score(
                entity_id=incident.entity_id,
                value=value,
                last_update=at,
            )

        score = await self._store.update(incident.entity_id, apply)
        if score is None:
            raise StoreUnavailable(
                f"score for '{incident.entity_id}' missing after merge"
            )
        logger.debug(
            "Merged incident for %s (+%.4f) → %.4f",
            incident.entity_id,
            incident.energy,
            score.value,
        )
        return score

    async def recompute(
        self, entity_id: str, at: datetime | None = None
    ) -> Score | None:
        """Persist the decayed value of one score.  None if absent."""
        at = ensure_utc(at) if at is not None else utc_now()

        def apply(current: Score | None) -> Score | None:
            if current is None:
                return None
            return self.decay_score(current, at)

        return await self._store.update(entity_id, apply)

    async def sweep(self, at: datetime | None = None) -> SweepReport:
        """Recompute every score and reclaim decayed ones past retention.

        Each entity is handled under its own lock only, so a sweep never
        blocks foreground merges for other entities.  A store failure on
        one entity is counted and the sweep moves on.
        """
        at = ensure_utc(at) if at is not None else utc_now()
        report = SweepReport()

        for entity_id in await self._store.entity_ids():
            report.scanned += 1
            changes: list[str] = []

            def apply(current: Score | None) -> Score | None:
                if current is None:
                    return None
                decayed = self.decay_score(current, at)
                if decayed.is_reclaimable(self._retention, at):
                    changes.append("reclaimed")
                    return None
                if decayed is not current:
                    changes.append("recomputed")
                    if (
                        current.lifecycle == ScoreLifecycle.ACTIVE
                        and decayed.lifecycle == ScoreLifecycle.DECAYED
                    ):
                        changes.append("decayed")
                return decayed

            try:
                await self._store.update(entity_id, apply)
            except StoreUnavailable as exc:
                report.failed += 1
                logger.warning("Sweep skipped %s: %s", entity_id, exc.reason)
                continue

            report.recomputed += changes.count("recomputed")
            report.decayed += changes.count("decayed")
            report.reclaimed += changes.count("reclaimed")

        if report.reclaimed or report.decayed:
            logger.info(
                "Sweep: %d decayed, %d reclaimed of %d score(s)",
                report.decayed,
                report.reclaimed,
                report.scanned,
            )
        return report

    # ── Reads ────────────────────────────────────────────────────────────

    async def score_at(
        self, entity_id: str, at: datetime | None = None
    ) -> Score | None:
        """Read-time decayed score.  Nothing is written."""
        at = ensure_utc(at) if at is not None else utc_now()
        score = await self._store.get(entity_id)
        if score is None:
            return None
        return self.decay_score(score, at)

    async def top(self, limit: int = 10, at: datetime | None = None) -> list[Score]:
        """Most radioactive entities right now, highest first."""
        at = ensure_utc(at) if at is not None else utc_now()
        scores: list[Score] = []
        for entity_id in await self._store.entity_ids():
            score = await self.score_at(entity_id, at)
            if score is not None and score.value > 0.0:
                scores.append(score)
        scores.sort(key=lambda s: (-s.value, s.entity_id))
        return scores[:limit]
