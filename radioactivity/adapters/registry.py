"""Adapter Registry — picks the adapter for a payload in a foreign shape.

Payloads that fail the canonical Incident schema are offered to each
registered adapter, oldest registration first.  The first adapter that
claims the payload must translate it; there is no second chance with a
later adapter.  Per-adapter outcome counts feed the /health endpoint.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from radioactivity.adapters.base import IncidentAdapter
from radioactivity.domain.incident import Incident

logger = logging.getLogger(__name__)

_ACCEPTED = "accepted"
_REJECTED = "rejected"


class NoAdapterFoundError(Exception):
    """No registered adapter claims the payload."""


class AdaptationError(Exception):
    """The adapter that claimed a payload could not translate it."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"{adapter_name}: {reason}")


class AdapterRegistry:
    """Named, ordered adapters plus accept/reject counters per adapter."""

    def __init__(self) -> None:
        self._adapters: dict[str, IncidentAdapter] = {}
        self._outcomes: Counter[tuple[str, str]] = Counter()

    def register(self, adapter: IncidentAdapter) -> None:
        name = adapter.source_name
        if name in self._adapters:
            raise ValueError(f"adapter '{name}' is already registered")
        self._adapters[name] = adapter
        logger.info("Registered adapter: %s", name)

    def select(self, raw: dict[str, Any]) -> IncidentAdapter | None:
        """First adapter that claims *raw*, or None."""
        return next(
            (a for a in self._adapters.values() if a.can_handle(raw)),
            None,
        )

    def adapt(self, raw: dict[str, Any]) -> Incident:
        """Translate *raw* with the adapter that claims it.

        Raises:
            NoAdapterFoundError: nothing claims the payload.
            AdaptationError: the claiming adapter raised ValueError.
        """
        adapter = self.select(raw)
        if adapter is None:
            raise NoAdapterFoundError(
                f"no adapter claims a payload with keys {sorted(raw)}"
            )

        name = adapter.source_name
        try:
            incident = adapter.adapt(raw)
        except ValueError as exc:
            self._outcomes[name, _REJECTED] += 1
            logger.warning("%s adapter rejected payload: %s", name, exc)
            raise AdaptationError(name, str(exc)) from exc

        self._outcomes[name, _ACCEPTED] += 1
        return incident

    @property
    def adapter_names(self) -> list[str]:
        return list(self._adapters)

    @property
    def stats(self) -> list[dict]:
        return [
            {
                "adapter_name": name,
                "accepted_count": self._outcomes[name, _ACCEPTED],
                "rejected_count": self._outcomes[name, _REJECTED],
            }
            for name in self._adapters
        ]

    @property
    def total_accepted(self) -> int:
        return sum(n for (_, outcome), n in self._outcomes.items() if outcome == _ACCEPTED)

    @property
    def total_rejected(self) -> int:
        return sum(n for (_, outcome), n in self._outcomes.items() if outcome == _REJECTED)
