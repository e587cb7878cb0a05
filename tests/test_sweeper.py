"""Tests for the background decay sweeper."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from radioactivity.core.aggregator import Aggregator
from radioactivity.core.decay import HalfLifeDecay
from radioactivity.domain.incident import Incident
from radioactivity.services.sweeper import DecaySweeper
from radioactivity.store.score_store import InMemoryScoreStore

from tests.test_incident import _valid_incident


class TestDecaySweeper:
    @pytest.mark.asyncio
    async def test_disabled_with_zero_interval(self) -> None:
        sweeper = DecaySweeper(Aggregator(InMemoryScoreStore(), HalfLifeDecay(10)), interval=0)
        sweeper.start()
        assert not sweeper.running
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_runs_periodically_and_stops(self) -> None:
        agg = Aggregator(
            InMemoryScoreStore(),
            HalfLifeDecay(0.01),
            cutoff=1.0,
            retention=timedelta(0),
        )
        past = datetime.now(timezone.utc) - timedelta(seconds=5)
        await agg.merge(Incident.model_validate(_valid_incident(energy=5, timestamp=past.isoformat())))

        sweeper = DecaySweeper(agg, interval=0.01)
        sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if await agg.store.count() == 0:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert not sweeper.running
        assert sweeper.runs >= 1
        assert await agg.store.count() == 0
