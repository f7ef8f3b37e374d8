"""
Tests for the poll-and-replace refresher.
"""

import asyncio

import pytest

from apilog_dashboard.services.aggregator import LogAnalyticsEngine
from apilog_dashboard.services.refresher import LogRefresher


class CountingSource:
    def __init__(self):
        self.calls = 0

    def fetch(self):
        self.calls += 1
        return [
            {"id": f"{self.calls}-{i}", "timestamp": "2024-05-01T10:00:00Z", "status": 200}
            for i in range(self.calls)
        ]


class BrokenSource:
    def fetch(self):
        raise RuntimeError("backend down")


def test_refresh_replaces_snapshot():
    engine = LogAnalyticsEngine()
    refresher = LogRefresher(engine, CountingSource())

    assert refresher.refresh() == 1
    assert refresher.refresh() == 2
    assert [r.id for r in engine.records] == ["2-0", "2-1"]


def test_refresh_propagates_source_errors():
    refresher = LogRefresher(LogAnalyticsEngine(), BrokenSource())
    with pytest.raises(RuntimeError):
        refresher.refresh()


@pytest.mark.asyncio
async def test_background_loop_polls_until_stopped():
    source = CountingSource()
    engine = LogAnalyticsEngine()
    refresher = LogRefresher(engine, source, interval=0.01)

    refresher.start()
    assert refresher.running
    await asyncio.sleep(0.05)
    await refresher.stop()

    assert not refresher.running
    assert source.calls >= 2
    assert len(engine.records) == source.calls


@pytest.mark.asyncio
async def test_background_loop_keeps_last_snapshot_on_failure():
    engine = LogAnalyticsEngine()
    LogRefresher(engine, CountingSource()).refresh()
    before = engine.records

    refresher = LogRefresher(engine, BrokenSource(), interval=0.01)
    refresher.start()
    await asyncio.sleep(0.03)
    await refresher.stop()

    assert engine.records == before
