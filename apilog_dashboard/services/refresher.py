"""
LogRefresher - Periodic poll-and-replace loop

Pulls a batch from a source and swaps it into the engine, either once on
demand or on a fixed interval as a background asyncio task.
"""

import asyncio
import contextlib
import logging
from typing import Any, Dict, List, Optional, Protocol

from apilog_dashboard.services.aggregator import LogAnalyticsEngine
from apilog_dashboard.services.parser import LogParser

log = logging.getLogger(__name__)


class LogSource(Protocol):
    def fetch(self) -> List[Dict[str, Any]]:
        ...


class LogRefresher:
    def __init__(self, engine: LogAnalyticsEngine, source: LogSource, interval: float = 5.0):
        self.engine = engine
        self.source = source
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    def refresh(self) -> int:
        """Fetch one batch and replace the engine's record set. Returns the record count."""
        records = LogParser.normalize_many(self.source.fetch())
        self.engine.ingest(records)
        log.info("Refreshed log snapshot with %d records", len(records))
        return len(records)

    async def run(self) -> None:
        """Refresh every ``interval`` seconds until cancelled; failures keep the last snapshot"""
        while True:
            try:
                self.refresh()
            except Exception:
                log.exception("Log refresh failed; keeping previous snapshot")
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run())
        log.info("Log refresher started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        log.info("Log refresher stopped")
