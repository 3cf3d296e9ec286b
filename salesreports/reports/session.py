"""
Report Session

Holds the cached raw snapshot for one report consumer and runs
aggregations against it.

Scheduling model:
- the three raw collections are fetched once, concurrently, and reused
  until refreshed or expired
- a scheduled run yields to the event loop before aggregating, then
  aggregates in a worker thread
- every schedule() bumps a generation counter; a run only commits its
  report when its generation is still the current one, so a superseded
  run can never overwrite a newer result
- a current run that cannot fetch its data records the error as
  latest_error instead of a report; the next committed report clears it
"""

import asyncio
from datetime import datetime, tzinfo
from typing import Optional, Union

import structlog

from salesreports.config import get_settings
from salesreports.exceptions import ReportError
from salesreports.ingestion.sources import DataSnapshot, ReportDataSource, fetch_snapshot
from .aggregator import ReportAggregator
from .date_ranges import DateRangeKind
from .models import SalesReport

logger = structlog.get_logger(__name__)


class ReportSession:
    """
    Cached snapshot plus cancelable report runs.

    Example:
        session = ReportSession(source)
        task = session.schedule("week")
        report = await task
    """

    def __init__(
        self,
        source: ReportDataSource,
        aggregator: Optional[ReportAggregator] = None,
        ttl_seconds: Optional[int] = None,
        tz: Optional[tzinfo] = None,
    ):
        settings = get_settings()
        self.source = source
        self.aggregator = aggregator or ReportAggregator()
        self.ttl_seconds = settings.reports.snapshot_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.tz = tz or self.aggregator.tz

        self._snapshot: Optional[DataSnapshot] = None
        self._load_lock = asyncio.Lock()
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._latest: Optional[SalesReport] = None
        self._latest_error: Optional[ReportError] = None

    @property
    def snapshot(self) -> Optional[DataSnapshot]:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest_report(self) -> Optional[SalesReport]:
        return self._latest

    @property
    def latest_error(self) -> Optional[ReportError]:
        """Failure of the most recent scheduled run, if it failed"""
        return self._latest_error

    def _is_stale(self) -> bool:
        if self._snapshot is None:
            return True
        if self.ttl_seconds <= 0:
            return False
        return self._snapshot.age_seconds() > self.ttl_seconds

    async def load(self, force: bool = False) -> DataSnapshot:
        """
        Return the cached snapshot, fetching it first if missing or expired.

        Raises:
            DataSourceError: If the data source cannot be listed
        """
        async with self._load_lock:
            if force or self._is_stale():
                self._snapshot = await fetch_snapshot(self.source, self.tz)
            return self._snapshot

    async def refresh(self) -> DataSnapshot:
        """Re-fetch the raw collections; the next run uses the new snapshot"""
        logger.info("Refreshing report snapshot")
        return await self.load(force=True)

    async def build(
        self,
        kind: Union[str, DateRangeKind, None] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> SalesReport:
        """Build a one-off report; not tracked by the generation counter"""
        snapshot = await self.load()
        return await asyncio.to_thread(self.aggregator.build_report, snapshot, kind, now, limit)

    async def _run(
        self,
        generation: int,
        kind: Union[str, DateRangeKind, None],
        now: Optional[datetime],
        limit: Optional[int],
    ) -> Optional[SalesReport]:
        try:
            snapshot = await self.load()
        except ReportError as e:
            if generation == self._generation:
                self._latest_error = e
                logger.warning(
                    "Scheduled report run failed",
                    generation=generation,
                    error_code=e.error_code,
                    error=e.message,
                )
            return None

        # Let pending work on the loop settle before aggregating
        await asyncio.sleep(0)
        if generation != self._generation:
            logger.debug("Skipping superseded report run", generation=generation)
            return None

        report = await asyncio.to_thread(self.aggregator.build_report, snapshot, kind, now, limit)

        if generation != self._generation:
            logger.debug("Discarding superseded report", generation=generation, current=self._generation)
            return None

        self._latest = report
        self._latest_error = None
        return report

    def schedule(
        self,
        kind: Union[str, DateRangeKind, None] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> "asyncio.Task[Optional[SalesReport]]":
        """
        Schedule a report run, superseding any run still pending.

        The returned task resolves to the report, or None if it was
        superseded before committing or its data could not be fetched
        (see latest_error). Must be called from a running loop.
        """
        self.cancel_pending()
        self._generation += 1
        task = asyncio.create_task(self._run(self._generation, kind, now, limit))
        self._pending = task
        logger.debug("Report run scheduled", generation=self._generation, range=str(kind))
        return task

    def cancel_pending(self) -> None:
        """Cancel the pending run, if any, and invalidate its generation"""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            self._generation += 1
        self._pending = None

    async def close(self) -> None:
        """Cancel outstanding work"""
        pending = self._pending
        self.cancel_pending()
        if pending is not None:
            try:
                await pending
            except asyncio.CancelledError:
                pass
