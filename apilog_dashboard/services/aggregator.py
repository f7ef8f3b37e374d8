"""
LogAnalyticsEngine - Computes metrics and statistics

This module holds the current batch of log records and derives the
dashboard views from it: summary metrics, the hourly traffic series,
per-endpoint statistics and filtered record lists.
"""

import logging
from dataclasses import fields, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil import tz as dttz

from apilog_dashboard.models.data_models import (
    ALL,
    STATUS_CLASS_ERROR,
    STATUS_CLASS_SUCCESS,
    STATUS_CLASSES,
    EndpointStat,
    FilterCriteria,
    HourlyBucket,
    LogRecord,
    MetricsSummary,
)
from apilog_dashboard.services.parser import LogParser, status_class
from apilog_dashboard.utils.helpers import hour_label, parse_ts, quantile

log = logging.getLogger(__name__)

BUCKET_MODE_HOUR_OF_DAY = "hour_of_day"
BUCKET_MODE_ROLLING = "rolling"
BUCKET_MODES = (BUCKET_MODE_HOUR_OF_DAY, BUCKET_MODE_ROLLING)

SUCCESS_POLICY_TRUST = "trust"
SUCCESS_POLICY_DERIVE = "derive"
SUCCESS_POLICIES = (SUCCESS_POLICY_TRUST, SUCCESS_POLICY_DERIVE)

HOURS_PER_DAY = 24

_RECORD_FIELDS = {f.name for f in fields(LogRecord)}


def _with_aware_timestamp(record: LogRecord) -> LogRecord:
    if record.timestamp.tzinfo is not None:
        return record
    return replace(record, timestamp=parse_ts(record.timestamp))


def resolve_timezone(name: str):
    """Return a tzinfo for an IANA zone name, raising ValueError if unknown"""
    zone = dttz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown time zone: {name!r}")
    return zone


class LogAnalyticsEngine:
    """
    Aggregates log records into metrics and statistics.
    Responsibilities:
    - Hold the current record set (replaced wholesale on ingest)
    - Compute summary metrics
    - Compute the 24-slot hourly series
    - Compute per-endpoint statistics and recent errors
    - Answer filter queries

    The record set is stored as a tuple and swapped atomically on ingest, so
    a reader always sees one complete batch.

    Hour bucketing uses ``tz`` explicitly, never the process local zone. In
    ``hour_of_day`` mode records from different calendar days that share an
    hour land in the same bucket.
    """

    def __init__(
        self,
        tz: str = "UTC",
        bucket_mode: str = BUCKET_MODE_HOUR_OF_DAY,
        success_policy: str = SUCCESS_POLICY_TRUST,
        search_fields: Sequence[str] = ("endpoint",),
    ):
        if bucket_mode not in BUCKET_MODES:
            raise ValueError(f"Unknown bucket mode: {bucket_mode!r}")
        if success_policy not in SUCCESS_POLICIES:
            raise ValueError(f"Unknown success policy: {success_policy!r}")
        unknown = [f for f in search_fields if f not in _RECORD_FIELDS]
        if unknown or not search_fields:
            raise ValueError(f"Invalid search fields: {list(search_fields)!r}")

        self.tz_name = tz
        self.tz = resolve_timezone(tz)
        self.bucket_mode = bucket_mode
        self.success_policy = success_policy
        self.search_fields: Tuple[str, ...] = tuple(search_fields)

        self._records: Tuple[LogRecord, ...] = ()
        self.last_ingested_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def records(self) -> Tuple[LogRecord, ...]:
        return self._records

    def ingest(self, records: Iterable[LogRecord]) -> None:
        """
        Replace the current record set with ``records`` (no append, no validation).
        Naive timestamps are taken as UTC; every stored timestamp is tz-aware.
        """
        snapshot = tuple(_with_aware_timestamp(r) for r in records)
        self._records = snapshot
        self.last_ingested_at = datetime.now(timezone.utc)
        log.debug("Ingested %d log records", len(snapshot))

    def get(self, record_id: str) -> Optional[LogRecord]:
        """Look up a record by id (first match in ingestion order)"""
        return next((r for r in self._records if r.id == record_id), None)

    @property
    def latest_timestamp(self) -> Optional[datetime]:
        return max((r.timestamp for r in self._records), default=None)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def is_success(self, record: LogRecord) -> bool:
        if self.success_policy == SUCCESS_POLICY_DERIVE:
            return not LogParser.is_error(record)
        return bool(record.success)

    def local_hour(self, record: LogRecord) -> int:
        return record.timestamp.astimezone(self.tz).hour

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def compute_summary(self) -> MetricsSummary:
        """Compute aggregated metrics from the current record set"""
        records = self._records
        total = len(records)

        failed = sum(1 for r in records if not self.is_success(r))
        success_rate = ((total - failed) / total * 100.0) if total else 0.0

        latencies = sorted(r.latency_ms for r in records)
        avg_latency = (sum(latencies) / total) if total else 0.0
        peak = latencies[-1] if latencies else 0

        by_status: Dict[str, int] = {}
        by_class: Dict[str, int] = {}
        by_method: Dict[str, int] = {}
        for r in records:
            key = str(r.status_code)
            by_status[key] = by_status.get(key, 0) + 1
            klass = status_class(r.status_code)
            by_class[klass] = by_class.get(klass, 0) + 1
            by_method[r.method] = by_method.get(r.method, 0) + 1

        return MetricsSummary(
            total_requests=total,
            failed_requests=failed,
            average_latency_ms=avg_latency,
            unique_client_count=len({r.source_ip for r in records}),
            success_rate_percent=success_rate,
            peak_latency_ms=peak,
            p50_latency_ms=quantile(latencies, 0.50),
            p95_latency_ms=quantile(latencies, 0.95),
            p99_latency_ms=quantile(latencies, 0.99),
            requests_by_status=by_status,
            requests_by_status_class=by_class,
            requests_by_method=by_method,
        )

    def compute_hourly_buckets(self) -> List[HourlyBucket]:
        """Compute the 24-slot traffic series (zero-filled)"""
        if self.bucket_mode == BUCKET_MODE_ROLLING:
            return self._rolling_buckets()

        buckets = [HourlyBucket(hour=h, hour_label=hour_label(h)) for h in range(HOURS_PER_DAY)]
        for r in self._records:
            self._count(buckets[self.local_hour(r)], r)
        return buckets

    def _rolling_buckets(self) -> List[HourlyBucket]:
        """
        Buckets for the 24 absolute hours ending with the hour of the latest
        record. Older records fall outside the window and are not counted.
        """
        latest = self.latest_timestamp
        if latest is None:
            latest = datetime.now(timezone.utc)
        end = latest.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
        start = end - timedelta(hours=HOURS_PER_DAY - 1)

        buckets: List[HourlyBucket] = []
        for i in range(HOURS_PER_DAY):
            hour = (start + timedelta(hours=i)).astimezone(self.tz).hour
            buckets.append(HourlyBucket(hour=hour, hour_label=hour_label(hour)))

        for r in self._records:
            offset = r.timestamp.astimezone(timezone.utc) - start
            index = int(offset.total_seconds() // 3600)
            if 0 <= index < HOURS_PER_DAY:
                self._count(buckets[index], r)
        return buckets

    def _count(self, bucket: HourlyBucket, record: LogRecord) -> None:
        bucket.total_count += 1
        if self.is_success(record):
            bucket.success_count += 1
        else:
            bucket.error_count += 1

    def compute_endpoints(
        self,
        limit: int = 10,
        sort_by: str = "count",
        order: str = "desc",
    ) -> List[EndpointStat]:
        """Compute per-endpoint statistics"""
        buckets: Dict[str, List[LogRecord]] = {}
        for r in self._records:
            buckets.setdefault(r.endpoint, []).append(r)

        stats: List[EndpointStat] = []
        for endpoint, items in buckets.items():
            count = len(items)
            errors = sum(1 for r in items if not self.is_success(r))
            durs = sorted(r.latency_ms for r in items)

            stats.append(
                EndpointStat(
                    endpoint=endpoint,
                    count=count,
                    errors=errors,
                    avg_latency_ms=sum(durs) / count,
                    p95_latency_ms=quantile(durs, 0.95),
                    error_rate=errors / count * 100.0,
                )
            )

        reverse = order.lower() != "asc"
        key_fn = (
            (lambda x: x.p95_latency_ms)
            if sort_by.lower() == "p95"
            else (lambda x: x.count)
        )
        stats.sort(key=key_fn, reverse=reverse)

        return stats[:limit]

    def recent_errors(self, limit: int = 20) -> List[LogRecord]:
        """Get the most recent failed records, newest first"""
        errors = [r for r in self._records if not self.is_success(r)]
        errors.sort(key=lambda r: r.timestamp, reverse=True)
        return errors[:limit]

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def filter(self, criteria: Optional[FilterCriteria] = None) -> List[LogRecord]:
        """
        Return the records matching every criterion, in ingestion order.

        Search is a case-insensitive substring match against any of the
        configured search fields. The hour range is inclusive on both ends
        and does not wrap around midnight: a start after the end matches
        nothing.
        """
        records = self._records
        if criteria is None or criteria.is_empty():
            return list(records)

        status = criteria.status_class or ALL
        if status not in STATUS_CLASSES:
            raise ValueError(f"Unknown status class: {criteria.status_class!r}")

        needle = criteria.search_text.lower() if criteria.search_text else None
        method = criteria.method if criteria.method not in (None, ALL) else None

        out: List[LogRecord] = []
        for r in records:
            if needle is not None and not self._matches_text(r, needle):
                continue
            if method is not None and r.method != method:
                continue
            if status == STATUS_CLASS_SUCCESS and r.status_code >= 400:
                continue
            if status == STATUS_CLASS_ERROR and r.status_code < 400:
                continue
            if criteria.hour_range is not None:
                start_hour, end_hour = criteria.hour_range
                hour = self.local_hour(r)
                if hour < start_hour or hour > end_hour:
                    continue
            out.append(r)
        return out

    def _matches_text(self, record: LogRecord, needle: str) -> bool:
        for name in self.search_fields:
            value = getattr(record, name)
            if value is not None and needle in str(value).lower():
                return True
        return False
