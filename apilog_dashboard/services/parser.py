"""
LogParser Class - Handles parsing and normalization

This module turns wire-format log dicts into LogRecord objects and back.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from apilog_dashboard.models.data_models import LogRecord
from apilog_dashboard.utils.helpers import (
    coalesce,
    first_present,
    get_nested,
    parse_ts,
    safe_bool,
    safe_int,
)

log = logging.getLogger(__name__)

# LogRecord attribute -> backend contract field name
WIRE_FIELDS = (
    ("id", "id"),
    ("timestamp", "timestamp"),
    ("source_ip", "ip"),
    ("method", "method"),
    ("endpoint", "endpoint"),
    ("status_code", "status"),
    ("latency_ms", "latency"),
    ("proxy_latency_ms", "proxyLatency"),
    ("success", "success"),
    ("user_agent", "userAgent"),
    ("response_size_bytes", "size"),
    ("location", "location"),
    ("application_name", "applicationName"),
    ("application_id", "applicationId"),
    ("user_name", "userName"),
    ("user_id", "userId"),
    ("api_name", "apiName"),
)

# optional wire fields that are omitted from output when unset
OPTIONAL_WIRE_FIELDS = {
    "proxyLatency",
    "applicationName",
    "applicationId",
    "userName",
    "userId",
    "apiName",
}


def _opt_str(x: Any) -> Optional[str]:
    return str(x) if x is not None else None


def status_class(code: int) -> str:
    """Classify an HTTP status code into 2xx/3xx/4xx/5xx (or other below 200)"""
    if code >= 500:
        return "5xx"
    if code >= 400:
        return "4xx"
    if code >= 300:
        return "3xx"
    if code >= 200:
        return "2xx"
    return "other"


class LogParser:
    """
    Parses wire-format dicts into LogRecord objects.
    Responsibilities:
    - Normalize camelCase contract fields and snake_case aliases
    - Serialize records back to the contract field names
    - Classify records (success / error)
    """

    @staticmethod
    def normalize(raw: Dict[str, Any]) -> Optional[LogRecord]:
        """
        Normalize a raw log dict into a LogRecord.
        Only the timestamp is required; everything else falls back to a
        permissive default and is not range-checked.
        """
        if not isinstance(raw, dict):
            return None

        ts = parse_ts(
            coalesce(
                first_present(raw, "timestamp", "time"),
                get_nested(raw, ("meta", "timestamp")),
            )
        )
        if ts is None:
            return None

        method = coalesce(first_present(raw, "method"), get_nested(raw, ("request", "method")))
        endpoint = coalesce(
            first_present(raw, "endpoint", "path"),
            get_nested(raw, ("request", "path")),
        )
        status = safe_int(
            coalesce(
                first_present(raw, "status", "status_code", "statusCode"),
                get_nested(raw, ("response", "status_code")),
            ),
            default=0,
        )

        success = safe_bool(raw.get("success"))
        if success is None:
            success = status < 400

        return LogRecord(
            id=str(coalesce(first_present(raw, "id", "request_id"), "")),
            timestamp=ts,
            source_ip=str(coalesce(first_present(raw, "ip", "source_ip", "sourceIp", "client_ip"), "")),
            method=str(coalesce(method, "")),
            endpoint=str(coalesce(endpoint, "")),
            status_code=status,
            latency_ms=safe_int(
                first_present(raw, "latency", "latency_ms", "latencyMs", "duration_ms"),
                default=0,
            ),
            success=success,
            response_size_bytes=safe_int(
                first_present(raw, "size", "response_size_bytes", "responseSizeBytes"),
                default=0,
            ),
            user_agent=str(coalesce(first_present(raw, "userAgent", "user_agent"), "")),
            location=str(coalesce(raw.get("location"), "")),
            proxy_latency_ms=safe_int(first_present(raw, "proxyLatency", "proxy_latency_ms")),
            application_name=_opt_str(first_present(raw, "applicationName", "application_name")),
            application_id=_opt_str(first_present(raw, "applicationId", "application_id")),
            user_name=_opt_str(first_present(raw, "userName", "user_name")),
            user_id=_opt_str(first_present(raw, "userId", "user_id")),
            api_name=_opt_str(first_present(raw, "apiName", "api_name")),
        )

    @classmethod
    def normalize_many(cls, items: Iterable[Dict[str, Any]]) -> List[LogRecord]:
        """Normalize a batch, dropping entries without a usable timestamp"""
        records: List[LogRecord] = []
        dropped = 0
        for raw in items:
            record = cls.normalize(raw)
            if record is None:
                dropped += 1
                continue
            records.append(record)
        if dropped:
            log.warning("Dropped %d log entries without a parsable timestamp", dropped)
        return records

    @staticmethod
    def to_wire(record: LogRecord) -> Dict[str, Any]:
        """Render a LogRecord with the backend contract field names"""
        out: Dict[str, Any] = {}
        for attr, key in WIRE_FIELDS:
            value = getattr(record, attr)
            if key in OPTIONAL_WIRE_FIELDS and value is None:
                continue
            if attr == "timestamp":
                value = value.isoformat()
            out[key] = value
        return out

    @staticmethod
    def is_error(record: LogRecord) -> bool:
        """Check if the record's status code falls in the error class (>= 400)"""
        return record.status_code >= 400
