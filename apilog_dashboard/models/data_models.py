"""
Data Models (DTOs - Data Transfer Objects)

This module contains all dataclass definitions used throughout the application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

# sentinel accepted by FilterCriteria for "no filtering"
ALL = "all"

STATUS_CLASS_SUCCESS = "success"
STATUS_CLASS_ERROR = "error"
STATUS_CLASSES = (ALL, STATUS_CLASS_SUCCESS, STATUS_CLASS_ERROR)


@dataclass(frozen=True)
class LogRecord:
    """One logged API request/response event. Never mutated after creation."""
    id: str
    timestamp: datetime
    source_ip: str
    method: str
    endpoint: str
    status_code: int
    latency_ms: int
    success: bool
    response_size_bytes: int = 0
    user_agent: str = ""
    location: str = ""
    proxy_latency_ms: Optional[int] = None
    application_name: Optional[str] = None
    application_id: Optional[str] = None
    user_name: Optional[str] = None
    user_id: Optional[str] = None
    api_name: Optional[str] = None


@dataclass
class MetricsSummary:
    """Aggregated metrics over the current record set"""
    total_requests: int
    failed_requests: int
    average_latency_ms: float
    unique_client_count: int
    success_rate_percent: float
    peak_latency_ms: int
    p50_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    requests_by_status: Dict[str, int] = field(default_factory=dict)
    requests_by_status_class: Dict[str, int] = field(default_factory=dict)
    requests_by_method: Dict[str, int] = field(default_factory=dict)


@dataclass
class HourlyBucket:
    """Request counts for one hour slot of the traffic chart"""
    hour: int
    hour_label: str
    total_count: int = 0
    success_count: int = 0
    error_count: int = 0


@dataclass(frozen=True)
class FilterCriteria:
    """
    Query over the record set. Every field is optional; None (or "all")
    means the predicate matches everything.
    """
    search_text: Optional[str] = None
    method: Optional[str] = None
    status_class: Optional[str] = None
    hour_range: Optional[Tuple[int, int]] = None

    def is_empty(self) -> bool:
        return (
            not self.search_text
            and self.method in (None, ALL)
            and self.status_class in (None, ALL)
            and self.hour_range is None
        )


@dataclass
class EndpointStat:
    """Per-endpoint statistics"""
    endpoint: str
    count: int
    errors: int
    avg_latency_ms: float
    p95_latency_ms: float
    error_rate: float


@dataclass
class HealthStatus:
    """Health check response"""
    status: str
    record_count: int
    bucket_mode: str
    timezone: str
    success_policy: str
    last_ingested_at: Optional[str] = None
    latest_timestamp: Optional[str] = None
