from datetime import datetime, timezone

import pytest

from apilog_dashboard.models.data_models import LogRecord


def make_record(
    id="r1",
    hour=10,
    minute=0,
    day=1,
    status=200,
    latency=100,
    method="GET",
    endpoint="/api/users",
    ip="10.0.0.1",
    success=None,
    **extra,
):
    return LogRecord(
        id=id,
        timestamp=datetime(2024, 5, day, hour, minute, tzinfo=timezone.utc),
        source_ip=ip,
        method=method,
        endpoint=endpoint,
        status_code=status,
        latency_ms=latency,
        success=(status < 400) if success is None else success,
        response_size_bytes=1024,
        user_agent="pytest",
        location="EU-Central",
        **extra,
    )


@pytest.fixture
def scenario_records():
    """Three records across hours 10 and 11, two of them failures."""
    return [
        make_record(id="a", hour=10, status=200, latency=100),
        make_record(id="b", hour=10, minute=30, status=500, latency=400, method="POST"),
        make_record(id="c", hour=11, status=404, latency=50, ip="10.0.0.2", endpoint="/api/search"),
    ]
