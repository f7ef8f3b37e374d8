from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Body, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from apilog_dashboard import config
from apilog_dashboard.models.data_models import FilterCriteria, HealthStatus, LogRecord
from apilog_dashboard.services.aggregator import LogAnalyticsEngine
from apilog_dashboard.services.batch_loader import BatchLoader
from apilog_dashboard.services.mock_source import MockLogSource
from apilog_dashboard.services.parser import LogParser
from apilog_dashboard.services.refresher import LogRefresher

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)

API_PREFIX = config.API_PREFIX

# ──────────────────────────────────────────────────────────────────────────────
# Services
# ──────────────────────────────────────────────────────────────────────────────

engine = LogAnalyticsEngine(
    tz=config.LOG_TIMEZONE,
    bucket_mode=config.BUCKET_MODE,
    success_policy=config.SUCCESS_POLICY,
    search_fields=config.SEARCH_FIELDS,
)
loader = BatchLoader()
source = MockLogSource(batch_size=config.MOCK_BATCH_SIZE, seed=config.MOCK_SEED)
refresher = LogRefresher(engine, source, interval=config.REFRESH_INTERVAL_SECONDS or 5.0)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if config.REFRESH_INTERVAL_SECONDS > 0:
        refresher.start()
    try:
        yield
    finally:
        await refresher.stop()


# ──────────────────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(title="API Logs (Log Batches → Dashboard APIs)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _ingest_items(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    records = LogParser.normalize_many(items)
    engine.ingest(records)
    log.info("Ingested %d of %d log entries", len(records), len(items))
    return {
        "status": "ok",
        "received": len(items),
        "ingested": len(records),
        "dropped": len(items) - len(records),
    }


def _criteria(
    search: Optional[str],
    method: Optional[str],
    status: Optional[str],
    start_hour: Optional[int],
    end_hour: Optional[int],
) -> FilterCriteria:
    hour_range = None
    if start_hour is not None or end_hour is not None:
        hour_range = (
            start_hour if start_hour is not None else 0,
            end_hour if end_hour is not None else 23,
        )
    return FilterCriteria(
        search_text=search or None,
        method=method or None,
        status_class=status or None,
        hour_range=hour_range,
    )


def _filtered(criteria: FilterCriteria) -> List[LogRecord]:
    try:
        return engine.filter(criteria)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# ──────────────────────────────────────────────────────────────────────────────
# Ingestion
# ──────────────────────────────────────────────────────────────────────────────

@app.post(f"{API_PREFIX}/logs")
def ingest_logs(payload: Any = Body(...)) -> Dict[str, Any]:
    """
    Replace the record set with a JSON batch.
    Accepts {"logs": [...]} (or events/entries/data/items), a bare list,
    or a single record object.
    """
    try:
        items = BatchLoader.unwrap(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _ingest_items(items)


@app.post(f"{API_PREFIX}/upload-log")
async def upload_log_file(file: UploadFile = File(...)) -> Dict[str, Any]:
    """Replace the record set with an uploaded JSONL / JSON file"""
    content = await file.read()
    try:
        items = loader.decode(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _ingest_items(items)


@app.post(f"{API_PREFIX}/refresh")
def refresh() -> Dict[str, Any]:
    """Pull one batch from the configured source"""
    count = refresher.refresh()
    return {"status": "ok", "ingested": count}


# ──────────────────────────────────────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────────────────────────────────────

@app.get(f"{API_PREFIX}/health")
def health() -> Dict[str, Any]:
    latest = engine.latest_timestamp
    status = HealthStatus(
        status="ok",
        record_count=len(engine.records),
        bucket_mode=engine.bucket_mode,
        timezone=engine.tz_name,
        success_policy=engine.success_policy,
        last_ingested_at=engine.last_ingested_at.isoformat() if engine.last_ingested_at else None,
        latest_timestamp=latest.isoformat() if latest else None,
    )
    return asdict(status)


# ──────────────────────────────────────────────────────────────────────────────
# Metrics + Charts
# ──────────────────────────────────────────────────────────────────────────────

@app.get(f"{API_PREFIX}/metrics")
def metrics() -> Dict[str, Any]:
    return {"metrics": asdict(engine.compute_summary())}


@app.get(f"{API_PREFIX}/traffic")
def traffic() -> Dict[str, Any]:
    return {
        "bucket_mode": engine.bucket_mode,
        "timezone": engine.tz_name,
        "hourly": [asdict(b) for b in engine.compute_hourly_buckets()],
    }


@app.get(f"{API_PREFIX}/endpoints")
def endpoints(
    limit: int = Query(10, ge=1, le=200),
    sort_by: str = Query("count"),  # "count" or "p95"
    order: str = Query("desc"),     # "asc" or "desc"
) -> Dict[str, Any]:
    stats = engine.compute_endpoints(limit=limit, sort_by=sort_by, order=order)
    return {"endpoints": [asdict(s) for s in stats]}


@app.get(f"{API_PREFIX}/errors")
def errors(limit: int = Query(20, ge=1, le=200)) -> Dict[str, Any]:
    return {"errors": [LogParser.to_wire(r) for r in engine.recent_errors(limit=limit)]}


# ──────────────────────────────────────────────────────────────────────────────
# Log table + inspector
# ──────────────────────────────────────────────────────────────────────────────

@app.get(f"{API_PREFIX}/logs")
def list_logs(
    search: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    status: Optional[str] = Query(None),  # "all", "success" or "error"
    start_hour: Optional[int] = Query(None, ge=0, le=23),
    end_hour: Optional[int] = Query(None, ge=0, le=23),
) -> Dict[str, Any]:
    rows = _filtered(_criteria(search, method, status, start_hour, end_hour))
    return {"count": len(rows), "logs": [LogParser.to_wire(r) for r in rows]}


@app.get(f"{API_PREFIX}/logs/export")
def export_logs(
    search: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    start_hour: Optional[int] = Query(None, ge=0, le=23),
    end_hour: Optional[int] = Query(None, ge=0, le=23),
) -> Response:
    rows = _filtered(_criteria(search, method, status, start_hour, end_hour))
    return Response(
        content=loader.export(rows),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="api-logs.json"'},
    )


@app.get(f"{API_PREFIX}/logs/{{record_id}}")
def get_log(record_id: str) -> Dict[str, Any]:
    record = engine.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Log record {record_id!r} not found")
    return {"log": LogParser.to_wire(record)}
