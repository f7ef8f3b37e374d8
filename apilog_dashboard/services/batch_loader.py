"""
BatchLoader Class - Decodes uploaded log batches

This module turns uploaded payloads into wire-format dicts and renders
record sets back out for export. Nothing is written to disk.
"""

import json
import logging
from typing import Any, Dict, Iterable, List

from apilog_dashboard.models.data_models import LogRecord
from apilog_dashboard.services.parser import LogParser

log = logging.getLogger(__name__)

# keys under which a JSON object may carry its list of log entries
LIST_KEYS = ("logs", "events", "entries", "data", "items")


class BatchLoader:
    """
    Decodes log batches.
    Responsibilities:
    - Accept JSONL, JSON array, or JSON object payloads
    - Unwrap the record list from the {"logs": [...]} envelope
    - Export records in the same envelope
    """

    def decode(self, content: bytes) -> List[Dict[str, Any]]:
        """
        Decode an uploaded batch (JSON array, JSON object or JSONL).
        Raises ValueError for empty content.
        """
        if not content:
            raise ValueError("Empty file content")

        text = content.decode("utf-8", errors="ignore").strip()
        if not text:
            raise ValueError("Empty file after decoding")

        # Try parsing as JSON first (handles multiline JSON)
        try:
            obj = json.loads(text)
        except json.JSONDecodeError:
            pass
        else:
            items = self.unwrap(obj)
            log.debug("Decoded %d entries from JSON payload", len(items))
            return items

        # Fallback: treat as JSONL, skipping invalid lines
        items: List[Dict[str, Any]] = []
        skipped = 0
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError:
                skipped += 1
                continue
            if isinstance(item, dict):
                items.append(item)

        if not items:
            raise ValueError("No JSON log entries found in upload")
        if skipped:
            log.warning("Skipped %d invalid JSONL lines", skipped)
        return items

    @staticmethod
    def unwrap(obj: Any) -> List[Dict[str, Any]]:
        """Extract the list of entry dicts from a decoded JSON document"""
        if isinstance(obj, list):
            return [item for item in obj if isinstance(item, dict)]

        if isinstance(obj, dict):
            for key in LIST_KEYS:
                if key in obj and isinstance(obj[key], list):
                    return [item for item in obj[key] if isinstance(item, dict)]
            # Single JSON object
            return [obj]

        raise ValueError("Expected a JSON array or object of log entries")

    @staticmethod
    def export(records: Iterable[LogRecord]) -> str:
        """Render records as a {"logs": [...]} JSON document"""
        payload = {"logs": [LogParser.to_wire(r) for r in records]}
        return json.dumps(payload, ensure_ascii=False, indent=2)
