"""
MockLogSource - Generates pseudo-random API log batches

Stands in for a real backend: every fetch returns a fresh batch in the
backend contract format ({"logs": [...]} entries).
"""

import random
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]
ENDPOINTS = [
    "/api/users",
    "/api/auth/login",
    "/api/data",
    "/api/upload",
    "/api/payments",
    "/api/search",
]
STATUSES = [200, 201, 400, 401, 403, 404, 500, 503]
IPS = ["192.168.1.10", "10.0.0.15", "172.16.0.5", "203.0.113.42", "198.51.100.17"]
LOCATIONS = ["US-West", "EU-Central", "AP-Southeast"]
USER_AGENT = "Mozilla/5.0 (compatible; API Client)"

# spacing between consecutive generated requests
INTERVAL = timedelta(minutes=30)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class MockLogSource:
    """Pseudo-random log batch generator. Pass ``seed`` for reproducible batches."""

    def __init__(
        self,
        batch_size: int = 50,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        if batch_size < 0:
            raise ValueError("batch_size must be >= 0")
        self.batch_size = batch_size
        self.now = now
        self._rng = random.Random(seed)

    def _generate_id(self) -> str:
        return "".join(self._rng.choice(_ID_ALPHABET) for _ in range(9))

    def fetch(self) -> List[Dict[str, Any]]:
        """Return one batch, newest request first, spaced INTERVAL apart"""
        rng = self._rng
        now = self.now or datetime.now(timezone.utc)

        logs: List[Dict[str, Any]] = []
        for i in range(self.batch_size):
            status = rng.choice(STATUSES)
            logs.append(
                {
                    "id": self._generate_id(),
                    "timestamp": (now - i * INTERVAL).isoformat(),
                    "ip": rng.choice(IPS),
                    "method": rng.choice(METHODS),
                    "endpoint": rng.choice(ENDPOINTS),
                    "status": status,
                    "latency": rng.randint(50, 2049),
                    "proxyLatency": rng.randint(10, 109),
                    "success": status < 400,
                    "userAgent": USER_AGENT,
                    "size": rng.randint(1000, 50999),
                    "location": rng.choice(LOCATIONS),
                }
            )
        return logs
