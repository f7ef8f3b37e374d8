"""
Config

Settings are read from the environment once at import time.
"""

import os

API_PREFIX = "/api"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Engine
LOG_TIMEZONE = os.getenv("LOG_TIMEZONE", "UTC")
BUCKET_MODE = os.getenv("BUCKET_MODE", "hour_of_day").lower()  # "hour_of_day" or "rolling"
SUCCESS_POLICY = os.getenv("SUCCESS_POLICY", "trust").lower()  # "trust" or "derive"
SEARCH_FIELDS = tuple(
    f.strip() for f in os.getenv("SEARCH_FIELDS", "endpoint").split(",") if f.strip()
)

# Refresh loop (0 disables it)
REFRESH_INTERVAL_SECONDS = float(os.getenv("REFRESH_INTERVAL_SECONDS", "0"))

# Mock source
MOCK_BATCH_SIZE = int(os.getenv("MOCK_BATCH_SIZE", "50"))
_seed = os.getenv("MOCK_SEED")
MOCK_SEED = int(_seed) if _seed else None
