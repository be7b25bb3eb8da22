"""Centralized configuration for Touchline.

All paths, pipeline limits, and FPL constants in one place.
Environment variables can override defaults.

Path Constants:
    PROJECT_ROOT - Root directory of the project
    STORAGE_DIR - Storage for the pipeline database
    DEFAULT_DB_PATH - SQLite store (overridable via TOUCHLINE_DB_PATH)

FPL Constants:
    FPL_BASE_URL - Official FPL API base URL
    ELEMENT_TYPE_TO_POS - Map element_type (1-4) to position codes
    UNAVAILABLE_STATUSES - Player statuses excluded from recommendations

Environment Variables:
    TOUCHLINE_DB_PATH - Override default database path
    TOUCHLINE_FPL_BASE_URL - Override the upstream API (tests, mirrors)
    TOUCHLINE_MAX_RETRIES - Attempts per upstream call (default 3)
    TOUCHLINE_BACKOFF_BASE - First backoff delay in seconds (default 1.0)
    TOUCHLINE_REQUEST_TIMEOUT - Per-request timeout in seconds (default 30)
    TOUCHLINE_STORE_TIMEOUT - SQLite busy timeout in seconds (default 30)
    TOUCHLINE_MIN_ELIGIBLE - Minimum eligible players to rank (default 11)
    TOUCHLINE_RUN_LOCK_TTL - Seconds before a run lock counts as abandoned
    TOUCHLINE_SNAPSHOT_RETENTION - Snapshots kept after a publish
    TOUCHLINE_SCORER - Default scoring function name
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root (src/touchline/config.py -> touchline -> src -> project_root)
PROJECT_ROOT = Path(__file__).parent.parent.parent
STORAGE_DIR = PROJECT_ROOT / "storage"

DEFAULT_DB_PATH = os.environ.get(
    "TOUCHLINE_DB_PATH",
    str(STORAGE_DIR / "touchline.sqlite")
)

# FPL API
FPL_BASE_URL = os.environ.get(
    "TOUCHLINE_FPL_BASE_URL",
    "https://fantasy.premierleague.com/api"
).rstrip("/")

# Upstream retry policy
MAX_RETRIES = int(os.environ.get("TOUCHLINE_MAX_RETRIES", "3"))
BACKOFF_BASE = float(os.environ.get("TOUCHLINE_BACKOFF_BASE", "1.0"))
REQUEST_TIMEOUT = float(os.environ.get("TOUCHLINE_REQUEST_TIMEOUT", "30"))

# Store
STORE_TIMEOUT = float(os.environ.get("TOUCHLINE_STORE_TIMEOUT", "30"))
RUN_LOCK_TTL_SECONDS = int(os.environ.get("TOUCHLINE_RUN_LOCK_TTL", "3600"))
SNAPSHOT_RETENTION = int(os.environ.get("TOUCHLINE_SNAPSHOT_RETENTION", "5"))

# Recommendation generation
MIN_ELIGIBLE_PLAYERS = int(os.environ.get("TOUCHLINE_MIN_ELIGIBLE", "11"))
DEFAULT_SCORER = os.environ.get("TOUCHLINE_SCORER", "form_fixture")

# i=injured, n=not available, s=suspended, u=unavailable (left club)
UNAVAILABLE_STATUSES = frozenset({"i", "n", "s", "u"})

# Position mapping (element_type -> position code)
ELEMENT_TYPE_TO_POS = {1: "GKP", 2: "DEF", 3: "MID", 4: "FWD"}

# Process exit codes for the pipeline command
EXIT_PUBLISHED = 0
EXIT_FAILED = 1
EXIT_RUN_IN_PROGRESS = 75  # EX_TEMPFAIL: caller should retry later
