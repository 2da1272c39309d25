"""
SPOOLDB - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("SPOOLDB_DB", f"sqlite:///{BASE_DIR / 'spooldb.sqlite'}")
# Seconds to wait on a locked row / slow statement before giving up
STORE_TIMEOUT = float(os.environ.get("SPOOLDB_STORE_TIMEOUT", "5"))

# ── Server ─────────────────────────────────────────────────────────────
HOST     = os.environ.get("SPOOLDB_HOST", "0.0.0.0")
PORT     = int(os.environ.get("SPOOLDB_PORT", "3000"))
DEBUG    = os.environ.get("SPOOLDB_DEBUG", "0") == "1"
ENV      = os.environ.get("SPOOLDB_ENV", "development")
DEV_MODE = ENV == "development"

# ── Auth ───────────────────────────────────────────────────────────────
JWT_SECRET    = os.environ.get("SPOOLDB_JWT_SECRET", "spooldb-dev-key-change-in-prod")
JWT_ALGORITHM = os.environ.get("SPOOLDB_JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.environ.get("SPOOLDB_JWT_EXPIRE_MINUTES", "720"))
ADMIN_ROLE    = "admin"

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("SPOOLDB_LOG_LEVEL", "INFO")

# ── Pagination ─────────────────────────────────────────────────────────
API_MAX_LIMIT     = 1000
API_DEFAULT_LIMIT = 100
