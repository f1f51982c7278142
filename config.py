"""
Helpdesk - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("HELPDESK_DB", f"sqlite:///{BASE_DIR / 'helpdesk.sqlite'}")

# ── Server ─────────────────────────────────────────────────────────────
HOST   = os.environ.get("HELPDESK_HOST", "0.0.0.0")
PORT   = int(os.environ.get("HELPDESK_PORT", "5000"))
DEBUG  = os.environ.get("HELPDESK_DEBUG", "0") == "1"
SECRET = os.environ.get("HELPDESK_SECRET", "helpdesk-dev-key-change-in-prod")

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("HELPDESK_LOG_LEVEL", "INFO").upper()

# ── Uploads ────────────────────────────────────────────────────────────
MAX_UPLOAD_BYTES = int(os.environ.get("HELPDESK_MAX_UPLOAD_MB", "10")) * 1024 * 1024

# ── Pagination ─────────────────────────────────────────────────────────
PAGE_SIZES        = (20, 25, 50, 100)
DEFAULT_PAGE_SIZE = 50

# ── Import ─────────────────────────────────────────────────────────────
IMPORT_ERROR_LIMIT = 10      # errors returned by a confirm call

# Seeded into an empty categories table on startup
DEFAULT_CATEGORIES = ("Hårdvara", "Mjukvara", "Nätverk")
