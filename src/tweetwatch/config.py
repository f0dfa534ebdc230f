"""Centralised configuration loaded from environment variables and dotenv."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# ── X API ──────────────────────────────────────────────────────────────────
X_BEARER_TOKEN: str = os.getenv("X_BEARER_TOKEN", "")
X_API_BASE_URL: str = os.getenv("X_API_BASE_URL", "https://api.x.com")

# ── HTTP requests (seconds) ────────────────────────────────────────────────
REQUEST_TIMEOUT: float = float(os.getenv("TWEETWATCH_REQUEST_TIMEOUT", "5"))
CONNECT_TIMEOUT: float = float(os.getenv("TWEETWATCH_CONNECT_TIMEOUT", "10"))
MAX_RETRIES: int = int(os.getenv("TWEETWATCH_MAX_RETRIES", "3"))
RETRY_DELAY: float = float(os.getenv("TWEETWATCH_RETRY_DELAY", "1"))

# ── Stream reconnects (seconds) ────────────────────────────────────────────
RECONNECT_BASE_DELAY: float = float(os.getenv("TWEETWATCH_RECONNECT_BASE_DELAY", "1"))
RECONNECT_MAX_DELAY: float = float(os.getenv("TWEETWATCH_RECONNECT_MAX_DELAY", "300"))
MAX_RECONNECT_ATTEMPTS: int = int(os.getenv("TWEETWATCH_MAX_RECONNECT_ATTEMPTS", "10"))

# ── Watchlist / logging ────────────────────────────────────────────────────
WATCHLIST_PATH: Path = Path(
    os.getenv("TWEETWATCH_WATCHLIST", str(PROJECT_ROOT / "config" / "watchlist.yml"))
)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
