"""
gem_settings.py
- Reads GeM proxy + fetch configuration from the environment (.env supported)
- Cookie / CSRF token are copied from a logged-in browser session and expire;
  set GEM_SESSION_EXPIRES_AT so the proxy can warn when they are stale.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dateparser
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("gem-settings")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_float(name: str, default: str) -> Optional[float]:
    raw = os.getenv(name, default)
    if raw.strip().lower() in ("", "none", "0"):
        return None
    return float(raw)


# ---------------------------
# Upstream (GeM bidplus)
# ---------------------------
GEM_SEARCH_URL = os.getenv("GEM_SEARCH_URL", "https://bidplus.gem.gov.in/search-bids")
GEM_CSRF_TOKEN = os.getenv("GEM_CSRF_TOKEN", "")
GEM_COOKIE = os.getenv("GEM_COOKIE", "")
GEM_USER_AGENT = os.getenv(
    "GEM_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36",
)
GEM_ORIGIN = os.getenv("GEM_ORIGIN", "https://bidplus.gem.gov.in")
GEM_REFERER = os.getenv("GEM_REFERER", "https://bidplus.gem.gov.in/advance-search")
GEM_SESSION_EXPIRES_AT = os.getenv("GEM_SESSION_EXPIRES_AT", "")
GEM_UPSTREAM_TIMEOUT = _env_float("GEM_UPSTREAM_TIMEOUT", "60")
GEM_DOCUMENT_URL = "https://bidplus.gem.gov.in/showbidDocument"

# ---------------------------
# Fetch orchestration
# ---------------------------
SEARCH_API_URL = os.getenv("SEARCH_API_URL", "http://127.0.0.1:5000/api/search-bids")
SEARCH_API_TIMEOUT = _env_float("SEARCH_API_TIMEOUT", "60")
RESULTS_PER_PAGE = int(os.getenv("RESULTS_PER_PAGE", "10"))
FETCH_MAX_RETRIES = int(os.getenv("FETCH_MAX_RETRIES", "3"))
FETCH_BASE_DELAY_MS = int(os.getenv("FETCH_BASE_DELAY_MS", "1000"))
ALLOW_PARTIAL_RESULTS = _env_bool("ALLOW_PARTIAL_RESULTS")

# ---------------------------
# Web app
# ---------------------------
MIN_RESULTS = 10
MAX_RESULTS = 500
AUTO_FETCH_ON_START = _env_bool("AUTO_FETCH_ON_START", "true")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "5000"))


def credentials_expired(now: Optional[datetime] = None) -> bool:
    """True when GEM_SESSION_EXPIRES_AT is set and already in the past."""
    if not GEM_SESSION_EXPIRES_AT:
        return False
    try:
        expires = dateparser.parse(GEM_SESSION_EXPIRES_AT)
    except (ValueError, OverflowError):
        logger.warning("Ignoring unparseable GEM_SESSION_EXPIRES_AT=%r", GEM_SESSION_EXPIRES_AT)
        return False
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return now >= expires
