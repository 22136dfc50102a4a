from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


def database_url() -> str:
    url = os.environ.get("AUDIX_DATABASE_URL")
    if not url:
        raise RuntimeError("AUDIX_DATABASE_URL is not set.")
    return url


# Connection pool
DB_POOL_MIN_SIZE = _env_int("AUDIX_DB_POOL_MIN", 2)
DB_POOL_MAX_SIZE = _env_int("AUDIX_DB_POOL_MAX", 10)
DB_POOL_TIMEOUT = _env_float("AUDIX_DB_POOL_TIMEOUT", 30.0)
DB_POOL_MAX_IDLE = _env_float("AUDIX_DB_POOL_MAX_IDLE", 300.0)

SKIP_DB_BOOTSTRAP = os.environ.get("AUDIX_SKIP_DB_BOOTSTRAP") == "1"

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "AUDIX_CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
    ).split(",")
    if origin.strip()
]

# Identity provider
AUTH_VERIFY_URL = os.environ.get("AUDIX_AUTH_VERIFY_URL") or None
AUTH_CACHE_TTL = _env_int("AUDIX_AUTH_CACHE_TTL", 60)
AUTH_VERIFY_TIMEOUT = _env_float("AUDIX_AUTH_VERIFY_TIMEOUT", 10.0)

# Activity limits
RECENT_LIMIT = 10
RECENT_PAGE_LIMIT = 20
MOST_PLAYED_LIMIT = 10
TOP_ARTISTS_LIMIT = 9

# Client
API_URL = os.environ.get("AUDIX_API_URL", "http://localhost:8000/api")
API_TIMEOUT = _env_float("AUDIX_API_TIMEOUT", 15.0)
MIN_PLAY_SECONDS = _env_float("AUDIX_MIN_PLAY_SECONDS", 5.0)
# Longest single play episode the server accepts
MAX_PLAY_SECONDS = _env_int("AUDIX_MAX_PLAY_SECONDS", 24 * 60 * 60)
ACTIVITY_CACHE_TTL = _env_float("AUDIX_ACTIVITY_CACHE_TTL", 300.0)
REFRESH_DEBOUNCE_SECONDS = _env_float("AUDIX_REFRESH_DEBOUNCE", 0.4)
FETCH_ATTEMPTS = 3
FETCH_BACKOFF_SECONDS = 0.5
FLUSH_MAX_ATTEMPTS = _env_int("AUDIX_FLUSH_MAX_ATTEMPTS", 5)
FLUSH_BACKOFF_SECONDS = 0.5
FLUSH_MAX_BACKOFF_SECONDS = 8.0
