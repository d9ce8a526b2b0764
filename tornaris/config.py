from __future__ import annotations

import logging
import os


def get_redis_url() -> str:
    return os.environ.get("TORNARIS_REDIS_URL") or os.environ.get("REDIS_URL", "redis://localhost:6379/0")


def strict_assets() -> bool:
    return os.getenv("TORNARIS_STRICT_ASSETS", "").strip().lower() in {"1", "true", "yes"}


def snapshot_ttl_seconds() -> int | None:
    raw = os.getenv("TORNARIS_SNAPSHOT_TTL_S", "").strip()
    if not raw:
        return None
    try:
        ttl = int(raw)
    except ValueError as e:
        raise ValueError(f"TORNARIS_SNAPSHOT_TTL_S must be an integer, got {raw!r}") from e
    return ttl if ttl > 0 else None


def configure_logging() -> None:
    level = os.getenv("TORNARIS_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(level=level)
