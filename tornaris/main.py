from __future__ import annotations

import logging
from uuid import UUID

import redis

from tornaris.assets.registry import Catalog
from tornaris.assets.startup import init_catalog_for_app
from tornaris.config import configure_logging
from tornaris.infra.redis_client import create_redis
from tornaris.session import Session

logger = logging.getLogger(__name__)


def startup() -> Catalog:
    """Process-wide initialization: logging first, then the catalog."""

    configure_logging()
    catalog = init_catalog_for_app()
    logger.info(
        "Catalog ready: %d characters, %d monsters",
        len(catalog.characters),
        len(catalog.monsters),
    )
    return catalog


def open_session(*, session_id: UUID | None = None, r: redis.Redis | None = None) -> Session:
    """Resume `session_id` from redis, or start a new stored session."""

    catalog = startup()
    client = r if r is not None else create_redis()
    if session_id is None:
        session = Session(catalog=catalog, r=client)
        session.save()
        return session
    return Session.load(r=client, session_id=session_id, catalog=catalog)
