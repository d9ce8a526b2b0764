from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

import redis
from pydantic import ValidationError

from tornaris.assets.registry import Catalog
from tornaris.config import snapshot_ttl_seconds
from tornaris.errors import TornarisError, UnknownReferenceError
from tornaris.models import SessionState

logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "tornaris:sessions"
SESSION_KEY_PREFIX = "tornaris:session:"  # + {uuid}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def validate_references(*, state: SessionState, catalog: Catalog) -> None:
    """Reject snapshots that name characters, monsters, events or equipment the catalog lacks."""

    for p in state.players:
        if p.character_id and catalog.character(p.character_id) is None:
            raise UnknownReferenceError(f"Unknown character: {p.character_id}")
        for eq in p.equipment:
            if catalog.equipment_item(eq) is None:
                raise UnknownReferenceError(f"Unknown equipment: {eq}")

    for entry in state.game.event_deck:
        if catalog.event(entry.kind, entry.event_id) is None:
            raise UnknownReferenceError(f"Unknown {entry.kind.value} event: {entry.event_id}")
    for mid in state.game.monster_deck:
        if catalog.monster(mid) is None:
            raise UnknownReferenceError(f"Unknown monster: {mid}")

    mc_id = state.monster_combat.monster_id
    if mc_id is not None and catalog.monster(mc_id) is None:
        raise UnknownReferenceError(f"Unknown monster: {mc_id}")


def save_session(*, r: redis.Redis, state: SessionState) -> bool:
    """Persist a snapshot. Storage failures are logged and swallowed."""

    state.last_updated_at = _now()
    try:
        r.set(_session_key(state.session_id), state.model_dump_json(), ex=snapshot_ttl_seconds())
        r.sadd(SESSIONS_SET_KEY, str(state.session_id))
    except redis.RedisError as e:
        logger.warning("Could not save session %s: %s", state.session_id, e)
        return False
    return True


def get_session(*, r: redis.Redis, session_id: UUID, catalog: Catalog | None = None) -> SessionState | None:
    """Load a snapshot; fields missing from older snapshots take their defaults.

    Returns None when the snapshot is absent, unreadable, or (given a catalog)
    references ids the catalog does not know.
    """

    try:
        raw = r.get(_session_key(session_id))
    except redis.RedisError as e:
        logger.warning("Could not load session %s: %s", session_id, e)
        return None
    if not raw:
        return None

    try:
        state = SessionState.model_validate_json(raw)
        if catalog is not None:
            validate_references(state=state, catalog=catalog)
    except (ValidationError, UnknownReferenceError) as e:
        logger.warning("Discarding unreadable snapshot for session %s: %s", session_id, e)
        return None
    return state


def require_session(*, r: redis.Redis, session_id: UUID, catalog: Catalog | None = None) -> SessionState:
    state = get_session(r=r, session_id=session_id, catalog=catalog)
    if state is None:
        raise TornarisError("Session not found")
    return state


def delete_session(*, r: redis.Redis, session_id: UUID) -> None:
    try:
        r.delete(_session_key(session_id))
        r.srem(SESSIONS_SET_KEY, str(session_id))
    except redis.RedisError as e:
        logger.warning("Could not delete session %s: %s", session_id, e)


def list_sessions(*, r: redis.Redis) -> list[SessionState]:
    try:
        ids = sorted(r.smembers(SESSIONS_SET_KEY))
    except redis.RedisError as e:
        logger.warning("Could not list sessions: %s", e)
        return []

    out: list[SessionState] = []
    for sid in ids:
        try:
            session_id = UUID(sid)
        except ValueError:
            continue
        state = get_session(r=r, session_id=session_id)
        if state is not None:
            out.append(state)
    out.sort(key=lambda s: s.created_at, reverse=True)
    return out
