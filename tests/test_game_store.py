from __future__ import annotations

import json
from uuid import uuid4

import fakeredis
import pytest

from tornaris.assets.registry import Catalog
from tornaris.errors import TornarisError
from tornaris.game_store import (
    SESSIONS_SET_KEY,
    delete_session,
    get_session,
    list_sessions,
    require_session,
    save_session,
)
from tornaris.models import SessionPhase, SessionState


def test_round_trip(redis_client: fakeredis.FakeRedis, started_state: SessionState, catalog: Catalog) -> None:
    started_state.game.pending_notifications.append("hello")
    assert save_session(r=redis_client, state=started_state) is True

    loaded = get_session(r=redis_client, session_id=started_state.session_id, catalog=catalog)

    assert loaded is not None
    assert loaded.model_dump() == started_state.model_dump()
    assert redis_client.sismember(SESSIONS_SET_KEY, str(started_state.session_id))


def test_missing_fields_take_defaults(redis_client: fakeredis.FakeRedis, catalog: Catalog) -> None:
    sid = uuid4()
    old = {"session_id": str(sid), "seed": 7, "phase": "game", "players": [{"id": 0, "name": "Ana"}]}
    redis_client.set(f"tornaris:session:{sid}", json.dumps(old))

    loaded = get_session(r=redis_client, session_id=sid, catalog=catalog)

    assert loaded is not None
    assert loaded.phase == SessionPhase.game
    assert loaded.players[0].gold == 0
    assert loaded.options.full_tracking is False
    assert loaded.game.pending_notifications == []
    assert loaded.tournament.rounds == []


def test_unknown_references_are_rejected(
    redis_client: fakeredis.FakeRedis, started_state: SessionState, catalog: Catalog
) -> None:
    started_state.players[0].character_id = "ghost"
    save_session(r=redis_client, state=started_state)

    assert get_session(r=redis_client, session_id=started_state.session_id, catalog=catalog) is None
    assert get_session(r=redis_client, session_id=started_state.session_id) is not None


def test_garbage_snapshot(redis_client: fakeredis.FakeRedis) -> None:
    sid = uuid4()
    redis_client.set(f"tornaris:session:{sid}", "{not json")
    assert get_session(r=redis_client, session_id=sid) is None
    with pytest.raises(TornarisError):
        require_session(r=redis_client, session_id=sid)


def test_storage_failures_are_swallowed(started_state: SessionState) -> None:
    server = fakeredis.FakeServer()
    server.connected = False
    r = fakeredis.FakeRedis(server=server, decode_responses=True)

    assert save_session(r=r, state=started_state) is False
    assert get_session(r=r, session_id=started_state.session_id) is None
    assert list_sessions(r=r) == []
    delete_session(r=r, session_id=started_state.session_id)


def test_list_and_delete(redis_client: fakeredis.FakeRedis, setup_state: SessionState) -> None:
    other = SessionState(seed=3)
    save_session(r=redis_client, state=setup_state)
    save_session(r=redis_client, state=other)
    redis_client.sadd(SESSIONS_SET_KEY, "not-a-uuid")

    assert {s.session_id for s in list_sessions(r=redis_client)} == {setup_state.session_id, other.session_id}

    delete_session(r=redis_client, session_id=other.session_id)
    assert [s.session_id for s in list_sessions(r=redis_client)] == [setup_state.session_id]


def test_snapshot_ttl(
    redis_client: fakeredis.FakeRedis, setup_state: SessionState, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TORNARIS_SNAPSHOT_TTL_S", "60")
    save_session(r=redis_client, state=setup_state)
    assert 0 < redis_client.ttl(f"tornaris:session:{setup_state.session_id}") <= 60
