from __future__ import annotations

import fakeredis
import pytest

from tornaris.assets.registry import Catalog
from tornaris.errors import PhaseError
from tornaris.fsm import SessionFSM, TournamentFSM, transition
from tornaris.models import SessionPhase, SessionState, Tournament, TournamentPhase
from tornaris.propagation import playable_matches
from tornaris.session import Session, new_session


def test_fsm_guards_transitions() -> None:
    state = new_session(seed=1)
    with pytest.raises(PhaseError):
        transition(SessionFSM(state), "finish_timeline")
    assert state.phase == SessionPhase.setup

    transition(SessionFSM(state), "start_game")
    assert state.phase == SessionPhase.game
    with pytest.raises(PhaseError):
        transition(SessionFSM(state), "start_game")

    t = Tournament()
    with pytest.raises(PhaseError):
        transition(TournamentFSM(t), "crown")
    transition(TournamentFSM(t), "seed")
    transition(TournamentFSM(t), "crown")
    assert t.phase == TournamentPhase.champion


def _play_out(session: Session) -> None:
    s = session.state
    while s.phase == SessionPhase.game:
        session.apply("advance")

    session.apply("start_tournament")
    while s.tournament.phase == TournamentPhase.bracket:
        match = playable_matches(s.tournament)[0]
        session.apply("open_duel", match_id=match.id)
        session.apply("set_score", fighter=1, value=2)
        res = session.apply("close_duel")
        if res.value.status == "steal_pending":
            session.apply("resolve_steal", accept=True)


def test_full_session(catalog: Catalog, redis_client: fakeredis.FakeRedis) -> None:
    session = Session(catalog=catalog, r=redis_client)
    session.apply("set_options", digital_monsters=True, full_tracking=True)
    session.apply("add_player")
    for pid, cid in enumerate(["aldric", "nyra", "selene", "borin"]):
        session.apply("set_player_name", player_id=pid, name=cid.title())
        session.apply("set_player_character", player_id=pid, character_id=cid)
    session.apply("start_game")
    session.apply("resolve_encounter", outcome="victory")

    _play_out(session)

    s = session.state
    assert s.phase == SessionPhase.tournament
    assert s.tournament.phase == TournamentPhase.champion
    assert s.tournament.champion_id in {p.id for p in s.players}
    assert s.game.current_day <= 12

    resumed = Session.load(r=redis_client, session_id=s.session_id, catalog=catalog)
    assert resumed.snapshot() == session.snapshot()

    session.apply("new_session")
    assert s.phase == SessionPhase.setup
    assert s.tournament.phase == TournamentPhase.pre
    assert [p.name for p in s.players] == ["Aldric", "Nyra", "Selene", "Borin"]


@pytest.mark.parametrize("n", [3, 5, 6])
def test_every_table_size_crowns_a_champion(catalog: Catalog, started_state: SessionState, n: int) -> None:
    started_state.phase = SessionPhase.setup
    started_state.players = started_state.players[:3] if n == 3 else started_state.players
    extra = ["lyra", "kael"][: max(0, n - 4)]
    session = Session(state=started_state, catalog=catalog)
    for cid in extra:
        player = session.apply("add_player").value
        session.apply("set_player_name", player_id=player.id, name=cid)
        session.apply("set_player_character", player_id=player.id, character_id=cid)
    session.apply("start_game")

    _play_out(session)

    assert len(session.state.players) == n
    assert session.state.tournament.champion_id is not None


def test_load_falls_back_to_a_fresh_session(catalog: Catalog, redis_client: fakeredis.FakeRedis) -> None:
    sid = new_session().session_id
    session = Session.load(r=redis_client, session_id=sid, catalog=catalog)
    assert session.state.phase == SessionPhase.setup
    assert session.state.session_id == sid
    assert len(session.state.players) == 3
