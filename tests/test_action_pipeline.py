from __future__ import annotations

import fakeredis
import pytest

from tornaris.actions import apply_action, dispatch_action
from tornaris.assets.registry import Catalog
from tornaris.errors import DuelError, PhaseError, RosterError, TornarisError
from tornaris.game_store import get_session, save_session
from tornaris.models import SessionPhase, SessionState
from tornaris.session import new_session
from tornaris.validators import DEFAULT_ACTION_PIPELINES, pipeline_for_action


def test_every_action_has_a_pipeline() -> None:
    from tornaris.actions import _HANDLERS

    assert set(_HANDLERS) == set(DEFAULT_ACTION_PIPELINES)


def test_unknown_action_is_rejected(setup_state: SessionState, catalog: Catalog) -> None:
    with pytest.raises(TornarisError):
        pipeline_for_action("fly")
    with pytest.raises(TornarisError):
        apply_action(state=setup_state, catalog=catalog, action="fly")


def test_phase_rules(started_state: SessionState, catalog: Catalog) -> None:
    with pytest.raises(PhaseError):
        apply_action(state=new_session(seed=1), catalog=catalog, action="advance")
    with pytest.raises(PhaseError):
        apply_action(state=started_state, catalog=catalog, action="add_player")
    with pytest.raises(PhaseError):
        apply_action(state=started_state, catalog=catalog, action="start_tournament")
    with pytest.raises(PhaseError):
        apply_action(state=new_session(seed=1), catalog=catalog, action="new_session")


def test_player_rules(started_state: SessionState, catalog: Catalog) -> None:
    with pytest.raises(TornarisError):
        apply_action(state=started_state, catalog=catalog, action="adjust_gold", payload={"delta": 1})
    with pytest.raises(RosterError):
        apply_action(state=started_state, catalog=catalog, action="adjust_gold", payload={"delta": 1}, player_id=8)

    res = apply_action(state=started_state, catalog=catalog, action="adjust_gold", payload={"delta": 3}, player_id=2)
    assert res.value == 3


def test_resource_actions_need_full_tracking(started_state: SessionState, catalog: Catalog) -> None:
    started_state.options.full_tracking = False
    with pytest.raises(TornarisError):
        apply_action(state=started_state, catalog=catalog, action="toggle_mana", payload={"index": 0}, player_id=0)


def test_set_options_merges(catalog: Catalog) -> None:
    state = new_session(seed=1)
    apply_action(state=state, catalog=catalog, action="set_options", payload={"digital_events": True})
    apply_action(state=state, catalog=catalog, action="set_options", payload={"full_tracking": 1})
    assert state.options.model_dump() == {"digital_monsters": False, "digital_events": True, "full_tracking": True}


def test_start_game_is_reproducible_from_the_seed(setup_state: SessionState, catalog: Catalog) -> None:
    twin = setup_state.model_copy(deep=True)
    apply_action(state=setup_state, catalog=catalog, action="start_game")
    apply_action(state=twin, catalog=catalog, action="start_game")

    assert setup_state.phase == SessionPhase.game
    assert setup_state.game.event_deck == twin.game.event_deck
    assert setup_state.game.monster_deck == twin.game.monster_deck


def test_acknowledge_returns_remaining_notifications(started_state: SessionState, catalog: Catalog) -> None:
    started_state.game.pending_notifications = ["a", "b"]
    res = apply_action(state=started_state, catalog=catalog, action="acknowledge_notification")
    assert res.value == "a"
    assert res.notifications == ["b"]


def test_new_session_keeps_the_table(started_state: SessionState, catalog: Catalog) -> None:
    started_state.players[0].gold = 6
    started_state.players[0].equipment = [1]
    names = [(p.name, p.character_id) for p in started_state.players]

    apply_action(state=started_state, catalog=catalog, action="new_session")

    assert started_state.phase == SessionPhase.setup
    assert [(p.name, p.character_id) for p in started_state.players] == names
    assert started_state.players[0].gold == 0
    assert started_state.players[0].equipment == []
    assert not started_state.game.deck_built


def test_dispatch_loads_applies_and_saves(redis_client: fakeredis.FakeRedis, catalog: Catalog) -> None:
    state = new_session(seed=5)
    save_session(r=redis_client, state=state)

    res = dispatch_action(r=redis_client, session_id=state.session_id, catalog=catalog, action="add_player")

    assert res.value.id == 3
    stored = get_session(r=redis_client, session_id=state.session_id, catalog=catalog)
    assert stored is not None and len(stored.players) == 4


def test_dispatch_unknown_session(redis_client: fakeredis.FakeRedis, catalog: Catalog) -> None:
    with pytest.raises(TornarisError):
        dispatch_action(r=redis_client, session_id=new_session().session_id, catalog=catalog, action="add_player")


def test_string_flags_are_parsed(catalog: Catalog) -> None:
    state = new_session(seed=1)
    apply_action(state=state, catalog=catalog, action="set_options", payload={"full_tracking": "true"})
    apply_action(
        state=state, catalog=catalog, action="set_options", payload={"full_tracking": "false", "digital_events": "0"}
    )
    assert state.options.full_tracking is False
    assert state.options.digital_events is False


def test_declined_steal_from_string_payload(started_state: SessionState, catalog: Catalog) -> None:
    started_state.players[0].gold = 6
    apply_action(state=started_state, catalog=catalog, action="open_duel")
    apply_action(state=started_state, catalog=catalog, action="set_score", payload={"fighter": 2, "value": 4})
    apply_action(state=started_state, catalog=catalog, action="close_duel")

    res = apply_action(state=started_state, catalog=catalog, action="resolve_steal", payload={"accept": "no"})

    assert res.value.stolen == 0
    assert started_state.players[0].gold == 6


def test_unknown_fighter_is_rejected(started_state: SessionState, catalog: Catalog) -> None:
    apply_action(state=started_state, catalog=catalog, action="open_duel")
    with pytest.raises(DuelError):
        apply_action(state=started_state, catalog=catalog, action="set_score", payload={"fighter": 3, "value": 4})
    assert started_state.duel.score2 == 0
