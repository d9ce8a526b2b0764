from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import UUID

import redis

from tornaris import bracket, combat, duel, progression, propagation, roster
from tornaris.assets.registry import Catalog
from tornaris.errors import TornarisError
from tornaris.fsm import SessionFSM, TournamentFSM, transition
from tornaris.game_store import require_session, save_session
from tornaris.models import (
    Duel,
    GameProgress,
    MonsterCombat,
    SessionOptions,
    SessionState,
    Tournament,
)
from tornaris.rng import rng_for
from tornaris.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)


ActionName = Literal[
    "set_options",
    "add_player",
    "remove_player",
    "set_player_name",
    "set_player_character",
    "start_game",
    "advance",
    "resolve_encounter",
    "skip_monster",
    "open_monster_combat",
    "toggle_combatant",
    "adjust_combatant_score",
    "end_monster_combat",
    "acknowledge_notification",
    "adjust_gold",
    "toggle_mana",
    "adjust_max_mana",
    "add_equipment",
    "remove_equipment",
    "open_duel",
    "set_fighter",
    "set_score",
    "reset_scores",
    "close_duel",
    "resolve_steal",
    "start_tournament",
    "record_result",
    "new_session",
]


@dataclass(frozen=True, slots=True)
class ActionResult:
    state: SessionState
    # Whatever the underlying operation returned (winner id, encounter result, ...).
    value: Any = None
    # Notifications still waiting for acknowledgment after the action.
    notifications: list[str] = field(default_factory=list)


def _as_bool(value: Any) -> bool:
    # "false" / "0" in a payload mean False.
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass(frozen=True, slots=True)
class _Call:
    state: SessionState
    catalog: Catalog
    rng: random.Random
    player_id: int | None
    payload: Mapping[str, Any]

    @property
    def pid(self) -> int:
        if self.player_id is None:
            raise TornarisError("Missing player_id")
        return self.player_id

    def get_int(self, key: str, default: int | None = None) -> int:
        value = self.payload.get(key, default)
        if value is None:
            raise TornarisError(f"Missing '{key}'")
        return int(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return _as_bool(self.payload.get(key, default))


def _set_options(c: _Call) -> SessionOptions:
    merged = c.state.options.model_dump() | {k: _as_bool(v) for k, v in c.payload.items()}
    c.state.options = SessionOptions.model_validate(merged)
    return c.state.options


def _new_session(c: _Call) -> SessionState:
    """Back to setup with the same table: names and classes stay, everything else resets."""

    s = c.state
    transition(SessionFSM(s), "restart")
    s.players = [p.model_copy(update={"gold": 0, "equipment": []}) for p in s.players]
    s.game = GameProgress()
    s.duel = Duel()
    s.monster_combat = MonsterCombat()
    s.tournament = Tournament()
    return s


def _acknowledge(c: _Call) -> str | None:
    return progression.acknowledge_notification(c.state.game)


_HANDLERS: dict[str, Callable[[_Call], Any]] = {
    "set_options": _set_options,
    "add_player": lambda c: roster.add_player(state=c.state),
    "remove_player": lambda c: roster.remove_player(state=c.state, player_id=c.pid),
    "set_player_name": lambda c: roster.set_player_name(
        state=c.state, player_id=c.pid, name=str(c.payload.get("name", ""))
    ),
    "set_player_character": lambda c: roster.set_player_character(
        state=c.state, catalog=c.catalog, player_id=c.pid, character_id=str(c.payload.get("character_id", ""))
    ),
    "start_game": lambda c: progression.start_session(state=c.state, catalog=c.catalog, rng=c.rng),
    "advance": lambda c: progression.advance_tick(state=c.state, catalog=c.catalog),
    "resolve_encounter": lambda c: progression.resolve_encounter(
        state=c.state, catalog=c.catalog, outcome=str(c.payload.get("outcome"))
    ),
    "skip_monster": lambda c: progression.skip_monster(state=c.state),
    "open_monster_combat": lambda c: combat.open_monster_combat(state=c.state, catalog=c.catalog),
    "toggle_combatant": lambda c: combat.toggle_combatant(
        state=c.state, player_id=c.pid, joined=c.get_bool("joined", True)
    ),
    "adjust_combatant_score": lambda c: combat.adjust_combatant_score(
        state=c.state, player_id=c.pid, delta=c.get_int("delta")
    ),
    "end_monster_combat": lambda c: combat.end_monster_combat(state=c.state, catalog=c.catalog),
    "acknowledge_notification": _acknowledge,
    "adjust_gold": lambda c: roster.adjust_gold(state=c.state, player_id=c.pid, delta=c.get_int("delta")),
    "toggle_mana": lambda c: roster.toggle_mana(state=c.state, player_id=c.pid, index=c.get_int("index")),
    "adjust_max_mana": lambda c: roster.adjust_max_mana(state=c.state, player_id=c.pid, delta=c.get_int("delta")),
    "add_equipment": lambda c: roster.add_equipment(
        state=c.state, catalog=c.catalog, player_id=c.pid, equipment_id=c.get_int("equipment_id")
    ),
    "remove_equipment": lambda c: roster.remove_equipment(
        state=c.state, player_id=c.pid, equipment_id=c.get_int("equipment_id")
    ),
    "open_duel": lambda c: duel.open_duel(state=c.state, match_id=c.payload.get("match_id")),
    "set_fighter": lambda c: duel.set_fighter(state=c.state, fighter=c.get_int("fighter"), player_id=c.pid),  # type: ignore[arg-type]
    "set_score": lambda c: duel.set_score(state=c.state, fighter=c.get_int("fighter"), value=c.get_int("value")),  # type: ignore[arg-type]
    "reset_scores": lambda c: duel.reset_scores(state=c.state),
    "close_duel": lambda c: duel.close_duel(state=c.state, catalog=c.catalog),
    "resolve_steal": lambda c: duel.resolve_steal(state=c.state, accept=c.get_bool("accept")),
    "start_tournament": lambda c: bracket.start_tournament(state=c.state, rng=c.rng),
    "record_result": lambda c: propagation.record_result(
        tournament=c.state.tournament, match_id=str(c.payload.get("match_id")), winner_id=c.get_int("winner_id")
    ),
    "new_session": _new_session,
}


def apply_action(
    *,
    state: SessionState,
    catalog: Catalog,
    action: ActionName | str,
    payload: Mapping[str, Any] | None = None,
    player_id: int | None = None,
    rng: random.Random | None = None,
) -> ActionResult:
    """Validate and apply one action to an in-memory session.

    Each action runs to completion before returning; the phase stored on the
    model is re-synced from the FSMs afterwards. Randomized actions use `rng`,
    or a generator derived from the session seed and the action name.
    """

    ctx = ValidationContext(session_id=str(state.session_id), action=action, player_id=player_id)
    pipeline_for_action(action).validate(ctx=ctx, state=state)

    call = _Call(
        state=state,
        catalog=catalog,
        rng=rng if rng is not None else rng_for(state.seed, action),
        player_id=player_id,
        payload=payload or {},
    )
    value = _HANDLERS[action](call)

    SessionFSM(state).sync_phase_to_model()
    TournamentFSM(state.tournament).sync_phase_to_model()

    logger.debug("Session %s applied %s (player=%s)", state.session_id, action, player_id)
    return ActionResult(state=state, value=value, notifications=list(state.game.pending_notifications))


def dispatch_action(
    *,
    r: redis.Redis,
    session_id: UUID,
    catalog: Catalog,
    action: ActionName | str,
    payload: Mapping[str, Any] | None = None,
    player_id: int | None = None,
    rng: random.Random | None = None,
) -> ActionResult:
    """Load a stored session, apply an action and save the snapshot back.

    Saving is fire-and-forget: a storage failure is logged, the result still returned.
    """

    state = require_session(r=r, session_id=session_id, catalog=catalog)
    result = apply_action(state=state, catalog=catalog, action=action, payload=payload, player_id=player_id, rng=rng)
    save_session(r=r, state=state)
    return result
