from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from tornaris.assets.registry import Catalog
from tornaris.constants import STEAL_AMOUNT, STEALING_CHARACTER_ID
from tornaris.errors import DuelError
from tornaris.models import Duel, Player, SessionState, StealOffer, TournamentPhase
from tornaris.propagation import record_result, require_match
from tornaris.roster import require_player

logger = logging.getLogger(__name__)

Fighter = Literal[1, 2]


class Tie(Enum):
    TIE = "tie"


TIE = Tie.TIE


@dataclass(frozen=True, slots=True)
class DuelResolution:
    """Where a duel stands after `close_duel` / `resolve_steal`.

    - tie: scores are equal; re-enter them and close again.
    - steal_pending: a steal offer must be accepted or declined first.
    - closed: the winner is final (and propagated for tournament matches).
    """

    status: Literal["tie", "steal_pending", "closed"]
    winner_id: int | None = None
    stolen: int = 0


def declare_duel_winner(duel: Duel) -> int | Tie:
    """Decide the duel from its two scores.

    Equal scores are a tie: nothing changes and the caller re-enters scores.
    Otherwise the higher score wins and the winner is fixed on the duel.
    """

    if duel.player1_id is None or duel.player2_id is None:
        raise DuelError("Both fighters must be chosen")
    if duel.player1_id == duel.player2_id:
        raise DuelError("A player cannot duel themselves")
    if duel.winner_id is not None:
        return duel.winner_id
    if duel.score1 == duel.score2:
        return TIE

    duel.winner_id = duel.player1_id if duel.score1 > duel.score2 else duel.player2_id
    return duel.winner_id


def open_duel(*, state: SessionState, match_id: str | None = None) -> Duel:
    """Start a duel: a tournament match between its two slots, or a free duel between the first two players."""

    if match_id is not None:
        if state.tournament.phase != TournamentPhase.bracket:
            raise DuelError("Tournament matches can only be played while the bracket is open")
        match = require_match(state.tournament, match_id)
        if not match.is_ready:
            raise DuelError(f"Match '{match_id}' is still waiting for a competitor")
        if match.winner_id is not None:
            raise DuelError(f"Match '{match_id}' is already decided")
        state.duel = Duel(player1_id=match.player1_id, player2_id=match.player2_id, match_id=match.id)
    else:
        ids = [p.id for p in state.players]
        state.duel = Duel(
            player1_id=ids[0] if len(ids) > 0 else None,
            player2_id=ids[1] if len(ids) > 1 else None,
        )
    return state.duel


def _require_fighter(fighter: int) -> None:
    if fighter not in (1, 2):
        raise DuelError(f"Fighter must be 1 or 2, got {fighter}")


def set_fighter(*, state: SessionState, fighter: Fighter, player_id: int) -> Duel:
    _require_fighter(fighter)
    d = state.duel
    if d.match_id is not None:
        raise DuelError("Tournament match fighters are fixed by the bracket")
    require_player(state=state, player_id=player_id)
    other = d.player2_id if fighter == 1 else d.player1_id
    if player_id == other:
        raise DuelError("A player cannot duel themselves")
    if fighter == 1:
        d.player1_id = player_id
    else:
        d.player2_id = player_id
    return d


def set_score(*, state: SessionState, fighter: Fighter, value: int) -> int:
    _require_fighter(fighter)
    d = state.duel
    if d.closed:
        raise DuelError("Duel is already closed")
    value = max(0, value)
    if fighter == 1:
        d.score1 = value
    else:
        d.score2 = value
    return value


def reset_scores(*, state: SessionState) -> Duel:
    d = state.duel
    if d.closed and d.match_id is not None:
        raise DuelError("Tournament match results cannot be reopened")
    d.score1 = 0
    d.score2 = 0
    d.winner_id = None
    d.steal_offer = None
    d.closed = False
    return d


def _loser_id(d: Duel, winner_id: int) -> int | None:
    return d.player2_id if winner_id == d.player1_id else d.player1_id


def _finalize(state: SessionState, winner_id: int, steal: tuple[Player, Player] | None = None) -> DuelResolution:
    """Record the match result first; gold and the closed flag only change once it is accepted."""

    d = state.duel
    if d.match_id is not None:
        record_result(tournament=state.tournament, match_id=d.match_id, winner_id=winner_id)

    stolen = 0
    if steal is not None:
        thief, victim = steal
        stolen = min(STEAL_AMOUNT, victim.gold)
        victim.gold -= stolen
        thief.gold += stolen
        logger.info("Player %s stole %d gold from player %s", thief.id, stolen, victim.id)

    d.steal_offer = None
    d.closed = True
    return DuelResolution(status="closed", winner_id=winner_id, stolen=stolen)


def close_duel(*, state: SessionState, catalog: Catalog) -> DuelResolution:
    d = state.duel
    if d.closed:
        raise DuelError("Duel is already closed")
    if d.steal_offer is not None:
        raise DuelError("Resolve the pending steal offer first")

    outcome = declare_duel_winner(d)
    if outcome is TIE:
        return DuelResolution(status="tie")
    winner_id = outcome

    winner = state.player(winner_id)
    loser_id = _loser_id(d, winner_id)
    loser = state.player(loser_id) if loser_id is not None else None
    if (
        state.options.full_tracking
        and winner is not None
        and loser is not None
        and catalog.resolve_character_id(winner.character_id) == STEALING_CHARACTER_ID
    ):
        d.steal_offer = StealOffer(thief_id=winner.id, victim_id=loser.id)
        return DuelResolution(status="steal_pending", winner_id=winner_id)

    return _finalize(state, winner_id)


def resolve_steal(*, state: SessionState, accept: bool) -> DuelResolution:
    d = state.duel
    offer = d.steal_offer
    if offer is None or d.winner_id is None:
        raise DuelError("No steal offer pending")

    steal = None
    if accept:
        steal = (
            require_player(state=state, player_id=offer.thief_id),
            require_player(state=state, player_id=offer.victim_id),
        )
    return _finalize(state, d.winner_id, steal)
