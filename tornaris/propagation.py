from __future__ import annotations

import logging
from collections.abc import Iterator

from tornaris.constants import FINAL_MATCH_ID
from tornaris.errors import MatchNotFoundError, PhaseError, TornarisError
from tornaris.fsm import TournamentFSM, transition
from tornaris.models import Match, Tournament, TournamentPhase

logger = logging.getLogger(__name__)


def iter_matches(tournament: Tournament) -> Iterator[Match]:
    for r in tournament.rounds:
        yield from r.matches


def find_match(tournament: Tournament, match_id: str) -> Match | None:
    return next((m for m in iter_matches(tournament) if m.id == match_id), None)


def require_match(tournament: Tournament, match_id: str) -> Match:
    match = find_match(tournament, match_id)
    if match is None:
        raise MatchNotFoundError(match_id)
    return match


def playable_matches(tournament: Tournament) -> list[Match]:
    """Matches with both competitors known and no winner yet."""

    if tournament.phase != TournamentPhase.bracket:
        return []
    return [m for m in iter_matches(tournament) if m.is_ready and m.winner_id is None]


def propagate_winner(tournament: Tournament, match_id: str, winner_id: int) -> list[Match]:
    """Write `winner_id` into every slot fed by `match_id`; returns the matches touched."""

    touched: list[Match] = []
    for m in iter_matches(tournament):
        for slot, feed in enumerate(m.feeds_from):
            if feed is None or feed.match_id != match_id:
                continue
            if slot == 0:
                m.player1_id = winner_id
            else:
                m.player2_id = winner_id
            touched.append(m)
    return touched


def record_result(*, tournament: Tournament, match_id: str, winner_id: int) -> Match:
    """Record a match winner and advance it through the bracket.

    The final crowns the champion and stops; every other match feeds its
    winner into the slots that depend on it. A winner is recorded once.
    """

    if tournament.phase != TournamentPhase.bracket:
        raise PhaseError(f"Tournament is not in bracket phase (current: '{tournament.phase.value}')")

    match = require_match(tournament, match_id)
    if not match.is_ready:
        raise TornarisError(f"Match '{match_id}' is still waiting for a competitor")
    if winner_id not in (match.player1_id, match.player2_id):
        raise TornarisError(f"Player {winner_id} is not playing match '{match_id}'")

    match.winner_id = winner_id

    if match.id == FINAL_MATCH_ID:
        tournament.champion_id = winner_id
        transition(TournamentFSM(tournament), "crown")
        logger.info("Champion: player %s", winner_id)
        return match

    touched = propagate_winner(tournament, match_id, winner_id)
    logger.info("Match %s won by %s; advanced into %s", match_id, winner_id, [m.id for m in touched])
    return match
