from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from tornaris.constants import FINAL_MATCH_ID, MAX_PLAYERS, MIN_PLAYERS
from tornaris.errors import BracketSizeError, PhaseError
from tornaris.fsm import TournamentFSM, transition
from tornaris.models import FeedLink, Match, Round, SessionPhase, SessionState, Seed, Tournament, TournamentPhase
from tornaris.rng import shuffled

logger = logging.getLogger(__name__)

QUARTERFINAL = "Quarterfinal"
SEMIFINAL = "Semifinal"
FINAL = "Final"


def _match(
    match_id: str,
    p1: int | None,
    p2: int | None,
    *,
    advantage: int | None = None,
    feeds: tuple[FeedLink | None, FeedLink | None] = (None, None),
) -> Match:
    return Match(id=match_id, player1_id=p1, player2_id=p2, advantage_player_id=advantage, feeds_from=feeds)


def _winner_of(match_id: str, slot: int = 1) -> FeedLink:
    return FeedLink(match_id=match_id, slot=slot)


def _bracket_3(s: Sequence[int]) -> list[Round]:
    return [
        Round(name=SEMIFINAL, matches=[_match("sf1", s[1], s[2], advantage=s[1])]),
        Round(
            name=FINAL,
            matches=[_match(FINAL_MATCH_ID, s[0], None, advantage=s[0], feeds=(None, _winner_of("sf1", 2)))],
        ),
    ]


def _bracket_4(s: Sequence[int]) -> list[Round]:
    return [
        Round(
            name=SEMIFINAL,
            matches=[
                _match("sf1", s[0], s[3], advantage=s[0]),
                _match("sf2", s[1], s[2], advantage=s[1]),
            ],
        ),
        Round(
            name=FINAL,
            matches=[_match(FINAL_MATCH_ID, None, None, feeds=(_winner_of("sf1"), _winner_of("sf2")))],
        ),
    ]


def _bracket_5(s: Sequence[int]) -> list[Round]:
    # Both semifinals wait on the same quarterfinal; only one of them gets played.
    return [
        Round(name=QUARTERFINAL, matches=[_match("qf1", s[3], s[4], advantage=s[3])]),
        Round(
            name=SEMIFINAL,
            matches=[
                _match("sf1", s[1], None, advantage=s[1], feeds=(None, _winner_of("qf1"))),
                _match("sf2", s[2], None, advantage=s[2], feeds=(None, _winner_of("qf1"))),
            ],
        ),
        Round(
            name=FINAL,
            matches=[_match(FINAL_MATCH_ID, s[0], None, advantage=s[0], feeds=(None, _winner_of("sf1")))],
        ),
    ]


def _bracket_6(s: Sequence[int]) -> list[Round]:
    return [
        Round(
            name=QUARTERFINAL,
            matches=[
                _match("qf1", s[0], s[1], advantage=s[0]),
                _match("qf2", s[2], s[3], advantage=s[2]),
                _match("qf3", s[4], s[5], advantage=s[4]),
            ],
        ),
        Round(name=SEMIFINAL, matches=[_match("sf1", None, None, feeds=(_winner_of("qf2"), _winner_of("qf3")))]),
        Round(
            name=FINAL,
            matches=[_match(FINAL_MATCH_ID, None, None, feeds=(_winner_of("qf1"), _winner_of("sf1")))],
        ),
    ]


_BUILDERS = {3: _bracket_3, 4: _bracket_4, 5: _bracket_5, 6: _bracket_6}


def ranked_player_ids(seeds: Sequence[Seed]) -> list[int]:
    """Player ids ordered by rank; ranks must be exactly 1..N."""

    ranks = sorted(s.seed_rank for s in seeds if s.seed_rank is not None)
    if ranks != list(range(1, len(seeds) + 1)):
        raise BracketSizeError(f"Seed ranks must be unique and dense 1..{len(seeds)}")
    return [s.player_id for s in sorted(seeds, key=lambda s: s.seed_rank or 0)]


def build_bracket(seeds: Sequence[Seed], player_count: int, *, allow_fallback: bool = False) -> list[Round]:
    """Build the rounds (leaves to root) for `player_count` ranked seeds.

    Supported sizes are 3..6. With `allow_fallback`, any other size with at least
    four seeds plays the 4-player bracket among the top four.
    """

    ranked = ranked_player_ids(seeds)

    builder = _BUILDERS.get(player_count)
    if builder is not None:
        if len(ranked) != player_count:
            raise BracketSizeError(f"Expected {player_count} seeds, got {len(ranked)}")
        return builder(ranked)

    if allow_fallback and len(ranked) >= 4:
        logger.warning("No bracket for %d players; playing the top four seeds", player_count)
        return _bracket_4(ranked[:4])

    raise BracketSizeError(f"Tournament needs between {MIN_PLAYERS} and {MAX_PLAYERS} players, got {player_count}")


def seed_tournament(*, tournament: Tournament, rng: random.Random) -> list[Seed]:
    """Assign random dense ranks (1 = top seed) and return the seeds sorted by rank."""

    order = shuffled(range(len(tournament.seeds)), rng)
    for rank, seed_idx in enumerate(order, start=1):
        tournament.seeds[seed_idx].seed_rank = rank
    return sorted(tournament.seeds, key=lambda s: s.seed_rank or 0)


def start_tournament(*, state: SessionState, rng: random.Random) -> Tournament:
    if state.phase != SessionPhase.tournament:
        raise PhaseError("The timeline has not finished yet")
    t = state.tournament
    if t.phase != TournamentPhase.pre:
        raise PhaseError(f"Tournament already started (phase '{t.phase.value}')")

    ranked = seed_tournament(tournament=t, rng=rng)
    t.rounds = build_bracket(ranked, len(state.players))
    transition(TournamentFSM(t), "seed")

    logger.info(
        "Session %s tournament seeded: %s",
        state.session_id,
        ", ".join(f"#{s.seed_rank}={s.player_id}" for s in ranked),
    )
    return t
