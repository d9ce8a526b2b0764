from __future__ import annotations

import pytest

from tornaris.bracket import build_bracket
from tornaris.errors import MatchNotFoundError, PhaseError, TornarisError
from tornaris.models import Seed, Tournament, TournamentPhase
from tornaris.propagation import find_match, playable_matches, record_result


def _bracket(n: int) -> Tournament:
    # Player k holds rank k + 1.
    seeds = [Seed(player_id=k, seed_rank=k + 1) for k in range(n)]
    return Tournament(phase=TournamentPhase.bracket, seeds=seeds, rounds=build_bracket(seeds, n))


def _slots(t: Tournament, match_id: str) -> tuple[int | None, int | None]:
    m = find_match(t, match_id)
    assert m is not None
    return m.player1_id, m.player2_id


def test_four_player_tournament_to_champion() -> None:
    t = _bracket(4)
    assert [m.id for m in playable_matches(t)] == ["sf1", "sf2"]

    record_result(tournament=t, match_id="sf1", winner_id=0)
    assert _slots(t, "final") == (0, None)
    assert [m.id for m in playable_matches(t)] == ["sf2"]

    record_result(tournament=t, match_id="sf2", winner_id=2)
    assert _slots(t, "final") == (0, 2)
    assert [m.id for m in playable_matches(t)] == ["final"]

    final = record_result(tournament=t, match_id="final", winner_id=2)
    assert final.winner_id == 2
    assert t.champion_id == 2
    assert t.phase == TournamentPhase.champion
    assert playable_matches(t) == []

    with pytest.raises(PhaseError):
        record_result(tournament=t, match_id="sf1", winner_id=0)


def test_three_player_tournament() -> None:
    t = _bracket(3)
    assert [m.id for m in playable_matches(t)] == ["sf1"]
    record_result(tournament=t, match_id="sf1", winner_id=2)
    assert _slots(t, "final") == (0, 2)


def test_five_player_quarterfinal_feeds_both_semifinals() -> None:
    t = _bracket(5)
    record_result(tournament=t, match_id="qf1", winner_id=4)
    assert _slots(t, "sf1") == (1, 4)
    assert _slots(t, "sf2") == (2, 4)

    record_result(tournament=t, match_id="sf1", winner_id=1)
    assert _slots(t, "final") == (0, 1)
    record_result(tournament=t, match_id="final", winner_id=0)
    assert t.champion_id == 0


def test_six_player_tournament() -> None:
    t = _bracket(6)
    record_result(tournament=t, match_id="qf2", winner_id=3)
    assert _slots(t, "sf1") == (3, None)
    record_result(tournament=t, match_id="qf3", winner_id=4)
    assert _slots(t, "sf1") == (3, 4)
    record_result(tournament=t, match_id="qf1", winner_id=0)
    assert _slots(t, "final") == (0, None)
    record_result(tournament=t, match_id="sf1", winner_id=4)
    assert _slots(t, "final") == (0, 4)
    record_result(tournament=t, match_id="final", winner_id=4)
    assert t.champion_id == 4


def test_record_result_errors() -> None:
    t = _bracket(4)
    with pytest.raises(MatchNotFoundError) as e:
        record_result(tournament=t, match_id="zz", winner_id=0)
    assert str(e.value) == "Match not found: zz"

    with pytest.raises(TornarisError):
        record_result(tournament=t, match_id="final", winner_id=0)
    with pytest.raises(TornarisError):
        record_result(tournament=t, match_id="sf1", winner_id=1)

    t.phase = TournamentPhase.pre
    with pytest.raises(PhaseError):
        record_result(tournament=t, match_id="sf1", winner_id=0)
    assert playable_matches(t) == []
