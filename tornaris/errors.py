from __future__ import annotations


class TornarisError(ValueError):
    """Caller broke an operation's contract; the engine refuses to proceed."""


class RosterError(TornarisError):
    pass


class PhaseError(TornarisError):
    pass


class DuelError(TornarisError):
    pass


class BracketSizeError(TornarisError):
    pass


class MatchNotFoundError(TornarisError):
    def __init__(self, match_id: str) -> None:
        super().__init__(f"Match not found: {match_id}")
        self.match_id = match_id


class UnknownReferenceError(TornarisError):
    """A snapshot or request names an id that is not in the loaded catalog."""
