from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from tornaris.errors import PhaseError, RosterError, TornarisError
from tornaris.models import SessionPhase, SessionState, TournamentPhase


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    session_id: str
    action: str
    player_id: int | None = None


class ActionValidator(ABC):
    """A small, composable validation unit for an incoming action."""

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class PhaseValidator(ActionValidator):
    """Validates the session phase for a given action."""

    allowed_phases: frozenset[SessionPhase]

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if state.phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise PhaseError(f"Action '{ctx.action}' not allowed in phase '{state.phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class TournamentPhaseValidator(ActionValidator):
    allowed_phases: frozenset[TournamentPhase]

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        phase = state.tournament.phase
        if phase not in self.allowed_phases:
            allowed = ",".join(sorted(p.value for p in self.allowed_phases))
            raise PhaseError(f"Action '{ctx.action}' not allowed in tournament phase '{phase.value}' (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class PlayerValidator(ActionValidator):
    """The action targets a player; that player must exist."""

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if ctx.player_id is None:
            raise TornarisError(f"Action '{ctx.action}' requires a player_id")
        if state.player(ctx.player_id) is None:
            raise RosterError("Player not found")


@dataclass(frozen=True, slots=True)
class TrackingValidator(ActionValidator):
    """Resource actions only make sense when the app tracks gold and mana."""

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        if not state.options.full_tracking:
            raise TornarisError(f"Action '{ctx.action}' requires full tracking")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[ActionValidator, ...]

    def validate(self, *, ctx: ValidationContext, state: SessionState) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, state=state)


_SETUP = PhaseValidator(allowed_phases=frozenset({SessionPhase.setup}))
_GAME = PhaseValidator(allowed_phases=frozenset({SessionPhase.game}))
_PLAYING = PhaseValidator(allowed_phases=frozenset({SessionPhase.game, SessionPhase.tournament}))
_TOURNAMENT = PhaseValidator(allowed_phases=frozenset({SessionPhase.tournament}))
_BRACKET = TournamentPhaseValidator(allowed_phases=frozenset({TournamentPhase.bracket}))
_PLAYER = PlayerValidator()
_TRACKING = TrackingValidator()


def _pipe(*validators: ActionValidator) -> ValidatorPipeline:
    return ValidatorPipeline(validators=validators)


# Phase rules are explicit and easy to expand.
DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    # setup
    "set_options": _pipe(_SETUP),
    "add_player": _pipe(_SETUP),
    "remove_player": _pipe(_SETUP, _PLAYER),
    "set_player_name": _pipe(_SETUP, _PLAYER),
    "set_player_character": _pipe(_SETUP, _PLAYER),
    "start_game": _pipe(_SETUP),
    # timeline
    "advance": _pipe(_GAME),
    "resolve_encounter": _pipe(_GAME),
    "skip_monster": _pipe(_GAME),
    "open_monster_combat": _pipe(_GAME),
    "toggle_combatant": _pipe(_GAME, _PLAYER),
    "adjust_combatant_score": _pipe(_GAME, _PLAYER),
    "end_monster_combat": _pipe(_GAME),
    "acknowledge_notification": _pipe(_PLAYING),
    # resources
    "adjust_gold": _pipe(_PLAYING, _TRACKING, _PLAYER),
    "toggle_mana": _pipe(_PLAYING, _TRACKING, _PLAYER),
    "adjust_max_mana": _pipe(_PLAYING, _TRACKING, _PLAYER),
    "add_equipment": _pipe(_PLAYING, _TRACKING, _PLAYER),
    "remove_equipment": _pipe(_PLAYING, _TRACKING, _PLAYER),
    # duels
    "open_duel": _pipe(_PLAYING),
    "set_fighter": _pipe(_PLAYING, _PLAYER),
    "set_score": _pipe(_PLAYING),
    "reset_scores": _pipe(_PLAYING),
    "close_duel": _pipe(_PLAYING),
    "resolve_steal": _pipe(_PLAYING),
    # tournament
    "start_tournament": _pipe(_TOURNAMENT),
    "record_result": _pipe(_TOURNAMENT, _BRACKET),
    # any phase after setup
    "new_session": _pipe(_PLAYING),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise TornarisError(f"Unknown action: {action}")
    return pipe
