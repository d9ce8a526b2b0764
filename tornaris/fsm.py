from __future__ import annotations

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from tornaris.errors import PhaseError
from tornaris.models import SessionPhase, SessionState, Tournament, TournamentPhase


class SessionFSM(StateMachine):
    """FSM wrapper around SessionState.

    setup -> game -> tournament; a new session can be started from any phase
    after setup. Operations mutate the state; the FSM only guards transitions.
    """

    setup = State(SessionPhase.setup.value, value=SessionPhase.setup.value, initial=True)
    game = State(SessionPhase.game.value, value=SessionPhase.game.value)
    tournament = State(SessionPhase.tournament.value, value=SessionPhase.tournament.value)

    start_game = setup.to(game)
    finish_timeline = game.to(tournament)
    restart = game.to(setup) | tournament.to(setup)

    def __init__(self, session: SessionState):
        self.session = session
        super().__init__(start_value=session.phase.value)

    def sync_phase_to_model(self) -> None:
        self.session.phase = SessionPhase(str(self.current_state.value))


class TournamentFSM(StateMachine):
    """pre (seeds listed, ranks unset) -> bracket -> champion."""

    pre = State(TournamentPhase.pre.value, value=TournamentPhase.pre.value, initial=True)
    bracket = State(TournamentPhase.bracket.value, value=TournamentPhase.bracket.value)
    champion = State(TournamentPhase.champion.value, value=TournamentPhase.champion.value, final=True)

    seed = pre.to(bracket)
    crown = bracket.to(champion)

    def __init__(self, tournament: Tournament):
        self.tournament = tournament
        super().__init__(start_value=tournament.phase.value)

    def sync_phase_to_model(self) -> None:
        self.tournament.phase = TournamentPhase(str(self.current_state.value))


def transition(fsm: SessionFSM | TournamentFSM, event: str) -> None:
    """Fire `event` and copy the resulting phase back onto the model."""

    try:
        fsm.send(event)
    except TransitionNotAllowed as e:
        raise PhaseError(f"Cannot '{event}' from phase '{fsm.current_state.value}'") from e
    fsm.sync_phase_to_model()
