from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import StrEnum

from tornaris.assets.registry import Catalog, EventCard, Monster
from tornaris.constants import MAX_DAYS, Tier
from tornaris.decks import build_combined_event_deck, build_monster_deck
from tornaris.errors import PhaseError, TornarisError
from tornaris.fsm import SessionFSM, transition
from tornaris.models import GameProgress, Seed, SessionPhase, SessionState, TimeOfDay, Tournament
from tornaris.roster import validate_roster

logger = logging.getLogger(__name__)


class SpecialHp(StrEnum):
    """HP of monsters whose card has no combat value; display only."""

    especial = "Especial"


SPECIAL = SpecialHp.especial


class EncounterOutcome(StrEnum):
    victory = "victory"
    defeat = "defeat"


@dataclass(frozen=True, slots=True)
class EncounterResult:
    outcome: EncounterOutcome
    monster_id: str
    completed_tier: Tier | None = None
    notifications: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class EncounterView:
    """What the table needs to run today's monster."""

    monster: Monster
    hp: int | SpecialHp
    is_legendary: bool
    reward: str


def compute_effective_hp(monster: Monster, player_count: int, is_legendary: bool) -> int | SpecialHp:
    if monster.hp.kind == "special":
        return SPECIAL
    if monster.hp.kind == "per_player":
        base = monster.hp.value * player_count
    else:
        base = monster.hp.value
    return base * 2 if is_legendary else base


def _require_phase(state: SessionState, phase: SessionPhase) -> None:
    if state.phase != phase:
        raise PhaseError(f"Session is not in phase '{phase.value}' (current: '{state.phase.value}')")


def start_session(*, state: SessionState, catalog: Catalog, rng: random.Random) -> GameProgress:
    """Initialize players from their classes, build both decks and enter the game phase."""

    _require_phase(state, SessionPhase.setup)
    validate_roster(state=state, catalog=catalog)

    for i, p in enumerate(state.players):
        character = catalog.character(p.character_id)
        max_mana = character.max_mana if character else p.max_mana
        p.id = i
        p.name = p.name.strip()
        p.gold = 0
        p.mana = max_mana
        p.max_mana = max_mana
        p.equipment = []

    event_deck = build_combined_event_deck(catalog=catalog, rng=rng)
    first = event_deck[0] if event_deck else None
    state.game = GameProgress(
        event_deck=event_deck,
        event_index=0,
        current_day=1 if first is not None and first.kind == TimeOfDay.day else 0,
        time_of_day=first.kind if first is not None else TimeOfDay.day,
        monster_deck=build_monster_deck(catalog=catalog, rng=rng),
    )
    state.tournament = Tournament()

    transition(SessionFSM(state), "start_game")
    logger.info("Session %s started with %d players", state.session_id, len(state.players))
    return state.game


def current_event(*, state: SessionState, catalog: Catalog) -> EventCard | None:
    g = state.game
    if not 0 <= g.event_index < len(g.event_deck):
        return None
    entry = g.event_deck[g.event_index]
    return catalog.event(entry.kind, entry.event_id)


def _current_day_tag(state: SessionState, catalog: Catalog) -> str:
    g = state.game
    if not 0 <= g.event_index < len(g.event_deck) or g.event_deck[g.event_index].kind != TimeOfDay.day:
        return ""
    ev = current_event(state=state, catalog=catalog)
    return ev.tag if ev else ""


def is_legendary_day(*, state: SessionState, catalog: Catalog) -> bool:
    return _current_day_tag(state, catalog) == "legendary_monster"


def is_dungeon_closed(*, state: SessionState, catalog: Catalog) -> bool:
    return _current_day_tag(state, catalog) == "dungeon_closed"


def active_monster(*, state: SessionState, catalog: Catalog) -> Monster | None:
    g = state.game
    if not 0 <= g.monster_index < len(g.monster_deck):
        return None
    return catalog.monster(g.monster_deck[g.monster_index])


def describe_encounter(*, state: SessionState, catalog: Catalog) -> EncounterView | None:
    """Return today's monster, or None when there is nothing to fight.

    Nothing to fight: monsters are drawn from the physical deck, it is night,
    the dungeon is closed, today's monster is already resolved, or the deck ran out.
    """

    g = state.game
    if not state.options.digital_monsters or g.time_of_day != TimeOfDay.day:
        return None
    if is_dungeon_closed(state=state, catalog=catalog) or g.monster_resolved:
        return None

    monster = active_monster(state=state, catalog=catalog)
    if monster is None:
        return None

    legendary = is_legendary_day(state=state, catalog=catalog)
    return EncounterView(
        monster=monster,
        hp=compute_effective_hp(monster, len(state.players), legendary),
        is_legendary=legendary,
        reward=f"{monster.reward} (x2)" if legendary else monster.reward,
    )


def enter_tournament(*, state: SessionState) -> Tournament:
    state.tournament = Tournament(seeds=[Seed(player_id=p.id) for p in state.players])
    transition(SessionFSM(state), "finish_timeline")
    logger.info("Session %s timeline finished on day %d", state.session_id, state.game.current_day)
    return state.tournament


def advance_tick(*, state: SessionState, catalog: Catalog) -> GameProgress:
    """Move the timeline one event forward.

    Hands over to tournament setup after the last day, or when the deck runs out first.
    """

    _require_phase(state, SessionPhase.game)
    g = state.game

    # A closed dungeon resolves today's monster without a fight; the card is discarded.
    if is_dungeon_closed(state=state, catalog=catalog) and not g.monster_resolved:
        g.monster_resolved = True
        g.monster_index += 1

    if g.current_day >= MAX_DAYS and g.time_of_day == TimeOfDay.day:
        enter_tournament(state=state)
        return g

    g.event_index += 1
    if g.event_index >= len(g.event_deck):
        enter_tournament(state=state)
        return g

    entry = g.event_deck[g.event_index]
    g.time_of_day = entry.kind
    if entry.kind == TimeOfDay.day:
        g.current_day += 1
        g.monster_resolved = False

    logger.debug("Tick -> %s (day %d, event %d)", g.time_of_day.value, g.current_day, g.event_index)
    return g


def _check_tier_completion(state: SessionState, catalog: Catalog, tier: Tier) -> str | None:
    g = state.game
    if tier in g.completed_tiers:
        return None

    tier_positions = [
        i for i, mid in enumerate(g.monster_deck) if (m := catalog.monster(mid)) is not None and m.tier == tier
    ]
    if not tier_positions or g.monster_index <= max(tier_positions):
        return None

    g.completed_tiers.append(tier)
    for p in state.players:
        p.max_mana += 1
        p.mana = min(p.mana + 1, p.max_mana)

    message = f"Tier {tier.value} completed! +1 max mana for everyone"
    g.pending_notifications.append(message)
    logger.info("Session %s completed tier %s", state.session_id, tier.value)
    return message


def resolve_encounter(*, state: SessionState, catalog: Catalog, outcome: EncounterOutcome | str) -> EncounterResult:
    """Record the result of fighting today's monster.

    Victory discards the monster and may complete its tier; defeat keeps the
    monster on top of the deck and queues its penalty.
    """

    _require_phase(state, SessionPhase.game)
    outcome = EncounterOutcome(outcome)
    g = state.game

    if g.time_of_day != TimeOfDay.day:
        raise TornarisError("Monsters are only fought during the day")
    if is_dungeon_closed(state=state, catalog=catalog):
        raise TornarisError("The dungeon is closed today")
    if g.monster_resolved:
        raise TornarisError("Today's monster is already resolved")
    monster = active_monster(state=state, catalog=catalog)
    if monster is None:
        raise TornarisError("No monster left in the deck")

    g.monster_resolved = True
    if outcome == EncounterOutcome.defeat:
        message = f"{monster.name} was not defeated."
        if monster.penalty:
            message += f" Penalty: {monster.penalty}"
        g.pending_notifications.append(message)
        return EncounterResult(outcome=outcome, monster_id=monster.id, notifications=[message])

    g.monster_index += 1
    completed = _check_tier_completion(state, catalog, monster.tier)
    return EncounterResult(
        outcome=outcome,
        monster_id=monster.id,
        completed_tier=monster.tier if completed else None,
        notifications=[completed] if completed else [],
    )


def skip_monster(*, state: SessionState) -> None:
    """Pass on today's monster; it stays on top of the deck for the next day."""

    _require_phase(state, SessionPhase.game)
    state.game.monster_resolved = True


def acknowledge_notification(progress: GameProgress) -> str | None:
    if not progress.pending_notifications:
        return None
    return progress.pending_notifications.pop(0)
