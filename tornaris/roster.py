from __future__ import annotations

from tornaris.assets.registry import Catalog
from tornaris.constants import MAX_NAME_LENGTH, MAX_PLAYERS, MIN_PLAYERS
from tornaris.errors import RosterError, UnknownReferenceError
from tornaris.models import Player, SessionState


def blank_roster(n: int = MIN_PLAYERS) -> list[Player]:
    return [Player(id=i) for i in range(n)]


def require_player(*, state: SessionState, player_id: int) -> Player:
    player = state.player(player_id)
    if player is None:
        raise RosterError(f"Player not found: {player_id}")
    return player


def _renumber(players: list[Player]) -> None:
    for i, p in enumerate(players):
        p.id = i


# --- setup -----------------------------------------------------------------


def add_player(*, state: SessionState) -> Player:
    if len(state.players) >= MAX_PLAYERS:
        raise RosterError(f"At most {MAX_PLAYERS} players allowed")
    player = Player(id=len(state.players))
    state.players.append(player)
    return player


def remove_player(*, state: SessionState, player_id: int) -> None:
    if len(state.players) <= MIN_PLAYERS:
        raise RosterError(f"At least {MIN_PLAYERS} players required")
    player = require_player(state=state, player_id=player_id)
    state.players.remove(player)
    _renumber(state.players)


def set_player_name(*, state: SessionState, player_id: int, name: str) -> None:
    player = require_player(state=state, player_id=player_id)
    player.name = name[:MAX_NAME_LENGTH]


def set_player_character(*, state: SessionState, catalog: Catalog, player_id: int, character_id: str) -> None:
    """Pick a class for a player. An empty id clears the pick; each class is taken once."""

    player = require_player(state=state, player_id=player_id)
    if character_id:
        resolved = catalog.resolve_character_id(character_id)
        if resolved is None:
            raise UnknownReferenceError(f"Unknown character: {character_id}")
        taken_by = next((p for p in state.players if p.character_id == resolved and p.id != player_id), None)
        if taken_by is not None:
            raise RosterError(f"Character '{resolved}' already chosen by player {taken_by.id}")
        character_id = resolved
    player.character_id = character_id


def roster_problems(*, state: SessionState, catalog: Catalog) -> list[str]:
    problems: list[str] = []
    n = len(state.players)
    if n < MIN_PLAYERS:
        problems.append(f"At least {MIN_PLAYERS} players required")
    if n > MAX_PLAYERS:
        problems.append(f"At most {MAX_PLAYERS} players allowed")

    seen: set[str] = set()
    for p in state.players:
        if not p.name.strip():
            problems.append(f"Player {p.id} has no name")
        if not p.character_id:
            problems.append(f"Player {p.id} has no character")
            continue
        if catalog.character(p.character_id) is None:
            problems.append(f"Player {p.id} has unknown character '{p.character_id}'")
        if p.character_id in seen:
            problems.append(f"Character '{p.character_id}' chosen more than once")
        seen.add(p.character_id)
    return problems


def can_start(*, state: SessionState, catalog: Catalog) -> bool:
    return not roster_problems(state=state, catalog=catalog)


def validate_roster(*, state: SessionState, catalog: Catalog) -> None:
    problems = roster_problems(state=state, catalog=catalog)
    if problems:
        raise RosterError("; ".join(problems))


# --- resources ---------------------------------------------------------------


def adjust_gold(*, state: SessionState, player_id: int, delta: int) -> int:
    player = require_player(state=state, player_id=player_id)
    player.gold = max(0, player.gold + delta)
    return player.gold


def toggle_mana(*, state: SessionState, player_id: int, index: int) -> int:
    """Tap the mana token at `index`.

    Tapping a filled token empties it and everything after it; tapping an
    empty one fills every token up to and including it.
    """

    player = require_player(state=state, player_id=player_id)
    if not 0 <= index < player.max_mana:
        raise RosterError(f"Mana token {index} out of range (max {player.max_mana})")
    player.mana = index if index < player.mana else index + 1
    return player.mana


def adjust_max_mana(*, state: SessionState, player_id: int, delta: int) -> int:
    player = require_player(state=state, player_id=player_id)
    player.max_mana = max(1, player.max_mana + delta)
    player.mana = min(player.mana, player.max_mana)
    return player.max_mana


def add_equipment(*, state: SessionState, catalog: Catalog, player_id: int, equipment_id: int) -> None:
    player = require_player(state=state, player_id=player_id)
    if catalog.equipment_item(equipment_id) is None:
        raise UnknownReferenceError(f"Unknown equipment: {equipment_id}")
    player.equipment.append(equipment_id)


def remove_equipment(*, state: SessionState, player_id: int, equipment_id: int) -> bool:
    """Remove one copy of `equipment_id`; returns False when the player has none."""

    player = require_player(state=state, player_id=player_id)
    if equipment_id not in player.equipment:
        return False
    player.equipment.remove(equipment_id)
    return True
