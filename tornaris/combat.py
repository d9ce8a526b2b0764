from __future__ import annotations

from tornaris.assets.registry import Catalog
from tornaris.errors import TornarisError
from tornaris.models import MonsterCombat, SessionState, TimeOfDay
from tornaris.progression import (
    EncounterOutcome,
    EncounterResult,
    SpecialHp,
    active_monster,
    compute_effective_hp,
    is_dungeon_closed,
    is_legendary_day,
    resolve_encounter,
)
from tornaris.roster import require_player


def open_monster_combat(*, state: SessionState, catalog: Catalog) -> MonsterCombat:
    """Start a group fight against today's monster with an empty party."""

    if state.game.time_of_day != TimeOfDay.day:
        raise TornarisError("Monsters are only fought during the day")
    if is_dungeon_closed(state=state, catalog=catalog):
        raise TornarisError("The dungeon is closed today")
    if state.game.monster_resolved:
        raise TornarisError("Today's monster is already resolved")
    monster = active_monster(state=state, catalog=catalog)
    if monster is None:
        raise TornarisError("No monster left in the deck")

    legendary = is_legendary_day(state=state, catalog=catalog)
    hp = compute_effective_hp(monster, len(state.players), legendary)
    max_hp = 0 if isinstance(hp, SpecialHp) else hp

    state.monster_combat = MonsterCombat(
        monster_id=monster.id,
        max_hp=max_hp,
        current_hp=max_hp,
        is_legendary=legendary,
    )
    return state.monster_combat


def _recalc_hp(mc: MonsterCombat) -> None:
    damage = sum(mc.combatant_scores.get(pid, 0) for pid in mc.combatant_ids)
    mc.current_hp = mc.max_hp - damage


def _require_open(state: SessionState) -> MonsterCombat:
    mc = state.monster_combat
    if mc.monster_id is None:
        raise TornarisError("No monster combat in progress")
    return mc


def toggle_combatant(*, state: SessionState, player_id: int, joined: bool) -> MonsterCombat:
    mc = _require_open(state)
    require_player(state=state, player_id=player_id)
    if joined:
        if player_id not in mc.combatant_ids:
            mc.combatant_ids.append(player_id)
        mc.combatant_scores.setdefault(player_id, 0)
    else:
        mc.combatant_ids = [pid for pid in mc.combatant_ids if pid != player_id]
        mc.combatant_scores.pop(player_id, None)
    _recalc_hp(mc)
    return mc


def adjust_combatant_score(*, state: SessionState, player_id: int, delta: int) -> int:
    mc = _require_open(state)
    if player_id not in mc.combatant_ids:
        raise TornarisError(f"Player {player_id} is not in the fight")
    mc.combatant_scores[player_id] = max(0, mc.combatant_scores.get(player_id, 0) + delta)
    _recalc_hp(mc)
    return mc.combatant_scores[player_id]


def end_monster_combat(*, state: SessionState, catalog: Catalog) -> EncounterResult:
    mc = _require_open(state)
    outcome = EncounterOutcome.victory if mc.current_hp <= 0 else EncounterOutcome.defeat
    result = resolve_encounter(state=state, catalog=catalog, outcome=outcome)
    state.monster_combat = MonsterCombat()
    return result
