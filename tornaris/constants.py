from __future__ import annotations

from enum import StrEnum


class Tier(StrEnum):
    duende = "duende"
    ogro = "ogro"
    golem = "golem"
    dragon = "dragon"


# Weakest -> strongest. Monster decks are always concatenated in this order.
TIER_ORDER: tuple[Tier, ...] = (Tier.duende, Tier.ogro, Tier.golem, Tier.dragon)

MONSTERS_PER_TIER = 3
MAX_DAYS = 12

MIN_PLAYERS = 3
MAX_PLAYERS = 6
MAX_NAME_LENGTH = 20
DEFAULT_MAX_MANA = 4

NORMAL_DAY_EVENT_ID = 1

# Character whose duel wins may steal gold from the loser.
STEALING_CHARACTER_ID = "nyra"
STEAL_AMOUNT = 7

FINAL_MATCH_ID = "final"
