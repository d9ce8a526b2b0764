from __future__ import annotations

import logging
import random

from tornaris.assets.registry import Catalog
from tornaris.constants import MONSTERS_PER_TIER, NORMAL_DAY_EVENT_ID, TIER_ORDER
from tornaris.models import EventEntry, TimeOfDay
from tornaris.rng import shuffled

logger = logging.getLogger(__name__)


def build_monster_deck(*, catalog: Catalog, rng: random.Random) -> list[str]:
    """Return 12 monster ids: 3 random picks per tier, weakest tier first.

    The catalog must hold at least 3 monsters per tier (checked at load time).
    """

    deck: list[str] = []
    for tier in TIER_ORDER:
        ids = [m.id for m in catalog.monsters_of_tier(tier)]
        deck.extend(shuffled(ids, rng)[:MONSTERS_PER_TIER])

    logger.debug("Built monster deck with %d cards", len(deck))
    return deck


def build_combined_event_deck(*, catalog: Catalog, rng: random.Random) -> list[EventEntry]:
    """Expand day and night events by their counts and shuffle them together.

    The first card is always the normal day so a session opens on a neutral event:
    the first normal day is moved to the front (the rest keep their shuffled order),
    or one is added in front when the shuffle has none.
    """

    deck: list[EventEntry] = []
    for ev in catalog.day_events:
        deck.extend(EventEntry(kind=TimeOfDay.day, event_id=ev.id) for _ in range(ev.count))
    for ev in catalog.night_events:
        deck.extend(EventEntry(kind=TimeOfDay.night, event_id=ev.id) for _ in range(ev.count))
    deck = shuffled(deck, rng)

    normal_day = EventEntry(kind=TimeOfDay.day, event_id=NORMAL_DAY_EVENT_ID)
    normal_idx = next((i for i, entry in enumerate(deck) if entry == normal_day), -1)
    if normal_idx > 0:
        deck.insert(0, deck.pop(normal_idx))
    elif normal_idx == -1:
        deck.insert(0, normal_day)

    logger.debug("Built event deck with %d cards", len(deck))
    return deck
