from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from tornaris.config import strict_assets
from tornaris.constants import NORMAL_DAY_EVENT_ID, TIER_ORDER, Tier


def _norm_key(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip().casefold()


def _slug_id(s: str) -> str:
    s = s.strip().casefold()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


class AssetLoadError(RuntimeError):
    pass


EventTag = Literal["", "normal", "dungeon_closed", "legendary_monster"]
_EVENT_TAGS: frozenset[str] = frozenset({"", "normal", "dungeon_closed", "legendary_monster"})


@dataclass(frozen=True, slots=True)
class HpSpec:
    """Monster hit points as printed on the card.

    - `flat`: a literal number.
    - `per_player`: "kx", k times the number of players at the table.
    - `special`: no combat value; the card explains how the fight works.
    """

    kind: Literal["flat", "per_player", "special"]
    value: int = 0

    @staticmethod
    def parse(raw: str) -> "HpSpec":
        text = raw.strip().casefold()
        if text in {"", "special", "especial"}:
            return HpSpec(kind="special")
        try:
            if text.endswith("x"):
                return HpSpec(kind="per_player", value=int(text[:-1]))
            return HpSpec(kind="flat", value=int(text))
        except ValueError as e:
            raise AssetLoadError(f"Invalid monster hp: {raw!r}") from e


@dataclass(frozen=True, slots=True)
class Character:
    id: str
    name: str
    emoji: str
    class_name: str
    max_mana: int


@dataclass(frozen=True, slots=True)
class Monster:
    id: str
    name: str
    tier: Tier
    hp: HpSpec
    ability: str = ""
    reward: str = ""
    penalty: str = ""
    image: str = ""


@dataclass(frozen=True, slots=True)
class EventCard:
    id: int
    name: str
    effect: str
    count: int
    tag: EventTag = ""


@dataclass(frozen=True, slots=True)
class Equipment:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Catalog:
    """Read-only reference tables for one game box.

    IDs are canonical (for persistence). Names are for display; name lookups
    are forgiving about case and whitespace.
    """

    characters: tuple[Character, ...]
    monsters: tuple[Monster, ...]
    day_events: tuple[EventCard, ...]
    night_events: tuple[EventCard, ...]
    equipment: tuple[Equipment, ...]
    _characters_by_id: dict[str, Character]
    _character_key_to_id: dict[str, str]
    _monsters_by_id: dict[str, Monster]
    _day_by_id: dict[int, EventCard]
    _night_by_id: dict[int, EventCard]
    _equipment_by_id: dict[int, Equipment]

    @staticmethod
    def from_rows(
        *,
        characters: list[Character],
        monsters: list[Monster],
        day_events: list[EventCard],
        night_events: list[EventCard],
        equipment: list[Equipment],
    ) -> "Catalog":
        characters_by_id = _index(characters, "character")
        monsters_by_id = _index(monsters, "monster")
        day_by_id = _index(day_events, "day event")
        night_by_id = _index(night_events, "night event")
        equipment_by_id = _index(equipment, "equipment")

        if NORMAL_DAY_EVENT_ID not in day_by_id:
            raise AssetLoadError(f"Day events must include the normal day (id {NORMAL_DAY_EVENT_ID})")

        return Catalog(
            characters=tuple(characters),
            monsters=tuple(monsters),
            day_events=tuple(day_events),
            night_events=tuple(night_events),
            equipment=tuple(equipment),
            _characters_by_id=characters_by_id,
            _character_key_to_id={_norm_key(c.name): c.id for c in characters},
            _monsters_by_id=monsters_by_id,
            _day_by_id=day_by_id,
            _night_by_id=night_by_id,
            _equipment_by_id=equipment_by_id,
        )

    def character(self, id: str) -> Character | None:
        return self._characters_by_id.get(id)

    def resolve_character_id(self, name_or_id: str) -> str | None:
        if name_or_id in self._characters_by_id:
            return name_or_id
        return self._character_key_to_id.get(_norm_key(name_or_id))

    def monster(self, id: str) -> Monster | None:
        return self._monsters_by_id.get(id)

    def monsters_of_tier(self, tier: Tier) -> list[Monster]:
        return [m for m in self.monsters if m.tier == tier]

    def event(self, kind: str, id: int) -> EventCard | None:
        if kind == "day":
            return self._day_by_id.get(id)
        if kind == "night":
            return self._night_by_id.get(id)
        return None

    def equipment_item(self, id: int) -> Equipment | None:
        return self._equipment_by_id.get(id)


def _index(rows, what: str) -> dict:
    out: dict = {}
    for row in rows:
        if row.id in out:
            raise AssetLoadError(f"Duplicate {what} id: {row.id}")
        out[row.id] = row
    return out


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            rows = [[c.strip() for c in row] for row in csv.reader(f)]
    except FileNotFoundError as e:
        raise AssetLoadError(f"Asset file not found: {path}") from e

    return [row for row in rows if any(cell.strip() for cell in row)]


def _read_table(path: Path, columns: list[str]) -> list[dict[str, str]]:
    rows = _read_csv_rows(path)
    if not rows:
        raise AssetLoadError(f"Empty CSV: {path}")

    header = [c.casefold() for c in rows[0]]
    if header[: len(columns)] != columns:
        raise AssetLoadError(f"Unexpected header in {path}: {rows[0]}")

    out: list[dict[str, str]] = []
    for row in rows[1:]:
        padded = row + [""] * (len(columns) - len(row))
        out.append(dict(zip(columns, padded)))
    return out


def _int(value: str, *, path: Path, field: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise AssetLoadError(f"Invalid {field} {value!r} in {path}") from e


def load_characters_csv(path: Path) -> list[Character]:
    out: list[Character] = []
    for row in _read_table(path, ["id", "name", "emoji", "class", "max_mana"]):
        name = row["name"]
        if not name:
            continue
        out.append(
            Character(
                id=row["id"] or _slug_id(name),
                name=name,
                emoji=row["emoji"],
                class_name=row["class"],
                max_mana=_int(row["max_mana"], path=path, field="max_mana"),
            )
        )
    return out


def load_monsters_csv(path: Path) -> list[Monster]:
    columns = ["id", "name", "tier", "hp", "ability", "reward", "penalty", "image"]
    out: list[Monster] = []
    for row in _read_table(path, columns):
        name = row["name"]
        if not name:
            continue
        try:
            tier = Tier(row["tier"].casefold())
        except ValueError as e:
            raise AssetLoadError(f"Unknown tier {row['tier']!r} in {path}") from e
        out.append(
            Monster(
                id=row["id"] or _slug_id(name),
                name=name,
                tier=tier,
                hp=HpSpec.parse(row["hp"]),
                ability=row["ability"],
                reward=row["reward"],
                penalty=row["penalty"],
                image=row["image"],
            )
        )
    return out


def load_events_csv(path: Path) -> list[EventCard]:
    out: list[EventCard] = []
    for row in _read_table(path, ["id", "name", "effect", "count", "tag"]):
        if not row["name"]:
            continue
        tag = row["tag"].casefold()
        if tag not in _EVENT_TAGS:
            raise AssetLoadError(f"Unknown event tag {row['tag']!r} in {path}")
        count = _int(row["count"], path=path, field="count")
        if count < 0:
            raise AssetLoadError(f"Negative event count in {path}: {row['name']}")
        out.append(
            EventCard(
                id=_int(row["id"], path=path, field="id"),
                name=row["name"],
                effect=row["effect"],
                count=count,
                tag=tag,  # type: ignore[arg-type]
            )
        )
    return out


def load_equipment_csv(path: Path) -> list[Equipment]:
    out: list[Equipment] = []
    for row in _read_table(path, ["id", "name"]):
        if not row["name"]:
            continue
        out.append(Equipment(id=_int(row["id"], path=path, field="id"), name=row["name"]))
    return out


def _check_tiers(monsters: list[Monster]) -> None:
    # Deck construction samples 3 per tier; fewer is a broken box, not a runtime case.
    for tier in TIER_ORDER:
        if sum(1 for m in monsters if m.tier == tier) < 3:
            raise AssetLoadError(f"Monster catalog needs at least 3 monsters of tier '{tier}'")


def _fallback_catalog() -> Catalog:
    """Small built-in box used when the CSVs are missing."""

    characters = [
        Character(id="aldric", name="Aldric", emoji="🛡️", class_name="Guerrero", max_mana=3),
        Character(id="nyra", name="Nyra", emoji="🗡️", class_name="Ladrona", max_mana=4),
        Character(id="selene", name="Selene", emoji="🔮", class_name="Hechicera", max_mana=6),
        Character(id="borin", name="Borin", emoji="⚒️", class_name="Herrero", max_mana=3),
        Character(id="lyra", name="Lyra", emoji="🏹", class_name="Arquera", max_mana=4),
        Character(id="kael", name="Kael", emoji="✨", class_name="Clérigo", max_mana=5),
    ]

    hp_by_tier = {Tier.duende: "2x", Tier.ogro: "12", Tier.golem: "4x", Tier.dragon: "40"}
    monsters = [
        Monster(
            id=f"{tier.value}-{i}",
            name=f"{tier.value.capitalize()} {i}",
            tier=tier,
            hp=HpSpec.parse(hp_by_tier[tier]),
            reward="1 oro",
            penalty="-1 maná",
        )
        for tier in TIER_ORDER
        for i in range(1, 4)
    ]

    day_events = [
        EventCard(id=NORMAL_DAY_EVENT_ID, name="Día Normal", effect="Sin efecto.", count=6, tag="normal"),
        EventCard(id=2, name="Mazmorra Cerrada", effect="Hoy no hay monstruo.", count=2, tag="dungeon_closed"),
        EventCard(id=3, name="Monstruo Legendario", effect="El monstruo tiene el doble de vida.", count=2, tag="legendary_monster"),
        EventCard(id=4, name="Mercado Ambulante", effect="Se puede comprar equipamiento.", count=4),
    ]
    night_events = [
        EventCard(id=1, name="Noche Tranquila", effect="Sin efecto.", count=4),
        EventCard(id=2, name="Emboscada", effect="Cada jugador pierde 1 oro.", count=3),
    ]
    equipment = [
        Equipment(id=1, name="Espada"),
        Equipment(id=2, name="Escudo"),
        Equipment(id=3, name="Poción"),
    ]

    return Catalog.from_rows(
        characters=characters,
        monsters=monsters,
        day_events=day_events,
        night_events=night_events,
        equipment=equipment,
    )


def load_catalog(*, root: Path) -> Catalog:
    assets_dir = root / "assets"

    # Default behavior: fall back to the built-in box when files are missing.
    # Force strict behavior with TORNARIS_STRICT_ASSETS=1.
    try:
        monsters = load_monsters_csv(assets_dir / "monsters.csv")
        _check_tiers(monsters)
        return Catalog.from_rows(
            characters=load_characters_csv(assets_dir / "characters.csv"),
            monsters=monsters,
            day_events=load_events_csv(assets_dir / "day_events.csv"),
            night_events=load_events_csv(assets_dir / "night_events.csv"),
            equipment=load_equipment_csv(assets_dir / "equipment.csv"),
        )
    except AssetLoadError:
        if strict_assets():
            raise
        return _fallback_catalog()
