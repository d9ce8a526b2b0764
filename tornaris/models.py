from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from tornaris.constants import DEFAULT_MAX_MANA, Tier


def _now() -> datetime:
    return datetime.now(tz=UTC)


class TimeOfDay(StrEnum):
    day = "day"
    night = "night"


class SessionPhase(StrEnum):
    setup = "setup"
    game = "game"
    tournament = "tournament"


class TournamentPhase(StrEnum):
    pre = "pre"
    bracket = "bracket"
    champion = "champion"


class SessionOptions(BaseModel):
    # Monsters drawn by the app instead of from the physical deck.
    digital_monsters: bool = False
    # Events drawn by the app instead of from the physical deck.
    digital_events: bool = False
    # Gold, mana and equipment tracked in the app.
    full_tracking: bool = False


class Player(BaseModel):
    # Position in the roster; re-numbered whenever the roster is compacted.
    id: int = 0
    name: str = ""
    character_id: str = ""

    gold: int = Field(default=0, ge=0)
    mana: int = Field(default=DEFAULT_MAX_MANA, ge=0)
    max_mana: int = Field(default=DEFAULT_MAX_MANA, ge=1)
    equipment: list[int] = Field(default_factory=list)


class EventEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: TimeOfDay
    event_id: int


class GameProgress(BaseModel):
    # Combined day+night deck; the cursor points at the event in play.
    event_deck: list[EventEntry] = Field(default_factory=list)
    event_index: int = 0

    # Number of day events seen so far (1..12); time of day mirrors the current entry.
    current_day: int = 0
    time_of_day: TimeOfDay = TimeOfDay.day

    monster_deck: list[str] = Field(default_factory=list)
    monster_index: int = 0
    monster_resolved: bool = False

    # Tiers whose reward has already been granted this session.
    completed_tiers: list[Tier] = Field(default_factory=list)

    # One-shot messages, acknowledged front to back.
    pending_notifications: list[str] = Field(default_factory=list)

    @property
    def deck_built(self) -> bool:
        return bool(self.event_deck)


class StealOffer(BaseModel):
    thief_id: int
    victim_id: int


class Duel(BaseModel):
    player1_id: int | None = None
    player2_id: int | None = None
    score1: int = Field(default=0, ge=0)
    score2: int = Field(default=0, ge=0)
    winner_id: int | None = None

    # Set when the duel decides a tournament match.
    match_id: str | None = None

    # Pending Nyra gold steal; must be accepted or declined before the duel closes.
    steal_offer: StealOffer | None = None
    closed: bool = False


class MonsterCombat(BaseModel):
    monster_id: str | None = None
    # 0 for "special" monsters, which have no combat value.
    max_hp: int = 0
    current_hp: int = 0
    combatant_ids: list[int] = Field(default_factory=list)
    combatant_scores: dict[int, int] = Field(default_factory=dict)
    is_legendary: bool = False


class Seed(BaseModel):
    player_id: int
    # 1 = top seed; unset until the tournament is seeded.
    seed_rank: int | None = None


class FeedLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    match_id: str
    # Output position of the feeding match. Only winners advance, so this is bookkeeping.
    slot: int = 1


class Match(BaseModel):
    id: str
    player1_id: int | None = None
    player2_id: int | None = None

    # Seed-first competitor of the initial pairing; never recomputed.
    advantage_player_id: int | None = None
    winner_id: int | None = None
    feeds_from: tuple[FeedLink | None, FeedLink | None] = (None, None)

    @property
    def is_ready(self) -> bool:
        return self.player1_id is not None and self.player2_id is not None


class Round(BaseModel):
    name: str
    matches: list[Match] = Field(default_factory=list)


class Tournament(BaseModel):
    phase: TournamentPhase = TournamentPhase.pre
    seeds: list[Seed] = Field(default_factory=list)
    # Leaves to root.
    rounds: list[Round] = Field(default_factory=list)
    champion_id: int | None = None


class SessionState(BaseModel):
    session_id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_now)
    last_updated_at: datetime = Field(default_factory=_now)

    # For reproducibility/debugging.
    seed: int = 0

    phase: SessionPhase = SessionPhase.setup
    options: SessionOptions = Field(default_factory=SessionOptions)
    players: list[Player] = Field(default_factory=list)

    game: GameProgress = Field(default_factory=GameProgress)
    duel: Duel = Field(default_factory=Duel)
    monster_combat: MonsterCombat = Field(default_factory=MonsterCombat)
    tournament: Tournament = Field(default_factory=Tournament)

    def player(self, player_id: int) -> Player | None:
        return next((p for p in self.players if p.id == player_id), None)
