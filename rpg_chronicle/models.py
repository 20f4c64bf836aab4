"""Core domain models.

Every pipeline stage, the ledger and the HTTP layer operate on these types.
Pydantic is used for validation and serialisation at every data boundary.

The hierarchy is fixed:

    session → npc → building → settlement → world

Each level's summary is built from the latest summaries of the level below.
Sessions are the base level: their input is the raw chat transcript.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Level = Literal["session", "npc", "building", "settlement", "world"]

LEVELS: tuple[Level, ...] = ("session", "npc", "building", "settlement", "world")

RunState = Literal["idle", "running", "completed", "error"]

EntityOutcome = Literal["completed", "skipped", "errored"]


def child_level(level: Level) -> Level | None:
    """The level whose summaries feed `level`, or None for the base level."""
    index = LEVELS.index(level)
    return LEVELS[index - 1] if index > 0 else None


def parent_level(level: Level) -> Level | None:
    index = LEVELS.index(level)
    return LEVELS[index + 1] if index + 1 < len(LEVELS) else None


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Entities (owned by the catalog; the summary core never creates them)
# ---------------------------------------------------------------------------

class World(BaseModel):
    id: str
    name: str
    description: str = ""


class Settlement(BaseModel):
    id: str
    name: str
    world_id: str
    description: str = ""


class Building(BaseModel):
    id: str
    name: str
    settlement_id: str
    description: str = ""


class Npc(BaseModel):
    id: str
    name: str
    building_id: str
    description: str = ""


class ChatMessage(BaseModel):
    """One line of a player ↔ NPC conversation."""

    role: Literal["player", "npc", "system"]
    content: str
    ts: str = Field(default_factory=now_iso)


class Session(BaseModel):
    """A chat session between a player and a single NPC."""

    id: str
    npc_id: str
    player_name: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)


Entity = World | Settlement | Building | Npc | Session


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class SummaryRecord(BaseModel):
    """One immutable version of an entity's summary."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    level: Level
    text: str
    upstream_fingerprint: str
    version: int = Field(ge=1)
    created_at: str = Field(default_factory=now_iso)


class UpstreamItem(BaseModel):
    """A single fingerprint input.

    For aggregate levels this is a child's latest summary. For sessions it is
    one chat message, with `version` holding its 1-based position.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    version: int
    text: str

    @classmethod
    def from_record(cls, record: SummaryRecord) -> UpstreamItem:
        return cls(entity_id=record.entity_id, version=record.version, text=record.text)


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

class RunConfig(BaseModel):
    """Immutable configuration for one summary run."""

    model_config = ConfigDict(frozen=True)

    min_session_messages: int = Field(default=10, ge=1)
    enabled_levels: frozenset[Level] = frozenset(LEVELS)

    @classmethod
    def from_flags(cls, min_session_messages: int, flags: dict[str, bool]) -> RunConfig:
        """Build from the wire shape `{"session": true, "npc": false, ...}`."""
        enabled = frozenset(level for level in LEVELS if flags.get(level, False))
        return cls(min_session_messages=min_session_messages, enabled_levels=enabled)

    def is_enabled(self, level: Level) -> bool:
        return level in self.enabled_levels


class LevelStats(BaseModel):
    completed: int = 0
    skipped: int = 0
    errored: int = 0


class LevelProgress(BaseModel):
    level: Level
    current: int
    total: int
    message: str = ""

    @property
    def percent(self) -> float:
        """Level-local progress on a 0–100 scale. An empty level is complete."""
        if self.total <= 0:
            return 100.0
        return min(100.0, self.current / self.total * 100)


def _empty_stats() -> dict[Level, LevelStats]:
    return {level: LevelStats() for level in LEVELS}


class RunStatus(BaseModel):
    """Published snapshot of the singleton run state."""

    state: RunState = "idle"
    config: RunConfig | None = None
    current_level: Level | None = None
    level_progress: list[LevelProgress] = Field(default_factory=list)
    overall_progress: float = Field(default=0.0, ge=0.0, le=100.0)
    started_at: str | None = None
    completed_at: str | None = None
    error: str | None = None
    stats: dict[Level, LevelStats] = Field(default_factory=_empty_stats)


class EntityResult(BaseModel):
    """Outcome of running the change-detection algorithm on one entity."""

    level: Level
    entity_id: str
    outcome: EntityOutcome
    record: SummaryRecord | None = None  # new record, or the stored one when skipped
    error: str | None = None
