"""JSON file storage for the world catalog and the summary ledger.

The summary core only talks to two narrow collaborators, declared here as
protocols:

    EntityCatalog  lists entities per level and how they nest
    SummaryLedger  append-only, versioned summaries per entity

`Storage` implements both over flat JSON files. There is no database or ORM;
reads load a file, writes dump it to a temp file and swap it into place.

Directory layout:

    {base}/
      entities/
        world.json        ← list of World objects
        settlement.json   ← list of Settlement objects (world_id)
        building.json     ← list of Building objects (settlement_id)
        npc.json          ← list of Npc objects (building_id)
        session.json      ← list of Session objects with their messages
      summaries/
        {level}.json      ← {entity_id: [SummaryRecord, ...]} oldest first
      config.json         ← app settings (see rpg_chronicle.config)
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

from rpg_chronicle.models import (
    LEVELS,
    Building,
    ChatMessage,
    Entity,
    Level,
    Npc,
    Session,
    Settlement,
    SummaryRecord,
    World,
)


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------

class EntityCatalog(Protocol):
    def list_entities(self, level: Level) -> list[str]: ...

    def get_entity(self, level: Level, entity_id: str) -> Entity | None: ...

    def children_of(self, level: Level, entity_id: str) -> list[str]: ...

    def session_messages(self, session_id: str) -> list[ChatMessage]: ...


class SummaryLedger(Protocol):
    def latest_summary(self, level: Level, entity_id: str) -> SummaryRecord | None: ...

    def append_summary(
        self, level: Level, entity_id: str, text: str, fingerprint: str
    ) -> SummaryRecord: ...

    def summary_history(self, level: Level, entity_id: str) -> list[SummaryRecord]: ...


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

_MODELS: dict[Level, type[BaseModel]] = {
    "world": World,
    "settlement": Settlement,
    "building": Building,
    "npc": Npc,
    "session": Session,
}

# Field on a child entity that names its parent.
_PARENT_FIELD: dict[Level, str] = {
    "session": "npc_id",
    "npc": "building_id",
    "building": "settlement_id",
    "settlement": "world_id",
}


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._entities_root = base_path / "entities"
        self._summaries_root = base_path / "summaries"
        self._entities_root.mkdir(parents=True, exist_ok=True)
        self._summaries_root.mkdir(parents=True, exist_ok=True)
        self._ledger_lock = threading.Lock()

    @property
    def base_path(self) -> Path:
        return self._base

    @property
    def config_path(self) -> Path:
        return self._base / "config.json"

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _entities_file(self, level: Level) -> Path:
        return self._entities_root / f"{level}.json"

    def _summaries_file(self, level: Level) -> Path:
        return self._summaries_root / f"{level}.json"

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, path)

    def _load_entities(self, level: Level) -> list[Any]:
        model = _MODELS[level]
        return [model.model_validate(e) for e in self._read_json(self._entities_file(level), [])]

    def _upsert(self, level: Level, entity: BaseModel) -> None:
        """Upsert an entity by id."""
        entities = self._load_entities(level)
        for i, existing in enumerate(entities):
            if existing.id == entity.id:
                entities[i] = entity
                break
        else:
            entities.append(entity)
        self._write_json(self._entities_file(level), [e.model_dump() for e in entities])

    # ------------------------------------------------------------------
    # Entity writes
    # ------------------------------------------------------------------

    def save_world(self, world: World) -> None:
        self._upsert("world", world)

    def save_settlement(self, settlement: Settlement) -> None:
        self._upsert("settlement", settlement)

    def save_building(self, building: Building) -> None:
        self._upsert("building", building)

    def save_npc(self, npc: Npc) -> None:
        self._upsert("npc", npc)

    def save_session(self, session: Session) -> None:
        self._upsert("session", session)

    def append_session_messages(self, session_id: str, messages: list[ChatMessage]) -> Session:
        session = self.get_entity("session", session_id)
        if session is None:
            raise KeyError(f"Session {session_id!r} not found")
        session.messages.extend(messages)
        self.save_session(session)
        return session

    # ------------------------------------------------------------------
    # EntityCatalog
    # ------------------------------------------------------------------

    def list_entities(self, level: Level) -> list[str]:
        return [e.id for e in self._load_entities(level)]

    def get_entity(self, level: Level, entity_id: str) -> Entity | None:
        for entity in self._load_entities(level):
            if entity.id == entity_id:
                return entity
        return None

    def children_of(self, level: Level, entity_id: str) -> list[str]:
        index = LEVELS.index(level)
        if index == 0:
            return []
        below = LEVELS[index - 1]
        field = _PARENT_FIELD[below]
        return sorted(
            e.id for e in self._load_entities(below) if getattr(e, field) == entity_id
        )

    def session_messages(self, session_id: str) -> list[ChatMessage]:
        session = self.get_entity("session", session_id)
        return list(session.messages) if session else []

    # ------------------------------------------------------------------
    # SummaryLedger (append-only)
    # ------------------------------------------------------------------

    def _load_ledger(self, level: Level) -> dict[str, list[dict]]:
        return self._read_json(self._summaries_file(level), {})

    def summary_history(self, level: Level, entity_id: str) -> list[SummaryRecord]:
        raw = self._load_ledger(level).get(entity_id, [])
        return [SummaryRecord.model_validate(r) for r in raw]

    def latest_summary(self, level: Level, entity_id: str) -> SummaryRecord | None:
        history = self.summary_history(level, entity_id)
        if not history:
            return None
        return max(history, key=lambda r: r.version)

    def append_summary(
        self, level: Level, entity_id: str, text: str, fingerprint: str
    ) -> SummaryRecord:
        """Store a new version; the version number is assigned here, never by callers."""
        with self._ledger_lock:
            ledger = self._load_ledger(level)
            versions = ledger.setdefault(entity_id, [])
            latest = max((r["version"] for r in versions), default=0)
            record = SummaryRecord(
                entity_id=entity_id,
                level=level,
                text=text,
                upstream_fingerprint=fingerprint,
                version=latest + 1,
            )
            versions.append(record.model_dump())
            self._write_json(self._summaries_file(level), ledger)
        return record
