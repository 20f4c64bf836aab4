"""Per-level behaviour for the summary hierarchy.

Every level answers the same two questions for the generic processor:

    eligible()  which entities are processed at this level in a run
    upstream()  what a given entity's summary is built from

Sessions are gated by a message-count threshold and built from their chat
transcript. Every other level processes all of its entities and is built
from the latest stored summary of each child; children that were never
summarized contribute nothing.
"""

from __future__ import annotations

from rpg_chronicle.models import Level, RunConfig, UpstreamItem
from rpg_chronicle.storage import EntityCatalog, SummaryLedger


class LevelHandler:
    level: Level
    child_level: Level | None = None

    def eligible(self, catalog: EntityCatalog, config: RunConfig) -> list[str]:
        return catalog.list_entities(self.level)

    def upstream(
        self, catalog: EntityCatalog, ledger: SummaryLedger, entity_id: str
    ) -> list[UpstreamItem]:
        items: list[UpstreamItem] = []
        for child_id in catalog.children_of(self.level, entity_id):
            latest = ledger.latest_summary(self.child_level, child_id)
            if latest is not None:
                items.append(UpstreamItem.from_record(latest))
        return items

    def exists(self, catalog: EntityCatalog, entity_id: str) -> bool:
        return catalog.get_entity(self.level, entity_id) is not None


class SessionHandler(LevelHandler):
    level = "session"

    def eligible(self, catalog: EntityCatalog, config: RunConfig) -> list[str]:
        return [
            session_id
            for session_id in catalog.list_entities("session")
            if len(catalog.session_messages(session_id)) >= config.min_session_messages
        ]

    def upstream(
        self, catalog: EntityCatalog, ledger: SummaryLedger, entity_id: str
    ) -> list[UpstreamItem]:
        return [
            UpstreamItem(entity_id=entity_id, version=position, text=f"{msg.role}: {msg.content}")
            for position, msg in enumerate(catalog.session_messages(entity_id), start=1)
        ]


class NpcHandler(LevelHandler):
    level = "npc"
    child_level = "session"


class BuildingHandler(LevelHandler):
    level = "building"
    child_level = "npc"


class SettlementHandler(LevelHandler):
    level = "settlement"
    child_level = "building"


class WorldHandler(LevelHandler):
    level = "world"
    child_level = "settlement"


HANDLERS: dict[Level, LevelHandler] = {
    handler.level: handler
    for handler in (
        SessionHandler(),
        NpcHandler(),
        BuildingHandler(),
        SettlementHandler(),
        WorldHandler(),
    )
}


def handler_for(level: str) -> LevelHandler:
    try:
        return HANDLERS[level]
    except KeyError:
        raise ValueError(f"Unknown summary level: {level!r}") from None
