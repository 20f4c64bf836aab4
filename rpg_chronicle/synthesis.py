"""Summary synthesis: the one expensive call in the pipeline.

The level processor depends only on the `Synthesizer` protocol. Any failure
it raises is treated as a per-entity generation failure: logged, counted as
errored, nothing stored.

`LlmSynthesizer` is the production implementation: it renders the level's
Handlebars template and sends it to an `LLM`.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rpg_chronicle.llm import LLM, LLMError
from rpg_chronicle.models import Level, UpstreamItem
from rpg_chronicle.prompts import PromptError, render_prompt, template_for
from rpg_chronicle.storage import EntityCatalog

logger = logging.getLogger(__name__)


class Synthesizer(Protocol):
    async def synthesize(self, level: Level, entity_id: str, items: list[UpstreamItem]) -> str: ...


class SynthesisError(RuntimeError):
    """Raised when a summary could not be produced for one entity."""


def describe_entity(catalog: EntityCatalog, level: Level, entity_id: str) -> dict[str, Any]:
    """Template-facing view of an entity. Unknown entities get only their id."""
    entity = catalog.get_entity(level, entity_id)
    if entity is None:
        return {"id": entity_id, "name": entity_id}
    data = entity.model_dump(exclude={"messages"})
    if level == "session":
        npc = catalog.get_entity("npc", data["npc_id"])
        data["name"] = entity_id
        data["npc_name"] = npc.name if npc else data["npc_id"]
        data["player_name"] = data.get("player_name") or "the player"
    return data


class LlmSynthesizer:
    def __init__(
        self,
        llm: LLM,
        catalog: EntityCatalog,
        templates: dict[str, str] | None = None,
    ) -> None:
        self._llm = llm
        self._catalog = catalog
        self._templates = templates or {}

    def build_prompt(self, level: Level, entity_id: str, items: list[UpstreamItem]) -> str:
        ordered = sorted(items, key=lambda item: (item.entity_id, item.version))
        context = {
            "level": level,
            "entity": describe_entity(self._catalog, level, entity_id),
            "items": [
                {"id": item.entity_id, "version": item.version, "text": item.text}
                for item in ordered
            ],
            "count": len(ordered),
        }
        return render_prompt(template_for(level, self._templates), context)

    async def synthesize(self, level: Level, entity_id: str, items: list[UpstreamItem]) -> str:
        try:
            prompt = self.build_prompt(level, entity_id, items)
            text = await self._llm(f"summary_{level}", prompt)
        except PromptError as e:
            raise SynthesisError(f"Prompt template error ({level}): {e}") from e
        except LLMError as e:
            raise SynthesisError(str(e)) from e

        text = text.strip()
        if not text:
            raise SynthesisError(f"LLM returned an empty summary for {level} {entity_id!r}")
        return text
