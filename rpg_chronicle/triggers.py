"""On-demand regeneration of a single summary.

`TriggerDispatcher.regenerate(level, entity_id)` runs the same
change-detection / synthesize / append logic as a full run, for one entity.
It is refused while a full run is active, and a full run cannot start while
a regeneration holds the generation backend; both would write to the same
ledger entries.

Other subsystems that use the generation backend (interactive chat, for one)
call `is_generation_busy()` or `ensure_generation_available()` before their
own LLM calls.
"""

from __future__ import annotations

import asyncio
import logging

from rpg_chronicle.controller import GenerationBusy, RunController
from rpg_chronicle.models import EntityResult
from rpg_chronicle.pipeline import handler_for, process_entity

logger = logging.getLogger(__name__)


class EntityNotFound(LookupError):
    """Raised when the requested entity does not exist at that level."""


class TriggerDispatcher:
    def __init__(self, controller: RunController) -> None:
        self._controller = controller
        self._lock = asyncio.Lock()

    def is_generation_busy(self) -> bool:
        return self._controller.is_running()

    def ensure_generation_available(self) -> None:
        if self.is_generation_busy():
            raise GenerationBusy("A summary run is in progress; generation is unavailable")

    async def regenerate(self, level: str, entity_id: str) -> EntityResult:
        """Refresh one entity's summary if its upstream changed.

        The session message threshold does not apply: an explicit request
        always considers the session.
        """
        handler = handler_for(level)
        controller = self._controller
        if not handler.exists(controller.catalog, entity_id):
            raise EntityNotFound(f"{level} {entity_id!r} not found")

        async with self._lock:
            controller.begin_regeneration()
            try:
                logger.info("Regenerating %s %s on demand", level, entity_id)
                return await process_entity(
                    handler,
                    entity_id,
                    catalog=controller.catalog,
                    ledger=controller.ledger,
                    synthesizer=controller.synthesizer,
                )
            finally:
                controller.end_regeneration()
