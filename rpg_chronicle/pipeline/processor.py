"""Generic level processor: change detection and regeneration for one level.

Per entity:
  1. Gather upstream items (latest child summaries, or session messages).
  2. Fingerprint them.
  3. Compare with the fingerprint stored on the entity's latest summary.
  4. Equal → skipped, nothing written.
  5. Different (or no summary yet) → synthesize and append a new version.
     A synthesis failure is logged and counted as errored; nothing is written
     and the next run will try again.

Catalog and ledger failures are not caught here. They abort the level and,
through the orchestrator, the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from rpg_chronicle.hashing import fingerprint
from rpg_chronicle.models import EntityResult, Level, LevelProgress, LevelStats, RunConfig
from rpg_chronicle.storage import EntityCatalog, SummaryLedger
from rpg_chronicle.synthesis import Synthesizer

from .levels import LevelHandler, handler_for

logger = logging.getLogger(__name__)

ProgressReport = Callable[[LevelProgress, LevelStats], None]


class RunCancelled(Exception):
    """Raised between entities when a run was asked to stop."""


async def process_entity(
    handler: LevelHandler,
    entity_id: str,
    *,
    catalog: EntityCatalog,
    ledger: SummaryLedger,
    synthesizer: Synthesizer,
) -> EntityResult:
    level = handler.level
    items = handler.upstream(catalog, ledger, entity_id)
    current = fingerprint(items)
    stored = ledger.latest_summary(level, entity_id)

    if stored is not None and stored.upstream_fingerprint == current:
        logger.debug("%s %s unchanged, skipping", level, entity_id)
        return EntityResult(level=level, entity_id=entity_id, outcome="skipped", record=stored)

    try:
        text = await synthesizer.synthesize(level, entity_id, items)
        if not text or not text.strip():
            raise ValueError("empty summary")
    except Exception as e:
        logger.warning("Summary generation failed for %s %s: %s", level, entity_id, e)
        return EntityResult(level=level, entity_id=entity_id, outcome="errored", error=str(e))

    record = ledger.append_summary(level, entity_id, text, current)
    logger.info("%s %s summarized (version %d)", level, entity_id, record.version)
    return EntityResult(level=level, entity_id=entity_id, outcome="completed", record=record)


def _safe_report(report: ProgressReport | None, progress: LevelProgress, stats: LevelStats) -> None:
    if report is None:
        return
    try:
        report(progress, stats.model_copy())
    except Exception:
        logger.exception("Progress report failed for level %s", progress.level)


async def run_level(
    level: Level,
    *,
    config: RunConfig,
    catalog: EntityCatalog,
    ledger: SummaryLedger,
    synthesizer: Synthesizer,
    report: ProgressReport | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> LevelStats:
    """Process every eligible entity of one level, sequentially."""
    handler = handler_for(level)
    entity_ids = handler.eligible(catalog, config)
    total = len(entity_ids)
    stats = LevelStats()
    logger.info("Level %s: %d eligible entities", level, total)

    for index, entity_id in enumerate(entity_ids, start=1):
        if should_stop is not None and should_stop():
            raise RunCancelled(f"Run cancelled during level {level}")

        result = await process_entity(
            handler, entity_id,
            catalog=catalog, ledger=ledger, synthesizer=synthesizer,
        )
        if result.outcome == "completed":
            stats.completed += 1
        elif result.outcome == "skipped":
            stats.skipped += 1
        else:
            stats.errored += 1

        _safe_report(
            report,
            LevelProgress(level=level, current=index, total=total, message=f"{level} {index}/{total}"),
            stats,
        )

    _safe_report(
        report,
        LevelProgress(level=level, current=total, total=total, message="Completed"),
        stats,
    )
    logger.info(
        "Level %s done: completed=%d skipped=%d errored=%d",
        level, stats.completed, stats.skipped, stats.errored,
    )
    return stats
