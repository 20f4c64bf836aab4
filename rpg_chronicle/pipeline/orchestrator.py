"""Pipeline orchestrator: runs the five levels of one summary run.

Run flow:
  1. session     summaries from chat transcripts (message-count threshold)
  2. npc         from the NPC's session summaries
  3. building    from the summaries of the NPCs inside
  4. settlement  from its buildings' summaries
  5. world       from its settlements' summaries

Levels run strictly in this order: each one fingerprints the summaries the
previous level just wrote. A disabled level is not processed, but the levels
above it still aggregate whatever summaries are stored for it.

Every level owns an equal band of the overall 0–100 progress scale, so level
k (0-based) spans [20k, 20k + 20]. Disabled levels complete their band
immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from rpg_chronicle.models import LEVELS, Level, LevelProgress, LevelStats, RunConfig
from rpg_chronicle.storage import EntityCatalog, SummaryLedger
from rpg_chronicle.synthesis import Synthesizer

from .processor import run_level

logger = logging.getLogger(__name__)

BAND = 100 / len(LEVELS)


class ProgressSink(Protocol):
    def update(self, progress: LevelProgress, stats: LevelStats, overall: float) -> None: ...


def overall_progress(level_index: int, local_percent: float) -> float:
    """Map level-local progress (0–100) onto the run-wide 0–100 scale."""
    local = min(100.0, max(0.0, local_percent))
    return min(100.0, level_index * BAND + (local / 100) * BAND)


class ProgressTracker:
    """Keeps overall progress inside [0, 100] and never lets it go backwards."""

    def __init__(self) -> None:
        self.value = 0.0

    def advance(self, candidate: float) -> float:
        self.value = max(self.value, min(100.0, candidate))
        return self.value


async def run_pipeline(
    config: RunConfig,
    *,
    catalog: EntityCatalog,
    ledger: SummaryLedger,
    synthesizer: Synthesizer,
    sink: ProgressSink | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> dict[Level, LevelStats]:
    """Run every enabled level in order and return per-level stats."""
    tracker = ProgressTracker()
    results: dict[Level, LevelStats] = {level: LevelStats() for level in LEVELS}

    def _publish(index: int, progress: LevelProgress, stats: LevelStats) -> None:
        overall = tracker.advance(overall_progress(index, progress.percent))
        if sink is not None:
            sink.update(progress, stats, overall)

    for index, level in enumerate(LEVELS):
        if not config.is_enabled(level):
            logger.info("Level %s disabled, skipping", level)
            _publish(index, LevelProgress(level=level, current=0, total=0, message="Disabled"), LevelStats())
            continue

        logger.info("Starting level %s (%d/%d)", level, index + 1, len(LEVELS))
        results[level] = await run_level(
            level,
            config=config,
            catalog=catalog,
            ledger=ledger,
            synthesizer=synthesizer,
            report=lambda progress, stats, index=index: _publish(index, progress, stats),
            should_stop=should_stop,
        )

    return results
