"""Run controller: the process-wide summary run state machine.

    idle → running → completed | error → running (next start) ...

At most one run is active at a time. `start()` checks and claims the running
state under a single lock, so two concurrent starts can never both succeed.
The run itself executes as a background asyncio task; `start()` returns as
soon as it is scheduled.

Terminal state (completed_at or error, plus stats) stays visible until the
next run starts. `get_status()` returns a copy and never waits for the run.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable

from rpg_chronicle.models import (
    LEVELS,
    LevelProgress,
    LevelStats,
    RunConfig,
    RunStatus,
    now_iso,
)
from rpg_chronicle.pipeline import RunCancelled, run_pipeline
from rpg_chronicle.storage import EntityCatalog, SummaryLedger
from rpg_chronicle.synthesis import Synthesizer

logger = logging.getLogger(__name__)


class AlreadyRunning(RuntimeError):
    """Raised by start() while another run is in progress."""


class GenerationBusy(RuntimeError):
    """Raised when the generation backend is reserved by another caller."""


class RunController:
    def __init__(
        self,
        *,
        catalog: EntityCatalog,
        ledger: SummaryLedger,
        synthesizer: Synthesizer,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.synthesizer = synthesizer
        self._lock = threading.Lock()
        self._status = RunStatus()
        self._cancel_requested = False
        self._task: asyncio.Task | None = None
        self._regenerations = 0
        self.on_finish: list[Callable[[RunStatus], None]] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_status(self) -> RunStatus:
        with self._lock:
            return self._status.model_copy(deep=True)

    def is_running(self) -> bool:
        with self._lock:
            return self._status.state == "running"

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self, config: RunConfig) -> asyncio.Task:
        """Claim the run slot and schedule the run. Must be called inside an event loop."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._status.state == "running":
                raise AlreadyRunning("A summary run is already in progress")
            if self._regenerations:
                raise GenerationBusy("A summary regeneration is in progress")
            self._status = RunStatus(
                state="running",
                config=config,
                started_at=now_iso(),
                stats={level: LevelStats() for level in LEVELS},
            )
            self._cancel_requested = False
            self._task = loop.create_task(self._execute(config))
        logger.info(
            "Summary run started (min_session_messages=%d, levels=%s)",
            config.min_session_messages,
            ",".join(level for level in LEVELS if config.is_enabled(level)),
        )
        return self._task

    async def run(self, config: RunConfig) -> RunStatus:
        """Start a run and wait for it to finish."""
        await self.start(config)
        return self.get_status()

    def cancel(self) -> bool:
        """Ask the active run to stop after the entity in progress."""
        with self._lock:
            if self._status.state != "running":
                return False
            self._cancel_requested = True
        logger.info("Summary run cancellation requested")
        return True

    def begin_regeneration(self) -> None:
        """Reserve the generation backend for one on-demand regeneration.

        A run cannot start until every reservation is released with
        end_regeneration().
        """
        with self._lock:
            if self._status.state == "running":
                raise GenerationBusy("A summary run is in progress; generation is unavailable")
            self._regenerations += 1

    def end_regeneration(self) -> None:
        with self._lock:
            self._regenerations = max(0, self._regenerations - 1)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _should_stop(self) -> bool:
        with self._lock:
            return self._cancel_requested

    def update(self, progress: LevelProgress, stats: LevelStats, overall: float) -> None:
        """ProgressSink: publish one progress report from the orchestrator."""
        with self._lock:
            status = self._status
            if status.state != "running":
                return
            status.current_level = progress.level
            status.level_progress = [
                p for p in status.level_progress if p.level != progress.level
            ] + [progress]
            status.overall_progress = max(status.overall_progress, overall)
            status.stats[progress.level] = stats

    async def _execute(self, config: RunConfig) -> None:
        try:
            results = await run_pipeline(
                config,
                catalog=self.catalog,
                ledger=self.ledger,
                synthesizer=self.synthesizer,
                sink=self,
                should_stop=self._should_stop,
            )
        except RunCancelled as e:
            logger.warning("Summary run cancelled: %s", e)
            self._finish(error="Run cancelled")
        except asyncio.CancelledError:
            self._finish(error="Run cancelled")
            raise
        except Exception as e:
            logger.exception("Summary run failed")
            self._finish(error=str(e) or type(e).__name__)
        else:
            self._finish(stats=results)

    def _finish(
        self,
        *,
        stats: dict | None = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            status = self._status
            if error is None:
                status.state = "completed"
                status.completed_at = now_iso()
                status.overall_progress = 100.0
                status.current_level = None
                status.stats = stats
            else:
                status.state = "error"
                status.error = error
            self._cancel_requested = False
            snapshot = status.model_copy(deep=True)
        logger.info("Summary run finished: state=%s", snapshot.state)
        for callback in self.on_finish:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("on_finish callback failed")
