"""Incremental summary pipeline.

Rebuilds the summary hierarchy bottom-up (session → npc → building →
settlement → world), regenerating an entity only when the fingerprint of its
upstream summaries differs from the one stored with its latest version.

  levels        per-level eligibility and upstream gathering (HANDLERS)
  processor     per-entity change detection + the generic level loop
  orchestrator  level ordering, disabled levels, overall progress mapping
"""

from .levels import HANDLERS, LevelHandler, handler_for  # noqa: F401
from .orchestrator import (  # noqa: F401
    ProgressSink,
    ProgressTracker,
    overall_progress,
    run_pipeline,
)
from .processor import RunCancelled, process_entity, run_level  # noqa: F401
