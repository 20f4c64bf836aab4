"""FastAPI API endpoints under /api.

Endpoint groups: settings + health, world catalog (entities and session
messages), summaries (start/status/cancel a run, regenerate one entity,
version history).
"""

from fastapi import APIRouter

from .settings import router as settings_router
from .summaries import router as summaries_router
from .world import router as world_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(world_router)
router.include_router(summaries_router)
