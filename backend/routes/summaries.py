"""Summary run control, status polling, single-entity regeneration, history."""

from fastapi import APIRouter, HTTPException

from backend import services
from rpg_chronicle.config import update_config
from rpg_chronicle.controller import AlreadyRunning, GenerationBusy
from rpg_chronicle.models import LEVELS
from rpg_chronicle.triggers import EntityNotFound

from .models import StartRunBody

router = APIRouter()


@router.post("/summaries/run", status_code=202)
async def start_run(body: StartRunBody):
    """Start a summary run in the background."""
    config = body.to_config()
    try:
        services.controller().start(config)
    except (AlreadyRunning, GenerationBusy) as e:
        raise HTTPException(409, str(e))
    # Session summary triggers reuse the last chosen threshold.
    update_config(
        services.storage().config_path,
        {"min_session_messages": body.min_session_messages},
    )
    return {"status": "running"}


@router.get("/summaries/status")
async def run_status():
    """Current (or last finished) summary run state."""
    return services.controller().get_status()


@router.post("/summaries/cancel")
async def cancel_run():
    """Ask the active run to stop after the entity in progress."""
    return {"cancelled": services.controller().cancel()}


@router.get("/generation/busy")
async def generation_busy():
    """Whether the generation backend is reserved by a summary run."""
    return {"busy": services.dispatcher().is_generation_busy()}


@router.post("/summaries/{level}/{entity_id}/regenerate")
async def regenerate(level: str, entity_id: str):
    """Refresh one entity's summary if its upstream changed."""
    if level not in LEVELS:
        raise HTTPException(404, f"Unknown level '{level}'")
    try:
        return await services.dispatcher().regenerate(level, entity_id)
    except EntityNotFound as e:
        raise HTTPException(404, str(e))
    except GenerationBusy as e:
        raise HTTPException(409, str(e))


@router.get("/summaries/{level}/{entity_id}")
async def summary_history(level: str, entity_id: str):
    """All stored versions of an entity's summary, oldest first."""
    if level not in LEVELS:
        raise HTTPException(404, f"Unknown level '{level}'")
    return services.storage().summary_history(level, entity_id)
