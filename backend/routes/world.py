"""World catalog endpoints: worlds, settlements, buildings, NPCs, sessions."""

from fastapi import APIRouter, HTTPException

from backend import services
from rpg_chronicle.models import LEVELS, Building, Npc, Session, Settlement, World

from .models import (
    AppendMessages,
    CreateBuilding,
    CreateNpc,
    CreateSession,
    CreateSettlement,
    CreateWorld,
)

router = APIRouter()


def _require(level: str, entity_id: str) -> None:
    if services.storage().get_entity(level, entity_id) is None:
        raise HTTPException(404, f"{level.capitalize()} '{entity_id}' not found")


def _reject_existing(level: str, entity_id: str) -> None:
    if services.storage().get_entity(level, entity_id) is not None:
        raise HTTPException(409, f"{level.capitalize()} '{entity_id}' already exists")


@router.get("/entities/{level}")
async def list_entities(level: str):
    """List entity ids at one level."""
    if level not in LEVELS:
        raise HTTPException(404, f"Unknown level '{level}'")
    return services.storage().list_entities(level)


@router.get("/entities/{level}/{entity_id}")
async def get_entity(level: str, entity_id: str):
    """Get one entity with its latest summary."""
    if level not in LEVELS:
        raise HTTPException(404, f"Unknown level '{level}'")
    store = services.storage()
    entity = store.get_entity(level, entity_id)
    if entity is None:
        raise HTTPException(404, f"{level.capitalize()} '{entity_id}' not found")
    return {
        "entity": entity,
        "children": store.children_of(level, entity_id),
        "summary": store.latest_summary(level, entity_id),
    }


@router.post("/worlds", status_code=201)
async def create_world(body: CreateWorld):
    _reject_existing("world", body.id)
    world = World(**body.model_dump())
    services.storage().save_world(world)
    return world


@router.post("/settlements", status_code=201)
async def create_settlement(body: CreateSettlement):
    _reject_existing("settlement", body.id)
    _require("world", body.world_id)
    settlement = Settlement(**body.model_dump())
    services.storage().save_settlement(settlement)
    return settlement


@router.post("/buildings", status_code=201)
async def create_building(body: CreateBuilding):
    _reject_existing("building", body.id)
    _require("settlement", body.settlement_id)
    building = Building(**body.model_dump())
    services.storage().save_building(building)
    return building


@router.post("/npcs", status_code=201)
async def create_npc(body: CreateNpc):
    _reject_existing("npc", body.id)
    _require("building", body.building_id)
    npc = Npc(**body.model_dump())
    services.storage().save_npc(npc)
    return npc


@router.post("/sessions", status_code=201)
async def create_session(body: CreateSession):
    _reject_existing("session", body.id)
    _require("npc", body.npc_id)
    session = Session(**body.model_dump())
    services.storage().save_session(session)
    return session


@router.post("/sessions/{session_id}/messages")
async def append_messages(session_id: str, body: AppendMessages):
    """Append chat lines to a session."""
    _require("session", session_id)
    return services.storage().append_session_messages(session_id, body.messages)
