"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from rpg_chronicle.models import ChatMessage, RunConfig


class EnabledLevels(BaseModel):
    session: bool = True
    npc: bool = True
    building: bool = True
    settlement: bool = True
    world: bool = True


class StartRunBody(BaseModel):
    min_session_messages: int = Field(ge=1)
    enabled_levels: EnabledLevels = Field(default_factory=EnabledLevels)

    def to_config(self) -> RunConfig:
        return RunConfig.from_flags(self.min_session_messages, self.enabled_levels.model_dump())


class CreateWorld(BaseModel):
    id: str
    name: str
    description: str = ""


class CreateSettlement(CreateWorld):
    world_id: str


class CreateBuilding(CreateWorld):
    settlement_id: str


class CreateNpc(CreateWorld):
    building_id: str


class CreateSession(BaseModel):
    id: str
    npc_id: str
    player_name: str = ""


class AppendMessages(BaseModel):
    messages: list[ChatMessage]


class CheckConnectionBody(BaseModel):
    provider_url: str
    api_key: str = ""
