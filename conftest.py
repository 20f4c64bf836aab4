import os
from pathlib import Path

import pytest

# backend.app builds a default app at import time; keep it out of ./data.
os.environ.setdefault("DATA_DIR", str(Path("data-tests").resolve()))

from rpg_chronicle.models import Building, ChatMessage, Npc, Session, Settlement, World  # noqa: E402
from rpg_chronicle.storage import Storage  # noqa: E402


class StubSynthesizer:
    """Deterministic synthesizer for tests.

    Returns "<level>:<entity_id>#<n>" where n counts calls for that entity.
    Entities listed in `fail` raise instead. Every call is recorded.
    """

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = set(fail or ())
        self.calls: list[tuple[str, str, list]] = []

    async def synthesize(self, level, entity_id, items):
        self.calls.append((level, entity_id, list(items)))
        if entity_id in self.fail:
            raise RuntimeError(f"boom: {entity_id}")
        n = sum(1 for _, eid, _ in self.calls if eid == entity_id)
        return f"{level}:{entity_id}#{n}"

    def called(self, level: str | None = None) -> list[str]:
        return [eid for lvl, eid, _ in self.calls if level is None or lvl == level]


def _messages(count: int, prefix: str = "line") -> list[ChatMessage]:
    return [
        ChatMessage(role="player" if i % 2 == 0 else "npc", content=f"{prefix} {i}")
        for i in range(count)
    ]


@pytest.fixture
def store(tmp_path: Path) -> Storage:
    return Storage(tmp_path)


@pytest.fixture
def synth() -> StubSynthesizer:
    return StubSynthesizer()


@pytest.fixture
def make_synth():
    return StubSynthesizer


@pytest.fixture
def world(store: Storage) -> Storage:
    """A one-world hierarchy.

    ashmere / greyhaven / {watch-house: gareth, salt-tankard: mirela}
    Sessions: s-a (5 msgs, gareth), s-b (12 msgs, gareth), s-c (20 msgs, mirela)
    """
    store.save_world(World(id="ashmere", name="Ashmere"))
    store.save_settlement(Settlement(id="greyhaven", name="Greyhaven", world_id="ashmere"))
    store.save_building(Building(id="watch-house", name="Watch House", settlement_id="greyhaven"))
    store.save_building(Building(id="salt-tankard", name="Salt Tankard", settlement_id="greyhaven"))
    store.save_npc(Npc(id="gareth", name="Gareth", building_id="watch-house"))
    store.save_npc(Npc(id="mirela", name="Mirela", building_id="salt-tankard"))
    store.save_session(Session(id="s-a", npc_id="gareth", messages=_messages(5, "a")))
    store.save_session(Session(id="s-b", npc_id="gareth", messages=_messages(12, "b")))
    store.save_session(Session(id="s-c", npc_id="mirela", messages=_messages(20, "c")))
    return store


@pytest.fixture
def make_messages():
    return _messages
