"""Create a small demo world for development/testing."""

import shutil

from rpg_chronicle.models import Building, ChatMessage, Npc, Session, Settlement, World
from rpg_chronicle.storage import Storage

DEMO_CONVERSATIONS: dict[str, list[tuple[str, str]]] = {
    "gareth": [
        ("player", "Evening, captain. Quiet night?"),
        ("npc", "Quiet until the bell tower rang at midnight. Nobody was up there."),
        ("player", "Who keeps the key to the tower?"),
        ("npc", "The priest, Orwen. He swears it never left his belt."),
        ("player", "I'll look into it."),
        ("npc", "Do. And keep it from the mayor, he'll call it an omen."),
    ],
    "mirela": [
        ("player", "A room for the night, please."),
        ("npc", "Two silver. The east room, the west one leaks."),
        ("player", "Heard anything about the bell tower?"),
        ("npc", "Only that Orwen drank here until past midnight."),
        ("player", "Then he wasn't at the tower."),
        ("npc", "Not unless he can be in two places. More ale?"),
    ],
    "orwen": [
        ("player", "Father, the tower bell rang last night."),
        ("npc", "Impossible. The rope was cut a month ago."),
    ],
}


def create_demo_data(store: Storage) -> None:
    """Wipe existing entities/summaries and create a fresh demo world."""
    for sub in ("entities", "summaries"):
        path = store.base_path / sub
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)

    store.save_world(World(id="ashmere", name="Ashmere", description="A cold coastal realm."))
    store.save_settlement(Settlement(id="greyhaven", name="Greyhaven", world_id="ashmere"))
    store.save_building(Building(id="watch-house", name="The Watch House", settlement_id="greyhaven"))
    store.save_building(Building(id="salt-tankard", name="The Salt Tankard", settlement_id="greyhaven"))
    store.save_building(Building(id="chapel", name="Chapel of the Tides", settlement_id="greyhaven"))
    store.save_npc(Npc(id="gareth", name="Gareth", building_id="watch-house",
                       description="Captain of the town watch."))
    store.save_npc(Npc(id="mirela", name="Mirela", building_id="salt-tankard",
                       description="Innkeeper with a long memory."))
    store.save_npc(Npc(id="orwen", name="Orwen", building_id="chapel",
                       description="The town priest."))

    for npc_id, lines in DEMO_CONVERSATIONS.items():
        store.save_session(Session(
            id=f"{npc_id}-1",
            npc_id=npc_id,
            player_name="Ilsa",
            messages=[ChatMessage(role=role, content=content) for role, content in lines],
        ))
