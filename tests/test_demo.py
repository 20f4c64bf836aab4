from backend.demo import create_demo_data
from main import run_once
from rpg_chronicle.storage import Storage


def test_demo_world_shape(store):
    create_demo_data(store)
    assert store.list_entities("world") == ["ashmere"]
    assert store.children_of("settlement", "greyhaven") == ["chapel", "salt-tankard", "watch-house"]
    assert len(store.session_messages("orwen-1")) == 2


def test_demo_wipes_previous_summaries(store):
    create_demo_data(store)
    store.append_summary("npc", "gareth", "old", "f")
    create_demo_data(store)
    assert store.latest_summary("npc", "gareth") is None


def test_run_once_with_echo_llm(tmp_path, capsys):
    create_demo_data(Storage(tmp_path))
    assert run_once(tmp_path, min_messages=6, echo=True) == 0
    assert '"state": "completed"' in capsys.readouterr().out

    store = Storage(tmp_path)
    assert store.latest_summary("session", "gareth-1") is not None
    # orwen-1 has two messages, below the threshold.
    assert store.latest_summary("session", "orwen-1") is None
    assert store.latest_summary("world", "ashmere").version == 1
