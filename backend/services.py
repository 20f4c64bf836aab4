"""Process-wide service wiring for the API: storage, run controller, triggers.

init_services() must be called once (create_app does it) before any route
touches the getters below.
"""

from pathlib import Path

from rpg_chronicle.config import load_config
from rpg_chronicle.controller import RunController
from rpg_chronicle.llm import HttpLLM, LLMError
from rpg_chronicle.models import Level, UpstreamItem
from rpg_chronicle.storage import Storage
from rpg_chronicle.synthesis import LlmSynthesizer, SynthesisError, Synthesizer
from rpg_chronicle.triggers import TriggerDispatcher

_storage: Storage | None = None
_controller: RunController | None = None
_dispatcher: TriggerDispatcher | None = None


class ConfiguredSynthesizer:
    """Synthesizer that reads the LLM connection and templates from config.json
    on every call, so settings changes apply to the next entity."""

    def __init__(self, store: Storage) -> None:
        self._storage = store

    async def synthesize(self, level: Level, entity_id: str, items: list[UpstreamItem]) -> str:
        config = load_config(self._storage.config_path)
        try:
            llm = HttpLLM.from_connection(config["llm_connection"])
        except LLMError as e:
            raise SynthesisError(str(e)) from e
        synthesizer = LlmSynthesizer(llm, self._storage, config["prompts"])
        return await synthesizer.synthesize(level, entity_id, items)


def init_services(data_dir: Path, synthesizer: Synthesizer | None = None) -> None:
    global _storage, _controller, _dispatcher
    data_dir.mkdir(parents=True, exist_ok=True)
    _storage = Storage(data_dir)
    _controller = RunController(
        catalog=_storage,
        ledger=_storage,
        synthesizer=synthesizer or ConfiguredSynthesizer(_storage),
    )
    _dispatcher = TriggerDispatcher(_controller)


def storage() -> Storage:
    assert _storage is not None, "Call init_services() before using the API"
    return _storage


def controller() -> RunController:
    assert _controller is not None, "Call init_services() before using the API"
    return _controller


def dispatcher() -> TriggerDispatcher:
    assert _dispatcher is not None, "Call init_services() before using the API"
    return _dispatcher
