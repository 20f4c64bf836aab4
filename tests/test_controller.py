"""Tests for the run controller state machine."""

import asyncio

import pytest

from rpg_chronicle.controller import AlreadyRunning, GenerationBusy, RunController
from rpg_chronicle.models import LEVELS, RunConfig


class GatedSynthesizer:
    """Blocks every call until `gate` is set."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.calls = 0

    async def synthesize(self, level, entity_id, items):
        self.calls += 1
        self.entered.set()
        await self.gate.wait()
        return f"{level}:{entity_id}"


@pytest.fixture
def controller(world, synth) -> RunController:
    return RunController(catalog=world, ledger=world, synthesizer=synth)


def test_initial_status_is_idle(controller):
    status = controller.get_status()
    assert status.state == "idle"
    assert status.overall_progress == 0
    assert not controller.is_running()


async def test_run_completes_with_stats(controller):
    status = await controller.run(RunConfig(min_session_messages=10))
    assert status.state == "completed"
    assert status.overall_progress == 100
    assert status.completed_at is not None
    assert status.error is None
    assert status.stats["session"].completed == 2
    assert status.stats["world"].completed == 1
    assert status.config.min_session_messages == 10


async def test_second_run_skips_everything(controller):
    config = RunConfig(min_session_messages=10)
    await controller.run(config)
    status = await controller.run(config)
    assert status.stats["session"].completed == 0
    assert status.stats["session"].skipped == 2
    assert status.stats["npc"].skipped == 2


async def test_start_returns_immediately(world):
    synth = GatedSynthesizer()
    controller = RunController(catalog=world, ledger=world, synthesizer=synth)
    task = controller.start(RunConfig(min_session_messages=10))
    assert controller.get_status().state == "running"
    assert not task.done()
    synth.gate.set()
    await task
    assert controller.get_status().state == "completed"


async def test_start_while_running_is_rejected(world):
    synth = GatedSynthesizer()
    controller = RunController(catalog=world, ledger=world, synthesizer=synth)
    task = controller.start(RunConfig(min_session_messages=10))
    await synth.entered.wait()
    before = controller.get_status()

    with pytest.raises(AlreadyRunning):
        controller.start(RunConfig(min_session_messages=1, enabled_levels=frozenset({"world"})))

    after = controller.get_status()
    assert after.config == before.config
    assert after.started_at == before.started_at
    assert after.stats == before.stats

    synth.gate.set()
    await task


async def test_status_while_running_shows_progress(world):
    synth = GatedSynthesizer()
    controller = RunController(catalog=world, ledger=world, synthesizer=synth)
    task = controller.start(RunConfig(min_session_messages=10))
    await synth.entered.wait()
    status = controller.get_status()
    assert status.state == "running"
    assert status.started_at is not None
    assert status.completed_at is None
    assert set(status.stats) == set(LEVELS)
    synth.gate.set()
    await task
    status = controller.get_status()
    assert status.current_level is None
    assert {p.level for p in status.level_progress} == set(LEVELS)


async def test_status_is_a_snapshot(controller):
    await controller.run(RunConfig(min_session_messages=10))
    snapshot = controller.get_status()
    snapshot.stats["session"].completed = 99
    assert controller.get_status().stats["session"].completed == 2


async def test_run_fatal_error_releases_lock(world, synth):
    class BrokenCatalog:
        def __getattr__(self, name):
            return getattr(world, name)

        def list_entities(self, level):
            if level == "npc":
                raise ConnectionError("catalog offline")
            return world.list_entities(level)

    controller = RunController(catalog=BrokenCatalog(), ledger=world, synthesizer=synth)
    status = await controller.run(RunConfig(min_session_messages=10))
    assert status.state == "error"
    assert status.error == "catalog offline"
    assert status.stats["session"].completed == 2
    assert not controller.is_running()

    # The next run can start.
    controller.catalog = world
    status = await controller.run(RunConfig(min_session_messages=10))
    assert status.state == "completed"
    assert status.error is None


async def test_cancel_stops_between_entities(world):
    synth = GatedSynthesizer()
    controller = RunController(catalog=world, ledger=world, synthesizer=synth)
    task = controller.start(RunConfig(min_session_messages=10))
    await synth.entered.wait()
    assert controller.cancel() is True
    synth.gate.set()
    await task

    status = controller.get_status()
    assert status.state == "error"
    assert status.error == "Run cancelled"
    assert synth.calls == 1
    # The entity in progress still finished and was stored.
    assert world.latest_summary("session", "s-b") is not None


def test_cancel_when_idle(controller):
    assert controller.cancel() is False


async def test_on_finish_callbacks(controller):
    seen = []
    controller.on_finish.append(lambda status: seen.append(status.state))
    await controller.run(RunConfig(min_session_messages=10))
    assert seen == ["completed"]


async def test_new_run_resets_previous_error(world, synth):
    controller = RunController(catalog=world, ledger=world, synthesizer=synth)
    await controller.run(RunConfig(min_session_messages=10))
    task = controller.start(RunConfig(min_session_messages=10))
    status = controller.get_status()
    assert status.state == "running"
    assert status.completed_at is None
    assert all(s.completed == s.skipped == 0 for s in status.stats.values())
    await task


async def test_start_refused_during_regeneration(controller):
    controller.begin_regeneration()
    with pytest.raises(GenerationBusy):
        controller.start(RunConfig(min_session_messages=10))
    controller.end_regeneration()
    status = await controller.run(RunConfig(min_session_messages=10))
    assert status.state == "completed"


async def test_regeneration_refused_during_run(world):
    synth = GatedSynthesizer()
    controller = RunController(catalog=world, ledger=world, synthesizer=synth)
    task = controller.start(RunConfig(min_session_messages=10))
    await synth.entered.wait()
    with pytest.raises(GenerationBusy):
        controller.begin_regeneration()
    synth.gate.set()
    await task
