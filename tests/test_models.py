"""Tests for rpg_chronicle.models."""

import pytest
from pydantic import ValidationError

from rpg_chronicle.models import (
    LEVELS,
    ChatMessage,
    LevelProgress,
    RunConfig,
    RunStatus,
    SummaryRecord,
    UpstreamItem,
    child_level,
    parent_level,
)


class TestLevels:
    def test_fixed_order(self) -> None:
        assert LEVELS == ("session", "npc", "building", "settlement", "world")

    def test_child_level(self) -> None:
        assert child_level("session") is None
        assert child_level("npc") == "session"
        assert child_level("world") == "settlement"

    def test_parent_level(self) -> None:
        assert parent_level("session") == "npc"
        assert parent_level("world") is None


class TestRunConfig:
    def test_defaults_enable_everything(self) -> None:
        config = RunConfig()
        assert config.min_session_messages == 10
        assert all(config.is_enabled(level) for level in LEVELS)

    def test_from_flags(self) -> None:
        config = RunConfig.from_flags(3, {"session": True, "npc": False, "world": True})
        assert config.min_session_messages == 3
        assert config.enabled_levels == frozenset({"session", "world"})

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(min_session_messages=0)

    def test_frozen(self) -> None:
        config = RunConfig()
        with pytest.raises(ValidationError):
            config.min_session_messages = 5

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(enabled_levels=frozenset({"galaxy"}))


class TestSummaryRecord:
    def test_version_starts_at_one(self) -> None:
        with pytest.raises(ValidationError):
            SummaryRecord(entity_id="x", level="npc", text="t", upstream_fingerprint="f", version=0)

    def test_created_at_defaults(self) -> None:
        r = SummaryRecord(entity_id="x", level="npc", text="t", upstream_fingerprint="f", version=1)
        assert r.created_at

    def test_upstream_item_from_record(self) -> None:
        r = SummaryRecord(entity_id="gareth", level="npc", text="Loyal.", upstream_fingerprint="f", version=4)
        item = UpstreamItem.from_record(r)
        assert (item.entity_id, item.version, item.text) == ("gareth", 4, "Loyal.")


class TestLevelProgress:
    def test_percent(self) -> None:
        assert LevelProgress(level="npc", current=1, total=4).percent == 25.0

    def test_empty_level_is_complete(self) -> None:
        assert LevelProgress(level="npc", current=0, total=0).percent == 100.0


class TestRunStatus:
    def test_idle_defaults(self) -> None:
        status = RunStatus()
        assert status.state == "idle"
        assert status.overall_progress == 0.0
        assert set(status.stats) == set(LEVELS)

    def test_progress_bounds(self) -> None:
        with pytest.raises(ValidationError):
            RunStatus(overall_progress=101)


class TestChatMessage:
    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChatMessage(role="narrator", content="x")
