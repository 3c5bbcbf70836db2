"""
Tests for the config store.

These tests verify:
- Loading tolerates missing, empty and malformed files
- Legacy camelCase keys are normalized on load
- Mutations preserve unknown keys and never drive delay_counter negative
- Mutations apply in submission order and disk mirrors memory
- Persistence failures are logged without rolling back memory
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from unittest import mock

import pytest

from conftest import read_json
from reboot_notifier.models.config import DEFAULT_MESSAGE, ConfigDocument, RebootConfig
from reboot_notifier.persistence import config_store as config_store_module
from reboot_notifier.persistence.atomic_write import RenameError


class TestLoad:
    """Tests for load()."""

    def test_missing_file_creates_empty_object(self, make_store, config_file):
        store = make_store()
        assert len(store.snapshot()) == 0
        assert read_json(config_file) == {}

    def test_empty_file(self, make_store, config_file):
        store = make_store(raw="")
        assert len(store.snapshot()) == 0
        assert read_json(config_file) == {}

    def test_invalid_json(self, make_store, config_file, caplog):
        with caplog.at_level(logging.WARNING):
            store = make_store(raw="{not json")
        assert len(store.snapshot()) == 0
        assert read_json(config_file) == {}
        assert "Discarding unusable config" in caplog.text

    def test_non_object_root(self, make_store, config_file):
        store = make_store(raw="[1, 2, 3]")
        assert len(store.snapshot()) == 0
        assert read_json(config_file) == {}

    def test_loads_existing_document(self, make_store):
        store = make_store({"delay_counter": 3, "reboot_config": "Graceful Reboot"})
        assert store.delay_counter == 3
        assert store.reboot_config == RebootConfig.GRACEFUL

    def test_reload_discards_unpersisted_changes(self, make_store):
        store = make_store({"delay_counter": 2})
        with mock.patch.object(
            config_store_module, "write_json_atomic", side_effect=RenameError("boom")
        ):
            store.apply_delay(1800).result()
        assert store.delay_counter == 1

        store.reload()
        assert store.delay_counter == 2


class TestLegacyKeys:
    """Tests for camelCase → snake_case normalization."""

    def test_canonical_value_wins(self, make_store, config_file):
        store = make_store({"customMessage": "x", "custom_message": "y"})
        assert store.custom_message == "y"
        assert not store.has_key("customMessage")
        assert read_json(config_file) == {"custom_message": "y"}

    def test_legacy_value_moves_when_canonical_missing(self, make_store, config_file):
        make_store({"delayCounter": 4, "rebootNow": True, "scheduledTime": "2026-01-01 00:00:00"})
        assert read_json(config_file) == {
            "delay_counter": 4,
            "reboot_now": True,
            "scheduled_time": "2026-01-01 00:00:00",
        }

    def test_legacy_keys_never_reintroduced(self, make_store, config_file):
        store = make_store({"rebootConfig": "Graceful Reboot"})
        store.set_reboot_now().result()
        data = read_json(config_file)
        assert "rebootConfig" not in data
        assert data["reboot_config"] == "Graceful Reboot"


class TestApplyDelay:
    """Tests for apply_delay()."""

    def test_empty_document(self, make_store, config_file):
        """Counter absent stays absent; schedule and flags are set."""
        store = make_store({})
        now = datetime(2026, 3, 1, 12, 0, 0)
        store.apply_delay(1800, now=now).result()

        data = read_json(config_file)
        assert "delay_counter" not in data
        assert store.delay_counter == 0
        assert data["scheduled_time"] == "2026-03-01 12:30:00"
        assert data["task_scheduled"] is False
        assert data["reboot_now"] is False

    def test_scheduled_time_defaults_to_now(self, make_store):
        store = make_store({})
        before = datetime.now().replace(microsecond=0)
        store.apply_delay(5400).result()
        after = datetime.now()

        scheduled = datetime.strptime(store.scheduled_time, "%Y-%m-%d %H:%M:%S")
        assert before + timedelta(seconds=5400) <= scheduled <= after + timedelta(seconds=5400)

    def test_counter_stops_at_zero(self, make_store, config_file):
        store = make_store({"delay_counter": 2})
        store.apply_delay(1800).result()
        store.apply_delay(1800).result()
        assert store.delay_counter == 0

        store.apply_delay(1800).result()
        assert store.delay_counter == 0
        assert read_json(config_file)["delay_counter"] == 0

    @pytest.mark.parametrize("start,calls", [(0, 3), (1, 1), (3, 5), (5, 2)])
    def test_counter_never_negative(self, make_store, start, calls):
        store = make_store({"delay_counter": start})
        for _ in range(calls):
            store.apply_delay(60)
        store.flush()
        assert store.delay_counter == max(0, start - calls)

    def test_clears_reboot_now(self, make_store):
        store = make_store({"reboot_now": True, "task_scheduled": True})
        store.apply_delay(60).result()
        assert store.reboot_now_flag is False
        assert store.task_scheduled is False


class TestOtherMutations:
    """Tests for set_reboot_now() and clear_scheduled_status()."""

    def test_set_reboot_now(self, make_store, config_file):
        store = make_store({})
        store.set_reboot_now().result()
        assert store.reboot_now_flag is True
        assert read_json(config_file) == {"reboot_now": True}

    def test_clear_scheduled_status(self, make_store, config_file):
        store = make_store({"scheduled_time": "2026-01-01 10:00:00", "task_scheduled": True})
        store.clear_scheduled_status().result()
        assert read_json(config_file) == {"scheduled_time": "", "task_scheduled": False}

    def test_unknown_keys_preserved(self, make_store, config_file):
        extra = {"site_id": "HQ-7", "nested": {"a": [1, 2]}, "ratio": 0.5, "empty": None}
        store = make_store({"delay_counter": 1, **extra})

        store.apply_delay(1800).result()
        store.set_reboot_now().result()
        store.clear_scheduled_status().result()

        data = read_json(config_file)
        for key, value in extra.items():
            assert data[key] == value


class TestOrderingAndConsistency:
    """Mutations apply in order and the file matches memory afterwards."""

    def test_fire_and_forget_mutations_apply_in_order(self, make_store, config_file):
        store = make_store({"delay_counter": 3})
        store.apply_delay(60)
        store.set_reboot_now()
        store.clear_scheduled_status()
        store.flush()

        data = read_json(config_file)
        assert data["delay_counter"] == 2
        # set_reboot_now ran after apply_delay reset it
        assert data["reboot_now"] is True
        assert data["scheduled_time"] == ""
        assert data == store.snapshot().to_dict()

    def test_concurrent_readers_during_writes(self, make_store):
        store = make_store({"delay_counter": 50})
        errors = []
        stop = threading.Event()

        def reader():
            try:
                while not stop.is_set():
                    assert 0 <= store.delay_counter <= 50
                    store.snapshot()
            except AssertionError as e:
                errors.append(e)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        try:
            for _ in range(60):
                store.apply_delay(60)
            store.flush()
        finally:
            stop.set()
            for t in readers:
                t.join()

        assert errors == []
        assert store.delay_counter == 0

    def test_snapshot_is_independent_copy(self, make_store):
        store = make_store({"nested": {"a": 1}})
        snap = store.snapshot()
        snap.set("nested", {"a": 2})
        assert store.get("nested") == {"a": 1}


class TestPersistenceFailure:
    """Disk failures are logged, memory stays authoritative."""

    def test_failed_write_keeps_memory(self, make_store, caplog):
        store = make_store({"delay_counter": 2})
        with mock.patch.object(
            config_store_module, "write_json_atomic", side_effect=RenameError("rename failed")
        ):
            with caplog.at_level(logging.ERROR):
                persisted = store.apply_delay(1800).result()

        assert persisted is False
        assert store.delay_counter == 1
        assert "Failed writing config" in caplog.text

    def test_directory_in_place_of_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.mkdir()
        store = config_store_module.ConfigStore(path)
        try:
            assert store.apply_delay(60).result() is False
            assert store.scheduled_time != ""
        finally:
            store.close()


class TestTypedAccessors:
    """Mismatched types decode to defaults; raw values still round-trip."""

    def test_wrong_types_fall_back(self, make_store, config_file):
        store = make_store({
            "delay_counter": "3",
            "reboot_now": "yes",
            "task_scheduled": 1,
            "custom_message": 42,
        })
        assert store.delay_counter == 0
        assert store.reboot_now_flag is False
        assert store.task_scheduled is False
        assert store.custom_message == DEFAULT_MESSAGE

        store.clear_scheduled_status().result()
        assert read_json(config_file)["delay_counter"] == "3"

    def test_bool_is_not_a_counter(self):
        assert ConfigDocument({"delay_counter": True}).delay_counter == 0

    def test_blank_message_uses_default(self):
        assert ConfigDocument({"custom_message": "   "}).custom_message == DEFAULT_MESSAGE
        assert ConfigDocument({"custom_message": " Patch day "}).custom_message == "Patch day"

    @pytest.mark.parametrize("raw,expected", [
        ("Graceful Reboot", RebootConfig.GRACEFUL),
        ("  Graceful Reboot\n", RebootConfig.GRACEFUL),
        ("Force reboot after patch deployment", RebootConfig.FORCE_AFTER_PATCH),
        ("graceful", RebootConfig.OTHER),
        (None, RebootConfig.OTHER),
        (5, RebootConfig.OTHER),
    ])
    def test_reboot_config_mapping(self, raw, expected):
        assert RebootConfig.from_raw(raw) == expected


class TestMutationFailure:
    """A mutation that raises is logged and leaves memory and disk as they were."""

    def test_unschedulable_delay_changes_nothing(self, make_store, config_file, caplog):
        store = make_store({"delay_counter": 2, "scheduled_time": "2026-01-01 00:00:00", "site": "HQ"})

        with caplog.at_level(logging.ERROR):
            persisted = store.apply_delay(10 ** 12).result()

        assert persisted is False
        assert store.delay_counter == 2
        assert store.scheduled_time == "2026-01-01 00:00:00"
        assert read_json(config_file) == {
            "delay_counter": 2,
            "scheduled_time": "2026-01-01 00:00:00",
            "site": "HQ",
        }
        assert "Config mutation failed: delay 1000000000000s" in caplog.text

    def test_later_mutations_still_apply(self, make_store):
        store = make_store({"delay_counter": 2})
        store.apply_delay(10 ** 12)
        store.apply_delay(1800)
        store.flush()
        assert store.delay_counter == 1

    def test_document_overflow_is_all_or_nothing(self):
        doc = ConfigDocument({"delay_counter": 3})
        with pytest.raises(OverflowError):
            doc.apply_delay(10 ** 12)
        assert doc.to_dict() == {"delay_counter": 3}
