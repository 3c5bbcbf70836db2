"""
Tests for the action log.

These tests verify:
- History lines are appended in call order, even when calls are not awaited
- The snapshot file always holds only the latest action
- clear() / clear_now() reset the snapshot to {}
- Write failures are logged, not raised
"""

from __future__ import annotations

import logging

from conftest import read_json, read_lines
from reboot_notifier.models.action import ActionName, CountdownSnapshot
from reboot_notifier.persistence.action_log import ActionLog


class TestRecord:
    """Tests for record()."""

    def test_three_quick_records_keep_order(self, action_log, history_file):
        """Calls issued before any I/O completes land in call order."""
        action_log.record(ActionName.INITIAL, CountdownSnapshot(600))
        action_log.record(ActionName.delay(1800), CountdownSnapshot(2400))
        action_log.record(ActionName.REBOOT_NOW, CountdownSnapshot(2399))
        action_log.flush()

        lines = read_lines(history_file)
        assert [line["action"] for line in lines] == ["initial", "delay_1800", "reboot_now"]
        assert [line["remainingSeconds"] for line in lines] == [600, 2400, 2399]

    def test_history_line_shape(self, action_log, history_file):
        action_log.record(ActionName.REBOOT_NOW, CountdownSnapshot(0)).result()
        (line,) = read_lines(history_file)
        assert set(line) == {"timestamp", "action", "remainingSeconds"}
        assert line["timestamp"].endswith("Z")
        assert history_file.read_text(encoding="utf-8").endswith("\n")

    def test_snapshot_holds_latest_action(self, action_log, state_file):
        action_log.record(ActionName.delay(1800), CountdownSnapshot(1805))
        action_log.record(ActionName.REBOOT_NOW, CountdownSnapshot(1700))
        action_log.flush()

        data = read_json(state_file)
        assert set(data) == {"timestamp", "action", "remaining_seconds"}
        assert data["action"] == "reboot_now"
        assert data["remaining_seconds"] == 1700

    def test_appends_to_existing_history(self, action_log, history_file):
        history_file.parent.mkdir(parents=True, exist_ok=True)
        prior = '{"timestamp":"2026-01-01T00:00:00Z","action":"initial","remainingSeconds":600}\n'
        history_file.write_text(prior, encoding="utf-8")

        action_log.record(ActionName.REBOOT_NOW, CountdownSnapshot(10)).result()

        text = history_file.read_text(encoding="utf-8")
        assert text.startswith(prior)
        assert len(text.splitlines()) == 2

    def test_write_snapshot_skips_history(self, action_log, state_file, history_file):
        action_log.write_snapshot(ActionName.INITIAL, CountdownSnapshot(600)).result()
        assert read_json(state_file)["action"] == "initial"
        assert not history_file.exists()


class TestClear:
    """Tests for clearing the snapshot."""

    def test_clear_after_record(self, action_log, state_file):
        action_log.record(ActionName.REBOOT_NOW, CountdownSnapshot(5))
        action_log.clear()
        action_log.flush()
        assert read_json(state_file) == {}
        assert action_log.read_snapshot() is None

    def test_clear_now_is_synchronous(self, action_log, state_file):
        assert action_log.clear_now() is True
        assert read_json(state_file) == {}

    def test_clear_keeps_history(self, action_log, history_file):
        action_log.record(ActionName.REBOOT_NOW, CountdownSnapshot(5))
        action_log.clear()
        action_log.flush()
        assert len(read_lines(history_file)) == 1


class TestReadHistory:
    """Tests for read_history()."""

    def test_skips_truncated_last_line(self, action_log, history_file, caplog):
        action_log.record(ActionName.INITIAL, CountdownSnapshot(600))
        action_log.record(ActionName.delay(1800), CountdownSnapshot(2400))
        action_log.flush()
        with history_file.open("a", encoding="utf-8") as f:
            f.write('{"timestamp":"2026-01-01T00:0')

        with caplog.at_level(logging.WARNING):
            entries = action_log.read_history()

        assert [e.action for e in entries] == ["initial", "delay_1800"]
        assert "Skipping unreadable history line 3" in caplog.text

    def test_limit_returns_tail(self, action_log):
        for remaining in (3, 2, 1):
            action_log.record(ActionName.INITIAL, CountdownSnapshot(remaining))
        action_log.flush()

        entries = action_log.read_history(limit=2)
        assert [e.remaining_seconds for e in entries] == [2, 1]

    def test_missing_file(self, action_log):
        assert action_log.read_history() == []


class TestWriteFailures:
    """Failures never propagate to the caller."""

    def test_state_path_is_directory(self, tmp_path, history_file, caplog):
        state_dir = tmp_path / "state-is-a-dir"
        state_dir.mkdir()
        log = ActionLog(state_dir, history_file)
        try:
            with caplog.at_level(logging.WARNING):
                log.record(ActionName.REBOOT_NOW, CountdownSnapshot(1)).result()
                assert log.clear_now() is False
        finally:
            log.close()

        assert state_dir.is_dir()
        assert len(read_lines(history_file)) == 1
        assert "Failed to write state snapshot" in caplog.text

    def test_history_path_is_directory(self, tmp_path, state_file, caplog):
        history_dir = tmp_path / "history-is-a-dir"
        history_dir.mkdir()
        log = ActionLog(state_file, history_dir)
        try:
            with caplog.at_level(logging.WARNING):
                log.record(ActionName.REBOOT_NOW, CountdownSnapshot(1)).result()
        finally:
            log.close()

        assert read_json(state_file)["action"] == "reboot_now"
        assert "Failed to append history entry" in caplog.text
