"""
Unit tests for the capture loop and session lifecycle.
"""
import json
import logging
import signal
import threading
from pathlib import Path

import pytest

from src.core.controller import SessionController
from src.core.errors import PersistenceError, SessionStateError
from src.core.metadata import MetadataPersister
from src.core.session import Session, SessionState
from src.core.store import CaptureStore
from tests.unit.fakes import SESSION_START, FakeClock, FakeDisplays, FakeStopEvent


def build_controller(tmp_path, monitors, displays, clock, stop_at=None, interval=30, **kwargs):
    session = Session.create(tmp_path, clock.now(), monitors_config=",".join(str(m + 1) for m in monitors),
                             resolved_monitors=monitors, capture_interval=interval)
    store = CaptureStore(displays, session.session_dir, multi_monitor=session.multi_monitor)
    event = FakeStopEvent(clock, stop_at=stop_at)
    return SessionController(session, store, clock=clock, stop_event=event, **kwargs)


class FailingPersister(MetadataPersister):
    def __init__(self, error):
        super().__init__()
        self.error = error
        self.calls = 0

    def save(self, session):
        self.calls += 1
        raise self.error


class TestCaptureLoop:
    """Tests for the periodic capture loop."""

    def test_interrupted_after_65_seconds(self, tmp_path):
        """Test primary-only capture on two displays, interrupted at 65s: 3 ticks at 0/30/60."""
        clock = FakeClock()
        displays = FakeDisplays(sizes=[(64, 48), (80, 60)], clock=clock)
        controller = build_controller(tmp_path, [0], displays, clock, stop_at=65)

        session = controller.start("Review pull requests")

        assert controller.tick_count == 3
        assert len(session.records) == 3
        assert [r.monitor_index for r in session.records] == [1, 1, 1]
        assert [r.relative_seconds for r in session.records] == pytest.approx([0, 30, 60])
        assert all(r.resolution == "64x48" for r in session.records)
        assert displays.calls == [0, 0, 0]
        assert session.state is SessionState.STOPPED
        assert session.duration_seconds == pytest.approx(65)

    def test_failed_display_is_skipped(self, tmp_path, caplog):
        """Test that a failing display yields fewer records and a warning, not an abort."""
        clock = FakeClock()
        displays = FakeDisplays(failing={1}, clock=clock)
        controller = build_controller(tmp_path, [0, 1], displays, clock, stop_at=10)

        with caplog.at_level(logging.WARNING):
            session = controller.start("Two monitors")

        assert controller.tick_count == 1
        assert [r.monitor_index for r in session.records] == [1]
        assert controller.failed_captures == 1
        assert "Failed to capture monitor 2" in caplog.text
        assert session.state is SessionState.STOPPED

    def test_loop_continues_after_failures(self, tmp_path):
        """Test that capture failures on every tick never stop the loop."""
        clock = FakeClock()
        displays = FakeDisplays(failing={0}, clock=clock)
        controller = build_controller(tmp_path, [0], displays, clock, stop_at=95)

        session = controller.start()

        assert controller.tick_count == 4
        assert session.records == []

    def test_all_monitors_each_tick(self, tmp_path):
        """Test that every resolved monitor is captured on every tick, in order."""
        clock = FakeClock()
        displays = FakeDisplays(clock=clock)
        controller = build_controller(tmp_path, [1, 0], displays, clock, stop_at=35)

        session = controller.start()

        assert [r.monitor_index for r in session.records] == [2, 1, 2, 1]
        assert all(Path(r.path).name.startswith("screen_m") for r in session.records)

    def test_duplicate_monitor_captured_twice(self, tmp_path):
        """Test that '1,1' captures display 1 twice per tick into distinct files."""
        clock = FakeClock()
        displays = FakeDisplays(clock=clock)
        controller = build_controller(tmp_path, [0, 0], displays, clock, stop_at=5)

        session = controller.start()

        assert len(session.records) == 2
        assert session.records[0].path != session.records[1].path

    def test_records_are_time_ordered(self, tmp_path):
        """Test that relative times never decrease and match the timestamps."""
        clock = FakeClock()
        displays = FakeDisplays(clock=clock, capture_cost=1.5)
        controller = build_controller(tmp_path, [0, 1], displays, clock, stop_at=100)

        session = controller.start()

        times = [r.relative_seconds for r in session.records]
        assert times == sorted(times)
        for record in session.records:
            delta = (record.timestamp - session.start_time).total_seconds()
            assert delta == pytest.approx(record.relative_seconds)

    def test_late_ticks_are_not_backfilled(self, tmp_path):
        """Test that a capture slower than the interval skips the missed slots."""
        clock = FakeClock()
        displays = FakeDisplays(clock=clock, capture_cost=75)
        controller = build_controller(tmp_path, [0], displays, clock, stop_at=200)

        session = controller.start()

        # Every tick runs late and fires at once; the slots it overran are dropped
        assert [r.relative_seconds for r in session.records] == pytest.approx([0, 75, 150])

    def test_stop_requested_during_tick(self, tmp_path):
        """Test that a stop arriving mid-tick lets the capture in flight finish."""
        clock = FakeClock()
        displays = FakeDisplays(clock=clock)
        controller = build_controller(tmp_path, [0, 1], displays, clock)

        original_capture = displays.capture

        def capture_then_interrupt(index):
            image = original_capture(index)
            controller.request_stop()
            return image

        displays.capture = capture_then_interrupt
        session = controller.start()

        assert len(session.records) == 1
        assert session.records[0].monitor_index == 1

    def test_on_tick_callback(self, tmp_path):
        """Test that the tick callback gets the tick number and new records."""
        clock = FakeClock()
        displays = FakeDisplays(clock=clock)
        seen = []
        controller = build_controller(tmp_path, [0], displays, clock, stop_at=45,
                                      on_tick=lambda tick, records: seen.append((tick, len(records))))

        controller.start()

        assert seen == [(1, 1), (2, 1)]

    def test_default_task_name(self, tmp_path):
        """Test that an empty task name becomes Task_<session_id>."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=1)

        session = controller.start("")

        assert session.task_name == "Task_20260131_142501"

    def test_real_event_stopped_from_another_thread(self, tmp_path):
        """Test that request_stop from another thread wakes the waiting loop."""
        session = Session.create(tmp_path, SESSION_START, "1", [0], capture_interval=60)
        store = CaptureStore(FakeDisplays(), session.session_dir)
        controller = SessionController(session, store)

        timer = threading.Timer(0.2, controller.request_stop)
        timer.start()
        try:
            controller.start("Threaded")
        finally:
            timer.cancel()

        assert session.state is SessionState.STOPPED
        assert len(session.records) == 1
        assert session.duration_seconds < 30


class TestStop:
    """Tests for stop() and finalization."""

    def test_stop_writes_metadata(self, tmp_path):
        """Test that stopping flushes metadata.json into the session directory."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=31)

        session = controller.start("Metadata")

        data = json.loads((session.session_dir / "metadata.json").read_text())
        assert data['task_name'] == "Metadata"
        assert data['screenshot_count'] == 2
        assert data['duration_seconds'] == pytest.approx(31)

    def test_stop_is_idempotent(self, tmp_path):
        """Test that a second stop returns the same duration and writes nothing."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=65)
        session = controller.start()
        end_time = session.end_time
        metadata = session.session_dir / "metadata.json"
        first_write = metadata.read_text()

        clock.advance(120)
        metadata.unlink()
        second = controller.stop()

        assert second == pytest.approx(65)
        assert session.end_time == end_time
        assert not metadata.exists()
        assert json.loads(first_write)['duration_seconds'] == pytest.approx(65)

    def test_stop_before_start(self, tmp_path):
        """Test that stopping an idle session goes straight to Stopped."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock)

        assert controller.stop() == 0.0
        assert controller.state is SessionState.STOPPED
        assert not (controller.session.session_dir / "metadata.json").exists()

    def test_cannot_restart(self, tmp_path):
        """Test that a stopped session cannot be started again."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=1)
        controller.start()

        with pytest.raises(SessionStateError):
            controller.start()

    def test_persistence_error_is_reported(self, tmp_path, caplog):
        """Test that a failed metadata write is logged and kept, not raised."""
        clock = FakeClock()
        persister = FailingPersister(PersistenceError("read-only file system"))
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=1,
                                      persister=persister)

        with caplog.at_level(logging.ERROR):
            session = controller.start()

        assert session.state is SessionState.STOPPED
        assert controller.flush_error is persister.error
        assert "Failed to save metadata" in caplog.text
        controller.stop()
        assert persister.calls == 1

    def test_out_of_space_is_fatal(self, tmp_path):
        """Test that a disk-full error propagates out of stop()."""
        import errno

        clock = FakeClock()
        error = PersistenceError("disk full")
        error.__cause__ = OSError(errno.ENOSPC, "No space left on device")
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=1,
                                      persister=FailingPersister(error))

        with pytest.raises(PersistenceError) as excinfo:
            controller.start()
        assert excinfo.value.fatal
        assert controller.state is SessionState.STOPPED

    def test_screenshot_disk_full_stops_session(self, tmp_path, monkeypatch):
        """Test that a full disk on the first screenshot ends the session instead of retrying every tick."""
        import errno

        from PIL import Image

        def full_disk(self, *args, **kwargs):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(Image.Image, "save", full_disk)
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock, stop_at=3600)

        with pytest.raises(PersistenceError) as excinfo:
            controller.start()

        assert excinfo.value.fatal
        assert controller.tick_count == 0
        assert controller.failed_captures == 0
        assert controller.state is SessionState.STOPPED
        saved = json.loads((controller.session.session_dir / "metadata.json").read_text())
        assert saved["screenshot_count"] == 0


class TestSignalHandlers:
    """Tests for routing OS signals into the stop event."""

    def test_signal_requests_stop(self, tmp_path):
        """Test that SIGTERM sets the stop event while handlers are installed."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock)
        before = signal.getsignal(signal.SIGTERM)

        with controller.install_signal_handlers():
            signal.raise_signal(signal.SIGTERM)
            assert controller.stop_requested
            assert controller.interrupt_signal == signal.SIGTERM

        assert signal.getsignal(signal.SIGTERM) is before

    def test_handler_does_not_write(self, tmp_path):
        """Test that the signal handler leaves the session untouched."""
        clock = FakeClock()
        controller = build_controller(tmp_path, [0], FakeDisplays(), clock)

        with controller.install_signal_handlers():
            signal.raise_signal(signal.SIGINT)

        assert controller.state is SessionState.IDLE
        assert not controller.session.session_dir.exists()
