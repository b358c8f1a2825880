"""
Capture loop and session lifecycle.

The controller waits on a single threading.Event with the tick timeout.
The periodic timer and the interrupt both feed that one wait: a timeout
means "capture now", a set event means "stop". Signal handlers only set
the event; every file write happens on the thread running start().
"""
import logging
import signal
import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Callable, List, Optional

from .clock import SYSTEM_CLOCK, Clock
from .errors import CaptureError, PersistenceError, SessionStateError
from .metadata import MetadataPersister
from .recorder import SessionRecorder
from .session import CaptureRecord, Session, SessionState
from .store import CaptureStore

logger = logging.getLogger(__name__)

TickCallback = Callable[[int, List[CaptureRecord]], None]


class SessionController:
    """
    Drives one capture session: Idle -> Capturing -> Stopped.

    Typical use from the main thread:

        controller = SessionController(session, store)
        with controller.install_signal_handlers():
            controller.start("Write report")    # blocks until Ctrl+C

    Other threads stop the session with request_stop(); start() then
    finishes the capture in flight, calls stop() and returns.
    """

    def __init__(
        self,
        session: Session,
        store: CaptureStore,
        persister: Optional[MetadataPersister] = None,
        clock: Optional[Clock] = None,
        stop_event: Optional[threading.Event] = None,
        on_tick: Optional[TickCallback] = None,
    ):
        self.session = session
        self.store = store
        self.persister = persister or MetadataPersister()
        self.clock = clock or SYSTEM_CLOCK
        self.on_tick = on_tick
        self.recorder = SessionRecorder(session.records)

        self._stop_event = stop_event or threading.Event()
        self._start_mono: Optional[float] = None
        self._duration: Optional[float] = None

        self.tick_count = 0
        self.failed_captures = 0
        self.interrupt_signal: Optional[int] = None
        self.flush_error: Optional[PersistenceError] = None

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self):
        """Ask the loop to stop after the capture in flight. Safe from signal handlers."""
        self._stop_event.set()

    def _elapsed(self) -> float:
        """Monotonic seconds since the session started."""
        return self.clock.monotonic() - self._start_mono

    def start(self, task_name: str = "") -> Session:
        """
        Start capturing and block until stopped.

        Captures every resolved monitor immediately, then once per
        capture_interval. Returns the stopped session.

        Raises:
            SessionStateError: if the session is not idle
            PersistenceError: if a screenshot hits a full disk; the session
                is stopped and its metadata flushed first
        """
        session = self.session
        if session.state is not SessionState.IDLE:
            raise SessionStateError(
                f"Cannot start session {session.session_id} in state {session.state.value}"
            )

        session.task_name = task_name or session.task_name or session.default_task_name
        session.start_time = self.clock.now()
        self._start_mono = self.clock.monotonic()
        session.state = SessionState.CAPTURING

        logger.info("Started capturing for: %s (every %ds, monitors %s) -> %s",
                    session.task_name, session.capture_interval,
                    session.monitor_numbers, session.session_dir)

        try:
            self._run_loop()
        finally:
            self.stop()
        return session

    def _run_loop(self):
        interval = self.session.capture_interval
        next_tick = self._start_mono

        while True:
            self._capture_tick()
            if self._stop_event.is_set():
                break

            next_tick += interval
            now = self.clock.monotonic()
            # A late tick fires once right away; any further missed slots are dropped
            if now - next_tick >= interval:
                next_tick += ((now - next_tick) // interval) * interval

            if self._stop_event.wait(max(0.0, next_tick - now)):
                break

    def _capture_tick(self):
        captured = []
        for display_index in self.session.resolved_monitors:
            elapsed = self._elapsed()
            taken_at = self.session.start_time + timedelta(seconds=elapsed)
            try:
                record = self.store.capture(display_index, taken_at, elapsed)
            except CaptureError as e:
                self.failed_captures += 1
                logger.warning("%s", e)
            except PersistenceError as e:
                logger.error("Stopping session %s: %s", self.session.session_id, e)
                raise
            else:
                self.recorder.append(record)
                captured.append(record)

            if self._stop_event.is_set():
                break

        self.tick_count += 1
        logger.debug("Tick %d: %d/%d captures (%d total)",
                     self.tick_count, len(captured),
                     len(self.session.resolved_monitors), len(self.recorder))
        if self.on_tick is not None:
            self.on_tick(self.tick_count, captured)

    def stop(self) -> float:
        """
        Stop the session and flush its metadata.

        Only the first call has any effect; later calls return the same
        duration without writing again. A failed metadata write is logged
        and kept in flush_error; out-of-space failures are re-raised.

        Returns:
            Session duration in seconds
        """
        if self._duration is not None:
            return self._duration

        self._stop_event.set()
        session = self.session

        if session.state is SessionState.IDLE:
            # Never started: nothing was captured and nothing is written
            session.state = SessionState.STOPPED
            self._duration = 0.0
            return self._duration

        self._duration = self._elapsed()
        session.end_time = session.start_time + timedelta(seconds=self._duration)
        session.state = SessionState.STOPPED

        logger.info("Capture stopped: %.1f minutes, %d screenshots",
                    self._duration / 60, len(session.records))

        try:
            self.persister.save(session)
        except PersistenceError as e:
            self.flush_error = e
            logger.error("Failed to save metadata for %s: %s", session.session_id, e)
            if e.fatal:
                raise
        return self._duration

    @contextmanager
    def install_signal_handlers(self, signals=(signal.SIGINT, signal.SIGTERM)):
        """Route SIGINT/SIGTERM to request_stop() while the block runs."""
        def _handler(signum, frame):
            self.interrupt_signal = signum
            self._stop_event.set()

        previous = {}
        for sig in signals:
            previous[sig] = signal.signal(sig, _handler)
        try:
            yield self
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
