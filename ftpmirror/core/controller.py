"""
Operator-facing state machine: start, pause/resume, forced reconnect, quit
"""
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .. import config as _cfg
from ..config import SyncConfig
from ..errors import ConnectError, TransportError
from ..state.run_state import RunState
from ..utils.file_utils import format_elapsed
from ..utils.logging import Style
from .clients import make_client
from .observer import SyncObserver
from .sync_engine import SyncEngine
from .transport import TransportSession


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class StatusSnapshot:
    elapsed_time: str
    processing_rate: str
    file_counter: int
    sync_counter: int
    download_msg: str
    current_directory: str = ""
    phase: Phase = Phase.IDLE


class _StatusTimer:
    """Calls *tick* every *interval* seconds on a daemon thread until stopped."""

    def __init__(self, interval: float, tick: Callable[[], None]):
        self._interval = interval
        self._tick = tick
        self._stop: Optional[threading.Event] = None

    @property
    def active(self) -> bool:
        return self._stop is not None

    def start(self):
        if self._stop is not None:
            return
        stop = threading.Event()
        self._stop = stop

        def loop():
            while not stop.wait(self._interval):
                self._tick()

        threading.Thread(target=loop, name="ftpmirror-status", daemon=True).start()

    def stop(self):
        if self._stop is not None:
            self._stop.set()
            self._stop = None


class SyncController:
    """
    Owns the RunState and the single traversal thread.

    Idle --start--> Running --pause--> Paused --resume--> Running;
    a finished or failed traversal goes back to Idle.
    """

    def __init__(self, config: SyncConfig, session: Optional[TransportSession] = None,
                 observer: Optional[SyncObserver] = None,
                 clock: Callable[[], float] = time.time,
                 refresh_interval: float = _cfg.STATUS_REFRESH_INTERVAL,
                 engine_factory: Callable[..., SyncEngine] = SyncEngine):
        self.config = config
        self.session = session or TransportSession(make_client(config))
        self.observer = observer or SyncObserver()
        self.state = RunState(last_operation_timestamp=clock())
        self.phase = Phase.IDLE
        self.last_error: Optional[BaseException] = None
        self._clock = clock
        self._timer = _StatusTimer(refresh_interval, self.publish_status)
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._quitting = False
        self.engine = engine_factory(self.session, config, self.state,
                                     observer=self.observer,
                                     on_status=self.publish_status,
                                     clock=clock)

    # ── status ──────────────────────────────────────────────────────────────

    def snapshot(self) -> StatusSnapshot:
        st = self.state
        if st.run_start_time is None:
            elapsed_time, rate = "00:00:00", "0 files/s"
        else:
            elapsed = self._clock() - st.run_start_time
            elapsed_time = format_elapsed(elapsed)
            rate = f"{st.file_counter / elapsed:.2f} files/s" if elapsed > 0 else "0 files/s"
        return StatusSnapshot(
            elapsed_time=elapsed_time,
            processing_rate=rate,
            file_counter=st.file_counter,
            sync_counter=st.sync_counter,
            download_msg=st.download_msg,
            current_directory=st.current_directory,
            phase=self.phase,
        )

    def publish_status(self):
        self.observer.on_status_update(self.snapshot())

    # ── commands ────────────────────────────────────────────────────────────

    def start(self) -> bool:
        """Launch a run from the configured roots; ignored unless Idle."""
        with self._lock:
            if self.phase is not Phase.IDLE:
                return False
            self.phase = Phase.RUNNING
            self.last_error = None
            self.state.begin_run(self._clock())
            self.state.running = True
            self._timer.start()
            self._worker = threading.Thread(target=self._run, name="ftpmirror-sync",
                                            daemon=True)
            self._worker.start()
        self.publish_status()
        return True

    def _run(self):
        try:
            try:
                self.session.connect()
            except ConnectError as exc:
                self.observer.on_log_line(f"Connection failed: {exc}", Style.WARNING)
                self.session.reconnect()
            self.engine.run()
            self.observer.on_log_line(
                f"Sync finished: {self.state.file_counter} file(s) processed, "
                f"{self.state.sync_counter} synchronized", Style.SUCCESS)
        except Exception as exc:
            if not self._quitting:
                self.last_error = exc
                self.observer.on_log_line(f"Error syncing: {exc}", Style.ERROR)
        finally:
            self.session.close()
            with self._lock:
                self.phase = Phase.IDLE
                self.state.running = False
                self._timer.stop()
            self.publish_status()

    def pause(self) -> bool:
        with self._lock:
            if self.phase is not Phase.RUNNING:
                return False
            self.phase = Phase.PAUSED
            self.state.running = False
            self._timer.stop()
        self.observer.on_log_line("processing stopped...")
        self.publish_status()
        return True

    def resume(self) -> bool:
        with self._lock:
            if self.phase is not Phase.PAUSED:
                return False
            self.phase = Phase.RUNNING
            self.state.running = True
            self._timer.start()
        self.observer.on_log_line("processing continues...")
        self.publish_status()
        return True

    def toggle_pause(self) -> bool:
        if self.phase is Phase.RUNNING:
            return self.pause()
        return self.resume()

    def force_reconnect(self) -> bool:
        """
        Re-establish the session with a higher retry ceiling. The traversal
        is held at its continue gate meanwhile; Run/Pause state is unchanged.
        """
        with self._lock:
            self.state.running = False
        self.observer.on_log_line("forcing reconnect …", Style.WARNING)
        try:
            self.session.reconnect(max_retries=_cfg.FORCED_RECONNECT_RETRIES)
        except TransportError as exc:
            self.observer.on_log_line(f"Reconnect failed: {exc}", Style.ERROR)
            return False
        finally:
            # overlapping reconnects and pause/resume may have run meanwhile
            with self._lock:
                self.state.running = self.phase is Phase.RUNNING and not self._quitting
        return True

    def quit(self):
        """
        Tear down before process exit; confirmation is the caller's job.
        Does not wait for an in-flight transfer or reconnect.
        """
        with self._lock:
            self._quitting = True
            self.state.running = False
            self._timer.stop()
        self.session.abort()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run finishes; True if nothing is running."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
            return not worker.is_alive()
        return True
