"""
Sync engine - change detection and the recursive remote → staging walk
"""
import posixpath
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from .. import config as _cfg
from ..config import SyncConfig
from ..state.run_state import RunState
from ..utils.file_utils import format_size, local_size, set_mtime
from ..utils.logging import Style, vlog
from .entries import RemoteEntry
from .observer import SyncObserver
from .transport import TransportSession

PathLike = Union[str, Path]


@dataclass(frozen=True)
class SyncPaths:
    """Where one remote entry lives on each side."""
    local_file_path: Path
    remote_file_path: str
    staging_file_path: Path


@dataclass(frozen=True)
class DownloadDecision:
    download: bool
    safety: bool = False

    def __bool__(self) -> bool:
        return self.download


def decide_download(local_size: Optional[int], staging_size: Optional[int],
                    remote_size: int, stale: bool) -> DownloadDecision:
    """
    Whether a remote file has to be fetched. Sizes are None for missing files.

    The local root copy wins over the staging copy; a file present in
    neither is always new. A copy whose size matches is only fetched again
    when the stale window has passed, which makes it a safety download.
    A missing or size-mismatched copy is a regular download even inside the
    stale window, so only size-matched refetches are reported as safety ones.
    """
    if local_size is not None:
        existing = local_size
    elif staging_size is not None:
        existing = staging_size
    else:
        return DownloadDecision(True)

    if existing != remote_size:
        return DownloadDecision(True)
    if stale:
        return DownloadDecision(True, safety=True)
    return DownloadDecision(False)


def sync_paths(local_path: PathLike, remote_path: str, staging_path: PathLike,
               name: str) -> SyncPaths:
    return SyncPaths(
        local_file_path=Path(local_path) / name,
        remote_file_path=posixpath.join(remote_path, name),
        staging_file_path=Path(staging_path) / name,
    )


class SyncEngine:
    """
    Walks the remote tree depth-first, one entry at a time, and lands new or
    changed files under the staging root.
    """

    def __init__(self, session: TransportSession, config: SyncConfig, state: RunState,
                 observer: Optional[SyncObserver] = None,
                 on_status: Optional[Callable[[], None]] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep,
                 poll_interval: float = _cfg.POLL_INTERVAL,
                 safety_window: float = _cfg.SAFETY_WINDOW):
        self._session = session
        self._config = config
        self._state = state
        self._observer = observer or SyncObserver()
        self._on_status = on_status or (lambda: None)
        self._clock = clock
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._safety_window = safety_window

    def run(self):
        """Walk the whole tree from the configured roots."""
        cfg = self._config
        self.traverse(cfg.local_root, str(cfg.remote_root), cfg.staging_root)

    def wait_for_continue(self):
        while not self._state.running:
            self._sleep(self._poll_interval)

    def traverse(self, local_path: PathLike, remote_path: str, staging_path: PathLike):
        entries = self._session.list(remote_path)
        for entry in entries:
            if entry.name in (".", ".."):
                continue
            self.wait_for_continue()

            self._state.download_msg = "-"
            self._on_status()
            paths = sync_paths(local_path, remote_path, staging_path, entry.name)

            if entry.is_dir:
                self._state.current_directory = paths.remote_file_path
                self._observer.on_current_directory_change(paths.remote_file_path)
                self.traverse(paths.local_file_path, paths.remote_file_path,
                              paths.staging_file_path)
                continue

            decision = self.should_download(paths.local_file_path, entry,
                                            paths.staging_file_path)
            if decision:
                self.download(entry, paths, safety=decision.safety)
            else:
                self._observer.on_log_line(f"{entry.name} in sync", Style.MUTED)

    def should_download(self, local_file_path: PathLike, entry: RemoteEntry,
                        staging_file_path: PathLike) -> DownloadDecision:
        self._state.file_counter += 1
        stale = self._clock() - self._state.last_operation_timestamp > self._safety_window

        lsize = local_size(local_file_path)
        ssize = local_size(staging_file_path) if lsize is None else None
        decision = decide_download(lsize, ssize, entry.size, stale)

        self._state.pending_safety_reconfirm = decision.safety
        if decision.safety:
            self._observer.on_log_line(
                f"{entry.name} safety sync (no transfer for "
                f"{self._safety_window:.0f}s)", Style.WARNING)
        return decision

    def download(self, entry: RemoteEntry, paths: SyncPaths, safety: bool = False):
        target = paths.staging_file_path
        target.parent.mkdir(parents=True, exist_ok=True)
        self._observer.on_sync_log_line(f"- {entry.name}", Style.WARNING)
        vlog(f"downloading {paths.remote_file_path} ({format_size(entry.size)})")

        last_bytes = 0
        last_time = self._clock()

        def on_progress(done: int, total: int):
            nonlocal last_bytes, last_time
            now = self._clock()
            elapsed = now - last_time
            speed = (done - last_bytes) / elapsed / 1024 if elapsed > 0 else 0.0
            last_bytes, last_time = done, now
            percent = done / total * 100 if total else 100.0
            self._state.download_msg = f"{percent:.2f}% @ {speed:.2f} kB/s"
            self._on_status()

        self._session.track_progress(on_progress)
        try:
            with open(target, "wb") as sink:
                self._session.download(paths.remote_file_path, sink, size=entry.size)
        finally:
            self._session.track_progress(None)

        if entry.modified_at is not None:
            set_mtime(target, entry.modified_at)

        self._observer.on_sync_log_line(
            f"✓ {entry.name}", Style.MUTED if safety else Style.SUCCESS,
            replace_previous=True)
        self._state.last_operation_timestamp = self._clock()
        self._state.pending_safety_reconfirm = False
        if not safety:
            self._state.sync_counter += 1
        self._on_status()
