"""
Test doubles: an in-memory protocol client, a recording observer, a clock.
"""
import threading
from pathlib import Path, PurePosixPath

from ftpmirror.config import SyncConfig
from ftpmirror.core.entries import EntryKind, RemoteEntry
from ftpmirror.core.observer import SyncObserver
from ftpmirror.errors import ConnectError


def file_entry(name, data=b"", mtime=None):
    return RemoteEntry(name, EntryKind.FILE, len(data), mtime)


def dir_entry(name):
    return RemoteEntry(name, EntryKind.DIRECTORY)


def make_config(root: Path, remote_root="/pub", **overrides) -> SyncConfig:
    kw = dict(
        host="ftp.example.com",
        local_root=root / "local",
        remote_root=PurePosixPath(remote_root),
        staging_root=root / "staging",
    )
    kw.update(overrides)
    return SyncConfig(**kw)


class FakeClient:
    """
    In-memory protocol client.
    listings: {remote_dir: [RemoteEntry, …]}, files: {remote_path: bytes}
    list_failures / download_failures: how many upcoming calls raise *error*.
    """

    def __init__(self, listings=None, files=None, connect_failures=0,
                 list_failures=0, download_failures=0, error=OSError):
        self.listings = listings or {}
        self.files = files or {}
        self.connect_failures = connect_failures
        self.list_failures = list_failures
        self.download_failures = download_failures
        self.error = error
        self.closed = True
        self.connect_calls = 0
        self.close_calls = 0
        self.list_calls = []
        self.download_calls = []
        self.list_gate = None  # threading.Event list() waits on
        self.download_gate = None  # threading.Event download() waits on
        self.download_started = threading.Event()
        self.aborted = False
        self.abort_calls = 0

    def connect(self):
        self.connect_calls += 1
        if self.connect_failures:
            self.connect_failures -= 1
            raise ConnectError("connection refused")
        self.closed = False

    def close(self):
        self.close_calls += 1
        self.closed = True

    def abort(self):
        self.abort_calls += 1
        self.aborted = True
        self.closed = True
        if self.download_gate is not None:
            self.download_gate.set()

    def list(self, path):
        self.list_calls.append(path)
        if self.list_gate is not None:
            self.list_gate.wait(5)
        if self.list_failures:
            self.list_failures -= 1
            raise self.error(f"list {path} failed")
        return list(self.listings.get(path, []))

    def download(self, path, sink, progress=None, size=None):
        self.download_calls.append(path)
        data = self.files[path]
        self.download_started.set()
        if self.download_gate is not None:
            self.download_gate.wait(5)
        if self.aborted:
            raise self.error(f"download {path}: connection closed")
        if self.download_failures:
            self.download_failures -= 1
            sink.write(data[:1])
            raise self.error(f"download {path} failed")
        half = len(data) // 2
        sink.write(data[:half])
        if progress is not None:
            progress(half, len(data))
        sink.write(data[half:])
        if progress is not None:
            progress(len(data), len(data))


class RecordingObserver(SyncObserver):
    def __init__(self):
        self.lock = threading.Lock()
        self.statuses = []
        self.log_lines = []
        self.sync_lines = []
        self.directories = []

    def on_status_update(self, snapshot):
        with self.lock:
            self.statuses.append(snapshot)

    def on_log_line(self, text, style=None):
        with self.lock:
            self.log_lines.append((text, style))

    def on_sync_log_line(self, text, style=None, replace_previous=False):
        with self.lock:
            self.sync_lines.append((text, style, replace_previous))

    def on_current_directory_change(self, path):
        with self.lock:
            self.directories.append(path)


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def no_sleep(_seconds):
    pass
