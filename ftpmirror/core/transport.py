"""
Transport session with auto-reconnect around a protocol client
"""
import threading
import time
from typing import BinaryIO, Callable, List, Optional, Type, TypeVar

from .. import config as _cfg
from ..errors import (ConnectError, DownloadError, ListError,
                      ReconnectExhaustedError, TransportError)
from ..utils.logging import log, warn
from ..utils.retry import retry_with_backoff
from .clients import ProgressCallback
from .entries import RemoteEntry

T = TypeVar("T")


class TransportSession:
    """
    Owns one protocol client and hides transient failures from callers.

    list() and download() go through _guarded(): reconnect first if the
    session is marked closed, and on any error reconnect and retry once.
    The closed flag is our own; the client's view of its socket is not
    trusted after an error.
    """

    def __init__(self, client, max_retries: int = _cfg.RECONNECT_RETRIES,
                 initial_delay: float = _cfg.RECONNECT_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        self._client = client
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._sleep = sleep
        self._closed = True
        self._aborted = False
        self._progress: Optional[ProgressCallback] = None
        # held by every remote operation; a forced reconnect waits for it
        self._lock = threading.RLock()

    @property
    def closed(self) -> bool:
        return self._closed

    # ── connection ─────────────────────────────────────────────────────────

    def connect(self):
        with self._lock:
            if self._aborted:
                raise ConnectError("session aborted")
            if not self._closed:
                return
            log("Connecting to server …")
            try:
                self._client.connect()
            except ConnectError:
                raise
            except Exception as exc:
                raise ConnectError(str(exc)) from exc
            self._closed = False
            log("Connection established ✓")

    def close(self):
        with self._lock:
            self._closed = True
            self._client.close()

    def abort(self):
        """
        Drop the connection without waiting for an in-flight operation.
        The session stays unusable; a guarded call fails instead of reconnecting.
        """
        self._aborted = True
        self._closed = True
        self._client.abort()

    def reconnect(self, max_retries: Optional[int] = None,
                  initial_delay: Optional[float] = None):
        """Drop the session and connect again with exponential back-off."""
        retries = self._max_retries if max_retries is None else max_retries
        delay = self._initial_delay if initial_delay is None else initial_delay
        with self._lock:
            if self._aborted:
                raise ReconnectExhaustedError("session aborted")
            self.close()
            try:
                retry_with_backoff(self.connect, retries, delay, sleep=self._sleep)
            except Exception as exc:
                raise ReconnectExhaustedError(
                    f"failed to connect after {retries} attempt(s): {exc}") from exc

    # ── guarded operations ──────────────────────────────────────────────────

    def _guarded(self, op: Callable[[], T], error: Type[TransportError],
                 before_retry: Optional[Callable[[], None]] = None) -> T:
        with self._lock:
            if self._aborted:
                raise error("session aborted")
            if self._closed:
                self.reconnect()
            try:
                return op()
            except Exception as exc:
                if self._aborted:
                    raise error(f"session aborted ({exc})") from exc
                warn(f"connection lost - trying to reconnect ({exc})")
            self._closed = True
            self.reconnect()
            if before_retry is not None:
                before_retry()
            try:
                return op()
            except error:
                raise
            except Exception as exc:
                raise error(str(exc)) from exc

    def list(self, remote_path: str) -> List[RemoteEntry]:
        return self._guarded(lambda: self._client.list(remote_path), ListError)

    def download(self, remote_path: str, sink: BinaryIO, size: Optional[int] = None):
        """Stream *remote_path* into *sink*; the caller owns and closes the sink."""
        def rewind():
            if sink.seekable():
                sink.seek(0)
                sink.truncate()

        self._guarded(
            lambda: self._client.download(remote_path, sink, self._progress, size),
            DownloadError,
            before_retry=rewind,
        )

    def track_progress(self, callback: Optional[ProgressCallback] = None):
        """Register a (bytes_so_far, total) callback for downloads; None clears it."""
        self._progress = callback
