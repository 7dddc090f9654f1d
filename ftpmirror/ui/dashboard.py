"""
Terminal dashboard for ftpmirror.

Renders the controller's status snapshots and log callbacks with Rich and
turns key presses into controller commands.
"""
import threading
from collections import deque
from typing import Callable, Optional

from rich.console import Console, Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.live import Live

from ..config import SyncConfig
from ..core.controller import StatusSnapshot, SyncController
from ..core.observer import SyncObserver
from ..utils.logging import Style, set_sink
from .keys import read_key

STYLES = {
    Style.INFO: "",
    Style.WARNING: "yellow",
    Style.SUCCESS: "bold green",
    Style.MUTED: "dim strike",
    Style.ERROR: "bold red",
}

QUIT_PROMPT = "Are you sure to quit?   [y] Yes  [n] No"
HELP = "[s] start  [x] pause/resume  [c] continue  [r] reconnect  [q] quit"


class Dashboard(SyncObserver):
    """Rich renderable + SyncObserver; Live re-renders it on every refresh."""

    def __init__(self, config: SyncConfig, console: Optional[Console] = None,
                 max_lines: int = 500):
        self.config = config
        self.console = console or Console()
        self.controller: Optional[SyncController] = None
        self._lock = threading.Lock()
        self._log: deque = deque(maxlen=max_lines)
        self._sync_log: deque = deque(maxlen=max_lines)
        self._snapshot: Optional[StatusSnapshot] = None
        self._current_dir = ""
        self.prompt: Optional[str] = None

    # ── SyncObserver ────────────────────────────────────────────────────────

    def on_status_update(self, snapshot: StatusSnapshot):
        with self._lock:
            self._snapshot = snapshot

    def on_log_line(self, text: str, style: Style = Style.INFO):
        with self._lock:
            self._log.append((text, style))

    def on_sync_log_line(self, text: str, style: Style = Style.INFO,
                         replace_previous: bool = False):
        with self._lock:
            if replace_previous and self._sync_log:
                self._sync_log.pop()
            self._sync_log.append((text, style))

    def on_current_directory_change(self, path: str):
        with self._lock:
            self._current_dir = path

    @property
    def log_lines(self) -> list:
        with self._lock:
            return [text for text, _ in self._log]

    @property
    def sync_log_lines(self) -> list:
        with self._lock:
            return [text for text, _ in self._sync_log]

    # ── rendering ───────────────────────────────────────────────────────────

    def status_items(self) -> list[str]:
        snap = self._snapshot
        if snap is None:
            snap = StatusSnapshot("00:00:00", "0 files/s", 0, 0, "-")
        return [
            f"state: {snap.phase.value}",
            f"elapsed time: {snap.elapsed_time}",
            f"files processed: {snap.file_counter} @ {snap.processing_rate}",
            f"files synchronized: {snap.sync_counter}",
            f"Download: {snap.download_msg}",
        ]

    @staticmethod
    def _lines(entries, limit: int) -> Text:
        text = Text()
        tail = list(entries)[-limit:] if limit > 0 else []
        for i, (line, style) in enumerate(tail):
            if i:
                text.append("\n")
            text.append(line, style=STYLES.get(style, ""))
        return text

    def render(self) -> Layout:
        cfg = self.config
        with self._lock:
            details = Table.grid(padding=(0, 1))
            details.add_row("Host:", cfg.host)
            details.add_row("User:", cfg.user or "anonymous")
            details.add_row("Pass:", "********")
            details.add_row("Port:", f"{cfg.port} ({cfg.protocol})")

            paths = Text("\n".join([
                f"Local directory: {cfg.local_root}",
                f"Staging directory: {cfg.staging_root}",
                f"Remote path: {cfg.remote_root}",
            ]))
            status = Text("\n".join(self.status_items()))
            current = Text(f"current remote directory: {self._current_dir}")
            if self.prompt:
                current = Group(current, Text(self.prompt, style="bold reverse"))

            visible = max(self.console.size.height - 14, 1)
            log = self._lines(self._log, visible)
            sync_log = self._lines(self._sync_log, visible)

        layout = Layout()
        layout.split_column(
            Layout(name="top", size=7),
            Layout(name="progress", size=4),
            Layout(name="logs"),
            Layout(Text(HELP, style="dim"), name="help", size=1),
        )
        layout["top"].split_row(
            Layout(Panel(details, title="Connection Details")),
            Layout(Panel(paths, title="Path Settings")),
            Layout(Panel(status, title="Status")),
        )
        layout["progress"].update(Panel(current, title="Sync Progress"))
        layout["logs"].split_row(
            Layout(Panel(log, title="Processing Log", border_style="green"), ratio=7),
            Layout(Panel(sync_log, title="Sync Log"), ratio=3),
        )
        return layout

    def __rich__(self) -> Layout:
        return self.render()

    # ── input ───────────────────────────────────────────────────────────────

    def handle_key(self, key: str) -> bool:
        """Apply one key press; returns False once quitting is confirmed."""
        ctl = self.controller
        if self.prompt is not None:
            if key.lower() == "y":
                return False
            self.prompt = None
            return True
        if key in ("q", "\x03"):
            self.prompt = QUIT_PROMPT
        elif ctl is None:
            return True
        elif key == "s":
            if not ctl.start():
                self.on_log_line("sync already running", Style.WARNING)
        elif key == "x":
            ctl.toggle_pause()
        elif key == "c":
            ctl.resume()
        elif key == "r":
            threading.Thread(target=ctl.force_reconnect, name="ftpmirror-reconnect",
                             daemon=True).start()
        return True

    def run(self, controller: SyncController, read: Callable[[], str] = read_key):
        """Show the dashboard until the operator confirms quitting."""
        self.controller = controller
        set_sink(self.on_log_line)
        try:
            with Live(self, console=self.console, screen=True, refresh_per_second=4):
                while self.handle_key(read()):
                    pass
        finally:
            set_sink(None)
            controller.quit()
