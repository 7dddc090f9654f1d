"""
Logging utilities for ftpmirror
"""
from datetime import datetime
from enum import Enum
from typing import Callable, Optional


class Style(str, Enum):
    """Presentation hint attached to every log line."""
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    MUTED = "muted"
    ERROR = "error"


_verbose = False
_sink: Optional[Callable[[str, Style], None]] = None


def set_verbose(verbose: bool):
    """Set the verbose flag"""
    global _verbose
    _verbose = verbose


def set_sink(sink: Optional[Callable[[str, Style], None]]):
    """Route log lines to *sink* (e.g. a dashboard pane); None restores stdout."""
    global _sink
    _sink = sink


def log(msg: str, style: Style = Style.INFO):
    """Log a message with timestamp"""
    if _sink is not None:
        _sink(msg, style)
        return
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


def vlog(msg: str):
    """Log a verbose message (only if verbose mode is enabled)"""
    if _verbose:
        log(msg)


def warn(msg: str):
    """Log a warning message"""
    log(f"⚠  {msg}", Style.WARNING)


def error(msg: str):
    log(f"✗ {msg}", Style.ERROR)
