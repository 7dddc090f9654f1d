"""Utilities (logging, retry, file utilities)"""
from .logging import Style, log, vlog, warn, error, set_verbose, set_sink
from .retry import retry_with_backoff
from .file_utils import local_size, set_mtime, format_size, format_elapsed

__all__ = [
    "Style", "log", "vlog", "warn", "error", "set_verbose", "set_sink",
    "retry_with_backoff",
    "local_size", "set_mtime", "format_size", "format_elapsed",
]
