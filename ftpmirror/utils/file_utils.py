"""
File utilities (local stat helpers, human-readable formatting)
"""
import os
from pathlib import Path
from typing import Optional, Union


def local_size(path: Union[str, Path]) -> Optional[int]:
    """Size of a regular file at *path*, or None if nothing is there."""
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    if not os.path.isfile(path):
        return None
    return st.st_size


def set_mtime(path: Union[str, Path], timestamp: float):
    """Copy a remote modification time onto a local file."""
    os.utime(path, (timestamp, timestamp))


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable size (e.g. "1.5 MB")."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def format_elapsed(seconds: float) -> str:
    """HH:MM:SS for a duration in seconds."""
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
