"""
Remote directory listing records
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class RemoteEntry:
    """One record of a remote directory listing."""
    name: str
    kind: EntryKind
    size: int = 0
    modified_at: Optional[float] = None  # POSIX timestamp, UTC

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY
