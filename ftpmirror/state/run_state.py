"""
Mutable state of the current and previous runs
"""
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RunState:
    """
    Counters and timestamps shared by the controller and the engine.
    Only the traversal and the controller's command handlers write to it;
    the status timer reads.
    """
    running: bool = False
    file_counter: int = 0
    sync_counter: int = 0
    last_operation_timestamp: float = field(default_factory=time.time)
    run_start_time: Optional[float] = None
    pending_safety_reconfirm: bool = False
    download_msg: str = "-"
    current_directory: str = ""

    def begin_run(self, now: float):
        """Reset the per-run counters."""
        self.file_counter = 0
        self.sync_counter = 0
        self.run_start_time = now
        self.pending_safety_reconfirm = False
        self.download_msg = "-"
