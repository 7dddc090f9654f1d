"""Run state"""
from .run_state import RunState

__all__ = ["RunState"]
