"""Terminal user interface"""
from .dashboard import Dashboard

__all__ = ["Dashboard"]
