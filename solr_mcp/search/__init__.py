"""Plan compilation and execution for smart search."""

from .handler import SmartSearchHandler

__all__ = ["SmartSearchHandler"]
