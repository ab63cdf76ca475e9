"""Utility functions package."""

from tool_call_adapter.utils.logger import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
