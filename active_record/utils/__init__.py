"""
Utilities package for pg-active-record.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of storage-specific logic.
"""

from active_record.utils.logging import JsonFormatter, configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
    "JsonFormatter",
]
