"""
Utility functions for the CLI.

This module contains helper functions used by CLI commands,
such as path generation and exit code constants.
"""

from datetime import datetime

# Exit codes
EXIT_SUCCESS = 0
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2


def default_output_path(fmt: str) -> str:
    """Return default output path: nanobanana_<YYYYMMDD>_<HHMMSS>.<ext> in current directory."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    ext = fmt if fmt else "png"
    return f"nanobanana_{timestamp}.{ext}"


def history_timestamp(item_id: int) -> str:
    """Render a history id (milliseconds since epoch) as local time."""
    try:
        return datetime.fromtimestamp(item_id / 1000).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return str(item_id)


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "default_output_path",
    "history_timestamp",
]
