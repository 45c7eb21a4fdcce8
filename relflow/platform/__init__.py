"""Platform layer: subprocess execution and file writes."""

from .files import atomic_write_text
from .process import ProcessError, command_available, run

__all__ = [
    "ProcessError",
    "atomic_write_text",
    "command_available",
    "run",
]
