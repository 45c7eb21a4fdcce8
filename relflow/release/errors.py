"""Error type shared by every layer of a release run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

__all__ = ["ReleaseError", "ReleaseErrorKind"]

ReleaseErrorKind = Literal[
    "config",
    "invalid_input",
    "tool_missing",
    "precondition",
    "resolution",
    "command_failed",
    "io",
    "cancelled",
    "rollback_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    ``hint`` holds either a remediation or the stderr of the command that
    failed; verbose output shows it in full.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
