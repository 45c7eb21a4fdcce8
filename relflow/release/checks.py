"""Result type of a single verification check."""

from dataclasses import dataclass
from enum import Enum, auto


class CheckStatus(Enum):
    """Status of a check result."""

    OK = auto()
    """Check passed."""

    SKIPPED = auto()
    """Check not applicable to this run (disabled in config or dry run)."""

    ERROR = auto()
    """Precondition not met."""


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a single check.

    Attributes:
        name: Short identifier of what was checked (e.g., "git", "branch")
        status: Whether the check passed, was skipped, or failed
        message: Human-readable result message
        hint: Optional remediation
    """

    name: str
    status: CheckStatus
    message: str
    hint: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status == CheckStatus.ERROR

    @classmethod
    def success(cls, name: str, message: str) -> "CheckResult":
        return cls(name=name, status=CheckStatus.OK, message=message)

    @classmethod
    def skipped(cls, name: str, message: str) -> "CheckResult":
        return cls(name=name, status=CheckStatus.SKIPPED, message=message)

    @classmethod
    def error(cls, name: str, message: str, hint: str | None = None) -> "CheckResult":
        return cls(name=name, status=CheckStatus.ERROR, message=message, hint=hint)
