"""Exit codes for the relflow command line.

Each failure category of a release run maps to one stable exit status:
- 0: Success, including a run where every stage was skipped
- 1: User error (bad flags, bad configuration, unresolvable version)
- 2: Environment error (git, git-cliff or gh missing)
- 3: Precondition failed (repository state check)
- 4: External command failed while a stage ran
- 5: Rollback failed and the fallback reset could not restore the tree
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit status of ``relflow``."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    PRECONDITION_ERROR = 3
    COMMAND_ERROR = 4
    ROLLBACK_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
