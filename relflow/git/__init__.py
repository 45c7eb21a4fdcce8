"""Git operations module.

- Repository: git commands for one working tree
- commits: conventional commit parsing for automatic bumps
"""

from relflow.git.commits import (
    CommitNote,
    ConventionalCommit,
    RawCommit,
    drop_reverted,
    parse_commit,
)
from relflow.git.repository import GitError, Repository

__all__ = [
    # Repository
    "GitError",
    "Repository",
    # Commits
    "CommitNote",
    "ConventionalCommit",
    "RawCommit",
    "drop_reverted",
    "parse_commit",
]
