"""Conventional commit parsing.

Only the parts that drive version bumps are extracted: the header type,
breaking-change notes and revert markers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = [
    "RawCommit",
    "CommitNote",
    "ConventionalCommit",
    "parse_commit",
    "drop_reverted",
]

HEADER_PATTERN = re.compile(r"^(\w*)(?:\((.*)\))?: (.*)$")
BREAKING_HEADER_PATTERN = re.compile(r"^(\w*)(?:\((.*)\))?!: (.*)$")
NOTE_PATTERN = re.compile(r"^[\s|*]*(BREAKING[ -]CHANGE)[:\s]+(.*)$", re.IGNORECASE)
REVERT_PATTERN = re.compile(
    r"^(?:Revert|revert:)\s\"?([\s\S]+?)\"?\s*This reverts commit (\w+)\.",
    re.IGNORECASE,
)

BREAKING_CHANGE = "BREAKING CHANGE"


@dataclass(frozen=True, slots=True)
class RawCommit:
    """A commit as read from ``git log``."""

    sha: str
    message: str


@dataclass(frozen=True, slots=True)
class CommitNote:
    title: str
    text: str


@dataclass(frozen=True, slots=True)
class ConventionalCommit:
    """Parsed commit.

    Attributes:
        sha: Full commit hash
        header: First line of the message
        type: Conventional type ("feat", "fix", ...), None if not conventional
        scope: Optional scope between parentheses
        subject: Text after the colon
        notes: Breaking-change notes from the footer or a ``!`` header
        reverts: Hash of the commit this one reverts, if any
    """

    sha: str
    header: str
    type: str | None = None
    scope: str | None = None
    subject: str | None = None
    notes: tuple[CommitNote, ...] = ()
    reverts: str | None = None

    @property
    def is_breaking(self) -> bool:
        return len(self.notes) > 0


def parse_commit(raw: RawCommit) -> ConventionalCommit:
    """Parse a raw commit message."""
    message = raw.message.strip()
    lines = message.splitlines()
    header = lines[0].strip() if lines else ""
    body = lines[1:]

    notes: list[CommitNote] = []
    for line in body:
        m = NOTE_PATTERN.match(line)
        if m is not None:
            notes.append(CommitNote(title=BREAKING_CHANGE, text=m.group(2).strip()))

    type_: str | None = None
    scope: str | None = None
    subject: str | None = None

    breaking = BREAKING_HEADER_PATTERN.match(header)
    if breaking is not None:
        type_, scope, subject = breaking.group(1), breaking.group(2), breaking.group(3)
        if not notes:
            notes.append(CommitNote(title=BREAKING_CHANGE, text=subject))
    else:
        m = HEADER_PATTERN.match(header)
        if m is not None:
            type_, scope, subject = m.group(1), m.group(2), m.group(3)

    revert = REVERT_PATTERN.match(message)

    return ConventionalCommit(
        sha=raw.sha,
        header=header,
        type=type_ or None,
        scope=scope,
        subject=subject,
        notes=tuple(notes),
        reverts=revert.group(2) if revert is not None else None,
    )


def drop_reverted(commits: list[ConventionalCommit]) -> list[ConventionalCommit]:
    """Remove revert commits together with the commits they revert.

    A revert whose target is outside the list is kept as-is.
    """
    dropped: set[str] = set()
    for commit in commits:
        if not commit.reverts:
            continue
        target = next(
            (c for c in commits if c.sha != commit.sha and c.sha.startswith(commit.reverts)),
            None,
        )
        if target is not None:
            dropped.add(commit.sha)
            dropped.add(target.sha)
    return [c for c in commits if c.sha not in dropped]
