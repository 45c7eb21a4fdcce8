"""Semantic versions (semver.org 2.0.0).

Parsing and precedence follow semver.org. ``SemVer.inc`` reproduces
the increment rules of the npm ``semver`` package so versions produced here
match what JavaScript release tooling would produce for the same inputs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

__all__ = [
    "SemVer",
    "SemVerError",
    "IdentifierBase",
    "parse",
    "valid",
    "clean",
    "coerce",
]

MAX_LENGTH = 256

_NUM = r"0|[1-9]\d*"
_PRE_ID = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_BUILD_ID = r"[0-9a-zA-Z-]+"
_PRERELEASE = rf"{_PRE_ID}(?:\.{_PRE_ID})*"

_FULL_RE = re.compile(
    rf"^v?({_NUM})\.({_NUM})\.({_NUM})"
    rf"(?:-({_PRERELEASE}))?"
    rf"(?:\+({_BUILD_ID}(?:\.{_BUILD_ID})*))?$"
)
_PRERELEASE_RE = re.compile(rf"^{_PRERELEASE}$")
_COERCE_RE = re.compile(r"(^|[^\d])(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?:$|[^\d])")
_NUMERIC_RE = re.compile(r"^[0-9]+$")

type Identifier = int | str
type IdentifierBase = Literal["0", "1", False] | None


class SemVerError(ValueError):
    """Raised for unparsable versions and impossible increments."""


@dataclass(frozen=True, slots=True, eq=False)
class SemVer:
    """A parsed semantic version.

    Numeric prerelease identifiers are stored as ``int``. Build metadata is
    kept for display but ignored by comparisons, per semver.org.
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[Identifier, ...] = ()
    build: tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> SemVer:
        """Parse a strict version, allowing surrounding blanks and a leading "v".

        Raises:
            SemVerError: ``text`` is not a valid version.
        """
        s = text.strip()
        if len(s) > MAX_LENGTH:
            raise SemVerError(f"version is longer than {MAX_LENGTH} characters")
        m = _FULL_RE.match(s)
        if m is None:
            raise SemVerError(f"invalid version: {text!r}")
        pre = tuple(_identifier(p) for p in m.group(4).split(".")) if m.group(4) else ()
        build = tuple(m.group(5).split(".")) if m.group(5) else ()
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre, build)

    @property
    def is_prerelease(self) -> bool:
        return len(self.prerelease) > 0

    @property
    def core(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        out = self.core
        if self.prerelease:
            out += "-" + ".".join(str(p) for p in self.prerelease)
        return out

    def __repr__(self) -> str:
        return f"SemVer({str(self)!r})"

    # -- precedence --------------------------------------------------------

    def _key(self) -> tuple[int, int, int, tuple[object, ...]]:
        if not self.prerelease:
            # A release sorts after every prerelease of the same core.
            pre: tuple[object, ...] = (1,)
        else:
            pre = (
                0,
                tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.prerelease),
            )
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __lt__(self, other: SemVer) -> bool:
        return self._key() < other._key()

    def __le__(self, other: SemVer) -> bool:
        return self._key() <= other._key()

    def __gt__(self, other: SemVer) -> bool:
        return self._key() > other._key()

    def __ge__(self, other: SemVer) -> bool:
        return self._key() >= other._key()

    # -- increment ---------------------------------------------------------

    def inc(
        self,
        release: str,
        identifier: str | None = None,
        identifier_base: IdentifierBase = None,
    ) -> SemVer:
        """Return the version after a ``release`` increment.

        Args:
            release: major, minor, patch, premajor, preminor, prepatch,
                prerelease (or the internal "pre")
            identifier: Prerelease name such as "alpha"
            identifier_base: "0" or "1" for the first numeric identifier,
                False to emit no numeric identifier at all

        Raises:
            SemVerError: The increment cannot produce a valid version.
        """
        if release.startswith("pre"):
            if not identifier and identifier_base is False:
                raise SemVerError("invalid increment argument: identifier is empty")
            if identifier and _PRERELEASE_RE.match(identifier) is None:
                raise SemVerError(f"invalid identifier: {identifier}")

        state = _IncState(self.major, self.minor, self.patch, list(self.prerelease))
        state.apply(release, identifier, identifier_base)
        return SemVer.parse(state.format())


@dataclass(slots=True)
class _IncState:
    major: int
    minor: int
    patch: int
    prerelease: list[Identifier]

    def format(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            out += "-" + ".".join(str(p) for p in self.prerelease)
        return out

    def apply(self, release: str, identifier: str | None, identifier_base: IdentifierBase) -> None:
        match release:
            case "premajor":
                self.prerelease = []
                self.patch = 0
                self.minor = 0
                self.major += 1
                self.apply("pre", identifier, identifier_base)
            case "preminor":
                self.prerelease = []
                self.patch = 0
                self.minor += 1
                self.apply("pre", identifier, identifier_base)
            case "prepatch":
                self.prerelease = []
                self.apply("patch", identifier, identifier_base)
                self.apply("pre", identifier, identifier_base)
            case "prerelease":
                if not self.prerelease:
                    self.apply("patch", identifier, identifier_base)
                self.apply("pre", identifier, identifier_base)
            case "major":
                # 1.0.0-5 bumps to 1.0.0, 1.1.0 bumps to 2.0.0
                if self.minor != 0 or self.patch != 0 or not self.prerelease:
                    self.major += 1
                self.minor = 0
                self.patch = 0
                self.prerelease = []
            case "minor":
                if self.patch != 0 or not self.prerelease:
                    self.minor += 1
                self.patch = 0
                self.prerelease = []
            case "patch":
                if not self.prerelease:
                    self.patch += 1
                self.prerelease = []
            case "pre":
                self._bump_prerelease(identifier, identifier_base)
            case _:
                raise SemVerError(f"invalid increment argument: {release}")

    def _bump_prerelease(self, identifier: str | None, identifier_base: IdentifierBase) -> None:
        base = 1 if _truthy_number(identifier_base) else 0

        if not self.prerelease:
            self.prerelease = [base]
        else:
            bumped = False
            for i in range(len(self.prerelease) - 1, -1, -1):
                value = self.prerelease[i]
                if isinstance(value, int):
                    self.prerelease[i] = value + 1
                    bumped = True
                    break
            if not bumped:
                joined = ".".join(str(p) for p in self.prerelease)
                if identifier == joined and identifier_base is False:
                    raise SemVerError("invalid increment argument: identifier already exists")
                self.prerelease.append(base)

        if identifier:
            fresh: list[Identifier] = [identifier] if identifier_base is False else [identifier, base]
            if _same_identifier(self.prerelease[0], identifier):
                second = self.prerelease[1] if len(self.prerelease) > 1 else None
                if not isinstance(second, int):
                    self.prerelease = fresh
            else:
                self.prerelease = fresh


def _identifier(part: str) -> Identifier:
    return int(part) if _NUMERIC_RE.match(part) else part


def _truthy_number(value: IdentifierBase) -> bool:
    if not isinstance(value, str):
        return False
    try:
        return float(value) != 0
    except ValueError:
        return False


def _same_identifier(a: Identifier, b: Identifier) -> bool:
    a_num = _NUMERIC_RE.match(str(a)) is not None
    b_num = _NUMERIC_RE.match(str(b)) is not None
    if a_num and b_num:
        return int(a) == int(b)
    return str(a) == str(b)


def parse(text: str) -> SemVer | None:
    """Parse ``text``, returning None instead of raising."""
    try:
        return SemVer.parse(text)
    except SemVerError:
        return None


def valid(text: str) -> str | None:
    """Return the normalized version string, or None if ``text`` is invalid."""
    v = parse(text)
    return str(v) if v is not None else None


def clean(text: str) -> str | None:
    """Strip blanks and leading "=" / "v" characters, then validate."""
    return valid(re.sub(r"^[=v]+", "", text.strip()))


def coerce(text: str) -> SemVer | None:
    """Extract the first ``X[.Y[.Z]]`` number run from arbitrary text.

    Prerelease and build parts are dropped: ``"v2.1-beta"`` becomes ``2.1.0``.
    """
    m = _COERCE_RE.search(text)
    if m is None:
        return None
    return SemVer(int(m.group(2)), int(m.group(3) or 0), int(m.group(4) or 0))
