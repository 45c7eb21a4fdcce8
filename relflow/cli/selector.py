"""Arrow-key list selector for the version prompt.

Renders a two-column table (choice, details) with plain ANSI escapes and reads
single key presses from the terminal. Falls back to no color when stdout is
not a TTY, ``NO_COLOR`` is set or ``TERM=dumb``.
"""

from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass
from typing import Literal

__all__ = [
    "SelectorOption",
    "SelectorResult",
    "is_interactive_terminal",
    "select_one",
]

type Key = Literal["up", "down", "enter", "cancel", "other"]


@dataclass(frozen=True, slots=True)
class SelectorOption[T]:
    value: T
    label: str
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class SelectorResult[T]:
    action: Literal["select", "cancel"]
    value: T | None
    index: int


def is_interactive_terminal() -> bool:
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def _color_enabled() -> bool:
    if not is_interactive_terminal():
        return False
    if os.getenv("NO_COLOR") is not None:
        return False
    return os.getenv("TERM", "").lower() != "dumb"


def _paint(text: str, *codes: str) -> str:
    if not _color_enabled() or not codes:
        return text
    return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


def _clear() -> None:
    sys.stdout.write("\x1b[2J\x1b[H")


def _key_for(ch: str) -> Key:
    if ch in ("\r", "\n"):
        return "enter"
    if ch in ("q", "Q", "\x03"):
        return "cancel"
    if ch == "k":
        return "up"
    if ch == "j":
        return "down"
    return "other"


def _read_key() -> Key:
    if os.name == "nt":
        import msvcrt

        ch = msvcrt.getwch()
        if ch in ("\x00", "\xe0"):
            arrow = msvcrt.getwch()
            return {"H": "up", "P": "down"}.get(arrow, "other")  # type: ignore[return-value]
        if ch == "\x1b":
            return "cancel"
        return _key_for(ch)

    import termios
    import tty

    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        ch = sys.stdin.read(1)
        if ch == "\x1b":
            if sys.stdin.read(1) == "[":
                arrow = sys.stdin.read(1)
                if arrow == "A":
                    return "up"
                if arrow == "B":
                    return "down"
            return "cancel"
        return _key_for(ch)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)


def _pad(text: str, width: int) -> str:
    if len(text) > width:
        text = text[: max(0, width - 3)] + "..." if width > 3 else text[:width]
    return text.ljust(width)


def _line(widths: list[int]) -> str:
    return "+" + "+".join("-" * (w + 2) for w in widths) + "+"


def _row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def _render(*, title: str, options: list[SelectorOption[object]], index: int) -> None:
    cols = max(60, min(120, shutil.get_terminal_size((100, 30)).columns))
    label_w = max(12, max(len(o.label) for o in options))
    detail_w = max(12, cols - (label_w + 12))
    widths = [3, label_w, detail_w]

    _clear()
    print(_paint(title, "1", "96"))
    print()
    print(_line(widths))
    for i, opt in enumerate(options):
        cells = [
            _pad(">>" if i == index else "", 3),
            _pad(opt.label, label_w),
            _pad(opt.detail or "", detail_w),
        ]
        if i == index:
            print(_row([_paint(c, "1", "30", "46") for c in cells]))
        else:
            print(_row([cells[0], _paint(cells[1], "97"), _paint(cells[2], "2", "37")]))
    print(_line(widths))
    print()
    print(f"{_paint('Up/Down', '1', '97')} + Enter to choose, {_paint('q', '1', '97')} to cancel")
    sys.stdout.flush()


def select_one[T](
    *,
    title: str,
    options: list[SelectorOption[T]],
    initial_index: int = 0,
) -> SelectorResult[T]:
    """Let the user pick one option.

    Raises:
        ValueError: ``options`` is empty.
        RuntimeError: stdin or stdout is not a terminal.
    """
    if not options:
        raise ValueError("selector requires at least one option")
    if not is_interactive_terminal():
        raise RuntimeError("interactive selector requires a TTY")

    idx = max(0, min(initial_index, len(options) - 1))
    shown: list[SelectorOption[object]] = [
        SelectorOption(value=o.value, label=o.label, detail=o.detail) for o in options
    ]
    while True:
        _render(title=title, options=shown, index=idx)
        match _read_key():
            case "up":
                idx = (idx - 1) % len(options)
            case "down":
                idx = (idx + 1) % len(options)
            case "enter":
                return SelectorResult(action="select", value=options[idx].value, index=idx)
            case "cancel":
                return SelectorResult(action="cancel", value=None, index=idx)
            case "other":
                pass
