"""Terminal implementation of the release ``Prompter``."""

from __future__ import annotations

import typer

from relflow.core.result import Err, Ok, Result
from relflow.release.env import Choice
from relflow.release.errors import ReleaseError

from .selector import SelectorOption, is_interactive_terminal, select_one

__all__ = ["TerminalPrompter"]

_NO_TTY_HINT = "Pass --ci with --bump-strategy or --release-type to run unattended"


def _cancelled() -> Err[ReleaseError]:
    return Err(ReleaseError(kind="cancelled", message="release cancelled"))


class TerminalPrompter:
    """Prompts on the controlling terminal. Refuses to block without one."""

    def select(
        self, title: str, choices: list[Choice], *, initial_index: int = 0
    ) -> Result[str, ReleaseError]:
        if not is_interactive_terminal():
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"cannot prompt ({title}): not an interactive terminal",
                    hint=_NO_TTY_HINT,
                )
            )

        options = [SelectorOption(value=c.value, label=c.label, detail=c.detail) for c in choices]
        picked = select_one(title=title, options=options, initial_index=initial_index)
        if picked.action == "cancel" or picked.value is None:
            return _cancelled()
        return Ok(picked.value)

    def text(self, message: str) -> Result[str, ReleaseError]:
        if not is_interactive_terminal():
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"cannot prompt ({message}): not an interactive terminal",
                    hint=_NO_TTY_HINT,
                )
            )
        try:
            value: str = typer.prompt(message, default="", show_default=False)
        except typer.Abort:
            return _cancelled()
        return Ok(value.strip())
