# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Interactive prompts and terminal rendering for ``aoi``."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.prompt import Confirm, Prompt


console = Console()


def ask_text(label: str) -> str:
    """Prompt for a line of text; empty input returns ``""``."""
    return Prompt.ask(label, console=console, default="", show_default=False)


def confirm(question: str) -> bool:
    """Ask a yes/no question defaulting to no."""
    return Confirm.ask(question, console=console, default=False)


def select(label: str, options: Sequence[str]) -> str:
    """Prompt for one of ``options``; a single option is chosen silently."""
    if len(options) == 1:
        return options[0]
    return Prompt.ask(
        label, console=console, choices=list(options), default=options[0]
    )


def render_markdown(text: str) -> None:
    """Render markdown to the terminal."""
    console.print(Markdown(text))
