"""Rich console utilities for devbox-docker."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

DEVBOX_DOCKER_THEME = Theme({
    "ok": "green",
    "error": "bold red",
    "warning": "yellow",
    "store.name": "bold",
    "store.path": "dim",
})

# stdout console
console = Console(theme=DEVBOX_DOCKER_THEME)

# stderr console
err_console = Console(stderr=True, theme=DEVBOX_DOCKER_THEME)


def print_msg(message: str) -> None:
    """Print message to stdout."""
    console.print(message)


def print_error(message: str, end: str = "\n") -> None:
    """Print message to stderr."""
    err_console.print(message, end=end)


def print_step(message: str) -> None:
    """Print a build step header to stderr."""
    err_console.print(f"[bold]==>[/bold] {message}")


def yellow(text: str) -> str:
    """Return text wrapped in yellow markup."""
    return f"[warning]{text}[/warning]"


def red(text: str) -> str:
    """Return text wrapped in red/error markup."""
    return f"[error]{text}[/error]"


def green(text: str) -> str:
    """Return text wrapped in green/ok markup."""
    return f"[ok]{text}[/ok]"


def create_duplicates_table() -> Table:
    """Create a table for duplicate store path reporting.

    Note: no_wrap=True keeps store paths on one line for copy/paste.
    """
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("PACKAGE", no_wrap=True, style="store.name")
    table.add_column("STORE PATHS", no_wrap=True, style="store.path")
    return table
