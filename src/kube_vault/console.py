"""Rich console utilities for styled terminal output.

This module provides a consistent, visually appealing interface for all
CLI output using the Rich library. Status messages go to stderr so that
stdout only ever carries command output (requirement listings, YAML).
"""

from collections.abc import Generator
from contextlib import contextmanager

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

# Custom theme with consistent colors
_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "highlight": "cyan bold",
    }
)

# Shared console instance for status messages
console = Console(theme=_THEME, stderr=True)

# Console for command output
output = Console(theme=_THEME, highlight=False)


def info(message: str) -> None:
    """Print an informational message.

    Args:
        message: The message to display.

    """
    console.print(f"[info]ℹ[/info] {message}")


def success(message: str) -> None:
    """Print a success message.

    Args:
        message: The message to display.

    """
    console.print(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    """Print a warning message.

    Args:
        message: The message to display.

    """
    console.print(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Print an error message.

    Args:
        message: The message to display.

    """
    console.print(f"[error]✗[/error] {message}")


def action(message: str) -> None:
    """Print an action/progress message.

    Args:
        message: The message to display.

    """
    console.print(f"[info]→[/info] {message}")


def highlight(text: str) -> str:
    """Return text wrapped in highlight markup.

    Args:
        text: The text to highlight.

    Returns:
        Text wrapped in Rich markup for highlighting.

    """
    return f"[highlight]{text}[/highlight]"


@contextmanager
def spinner(message: str) -> Generator[None, None, None]:
    """Display a spinner while performing an operation.

    Args:
        message: The status message to display.

    Yields:
        None

    """
    with console.status(f"[info]{message}[/info]", spinner="dots"):
        yield


def summary_panel(title: str, items: dict[str, str], *, passed: bool = True) -> None:
    """Print a summary panel with key-value pairs.

    Args:
        title: Title for the panel.
        items: Dictionary of label -> value pairs to display.
        passed: Draw a green border when True, a red one otherwise.

    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="cyan")

    for label, value in items.items():
        table.add_row(f"{label}:", value)

    border = "green" if passed else "red"
    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style=border))


def emit(text: str) -> None:
    """Write a line of command output to stdout, without wrapping."""
    output.print(text, soft_wrap=True, markup=False)
