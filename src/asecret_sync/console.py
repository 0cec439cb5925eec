"""Rich console output for the operator.

Every message is written with a timestamp through one themed console so
that reconciliation progress reads as a log when the operator runs
unattended, and as styled output when run from a terminal.
"""

from collections.abc import Generator, Mapping
from contextlib import contextmanager

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "highlight": "cyan bold",
        "muted": "dim",
    }
)

# Shared console instance
console = Console(theme=_THEME, log_path=False)


def info(message: str) -> None:
    """Log an informational message."""
    console.log(f"[info]ℹ[/info] {message}")


def success(message: str) -> None:
    """Log a success message."""
    console.log(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    """Log a warning message."""
    console.log(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Log an error message."""
    console.log(f"[error]✗[/error] {message}")


def action(message: str) -> None:
    """Log the start of an operation against one of the stores."""
    console.log(f"[info]→[/info] {message}")


def step(message: str) -> None:
    """Log a sub-step of the current operation."""
    console.log(f"[muted]•[/muted] {message}")


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
    """Display a spinner while waiting on a remote call.

    Args:
        message: The status message to display.

    Yields:
        None

    """
    with console.status(f"[info]{message}[/info]", spinner="dots"):
        yield


def summary_panel(title: str, items: Mapping[str, str], *, ok: bool = True) -> None:
    """Print a panel with label/value rows summarising a reconciliation.

    Args:
        title: Title for the panel.
        items: Label -> value pairs to display.
        ok: Green border when True, red otherwise.

    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="cyan")

    for label, value in items.items():
        table.add_row(f"{label}:", value)

    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="green" if ok else "red"))
