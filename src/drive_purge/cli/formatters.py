"""Rich formatting utilities for terminal output."""

from typing import Any, Optional

from humanize import naturalsize
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

console = Console()


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print error message."""
    console.print(f"[red]✗[/red] {message}", style="red")


def print_warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


def print_info(message: str) -> None:
    """Print info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_panel(title: str, content: str, style: str = "blue") -> None:
    """Print content in a panel.

    Args:
        title: Panel title
        content: Panel content
        style: Panel border style
    """
    console.print(Panel(content, title=title, border_style=style))


def format_size(size: Optional[int]) -> str:
    """Human-readable size, or a placeholder when the size is unknown."""
    if size is None:
        return "Unknown size"
    return naturalsize(size)


def format_total(known_bytes: int, unknown_count: int) -> str:
    """Byte total that mentions files of unknown size instead of counting them as zero."""
    text = naturalsize(known_bytes)
    if unknown_count:
        text += f" (+{unknown_count} of unknown size)"
    return text


def mask_secret(value: Optional[str]) -> str:
    """Show only the last four characters of a secret."""
    if not value:
        return "None"
    if len(value) <= 4:
        return "****"
    return "*" * 8 + value[-4:]


def truncate(text: str, width: int) -> str:
    return text[: width - 3] + "..." if len(text) > width else text


def create_progress() -> Progress:
    """Create a progress bar with common columns.

    Returns:
        Configured Progress instance
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def create_table(title: Optional[str] = None, **kwargs: Any) -> Table:
    """Create a Rich table with common styling.

    Args:
        title: Optional table title
        **kwargs: Additional Table arguments

    Returns:
        Configured Table instance
    """
    return Table(title=title, show_header=True, header_style="bold cyan", **kwargs)
