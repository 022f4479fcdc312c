"""Output formatting utilities using Rich."""

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def print_error(msg: str) -> None:
    """Print an error message to the console.

    Args:
        msg: The error message to display.
    """
    err_console.print(f"[bold red]Error:[/bold red] {msg}")


def print_success(msg: str) -> None:
    """Print a success message to the console.

    Args:
        msg: The success message to display.
    """
    console.print(f"[bold green]✓[/bold green] {msg}")


def print_info(msg: str) -> None:
    """Print an info message to the console.

    Args:
        msg: The info message to display.
    """
    console.print(f"[cyan]{msg}[/cyan]")


def print_cancelled(msg: str = "Cancelled") -> None:
    console.print(f"[yellow]{msg}[/yellow]")


def create_table(
    title: str | None = None,
    columns: list[tuple[str, str]] | None = None,
    rows: list[list[str]] | None = None,
    show_header: bool = True,
) -> Table:
    """Create a Rich table.

    Args:
        title: Optional table title.
        columns: List of (column_name, column_style) tuples.
        rows: List of row data.
        show_header: Whether to show the header row.

    Returns:
        A configured Rich Table instance.
    """
    table = Table(title=title, show_header=show_header, header_style="bold cyan")

    if columns:
        for col_name, col_style in columns:
            table.add_column(col_name, style=col_style)

    if rows:
        for row in rows:
            table.add_row(*row)

    return table


def confirm(message: str, default: bool = False) -> bool:
    """Prompt user for confirmation.

    Args:
        message: The confirmation message to display.
        default: Default choice if user just presses enter.

    Returns:
        True if user confirmed, False otherwise.
    """
    return Confirm.ask(message, default=default)


def format_memory(mb: int) -> str:
    """Format a size in MB (e.g., '2.0 GB')."""
    value = float(mb)
    for unit in ["MB", "GB", "TB"]:
        if value < 1024.0:
            return f"{value:.1f} {unit}"
        value /= 1024.0
    return f"{value:.1f} PB"


def format_uptime(seconds: int) -> str:
    """Format uptime in seconds to human-readable string.

    Args:
        seconds: Uptime in seconds.

    Returns:
        Formatted string (e.g., '15d 3h 22m').
    """
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, _ = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or not parts:
        parts.append(f"{minutes}m")

    return " ".join(parts)


def get_status_color(status: str) -> str:
    """Get the Rich color name for a status string.

    Args:
        status: The status string (e.g., 'running', 'stopped').

    Returns:
        Rich color name ('green', 'red', 'yellow', or 'white').
    """
    status_lower = status.lower()
    if status_lower == "running":
        return "green"
    elif status_lower in ["stopped", "error"]:
        return "red"
    elif status_lower == "exited":
        return "yellow"
    else:
        return "white"
