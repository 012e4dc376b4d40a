"""Live osu! score feed package."""

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

console = Console()


def fetch_progress(label: str, **extra_columns: str) -> Progress:
    """Create a spinner progress display for paged fetches.

    Args:
        label: Bold blue label text (e.g. "Backfilling score history...")
        **extra_columns: Additional task field columns as format strings
                         (e.g. page="page {task.fields[page]}")
    """
    columns = [
        SpinnerColumn(),
        TextColumn(f"[bold blue]{label}"),
        *[TextColumn(fmt) for fmt in extra_columns.values()],
    ]
    return Progress(*columns, console=console, transient=True)
