"""
Rich progress displays for CLI operations.

All output goes to stderr to preserve stdout for machine-readable output.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from nanobanana.cli.utils import history_timestamp
from nanobanana.core.history import HistoryItem

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)

PROMPT_PREVIEW_MAX = 60


@contextmanager
def generation_progress(
    model: str | None = None,
    style: str | None = None,
    consistency: int | None = None,
) -> Iterator[None]:
    """
    Display a spinner while the edit request (with retries) is running.

    Args:
        model: The image model being used
        style: The selected style preset
        consistency: The consistency setting (0-100)

    Yields:
        None while generation is in progress
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[yellow]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )

    desc_parts = ["Bananas are brewing"]
    if model:
        # Truncate long model names
        model_display = model if len(model) <= 40 else f"{model[:37]}..."
        desc_parts.append(f"[dim]({escape(model_display)})[/dim]")

    features = []
    if style:
        features.append(f"[dim yellow]{escape(style)}[/dim yellow]")
    if consistency is not None:
        features.append(f"[dim cyan]consistency {consistency}%[/dim cyan]")
    if features:
        desc_parts.append("• " + " + ".join(features))

    with progress:
        task = progress.add_task(" ".join(desc_parts), total=None)
        yield
        progress.update(task, completed=True)


def print_success_result(
    output_path: Path,
    generation_time: float,
    model_used: str,
    prompt_used: str,
    style: str,
    consistency: int,
    attempts: int,
    history_saved: bool,
) -> None:
    """
    Print a rich formatted success message with generation details.

    Args:
        output_path: Path where the image was saved
        generation_time: Time taken including retries (seconds)
        model_used: The model that generated the image
        prompt_used: The edit instruction
        style: The style preset
        consistency: The consistency setting
        attempts: Number of attempts made (1 = first try)
        history_saved: Whether the edit was added to local history
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    table.add_row("Saved to", f"[bold green]{escape(str(output_path))}[/bold green]")
    table.add_row("Model", escape(model_used))
    table.add_row("Time", f"{generation_time:.1f}s")
    table.add_row("Style", f"{escape(style)} • consistency {consistency}%")
    if attempts > 1:
        table.add_row("Attempts", str(attempts))
    table.add_row("History", "[green]✓[/green] Saved" if history_saved else "[dim]not saved[/dim]")
    table.add_row("Prompt", f"[dim]{escape(prompt_used)}[/dim]")

    panel = Panel(
        table,
        title="[bold yellow]✨ Magic Generated[/bold yellow]",
        border_style="yellow",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)


def print_history_table(items: Sequence[HistoryItem]) -> None:
    """Print past generations, most recent first."""
    if not items:
        print_info("No past generations yet.")
        return

    table = Table(title=f"Past Generations ({len(items)})", title_style="bold yellow")
    table.add_column("#", style="dim", justify="right")
    table.add_column("When", style="cyan")
    table.add_column("Style", style="yellow")
    table.add_column("Prompt", style="white")

    for index, item in enumerate(items):
        prompt = item.prompt
        if len(prompt) > PROMPT_PREVIEW_MAX:
            prompt = f"{prompt[: PROMPT_PREVIEW_MAX - 3]}..."
        table.add_row(str(index), history_timestamp(item.id), escape(item.style), escape(prompt))

    console.print(table)


def print_info(message: str) -> None:
    """Print an info message in cyan."""
    console.print(f"[cyan]ℹ[/cyan] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {escape(message)}")
