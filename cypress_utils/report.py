"""Render aggregated statistics as tables."""

from typing import Any

from rich.console import Console
from rich.table import Table

from cypress_utils.aggregator import SubjectStats
from cypress_utils.models.settings import Command


def header_text(command: Command, elapsed_seconds: int, trial_count: int) -> str:
    """Describe what was run and how long it took."""
    if command == "stress-test":
        return f"Stress tested {trial_count} trial(s) in {elapsed_seconds}s"
    return f"Ran specs in parallel in {elapsed_seconds}s"


def subject_table(subject: str, stats: dict[str, Any]) -> Table:
    """Build the table for one subject."""
    table = Table(title=subject, title_style="bold cyan", show_lines=True)
    table.add_column("Stat", style="bold")
    table.add_column("Total", justify="right")
    for name, value in stats.items():
        style = "red" if name == "failures" and value else ""
        table.add_row(name, f"[{style}]{value}[/{style}]" if style else str(value))
    return table


def render_report(
    console: Console,
    *,
    command: Command,
    elapsed_seconds: int,
    trial_count: int,
    stats: SubjectStats,
    failed_samples: int = 0,
) -> None:
    """Print the header and one table per subject."""
    console.print()
    console.print(f"[bold]{header_text(command, elapsed_seconds, trial_count)}[/bold]")
    console.print()

    if not stats:
        console.print("[yellow]No countable runs to report.[/yellow]")

    for subject, subject_stats in stats.items():
        console.print(subject_table(subject, dict(subject_stats)))

    if failed_samples:
        console.print(
            f"[yellow]{failed_samples} run(s) could not complete "
            "and were left out of the totals.[/yellow]"
        )


def format_output(
    *,
    command: Command,
    elapsed_seconds: int,
    trial_count: int,
    stats: SubjectStats,
    failed_samples: int = 0,
) -> dict[str, Any]:
    """Format the report for JSON output."""
    output: dict[str, Any] = {
        "command": command,
        "elapsed_seconds": elapsed_seconds,
        "failed_samples": failed_samples,
        "subjects": {subject: dict(values) for subject, values in stats.items()},
    }
    if command == "stress-test":
        output["trial_count"] = trial_count
    return output
