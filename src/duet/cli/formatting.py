"""Rich formatting helpers for the Duet CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from duet.context import to_json
from duet.schema import constraint_labels, type_label

if TYPE_CHECKING:
    from duet.duet import Duet
    from duet.models.result import EditResult


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_state(duet: Duet, console: Console) -> None:
    """Display every field with its label, type, and current value."""
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Field", style="cyan")
    table.add_column("Label")
    table.add_column("Type", style="dim")
    table.add_column("Value", style="green")

    data = duet.data
    for field_id, definition in duet.schema.fields.items():
        classification = definition.type.classify()
        type_str = ", ".join([type_label(classification), *constraint_labels(classification)])
        table.add_row(
            escape(field_id),
            escape(definition.label),
            escape(type_str),
            escape(to_json(data[field_id])),
        )

    console.print(f"[bold]{escape(duet.name)}[/bold]")
    console.print(table)


def format_result(result: EditResult, console: Console) -> None:
    """Display an edit result: green count on success, red reason on failure."""
    if result.success:
        console.print(f"[green]Applied {result.applied} operation(s)[/green]")
    else:
        format_error(result.error or "", console)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
