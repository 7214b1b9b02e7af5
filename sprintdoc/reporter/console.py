"""Rich console rendering of summaries."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sprintdoc.utils import console as default_console

from .summary import (
    STATUS_DELETED,
    STATUS_NEEDS_UPDATE,
    DocumentSummary,
    EngineerSummary,
)

_STATUS_STYLE = {
    STATUS_DELETED: "dim strike",
    STATUS_NEEDS_UPDATE: "yellow",
}
_ROLE_STYLE = {"PIC": "green bold", "Support": "cyan", "Guide": "magenta"}


def _points(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return str(int(value)) if value.is_integer() else f"{value:g}"


def _task_table(summary: EngineerSummary) -> Table:
    table = Table(title=f"{summary.engineer}", show_lines=False)
    table.add_column("Ticket", no_wrap=True)
    table.add_column("Section")
    table.add_column("Epic")
    table.add_column("Role")
    table.add_column("Platform")
    table.add_column("SP", justify="right")
    table.add_column("Status")
    table.add_column("Missing")

    for task in summary.tasks:
        role_style = _ROLE_STYLE.get(task.role.value, "white")
        star = " (*)" if task.priority else ""
        status_style = _STATUS_STYLE.get(task.status, "white")
        table.add_row(
            task.ticket_id or "[red](none)[/red]",
            escape(task.section or "-"),
            escape(task.epic_title or "-"),
            f"[{role_style}]{task.role.value}{star}[/{role_style}]",
            task.platform.value if task.platform else "-",
            _points(task.story_points),
            f"[{status_style}]{task.status}[/{status_style}]",
            ", ".join(tag.value for tag in task.missing_info) or "-",
        )
    return table


def print_engineer_tasks(summary: EngineerSummary, console: Optional[Console] = None) -> None:
    """Pretty-print one engineer's tasks."""
    console = console or default_console
    console.print(_task_table(summary))
    console.print(
        f"  Tasks: {summary.task_count}  "
        f"Story points: {_points(summary.total_story_points)}  "
        + "  ".join(f"{k}: {v}" for k, v in summary.statistics.by_status.items())
    )


def print_document_summary(summary: DocumentSummary, console: Optional[Console] = None) -> None:
    """Pretty-print the whole-document roll-up."""
    console = console or default_console
    console.print(
        Panel(
            f"[bold]Sprint Assignments[/bold]\n"
            f"Sections: {escape(', '.join(summary.sections)) or '-'}\n"
            f"Engineers: {summary.total_engineers}\n"
            f"Assignments: {summary.total_tasks}",
            title="sprintdoc",
            border_style="yellow" if summary.warnings else "green",
        )
    )

    if summary.engineers:
        table = Table(title="Engineers", show_lines=False)
        table.add_column("Engineer", no_wrap=True)
        table.add_column("Tasks", justify="right")
        table.add_column("SP", justify="right")
        table.add_column("PIC", justify="right")
        table.add_column("Support", justify="right")
        table.add_column("Needs update", justify="right")
        for engineer in summary.engineers:
            stats = engineer.statistics
            table.add_row(
                engineer.engineer,
                str(engineer.task_count),
                _points(engineer.total_story_points),
                str(stats.by_role.get("PIC", 0)),
                str(stats.by_role.get("Support", 0) + stats.by_role.get("Guide", 0)),
                str(stats.by_status.get(STATUS_NEEDS_UPDATE, 0)),
            )
        console.print(table)

    if summary.warnings:
        console.print("\n[yellow bold]Warnings:[/yellow bold]")
        for warning in summary.warnings:
            console.print(f"  [yellow]- {escape(warning)}[/yellow]", highlight=False)
