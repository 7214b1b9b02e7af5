"""Jinja2 rendering of engineer and document reports as Markdown.

Templates live in ``sprintdoc/reporter/templates/`` and receive the
summary models directly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .summary import DocumentSummary, EngineerSummary, EngineerTask

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


def _format_date(value: Any) -> str:
    return value.strftime("%d/%m/%Y") if value is not None else "-"


def _format_points(value: Any) -> str:
    if value is None:
        return "-"
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _ticket_link(task: EngineerTask) -> str:
    ticket = task.ticket_id or "(no ticket)"
    return f"[{ticket}]({task.url})" if task.url else ticket


class MarkdownReportRenderer:
    """Renders summaries with the bundled (or a caller-supplied) templates."""

    ENGINEER_TEMPLATE = "engineer_report.md.j2"
    DOCUMENT_TEMPLATE = "document_report.md.j2"

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["ddmmyyyy"] = _format_date
        self.env.filters["points"] = _format_points
        self.env.filters["ticket_link"] = _ticket_link

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        return self.env.get_template(template_name).render(**context)

    def render_engineer(self, summary: EngineerSummary) -> str:
        """Markdown report of one engineer's tasks."""
        return self.render(self.ENGINEER_TEMPLATE, {"summary": summary})

    def render_document(self, summary: DocumentSummary) -> str:
        """Markdown report covering every engineer in the document."""
        return self.render(self.DOCUMENT_TEMPLATE, {"document": summary})
