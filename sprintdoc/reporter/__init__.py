"""Reports over parsed sprint assignments: summaries, console tables, Markdown."""

from sprintdoc.reporter.console import print_document_summary, print_engineer_tasks
from sprintdoc.reporter.markdown import MarkdownReportRenderer
from sprintdoc.reporter.summary import (
    DocumentSummary,
    EngineerSummary,
    EngineerTask,
    TaskStatistics,
    find_engineer,
    summarize_by_engineer,
    summarize_document,
    ticket_url,
)

__all__ = [
    "DocumentSummary",
    "EngineerSummary",
    "EngineerTask",
    "MarkdownReportRenderer",
    "TaskStatistics",
    "find_engineer",
    "print_document_summary",
    "print_engineer_tasks",
    "summarize_by_engineer",
    "summarize_document",
    "ticket_url",
]
