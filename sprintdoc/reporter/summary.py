"""Per-engineer task summaries built from parsed assignments."""

from __future__ import annotations

from collections import Counter
from typing import Optional

from pydantic import BaseModel, Field

from sprintdoc.config import ParserConfig
from sprintdoc.parser.models import (
    Assignment,
    DateBundle,
    MissingInfo,
    ParseResult,
    Priority,
    Role,
    SectionKind,
)
from sprintdoc.platforms import Platform


STATUS_DELETED = "Deleted"
STATUS_NEEDS_UPDATE = "Needs Update"
STATUS_IN_PROGRESS = "In Progress"


class EngineerTask(BaseModel):
    """One assignment seen from a single engineer's point of view."""
    ticket_id: Optional[str] = None
    requirement_id: Optional[str] = None
    section: str = ""
    section_kind: SectionKind = SectionKind.OTHER
    epic_title: Optional[str] = None
    role: Role
    platform: Optional[Platform] = None
    confident: Optional[bool] = None
    story_points: Optional[float] = None
    priority: Optional[Priority] = None
    status: str = STATUS_IN_PROGRESS
    missing_info: list[MissingInfo] = Field(default_factory=list)
    dates: Optional[DateBundle] = None
    url: Optional[str] = None
    requirement_url: Optional[str] = None
    raw_text: str = ""


class TaskStatistics(BaseModel):
    by_section: dict[str, int] = Field(default_factory=dict)
    by_platform: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    by_role: dict[str, int] = Field(default_factory=dict)


class EngineerSummary(BaseModel):
    engineer: str
    task_count: int = 0
    total_story_points: float = 0.0
    tasks: list[EngineerTask] = Field(default_factory=list)
    statistics: TaskStatistics = Field(default_factory=TaskStatistics)


class DocumentSummary(BaseModel):
    total_engineers: int = 0
    total_tasks: int = 0
    sections: list[str] = Field(default_factory=list)
    engineers: list[EngineerSummary] = Field(default_factory=list)
    statistics: TaskStatistics = Field(default_factory=TaskStatistics)
    warnings: list[str] = Field(default_factory=list)


def ticket_url(ticket_id: Optional[str], base_url: str) -> Optional[str]:
    """Browse link for *ticket_id*, or None without a ticket or base URL."""
    if not ticket_id or not base_url:
        return None
    return f"{base_url.rstrip('/')}/browse/{ticket_id}"


def task_status(assignment: Assignment) -> str:
    if assignment.status.deleted:
        return STATUS_DELETED
    if assignment.status.needs_update:
        return STATUS_NEEDS_UPDATE
    return STATUS_IN_PROGRESS


def _statistics(tasks: list[EngineerTask]) -> TaskStatistics:
    return TaskStatistics(
        by_section=dict(Counter(t.section or "Untitled" for t in tasks)),
        by_platform=dict(Counter(t.platform.value if t.platform else "Unspecified" for t in tasks)),
        by_status=dict(Counter(t.status for t in tasks)),
        by_role=dict(Counter(t.role.value for t in tasks)),
    )


def summarize_by_engineer(
    assignments: list[Assignment], config: Optional[ParserConfig] = None
) -> list[EngineerSummary]:
    """Group *assignments* by engineer, in order of first appearance.

    An engineer listed twice on one line gets a single task for it.
    """
    config = config or ParserConfig()
    summaries: dict[str, EngineerSummary] = {}
    for assignment in assignments:
        seen: set[str] = set()
        for assignee in assignment.assignees:
            key = assignee.name.lower()
            if key in seen:
                continue
            seen.add(key)
            summary = summaries.setdefault(key, EngineerSummary(engineer=assignee.name))
            summary.tasks.append(
                EngineerTask(
                    ticket_id=assignment.ticket_id,
                    requirement_id=assignment.requirement_id,
                    section=assignment.section_name,
                    section_kind=assignment.section_kind,
                    epic_title=assignment.epic_title,
                    role=assignee.role,
                    platform=assignee.platform,
                    confident=assignee.confident,
                    story_points=assignee.story_points,
                    priority=assignee.priority,
                    status=task_status(assignment),
                    missing_info=assignment.status.missing_info,
                    dates=assignment.dates,
                    url=ticket_url(assignment.ticket_id, config.tracker_base_url),
                    requirement_url=ticket_url(assignment.requirement_id, config.tracker_base_url),
                    raw_text=assignment.raw_text,
                )
            )

    for summary in summaries.values():
        summary.task_count = len(summary.tasks)
        summary.total_story_points = sum(t.story_points or 0.0 for t in summary.tasks)
        summary.statistics = _statistics(summary.tasks)
    return list(summaries.values())


def summarize_document(result: ParseResult, config: Optional[ParserConfig] = None) -> DocumentSummary:
    """Whole-document roll-up: per-engineer summaries plus overall counts."""
    engineers = summarize_by_engineer(result.assignments, config)
    all_tasks = [task for summary in engineers for task in summary.tasks]
    return DocumentSummary(
        total_engineers=len(engineers),
        total_tasks=len(result.assignments),
        sections=result.data.sections if result.data else [],
        engineers=engineers,
        statistics=_statistics(all_tasks),
        warnings=result.warnings,
    )


def find_engineer(summaries: list[EngineerSummary], name: str) -> Optional[EngineerSummary]:
    """Find a summary by name: exact first, then substring either way (case-insensitive)."""
    needle = name.strip().lower()
    if not needle:
        return None
    for summary in summaries:
        if summary.engineer.lower() == needle:
            return summary
    for summary in summaries:
        candidate = summary.engineer.lower()
        if needle in candidate or candidate in needle:
            return summary
    return None
