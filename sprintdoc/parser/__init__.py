"""Sprint-planning document parser.

Reads a sprint-planning page (storage-format HTML or plain text) and
extracts who is assigned to which ticket, in what role, on which
platform, with which dates and flags.

Usage::

    from sprintdoc.parser import parse_document, get_assignments_for_engineer

    result = parse_document(markup)
    for assignment in result.assignments:
        print(assignment.ticket_id, [a.name for a in assignment.assignees])

    mine = get_assignments_for_engineer(markup, "AnhL")
    print(len(mine.as_pic), len(mine.as_support), len(mine.techdebt))
"""

from sprintdoc.parser.models import (
    Assignee,
    Assignment,
    AssignmentStatus,
    DateBundle,
    Document,
    EngineerAssignments,
    EpicItem,
    MissingInfo,
    ParseData,
    ParseResult,
    Priority,
    Role,
    Section,
    SectionKind,
)
from sprintdoc.parser.extractor import get_assignments_for_engineer, parse_document
from sprintdoc.platforms import Platform

__all__ = [
    "parse_document",
    "get_assignments_for_engineer",
    "Assignee",
    "Assignment",
    "AssignmentStatus",
    "DateBundle",
    "Document",
    "EngineerAssignments",
    "EpicItem",
    "MissingInfo",
    "ParseData",
    "ParseResult",
    "Platform",
    "Priority",
    "Role",
    "Section",
    "SectionKind",
]
