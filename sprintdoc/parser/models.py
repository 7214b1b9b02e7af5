"""Pydantic v2 models for the sprint assignment parser.

Defines the data model produced by parsing a sprint-planning document:
sections, epics, assignments and their assignees, together with the
result envelopes returned by the public API.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sprintdoc.platforms import Platform


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class SectionKind(str, Enum):
    """Classification of a document section by its header text."""
    RELEASE = "Release"
    CARRIED_OVER = "CarriedOver"
    NEW_WORK = "NewWork"
    TECH_DEBT = "TechDebt"
    OTHER = "Other"


class Role(str, Enum):
    """Role an engineer plays on a line item."""
    PIC = "PIC"
    SUPPORT = "Support"
    GUIDE = "Guide"


class Priority(str, Enum):
    """Assignee priority. Only ``high`` is expressible in the markup."""
    HIGH = "high"


class MissingInfo(str, Enum):
    """Categories of information an author flagged as missing."""
    TICKET = "ticket"
    RELEASE = "release"
    DOS = "DoS"
    TDOS = "TDoS"
    DOU = "DoU"
    DOP = "DoP"
    SCOPE = "scope"
    DESIGN = "design"
    ESTIMATE = "estimate"
    ASSIGNEE = "assignee"
    NOTE = "note"


class _Model(BaseModel):
    """Base model: camelCase aliases on dump, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenModel(_Model):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ---------------------------------------------------------------------------
# Assignment Models
# ---------------------------------------------------------------------------

class Assignee(_FrozenModel):
    """One engineer attached to a line item."""
    name: str = Field(..., description="Canonical engineer name, e.g. 'AnhL'")
    role: Role = Field(..., description="PIC, Support or Guide")
    platform: Optional[Platform] = Field(
        default=None, description="Platform this engineer covers on the line"
    )
    confident: Optional[bool] = Field(
        default=None, description="Author-stated confidence in the estimate"
    )
    story_points: Optional[float] = Field(
        default=None, description="Estimate in story points"
    )
    priority: Optional[Priority] = Field(
        default=None, description="Emphasis marker, '(*)' means high"
    )


class DateBundle(_FrozenModel):
    """Milestone dates declared for a line item."""
    release_date: Optional[date] = Field(default=None)
    start_of_dev: Optional[date] = Field(default=None)
    start_of_uat: Optional[date] = Field(default=None)
    start_of_prod: Optional[date] = Field(default=None)

    def is_empty(self) -> bool:
        return not any(
            (self.release_date, self.start_of_dev, self.start_of_uat, self.start_of_prod)
        )


class AssignmentStatus(_FrozenModel):
    """Lifecycle flags of a line item."""
    deleted: bool = Field(default=False, description="Struck through in the source")
    needs_update: bool = Field(
        default=False, description="Author flagged the line as incomplete"
    )
    missing_info: list[MissingInfo] = Field(
        default_factory=list,
        description="Distinct missing-info tags in first-detected order",
    )


class Assignment(_FrozenModel):
    """The atomic output unit: one ticket-level line item."""
    ticket_id: Optional[str] = Field(
        default=None, description="Ticket key, None for a 'not yet created' placeholder"
    )
    section_kind: SectionKind = Field(..., description="Kind of the enclosing section")
    section_name: str = Field(default="", description="Header text of the section")
    epic_title: Optional[str] = Field(default=None, description="Enclosing epic title")
    requirement_id: Optional[str] = Field(
        default=None, description="Requirement key of the enclosing epic"
    )
    assignees: list[Assignee] = Field(default_factory=list)
    platforms: list[Platform] = Field(
        default_factory=list, description="Bare platform markers mentioned on the line"
    )
    dates: Optional[DateBundle] = Field(default=None)
    status: AssignmentStatus = Field(default_factory=AssignmentStatus)
    notes: list[str] = Field(
        default_factory=list, description="Annotation lines attached to this item"
    )
    raw_text: str = Field(..., description="Original line text")

    def assignee_for(self, name: str) -> Optional[Assignee]:
        """Return the first assignee whose name contains *name* (case-insensitive)."""
        needle = name.strip().lower()
        if not needle:
            return None
        for assignee in self.assignees:
            if needle in assignee.name.lower():
                return assignee
        return None

    @property
    def pic(self) -> Optional[Assignee]:
        """The first PIC on the line, if any."""
        for assignee in self.assignees:
            if assignee.role == Role.PIC:
                return assignee
        return None


# ---------------------------------------------------------------------------
# Document Models
# ---------------------------------------------------------------------------

class EpicItem(_Model):
    """A top-level requirement grouping and its line items."""
    title: str = Field(default="", description="Epic title, reference stripped")
    requirement_id: Optional[str] = Field(default=None, description="e.g. 'CPPF-1245'")
    deleted: bool = Field(default=False)
    release_date: Optional[date] = Field(default=None)
    assignments: list[Assignment] = Field(default_factory=list)


class Section(_Model):
    """A named document section."""
    name: str = Field(default="", description="Header text as written")
    kind: SectionKind = Field(default=SectionKind.OTHER)
    epics: list[EpicItem] = Field(
        default_factory=list, description="Epics (non-TechDebt sections)"
    )
    assignments: list[Assignment] = Field(
        default_factory=list, description="Flat items (TechDebt sections)"
    )

    def all_assignments(self) -> list[Assignment]:
        """Every assignment in the section, in document order."""
        if self.kind == SectionKind.TECH_DEBT:
            return list(self.assignments)
        flat: list[Assignment] = []
        for epic in self.epics:
            flat.extend(epic.assignments)
        return flat


class Document(_Model):
    """A parsed sprint-planning document."""
    markup: str = Field(default="", description="Raw markup the document came from")
    sections: list[Section] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Result Envelopes
# ---------------------------------------------------------------------------

class ParseData(_Model):
    """Payload of a successful parse."""
    sections: list[str] = Field(
        default_factory=list, description="Names of titled sections in document order"
    )
    assignments: list[Assignment] = Field(default_factory=list)


class ParseResult(_Model):
    """Complete result of parsing a sprint-planning document."""
    success: bool = Field(default=True)
    data: Optional[ParseData] = Field(default=None)
    document: Optional[Document] = Field(
        default=None, description="Full section/epic tree", exclude=True
    )
    warnings: list[str] = Field(
        default_factory=list, description="Advisory messages; data is still usable"
    )
    error: Optional[str] = Field(default=None, description="Set when success is False")

    @property
    def assignments(self) -> list[Assignment]:
        return self.data.assignments if self.data else []


class EngineerAssignments(_Model):
    """Assignments of one engineer, bucketed by role and section."""
    as_pic: list[Assignment] = Field(default_factory=list, alias="asPIC")
    as_support: list[Assignment] = Field(default_factory=list)
    techdebt: list[Assignment] = Field(default_factory=list)

    def total(self) -> int:
        return len(self.as_pic) + len(self.as_support) + len(self.techdebt)
