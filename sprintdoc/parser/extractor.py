"""Sprint document parser: public entry points.

Runs the pipeline markup -> sections -> epics/lines -> tokens -> resolved
assignments, and answers per-engineer queries over the result.  Parsing
is a pure function of the markup, the configuration and the reference
date; nothing here touches files, the network or the clock except to
default the reference date to today.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sprintdoc.config import ParserConfig
from sprintdoc.errors import MarkupStructureError

from .dates import DateContext, find_release_declaration, to_date
from .items import EpicDraft, LineDraft, segment_items
from .models import (
    Assignment,
    AssignmentStatus,
    DateBundle,
    Document,
    EngineerAssignments,
    EpicItem,
    MissingInfo,
    ParseData,
    ParseResult,
    Role,
    Section,
    SectionKind,
)
from .resolver import LineResolution, resolve_line
from .sections import SectionDraft, segment_sections
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

_SNIPPET_LENGTH = 60


def _snippet(text: str) -> str:
    if len(text) <= _SNIPPET_LENGTH:
        return text
    return text[: _SNIPPET_LENGTH - 3] + "..."


def _merge_dates(base: Optional[DateBundle], extra: Optional[DateBundle]) -> Optional[DateBundle]:
    """Fill the empty slots of *base* from *extra*."""
    if extra is None:
        return base
    if base is None:
        return extra
    merged = base.model_dump()
    for key, value in extra.model_dump().items():
        if merged.get(key) is None:
            merged[key] = value
    return DateBundle(**merged)


class _AssignmentBuilder:
    """Accumulates one line item plus any annotation lines merged into it."""

    def __init__(
        self,
        line: LineDraft,
        resolution: LineResolution,
        section: SectionDraft,
        epic: Optional[EpicItem],
        deleted: bool,
    ) -> None:
        self.line = line
        self.resolution = resolution
        self.section = section
        self.epic = epic
        self.deleted = deleted
        self.missing_info = list(resolution.missing_info)
        if resolution.ticket_id is None and MissingInfo.TICKET not in self.missing_info:
            self.missing_info.append(MissingInfo.TICKET)
        self.needs_update = resolution.needs_update
        self.dates = resolution.dates
        self.notes: list[str] = []

    def absorb(self, line: LineDraft, resolution: LineResolution) -> None:
        """Merge an annotation line (no ticket, no assignee) into this item."""
        self.notes.append(line.run.live_text)
        for tag in resolution.missing_info:
            if tag not in self.missing_info:
                self.missing_info.append(tag)
        self.needs_update = self.needs_update or resolution.needs_update
        self.dates = _merge_dates(self.dates, resolution.dates)

    def build(self) -> Assignment:
        epic = self.epic
        dates = self.dates if self.dates is not None and not self.dates.is_empty() else None
        return Assignment(
            ticket_id=self.resolution.ticket_id,
            section_kind=self.section.kind,
            section_name=self.section.name,
            epic_title=epic.title if epic is not None else None,
            requirement_id=epic.requirement_id if epic is not None else None,
            assignees=self.resolution.assignees,
            platforms=self.resolution.platforms,
            dates=dates,
            status=AssignmentStatus(
                deleted=self.deleted,
                needs_update=self.needs_update,
                missing_info=self.missing_info,
            ),
            notes=self.notes,
            raw_text=self.line.run.text,
        )


class _DocumentParser:
    """Builds a :class:`Document` from section drafts, collecting warnings."""

    def __init__(self, config: ParserConfig, reference_date: date) -> None:
        self.config = config
        self.reference_date = reference_date
        self.warnings: list[str] = []
        self.document_year: Optional[int] = None
        self.unrouted_count = 0

    def warn(self, where: str, message: str) -> None:
        text = f"{where}: {message}" if where else message
        logger.debug("Parse warning: %s", text)
        self.warnings.append(text)

    def _document_release_year(self, drafts: list[SectionDraft]) -> Optional[int]:
        for draft in drafts:
            items = segment_items(draft, self.config)
            texts = [epic.run.text for epic in items.epics]
            texts += [line.run.text for epic in items.epics for line in epic.lines]
            texts += [line.run.text for line in items.lines]
            for text in texts:
                declared = find_release_declaration(text)
                if declared is not None and declared.year is not None:
                    return declared.year
        return None

    def _epic_release(self, draft: EpicDraft) -> Optional[date]:
        declared = find_release_declaration(draft.run.text)
        if declared is None:
            return None
        year = declared.year or self.document_year or self.reference_date.year
        value = to_date(declared, year)
        if value is None:
            self.warn(draft.title, f"Invalid release date: {declared.text}")
        return value

    def _resolve(self, line: LineDraft, context: DateContext) -> LineResolution:
        text = line.run.text if line.run.deleted else line.run.live_text
        tokens = tokenize(text, self.config.canonical_name)
        return resolve_line(tokens, self.config, context)

    def _lines(
        self,
        lines: list[LineDraft],
        section: SectionDraft,
        epic: Optional[EpicItem],
        epic_deleted: bool,
        context: DateContext,
    ) -> list[Assignment]:
        builders: list[_AssignmentBuilder] = []
        for line in lines:
            resolution = self._resolve(line, context)
            where = f"{section.name or 'untitled section'} / '{_snippet(line.run.text)}'"
            for message in resolution.warnings:
                self.warn(where, message)
            if resolution.unrouted_platforms and not self.config.roster:
                self.unrouted_count += len(resolution.unrouted_platforms)

            if resolution.is_assignment:
                builders.append(
                    _AssignmentBuilder(
                        line, resolution, section, epic, epic_deleted or line.run.deleted
                    )
                )
            elif builders:
                builders[-1].absorb(line, resolution)
            elif line.run.text:
                self.warn(where, "Ignored line with no ticket or assignee")
        return [builder.build() for builder in builders]

    def _section(self, draft: SectionDraft) -> Section:
        section = Section(name=draft.name, kind=draft.kind)
        items = segment_items(draft, self.config)
        if draft.kind == SectionKind.TECH_DEBT:
            context = DateContext(document_year=self.document_year, reference_date=self.reference_date)
            section.assignments = self._lines(items.lines, draft, None, False, context)
            return section

        for epic_draft in items.epics:
            release = self._epic_release(epic_draft)
            epic = EpicItem(
                title=epic_draft.title,
                requirement_id=epic_draft.requirement_id,
                deleted=epic_draft.deleted,
                release_date=release,
            )
            context = DateContext(
                epic_release=release,
                document_year=self.document_year,
                reference_date=self.reference_date,
            )
            epic.assignments = self._lines(
                epic_draft.lines, draft, epic if epic_draft.run.text else None,
                epic_draft.deleted, context,
            )
            section.epics.append(epic)
        return section

    def parse(self, markup: str, drafts: list[SectionDraft]) -> Document:
        self.document_year = self._document_release_year(drafts)
        document = Document(markup=markup)
        for draft in drafts:
            document.sections.append(self._section(draft))
        if self.unrouted_count:
            self.warn(
                "",
                f"{self.unrouted_count} platform marker(s) not linked to an engineer; "
                "configure a roster to imply default engineers",
            )
        return document


def parse_document(
    markup: str,
    config: Optional[ParserConfig] = None,
    *,
    reference_date: Optional[date] = None,
) -> ParseResult:
    """Parse a sprint-planning document into assignments.

    This is the main entry point of the parser. It never raises for bad
    content: ambiguous or incomplete lines become warnings, and markup that
    cannot be segmented at all yields ``success=False`` with an error.

    Args:
        markup: Storage-format HTML or the equivalent plain text.
        config: Parser settings; defaults to :class:`ParserConfig()`.
        reference_date: Supplies the year for dates written without one
            when the document itself gives no year. Defaults to today.

    Returns:
        A :class:`ParseResult` whose ``data`` lists titled section names and
        every assignment in document order.
    """
    config = config or ParserConfig()
    reference_date = reference_date or date.today()

    if not markup or not markup.strip():
        return ParseResult(
            success=True,
            data=ParseData(),
            document=Document(markup=markup or ""),
            warnings=["Document is empty"],
        )

    try:
        drafts = segment_sections(markup, config)
    except MarkupStructureError as exc:
        logger.warning("Cannot parse document: %s", exc)
        return ParseResult(success=False, error=f"Failed to parse document: {exc}")

    parser = _DocumentParser(config, reference_date)
    document = parser.parse(markup, drafts)

    assignments: list[Assignment] = []
    for section in document.sections:
        assignments.extend(section.all_assignments())
    if not assignments:
        parser.warn("", "No assignments found in document")

    logger.info(
        "Parsed %d section(s), %d assignment(s), %d warning(s)",
        len(document.sections), len(assignments), len(parser.warnings),
    )
    return ParseResult(
        success=True,
        data=ParseData(
            sections=[s.name for s in document.sections if s.name],
            assignments=assignments,
        ),
        document=document,
        warnings=parser.warnings,
    )


def get_assignments_for_engineer(
    markup: str,
    name: str,
    config: Optional[ParserConfig] = None,
    *,
    reference_date: Optional[date] = None,
) -> EngineerAssignments:
    """Bucket the assignments that mention *name*.

    Matching is a case-insensitive substring match on assignee names.
    TechDebt items go to ``techdebt`` whatever the role; elsewhere an item
    where the engineer is PIC goes to ``as_pic`` and any other role
    (Support, Guide) to ``as_support``. Unparseable input yields empty
    buckets rather than an error.
    """
    buckets = EngineerAssignments()
    needle = name.strip().lower()
    if not needle:
        return buckets

    result = parse_document(markup, config, reference_date=reference_date)
    if not result.success:
        return buckets

    for assignment in result.assignments:
        roles = [a.role for a in assignment.assignees if needle in a.name.lower()]
        if not roles:
            continue
        if assignment.section_kind == SectionKind.TECH_DEBT:
            buckets.techdebt.append(assignment)
        elif Role.PIC in roles:
            buckets.as_pic.append(assignment)
        else:
            buckets.as_support.append(assignment)
    return buckets
