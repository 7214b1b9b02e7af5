"""Item segmentation: epics and their line items within one section.

Two epic layouts occur in practice:

* a paragraph (``<p>[Tag] Title CPPF-1245</p>``) followed by a list whose
  entries are the line items;
* a top-level list entry with a nested list of line items.

TechDebt sections have no epics; every list entry is a line item.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from sprintdoc.config import ParserConfig

from .dates import RELEASE_DECLARATION
from .markup import Block, ListBlock, ListEntry, Paragraph, TextRun
from .models import SectionKind
from .sections import SectionDraft

_LINE_TICKET_START = re.compile(r"^\s*[A-Z][A-Z0-9]+-(?:\d+|\?+)")
_LEADING_NUMBER = re.compile(r"^#?\d+[.)]\s*")
_EDGE_SEPARATORS = " \t-–—:|→"


@dataclass
class LineDraft:
    """One line item as text, before tokenization."""
    run: TextRun


@dataclass
class EpicDraft:
    run: TextRun
    title: str = ""
    requirement_id: Optional[str] = None
    lines: list[LineDraft] = field(default_factory=list)

    @property
    def deleted(self) -> bool:
        return self.run.deleted


@dataclass
class SectionItems:
    """Epics for ordinary sections, flat lines for TechDebt."""
    epics: list[EpicDraft] = field(default_factory=list)
    lines: list[LineDraft] = field(default_factory=list)


def epic_heading(run: TextRun, requirement_project: str) -> EpicDraft:
    """Split an epic heading into title and requirement reference.

    The title keeps the bracketed tags but loses the reference and any
    "Release on dd/mm" declaration.
    """
    text = run.text
    pattern = re.compile(rf"\b{re.escape(requirement_project)}-\d+\b")
    match = pattern.search(text)
    requirement_id = match.group(0) if match else None
    title = pattern.sub(" ", text, count=1) if match else text
    title = RELEASE_DECLARATION.sub(" ", title)
    title = _LEADING_NUMBER.sub("", " ".join(title.split()))
    title = title.strip(_EDGE_SEPARATORS)
    return EpicDraft(run=run, title=title, requirement_id=requirement_id)


def _entry_lines(entry: ListEntry) -> list[LineDraft]:
    """The entry itself followed by everything nested under it."""
    return [LineDraft(entry.run)] + [LineDraft(child.run) for child in entry.descendants()]


def _paragraph_owns_list(block: ListBlock) -> bool:
    """Whether the paragraph before *block* is the epic heading of its entries."""
    if not any(entry.children for entry in block.entries):
        return True
    return bool(_LINE_TICKET_START.match(block.entries[0].run.text))


def _is_epic_paragraph(paragraph: Paragraph, project: str) -> bool:
    text = paragraph.run.text
    return text.startswith("[") or epic_heading(paragraph.run, project).requirement_id is not None


def segment_epics(blocks: list[Block], config: ParserConfig) -> list[EpicDraft]:
    project = config.requirement_project
    epics: list[EpicDraft] = []
    pending: Optional[Paragraph] = None

    def flush_pending() -> None:
        nonlocal pending
        if pending is not None and _is_epic_paragraph(pending, project):
            epics.append(epic_heading(pending.run, project))
        pending = None

    for block in blocks:
        if isinstance(block, Paragraph):
            flush_pending()
            pending = block
        elif isinstance(block, ListBlock):
            if pending is not None and _paragraph_owns_list(block):
                epic = epic_heading(pending.run, project)
                for entry in block.entries:
                    epic.lines.extend(_entry_lines(entry))
                epics.append(epic)
                pending = None
                continue
            flush_pending()
            loose: Optional[EpicDraft] = None
            for entry in block.entries:
                if not entry.children and _LINE_TICKET_START.match(entry.run.text):
                    # a ticket line with no epic above it
                    if loose is None:
                        loose = EpicDraft(run=TextRun())
                        epics.append(loose)
                    loose.lines.append(LineDraft(entry.run))
                    continue
                epic = epic_heading(entry.run, project)
                for child in entry.children:
                    epic.lines.extend(_entry_lines(child))
                epics.append(epic)
    flush_pending()
    return epics


def segment_flat_lines(blocks: list[Block]) -> list[LineDraft]:
    lines: list[LineDraft] = []
    for block in blocks:
        if isinstance(block, ListBlock):
            for entry in block.entries:
                lines.extend(_entry_lines(entry))
        elif isinstance(block, Paragraph) and _LINE_TICKET_START.match(block.run.text):
            lines.append(LineDraft(block.run))
    return lines


def segment_items(section: SectionDraft, config: ParserConfig) -> SectionItems:
    """Segment one section into epics (or flat lines for TechDebt)."""
    if section.kind == SectionKind.TECH_DEBT:
        return SectionItems(lines=segment_flat_lines(section.blocks))
    return SectionItems(epics=segment_epics(section.blocks, config))
