"""Section segmentation: split the block stream at section headers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from sprintdoc.config import ParserConfig

from .markup import TICKET_REFERENCE, Block, Header, Paragraph, read_blocks
from .models import SectionKind

# Header text -> kind. Case-sensitive, matched anywhere in the header; the
# accepted spellings are upper case, sentence case and title case.
SECTION_VOCABULARY: list[tuple[re.Pattern[str], SectionKind]] = [
    (re.compile(r"\b(?:TO BE RELEASED|To [Bb]e [Rr]eleased)\b"), SectionKind.RELEASE),
    (
        re.compile(r"\b(?:CONTINUE FROM LAST SPRINT|Continue [Ff]rom [Ll]ast [Ss]print)\b"),
        SectionKind.CARRIED_OVER,
    ),
    (re.compile(r"\b(?:NEW FOR NEXT SPRINT|New [Ff]or [Nn]ext [Ss]print)\b"), SectionKind.NEW_WORK),
    (re.compile(r"\b(?:TECH[ -]?DEBTS?|Tech[ -]?[Dd]ebts?)\b"), SectionKind.TECH_DEBT),
]

_MAX_COLON_HEADER_WORDS = 6


@dataclass
class SectionDraft:
    """A section before item segmentation: its header and raw blocks."""
    name: str
    kind: SectionKind
    blocks: list[Block] = field(default_factory=list)


def classify_header(text: str) -> SectionKind:
    """Map header text onto a :class:`SectionKind`."""
    cleaned = clean_header(text)
    for pattern, kind in SECTION_VOCABULARY:
        if pattern.search(cleaned):
            return kind
    return SectionKind.OTHER


def clean_header(text: str) -> str:
    """Header text as a section name: whitespace collapsed, trailing colon dropped."""
    return " ".join(text.split()).rstrip(":").strip()


def _promotes_to_header(block: Paragraph, config: ParserConfig) -> bool:
    """An unstyled paragraph that still reads as a section header."""
    text = block.run.text
    if block.run.deleted or len(text) > config.max_header_length or TICKET_REFERENCE.search(text):
        return False
    if text.startswith("["):
        # "[Techdebt] Cleanup" is an epic title
        return False
    if classify_header(text) != SectionKind.OTHER:
        return True
    return text.endswith(":") and len(text.split()) <= _MAX_COLON_HEADER_WORDS


def split_sections(blocks: list[Block], config: ParserConfig) -> list[SectionDraft]:
    """Group *blocks* under the header that precedes them.

    Content before the first header lands in an untitled ``Other``
    section, which is dropped when empty.
    """
    sections = [SectionDraft(name="", kind=SectionKind.OTHER)]
    for block in blocks:
        header_text = None
        if isinstance(block, Header):
            header_text = block.text
        elif isinstance(block, Paragraph) and _promotes_to_header(block, config):
            header_text = block.run.text
        if header_text is None:
            sections[-1].blocks.append(block)
            continue
        sections.append(SectionDraft(name=clean_header(header_text), kind=classify_header(header_text)))

    if not sections[0].blocks:
        sections.pop(0)
    return sections


def segment_sections(markup: str, config: ParserConfig) -> list[SectionDraft]:
    """Read *markup* and split it into sections.

    Raises:
        MarkupStructureError: If the markup is structurally unrecoverable.
    """
    return split_sections(read_blocks(markup, config.max_header_length), config)
