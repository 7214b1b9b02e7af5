"""Markup reader: turns a sprint-planning document into neutral blocks.

Two source formats are understood:

* Confluence-style storage HTML (``<p>``, ``<ol>``/``<ul>``/``<li>``,
  ``<h1>``..``<h6>``, inline ``<code>``/``<strong>``/``<del>``), parsed with
  BeautifulSoup.
* The equivalent plain text, where numbered lines are top-level entries,
  lettered or deeper-indented lines are nested entries and ``~~text~~``
  marks strikethrough.

Both are reduced to the same small block vocabulary (:class:`Header`,
:class:`Paragraph`, :class:`ListBlock`) so that section and item
segmentation never look at the source syntax again.  Every piece of text
keeps track of which fragments were struck through.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Union

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from sprintdoc.errors import MarkupStructureError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_HTML_HINT = re.compile(
    r"<(?:p|ol|ul|li|h[1-6]|div|code|strong|table|br|span)\b[^>]*>", re.IGNORECASE
)
_TAG_PATTERN = re.compile(r"<(/?)([A-Za-z][\w:-]*)([^<>]*?)(/?)>")
_IGNORED_SPANS = re.compile(r"<!--.*?-->|<!\[CDATA\[.*?\]\]>", re.DOTALL)
_STRUCTURAL_TAGS = {"p", "ol", "ul", "li", "h1", "h2", "h3", "h4", "h5", "h6"}

_LIST_TAGS = {"ol", "ul"}
_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_STRIKE_TAGS = {"del", "s", "strike"}
_BLOCK_TAGS = {"p", "div", "li", "tr", "td", "th", "blockquote", "pre"} | _HEADING_TAGS
_EMPHASIS_TAGS = {"code", "strong", "b"}
_SKIPPED_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)

TICKET_REFERENCE = re.compile(r"\b[A-Z][A-Z0-9]+-(?:\d+|\?+)")

_LIST_LINE = re.compile(r"^(?P<indent>\s*)(?P<marker>\d+[.)]|[a-zA-Z][.)]|[-*•])\s+(?P<body>.*)$")
_PLAIN_STRIKE = re.compile(r"~~(.+?)~~")
_MARKDOWN_HEADING = re.compile(r"^\s*(#{1,6})\s+(.+)$")
_UNMARKED_RANK = 3


# ---------------------------------------------------------------------------
# Block model
# ---------------------------------------------------------------------------

@dataclass
class TextRun:
    """Inline text as ``(fragment, struck)`` pairs."""

    fragments: list[tuple[str, bool]] = field(default_factory=list)

    @property
    def text(self) -> str:
        """All text, whitespace collapsed."""
        return " ".join("".join(frag for frag, _ in self.fragments).split())

    @property
    def live_text(self) -> str:
        """Text with struck fragments removed."""
        if not self.partially_struck:
            return self.text
        return " ".join(
            "".join(" " if struck else frag for frag, struck in self.fragments).split()
        )

    @property
    def deleted(self) -> bool:
        """True when every visible fragment is struck through."""
        visible = [struck for frag, struck in self.fragments if frag.strip()]
        return bool(visible) and all(visible)

    @property
    def partially_struck(self) -> bool:
        visible = [struck for frag, struck in self.fragments if frag.strip()]
        return any(visible) and not all(visible)

    @classmethod
    def plain(cls, text: str) -> "TextRun":
        return cls([(text, False)])


@dataclass
class Header:
    text: str
    level: int = 0  # 0 = emphasised paragraph, 1-6 = heading element


@dataclass
class Paragraph:
    run: TextRun


@dataclass
class ListEntry:
    run: TextRun
    children: list["ListEntry"] = field(default_factory=list)

    def descendants(self) -> Iterator["ListEntry"]:
        """Depth-first walk over nested entries."""
        for child in self.children:
            yield child
            yield from child.descendants()


@dataclass
class ListBlock:
    entries: list[ListEntry] = field(default_factory=list)


Block = Union[Header, Paragraph, ListBlock]


# ---------------------------------------------------------------------------
# Format detection and structural validation
# ---------------------------------------------------------------------------

def is_html(markup: str) -> bool:
    """Whether *markup* should be read as HTML rather than plain text."""
    stripped = markup.lstrip()
    return stripped.startswith("<") or bool(_HTML_HINT.search(markup))


def check_structure(markup: str) -> None:
    """Verify that block-level tags are balanced.

    Only paragraphs, lists, list items and headings are tracked; inline
    formatting is left to the lenient HTML parser.

    Raises:
        MarkupStructureError: On a stray closing tag, a mismatched pair or
            an element left open at the end of the document.
    """
    text = _IGNORED_SPANS.sub(lambda m: " " * len(m.group(0)), markup)
    stack: list[tuple[str, int]] = []
    for match in _TAG_PATTERN.finditer(text):
        closing, name, _, self_closing = match.groups()
        name = name.lower()
        if name not in _STRUCTURAL_TAGS or self_closing:
            continue
        if not closing:
            stack.append((name, match.start()))
            continue
        if not stack:
            raise MarkupStructureError(
                f"Unexpected closing tag </{name}> at offset {match.start()}",
                match.start(),
            )
        open_name, open_pos = stack.pop()
        if open_name != name:
            raise MarkupStructureError(
                f"Mismatched tags: <{open_name}> at offset {open_pos} "
                f"closed by </{name}> at offset {match.start()}",
                match.start(),
            )
    if stack:
        name, pos = stack[-1]
        raise MarkupStructureError(f"Unterminated <{name}> at offset {pos}", pos)


# ---------------------------------------------------------------------------
# HTML reading
# ---------------------------------------------------------------------------

def _is_strike(tag: Tag) -> bool:
    if tag.name in _STRIKE_TAGS:
        return True
    style = tag.get("style") or ""
    return "line-through" in str(style).replace(" ", "").lower()


def _collect(
    node: Tag,
    struck: bool,
    out: list[tuple[str, bool]],
    nested: list[ListEntry] | None,
) -> None:
    for child in node.children:
        if isinstance(child, _SKIPPED_STRINGS):
            continue
        if isinstance(child, NavigableString):
            out.append((str(child), struck))
            continue
        if not isinstance(child, Tag):
            continue
        if child.name in _LIST_TAGS:
            if nested is not None:
                nested.extend(_list_entries(child))
            continue
        if child.name == "br":
            out.append((" ", struck))
            continue
        child_struck = struck or _is_strike(child)
        is_block = child.name in _BLOCK_TAGS
        if is_block:
            out.append((" ", False))
        _collect(child, child_struck, out, nested)
        if is_block:
            out.append((" ", False))


def _list_entries(list_tag: Tag) -> list[ListEntry]:
    entries: list[ListEntry] = []
    struck = _is_strike(list_tag)
    for item in list_tag.find_all("li", recursive=False):
        fragments: list[tuple[str, bool]] = []
        children: list[ListEntry] = []
        _collect(item, struck or _is_strike(item), fragments, children)
        entries.append(ListEntry(TextRun(fragments), children))
    return entries


def _emphasised_only(tag: Tag) -> bool:
    """True when all of *tag*'s content sits inside a single code/strong/b."""
    contents = [
        c for c in tag.contents
        if not (isinstance(c, NavigableString) and not str(c).strip())
        and not isinstance(c, _SKIPPED_STRINGS)
    ]
    if len(contents) != 1 or not isinstance(contents[0], Tag):
        return False
    inner = contents[0]
    if inner.name == "code":
        return True
    if inner.name in _EMPHASIS_TAGS:
        # A bold "[Tag] title" paragraph is an epic heading, not a section.
        return not inner.get_text(" ", strip=True).startswith("[")
    return _emphasised_only(inner)


def _header_like(tag: Tag, max_length: int) -> bool:
    text = " ".join(tag.get_text(" ").split())
    if not text or len(text) > max_length or TICKET_REFERENCE.search(text):
        return False
    return _emphasised_only(tag)


def _html_blocks(container: Tag, max_length: int) -> Iterator[Block]:
    for child in container.children:
        if isinstance(child, _SKIPPED_STRINGS):
            continue
        if isinstance(child, NavigableString):
            text = str(child).strip()
            if text:
                yield Paragraph(TextRun.plain(text))
            continue
        if not isinstance(child, Tag):
            continue
        if child.name in _HEADING_TAGS:
            text = " ".join(child.get_text(" ").split())
            if text:
                yield Header(text, int(child.name[1]))
        elif child.name in _LIST_TAGS:
            entries = _list_entries(child)
            if entries:
                yield ListBlock(entries)
        elif child.name == "p" or (child.name not in _BLOCK_TAGS and not _has_blocks(child)):
            if _header_like(child, max_length):
                yield Header(" ".join(child.get_text(" ").split()), 0)
                continue
            fragments: list[tuple[str, bool]] = []
            nested: list[ListEntry] = []
            _collect(child, _is_strike(child), fragments, nested)
            run = TextRun(fragments)
            if run.text:
                yield Paragraph(run)
            if nested:
                yield ListBlock(nested)
        else:
            # div, table cells, Confluence layout macros and the like
            yield from _html_blocks(child, max_length)


def _has_blocks(tag: Tag) -> bool:
    return tag.find(list(_BLOCK_TAGS | _LIST_TAGS)) is not None


def read_html(markup: str, max_header_length: int = 80) -> list[Block]:
    """Parse storage-format HTML into blocks.

    Raises:
        MarkupStructureError: If block-level tags are not balanced.
    """
    check_structure(markup)
    soup = BeautifulSoup(markup, "html.parser")
    return list(_html_blocks(soup, max_header_length))


# ---------------------------------------------------------------------------
# Plain-text reading
# ---------------------------------------------------------------------------

def _plain_run(text: str) -> TextRun:
    fragments: list[tuple[str, bool]] = []
    pos = 0
    for match in _PLAIN_STRIKE.finditer(text):
        if match.start() > pos:
            fragments.append((text[pos:match.start()], False))
        fragments.append((match.group(1), True))
        pos = match.end()
    if pos < len(text):
        fragments.append((text[pos:], False))
    return TextRun(fragments)


def _marker_rank(marker: str) -> int:
    if marker[0].isdigit():
        return 0
    if marker[0].isalpha():
        return 1
    return 2


def read_plain_text(markup: str) -> list[Block]:
    """Parse the plain-text rendition of a sprint document into blocks.

    An entry is nested under the previous one when it is indented deeper,
    or sits at the same indent with a "smaller" marker (``a.`` under ``1.``,
    ``-`` under ``a.``).
    """
    blocks: list[Block] = []
    current: ListBlock | None = None
    # (indent, marker rank, entry)
    stack: list[tuple[int, int, ListEntry]] = []

    for raw_line in markup.splitlines():
        line = raw_line.rstrip().expandtabs(4)
        if not line.strip():
            continue
        match = _LIST_LINE.match(line)
        heading = _MARKDOWN_HEADING.match(line)
        indent = len(line) - len(line.lstrip())
        if heading:
            current = None
            stack = []
            blocks.append(Header(heading.group(2).strip(), len(heading.group(1))))
            continue
        if match is None and not (stack and indent > 0):
            current = None
            stack = []
            blocks.append(Paragraph(_plain_run(line.strip())))
            continue

        if match is None:
            # Unmarked continuation line indented under an entry
            rank = _UNMARKED_RANK
            entry = ListEntry(_plain_run(line.strip()))
        else:
            rank = _marker_rank(match.group("marker"))
            entry = ListEntry(_plain_run(match.group("body").strip()))
        while stack:
            top_indent, top_rank, _ = stack[-1]
            if indent > top_indent or (indent == top_indent and rank > top_rank):
                break
            stack.pop()
        if stack:
            stack[-1][2].children.append(entry)
        else:
            if current is None:
                current = ListBlock()
                blocks.append(current)
            current.entries.append(entry)
        stack.append((indent, rank, entry))
    return blocks


def read_blocks(markup: str, max_header_length: int = 80) -> list[Block]:
    """Read *markup* in whichever format it is written in."""
    if is_html(markup):
        return read_html(markup, max_header_length)
    return read_plain_text(markup)
