"""Line tokenizer for the sprint-assignment micro-language.

A line such as::

    CRE-10660: TrangPIC + Web.AnhL + Android + iOS, TDoS: 21/05 ??!!

is split into typed tokens (ticket, name-with-role, platform-bound name,
bare platform, connective, date value, missing marker, ...).  Matching is
done with a single alternation evaluated left to right, so the order of
the alternatives below *is* the precedence between overlapping forms.
Nothing here decides who is PIC; that is the resolver's job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sprintdoc.platforms import Platform, lookup_alias

from .dates import DATE_NUMERAL, RawDate, parse_numeral
from .models import Role


class TokenKind(str, Enum):
    TICKET = "ticket"
    TICKET_PLACEHOLDER = "ticket_placeholder"
    NO_TICKET = "no_ticket"
    MISSING_MARKER = "missing_marker"
    QUERY = "query"
    GUIDE = "guide"
    DATE_VALUE = "date_value"
    RELEASE_VALUE = "release_value"
    DATE_LABEL = "date_label"
    ESTIMATE = "estimate"
    STAR = "star"
    CONFIDENCE = "confidence"
    TAG = "tag"
    PLATFORM_GROUP = "platform_group"
    PLATFORM_NAME = "platform_name"
    NAME_ROLE = "name_role"
    MENTION = "mention"
    PLATFORM = "platform"
    CONNECTIVE = "connective"
    COJOIN = "cojoin"
    WORD = "word"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int
    name: Optional[str] = None
    names: tuple[str, ...] = ()
    role: Optional[Role] = None
    co_pic: bool = False
    platform: Optional[Platform] = None
    number: Optional[float] = None
    flag: Optional[bool] = None
    label: Optional[str] = None
    date: Optional[RawDate] = None

    @property
    def is_name_bearing(self) -> bool:
        return self.kind in _NAME_BEARING


_NAME_BEARING = {
    TokenKind.NAME_ROLE,
    TokenKind.PLATFORM_NAME,
    TokenKind.PLATFORM_GROUP,
    TokenKind.GUIDE,
}


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_NAME = r"[A-Z][A-Za-z0-9]*"
# A name glued to its role needs a lowercase second letter, so EPIC and TOPIC stay words
_LAZY_NAME = r"[A-Z][a-z][A-Za-z0-9]*?"
_MULTI_NAME = r"[A-Z][a-z]+[ \t]+[A-Z][a-z]+"
_ROLE = r"(?:[Cc]o-?)?PIC"
_PLATFORM_WORD = r"(?:(?i:web|frontend|android|ios|backend|mobile)|FE|BE|API|App)"
_DATE_LABELS = r"(?:TDoS|DoS|DoU|DoP|RD)"

_ALTERNATIVES: list[tuple[str, str]] = [
    ("placeholder", r"\b[A-Z][A-Z0-9]+-(?:\?+|[xX]{2,}|TBD|N/?A)(?![\w])"),
    ("ticket", r"\b[A-Z][A-Z0-9]+-\d+\b"),
    ("missing", r"\?{2,}!+"),
    ("query", r"\?{2,}"),
    ("no_ticket", r"\b(?i:(?:no|without|missing)\s+(?:jira\s+)?tickets?)\b"),
    (
        "guide",
        r"\(?\s*\b(?i:guid(?:e|ed|ance))\s*(?:(?i:from|by)\s*:?|:)\s*(?P<guide_name>"
        + _NAME + r")\s*\)?",
    ),
    (
        "date_value",
        r"\b(?P<dv_label>" + _DATE_LABELS + r")\s*(?:[:=]|\bon\b)?\s*(?P<dv_date>"
        + DATE_NUMERAL + r")",
    ),
    (
        "release_value",
        r"\b(?i:released?)(?:\s+(?i:on|date|day))?\s*[:=]?\s*(?P<rv_date>" + DATE_NUMERAL + r")",
    ),
    ("date_label", r"\b" + _DATE_LABELS + r"\b"),
    (
        "estimate",
        r"\(?\s*\b(?:SP|sp|(?i:story\s+points?|points?|pts?))\s*[:=]?\s*(?P<est_a>\d+(?:\.\d+)?)\s*\)?"
        r"|\b(?P<est_b>\d+(?:\.\d+)?)\s*(?:SP|sp|(?i:pts?|points?))\b",
    ),
    ("star", r"\(\s*\*+\s*\)"),
    ("confidence", r"\b(?i:not\s+confident|unconfident|confident)\b"),
    ("tag", r"\[[^\]\n]{1,40}\]"),
    (
        "platform_group",
        r"\b(?P<pg_platform>" + _PLATFORM_WORD + r")\s*\(\s*(?P<pg_names>" + _NAME
        + r"(?:\s*[+,&/]\s*" + _NAME + r")*)\s*\)",
    ),
    (
        "platform_name",
        r"\b(?P<pn_platform>" + _PLATFORM_WORD + r")\.(?P<pn_name>" + _LAZY_NAME + r")"
        r"(?:[ \t]*\.?[ \t]*(?P<pn_role>" + _ROLE + r"))?\b",
    ),
    (
        "name_platform",
        r"\b(?P<np_name>" + _NAME + r")\.(?P<np_platform>" + _PLATFORM_WORD + r")\b",
    ),
    (
        "platform_spaced",
        r"\b(?P<ps_platform>" + _PLATFORM_WORD + r")[ \t]+(?P<ps_name>" + _LAZY_NAME + r")"
        r"(?:[ \t]*\.?[ \t]*(?P<ps_role>" + _ROLE + r"))?\b(?=[ \t]*(?:$|[+,;(&/?]|→|->))",
    ),
    ("role_name", r"\bPIC\s*[:=]\s*(?P<rn_name>" + _NAME + r")"),
    (
        "name_role",
        r"\b(?P<nr_name>" + _MULTI_NAME + r"|" + _LAZY_NAME + r")[ \t]*\.?[ \t]*"
        r"(?P<nr_role>" + _ROLE + r")\b",
    ),
    (
        "mention",
        r"@(?P<m_name>" + _NAME + r")\s*:?"
        r"|\b(?P<m2_name>" + _NAME + r")\s*:(?=\s*(?:(?i:not\s+)?(?i:confident|unconfident)"
        r"|\(?\s*(?:SP|sp)\b|\d+(?:\.\d+)?\s*(?:SP|sp)\b))",
    ),
    ("platform", r"\b" + _PLATFORM_WORD + r"\b"),
    ("connective", r"\+|→|->|,|;"),
    ("cojoin", r"&|/|\band\b"),
    ("word", r"[A-Za-z][A-Za-z0-9']*"),
]

_MASTER = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _ALTERNATIVES))
_PLATFORM_GROUP_SPLIT = re.compile(r"\s*[+,&/]\s*")
# Characters after which a multi-word "First Last PIC" name may start
_NAME_LEADERS = set(":+,;>→(")
# "Fix Login Vu Hoang PIC": a run of capitalised words ends in a two-word name
_CAPITALISED_TAIL = re.compile(r"\b[A-Z][a-z]+$")


def _platform(word: str) -> Optional[Platform]:
    return lookup_alias(word)


def _kind_of(match: re.Match) -> str:
    for name, _ in _ALTERNATIVES:
        if match.group(name) is not None:
            return name
    raise AssertionError("master pattern matched without a named alternative")


def _collapse(name: str) -> str:
    return " ".join(name.split())


def _build(match: re.Match, line: str, canonical) -> list[Token]:
    kind = _kind_of(match)
    text = match.group(kind)
    start, end = match.start(kind), match.end(kind)
    base = dict(text=text, start=start, end=end)

    if kind == "placeholder":
        return [Token(TokenKind.TICKET_PLACEHOLDER, **base)]
    if kind == "ticket":
        return [Token(TokenKind.TICKET, **base)]
    if kind == "missing":
        return [Token(TokenKind.MISSING_MARKER, **base)]
    if kind == "query":
        return [Token(TokenKind.QUERY, **base)]
    if kind == "no_ticket":
        return [Token(TokenKind.NO_TICKET, **base)]
    if kind == "guide":
        return [Token(TokenKind.GUIDE, name=canonical(match.group("guide_name")), role=Role.GUIDE, **base)]
    if kind == "date_value":
        label = match.group("dv_label")
        raw = parse_numeral(label, match.group("dv_date"), start)
        return [Token(TokenKind.DATE_VALUE, label=label, date=raw, **base)]
    if kind == "release_value":
        raw = parse_numeral("Release", match.group("rv_date"), start)
        return [Token(TokenKind.RELEASE_VALUE, label="Release", date=raw, **base)]
    if kind == "date_label":
        return [Token(TokenKind.DATE_LABEL, label=text, **base)]
    if kind == "estimate":
        value = match.group("est_a") or match.group("est_b")
        return [Token(TokenKind.ESTIMATE, number=float(value), **base)]
    if kind == "star":
        return [Token(TokenKind.STAR, **base)]
    if kind == "confidence":
        positive = text.lower() == "confident"
        return [Token(TokenKind.CONFIDENCE, flag=positive, **base)]
    if kind == "tag":
        return [Token(TokenKind.TAG, platform=_platform(text[1:-1].strip()), **base)]
    if kind == "platform_group":
        platform = _platform(match.group("pg_platform"))
        names = tuple(
            canonical(n) for n in _PLATFORM_GROUP_SPLIT.split(match.group("pg_names")) if n
        )
        if platform is None:
            return _words(text, start)
        return [Token(TokenKind.PLATFORM_GROUP, platform=platform, names=names, **base)]
    if kind in ("platform_name", "platform_spaced"):
        prefix = "pn" if kind == "platform_name" else "ps"
        platform = _platform(match.group(f"{prefix}_platform"))
        name = match.group(f"{prefix}_name")
        if kind == "platform_spaced":
            before = line[:start].rstrip()
            if platform is None or _platform(name) is not None or (before and before[-1] not in _NAME_LEADERS):
                # "Fix Web Login": a platform word followed by title text
                return _split_platform(match, line, canonical)
        elif platform is None or _platform(name) is not None:
            return _words(text, start)
        role_text = match.group(f"{prefix}_role")
        return [
            Token(
                TokenKind.PLATFORM_NAME,
                platform=platform,
                name=canonical(name),
                role=Role.PIC if role_text else None,
                co_pic=bool(role_text) and role_text.lower() != "pic",
                **base,
            )
        ]
    if kind == "name_platform":
        platform = _platform(match.group("np_platform"))
        name = match.group("np_name")
        if platform is None or _platform(name) is not None:
            return _words(text, start)
        return [Token(TokenKind.PLATFORM_NAME, platform=platform, name=canonical(name), **base)]
    if kind == "role_name":
        return [Token(TokenKind.NAME_ROLE, name=canonical(match.group("rn_name")), role=Role.PIC, **base)]
    if kind == "name_role":
        role_text = match.group("nr_role")
        name = match.group("nr_name")
        if len(name.split()) > 1:
            before = line[:start].rstrip()
            if before and before[-1] not in _NAME_LEADERS and not _CAPITALISED_TAIL.search(before):
                # "update Login Anh PIC": only the word touching the role is a name
                name = name.split()[-1]
        return [
            Token(
                TokenKind.NAME_ROLE,
                name=canonical(name),
                role=Role.PIC,
                co_pic=role_text.lower() != "pic",
                **base,
            )
        ]
    if kind == "mention":
        name = match.group("m_name") or match.group("m2_name")
        return [Token(TokenKind.MENTION, name=canonical(name), **base)]
    if kind == "platform":
        platform = _platform(text)
        if platform is None:
            return [Token(TokenKind.WORD, **base)]
        return [Token(TokenKind.PLATFORM, platform=platform, **base)]
    if kind == "connective":
        return [Token(TokenKind.CONNECTIVE, **base)]
    if kind == "cojoin":
        return [Token(TokenKind.COJOIN, **base)]
    return [Token(TokenKind.WORD, **base)]


def _words(text: str, offset: int) -> list[Token]:
    """Fallback for a composite match whose parts turned out not to qualify."""
    return [
        Token(TokenKind.WORD, text=m.group(0), start=offset + m.start(), end=offset + m.end())
        for m in re.finditer(r"[A-Za-z][A-Za-z0-9']*", text)
    ]


def _split_platform(match: re.Match, line: str, canonical) -> list[Token]:
    """A spaced platform word that does not bind the name after it."""
    start, end = match.span("ps_platform")
    word = match.group("ps_platform")
    platform = _platform(word)
    kind = TokenKind.WORD if platform is None else TokenKind.PLATFORM
    tokens = [Token(kind, text=word, start=start, end=end, platform=platform)]
    for rest in _MASTER.finditer(line, match.start("ps_name"), match.end("platform_spaced")):
        tokens.extend(_build(rest, line, canonical))
    return tokens


def tokenize(line: str, canonical=None) -> list[Token]:
    """Split one line of text into tokens.

    Args:
        line: Line text with struck fragments already removed.
        canonical: Optional callable mapping a raw name to its canonical
            form (alias table lookup). Defaults to whitespace collapsing.
    """
    canonical = canonical or _collapse
    tokens: list[Token] = []
    for match in _MASTER.finditer(line):
        tokens.extend(_build(match, line, canonical))
    return tokens
