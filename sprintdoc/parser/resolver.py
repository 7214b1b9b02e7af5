"""Role and platform resolution for a single tokenized line.

Turns the token stream of one line into assignees, platforms, dates and
missing-info flags.  Names are claimed by an ordered table of rules; the
first rule that claims a name decides its role and platform, and the
assignee list keeps the order in which names appear in the text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from sprintdoc.config import ParserConfig
from sprintdoc.platforms import Platform, lookup_alias

from .dates import LABEL_TAGS, DateContext, RawDate, resolve_dates
from .models import Assignee, DateBundle, MissingInfo, Priority, Role
from .tokenizer import Token, TokenKind

logger = logging.getLogger(__name__)


# Words that close a "??" clause onto a specific missing-info category
MISSING_VOCABULARY: dict[str, MissingInfo] = {
    "scope": MissingInfo.SCOPE,
    "design": MissingInfo.DESIGN,
    "designs": MissingInfo.DESIGN,
    "figma": MissingInfo.DESIGN,
    "estimate": MissingInfo.ESTIMATE,
    "estimation": MissingInfo.ESTIMATE,
    "sp": MissingInfo.ESTIMATE,
    "assignee": MissingInfo.ASSIGNEE,
    "pic": MissingInfo.ASSIGNEE,
    "owner": MissingInfo.ASSIGNEE,
    "ticket": MissingInfo.TICKET,
    "jira": MissingInfo.TICKET,
    "release": MissingInfo.RELEASE,
}

# Capitalised words that never name an engineer
_NOT_NAMES = {
    "PIC", "PM", "PO", "QA", "BA", "TBD", "TBA", "Note", "Notes", "Done",
    "Update", "Need", "Needs", "Release", "Ticket", "Design", "Scope", "Estimate",
}

_CLAUSE_BREAKS = {",", ";", "→", "->"}


@dataclass
class _Claim:
    name: str
    role: Role
    platform: Optional[Platform]
    rule: str
    co_pic: bool = False
    confident: Optional[bool] = None
    story_points: Optional[float] = None
    priority: Optional[Priority] = None


@dataclass
class LineResolution:
    """Everything one line contributes to an assignment."""
    ticket_id: Optional[str] = None
    has_ticket_reference: bool = False
    requirement_refs: list[str] = field(default_factory=list)
    assignees: list[Assignee] = field(default_factory=list)
    platforms: list[Platform] = field(default_factory=list)
    dates: Optional[DateBundle] = None
    missing_info: list[MissingInfo] = field(default_factory=list)
    needs_update: bool = False
    unrouted_platforms: list[Platform] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_assignment(self) -> bool:
        """A line with a ticket reference or an assignee is an item of its own."""
        return self.has_ticket_reference or bool(self.assignees)


class _LineState:
    """Mutable working state shared by the claim rules for one line."""

    def __init__(self, tokens: list[Token], config: ParserConfig) -> None:
        self.tokens = tokens
        self.config = config
        self.claims: dict[str, _Claim] = {}
        self.appearance: dict[str, int] = {}
        self.unrouted: list[Platform] = []
        self.warnings: list[str] = []
        self.explicit_pic = any(t.role == Role.PIC for t in tokens)
        self.bare_names = {i for i, t in enumerate(tokens) if _is_bare_name(tokens, i)}
        candidates = [t.start for t in tokens if t.is_name_bearing]
        candidates += [tokens[i].start for i in self.bare_names]
        self.first_name_position = min(candidates) if candidates else None
        # token index -> claimed name, used to track the "current" engineer
        self.name_at: dict[int, str] = {}

    def claim(
        self,
        index: int,
        name: str,
        role: Role,
        platform: Optional[Platform],
        rule: str,
        co_pic: bool = False,
    ) -> None:
        key = name.lower()
        position = self.tokens[index].start
        self.appearance[key] = min(self.appearance.get(key, position), position)
        self.name_at.setdefault(index, key)
        if key in self.claims:
            return
        self.claims[key] = _Claim(name, role, platform, rule, co_pic)

    def defaults_to_pic(self, token: Token) -> bool:
        """The first name on a line is PIC when nobody is marked PIC explicitly."""
        return not self.explicit_pic and token.start == self.first_name_position


def _is_plus(token: Optional[Token]) -> bool:
    return token is not None and token.kind == TokenKind.CONNECTIVE and token.text == "+"


def _neighbours(tokens: list[Token], index: int) -> tuple[Optional[Token], Optional[Token]]:
    before = tokens[index - 1] if index > 0 else None
    after = tokens[index + 1] if index + 1 < len(tokens) else None
    return before, after


def _is_bare_name(tokens: list[Token], index: int) -> bool:
    token = tokens[index]
    if token.kind != TokenKind.WORD:
        return False
    before, after = _neighbours(tokens, index)
    if not (_is_plus(before) or _is_plus(after)):
        return False
    text = token.text
    return text[0].isupper() and text not in _NOT_NAMES and lookup_alias(text) is None


# ---------------------------------------------------------------------------
# Claim rules, in precedence order
# ---------------------------------------------------------------------------

def _claim_explicit_roles(state: _LineState) -> None:
    """``NamePIC``, ``Name.PIC``, ``Name co-PIC``, ``PIC: Name``, ``A & B PIC``, ``Web.NamePIC``."""
    tokens = state.tokens
    for i, token in enumerate(tokens):
        if token.kind == TokenKind.PLATFORM_NAME and token.role == Role.PIC:
            state.claim(i, token.name, Role.PIC, token.platform, "explicit role", token.co_pic)
            continue
        if token.kind != TokenKind.NAME_ROLE:
            continue
        joined = (
            i >= 2
            and tokens[i - 1].kind == TokenKind.COJOIN
            and (
                tokens[i - 2].kind == TokenKind.NAME_ROLE
                or (tokens[i - 2].kind == TokenKind.WORD and tokens[i - 2].text[0].isupper())
            )
        )
        co_pic = token.co_pic or joined or (
            i + 2 < len(tokens)
            and tokens[i + 1].kind == TokenKind.COJOIN
            and tokens[i + 2].kind == TokenKind.NAME_ROLE
        )
        if joined and tokens[i - 2].kind == TokenKind.WORD:
            partner = tokens[i - 2]
            state.claim(
                i - 2, state.config.canonical_name(partner.text), Role.PIC, None, "explicit role", True
            )
        state.claim(i, token.name, Role.PIC, None, "explicit role", co_pic)


def _claim_platform_bound_names(state: _LineState) -> None:
    """``Web.AnhL`` / ``AnhL.Web``: Support on that platform, or PIC if first."""
    for i, token in enumerate(state.tokens):
        if token.kind != TokenKind.PLATFORM_NAME:
            continue
        role = Role.PIC if state.defaults_to_pic(token) else Role.SUPPORT
        state.claim(i, token.name, role, token.platform, "platform-bound name")


def _claim_roster_implications(state: _LineState) -> None:
    """A bare platform implies its roster engineer unless already covered."""
    covered = {c.platform for c in state.claims.values() if c.platform is not None}
    for i, token in enumerate(state.tokens):
        if token.kind != TokenKind.PLATFORM or token.platform in covered:
            continue
        engineer = state.config.roster.get(token.platform)
        if not engineer:
            state.unrouted.append(token.platform)
            if state.config.roster:
                state.warnings.append(
                    f"No roster engineer for platform {token.platform.value}"
                )
            continue
        name = state.config.canonical_name(engineer)
        if name.lower() in state.claims:
            state.name_at.setdefault(i, name.lower())
            continue
        state.claim(i, name, Role.SUPPORT, token.platform, "roster implication")


def _claim_platform_groups(state: _LineState) -> None:
    """``Web (AnhD+AnhL)``: every grouped name supports that platform."""
    for i, token in enumerate(state.tokens):
        if token.kind != TokenKind.PLATFORM_GROUP:
            continue
        for name in token.names:
            state.claim(i, name, Role.SUPPORT, token.platform, "platform group")
        if token.names:
            state.name_at[i] = token.names[-1].lower()


def _claim_guides(state: _LineState) -> None:
    """``(guide from Kun)``."""
    for i, token in enumerate(state.tokens):
        if token.kind == TokenKind.GUIDE:
            state.claim(i, token.name, Role.GUIDE, None, "guide")


def _claim_bare_names(state: _LineState) -> None:
    """A capitalised word in a ``+`` chain names an engineer."""
    tokens = state.tokens
    for i, token in enumerate(tokens):
        if i in state.bare_names:
            role = Role.PIC if state.defaults_to_pic(token) else Role.SUPPORT
            state.claim(i, state.config.canonical_name(token.text), role, None, "bare name")
            continue
        if token.kind != TokenKind.WORD:
            continue
        before, after = _neighbours(tokens, i)
        if _is_plus(before) or _is_plus(after):
            state.warnings.append(f"Could not resolve '{token.text}' to an engineer")


NAME_RULES: tuple[tuple[str, Callable[[_LineState], None]], ...] = (
    ("explicit role", _claim_explicit_roles),
    ("platform-bound name", _claim_platform_bound_names),
    ("roster implication", _claim_roster_implications),
    ("platform group", _claim_platform_groups),
    ("guide", _claim_guides),
    ("bare name", _claim_bare_names),
)


# ---------------------------------------------------------------------------
# Post-claim passes
# ---------------------------------------------------------------------------

def _settle_pics(state: _LineState) -> None:
    """Keep a single PIC; a name marked co-PIC stays PIC next to the first."""
    ordered = sorted(state.claims, key=lambda k: state.appearance[k])
    pics = [k for k in ordered if state.claims[k].role == Role.PIC]
    if len(pics) < 2:
        return
    keeper = pics[0]
    for key in pics[1:]:
        claim = state.claims[key]
        if claim.co_pic:
            continue
        claim.role = Role.SUPPORT
        state.warnings.append(
            f"Both {state.claims[keeper].name} and {claim.name} are marked PIC; "
            f"keeping {state.claims[keeper].name}"
        )


def _fill_roster_platforms(state: _LineState) -> None:
    for claim in state.claims.values():
        if claim.platform is None and claim.role != Role.GUIDE:
            claim.platform = state.config.platform_for(claim.name)


def _apply_modifiers(state: _LineState) -> None:
    """Attach confidence, estimates and stars to the engineer they follow."""
    current: Optional[str] = None
    unknown_mention: Optional[str] = None
    for i, token in enumerate(state.tokens):
        if i in state.name_at:
            current, unknown_mention = state.name_at[i], None
            continue
        if token.kind == TokenKind.MENTION:
            key = token.name.lower()
            if key in state.claims:
                current, unknown_mention = key, None
            else:
                current, unknown_mention = None, token.name
            continue
        if token.kind not in (TokenKind.CONFIDENCE, TokenKind.ESTIMATE, TokenKind.STAR):
            continue
        if current is None:
            if unknown_mention:
                state.warnings.append(
                    f"'{token.text.strip()}' given for {unknown_mention}, who is not assigned on this line"
                )
            else:
                state.warnings.append(f"'{token.text.strip()}' has no engineer to attach to")
            continue
        claim = state.claims[current]
        if token.kind == TokenKind.CONFIDENCE:
            claim.confident = token.flag
        elif token.kind == TokenKind.ESTIMATE:
            claim.story_points = token.number
        else:
            claim.priority = Priority.HIGH


def _missing_info(
    tokens: list[Token], invalid: list[RawDate]
) -> tuple[list[MissingInfo], bool]:
    """Collect missing-info tags (first-detected order) and the needs-update flag."""
    found: list[tuple[int, MissingInfo]] = []
    needs_update = False
    clause_start = 0
    clause_tagged = False

    for i, token in enumerate(tokens):
        kind = token.kind
        if kind == TokenKind.CONNECTIVE and token.text in _CLAUSE_BREAKS:
            clause_start, clause_tagged = i + 1, False
        elif kind in (TokenKind.TICKET_PLACEHOLDER, TokenKind.NO_TICKET):
            found.append((token.start, MissingInfo.TICKET))
            clause_tagged = True
        elif kind == TokenKind.DATE_LABEL:
            found.append((token.start, LABEL_TAGS[token.label]))
            needs_update = clause_tagged = True
        elif kind in (TokenKind.DATE_VALUE, TokenKind.RELEASE_VALUE) and token.date in invalid:
            found.append((token.start, LABEL_TAGS[token.label]))
            clause_tagged = True
        elif kind in (TokenKind.MISSING_MARKER, TokenKind.QUERY):
            needs_update = True
            if clause_tagged:
                continue
            tag = MissingInfo.NOTE
            for word in tokens[clause_start:i]:
                if word.kind == TokenKind.WORD and word.text.lower() in MISSING_VOCABULARY:
                    tag = MISSING_VOCABULARY[word.text.lower()]
                    break
            found.append((token.start, tag))
            clause_tagged = True

    tags: list[MissingInfo] = []
    for _, tag in sorted(found, key=lambda pair: pair[0]):
        if tag not in tags:
            tags.append(tag)
    return tags, needs_update


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def resolve_line(
    tokens: list[Token],
    config: ParserConfig,
    date_context: Optional[DateContext] = None,
) -> LineResolution:
    """Resolve one tokenized line into a :class:`LineResolution`.

    An absent ticket is not tagged here; whether that matters depends on
    whether the line turns out to be an item or an annotation.
    """
    date_context = date_context or DateContext()
    result = LineResolution()

    for token in tokens:
        if token.kind == TokenKind.TICKET:
            project = token.text.split("-", 1)[0]
            if project == config.requirement_project:
                result.requirement_refs.append(token.text)
            elif result.ticket_id is None:
                result.ticket_id = token.text
                result.has_ticket_reference = True
            else:
                logger.debug("Ignoring extra ticket %s", token.text)
        elif token.kind == TokenKind.TICKET_PLACEHOLDER:
            result.has_ticket_reference = True
        elif token.kind == TokenKind.PLATFORM and token.platform not in result.platforms:
            result.platforms.append(token.platform)

    state = _LineState(tokens, config)
    for rule_name, rule in NAME_RULES:
        rule(state)
        logger.debug("After %s: %s", rule_name, list(state.claims))
    _settle_pics(state)
    _fill_roster_platforms(state)
    _apply_modifiers(state)

    for key in sorted(state.claims, key=lambda k: state.appearance[k]):
        claim = state.claims[key]
        result.assignees.append(
            Assignee(
                name=claim.name,
                role=claim.role,
                platform=claim.platform,
                confident=claim.confident,
                story_points=claim.story_points,
                priority=claim.priority,
            )
        )
    result.unrouted_platforms = state.unrouted
    result.warnings.extend(state.warnings)

    raw_dates = [t.date for t in tokens if t.date is not None]
    resolved = resolve_dates(raw_dates, date_context)
    result.dates = resolved.bundle
    result.warnings.extend(resolved.warnings)

    result.missing_info, result.needs_update = _missing_info(tokens, resolved.invalid)
    return result
