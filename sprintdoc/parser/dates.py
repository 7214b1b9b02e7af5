"""Milestone date parsing for sprint line items.

Sprint documents write dates as ``dd/mm`` or ``dd/mm/yyyy`` next to a
label (``DoS``, ``TDoS``, ``DoU``, ``DoP``, ``RD``) or after
"Release on".  Year-less dates take their year from the closest context
that states one; two-digit years are read as 20yy.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .models import DateBundle, MissingInfo

logger = logging.getLogger(__name__)


DATE_NUMERAL = r"\d{1,2}/\d{1,2}(?:/\d{2,4})?"
RELEASE_DECLARATION = re.compile(
    r"\b(?i:released?)(?:\s+(?i:on|date|day))?\s*[:=]?\s*(?P<date>" + DATE_NUMERAL + r")"
)

# Date label -> DateBundle field
LABEL_FIELDS: dict[str, str] = {
    "DoS": "start_of_dev",
    "TDoS": "start_of_dev",
    "DoU": "start_of_uat",
    "DoP": "start_of_prod",
    "RD": "release_date",
    "Release": "release_date",
}

LABEL_TAGS: dict[str, MissingInfo] = {
    "DoS": MissingInfo.DOS,
    "TDoS": MissingInfo.TDOS,
    "DoU": MissingInfo.DOU,
    "DoP": MissingInfo.DOP,
    "RD": MissingInfo.RELEASE,
    "Release": MissingInfo.RELEASE,
}


@dataclass(frozen=True)
class RawDate:
    """A date as written: day and month always, year only when stated."""
    label: str
    day: int
    month: int
    year: Optional[int]
    text: str
    position: int = 0

    @property
    def has_year(self) -> bool:
        return self.year is not None


def expand_year(year: int) -> int:
    """Read two-digit years as 20yy."""
    return 2000 + year if year < 100 else year


def parse_numeral(label: str, text: str, position: int = 0) -> RawDate:
    """Split a ``dd/mm[/yy[yy]]`` numeral into a :class:`RawDate`."""
    parts = [int(p) for p in text.split("/")]
    year = expand_year(parts[2]) if len(parts) > 2 else None
    return RawDate(label=label, day=parts[0], month=parts[1], year=year, text=text, position=position)


def find_release_declaration(text: str) -> Optional[RawDate]:
    """Return the first "Release on dd/mm[/yyyy]" declaration in *text*."""
    match = RELEASE_DECLARATION.search(text)
    if not match:
        return None
    return parse_numeral("Release", match.group("date"), match.start())


def to_date(raw: RawDate, year: int) -> Optional[date]:
    """Build a calendar date, or None when day/month are out of range."""
    try:
        return date(raw.year or year, raw.month, raw.day)
    except ValueError:
        return None


@dataclass
class DateContext:
    """Fallback years for year-less dates, nearest first."""
    epic_release: Optional[date] = None
    document_year: Optional[int] = None
    reference_date: date = field(default_factory=date.today)


@dataclass
class ResolvedDates:
    bundle: Optional[DateBundle] = None
    invalid: list[RawDate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def infer_year(raw: RawDate, line_dates: list[RawDate], context: DateContext) -> tuple[int, bool]:
    """Pick the year for a year-less *raw* date.

    Returns ``(year, guessed)`` where ``guessed`` is True when the year came
    from the reference date rather than from the document.
    """
    if raw.year is not None:
        return raw.year, False
    explicit = [d for d in line_dates if d.year is not None]
    if explicit:
        nearest = min(explicit, key=lambda d: abs(d.position - raw.position))
        return nearest.year, False
    if context.epic_release is not None:
        return context.epic_release.year, False
    if context.document_year is not None:
        return context.document_year, False
    return context.reference_date.year, True


def resolve_dates(raw_dates: list[RawDate], context: DateContext) -> ResolvedDates:
    """Turn the raw dates of one line into a :class:`DateBundle`.

    ``DoS`` wins over ``TDoS`` for the start-of-development slot regardless
    of which comes first; otherwise the first value for a slot is kept.
    Invalid calendar dates leave their slot empty and are reported back.
    """
    resolved = ResolvedDates()
    values: dict[str, date] = {}
    from_tdos = False
    guessed = False

    for raw in raw_dates:
        year, was_guessed = infer_year(raw, raw_dates, context)
        value = to_date(raw, year)
        if value is None:
            resolved.invalid.append(raw)
            resolved.warnings.append(f"Invalid date for {raw.label}: {raw.text}")
            continue
        guessed = guessed or was_guessed
        slot = LABEL_FIELDS[raw.label]
        if slot == "start_of_dev" and slot in values:
            if raw.label == "DoS" and from_tdos:
                values[slot] = value
                from_tdos = False
            continue
        if slot in values:
            continue
        values[slot] = value
        if raw.label == "TDoS":
            from_tdos = True

    if "release_date" not in values and context.epic_release is not None:
        values["release_date"] = context.epic_release

    if guessed:
        logger.debug("Year-less dates %s resolved against the reference date", raw_dates)
        resolved.warnings.append(
            f"No year found for {', '.join(d.text for d in raw_dates if d.year is None)}; "
            f"assumed {context.reference_date.year}"
        )
    if values:
        resolved.bundle = DateBundle(**values)
    return resolved
