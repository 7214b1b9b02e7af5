"""Tests for milestone date parsing and year inference."""

from __future__ import annotations

from datetime import date

import pytest

from sprintdoc.parser.dates import (
    DateContext,
    expand_year,
    find_release_declaration,
    infer_year,
    parse_numeral,
    resolve_dates,
    to_date,
)

pytestmark = pytest.mark.unit


REFERENCE = date(2024, 3, 1)


class TestParseNumeral:
    def test_day_month(self):
        raw = parse_numeral("DoU", "25/05")
        assert (raw.day, raw.month, raw.year) == (25, 5, None)
        assert not raw.has_year

    def test_full_year(self):
        assert parse_numeral("DoP", "28/05/2025").year == 2025

    def test_two_digit_year(self):
        assert parse_numeral("DoP", "28/05/25").year == 2025

    def test_expand_year(self):
        assert expand_year(7) == 2007
        assert expand_year(2031) == 2031


class TestReleaseDeclaration:
    @pytest.mark.parametrize(
        "text",
        ["[Payment] Repayment flow CPPF-1245 Release on 29/05/2025", "Released: 29/05/2025", "release date 29/05/2025"],
    )
    def test_found(self, text):
        raw = find_release_declaration(text)
        assert raw is not None
        assert (raw.day, raw.month, raw.year) == (29, 5, 2025)

    def test_absent(self):
        assert find_release_declaration("[Payment] Repayment flow CPPF-1245") is None


class TestInferYear:
    def test_explicit_year_kept(self):
        raw = parse_numeral("DoP", "28/05/2023")
        assert infer_year(raw, [raw], DateContext(reference_date=REFERENCE)) == (2023, False)

    def test_nearest_dated_value_on_line(self):
        early = parse_numeral("DoS", "01/05/2026", 0)
        target = parse_numeral("DoU", "25/05", 40)
        near = parse_numeral("DoP", "28/05/2027", 50)
        context = DateContext(reference_date=REFERENCE)
        assert infer_year(target, [early, target, near], context) == (2027, False)

    def test_epic_release_before_document_year(self):
        raw = parse_numeral("DoU", "25/05")
        context = DateContext(epic_release=date(2025, 5, 29), document_year=2023, reference_date=REFERENCE)
        assert infer_year(raw, [raw], context) == (2025, False)

    def test_document_year(self):
        raw = parse_numeral("DoU", "25/05")
        context = DateContext(document_year=2023, reference_date=REFERENCE)
        assert infer_year(raw, [raw], context) == (2023, False)

    def test_reference_date_is_a_guess(self):
        raw = parse_numeral("DoU", "25/05")
        assert infer_year(raw, [raw], DateContext(reference_date=REFERENCE)) == (2024, True)


class TestResolveDates:
    def test_bundle_slots(self):
        raws = [
            parse_numeral("TDoS", "21/05/2025", 0),
            parse_numeral("DoU", "25/05", 10),
            parse_numeral("DoP", "28/05", 20),
        ]
        resolved = resolve_dates(raws, DateContext(reference_date=REFERENCE))
        assert resolved.bundle.start_of_dev == date(2025, 5, 21)
        assert resolved.bundle.start_of_uat == date(2025, 5, 25)
        assert resolved.bundle.start_of_prod == date(2025, 5, 28)
        assert resolved.warnings == []

    def test_dos_wins_over_tdos_either_order(self):
        context = DateContext(reference_date=REFERENCE)
        tdos_first = [parse_numeral("TDoS", "20/05/2025", 0), parse_numeral("DoS", "21/05/2025", 10)]
        dos_first = [parse_numeral("DoS", "21/05/2025", 0), parse_numeral("TDoS", "20/05/2025", 10)]
        assert resolve_dates(tdos_first, context).bundle.start_of_dev == date(2025, 5, 21)
        assert resolve_dates(dos_first, context).bundle.start_of_dev == date(2025, 5, 21)

    def test_first_value_for_a_slot_kept(self):
        raws = [parse_numeral("DoU", "25/05/2025", 0), parse_numeral("DoU", "26/05/2025", 10)]
        resolved = resolve_dates(raws, DateContext(reference_date=REFERENCE))
        assert resolved.bundle.start_of_uat == date(2025, 5, 25)

    def test_invalid_date_reported(self):
        raw = parse_numeral("DoU", "31/02/2025")
        resolved = resolve_dates([raw], DateContext(reference_date=REFERENCE))
        assert resolved.bundle is None
        assert resolved.invalid == [raw]
        assert resolved.warnings == ["Invalid date for DoU: 31/02/2025"]

    def test_epic_release_fills_release_slot(self):
        context = DateContext(epic_release=date(2025, 5, 29), reference_date=REFERENCE)
        resolved = resolve_dates([], context)
        assert resolved.bundle.release_date == date(2025, 5, 29)

    def test_line_release_beats_epic_release(self):
        context = DateContext(epic_release=date(2025, 5, 29), reference_date=REFERENCE)
        resolved = resolve_dates([parse_numeral("RD", "30/05/2025")], context)
        assert resolved.bundle.release_date == date(2025, 5, 30)

    def test_guessed_year_warns(self):
        resolved = resolve_dates([parse_numeral("DoU", "25/05")], DateContext(reference_date=REFERENCE))
        assert resolved.bundle.start_of_uat == date(2024, 5, 25)
        assert resolved.warnings == ["No year found for 25/05; assumed 2024"]

    def test_nothing_to_resolve(self):
        resolved = resolve_dates([], DateContext(reference_date=REFERENCE))
        assert resolved.bundle is None
        assert resolved.warnings == []


def test_to_date_uses_fallback_year():
    assert to_date(parse_numeral("DoU", "25/05"), 2025) == date(2025, 5, 25)
    assert to_date(parse_numeral("DoU", "32/05"), 2025) is None
