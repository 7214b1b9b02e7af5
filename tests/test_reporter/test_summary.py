"""Unit tests for per-engineer summaries and console rendering."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from sprintdoc.parser import Assignee, Assignment, ParseResult, Platform, Priority, Role, SectionKind
from sprintdoc.reporter import (
    find_engineer,
    print_document_summary,
    print_engineer_tasks,
    summarize_by_engineer,
    summarize_document,
    ticket_url,
)
from sprintdoc.reporter.summary import STATUS_DELETED, STATUS_IN_PROGRESS, STATUS_NEEDS_UPDATE, task_status

pytestmark = pytest.mark.unit


@pytest.fixture
def summaries(html_result):
    return summarize_by_engineer(html_result.assignments)


def summary_for(summaries, name):
    return next(s for s in summaries if s.engineer == name)


# ---------------------------------------------------------------------------
# ticket_url / task_status
# ---------------------------------------------------------------------------


class TestTicketUrl:
    def test_browse_link(self):
        assert ticket_url("CRE-1", "https://tracker.example.com/") == "https://tracker.example.com/browse/CRE-1"

    def test_no_base_url(self):
        assert ticket_url("CRE-1", "") is None

    def test_no_ticket(self):
        assert ticket_url(None, "https://tracker.example.com") is None


class TestTaskStatus:
    def test_statuses(self, html_result):
        statuses = [task_status(a) for a in html_result.assignments]
        assert statuses == [
            STATUS_IN_PROGRESS,
            STATUS_IN_PROGRESS,
            STATUS_NEEDS_UPDATE,
            STATUS_IN_PROGRESS,
            STATUS_DELETED,
            STATUS_DELETED,
            STATUS_NEEDS_UPDATE,
            STATUS_IN_PROGRESS,
        ]


# ---------------------------------------------------------------------------
# summarize_by_engineer
# ---------------------------------------------------------------------------


class TestSummarizeByEngineer:
    def test_order_of_first_appearance(self, summaries):
        assert [s.engineer for s in summaries] == [
            "Trang", "AnhL", "Hai", "AnhD", "Nhu", "Kun", "Anh", "Viet", "Vu Hoang",
        ]

    def test_support_engineer(self, summaries):
        anhl = summary_for(summaries, "AnhL")
        assert anhl.task_count == 3
        assert [t.ticket_id for t in anhl.tasks] == ["CRE-10660", "CRE-10661", "CRE-10803"]
        assert anhl.statistics.by_platform == {"Web": 2, "Unspecified": 1}
        assert anhl.statistics.by_section == {"TO BE RELEASED": 2, "Techdebt": 1}
        assert anhl.statistics.by_role == {"Support": 3}

    def test_story_points_and_statuses(self, summaries):
        viet = summary_for(summaries, "Viet")
        assert viet.total_story_points == 5.0
        assert viet.statistics.by_status == {STATUS_DELETED: 1, STATUS_IN_PROGRESS: 1}
        assert viet.tasks[1].platform == Platform.BACKEND

    def test_task_carries_assignee_fields(self, summaries):
        task = summary_for(summaries, "Anh").tasks[0]
        assert task.role == Role.PIC
        assert task.story_points == 12.0
        assert task.priority == Priority.HIGH
        assert task.confident is True
        assert task.epic_title == "[Onboarding] eKYC revamp"
        assert task.requirement_id == "CPPF-1300"
        assert task.section_kind == SectionKind.CARRIED_OVER

    def test_urls_from_tracker(self, html_result, roster_config):
        summaries = summarize_by_engineer(html_result.assignments, roster_config)
        task = summary_for(summaries, "Trang").tasks[0]
        assert task.url == "https://tracker.example.com/browse/CRE-10660"
        assert task.requirement_url == "https://tracker.example.com/browse/CPPF-1245"
        assert summary_for(summaries, "Nhu").tasks[0].url is None

    def test_no_urls_without_tracker(self, summaries):
        assert summary_for(summaries, "Trang").tasks[0].url is None

    def test_engineer_listed_twice_counts_once(self):
        assignment = Assignment(
            ticket_id="CRE-1",
            section_kind=SectionKind.OTHER,
            assignees=[Assignee(name="Anh", role=Role.PIC), Assignee(name="anh", role=Role.SUPPORT)],
            raw_text="CRE-1: AnhPIC + anh",
        )
        summaries = summarize_by_engineer([assignment])
        assert len(summaries) == 1
        assert summaries[0].task_count == 1
        assert summaries[0].tasks[0].role == Role.PIC

    def test_empty(self):
        assert summarize_by_engineer([]) == []


class TestSummarizeDocument:
    def test_totals(self, html_result):
        summary = summarize_document(html_result)
        assert summary.total_engineers == 9
        assert summary.total_tasks == 8
        assert summary.sections == html_result.data.sections
        assert summary.warnings == html_result.warnings
        assert summary.statistics.by_role == {"PIC": 8, "Support": 4, "Guide": 1}

    def test_failed_result(self):
        summary = summarize_document(ParseResult(success=False, error="boom"))
        assert summary.total_tasks == 0
        assert summary.sections == []


class TestFindEngineer:
    def test_exact_before_substring(self, summaries):
        assert find_engineer(summaries, "anh").engineer == "Anh"
        assert find_engineer(summaries, "ANHL").engineer == "AnhL"

    def test_substring_either_way(self, summaries):
        assert find_engineer(summaries, "Vu").engineer == "Vu Hoang"
        assert find_engineer(summaries, "Trang Nguyen").engineer == "Trang"

    @pytest.mark.parametrize("name", ["Nobody", "", "   "])
    def test_not_found(self, summaries, name):
        assert find_engineer(summaries, name) is None


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def _console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


class TestConsoleOutput:
    def test_engineer_tasks(self, summaries):
        console = _console()
        print_engineer_tasks(summary_for(summaries, "AnhL"), console)
        output = console.file.getvalue()
        assert "CRE-10660" in output
        assert "Support" in output
        assert "Tasks: 3" in output

    def test_missing_ticket_shown(self, summaries):
        console = _console()
        print_engineer_tasks(summary_for(summaries, "Nhu"), console)
        output = console.file.getvalue()
        assert "(none)" in output
        assert "ticket, scope" in output

    def test_document_summary(self, html_result):
        console = _console()
        print_document_summary(summarize_document(html_result), console)
        output = console.file.getvalue()
        assert "Engineers: 9" in output
        assert "Vu Hoang" in output
        assert "Warnings:" in output
        assert "platform marker(s)" in output
