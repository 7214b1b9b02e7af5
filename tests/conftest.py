"""Shared pytest fixtures for the sprintdoc test suite.

Provides reusable fixtures for:
- The sample sprint documents in ``tests/fixtures`` (HTML and plain text)
- Parser configurations with and without a platform roster
- A fixed reference date so year inference is deterministic
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from sprintdoc.config import ParserConfig
from sprintdoc.parser import ParseResult, parse_document


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@pytest.fixture
def sprint_html() -> str:
    """Storage-format HTML sprint plan covering every section kind."""
    return (FIXTURES_DIR / "sprint-plan.html").read_text(encoding="utf-8")


@pytest.fixture
def sprint_text() -> str:
    """Plain-text rendition of a sprint plan."""
    return (FIXTURES_DIR / "sprint-plan.txt").read_text(encoding="utf-8")


@pytest.fixture
def sprint_html_path(tmp_path: Path, sprint_html: str) -> Path:
    """The HTML sprint plan copied to a temporary file."""
    path = tmp_path / "sprint.html"
    path.write_text(sprint_html, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def reference_date() -> date:
    return date(2024, 3, 1)


@pytest.fixture
def config() -> ParserConfig:
    """Default configuration: no roster, CPPF requirements."""
    return ParserConfig()


@pytest.fixture
def roster_config() -> ParserConfig:
    """Configuration with a platform roster and a tracker URL."""
    return ParserConfig(
        roster={"Android": "Hung", "iOS": "Hai", "Web": "AnhD"},
        tracker_base_url="https://tracker.example.com",
    )


# ---------------------------------------------------------------------------
# Parsed results
# ---------------------------------------------------------------------------

@pytest.fixture
def html_result(sprint_html: str, config: ParserConfig, reference_date: date) -> ParseResult:
    return parse_document(sprint_html, config, reference_date=reference_date)


@pytest.fixture
def text_result(sprint_text: str, config: ParserConfig, reference_date: date) -> ParseResult:
    return parse_document(sprint_text, config, reference_date=reference_date)
