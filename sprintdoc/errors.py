"""Exception hierarchy for sprintdoc."""

from __future__ import annotations


class SprintDocError(Exception):
    """Base class for every error raised by sprintdoc."""


class MarkupStructureError(SprintDocError):
    """The markup cannot be segmented into sections and items at all."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class ConfigError(SprintDocError):
    """A configuration file or setting is missing or invalid."""
