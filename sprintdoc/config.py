"""sprintdoc configuration.

Typed configuration for the sprint assignment parser. The parser itself
only ever receives a ready-made :class:`ParserConfig`; reading files and
environment variables happens here and in the CLI so the parsing core
stays a pure function of its inputs.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from sprintdoc.errors import ConfigError
from sprintdoc.platforms import Platform, coerce_platform


class ParserConfig(BaseModel):
    """Settings consulted read-only by the parser.

    ``roster`` is the platform -> default engineer table used when a line
    mentions a platform without naming anyone for it. It is empty by
    default so that no engineer is ever implied unless the caller says so.
    """

    requirement_project: str = Field(
        default="CPPF", description="Project key of epic-level requirement references"
    )
    roster: dict[Platform, str] = Field(
        default_factory=dict, description="Platform -> default engineer"
    )
    aliases: dict[str, str] = Field(
        default_factory=dict, description="Name variant -> canonical engineer name"
    )
    tracker_base_url: str = Field(
        default="", description="Issue tracker base URL for browse links"
    )
    max_header_length: int = Field(
        default=80, ge=10, description="Longest text still treated as a section header"
    )

    @field_validator("roster", mode="before")
    @classmethod
    def _normalise_roster(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {coerce_platform(k): str(v).strip() for k, v in value.items()}
        return value

    @field_validator("requirement_project")
    @classmethod
    def _upper_project(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("requirement_project must not be empty")
        return value

    # ------------------------------------------------------------------
    # Roster helpers
    # ------------------------------------------------------------------

    def canonical_name(self, name: str) -> str:
        """Collapse whitespace and apply the alias table (case-insensitive)."""
        cleaned = " ".join(name.split())
        lowered = cleaned.lower()
        for variant, canonical in self.aliases.items():
            if variant.strip().lower() == lowered:
                return canonical
        return cleaned

    def roster_engineers(self) -> set[str]:
        """Every engineer named in the roster, lower-cased."""
        return {name.lower() for name in self.roster.values()}

    def platform_for(self, name: str) -> Platform | None:
        """Return the platform whose default engineer is *name*, if any."""
        lowered = name.lower()
        for platform, engineer in self.roster.items():
            if engineer.lower() == lowered:
                return platform
        return None

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration as JSON, or YAML when *path* ends in .yaml/.yml."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        if target.suffix.lower() in (".yaml", ".yml"):
            target.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        else:
            target.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "ParserConfig":
        """Load a configuration file (JSON or YAML, chosen by suffix).

        Raises:
            ConfigError: If the file is missing, unreadable or invalid.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigError(f"Config file not found: {file_path}")
        raw = file_path.read_text(encoding="utf-8")
        try:
            if file_path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(raw) or {}
            else:
                data = json.loads(raw)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Cannot parse config file {file_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config in {file_path}: {exc}") from exc

    @classmethod
    def from_env(cls) -> "ParserConfig":
        """Build a ``ParserConfig`` from environment variables.

        Recognised variables (all optional):
            SPRINTDOC_REQUIREMENT_PROJECT, SPRINTDOC_ROSTER ("Android=Hung,iOS=Hai"),
            SPRINTDOC_ALIASES ("Vu Hoang=VuH"), SPRINTDOC_TRACKER_URL.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("SPRINTDOC_REQUIREMENT_PROJECT"):
            kwargs["requirement_project"] = os.environ["SPRINTDOC_REQUIREMENT_PROJECT"]
        if os.environ.get("SPRINTDOC_ROSTER"):
            kwargs["roster"] = parse_pairs(os.environ["SPRINTDOC_ROSTER"])
        if os.environ.get("SPRINTDOC_ALIASES"):
            kwargs["aliases"] = parse_pairs(os.environ["SPRINTDOC_ALIASES"])
        if os.environ.get("SPRINTDOC_TRACKER_URL"):
            kwargs["tracker_base_url"] = os.environ["SPRINTDOC_TRACKER_URL"]
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigError(f"Invalid sprintdoc environment settings: {exc}") from exc


def parse_pairs(text: str) -> dict[str, str]:
    """Parse ``"a=b, c=d"`` into ``{"a": "b", "c": "d"}``.

    Raises:
        ConfigError: If an entry has no ``=``.
    """
    pairs: dict[str, str] = {}
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        if "=" not in chunk:
            raise ConfigError(f"Expected 'key=value', got: {chunk!r}")
        key, value = chunk.split("=", 1)
        pairs[key.strip()] = value.strip()
    return pairs
