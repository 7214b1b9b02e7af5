"""Unit tests for ParserConfig and platform aliases (sprintdoc.config, sprintdoc.platforms).

Tests cover:
- ParserConfig defaults and validation
- Roster normalisation and roster helpers
- Alias canonicalisation
- save/load round trip (JSON and YAML) and load errors
- from_env
- parse_pairs
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sprintdoc.config import ParserConfig, parse_pairs
from sprintdoc.errors import ConfigError
from sprintdoc.platforms import Platform, coerce_platform, lookup_alias


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------


class TestPlatforms:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,platform",
        [
            ("web", Platform.WEB),
            ("FE", Platform.WEB),
            ("ios", Platform.IOS),
            ("be", Platform.BACKEND),
            (Platform.ANDROID, Platform.ANDROID),
        ],
    )
    def test_coerce_platform(self, value, platform):
        assert coerce_platform(value) == platform

    @pytest.mark.unit
    def test_coerce_unknown(self):
        with pytest.raises(ValueError, match="Unknown platform"):
            coerce_platform("Desktop")

    @pytest.mark.unit
    def test_lookup_alias_respects_case(self):
        assert lookup_alias("BE") == Platform.BACKEND
        assert lookup_alias("be") is None
        assert lookup_alias("ANDROID") == Platform.ANDROID


# ---------------------------------------------------------------------------
# ParserConfig
# ---------------------------------------------------------------------------


class TestParserConfig:
    @pytest.mark.unit
    def test_defaults(self):
        config = ParserConfig()
        assert config.requirement_project == "CPPF"
        assert config.roster == {}
        assert config.aliases == {}
        assert config.tracker_base_url == ""
        assert config.max_header_length == 80

    @pytest.mark.unit
    def test_roster_keys_normalised(self):
        config = ParserConfig(roster={"android": " Hung ", "FE": "AnhD"})
        assert config.roster == {Platform.ANDROID: "Hung", Platform.WEB: "AnhD"}

    @pytest.mark.unit
    def test_unknown_roster_platform_rejected(self):
        with pytest.raises(ValidationError):
            ParserConfig(roster={"Desktop": "Hung"})

    @pytest.mark.unit
    def test_requirement_project_uppercased(self):
        assert ParserConfig(requirement_project=" req ").requirement_project == "REQ"

    @pytest.mark.unit
    def test_empty_requirement_project_rejected(self):
        with pytest.raises(ValidationError):
            ParserConfig(requirement_project="  ")

    @pytest.mark.unit
    def test_header_length_minimum(self):
        with pytest.raises(ValidationError):
            ParserConfig(max_header_length=5)

    @pytest.mark.unit
    def test_canonical_name(self):
        config = ParserConfig(aliases={"VuH": "Vu Hoang"})
        assert config.canonical_name("vuh") == "Vu Hoang"
        assert config.canonical_name(" Trang  ") == "Trang"

    @pytest.mark.unit
    def test_roster_helpers(self):
        config = ParserConfig(roster={"Android": "Hung", "iOS": "Hai"})
        assert config.roster_engineers() == {"hung", "hai"}
        assert config.platform_for("HAI") == Platform.IOS
        assert config.platform_for("Trang") is None


# ---------------------------------------------------------------------------
# save / load
# ---------------------------------------------------------------------------


class TestSaveLoad:
    @pytest.mark.unit
    def test_json_round_trip(self, tmp_path: Path):
        config = ParserConfig(roster={"Android": "Hung"}, tracker_base_url="https://t.example.com")
        path = config.save(tmp_path / "sprintdoc.json")
        data = json.loads(path.read_text())
        assert data["roster"] == {"Android": "Hung"}
        assert ParserConfig.load(path) == config

    @pytest.mark.unit
    def test_yaml_round_trip(self, tmp_path: Path):
        config = ParserConfig(aliases={"VuH": "Vu Hoang"})
        path = config.save(tmp_path / "nested" / "sprintdoc.yaml")
        assert ParserConfig.load(path) == config

    @pytest.mark.unit
    def test_hand_written_yaml(self, tmp_path: Path):
        path = tmp_path / "sprintdoc.yml"
        path.write_text("roster:\n  ios: Hai\nrequirement_project: req\n")
        config = ParserConfig.load(path)
        assert config.roster == {Platform.IOS: "Hai"}
        assert config.requirement_project == "REQ"

    @pytest.mark.unit
    def test_empty_yaml_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ParserConfig.load(path) == ParserConfig()

    @pytest.mark.unit
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            ParserConfig.load(tmp_path / "missing.json")

    @pytest.mark.unit
    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Cannot parse"):
            ParserConfig.load(path)

    @pytest.mark.unit
    def test_non_mapping(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="mapping"):
            ParserConfig.load(path)

    @pytest.mark.unit
    def test_invalid_values(self, tmp_path: Path):
        path = tmp_path / "bad-roster.json"
        path.write_text(json.dumps({"roster": {"Desktop": "Hung"}}))
        with pytest.raises(ConfigError, match="Invalid config"):
            ParserConfig.load(path)


# ---------------------------------------------------------------------------
# from_env
# ---------------------------------------------------------------------------


class TestFromEnv:
    @pytest.mark.unit
    def test_defaults_when_no_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = ParserConfig.from_env()
        assert config == ParserConfig()

    @pytest.mark.unit
    def test_all_variables(self):
        env = {
            "SPRINTDOC_REQUIREMENT_PROJECT": "req",
            "SPRINTDOC_ROSTER": "Android=Hung, iOS=Hai",
            "SPRINTDOC_ALIASES": "VuH=Vu Hoang",
            "SPRINTDOC_TRACKER_URL": "https://tracker.example.com",
        }
        with patch.dict(os.environ, env, clear=True):
            config = ParserConfig.from_env()
        assert config.requirement_project == "REQ"
        assert config.roster == {Platform.ANDROID: "Hung", Platform.IOS: "Hai"}
        assert config.aliases == {"VuH": "Vu Hoang"}
        assert config.tracker_base_url == "https://tracker.example.com"

    @pytest.mark.unit
    def test_invalid_roster_platform(self):
        with patch.dict(os.environ, {"SPRINTDOC_ROSTER": "Desktop=Hung"}, clear=True):
            with pytest.raises(ConfigError, match="environment"):
                ParserConfig.from_env()

    @pytest.mark.unit
    def test_malformed_pairs(self):
        with patch.dict(os.environ, {"SPRINTDOC_ROSTER": "Android"}, clear=True):
            with pytest.raises(ConfigError, match="key=value"):
                ParserConfig.from_env()


class TestParsePairs:
    @pytest.mark.unit
    def test_pairs(self):
        assert parse_pairs("a=b, c = d ,") == {"a": "b", "c": "d"}

    @pytest.mark.unit
    def test_value_may_contain_equals(self):
        assert parse_pairs("url=https://x?a=b") == {"url": "https://x?a=b"}

    @pytest.mark.unit
    def test_empty(self):
        assert parse_pairs("") == {}
