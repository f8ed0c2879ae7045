"""Tests for YAML config loading and merging."""

from __future__ import annotations

import logging

import pytest

from allocation_qa.core.config import (
    CONFIG_ENV_VAR,
    check_enabled,
    deep_merge,
    default_config,
    load_config,
    resolve_config,
    warn_unknown_checks,
)
from allocation_qa.core.engine import DatasetValidator
from allocation_qa.core.errors import ConfigError
from allocation_qa.core.resources import get_default_config_path


class TestDefaults:
    def test_default_file_is_shipped(self):
        assert get_default_config_path().exists()

    def test_default_values(self):
        config = default_config()
        assert config["ranges"]["priority_max"] == 5
        assert config["phases"]["max"] == 20
        assert config["lists"]["rewrite_preferred_phases"] is True
        assert "skill_coverage" in config["critical_kinds"]
        assert all(check_enabled(config, cid) for cid in config["checks"])


class TestDeepMerge:
    def test_dicts_merge_and_lists_replace(self):
        base = {"a": {"x": 1, "y": 2}, "l": [1, 2]}
        merged = deep_merge(base, {"a": {"y": 3}, "l": [9]})
        assert merged == {"a": {"x": 1, "y": 3}, "l": [9]}
        assert base["a"]["y"] == 2

    def test_resolve_none_is_defaults(self):
        assert resolve_config(None) == default_config()


class TestLoadConfig:
    def test_overlay_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        path = tmp_path / "cfg.yml"
        path.write_text("ranges:\n  priority_max: 3\ncritical_kinds: [duplicate_id]\n", encoding="utf-8")
        config = load_config(path)
        assert config["ranges"]["priority_max"] == 3
        assert config["ranges"]["priority_min"] == 1
        assert config["critical_kinds"] == ["duplicate_id"]

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yml"
        path.write_text("phases:\n  max: 8\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_config()["phases"]["max"] == 8

    def test_overrides_win(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        config = load_config(overrides={"checks": {"advisories": {"enabled": False}}})
        assert not check_enabled(config, "advisories")
        assert check_enabled(config, "duplicate_ids")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yml")

    @pytest.mark.parametrize("text", ["a: [1, 2\n", "- just\n- a list\n"])
    def test_bad_yaml(self, tmp_path, text):
        path = tmp_path / "bad.yml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert exc_info.value.source == "config"

    def test_empty_file_is_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == default_config()


class TestUnknownChecks:
    def test_warns_once_per_unknown_id(self, caplog):
        with caplog.at_level(logging.WARNING, logger="allocation_qa.core.config"):
            unknown = warn_unknown_checks({"checks": {"typo_check": {}, "advisories": {}}}, ["advisories"])
        assert unknown == ["typo_check"]
        assert "typo_check" in caplog.text

    def test_validator_logs_unknown_ids(self, caplog):
        with caplog.at_level(logging.WARNING):
            DatasetValidator({"checks": {"no_such_check": {"enabled": False}}})
        assert "no_such_check" in caplog.text
