"""
Unit tests for YAML settings loading and CLI overrides.
"""

from pathlib import Path

import pytest

from dupfinder.config.exceptions import ConfigurationError
from dupfinder.config.settings import (
    CONFIG_ENV,
    DupFinderSettings,
    apply_overrides,
    load_settings,
    resolve_config_path,
)
from dupfinder.dedup.models import ActionMode, DetectionMethod, KeepPolicy, ReportFormat

VALID_YAML = """
dupfinder:
  scan:
    directories: [{root}]
    method: size
    min_file_size: 10K
    extensions: [JPG, png]
    workers: 4
  action:
    keep_policy: oldest
    mode: hardlink
    dry_run: true
  report:
    format: json
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "dupfinder.yaml"
    path.write_text(VALID_YAML.format(root=tmp_path), encoding="utf-8")
    return path


class TestLoadSettings:
    def test_defaults_without_file(self):
        settings = load_settings(None)

        assert isinstance(settings, DupFinderSettings)
        assert settings.action is None
        assert settings.report.format is ReportFormat.text

    def test_valid_file(self, config_file, tmp_path):
        settings = load_settings(config_file)

        assert settings.scan.directories == [tmp_path]
        assert settings.scan.method is DetectionMethod.size
        assert settings.scan.min_file_size == 10240
        assert settings.scan.extensions == {"jpg", "png"}
        assert settings.scan.workers == 4
        assert settings.action.keep_policy is KeepPolicy.oldest
        assert settings.action.mode is ActionMode.hardlink
        assert settings.action.dry_run is True
        assert settings.report.format is ReportFormat.json

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.yaml")

    def test_missing_root_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("scan:\n  method: hash\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="root key"):
            load_settings(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("dupfinder: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_settings(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("dupfinder:\n  action:\n    keep_policy: random\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="action.keep_policy"):
            load_settings(path)

    def test_empty_root_section_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("dupfinder:\n", encoding="utf-8")

        assert load_settings(path).scan.workers == 1


class TestResolveConfigPath:
    def test_explicit_wins(self):
        assert resolve_config_path("a.yaml", {CONFIG_ENV: "b.yaml"}) == Path("a.yaml")

    def test_env_fallback(self):
        assert resolve_config_path(None, {CONFIG_ENV: "b.yaml"}) == Path("b.yaml")

    def test_nothing(self):
        assert resolve_config_path(None, {}) is None


class TestOverrides:
    def test_none_values_ignored(self, config_file):
        settings = apply_overrides(load_settings(config_file), scan={"method": None, "workers": 2})

        assert settings.scan.method is DetectionMethod.size
        assert settings.scan.workers == 2

    def test_action_enabled_by_override(self):
        settings = apply_overrides(DupFinderSettings(), action={"mode": ActionMode.remove, "keep_policy": None})

        assert settings.action is not None
        assert settings.action.keep_policy is KeepPolicy.first

    def test_action_merged_with_file(self, config_file):
        settings = apply_overrides(load_settings(config_file), action={"keep_policy": "newest"})

        assert settings.action.keep_policy is KeepPolicy.newest
        assert settings.action.mode is ActionMode.hardlink

    def test_no_action_overrides_keeps_find_only(self):
        settings = apply_overrides(DupFinderSettings(), action={"dry_run": None})
        assert settings.action is None

    def test_invalid_override(self):
        with pytest.raises(ConfigurationError):
            apply_overrides(DupFinderSettings(), scan={"exclude_pattern": "(["})
