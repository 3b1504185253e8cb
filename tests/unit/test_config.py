"""Tests for Settings — defaults, TOML file, environment and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from peeplab.config import RuntimeOptions, Settings, default_config_path, load_settings
from peeplab.errors import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's own configuration out of these tests."""
    for name in ("PEEPLAB_GITLAB__TOKEN", "PEEPLAB_APP__REFRESH_INTERVAL", "PEEPLAB_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.toml")
        assert settings.gitlab.instance_url == "https://gitlab.com"
        assert settings.gitlab.token.get_secret_value() == ""
        assert settings.gitlab.default_project_id is None
        assert settings.app.refresh_interval == 30
        assert settings.app.max_tracked_mrs == 5
        assert settings.app.focus_current_branch is True
        assert settings.ui.relative_timestamps is True
        assert settings.log_level == "WARNING"

    def test_default_path_uses_xdg(self, tmp_path):
        assert default_config_path() == tmp_path / "xdg" / "peeplab" / "config.toml"


class TestSources:
    def test_toml_file(self, tmp_path):
        path = write_config(
            tmp_path,
            '[gitlab]\ntoken = "glpat-abc"\ninstance_url = "https://git.example.com/"\n'
            "default_project_id = 7\n\n[app]\nrefresh_interval = 10\nmax_tracked_mrs = 3\n",
        )
        settings = load_settings(path)
        assert settings.require_token() == "glpat-abc"
        assert settings.api_base_url == "https://git.example.com"
        assert settings.gitlab.default_project_id == 7
        assert settings.app.refresh_interval == 10
        assert settings.app.max_tracked_mrs == 3

    def test_unknown_ui_keys_are_ignored(self, tmp_path):
        path = write_config(tmp_path, "[ui]\nrelative_timestamps = false\ntheme = \"light\"\n")
        settings = load_settings(path)
        assert settings.ui.relative_timestamps is False
        assert not hasattr(settings.ui, "theme")

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, '[gitlab]\ntoken = "from-file"\n')
        monkeypatch.setenv("PEEPLAB_GITLAB__TOKEN", "from-env")
        assert load_settings(path).require_token() == "from-env"

    def test_overrides_beat_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PEEPLAB_LOG_LEVEL", "INFO")
        settings = load_settings(tmp_path / "absent.toml", log_level="DEBUG")
        assert settings.log_level == "DEBUG"

    def test_default_path_is_read(self, tmp_path):
        target = tmp_path / "xdg" / "peeplab" / "config.toml"
        target.parent.mkdir(parents=True)
        target.write_text("[app]\nmax_tracked_mrs = 2\n", encoding="utf-8")
        assert load_settings().app.max_tracked_mrs == 2


class TestValidation:
    def test_invalid_toml(self, tmp_path):
        path = write_config(tmp_path, "[gitlab\ntoken = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_settings(path)

    def test_out_of_range_value(self, tmp_path):
        path = write_config(tmp_path, "[app]\nrefresh_interval = 0\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(path)

    def test_empty_token_is_rejected(self):
        settings = Settings()
        with pytest.raises(ConfigurationError, match="token"):
            settings.require_token()

    def test_whitespace_token_is_rejected(self, tmp_path):
        path = write_config(tmp_path, '[gitlab]\ntoken = "   "\n')
        with pytest.raises(ConfigurationError):
            load_settings(path).require_token()


class TestRuntimeOptions:
    def test_built_from_settings(self, tmp_path):
        path = write_config(
            tmp_path,
            '[gitlab]\ntoken = "t0k3n"\nrequest_timeout = 4.5\n[app]\nrefresh_interval = 15\n',
        )
        options = load_settings(path).runtime_options(42, "feature")
        assert isinstance(options, RuntimeOptions)
        assert options.project_id == 42
        assert options.focus_branch == "feature"
        assert options.refresh_interval == 15.0
        assert options.request_timeout == 4.5
        assert options.token.get_secret_value() == "t0k3n"

    def test_options_are_frozen(self, tmp_path):
        path = write_config(tmp_path, '[gitlab]\ntoken = "t"\n')
        options = load_settings(path).runtime_options(1)
        with pytest.raises(ValidationError):
            options.project_id = 2  # type: ignore[misc]
