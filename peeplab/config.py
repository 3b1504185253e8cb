"""Configuration — TOML file, environment and .env driven.

Settings are read, highest priority first, from keyword overrides, from
``PEEPLAB_*`` environment variables (nested keys use ``__``, e.g.
``PEEPLAB_GITLAB__TOKEN``), from a ``.env`` file and finally from
``$XDG_CONFIG_HOME/peeplab/config.toml``.

Example config file::

    [gitlab]
    token = "glpat-..."
    instance_url = "https://gitlab.example.com"
    default_project_id = 42

    [app]
    refresh_interval = 30
    max_tracked_mrs = 5
    focus_current_branch = true
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from peeplab.errors import ConfigurationError


def default_config_path() -> Path:
    """``$XDG_CONFIG_HOME/peeplab/config.toml``, falling back to ``~/.config``."""
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "peeplab" / "config.toml"


def default_log_path() -> Path:
    base = os.environ.get("XDG_CACHE_HOME") or Path.home() / ".cache"
    return Path(base) / "peeplab" / "peeplab.log"


class GitLabSettings(BaseModel):
    """``[gitlab]`` section."""

    token: SecretStr = SecretStr("")
    instance_url: str = "https://gitlab.com"
    default_project_id: int | None = None
    request_timeout: float = Field(10.0, gt=0)


class AppSettings(BaseModel):
    """``[app]`` section."""

    refresh_interval: int = Field(30, gt=0)
    max_tracked_mrs: int = Field(5, ge=1)
    focus_current_branch: bool = True
    max_workers: int = Field(8, ge=1)


class UiSettings(BaseModel):
    """``[ui]`` section."""

    relative_timestamps: bool = True


class Settings(BaseSettings):
    """User configuration for peeplab.

    Examples
    --------
    Override via environment::

        export PEEPLAB_GITLAB__TOKEN=glpat-...
        export PEEPLAB_APP__REFRESH_INTERVAL=10
        export PEEPLAB_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PEEPLAB_",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    gitlab: GitLabSettings = Field(default_factory=GitLabSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    ui: UiSettings = Field(default_factory=UiSettings)

    # Logging goes to a file; the terminal belongs to the dashboard.
    log_level: str = "WARNING"
    log_file: Path = Field(default_factory=default_log_path)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @property
    def api_base_url(self) -> str:
        return self.gitlab.instance_url.rstrip("/")

    def require_token(self) -> str:
        """Return the access token, or raise if none is configured."""
        token = self.gitlab.token.get_secret_value().strip()
        if not token:
            raise ConfigurationError(
                "GitLab token is empty. Set [gitlab] token in "
                f"{default_config_path()} or PEEPLAB_GITLAB__TOKEN."
            )
        return token

    def runtime_options(
        self,
        project_id: int,
        focus_branch: str | None = None,
    ) -> RuntimeOptions:
        """Freeze the values the core needs into a flat options record."""
        return RuntimeOptions(
            project_id=project_id,
            base_url=self.api_base_url,
            token=SecretStr(self.require_token()),
            refresh_interval=float(self.app.refresh_interval),
            max_tracked_items=self.app.max_tracked_mrs,
            focus_branch=focus_branch,
            request_timeout=self.gitlab.request_timeout,
            max_workers=self.app.max_workers,
        )


class RuntimeOptions(BaseModel):
    """Flat, immutable options record consumed by the core for a session."""

    model_config = ConfigDict(frozen=True)

    project_id: int
    base_url: str
    token: SecretStr
    refresh_interval: float = 30.0
    max_tracked_items: int = 5
    focus_branch: str | None = None
    request_timeout: float = 10.0
    max_workers: int = 8


def load_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """Load settings, reading the TOML file at *config_path* if it exists.

    Raises
    ------
    ConfigurationError
        If the file is not valid TOML or a value fails validation.
    """
    path = config_path or default_config_path()

    class _FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=path)

    try:
        return _FileSettings(**overrides)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{exc}") from exc
