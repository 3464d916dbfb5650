"""One settings object built from CLI flags, environment and ``loandesk.toml``.

Sources, strongest first:

1. keyword arguments (the flags Click collected)
2. ``LOANDESK_*`` environment variables, ``__`` between nested keys
3. the TOML file :func:`~loandesk.config.discovery.find_config` located
4. the defaults in :mod:`loandesk.config.models`
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from loandesk.config.discovery import find_config
from loandesk.config.models import (
    DatabaseConfig,
    EngineConfig,
    EventsConfig,
    LibraryConfig,
    LoansConfig,
)

# TOML file feeding the settings object currently under construction.
_toml_file: ContextVar[Path | None] = ContextVar("loandesk_toml_file", default=None)


class LoanDeskSettings(BaseSettings):
    """Settings for the loan engine and the CLI.

    ``root`` is the library directory: the folder holding ``loandesk.toml``,
    or the working directory when no file was found. A relative
    ``database.path`` is taken from there.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="LOANDESK_",
        env_nested_delimiter="__",
    )

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    sync: bool = False

    library: LibraryConfig = Field(default_factory=LibraryConfig)
    loans: LoansConfig = Field(default_factory=LoansConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)

    @property
    def database_path(self) -> Path:
        if self.database.path.is_absolute():
            return self.database.path
        return self.root / self.database.path

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_file = _toml_file.get()
        if toml_file is None:
            return init_settings, env_settings
        return init_settings, env_settings, TomlConfigSettingsSource(settings_cls, toml_file)

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> LoanDeskSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* wins over discovery; a path that does not
        exist simply means no TOML layer. Without *root* the library
        directory is the config file's folder.
        """
        if config_path:
            toml_file: Path | None = Path(config_path)
            if not toml_file.is_file():
                toml_file = None
        else:
            toml_file = find_config(root)

        if root is None:
            root = Path.cwd() if toml_file is None else toml_file.parent

        token = _toml_file.set(toml_file)
        try:
            return cls(root=root, config_path=toml_file, **cli_flags)
        except tomllib.TOMLDecodeError as exc:
            raise click.ClickException(f"Invalid TOML in {toml_file}: {exc}") from exc
        finally:
            _toml_file.reset(token)
