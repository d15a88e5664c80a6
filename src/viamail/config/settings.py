"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``VIAMAIL_*`` prefix, ``__`` for nested keys
                    (``VIAMAIL_MAILBOX__PASSWORD``)
  3. TOML file    — ``viamail.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` fed
by :func:`viamail.config.discovery.find_config`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from sqlalchemy.engine import make_url

from viamail.config.discovery import find_config
from viamail.config.models import (
    DatabaseConfig,
    MailboxConfig,
    PollingConfig,
    ReplyConfig,
    SecurityConfig,
    SmtpConfig,
)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``viamail.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class ViaSettings(BaseSettings):
    """Settings for the whole viamail process.

    Attributes:
        config_root: Directory of the discovered ``viamail.toml`` (or CWD);
            relative SQLite paths resolve against it.
        config_path: The TOML file in use, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "VIAMAIL_",
        "env_nested_delimiter": "__",
    }

    config_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    polling: PollingConfig = Field(default_factory=PollingConfig)
    mailbox: MailboxConfig = Field(default_factory=MailboxConfig)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    reply: ReplyConfig = Field(default_factory=ReplyConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        config_root: Path | None = None,
        **cli_flags: Any,
    ) -> ViaSettings:
        """Construct settings from a CLI invocation.

        Raises:
            click.ClickException: explicit *config_path* missing, invalid
                TOML, or values that fail validation.
        """
        import click

        toml_path: Path | None = None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            toml_path = find_config(config_root)

        resolved_root = config_root
        if resolved_root is None:
            resolved_root = toml_path.parent.resolve() if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(config_root=resolved_root, config_path=toml_path, **cli_flags)
        except ValidationError as exc:
            raise click.ClickException(f"Invalid configuration: {exc}") from exc
        finally:
            _tls.toml_path = None

    @property
    def database_url(self) -> str:
        """Database URL with a relative SQLite path anchored at ``config_root``."""
        url = make_url(self.database.url)
        database = url.database
        if (
            url.get_backend_name() == "sqlite"
            and database
            and database != ":memory:"
            and not Path(database).is_absolute()
        ):
            url = url.set(database=str(self.config_root / database))
        return url.render_as_string(hide_password=False)

    def missing_transport_keys(self) -> list[str]:
        """Dotted names of the mail settings ``serve``/``tick`` cannot run without."""
        required = {
            "mailbox.host": self.mailbox.host,
            "mailbox.username": self.mailbox.username,
            "mailbox.password": self.mailbox.password,
            "smtp.host": self.smtp.host,
            "smtp.from_address": self.smtp.from_address,
        }
        return [key for key, value in required.items() if not value]
