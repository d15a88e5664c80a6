"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``viamail.toml`` only holds
overrides. A working deployment needs at least the mailbox credentials
and the SMTP relay.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, model_validator

# --- viamail.toml sections ---


class PollingConfig(BaseModel):
    """[polling] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    interval_seconds: int = Field(default=30, ge=1)


class MailboxConfig(BaseModel):
    """[mailbox] section.

    ``cutoff_date`` skips messages received strictly before that day.
    ``consumption = "seen"`` flags processed messages instead of
    deleting them and is only available over IMAP.
    """

    model_config = {"frozen": True}

    protocol: Literal["pop3", "imap"] = "pop3"
    host: str = ""
    port: int = 995
    username: str = ""
    password: str = ""
    use_ssl: bool = True
    folder: str = "INBOX"
    timeout_seconds: float = Field(default=10, gt=0)
    cutoff_date: date | None = None
    consumption: Literal["delete", "seen"] = "delete"

    @model_validator(mode="after")
    def _seen_requires_imap(self) -> MailboxConfig:
        if self.consumption == "seen" and self.protocol != "imap":
            raise ValueError("mailbox.consumption = 'seen' requires mailbox.protocol = 'imap'")
        return self


class SmtpConfig(BaseModel):
    """[smtp] section."""

    model_config = {"frozen": True}

    host: str = ""
    port: int = 25
    username: str = ""
    password: str = ""
    starttls: bool = False
    timeout_seconds: float = Field(default=10, gt=0)
    from_address: str = ""
    from_name: str = "Trans Comarapa"


class SecurityConfig(BaseModel):
    """[security] section."""

    model_config = {"frozen": True}

    sender_policy: Literal["strict", "permissive"] = "strict"


class DatabaseConfig(BaseModel):
    """[database] section."""

    model_config = {"frozen": True}

    url: str = "sqlite:///viamail.db"


class ReplyConfig(BaseModel):
    """[reply] section."""

    model_config = {"frozen": True}

    banner: str = "TRANS COMARAPA - SISTEMA VIA MAIL"
