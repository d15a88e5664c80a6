"""CommandRequest, CommandResponse and Principal — the protocol contract.

INVARIANT: A response carries exactly one of ``payload`` (success) or
``error_detail`` (error). Requests never carry a ``null`` parameter.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from viamail.domain.errors import ERROR_MESSAGES, CommandFailure, ErrorKind
from viamail.domain.types import CommandStatus, Tier

SUCCESS_MESSAGE = "Comando ejecutado correctamente"


class CommandRequest(BaseModel):
    """One parsed subject line.

    Attributes:
        command_name: Upper-case command token, e.g. ``"INSRUT"``.
        parameters: Positional parameter tokens in source order.
        sender_address: Address the reply goes to.
        raw_subject: Subject exactly as received.
    """

    model_config = {"frozen": True}

    command_name: str = Field(pattern=r"^[A-Z]+$")
    parameters: tuple[str, ...] = ()
    sender_address: str = ""
    raw_subject: str = ""

    @field_validator("parameters")
    @classmethod
    def _no_null_tokens(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if any(p.lower() == "null" for p in value):
            raise ValueError("parameters must not contain 'null' tokens")
        return value


class Principal(BaseModel):
    """Identity attributed to the sender of one message."""

    model_config = {"frozen": True}

    address: str
    tier: Tier
    display_name: str
    anonymous: bool = False


class CommandResponse(BaseModel):
    """Outcome of one command, rendered into the reply email.

    Attributes:
        command_name: Command the response belongs to (may be raw text
            when the subject never parsed).
        status: ``EXITOSO`` or ``ERROR``.
        message: Short category message.
        payload: Rendered result text, success only.
        error_kind: Failure category, error only.
        error_detail: Failure explanation, error only.
    """

    model_config = {"frozen": True}

    command_name: str
    status: CommandStatus
    message: str
    payload: str | None = None
    error_kind: ErrorKind | None = None
    error_detail: str | None = None

    @model_validator(mode="after")
    def _exactly_one_body(self) -> CommandResponse:
        if self.status is CommandStatus.SUCCESS:
            if self.payload is None or self.error_detail is not None:
                raise ValueError("success responses carry a payload and no error detail")
        elif self.error_detail is None or self.payload is not None:
            raise ValueError("error responses carry an error detail and no payload")
        return self

    @property
    def ok(self) -> bool:
        return self.status is CommandStatus.SUCCESS

    @classmethod
    def success(cls, command_name: str, payload: str) -> CommandResponse:
        return cls(
            command_name=command_name,
            status=CommandStatus.SUCCESS,
            message=SUCCESS_MESSAGE,
            payload=payload,
        )

    @classmethod
    def failure(cls, command_name: str, error: CommandFailure) -> CommandResponse:
        return cls.error(command_name, error.kind, error.full_detail)

    @classmethod
    def error(cls, command_name: str, kind: ErrorKind, detail: str) -> CommandResponse:
        return cls(
            command_name=command_name,
            status=CommandStatus.ERROR,
            message=ERROR_MESSAGES[kind],
            error_kind=kind,
            error_detail=detail,
        )
