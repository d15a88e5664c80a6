"""Closed error taxonomy for the command protocol.

Every failure a command can end in is one :class:`ErrorKind`. The
dispatcher converts a :class:`CommandFailure` into a response through
:data:`ERROR_MESSAGES`, which must cover every kind.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    PARSE = "parse"
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    COMMAND = "command"
    INTERNAL = "internal"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.PARSE: "Error de formato",
    ErrorKind.VALIDATION: "Error de validación",
    ErrorKind.AUTHORIZATION: "Error de autorización",
    ErrorKind.NOT_FOUND: "Entidad no encontrada",
    ErrorKind.CONFLICT: "Conflicto con datos existentes",
    ErrorKind.COMMAND: "Error al ejecutar comando",
    ErrorKind.INTERNAL: "Error inesperado",
}

INTERNAL_DETAIL = "Error interno del sistema"


class CommandFailure(Exception):
    """Base class for every expected command failure.

    Attributes:
        kind: Category used to pick the reply message.
        detail: Human-readable explanation sent back to the sender.
        field: Offending parameter name, if the failure concerns one.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, detail: str, *, field: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.field = field

    @property
    def full_detail(self) -> str:
        if self.field:
            return f"Campo '{self.field}': {self.detail}"
        return self.detail


class ParseError(CommandFailure):
    kind = ErrorKind.PARSE


class ValidationError(CommandFailure):
    kind = ErrorKind.VALIDATION


class AuthorizationError(CommandFailure):
    kind = ErrorKind.AUTHORIZATION


class NotFoundError(CommandFailure):
    kind = ErrorKind.NOT_FOUND

    @classmethod
    def entity(cls, label: str, key: object) -> NotFoundError:
        return cls(f"{label} no encontrado(a): {key}")


class ConflictError(CommandFailure):
    kind = ErrorKind.CONFLICT


class CommandError(CommandFailure):
    kind = ErrorKind.COMMAND


class TransportError(Exception):
    """Mailbox or SMTP level failure (connection, timeout, protocol)."""
