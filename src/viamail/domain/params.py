"""Positional parameter specs and string converters.

Converters take the raw token and return a typed value or raise
``ValueError`` with a user-facing message. The dispatcher turns that
into a ``ValidationError`` naming the parameter.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any, TypeVar

Converter = Callable[[str], Any]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

DATETIME_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S")


@dataclass(frozen=True)
class ParamSpec:
    """One positional parameter of a command.

    Optional parameters must come after all required ones.
    """

    name: str
    convert: Converter
    required: bool = True


@dataclass(frozen=True)
class EntityRef:
    """Lookup key that is either a numeric id or a natural key.

    Exactly one of ``id`` / ``key`` is set. Resolved once, at conversion
    time: a token that parses as an integer is an id, anything else is
    a natural key (CI, plate, ...).
    """

    id: int | None = None
    key: str | None = None

    @classmethod
    def parse(cls, token: str) -> EntityRef:
        value = token.strip()
        if not value:
            raise ValueError("El identificador es requerido")
        try:
            number = int(value)
        except ValueError:
            return cls(key=value)
        if not INT64_MIN <= number <= INT64_MAX:
            raise ValueError(f"Identificador fuera de rango: '{token}'")
        return cls(id=number)

    def __str__(self) -> str:
        return str(self.id) if self.id is not None else str(self.key)


def text(token: str) -> str:
    value = token.strip()
    if not value:
        raise ValueError("El valor es requerido")
    return value


def integer(token: str) -> int:
    try:
        value = int(token.strip())
    except ValueError:
        raise ValueError(f"Se esperaba un número entero, se recibió '{token}'") from None
    # SQLite stores INTEGER as a signed 64-bit value
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"Número fuera de rango: '{token}'")
    return value


def identifier(token: str) -> int:
    value = integer(token)
    if value <= 0:
        raise ValueError(f"El identificador debe ser positivo, se recibió '{token}'")
    return value


def decimal(token: str) -> Decimal:
    try:
        value = Decimal(token.strip())
    except InvalidOperation:
        raise ValueError(f"Se esperaba un número decimal, se recibió '{token}'") from None
    if not value.is_finite():
        raise ValueError(f"Se esperaba un número decimal, se recibió '{token}'")
    return value


def timestamp(token: str) -> datetime:
    value = token.strip()
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Fecha inválida '{token}'. Formato: yyyy-MM-dd HH:mm")


E = TypeVar("E", bound=StrEnum)


def choice(enum_cls: type[E]) -> Converter:
    """Converter accepting any member value of *enum_cls*, case-insensitively."""
    lookup = {member.value.casefold(): member for member in enum_cls}
    allowed = ", ".join(member.value for member in enum_cls)

    def convert(token: str) -> E:
        try:
            return lookup[token.strip().casefold()]
        except KeyError:
            raise ValueError(f"Valor inválido '{token}'. Valores permitidos: {allowed}") from None

    return convert


def ref(token: str) -> EntityRef:
    return EntityRef.parse(token)


def arity_bounds(params: tuple[ParamSpec, ...]) -> tuple[int, int]:
    """Return ``(min, max)`` accepted parameter counts for *params*."""
    return sum(1 for p in params if p.required), len(params)
