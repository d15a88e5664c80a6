"""Access tiers, user roles, and response status enums."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Tier(IntEnum):
    """Ordered access level. Higher values include everything below."""

    PUBLIC = 0
    OPERATOR = 1
    ADMIN = 2

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_LABELS: dict[Tier, str] = {
    Tier.PUBLIC: "Público",
    Tier.OPERATOR: "Operador",
    Tier.ADMIN: "Administrador",
}


class Role(StrEnum):
    """Back-office user roles as stored in the user registry."""

    ADMIN = "Admin"
    SECRETARIA = "Secretaria"
    CONDUCTOR = "Conductor"
    CLIENTE = "Cliente"


ROLE_TIERS: dict[Role, Tier] = {
    Role.ADMIN: Tier.ADMIN,
    Role.SECRETARIA: Tier.OPERATOR,
    Role.CONDUCTOR: Tier.PUBLIC,
    Role.CLIENTE: Tier.PUBLIC,
}


def tier_for_role(role: str) -> Tier:
    """Map a stored role name to its access tier.

    Unknown role names fall back to PUBLIC.
    """
    try:
        return ROLE_TIERS[Role(role)]
    except ValueError:
        return Tier.PUBLIC


class CommandStatus(StrEnum):
    """Binary outcome written to the ``ESTADO:`` line of a reply."""

    SUCCESS = "EXITOSO"
    ERROR = "ERROR"


class TripStatus(StrEnum):
    PROGRAMADO = "programado"
    EN_CURSO = "en_curso"
    FINALIZADO = "finalizado"
    CANCELADO = "cancelado"


class PaymentMode(StrEnum):
    """Parcel payment modality: where the fare is collected."""

    ORIGEN = "origen"
    MIXTO = "mixto"
    DESTINO = "destino"


class PaymentMethod(StrEnum):
    EFECTIVO = "Efectivo"
    QR = "QR"


class SaleStatus(StrEnum):
    PENDIENTE = "Pendiente"
    PAGADO = "Pagado"
    ANULADO = "anulado"
