"""Plain-text formatting for reply emails.

Entity renderers turn service rows into ``- Campo: valor`` blocks; the
reply formatter wraps a :class:`CommandResponse` in the fixed banner
template that every reply uses.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from viamail.domain.protocol import CommandResponse

DATE_FORMAT = "%d/%m/%Y %H:%M"
RULE = "=" * 40
INVALID_COMMAND = "COMANDO_INVALIDO"

Row = Mapping[str, Any]


def _date(value: datetime | None) -> str:
    return value.strftime(DATE_FORMAT) if value is not None else "-"


def _lines(pairs: Iterable[tuple[str, Any]]) -> str:
    """Render ``(label, value)`` pairs, skipping None values."""
    return "".join(f"- {label}: {value}\n" for label, value in pairs if value is not None)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


def format_user(row: Row) -> str:
    return _lines(
        [
            ("ID", row["id"]),
            ("CI", row["ci"]),
            ("Nombre", f"{row['nombre']} {row['apellido']}"),
            ("Rol", row["rol"]),
            ("Teléfono", row.get("telefono")),
            ("Email", row.get("correo")),
            ("Fecha Registro", _date(row.get("created_at"))),
        ]
    )


def format_vehicle(row: Row) -> str:
    return _lines(
        [
            ("ID", row["id"]),
            ("Placa", row["placa"]),
            ("Marca/Modelo", f"{row['marca']} {row['modelo']}"),
            ("Año", row.get("anio")),
            ("Color", row.get("color")),
            ("Tipo", row.get("tipo")),
            ("Estado", row.get("estado")),
        ]
    )


def format_route(row: Row) -> str:
    return _lines(
        [
            ("ID", row["id"]),
            ("Nombre", row["nombre"]),
            ("Origen", row["origen"]),
            ("Destino", row["destino"]),
        ]
    )


def format_trip(row: Row) -> str:
    llegada = row.get("fecha_llegada")
    return _lines(
        [
            ("ID", row["id"]),
            ("Ruta", row["ruta_id"]),
            ("Vehículo", row["vehiculo_id"]),
            ("Fecha Salida", _date(row["fecha_salida"])),
            ("Fecha Llegada", _date(llegada) if llegada is not None else None),
            ("Precio", f"Bs. {row['precio']}"),
            ("Asientos Totales", row["asientos_totales"]),
            ("Estado", row["estado"]),
        ]
    )


def format_ticket(row: Row) -> str:
    return _lines(
        [
            ("ID", row["id"]),
            ("Viaje", row["viaje_id"]),
            ("Asiento", row["asiento"]),
            ("ID Venta", row["venta_id"]),
            ("Fecha Venta", _date(row.get("created_at"))),
        ]
    )


def format_parcel(row: Row) -> str:
    return _lines(
        [
            ("ID Venta", row["venta_id"]),
            ("Viaje", row["viaje_id"]),
            ("Peso", f"{row['peso']} kg"),
            ("Destinatario", row["nombre_destinatario"]),
            ("Descripción", row.get("descripcion")),
            ("Modalidad Pago", row["modalidad_pago"]),
            ("Monto Pagado Origen", f"Bs. {row['monto_pagado_origen']}"),
            ("Monto Pagado Destino", f"Bs. {row['monto_pagado_destino']}"),
            ("Fecha Registro", _date(row.get("created_at"))),
        ]
    )


def format_sale(row: Row) -> str:
    return _lines(
        [
            ("ID", row["id"]),
            ("Tipo", row["tipo"]),
            ("Monto Total", f"Bs. {row['monto_total']}"),
            ("Estado Pago", row["estado_pago"]),
            ("Fecha", _date(row["fecha"])),
        ]
    )


def format_payment(row: Row) -> str:
    return _lines(
        [
            ("ID", row["id"]),
            ("Venta", row["venta_id"]),
            ("Cuota", row["num_cuota"]),
            ("Monto", f"Bs. {row['monto']}"),
            ("Método", row["metodo_pago"]),
            ("Estado", row["estado_pago"]),
            ("Fecha Pago", _date(row.get("fecha_pago"))),
        ]
    )


@dataclass(frozen=True)
class EntityFormat:
    """How one entity kind is named and rendered in replies."""

    label: str
    plural: str
    render: Callable[[Row], str]


ENTITY_FORMATS: dict[str, EntityFormat] = {
    "user": EntityFormat("Usuario", "usuarios", format_user),
    "vehicle": EntityFormat("Vehículo", "vehículos", format_vehicle),
    "route": EntityFormat("Ruta", "rutas", format_route),
    "trip": EntityFormat("Viaje", "viajes", format_trip),
    "ticket": EntityFormat("Boleto", "boletos", format_ticket),
    "parcel": EntityFormat("Encomienda", "encomiendas", format_parcel),
    "sale": EntityFormat("Venta", "ventas", format_sale),
    "payment": EntityFormat("Pago", "pagos", format_payment),
}


def format_entity(kind: str, row: Row) -> str:
    return ENTITY_FORMATS[kind].render(row)


def format_entities(kind: str, rows: list[Row]) -> str:
    """Render a numbered list: ``Total: N usuario(s)`` then one block per row."""
    fmt = ENTITY_FORMATS[kind]
    if not rows:
        return f"No se encontraron {fmt.plural}."
    parts = [f"Total: {len(rows)} {fmt.label.lower()}(s)\n"]
    for index, row in enumerate(rows, start=1):
        parts.append(f"{fmt.label} #{index}:\n{fmt.render(row)}")
    return "\n".join(parts)


def format_success(message: str, body: str = "") -> str:
    """``✓ message`` optionally followed by a detail block."""
    text = f"✓ {message}"
    return f"{text}\n\n{body}" if body else text


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------


def reply_subject(response: CommandResponse) -> str:
    return f"RE: {response.command_name} - {response.status}"


def format_reply(response: CommandResponse, *, banner: str, now: datetime) -> str:
    """Render the full reply body for *response*."""
    if response.ok:
        section, text = "DATOS:", response.payload
    else:
        section, text = "ERROR:", response.error_detail
    return "\n".join(
        [
            RULE,
            banner,
            RULE,
            "",
            f"COMANDO: {response.command_name}",
            f"ESTADO: {response.status}",
            "",
            "MENSAJE:",
            response.message,
            "",
            section,
            (text or "").rstrip("\n"),
            "",
            RULE,
            f"Fecha: {now.isoformat(timespec='seconds')}",
            RULE,
        ]
    )


def failure_subject(command_name: str | None) -> str:
    """Subject of the fallback reply sent when processing itself crashed."""
    return f"RE: ERROR - {command_name or INVALID_COMMAND}"


def format_failure_notice(detail: str) -> str:
    return (
        "ERROR AL PROCESAR COMANDO\n\n"
        f"Error: {detail}\n\n"
        "Por favor verifica el formato del comando y vuelve a intentar."
    )
