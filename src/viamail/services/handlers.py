"""Command vocabulary — one :class:`HandlerDescriptor` per command.

Commands are ``<action><entity>``: actions ``INS`` (create), ``LIS``
(list), ``GET`` (show), ``UPD`` (update), ``DEL`` (delete); entities
``USU`` users, ``VEH`` vehicles, ``RUT`` routes, ``VIA`` trips, ``BOL``
tickets, ``ENC`` parcels, ``VEN`` sales, ``PAG`` payments. ``HELP`` lists
the commands available to the sender's tier.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from viamail.domain.params import (
    ParamSpec,
    choice,
    decimal,
    identifier,
    integer,
    ref,
    text,
    timestamp,
)
from viamail.domain.subject import USAGE_HINT
from viamail.domain.types import PaymentMethod, PaymentMode, Role, Tier, TripStatus
from viamail.output.formatters import format_entities, format_entity, format_success
from viamail.services.dispatcher import HandlerDescriptor, Invocation, build_registry

if TYPE_CHECKING:
    from viamail.domain.permissions import PermissionTable
    from viamail.services.backoffice import Backoffice

Row = dict[str, Any]


def _p(name: str, convert: Callable[[str], Any] = text) -> ParamSpec:
    return ParamSpec(name, convert)


def _opt(name: str, convert: Callable[[str], Any] = text) -> ParamSpec:
    return ParamSpec(name, convert, required=False)


def _show(kind: str) -> Callable[[Row], str]:
    return lambda row: format_entity(kind, row)


def _listing(kind: str) -> Callable[[list[Row]], str]:
    return lambda rows: format_entities(kind, rows)


def _done(kind: str, message: str) -> Callable[[Row], str]:
    return lambda row: format_success(message, format_entity(kind, row))


def _removed(message: str, key: str = "id") -> Callable[[Row], str]:
    return lambda row: format_success(f"{message} (ID: {row[key]})")


ID = _p("id", identifier)


# ---------------------------------------------------------------------------
# Per-entity descriptor groups
# ---------------------------------------------------------------------------


def _user_handlers(bo: Backoffice) -> list[HandlerDescriptor]:
    users = bo.users
    return [
        HandlerDescriptor(
            "INSUSU",
            (
                _p("ci"),
                _p("nombre"),
                _p("apellido"),
                _p("rol", choice(Role)),
                _p("telefono"),
                _p("correo"),
            ),
            lambda inv: users.create(
                inv["ci"],
                inv["nombre"],
                inv["apellido"],
                inv["rol"],
                inv["telefono"],
                inv["correo"],
            ),
            _done("user", "Usuario creado correctamente"),
            "Registrar un usuario",
        ),
        HandlerDescriptor(
            "LISUSU",
            (_opt("rol", choice(Role)),),
            lambda inv: users.list_all(inv.get("rol")),
            _listing("user"),
            "Listar usuarios activos, opcionalmente por rol",
        ),
        HandlerDescriptor(
            "GETUSU",
            (_p("usuario", ref),),
            lambda inv: users.get(inv["usuario"]),
            _show("user"),
            "Ver un usuario por ID",
        ),
        HandlerDescriptor(
            "UPDUSU",
            (ID, _p("nombre"), _p("apellido"), _p("telefono"), _opt("correo")),
            lambda inv: users.update(
                inv["id"], inv["nombre"], inv["apellido"], inv["telefono"], inv.get("correo")
            ),
            _done("user", "Usuario actualizado correctamente"),
            "Actualizar un usuario",
        ),
        HandlerDescriptor(
            "DELUSU",
            (ID,),
            lambda inv: users.delete(inv["id"]),
            _removed("Usuario eliminado correctamente"),
            "Eliminar un usuario",
        ),
    ]


def _vehicle_handlers(bo: Backoffice) -> list[HandlerDescriptor]:
    vehicles = bo.vehicles
    fields = (
        _p("marca"),
        _p("modelo"),
        _p("anio", integer),
        _p("color"),
        _p("tipo"),
        _p("estado"),
        _p("conductor_id", identifier),
    )

    def values(inv: Invocation) -> tuple[Any, ...]:
        return tuple(inv[spec.name] for spec in fields)

    return [
        HandlerDescriptor(
            "INSVEH",
            (_p("placa"), *fields),
            lambda inv: vehicles.create(inv["placa"], *values(inv)),
            _done("vehicle", "Vehículo registrado correctamente"),
            "Registrar un vehículo",
        ),
        HandlerDescriptor(
            "LISVEH",
            (),
            lambda inv: vehicles.list_all(),
            _listing("vehicle"),
            "Listar vehículos",
        ),
        HandlerDescriptor(
            "GETVEH",
            (_p("vehiculo", ref),),
            lambda inv: vehicles.get(inv["vehiculo"]),
            _show("vehicle"),
            "Ver un vehículo por ID o placa",
        ),
        HandlerDescriptor(
            "UPDVEH",
            (ID, *fields),
            lambda inv: vehicles.update(inv["id"], *values(inv)),
            _done("vehicle", "Vehículo actualizado correctamente"),
            "Actualizar un vehículo",
        ),
        HandlerDescriptor(
            "DELVEH",
            (ID,),
            lambda inv: vehicles.delete(inv["id"]),
            _removed("Vehículo desactivado correctamente"),
            "Desactivar un vehículo",
        ),
    ]


def _route_handlers(bo: Backoffice) -> list[HandlerDescriptor]:
    routes = bo.routes
    return [
        HandlerDescriptor(
            "INSRUT",
            (_p("origen"), _p("destino"), _opt("nombre")),
            lambda inv: routes.create(inv["origen"], inv["destino"], inv.get("nombre")),
            _done("route", "Ruta creada correctamente"),
            "Crear una ruta",
        ),
        HandlerDescriptor(
            "LISRUT", (), lambda inv: routes.list_all(), _listing("route"), "Listar rutas"
        ),
        HandlerDescriptor(
            "GETRUT", (ID,), lambda inv: routes.get(inv["id"]), _show("route"), "Ver una ruta"
        ),
        HandlerDescriptor(
            "UPDRUT",
            (ID, _p("origen"), _p("destino"), _opt("nombre")),
            lambda inv: routes.update(inv["id"], inv["origen"], inv["destino"], inv.get("nombre")),
            _done("route", "Ruta actualizada correctamente"),
            "Actualizar una ruta",
        ),
        HandlerDescriptor(
            "DELRUT",
            (ID,),
            lambda inv: routes.delete(inv["id"]),
            _removed("Ruta eliminada correctamente"),
            "Eliminar una ruta sin viajes",
        ),
    ]


def _trip_handlers(bo: Backoffice) -> list[HandlerDescriptor]:
    trips = bo.trips
    return [
        HandlerDescriptor(
            "INSVIA",
            (
                _p("ruta_id", identifier),
                _p("vehiculo_id", identifier),
                _p("fecha_salida", timestamp),
                _p("precio", decimal),
                _p("asientos", integer),
            ),
            lambda inv: trips.create(
                inv["ruta_id"],
                inv["vehiculo_id"],
                inv["fecha_salida"],
                inv["precio"],
                inv["asientos"],
            ),
            _done("trip", "Viaje programado correctamente"),
            "Programar un viaje (fecha: yyyy-MM-dd HH:mm)",
        ),
        HandlerDescriptor(
            "LISVIA", (), lambda inv: trips.list_all(), _listing("trip"), "Listar viajes"
        ),
        HandlerDescriptor(
            "GETVIA", (ID,), lambda inv: trips.get(inv["id"]), _show("trip"), "Ver un viaje"
        ),
        HandlerDescriptor(
            "UPDVIA",
            (
                ID,
                _p("fecha_salida", timestamp),
                _p("fecha_llegada", timestamp),
                _p("precio", decimal),
                _p("asientos", integer),
                _p("estado", choice(TripStatus)),
            ),
            lambda inv: trips.update(
                inv["id"],
                inv["fecha_salida"],
                inv["fecha_llegada"],
                inv["precio"],
                inv["asientos"],
                inv["estado"],
            ),
            _done("trip", "Viaje actualizado correctamente"),
            "Actualizar un viaje",
        ),
        HandlerDescriptor(
            "DELVIA",
            (ID,),
            lambda inv: trips.delete(inv["id"]),
            _removed("Viaje cancelado correctamente"),
            "Cancelar un viaje",
        ),
    ]


def _sales_handlers(bo: Backoffice) -> list[HandlerDescriptor]:
    return [
        HandlerDescriptor(
            "INSBOL",
            (
                _p("asiento"),
                _p("viaje_id", identifier),
                _p("cliente_id", identifier),
                _p("metodo_pago", choice(PaymentMethod)),
            ),
            lambda inv: bo.tickets.sell(
                inv["asiento"], inv["viaje_id"], inv["cliente_id"], inv["metodo_pago"]
            ),
            _done("ticket", "Boleto vendido correctamente"),
            "Vender un boleto (Efectivo o QR)",
        ),
        HandlerDescriptor(
            "LISBOL",
            (_opt("viaje_id", identifier),),
            lambda inv: bo.tickets.list_all(inv.get("viaje_id")),
            _listing("ticket"),
            "Listar boletos, opcionalmente por viaje",
        ),
        HandlerDescriptor(
            "GETBOL", (ID,), lambda inv: bo.tickets.get(inv["id"]), _show("ticket"), "Ver un boleto"
        ),
        HandlerDescriptor(
            "INSENC",
            (
                _p("viaje_id", identifier),
                _p("cliente_id", identifier),
                _p("peso", decimal),
                _p("destinatario"),
                _p("precio", decimal),
                _p("modalidad", choice(PaymentMode)),
                _p("metodo_pago", choice(PaymentMethod)),
                _opt("monto_origen", decimal),
            ),
            lambda inv: bo.parcels.register(
                inv["viaje_id"],
                inv["cliente_id"],
                inv["peso"],
                inv["destinatario"],
                inv["precio"],
                inv["modalidad"],
                inv["metodo_pago"],
                inv.get("monto_origen"),
            ),
            _done("parcel", "Encomienda registrada correctamente"),
            "Registrar una encomienda (modalidad: origen, mixto, destino)",
        ),
        HandlerDescriptor(
            "LISENC",
            (),
            lambda inv: bo.parcels.list_all(),
            _listing("parcel"),
            "Listar encomiendas",
        ),
        HandlerDescriptor(
            "GETENC",
            (_p("venta_id", identifier),),
            lambda inv: bo.parcels.get(inv["venta_id"]),
            _show("parcel"),
            "Ver una encomienda por ID de venta",
        ),
        HandlerDescriptor(
            "LISVEN", (), lambda inv: bo.sales.list_all(), _listing("sale"), "Listar ventas"
        ),
        HandlerDescriptor(
            "GETVEN", (ID,), lambda inv: bo.sales.get(inv["id"]), _show("sale"), "Ver una venta"
        ),
        HandlerDescriptor(
            "INSPAG",
            (
                _p("venta_id", identifier),
                _p("monto", decimal),
                _p("metodo_pago", choice(PaymentMethod)),
                _opt("cuota", identifier),
            ),
            lambda inv: bo.payments.register(
                inv["venta_id"], inv["monto"], inv["metodo_pago"], inv.get("cuota")
            ),
            _done("payment", "Pago registrado correctamente"),
            "Registrar el pago de una cuota",
        ),
        HandlerDescriptor(
            "LISPAG", (), lambda inv: bo.payments.list_all(), _listing("payment"), "Listar pagos"
        ),
        HandlerDescriptor(
            "GETPAG", (ID,), lambda inv: bo.payments.get(inv["id"]), _show("payment"), "Ver un pago"
        ),
    ]


# ---------------------------------------------------------------------------
# HELP and registry assembly
# ---------------------------------------------------------------------------


def render_help(
    registry: Mapping[str, HandlerDescriptor], table: PermissionTable, tier: Tier
) -> str:
    """List every registered command whose required tier *tier* meets."""
    allowed = set(table.allowed_for(tier))
    visible = [d for name, d in registry.items() if name in allowed]
    lines = [f"Comandos disponibles para nivel {tier.label} ({len(visible)}):", ""]
    for descriptor in visible:
        lines.append(descriptor.usage)
        if descriptor.summary:
            lines.append(f"    {descriptor.summary}")
    lines.extend(["", USAGE_HINT])
    return "\n".join(lines)


def create_registry(
    backoffice: Backoffice, permissions: PermissionTable
) -> Mapping[str, HandlerDescriptor]:
    """Build the frozen registry of every command, ``HELP`` included."""

    def help_entry(inv: Invocation) -> str:
        return render_help(registry, permissions, inv.principal.tier)

    registry = build_registry(
        [
            *_user_handlers(backoffice),
            *_vehicle_handlers(backoffice),
            *_route_handlers(backoffice),
            *_trip_handlers(backoffice),
            *_sales_handlers(backoffice),
            HandlerDescriptor("HELP", (), help_entry, str, "Mostrar esta ayuda"),
        ]
    )
    return registry
