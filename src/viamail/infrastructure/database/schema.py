"""SQLAlchemy Core table definitions for the back-office database.

Money columns use :class:`Money`, which stores exact decimal text so
SQLite never rounds through floats.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)


class Money(TypeDecorator[Decimal]):
    """Decimal amount persisted as its canonical string form."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value: Any, dialect: Any) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("ci", Text, nullable=False, unique=True),
    Column("nombre", Text, nullable=False),
    Column("apellido", Text, nullable=False),
    Column("rol", Text, nullable=False),
    Column("telefono", Text),
    Column("correo", Text, unique=True),
    Column("created_at", DateTime, nullable=False),
    Column("deleted_at", DateTime),  # soft delete
)

vehicles = Table(
    "vehicles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("placa", Text, nullable=False, unique=True),
    Column("marca", Text, nullable=False),
    Column("modelo", Text, nullable=False),
    Column("anio", Integer),
    Column("color", Text),
    Column("tipo", Text),
    Column("estado", Text, nullable=False, default="activo", server_default="activo"),
    Column("conductor_id", Integer, ForeignKey("users.id")),
)

routes = Table(
    "routes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("origen", Text, nullable=False),
    Column("destino", Text, nullable=False),
    Column("nombre", Text, nullable=False),
)

trips = Table(
    "trips",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("ruta_id", Integer, ForeignKey("routes.id"), nullable=False),
    Column("vehiculo_id", Integer, ForeignKey("vehicles.id"), nullable=False),
    Column("fecha_salida", DateTime, nullable=False),
    Column("fecha_llegada", DateTime),
    Column("precio", Money, nullable=False),
    Column("asientos_totales", Integer, nullable=False),
    Column("estado", Text, nullable=False),
)

sales = Table(
    "sales",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("fecha", DateTime, nullable=False),
    Column("monto_total", Money, nullable=False),
    Column("tipo", Text, nullable=False),  # Boleto | Encomienda
    Column("estado_pago", Text, nullable=False),
    Column("usuario_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("vehiculo_id", Integer, ForeignKey("vehicles.id")),
)

tickets = Table(
    "tickets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("asiento", Text, nullable=False),
    Column("venta_id", Integer, ForeignKey("sales.id"), nullable=False),
    Column("viaje_id", Integer, ForeignKey("trips.id"), nullable=False),
    Column("ruta_id", Integer, ForeignKey("routes.id"), nullable=False),
    Column("created_at", DateTime, nullable=False),
    # Duplicate seat sales are rejected by the database even when a
    # command is replayed after an uncommitted tick.
    UniqueConstraint("viaje_id", "asiento"),
)

parcels = Table(
    "parcels",
    metadata,
    Column("venta_id", Integer, ForeignKey("sales.id"), primary_key=True),
    Column("viaje_id", Integer, ForeignKey("trips.id"), nullable=False),
    Column("ruta_id", Integer, ForeignKey("routes.id"), nullable=False),
    Column("peso", Money, nullable=False),
    Column("descripcion", Text),
    Column("nombre_destinatario", Text, nullable=False),
    Column("modalidad_pago", Text, nullable=False),
    Column("monto_pagado_origen", Money, nullable=False),
    Column("monto_pagado_destino", Money, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("venta_id", Integer, ForeignKey("sales.id"), nullable=False),
    Column("num_cuota", Integer, nullable=False),
    Column("fecha_pago", DateTime, nullable=False),
    Column("monto", Money, nullable=False),
    Column("metodo_pago", Text, nullable=False),
    Column("estado_pago", Text, nullable=False),
    UniqueConstraint("venta_id", "num_cuota"),
)

command_log = Table(
    "command_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sender", Text, nullable=False),
    Column("command", Text, nullable=False),
    Column("parameters", Text),
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("elapsed_ms", Integer, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_users_rol", users.c.rol)
Index("ix_tickets_viaje", tickets.c.viaje_id)
Index("ix_payments_venta", payments.c.venta_id)
Index("ix_command_log_sender", command_log.c.sender)
