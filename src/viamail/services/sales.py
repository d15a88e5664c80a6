"""Sales services — tickets, parcels, sales and installment payments.

Every ticket or parcel creates one row in ``sales`` (``tipo`` is
``Boleto`` or ``Encomienda``). Payments are numbered installments
against a sale; the sale becomes ``Pagado`` once they cover its total.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, insert, select, update

from viamail.domain.errors import ConflictError, NotFoundError, ValidationError
from viamail.domain.types import PaymentMethod, PaymentMode, Role, SaleStatus, TripStatus
from viamail.domain.validators import is_blank
from viamail.infrastructure.database.schema import parcels, payments, sales, tickets, trips
from viamail.services.base import BaseService
from viamail.services.users import require_active_user

logger = logging.getLogger(__name__)

SALE_TICKET = "Boleto"
SALE_PARCEL = "Encomienda"
PAYMENT_DONE = "pagado"

ZERO = Decimal("0")


def _parse_method(metodo: str) -> PaymentMethod:
    normalized = str(metodo).strip().casefold()
    for method in PaymentMethod:
        if method.value.casefold() == normalized:
            return method
    raise ValidationError("Método de pago inválido. Valores: Efectivo, QR", field="metodo_pago")


def _parse_mode(modalidad: str) -> PaymentMode:
    try:
        return PaymentMode(str(modalidad).strip().lower())
    except ValueError:
        raise ValidationError(
            "Modalidad inválida. Valores: origen, mixto, destino", field="modalidad_pago"
        ) from None


def _paid_total(conn: Any, sale_id: int) -> Decimal:
    amounts = conn.execute(select(payments.c.monto).where(payments.c.venta_id == sale_id))
    return sum((row.monto for row in amounts), ZERO)


def _record_payment(
    conn: Any, sale_id: int, cuota: int, monto: Decimal, metodo: PaymentMethod, now: datetime
) -> int:
    result = conn.execute(
        insert(payments).values(
            venta_id=sale_id,
            num_cuota=cuota,
            fecha_pago=now,
            monto=monto,
            metodo_pago=metodo.value,
            estado_pago=PAYMENT_DONE,
        )
    )
    return result.inserted_primary_key[0]


class SaleService(BaseService):
    def list_all(self) -> list[dict[str, Any]]:
        with self._store.read() as conn:
            return self._rows(conn, select(sales).order_by(sales.c.id))

    def get(self, sale_id: int) -> dict[str, Any]:
        with self._store.read() as conn:
            return self._require_row(conn, sales, sale_id, "Venta")


class TicketService(BaseService):
    """Seat sales on scheduled trips."""

    def sell(
        self, asiento: str, viaje_id: int, cliente_id: int, metodo_pago: str
    ) -> dict[str, Any]:
        """Sell seat *asiento* on trip *viaje_id* to client *cliente_id*.

        The trip must be ``programado`` and still in the future, the seat
        free, the trip not full, and the buyer a ``Cliente``.
        """
        if is_blank(asiento):
            raise ValidationError("El número de asiento es requerido", field="asiento")
        seat = asiento.strip()
        method = _parse_method(metodo_pago)
        now = self._now()
        status = SaleStatus.PAGADO if method is PaymentMethod.EFECTIVO else SaleStatus.PENDIENTE

        with self._store.transaction() as conn:
            trip = self._require_row(conn, trips, viaje_id, "Viaje")
            if trip["estado"] != TripStatus.PROGRAMADO:
                raise ValidationError("El viaje no está en estado 'programado'", field="viaje")
            if trip["fecha_salida"] <= now:
                raise ValidationError("La fecha y hora del viaje ya pasaron", field="viaje")
            taken = conn.execute(
                select(tickets.c.id).where(
                    tickets.c.viaje_id == viaje_id, tickets.c.asiento == seat
                )
            ).first()
            if taken is not None:
                raise ConflictError(f"El asiento {seat} ya está ocupado", field="asiento")
            sold = conn.execute(
                select(func.count()).select_from(tickets).where(tickets.c.viaje_id == viaje_id)
            ).scalar_one()
            if sold >= trip["asientos_totales"]:
                raise ValidationError("No hay asientos disponibles en este viaje", field="viaje")
            client = require_active_user(conn, cliente_id, "Cliente")
            if client["rol"] != Role.CLIENTE:
                raise ValidationError("El usuario debe tener rol Cliente", field="cliente")

            sale_id = conn.execute(
                insert(sales).values(
                    fecha=now,
                    monto_total=trip["precio"],
                    tipo=SALE_TICKET,
                    estado_pago=status.value,
                    usuario_id=cliente_id,
                    vehiculo_id=trip["vehiculo_id"],
                )
            ).inserted_primary_key[0]
            ticket_id = conn.execute(
                insert(tickets).values(
                    asiento=seat,
                    venta_id=sale_id,
                    viaje_id=viaje_id,
                    ruta_id=trip["ruta_id"],
                    created_at=now,
                )
            ).inserted_primary_key[0]
            row = self._require_row(conn, tickets, ticket_id, "Boleto")
        logger.info("Sold seat %s on trip %s (ticket %s)", seat, viaje_id, ticket_id)
        return row

    def list_all(self, viaje_id: int | None = None) -> list[dict[str, Any]]:
        stmt = select(tickets).order_by(tickets.c.id)
        if viaje_id is not None:
            stmt = stmt.where(tickets.c.viaje_id == viaje_id)
        with self._store.read() as conn:
            return self._rows(conn, stmt)

    def get(self, ticket_id: int) -> dict[str, Any]:
        with self._store.read() as conn:
            return self._require_row(conn, tickets, ticket_id, "Boleto")


class ParcelService(BaseService):
    """Parcel shipments with origin / mixed / destination payment modes."""

    def register(
        self,
        viaje_id: int,
        cliente_id: int,
        peso: Decimal,
        destinatario: str,
        precio: Decimal,
        modalidad: str,
        metodo_pago: str,
        monto_origen: Decimal | None = None,
        descripcion: str | None = None,
    ) -> dict[str, Any]:
        """Register a parcel on an available trip.

        ``origen`` + ``Efectivo`` pays the full price up front; ``mixto``
        pays ``0 < monto_origen <= precio`` up front; ``destino`` pays
        nothing up front. Any amount paid at origin is recorded as
        installment 1.
        """
        if peso <= 0:
            raise ValidationError("El peso debe ser mayor a 0", field="peso")
        if is_blank(destinatario):
            raise ValidationError("El nombre del destinatario es requerido", field="destinatario")
        if precio <= 0:
            raise ValidationError("El precio debe ser mayor a 0", field="precio")
        mode = _parse_mode(modalidad)
        method = _parse_method(metodo_pago)

        paid_origin = ZERO
        status = SaleStatus.PENDIENTE
        if mode is PaymentMode.ORIGEN:
            if method is PaymentMethod.EFECTIVO:
                paid_origin, status = precio, SaleStatus.PAGADO
        elif mode is PaymentMode.MIXTO:
            if monto_origen is None or monto_origen <= 0:
                raise ValidationError(
                    "Para modalidad mixto debe especificar el monto a pagar en origen",
                    field="monto_origen",
                )
            if monto_origen > precio:
                raise ValidationError(
                    "El monto en origen no puede ser mayor al precio total", field="monto_origen"
                )
            paid_origin = monto_origen
            status = SaleStatus.PAGADO if monto_origen == precio else SaleStatus.PENDIENTE

        now = self._now()
        with self._store.transaction() as conn:
            trip = self._require_row(conn, trips, viaje_id, "Viaje")
            if not _accepts_parcels(trip, now):
                raise ValidationError("El viaje no está disponible", field="viaje")
            require_active_user(conn, cliente_id, "Cliente")
            sale_id = conn.execute(
                insert(sales).values(
                    fecha=now,
                    monto_total=precio,
                    tipo=SALE_PARCEL,
                    estado_pago=status.value,
                    usuario_id=cliente_id,
                    vehiculo_id=trip["vehiculo_id"],
                )
            ).inserted_primary_key[0]
            if paid_origin > 0:
                _record_payment(conn, sale_id, 1, paid_origin, method, now)
            conn.execute(
                insert(parcels).values(
                    venta_id=sale_id,
                    viaje_id=viaje_id,
                    ruta_id=trip["ruta_id"],
                    peso=peso,
                    descripcion=None if is_blank(descripcion) else descripcion,
                    nombre_destinatario=destinatario.strip(),
                    modalidad_pago=mode.value,
                    monto_pagado_origen=paid_origin,
                    monto_pagado_destino=ZERO,
                    created_at=now,
                )
            )
            row = self._require_parcel(conn, sale_id)
        logger.info("Registered parcel (sale %s) on trip %s, mode %s", sale_id, viaje_id, mode)
        return row

    def list_all(self) -> list[dict[str, Any]]:
        with self._store.read() as conn:
            return self._rows(conn, select(parcels).order_by(parcels.c.venta_id))

    def get(self, sale_id: int) -> dict[str, Any]:
        with self._store.read() as conn:
            return self._require_parcel(conn, sale_id)

    @staticmethod
    def _require_parcel(conn: Any, sale_id: int) -> dict[str, Any]:
        row = conn.execute(select(parcels).where(parcels.c.venta_id == sale_id)).first()
        if row is None:
            raise NotFoundError.entity("Encomienda con venta", sale_id)
        return dict(row._mapping)


def _accepts_parcels(trip: dict[str, Any], now: datetime) -> bool:
    if trip["estado"] == TripStatus.PROGRAMADO:
        return trip["fecha_salida"] > now
    if trip["estado"] == TripStatus.EN_CURSO:
        return trip["fecha_llegada"] is None or trip["fecha_llegada"] > now
    return False


class PaymentService(BaseService):
    """Installment payments against an existing sale."""

    def register(
        self, venta_id: int, monto: Decimal, metodo_pago: str, cuota: int | None = None
    ) -> dict[str, Any]:
        """Record the next installment of sale *venta_id*.

        The installment number is always ``existing + 1``. An explicit
        *cuota* must match it: a lower number means that installment was
        already recorded.
        """
        if monto <= 0:
            raise ValidationError("El monto debe ser mayor a 0", field="monto")
        method = _parse_method(metodo_pago)
        now = self._now()

        with self._store.transaction() as conn:
            sale = self._require_row(conn, sales, venta_id, "Venta")
            count = conn.execute(
                select(func.count()).select_from(payments).where(payments.c.venta_id == venta_id)
            ).scalar_one()
            next_cuota = count + 1
            if cuota is not None and cuota != next_cuota:
                if cuota < next_cuota:
                    raise ConflictError(f"La cuota {cuota} ya fue registrada", field="cuota")
                raise ValidationError(
                    f"La siguiente cuota es {next_cuota}, se recibió {cuota}", field="cuota"
                )
            balance = sale["monto_total"] - _paid_total(conn, venta_id)
            if balance <= 0:
                raise ValidationError(
                    f"La venta ya está completamente pagada. Total: Bs. {sale['monto_total']}",
                    field="pago",
                )
            if monto > balance:
                raise ValidationError(
                    f"El monto excede el saldo pendiente. Saldo pendiente: Bs. {balance}, "
                    f"monto intentado: Bs. {monto}",
                    field="monto",
                )
            payment_id = _record_payment(conn, venta_id, next_cuota, monto, method, now)
            if _paid_total(conn, venta_id) >= sale["monto_total"]:
                conn.execute(
                    update(sales)
                    .where(sales.c.id == venta_id)
                    .values(estado_pago=SaleStatus.PAGADO.value)
                )
                logger.info("Sale %s fully paid", venta_id)
            row = self._require_row(conn, payments, payment_id, "Pago")
        logger.info("Recorded installment %s of sale %s", next_cuota, venta_id)
        return row

    def list_all(self) -> list[dict[str, Any]]:
        with self._store.read() as conn:
            return self._rows(
                conn, select(payments).order_by(payments.c.venta_id, payments.c.num_cuota)
            )

    def get(self, payment_id: int) -> dict[str, Any]:
        with self._store.read() as conn:
            return self._require_row(conn, payments, payment_id, "Pago")
