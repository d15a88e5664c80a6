"""Fleet services — vehicles, routes and scheduled trips."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, func, insert, select, update

from viamail.domain.errors import ConflictError, NotFoundError, ValidationError
from viamail.domain.params import EntityRef
from viamail.domain.types import TripStatus
from viamail.domain.validators import is_blank, is_valid_plate, normalize_plate
from viamail.infrastructure.database.schema import routes, trips, vehicles
from viamail.services.base import BaseService
from viamail.services.users import require_active_user

logger = logging.getLogger(__name__)

VEHICLE_ACTIVE = "activo"
VEHICLE_INACTIVE = "inactivo"
MIN_YEAR = 1950


def _check_year(anio: int) -> None:
    if not MIN_YEAR <= anio <= datetime.now().year + 1:
        raise ValidationError(f"Año fuera de rango: {anio}", field="anio")


def _clean(value: str | None) -> str | None:
    return None if is_blank(value) else value.strip()  # type: ignore[union-attr]


class VehicleService(BaseService):
    """Vehicles are never removed; delete marks them ``inactivo``."""

    def create(
        self,
        placa: str,
        marca: str,
        modelo: str,
        anio: int,
        color: str | None,
        tipo: str | None,
        estado: str | None,
        conductor_id: int,
    ) -> dict[str, Any]:
        plate = normalize_plate(placa)
        if not is_valid_plate(plate):
            raise ValidationError(f"Placa inválida: {placa}", field="placa")
        if is_blank(marca):
            raise ValidationError("La marca es requerida", field="marca")
        if is_blank(modelo):
            raise ValidationError("El modelo es requerido", field="modelo")
        _check_year(anio)

        with self._store.transaction() as conn:
            if conn.execute(select(vehicles.c.id).where(vehicles.c.placa == plate)).first():
                raise ConflictError(f"Ya existe un vehículo con la placa: {plate}", field="placa")
            require_active_user(conn, conductor_id, "Conductor")
            result = conn.execute(
                insert(vehicles).values(
                    placa=plate,
                    marca=marca.strip(),
                    modelo=modelo.strip(),
                    anio=anio,
                    color=_clean(color),
                    tipo=_clean(tipo),
                    estado=(_clean(estado) or VEHICLE_ACTIVE).lower(),
                    conductor_id=conductor_id,
                )
            )
            vehicle_id = result.inserted_primary_key[0]
            row = self._require_row(conn, vehicles, vehicle_id, "Vehículo")
        logger.info("Created vehicle %s (%s)", vehicle_id, plate)
        return row

    def list_all(self) -> list[dict[str, Any]]:
        with self._store.read() as conn:
            return self._rows(conn, select(vehicles).order_by(vehicles.c.id))

    def get(self, ref: EntityRef) -> dict[str, Any]:
        """Look up a vehicle by numeric id or by plate."""
        with self._store.read() as conn:
            if ref.id is not None:
                return self._require_row(conn, vehicles, ref.id, "Vehículo")
            plate = normalize_plate(ref.key or "")
            row = conn.execute(select(vehicles).where(vehicles.c.placa == plate)).first()
        if row is None:
            raise NotFoundError(f"Vehículo no encontrado con placa: {plate}")
        return dict(row._mapping)

    def update(
        self,
        vehicle_id: int,
        marca: str | None = None,
        modelo: str | None = None,
        anio: int | None = None,
        color: str | None = None,
        tipo: str | None = None,
        estado: str | None = None,
        conductor_id: int | None = None,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, value in (
            ("marca", marca),
            ("modelo", modelo),
            ("color", color),
            ("tipo", tipo),
        ):
            if not is_blank(value):
                values[name] = value.strip()  # type: ignore[union-attr]
        if not is_blank(estado):
            values["estado"] = estado.strip().lower()  # type: ignore[union-attr]
        if anio is not None:
            _check_year(anio)
            values["anio"] = anio

        with self._store.transaction() as conn:
            self._require_row(conn, vehicles, vehicle_id, "Vehículo")
            if conductor_id is not None:
                require_active_user(conn, conductor_id, "Conductor")
                values["conductor_id"] = conductor_id
            if values:
                conn.execute(update(vehicles).where(vehicles.c.id == vehicle_id).values(**values))
            return self._require_row(conn, vehicles, vehicle_id, "Vehículo")

    def delete(self, vehicle_id: int) -> dict[str, Any]:
        with self._store.transaction() as conn:
            self._require_row(conn, vehicles, vehicle_id, "Vehículo")
            conn.execute(
                update(vehicles)
                .where(vehicles.c.id == vehicle_id)
                .values(estado=VEHICLE_INACTIVE)
            )
            row = self._require_row(conn, vehicles, vehicle_id, "Vehículo")
        logger.info("Deactivated vehicle %s", vehicle_id)
        return row


class RouteService(BaseService):
    """Routes are hard-deleted, but only while no trip references them."""

    def create(self, origen: str, destino: str, nombre: str | None = None) -> dict[str, Any]:
        if is_blank(origen):
            raise ValidationError("El origen es requerido", field="origen")
        if is_blank(destino):
            raise ValidationError("El destino es requerido", field="destino")
        origen, destino = origen.strip(), destino.strip()
        with self._store.transaction() as conn:
            result = conn.execute(
                insert(routes).values(
                    origen=origen,
                    destino=destino,
                    nombre=_clean(nombre) or f"{origen} - {destino}",
                )
            )
            route_id = result.inserted_primary_key[0]
            row = self._require_row(conn, routes, route_id, "Ruta")
        logger.info("Created route %s (%s)", route_id, row["nombre"])
        return row

    def list_all(self) -> list[dict[str, Any]]:
        with self._store.read() as conn:
            return self._rows(conn, select(routes).order_by(routes.c.id))

    def get(self, route_id: int) -> dict[str, Any]:
        with self._store.read() as conn:
            return self._require_row(conn, routes, route_id, "Ruta")

    def update(
        self,
        route_id: int,
        origen: str | None = None,
        destino: str | None = None,
        nombre: str | None = None,
    ) -> dict[str, Any]:
        values = {
            name: value.strip()  # type: ignore[union-attr]
            for name, value in (("origen", origen), ("destino", destino), ("nombre", nombre))
            if not is_blank(value)
        }
        with self._store.transaction() as conn:
            self._require_row(conn, routes, route_id, "Ruta")
            if values:
                conn.execute(update(routes).where(routes.c.id == route_id).values(**values))
            return self._require_row(conn, routes, route_id, "Ruta")

    def delete(self, route_id: int) -> dict[str, Any]:
        with self._store.transaction() as conn:
            row = self._require_row(conn, routes, route_id, "Ruta")
            referencing = conn.execute(
                select(func.count()).select_from(trips).where(trips.c.ruta_id == route_id)
            ).scalar_one()
            if referencing:
                raise ConflictError(
                    f"La ruta {route_id} tiene {referencing} viaje(s) asociado(s)"
                )
            conn.execute(delete(routes).where(routes.c.id == route_id))
        logger.info("Deleted route %s", route_id)
        return row


class TripService(BaseService):
    """Trips start ``programado``; delete cancels them."""

    def create(
        self,
        ruta_id: int,
        vehiculo_id: int,
        fecha_salida: datetime,
        precio: Decimal,
        asientos_totales: int,
    ) -> dict[str, Any]:
        if precio <= 0:
            raise ValidationError("El precio debe ser mayor a cero", field="precio")
        if asientos_totales <= 0:
            raise ValidationError("La cantidad de asientos debe ser positiva", field="asientos")
        with self._store.transaction() as conn:
            self._require_row(conn, routes, ruta_id, "Ruta")
            self._require_row(conn, vehicles, vehiculo_id, "Vehículo")
            result = conn.execute(
                insert(trips).values(
                    ruta_id=ruta_id,
                    vehiculo_id=vehiculo_id,
                    fecha_salida=fecha_salida,
                    precio=precio,
                    asientos_totales=asientos_totales,
                    estado=TripStatus.PROGRAMADO.value,
                )
            )
            trip_id = result.inserted_primary_key[0]
            row = self._require_row(conn, trips, trip_id, "Viaje")
        logger.info("Scheduled trip %s on route %s", trip_id, ruta_id)
        return row

    def list_all(self) -> list[dict[str, Any]]:
        with self._store.read() as conn:
            return self._rows(conn, select(trips).order_by(trips.c.fecha_salida, trips.c.id))

    def get(self, trip_id: int) -> dict[str, Any]:
        with self._store.read() as conn:
            return self._require_row(conn, trips, trip_id, "Viaje")

    def update(
        self,
        trip_id: int,
        fecha_salida: datetime | None = None,
        fecha_llegada: datetime | None = None,
        precio: Decimal | None = None,
        asientos_totales: int | None = None,
        estado: TripStatus | None = None,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if fecha_salida is not None:
            values["fecha_salida"] = fecha_salida
        if fecha_llegada is not None:
            values["fecha_llegada"] = fecha_llegada
        if precio is not None:
            if precio <= 0:
                raise ValidationError("El precio debe ser mayor a cero", field="precio")
            values["precio"] = precio
        if asientos_totales is not None:
            if asientos_totales <= 0:
                raise ValidationError(
                    "La cantidad de asientos debe ser positiva", field="asientos"
                )
            values["asientos_totales"] = asientos_totales
        if estado is not None:
            values["estado"] = TripStatus(estado).value

        with self._store.transaction() as conn:
            current = self._require_row(conn, trips, trip_id, "Viaje")
            salida = values.get("fecha_salida", current["fecha_salida"])
            llegada = values.get("fecha_llegada", current["fecha_llegada"])
            if llegada is not None and llegada <= salida:
                raise ValidationError(
                    "La fecha de llegada debe ser posterior a la salida", field="fecha_llegada"
                )
            if values:
                conn.execute(update(trips).where(trips.c.id == trip_id).values(**values))
            return self._require_row(conn, trips, trip_id, "Viaje")

    def delete(self, trip_id: int) -> dict[str, Any]:
        with self._store.transaction() as conn:
            self._require_row(conn, trips, trip_id, "Viaje")
            conn.execute(
                update(trips)
                .where(trips.c.id == trip_id)
                .values(estado=TripStatus.CANCELADO.value)
            )
            row = self._require_row(conn, trips, trip_id, "Viaje")
        logger.info("Cancelled trip %s", trip_id)
        return row
