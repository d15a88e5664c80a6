"""Tests for VehicleService, RouteService and TripService."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from viamail.domain.errors import ConflictError, NotFoundError, ValidationError
from viamail.domain.params import EntityRef
from viamail.domain.types import TripStatus
from viamail.services.backoffice import Backoffice

Fixture = dict[str, dict[str, Any]]


class TestVehicles:
    def test_create_normalizes_plate(self, backoffice: Backoffice, people: Fixture) -> None:
        row = backoffice.vehicles.create(
            " abc-123 ", "Toyota", "Coaster", 2020, None, None, None, people["conductor"]["id"]
        )
        assert row["placa"] == "ABC-123"
        assert row["estado"] == "activo"
        assert row["color"] is None

    def test_duplicate_plate(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        with pytest.raises(ConflictError, match="ABC-123"):
            backoffice.vehicles.create(
                "abc-123", "Nissan", "Civilian", 2018, None, None, None, people["conductor"]["id"]
            )

    def test_unknown_driver(self, backoffice: Backoffice) -> None:
        with pytest.raises(NotFoundError, match="Conductor no encontrado"):
            backoffice.vehicles.create("XYZ-999", "Toyota", "Coaster", 2020, None, None, None, 99)

    def test_year_out_of_range(self, backoffice: Backoffice, people: Fixture) -> None:
        with pytest.raises(ValidationError) as exc_info:
            backoffice.vehicles.create(
                "XYZ-999", "Toyota", "Coaster", 1900, None, None, None, people["conductor"]["id"]
            )
        assert exc_info.value.field == "anio"

    def test_get_by_plate(self, backoffice: Backoffice, fleet: Fixture) -> None:
        row = backoffice.vehicles.get(EntityRef(key="abc-123"))
        assert row["id"] == fleet["vehicle"]["id"]

    def test_get_missing_plate(self, backoffice: Backoffice) -> None:
        with pytest.raises(NotFoundError, match="placa: ZZZ-000"):
            backoffice.vehicles.get(EntityRef(key="zzz-000"))

    def test_update_skips_blank_fields(self, backoffice: Backoffice, fleet: Fixture) -> None:
        vehicle_id = fleet["vehicle"]["id"]
        row = backoffice.vehicles.update(vehicle_id, "", "", None, "Rojo", None, "MANTENIMIENTO")
        assert row["marca"] == "Toyota"
        assert row["color"] == "Rojo"
        assert row["estado"] == "mantenimiento"

    def test_delete_deactivates(self, backoffice: Backoffice, fleet: Fixture) -> None:
        row = backoffice.vehicles.delete(fleet["vehicle"]["id"])
        assert row["estado"] == "inactivo"
        assert len(backoffice.vehicles.list_all()) == 1


class TestRoutes:
    def test_default_name(self, backoffice: Backoffice) -> None:
        row = backoffice.routes.create(" Santa Cruz ", "Comarapa")
        assert row["nombre"] == "Santa Cruz - Comarapa"
        assert row["origen"] == "Santa Cruz"

    def test_explicit_name(self, backoffice: Backoffice) -> None:
        assert backoffice.routes.create("A", "B", "Directo")["nombre"] == "Directo"

    def test_blank_origin(self, backoffice: Backoffice) -> None:
        with pytest.raises(ValidationError) as exc_info:
            backoffice.routes.create(" ", "Comarapa")
        assert exc_info.value.field == "origen"

    def test_update(self, backoffice: Backoffice) -> None:
        route = backoffice.routes.create("Santa Cruz", "Comarapa")
        row = backoffice.routes.update(route["id"], None, "Samaipata", None)
        assert row["origen"] == "Santa Cruz"
        assert row["destino"] == "Samaipata"

    def test_delete_unused_route(self, backoffice: Backoffice) -> None:
        route = backoffice.routes.create("Santa Cruz", "Comarapa")
        backoffice.routes.delete(route["id"])
        with pytest.raises(NotFoundError, match="Ruta no encontrado"):
            backoffice.routes.get(route["id"])

    def test_delete_route_with_trips(self, backoffice: Backoffice, fleet: Fixture) -> None:
        with pytest.raises(ConflictError, match="1 viaje"):
            backoffice.routes.delete(fleet["route"]["id"])


class TestTrips:
    def test_create(self, fleet: Fixture) -> None:
        trip = fleet["trip"]
        assert trip["estado"] == "programado"
        assert trip["precio"] == Decimal("50.00")
        assert trip["asientos_totales"] == 2
        assert trip["fecha_llegada"] is None

    def test_non_positive_price(self, backoffice: Backoffice, fleet: Fixture) -> None:
        with pytest.raises(ValidationError) as exc_info:
            backoffice.trips.create(
                fleet["route"]["id"], fleet["vehicle"]["id"], datetime.now(), Decimal("0"), 10
            )
        assert exc_info.value.field == "precio"

    def test_unknown_route(self, backoffice: Backoffice, fleet: Fixture) -> None:
        with pytest.raises(NotFoundError, match="Ruta"):
            backoffice.trips.create(
                99, fleet["vehicle"]["id"], datetime.now(), Decimal("10"), 10
            )

    def test_list_is_ordered_by_departure(self, backoffice: Backoffice, fleet: Fixture) -> None:
        earlier = backoffice.trips.create(
            fleet["route"]["id"],
            fleet["vehicle"]["id"],
            datetime.now() + timedelta(hours=1),
            Decimal("30"),
            10,
        )
        assert [t["id"] for t in backoffice.trips.list_all()] == [
            earlier["id"],
            fleet["trip"]["id"],
        ]

    def test_arrival_must_follow_departure(self, backoffice: Backoffice, fleet: Fixture) -> None:
        trip = fleet["trip"]
        with pytest.raises(ValidationError) as exc_info:
            backoffice.trips.update(
                trip["id"], fecha_llegada=trip["fecha_salida"] - timedelta(hours=1)
            )
        assert exc_info.value.field == "fecha_llegada"

    def test_update_status(self, backoffice: Backoffice, fleet: Fixture) -> None:
        row = backoffice.trips.update(fleet["trip"]["id"], estado=TripStatus.EN_CURSO)
        assert row["estado"] == "en_curso"

    def test_delete_cancels(self, backoffice: Backoffice, fleet: Fixture) -> None:
        row = backoffice.trips.delete(fleet["trip"]["id"])
        assert row["estado"] == "cancelado"
