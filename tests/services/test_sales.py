"""Tests for TicketService, ParcelService, SaleService and PaymentService."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from viamail.domain.errors import ConflictError, NotFoundError, ValidationError
from viamail.domain.types import TripStatus
from viamail.services.backoffice import Backoffice

Fixture = dict[str, dict[str, Any]]


def _sell(backoffice: Backoffice, fleet: Fixture, people: Fixture, seat: str, method: str) -> Any:
    return backoffice.tickets.sell(seat, fleet["trip"]["id"], people["cliente"]["id"], method)


class TestTickets:
    def test_cash_sale_is_paid(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        ticket = _sell(backoffice, fleet, people, "1", "Efectivo")
        assert ticket["asiento"] == "1"
        assert ticket["viaje_id"] == fleet["trip"]["id"]
        assert ticket["ruta_id"] == fleet["route"]["id"]
        sale = backoffice.sales.get(ticket["venta_id"])
        assert sale["tipo"] == "Boleto"
        assert sale["estado_pago"] == "Pagado"
        assert sale["monto_total"] == Decimal("50.00")
        assert sale["usuario_id"] == people["cliente"]["id"]

    def test_qr_sale_is_pending(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        ticket = _sell(backoffice, fleet, people, "1", "qr")
        assert backoffice.sales.get(ticket["venta_id"])["estado_pago"] == "Pendiente"

    def test_seat_taken(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        _sell(backoffice, fleet, people, "1", "Efectivo")
        with pytest.raises(ConflictError, match="asiento 1 ya está ocupado"):
            _sell(backoffice, fleet, people, "1", "Efectivo")

    def test_trip_full(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        _sell(backoffice, fleet, people, "1", "Efectivo")
        _sell(backoffice, fleet, people, "2", "Efectivo")
        with pytest.raises(ValidationError, match="No hay asientos disponibles"):
            _sell(backoffice, fleet, people, "3", "Efectivo")

    def test_buyer_must_be_client(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            backoffice.tickets.sell("1", fleet["trip"]["id"], people["conductor"]["id"], "QR")
        assert exc_info.value.field == "cliente"

    def test_cancelled_trip(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        backoffice.trips.delete(fleet["trip"]["id"])
        with pytest.raises(ValidationError, match="programado"):
            _sell(backoffice, fleet, people, "1", "Efectivo")

    def test_departed_trip(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        past = backoffice.trips.create(
            fleet["route"]["id"],
            fleet["vehicle"]["id"],
            datetime.now() - timedelta(hours=1),
            Decimal("50"),
            10,
        )
        with pytest.raises(ValidationError, match="ya pasaron"):
            backoffice.tickets.sell("1", past["id"], people["cliente"]["id"], "Efectivo")

    def test_invalid_method(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        with pytest.raises(ValidationError) as exc_info:
            _sell(backoffice, fleet, people, "1", "Tarjeta")
        assert exc_info.value.field == "metodo_pago"

    def test_list_by_trip(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        _sell(backoffice, fleet, people, "1", "Efectivo")
        assert len(backoffice.tickets.list_all(fleet["trip"]["id"])) == 1
        assert backoffice.tickets.list_all(999) == []


class TestParcels:
    def _register(
        self,
        backoffice: Backoffice,
        fleet: Fixture,
        people: Fixture,
        modalidad: str,
        metodo: str,
        monto_origen: Decimal | None = None,
    ) -> dict[str, Any]:
        return backoffice.parcels.register(
            fleet["trip"]["id"],
            people["cliente"]["id"],
            Decimal("3.5"),
            "Juan Pérez",
            Decimal("40"),
            modalidad,
            metodo,
            monto_origen,
        )

    def test_origin_cash_is_paid_in_full(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        parcel = self._register(backoffice, fleet, people, "origen", "Efectivo")
        assert parcel["monto_pagado_origen"] == Decimal("40")
        assert parcel["monto_pagado_destino"] == Decimal("0")
        sale = backoffice.sales.get(parcel["venta_id"])
        assert sale["tipo"] == "Encomienda"
        assert sale["estado_pago"] == "Pagado"
        payments = backoffice.payments.list_all()
        assert [(p["num_cuota"], p["monto"]) for p in payments] == [(1, Decimal("40"))]

    def test_origin_qr_is_pending(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        parcel = self._register(backoffice, fleet, people, "origen", "QR")
        assert parcel["monto_pagado_origen"] == Decimal("0")
        assert backoffice.sales.get(parcel["venta_id"])["estado_pago"] == "Pendiente"
        assert backoffice.payments.list_all() == []

    def test_mixed_records_the_first_installment(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        parcel = self._register(backoffice, fleet, people, "mixto", "QR", Decimal("15"))
        assert parcel["modalidad_pago"] == "mixto"
        assert parcel["monto_pagado_origen"] == Decimal("15")
        assert backoffice.sales.get(parcel["venta_id"])["estado_pago"] == "Pendiente"
        assert backoffice.payments.list_all()[0]["metodo_pago"] == "QR"

    def test_mixed_requires_amount(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            self._register(backoffice, fleet, people, "mixto", "Efectivo")
        assert exc_info.value.field == "monto_origen"

    def test_mixed_amount_above_price(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        with pytest.raises(ValidationError, match="mayor al precio"):
            self._register(backoffice, fleet, people, "mixto", "Efectivo", Decimal("41"))

    def test_destination_pays_nothing_up_front(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        parcel = self._register(backoffice, fleet, people, "destino", "Efectivo")
        assert parcel["monto_pagado_origen"] == Decimal("0")

    def test_invalid_mode(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> None:
        with pytest.raises(ValidationError, match="origen, mixto, destino"):
            self._register(backoffice, fleet, people, "contraentrega", "Efectivo")

    def test_finished_trip_rejects_parcels(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        backoffice.trips.update(fleet["trip"]["id"], estado=TripStatus.FINALIZADO)
        with pytest.raises(ValidationError, match="no está disponible"):
            self._register(backoffice, fleet, people, "origen", "Efectivo")

    def test_trip_in_progress_accepts_parcels(
        self, backoffice: Backoffice, fleet: Fixture, people: Fixture
    ) -> None:
        backoffice.trips.update(fleet["trip"]["id"], estado=TripStatus.EN_CURSO)
        parcel = self._register(backoffice, fleet, people, "destino", "QR")
        assert backoffice.parcels.get(parcel["venta_id"])["viaje_id"] == fleet["trip"]["id"]

    def test_get_missing(self, backoffice: Backoffice) -> None:
        with pytest.raises(NotFoundError, match="Encomienda con venta no encontrado"):
            backoffice.parcels.get(99)


class TestPayments:
    @pytest.fixture
    def sale_id(self, backoffice: Backoffice, fleet: Fixture, people: Fixture) -> int:
        """A pending Bs. 50.00 ticket sale."""
        return _sell(backoffice, fleet, people, "1", "QR")["venta_id"]

    def test_installments_complete_the_sale(self, backoffice: Backoffice, sale_id: int) -> None:
        first = backoffice.payments.register(sale_id, Decimal("20"), "QR")
        second = backoffice.payments.register(sale_id, Decimal("30.00"), "Efectivo")
        assert first["num_cuota"] == 1
        assert second["num_cuota"] == 2
        assert second["estado_pago"] == "pagado"
        assert backoffice.sales.get(sale_id)["estado_pago"] == "Pagado"

    def test_paid_sale_rejects_more(self, backoffice: Backoffice, sale_id: int) -> None:
        backoffice.payments.register(sale_id, Decimal("50"), "QR")
        with pytest.raises(ValidationError) as exc_info:
            backoffice.payments.register(sale_id, Decimal("1"), "QR")
        assert exc_info.value.field == "pago"

    def test_overpayment(self, backoffice: Backoffice, sale_id: int) -> None:
        with pytest.raises(ValidationError, match="Saldo pendiente: Bs. 50.00") as exc_info:
            backoffice.payments.register(sale_id, Decimal("60"), "QR")
        assert exc_info.value.field == "monto"

    def test_explicit_installment_already_recorded(
        self, backoffice: Backoffice, sale_id: int
    ) -> None:
        backoffice.payments.register(sale_id, Decimal("10"), "QR", cuota=1)
        with pytest.raises(ConflictError, match="La cuota 1 ya fue registrada"):
            backoffice.payments.register(sale_id, Decimal("10"), "QR", cuota=1)

    def test_explicit_installment_out_of_sequence(
        self, backoffice: Backoffice, sale_id: int
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            backoffice.payments.register(sale_id, Decimal("10"), "QR", cuota=3)
        assert exc_info.value.field == "cuota"

    def test_non_positive_amount(self, backoffice: Backoffice, sale_id: int) -> None:
        with pytest.raises(ValidationError):
            backoffice.payments.register(sale_id, Decimal("0"), "QR")

    def test_unknown_sale(self, backoffice: Backoffice) -> None:
        with pytest.raises(NotFoundError, match="Venta no encontrado"):
            backoffice.payments.register(99, Decimal("10"), "QR")

    def test_get(self, backoffice: Backoffice, sale_id: int) -> None:
        payment = backoffice.payments.register(sale_id, Decimal("10"), "QR")
        assert backoffice.payments.get(payment["id"])["monto"] == Decimal("10")
        with pytest.raises(NotFoundError):
            backoffice.payments.get(99)
