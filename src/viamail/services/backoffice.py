"""Backoffice — one object grouping every back-office service over a Store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from viamail.services.fleet import RouteService, TripService, VehicleService
from viamail.services.sales import ParcelService, PaymentService, SaleService, TicketService
from viamail.services.users import UserService

if TYPE_CHECKING:
    from viamail.infrastructure.store import Store


class Backoffice:
    """Entry point for the command handlers and the CLI."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self.users = UserService(store)
        self.vehicles = VehicleService(store)
        self.routes = RouteService(store)
        self.trips = TripService(store)
        self.sales = SaleService(store)
        self.tickets = TicketService(store)
        self.parcels = ParcelService(store)
        self.payments = PaymentService(store)
