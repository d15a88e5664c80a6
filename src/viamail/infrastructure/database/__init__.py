"""SQLAlchemy Core engine and schema for the back-office database."""

from viamail.infrastructure.database.engine import create_db_engine, init_database
from viamail.infrastructure.database.schema import (
    command_log,
    metadata,
    parcels,
    payments,
    routes,
    sales,
    tickets,
    trips,
    users,
    vehicles,
)

__all__ = [
    "command_log",
    "create_db_engine",
    "init_database",
    "metadata",
    "parcels",
    "payments",
    "routes",
    "sales",
    "tickets",
    "trips",
    "users",
    "vehicles",
]
