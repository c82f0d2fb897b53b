# Routers package — Thin Controllers (SRP / DIP)
from stocktake.routers import (
    inventories,
    serial_discrepancies,
    integrations,
)

__all__ = [
    "inventories",
    "serial_discrepancies",
    "integrations",
]
