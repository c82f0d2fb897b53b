# Repository Layer — Data Access (Repository Pattern, GoF)
from stocktake.repositories.base import BaseRepository
from stocktake.repositories.inventory_repository import InventoryRepository
from stocktake.repositories.snapshot_repository import SnapshotRepository
from stocktake.repositories.count_repository import CountRepository
from stocktake.repositories.reconciliation_repository import ReconciliationRepository
from stocktake.repositories.serial_discrepancy_repository import SerialDiscrepancyRepository
from stocktake.repositories.audit_log_repository import AuditLogRepository
from stocktake.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "InventoryRepository",
    "SnapshotRepository",
    "CountRepository",
    "ReconciliationRepository",
    "SerialDiscrepancyRepository",
    "AuditLogRepository",
    "UserRepository",
]
