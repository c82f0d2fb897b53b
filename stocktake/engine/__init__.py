# Reconciliation engine — pure rules, no database access
from stocktake.engine.lifecycle import InventoryStatus, LifecycleAction, Transition, transition
from stocktake.engine.quantity_rule import QuantityReconciliation, reconcile_quantity
from stocktake.engine.serial_classifier import (
    DiscrepancyRecord,
    SerialLedgerEntry,
    SerialObservation,
    classify_serials,
)

__all__ = [
    "InventoryStatus",
    "LifecycleAction",
    "Transition",
    "transition",
    "QuantityReconciliation",
    "reconcile_quantity",
    "DiscrepancyRecord",
    "SerialLedgerEntry",
    "SerialObservation",
    "classify_serials",
]
