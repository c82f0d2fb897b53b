from stocktake.models.user import User
from stocktake.models.product import Product, Location
from stocktake.models.stock import StockBalance, SerialAsset
from stocktake.models.inventory import Inventory
from stocktake.models.snapshot import FrozenStockLine, FrozenSerialUnit
from stocktake.models.count import QuantityCount, SerialCount
from stocktake.models.reconciliation import LineReconciliation
from stocktake.models.serial_discrepancy import SerialDiscrepancy
from stocktake.models.audit_log import AuditLog

__all__ = [
    "User",
    "Product",
    "Location",
    "StockBalance",
    "SerialAsset",
    "Inventory",
    "FrozenStockLine",
    "FrozenSerialUnit",
    "QuantityCount",
    "SerialCount",
    "LineReconciliation",
    "SerialDiscrepancy",
    "AuditLog",
]
