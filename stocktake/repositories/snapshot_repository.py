"""
Frozen Snapshot Repository

Write path exists only for the freeze itself (``add_stock_lines`` /
``add_serial_units`` during inventory creation). Everything else is read-only.
"""
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from stocktake.models.product import Product
from stocktake.models.snapshot import FrozenStockLine, FrozenSerialUnit
from stocktake.models.stock import StockBalance, SerialAsset


class SnapshotRepository:

    def __init__(self, db: Session):
        self.db = db

    # ── freeze ────────────────────────────────────────────────────────────────

    def live_stock_balances(self, location_ids: Optional[List[int]] = None) -> List[tuple]:
        q = (
            self.db.query(StockBalance, Product)
            .join(Product, Product.id == StockBalance.product_id)
            .filter(Product.has_serial_control.is_(False))
        )
        if location_ids:
            q = q.filter(StockBalance.location_id.in_(location_ids))
        return q.order_by(StockBalance.product_id, StockBalance.location_id).all()

    def live_serial_assets(self, location_ids: Optional[List[int]] = None) -> List[SerialAsset]:
        q = (
            self.db.query(SerialAsset)
            .join(Product, Product.id == SerialAsset.product_id)
            .filter(Product.has_serial_control.is_(True))
        )
        if location_ids:
            q = q.filter(SerialAsset.location_id.in_(location_ids))
        return q.order_by(SerialAsset.serial_number).all()

    def add_stock_lines(self, lines: Iterable[FrozenStockLine]) -> None:
        self.db.add_all(list(lines))
        self.db.flush()

    def add_serial_units(self, units: Iterable[FrozenSerialUnit]) -> None:
        self.db.add_all(list(units))
        self.db.flush()

    # ── read-only accessors ───────────────────────────────────────────────────

    def get_stock_lines(self, inventory_id: int) -> List[FrozenStockLine]:
        return (
            self.db.query(FrozenStockLine)
            .filter(FrozenStockLine.inventory_id == inventory_id)
            .order_by(FrozenStockLine.id)
            .all()
        )

    def get_serial_units(self, inventory_id: int) -> List[FrozenSerialUnit]:
        return (
            self.db.query(FrozenSerialUnit)
            .filter(FrozenSerialUnit.inventory_id == inventory_id)
            .order_by(FrozenSerialUnit.id)
            .all()
        )

    def get_stock_line(self, inventory_id: int, stock_line_id: int) -> Optional[FrozenStockLine]:
        return (
            self.db.query(FrozenStockLine)
            .filter(FrozenStockLine.inventory_id == inventory_id, FrozenStockLine.id == stock_line_id)
            .first()
        )

    def get_serial_unit(self, inventory_id: int, serial_unit_id: int) -> Optional[FrozenSerialUnit]:
        return (
            self.db.query(FrozenSerialUnit)
            .filter(FrozenSerialUnit.inventory_id == inventory_id, FrozenSerialUnit.id == serial_unit_id)
            .first()
        )

    def get_serial_unit_by_number(self, inventory_id: int, serial_number: str) -> Optional[FrozenSerialUnit]:
        return (
            self.db.query(FrozenSerialUnit)
            .filter(
                FrozenSerialUnit.inventory_id == inventory_id,
                FrozenSerialUnit.serial_number == serial_number,
            )
            .first()
        )
