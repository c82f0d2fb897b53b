"""
Count Ledger Repository

One observation per (unit, stage). Re-submission overwrites the stage's
value; the writer with the latest ``counted_at`` wins and an older write is
dropped. A concurrent insert of the same pair surfaces as an IntegrityError,
after which the write is retried as an update.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stocktake.models.count import QuantityCount, SerialCount

CountModel = TypeVar("CountModel", QuantityCount, SerialCount)


class CountRepository:

    def __init__(self, db: Session):
        self.db = db

    def _get(self, model: Type[CountModel], unit_field: str, unit_id: int, stage: int) -> Optional[CountModel]:
        return (
            self.db.query(model)
            .filter(getattr(model, unit_field) == unit_id, model.stage == stage)
            .populate_existing()
            .first()
        )

    def _upsert(
        self,
        model: Type[CountModel],
        unit_field: str,
        unit_id: int,
        stage: int,
        values: Dict[str, Any],
    ) -> Tuple[CountModel, bool]:
        """Returns the stored row and whether this write was applied."""
        counted_at: datetime = values["counted_at"]
        for _attempt in range(2):
            existing = self._get(model, unit_field, unit_id, stage)
            if existing is not None:
                if existing.counted_at is not None and existing.counted_at > counted_at:
                    return existing, False
                for key, value in values.items():
                    setattr(existing, key, value)
                self.db.commit()
                self.db.refresh(existing)
                return existing, True

            row = model(**{unit_field: unit_id, "stage": stage, **values})
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                continue
            self.db.refresh(row)
            return row, True
        raise RuntimeError(f"Could not upsert {model.__tablename__} for unit {unit_id} stage {stage}")

    def upsert_quantity(self, stock_line_id: int, stage: int, values: Dict[str, Any]) -> Tuple[QuantityCount, bool]:
        return self._upsert(QuantityCount, "stock_line_id", stock_line_id, stage, values)

    def upsert_serial(self, serial_unit_id: int, stage: int, values: Dict[str, Any]) -> Tuple[SerialCount, bool]:
        return self._upsert(SerialCount, "serial_unit_id", serial_unit_id, stage, values)

    def quantity_counts_for_inventory(self, inventory_id: int) -> List[QuantityCount]:
        return (
            self.db.query(QuantityCount)
            .filter(QuantityCount.inventory_id == inventory_id)
            .order_by(QuantityCount.stock_line_id, QuantityCount.stage)
            .all()
        )

    def serial_counts_for_inventory(self, inventory_id: int) -> List[SerialCount]:
        return (
            self.db.query(SerialCount)
            .filter(SerialCount.inventory_id == inventory_id)
            .order_by(SerialCount.serial_unit_id, SerialCount.stage)
            .all()
        )
