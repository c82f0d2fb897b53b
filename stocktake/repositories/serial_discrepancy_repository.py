"""
Serial Discrepancy Repository
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from stocktake.repositories.base import BaseRepository
from stocktake.models.serial_discrepancy import SerialDiscrepancy


class SerialDiscrepancyRepository(BaseRepository[SerialDiscrepancy]):

    def __init__(self, db: Session):
        super().__init__(SerialDiscrepancy, db)

    def list_filtered(
        self,
        inventory_id: int,
        discrepancy_type: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[SerialDiscrepancy], int]:
        q = self.db.query(SerialDiscrepancy).filter(SerialDiscrepancy.inventory_id == inventory_id)
        if discrepancy_type:
            q = q.filter(SerialDiscrepancy.discrepancy_type == discrepancy_type)
        if status:
            q = q.filter(SerialDiscrepancy.status == status)
        total = q.count()
        items = (
            q.order_by(SerialDiscrepancy.discrepancy_type, SerialDiscrepancy.serial_number)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def all_for_inventory(self, inventory_id: int) -> List[SerialDiscrepancy]:
        return (
            self.db.query(SerialDiscrepancy)
            .filter(SerialDiscrepancy.inventory_id == inventory_id)
            .order_by(SerialDiscrepancy.discrepancy_type, SerialDiscrepancy.serial_number)
            .all()
        )

    def delete_by_inventory(self, inventory_id: int, commit: bool = True) -> int:
        deleted = self.db.query(SerialDiscrepancy).filter(
            SerialDiscrepancy.inventory_id == inventory_id,
        ).delete(synchronize_session=False)
        if commit:
            self.db.commit()
        return int(deleted or 0)

    def counts_by_type_and_status(self, inventory_id: int) -> Dict[Tuple[str, str], int]:
        rows = (
            self.db.query(SerialDiscrepancy.discrepancy_type, SerialDiscrepancy.status, func.count(SerialDiscrepancy.id))
            .filter(SerialDiscrepancy.inventory_id == inventory_id)
            .group_by(SerialDiscrepancy.discrepancy_type, SerialDiscrepancy.status)
            .all()
        )
        return {(t, s): int(n) for t, s, n in rows}

    def mark_migrated(self, inventory_id: int, migrated_at: datetime, commit: bool = True) -> int:
        updated = (
            self.db.query(SerialDiscrepancy)
            .filter(
                SerialDiscrepancy.inventory_id == inventory_id,
                SerialDiscrepancy.status == "PENDING",
            )
            .update(
                {SerialDiscrepancy.status: "MIGRATED", SerialDiscrepancy.migrated_at: migrated_at},
                synchronize_session=False,
            )
        )
        if commit:
            self.db.commit()
        return int(updated or 0)
