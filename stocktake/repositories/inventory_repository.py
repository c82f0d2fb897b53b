"""
Inventory Repository — Repository Pattern (GoF)
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from stocktake.repositories.base import BaseRepository
from stocktake.models.inventory import Inventory


class InventoryRepository(BaseRepository[Inventory]):

    def __init__(self, db: Session):
        super().__init__(Inventory, db)

    def get_by_code(self, code: str) -> Optional[Inventory]:
        return self.db.query(Inventory).filter(Inventory.code == code).first()

    def get_for_update(self, inventory_id: int) -> Optional[Inventory]:
        """Row-locked read; a no-op lock on SQLite, ``FOR UPDATE`` elsewhere."""
        return (
            self.db.query(Inventory)
            .filter(Inventory.id == inventory_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def claim_migration(self, inventory_id: int) -> bool:
        """Atomically set the in-flight guard; False if migrated or already claimed."""
        result = self.db.execute(
            update(Inventory)
            .where(
                Inventory.id == inventory_id,
                Inventory.status == "closed",
                Inventory.erp_migrated.is_(False),
                Inventory.erp_migration_in_progress.is_(False),
            )
            .values(erp_migration_in_progress=True, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def release_migration(self, inventory_id: int) -> None:
        self.db.execute(
            update(Inventory)
            .where(Inventory.id == inventory_id)
            .values(erp_migration_in_progress=False, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
