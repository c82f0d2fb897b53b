"""
Reconciliation Service — Service Layer (SRP / DIP)

Materializes the three-count rule, and any audit override, into
``line_reconciliations``. Rows are recomputed when a stage closes, when an
audit count lands, and before the inventory closes.
"""
import logging
from datetime import datetime
from typing import List, Tuple

from sqlalchemy.orm import Session

from stocktake.core.exceptions import EntityNotFoundException
from stocktake.engine.quantity_rule import QuantityReconciliation, reconcile_quantity
from stocktake.models.reconciliation import LineReconciliation
from stocktake.models.snapshot import FrozenStockLine
from stocktake.repositories.inventory_repository import InventoryRepository
from stocktake.repositories.reconciliation_repository import ReconciliationRepository
from stocktake.repositories.snapshot_repository import SnapshotRepository
from stocktake.schemas.reconciliation import LineReconciliationView, ReconciliationSummary
from stocktake.services.ledger import CountLedger, counted_value

logger = logging.getLogger(__name__)


class ReconciliationService:

    def __init__(self, db: Session):
        self._db = db
        self._inventory_repo = InventoryRepository(db)
        self._snapshot_repo = SnapshotRepository(db)
        self._repo = ReconciliationRepository(db)
        self._ledger = CountLedger(db)

    def refresh(self, inventory_id: int, commit: bool = True) -> List[Tuple[FrozenStockLine, QuantityReconciliation]]:
        """Recompute every line of the inventory from the current ledger."""
        lines = self._snapshot_repo.get_stock_lines(inventory_id)
        counts = self._ledger.quantity_counts(inventory_id)
        existing = self._repo.by_stock_line(inventory_id)
        now = datetime.utcnow()

        results = []
        for line in lines:
            stages = counts.get(line.id, {})
            result = reconcile_quantity(
                line.expected_quantity,
                counted_value(stages.get(1)),
                counted_value(stages.get(2)),
                counted_value(stages.get(3)),
                counted_value(stages.get(4)),
            )
            row = existing.get(line.id)
            if row is None:
                row = LineReconciliation(inventory_id=inventory_id, stock_line_id=line.id)
                self._db.add(row)
            row.final_quantity = result.final_quantity
            row.is_divergent = result.is_divergent
            row.is_incomplete = result.is_incomplete
            row.stage_used = result.stage_used
            row.divergence_quantity = result.divergence_quantity
            row.divergence_percent = result.divergence_percent
            row.computed_at = now
            results.append((line, result))

        if commit:
            self._db.commit()
        else:
            self._db.flush()

        logger.info(
            "reconciliation_refreshed",
            extra={
                "inventory_id": inventory_id,
                "lines": len(results),
                "divergent": sum(1 for _, r in results if r.is_divergent),
                "incomplete": sum(1 for _, r in results if r.is_incomplete),
            },
        )
        return results

    def incomplete_line_labels(self, inventory_id: int) -> List[str]:
        return [
            f"line {line.id}"
            for line, result in self.refresh(inventory_id, commit=False)
            if result.is_incomplete
        ]

    def get_summary(
        self,
        inventory_id: int,
        divergent_only: bool = False,
        incomplete_only: bool = False,
    ) -> ReconciliationSummary:
        if not self._inventory_repo.get_by_id(inventory_id):
            raise EntityNotFoundException("Inventory", inventory_id)

        counts = self._ledger.quantity_counts(inventory_id)
        rows = self._repo.list_with_lines(inventory_id)
        items = []
        for line, rec in rows:
            stages = counts.get(line.id, {})
            view = LineReconciliationView(
                stock_line_id=line.id,
                product_id=line.product_id,
                location_id=line.location_id,
                expected_quantity=line.expected_quantity,
                count1=counted_value(stages.get(1)),
                count2=counted_value(stages.get(2)),
                count3=counted_value(stages.get(3)),
                count4=counted_value(stages.get(4)),
            )
            if rec is not None:
                view.final_quantity = rec.final_quantity
                view.is_divergent = bool(rec.is_divergent)
                view.is_incomplete = bool(rec.is_incomplete)
                view.stage_used = rec.stage_used
                view.divergence_quantity = rec.divergence_quantity
                view.divergence_percent = rec.divergence_percent
                view.computed_at = rec.computed_at
            items.append(view)

        filtered = [
            v for v in items
            if (not divergent_only or v.is_divergent) and (not incomplete_only or v.is_incomplete)
        ]
        return ReconciliationSummary(
            inventory_id=inventory_id,
            total_lines=len(items),
            divergent_lines=sum(1 for v in items if v.is_divergent),
            incomplete_lines=sum(1 for v in items if v.is_incomplete),
            items=filtered,
        )
