"""
ERP Migration Service — Service Layer (SRP / DIP)

Pushes the final quantities of a closed inventory to the ERP exactly once.

Preconditions are checked in a fixed order and the first failure wins:

1. the inventory is ``closed``
2. it has not been migrated (and no migration is in flight)
3. the actor's role is allowed to migrate
4. no quantity line is Incomplete and every divergent line has a final value

The in-flight guard is claimed with a conditional UPDATE before the ERP is
called, so a concurrent second request fails precondition 2 instead of
sending the batch twice. The migrated flag is only set after the ERP
acknowledges the batch.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from stocktake.config import settings
from stocktake.core.exceptions import (
    EntityNotFoundException,
    PermissionDeniedException,
    StateTransitionException,
    StockTakeException,
)
from stocktake.engine.lifecycle import InventoryStatus
from stocktake.models.inventory import Inventory
from stocktake.models.product import Product
from stocktake.models.user import User
from stocktake.repositories.audit_log_repository import AuditLogRepository
from stocktake.repositories.inventory_repository import InventoryRepository
from stocktake.repositories.reconciliation_repository import ReconciliationRepository
from stocktake.repositories.serial_discrepancy_repository import SerialDiscrepancyRepository
from stocktake.schemas.integration import (
    AdjustmentItem,
    ERPStockUpdateItem,
    MigrationResponse,
    MigrationValidationResponse,
)
from stocktake.services.erp_client import ERPClient
from stocktake.utils.events import InventoryMigratedEvent, get_event_bus
from stocktake.utils.locks import migration_locks

logger = logging.getLogger(__name__)


class MigrationService:

    def __init__(self, db: Session, erp_client: Optional[ERPClient] = None):
        self._db = db
        self._inventory_repo = InventoryRepository(db)
        self._reconciliation_repo = ReconciliationRepository(db)
        self._discrepancy_repo = SerialDiscrepancyRepository(db)
        self._audit_repo = AuditLogRepository(db)
        self._erp = erp_client or ERPClient()
        self._bus = get_event_bus()

    # ── gate ──────────────────────────────────────────────────────────────────

    def validate(self, inventory_id: int, actor: User) -> MigrationValidationResponse:
        inv = self._get(inventory_id)
        error, items = self._evaluate(inv, actor)
        return MigrationValidationResponse(
            inventory_id=inv.id,
            can_migrate=error is None,
            reason=error.message if error else None,
            items_to_migrate=len(items),
            total_adjustment_value=self._total_value(items),
        )

    def request_migration(self, inventory_id: int, actor: User) -> MigrationResponse:
        with migration_locks.hold(inventory_id):
            inv = self._get(inventory_id)
            error, items = self._evaluate(inv, actor)
            if error is not None:
                logger.warning(
                    "erp_migration_rejected",
                    extra={"inventory_id": inventory_id, "user_id": actor.id, "reason": error.message},
                )
                raise error

            if not self._inventory_repo.claim_migration(inventory_id):
                raise StateTransitionException(
                    "Inventory was already migrated or a migration is in progress.",
                )

            try:
                if items:
                    self._erp.send_stock_updates([
                        ERPStockUpdateItem(
                            product_code=item.sku,
                            location_id=item.location_id,
                            final_quantity=float(item.final_quantity),
                            inventory_code=inv.code,
                        )
                        for item in items
                    ])
            except Exception:
                self._db.rollback()
                self._inventory_repo.release_migration(inventory_id)
                logger.exception("erp_migration_failed", extra={"inventory_id": inventory_id, "items": len(items)})
                raise

            total_value = self._total_value(items)
            self._finalize(inventory_id, actor, items, total_value)

        self._bus.publish(InventoryMigratedEvent(
            entity_type="inventory",
            entity_id=inventory_id,
            user_id=actor.id,
            adjustment_count=len(items),
        ))
        return MigrationResponse(
            success=True,
            inventory_id=inventory_id,
            adjustment_count=len(items),
            total_adjustment_value=total_value,
            message=f"Migrated {len(items)} adjustment(s) to the ERP.",
            items=items,
        )

    # ── internals ─────────────────────────────────────────────────────────────

    def _get(self, inventory_id: int) -> Inventory:
        inv = self._inventory_repo.get_by_id(inventory_id)
        if not inv:
            raise EntityNotFoundException("Inventory", inventory_id)
        self._db.refresh(inv)
        return inv

    def _evaluate(self, inv: Inventory, actor: User) -> Tuple[Optional[StockTakeException], List[AdjustmentItem]]:
        if inv.status != InventoryStatus.CLOSED.value:
            return StateTransitionException(
                f"Inventory must be closed before migration (status is '{inv.status}')."
            ), []
        if inv.erp_migrated:
            return StateTransitionException("Inventory was already migrated to the ERP."), []
        if inv.erp_migration_in_progress:
            return StateTransitionException("A migration of this inventory is already in progress."), []

        allowed = settings.migration_roles_list
        if (actor.role or "").lower() not in allowed:
            return PermissionDeniedException(
                f"Role '{actor.role}' cannot migrate inventories.",
                details=[{"allowed_roles": allowed}],
            ), []

        blocking = []
        items = []
        for line, rec in self._reconciliation_repo.list_with_lines(inv.id):
            if rec is None or rec.is_incomplete or (rec.is_divergent and rec.final_quantity is None):
                blocking.append(line.id)
                continue
            if not rec.is_divergent:
                continue
            product = self._db.get(Product, line.product_id)
            delta = Decimal(rec.final_quantity) - Decimal(line.expected_quantity)
            unit_cost = Decimal(line.unit_cost or 0)
            items.append(AdjustmentItem(
                stock_line_id=line.id,
                product_id=line.product_id,
                sku=product.sku,
                location_id=line.location_id,
                expected_quantity=line.expected_quantity,
                final_quantity=rec.final_quantity,
                quantity_delta=delta,
                unit_cost=unit_cost,
                value_delta=delta * unit_cost,
            ))
        if blocking:
            return StateTransitionException(
                f"{len(blocking)} line(s) have no final quantity.",
                details=[{"stock_line_id": line_id} for line_id in blocking],
            ), []
        return None, items

    @staticmethod
    def _total_value(items: List[AdjustmentItem]) -> Decimal:
        return sum((item.value_delta for item in items), Decimal("0"))

    def _finalize(self, inventory_id: int, actor: User, items: List[AdjustmentItem], total_value: Decimal) -> None:
        now = datetime.utcnow()
        try:
            inv = self._inventory_repo.get_for_update(inventory_id)
            inv.erp_migrated = True
            inv.erp_migrated_at = now
            inv.erp_migrated_by = actor.id
            inv.erp_migration_in_progress = False
            marked = self._discrepancy_repo.mark_migrated(inventory_id, now, commit=False)
            self._audit_repo.record(
                action="ERP_MIGRATION",
                entity_type="inventory",
                entity_id=inventory_id,
                user_id=actor.id,
                old_values={"erp_migrated": False},
                new_values={"erp_migrated": True},
                metadata={
                    "adjustment_count": len(items),
                    "total_adjustment_value": str(total_value),
                    "discrepancies_migrated": marked,
                    "stock_line_ids": [item.stock_line_id for item in items],
                },
            )
            self._db.commit()
        except Exception:
            self._db.rollback()
            # The ERP already holds the batch; the guard stays set so nothing resends it.
            logger.critical(
                "erp_migration_unrecorded; guard left set for manual repair",
                extra={"inventory_id": inventory_id, "items": len(items)},
            )
            raise
        logger.info(
            "erp_migration_completed",
            extra={"inventory_id": inventory_id, "items": len(items), "total_value": str(total_value), "user_id": actor.id},
        )
