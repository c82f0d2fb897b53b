"""
Serial Discrepancy Service — Service Layer (SRP / DIP)

Runs the classifier over the count ledger and replaces the stored
discrepancy set of an inventory in one transaction.
"""
import logging
from collections import Counter
from datetime import datetime
from math import ceil
from typing import Optional

from sqlalchemy.orm import Session

from stocktake.core.exceptions import (
    EntityNotFoundException,
    StateTransitionException,
    ValidationException,
)
from stocktake.engine.lifecycle import InventoryStatus
from stocktake.engine.serial_classifier import (
    DISCREPANCY_TYPES,
    LOCATION_MISMATCH,
    NOT_FOUND,
    UNEXPECTED_FOUND,
    classify_serials,
)
from stocktake.models.serial_discrepancy import SerialDiscrepancy
from stocktake.repositories.audit_log_repository import AuditLogRepository
from stocktake.repositories.inventory_repository import InventoryRepository
from stocktake.repositories.serial_discrepancy_repository import SerialDiscrepancyRepository
from stocktake.schemas.serial_discrepancy import (
    DiscrepancyProcessResponse,
    DiscrepancyStatusCounts,
    SerialDiscrepancyListResponse,
    SerialDiscrepancySummary,
    SerialDiscrepancyView,
)
from stocktake.services.ledger import CountLedger
from stocktake.utils.events import DiscrepanciesProcessedEvent, get_event_bus
from stocktake.utils.locks import classification_locks

logger = logging.getLogger(__name__)

DISCREPANCY_STATUSES = ("PENDING", "RESOLVED", "MIGRATED")


class DiscrepancyService:

    def __init__(self, db: Session):
        self._db = db
        self._inventory_repo = InventoryRepository(db)
        self._repo = SerialDiscrepancyRepository(db)
        self._audit_repo = AuditLogRepository(db)
        self._ledger = CountLedger(db)
        self._bus = get_event_bus()

    def process(self, inventory_id: int, actor_id: Optional[int] = None) -> DiscrepancyProcessResponse:
        with classification_locks.hold(inventory_id):
            inv = self._inventory_repo.get_for_update(inventory_id)
            if not inv:
                raise EntityNotFoundException("Inventory", inventory_id)
            if inv.status == InventoryStatus.CANCELLED.value:
                self._db.rollback()
                raise StateTransitionException("Cannot classify serials of a cancelled inventory.")
            if inv.erp_migrated:
                self._db.rollback()
                raise StateTransitionException(
                    "Inventory was already migrated to the ERP; its discrepancy set is final."
                )

            entries = [entry for _, entry in self._ledger.serial_entries(inventory_id)]
            records = classify_serials(entries)

            try:
                removed = self._repo.delete_by_inventory(inventory_id, commit=False)
                now = datetime.utcnow()
                self._db.add_all(
                    SerialDiscrepancy(
                        inventory_id=inventory_id,
                        serial_number=rec.serial_number,
                        product_id=rec.product_id,
                        discrepancy_type=rec.discrepancy_type,
                        expected_location_id=rec.expected_location_id,
                        found_location_id=rec.found_location_id,
                        found_by=rec.found_by,
                        found_at=rec.found_at,
                        count_stage=rec.count_stage,
                        status="PENDING",
                        created_at=now,
                        updated_at=now,
                    )
                    for rec in records
                )
                by_type = Counter(rec.discrepancy_type for rec in records)
                self._audit_repo.record(
                    action="PROCESS_SERIAL_DISCREPANCIES",
                    entity_type="inventory",
                    entity_id=inventory_id,
                    user_id=actor_id,
                    metadata={"removed": removed, "created": len(records), "by_type": dict(by_type)},
                )
                self._db.commit()
            except Exception:
                self._db.rollback()
                logger.exception("serial_discrepancy_processing_failed", extra={"inventory_id": inventory_id})
                raise

        logger.info(
            "serial_discrepancies_processed",
            extra={"inventory_id": inventory_id, "total": len(records), "by_type": dict(by_type)},
        )
        self._bus.publish(DiscrepanciesProcessedEvent(
            entity_type="inventory",
            entity_id=inventory_id,
            user_id=actor_id,
            total=len(records),
            by_type=dict(by_type),
        ))
        items = [SerialDiscrepancyView.model_validate(d) for d in self._repo.all_for_inventory(inventory_id)]
        return DiscrepancyProcessResponse(
            success=True,
            message=f"Processed {len(items)} serial discrepancy(ies).",
            summary=self.get_summary(inventory_id),
            items=items,
        )

    def list_discrepancies(
        self,
        inventory_id: int,
        discrepancy_type: Optional[str] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> SerialDiscrepancyListResponse:
        self._require_inventory(inventory_id)
        if discrepancy_type is not None and discrepancy_type not in DISCREPANCY_TYPES:
            raise ValidationException(f"Unknown discrepancy type '{discrepancy_type}'.")
        if status is not None and status not in DISCREPANCY_STATUSES:
            raise ValidationException(f"Unknown discrepancy status '{status}'.")
        items, total = self._repo.list_filtered(
            inventory_id, discrepancy_type=discrepancy_type, status=status, page=page, page_size=page_size,
        )
        return SerialDiscrepancyListResponse(
            items=[SerialDiscrepancyView.model_validate(i) for i in items],
            total=total, page=page, page_size=page_size,
            total_pages=ceil(total / page_size) if total else 0,
        )

    def get_summary(self, inventory_id: int) -> SerialDiscrepancySummary:
        self._require_inventory(inventory_id)
        counts = self._repo.counts_by_type_and_status(inventory_id)

        def by_type(discrepancy_type: str) -> int:
            return sum(n for (t, _), n in counts.items() if t == discrepancy_type)

        def by_status(status: str) -> int:
            return sum(n for (_, s), n in counts.items() if s == status)

        return SerialDiscrepancySummary(
            inventory_id=inventory_id,
            total_discrepancies=sum(counts.values()),
            location_mismatches=by_type(LOCATION_MISMATCH),
            not_found=by_type(NOT_FOUND),
            unexpected_found=by_type(UNEXPECTED_FOUND),
            by_status=DiscrepancyStatusCounts(
                pending=by_status("PENDING"),
                resolved=by_status("RESOLVED"),
                migrated=by_status("MIGRATED"),
            ),
        )

    def resolve(self, discrepancy_id: int, notes: Optional[str], actor_id: int) -> SerialDiscrepancyView:
        item = self._repo.get_by_id(discrepancy_id)
        if not item:
            raise EntityNotFoundException("SerialDiscrepancy", discrepancy_id)
        if item.status != "PENDING":
            raise StateTransitionException(
                f"Only PENDING discrepancies can be resolved; this one is {item.status}."
            )
        now = datetime.utcnow()
        self._audit_repo.record(
            action="RESOLVE_SERIAL_DISCREPANCY",
            entity_type="serial_discrepancy",
            entity_id=item.id,
            user_id=actor_id,
            old_values={"status": item.status},
            new_values={"status": "RESOLVED", "resolution_notes": notes},
        )
        item = self._repo.update(item, {
            "status": "RESOLVED",
            "resolution_notes": notes,
            "resolved_by": actor_id,
            "resolved_at": now,
        })
        return SerialDiscrepancyView.model_validate(item)

    def _require_inventory(self, inventory_id: int) -> None:
        if not self._inventory_repo.get_by_id(inventory_id):
            raise EntityNotFoundException("Inventory", inventory_id)
