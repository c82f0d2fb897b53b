"""
Inventory Service — Service Layer (SRP / DIP)

Owns the inventory aggregate: the freeze at creation and every lifecycle
transition. Status only ever changes through ``engine.lifecycle.transition``.
"""
import logging
from datetime import datetime
from decimal import Decimal
from math import ceil
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from stocktake.core.exceptions import (
    EntityNotFoundException,
    StateTransitionException,
    ValidationException,
)
from stocktake.engine.lifecycle import (
    InventoryStatus,
    LifecycleAction,
    Transition,
    open_stage,
    transition,
)
from stocktake.models.inventory import Inventory
from stocktake.models.product import Location
from stocktake.models.snapshot import FrozenSerialUnit, FrozenStockLine
from stocktake.repositories.audit_log_repository import AuditLogRepository
from stocktake.repositories.inventory_repository import InventoryRepository
from stocktake.repositories.snapshot_repository import SnapshotRepository
from stocktake.schemas.inventory import (
    InventoryCreate,
    InventoryDetailResponse,
    InventoryListResponse,
    InventoryResponse,
    StageProgress,
    StatusTransitionResponse,
)
from stocktake.services.discrepancy_service import DiscrepancyService
from stocktake.services.ledger import CountLedger
from stocktake.services.reconciliation_service import ReconciliationService
from stocktake.utils.events import (
    DomainEvent,
    EntityCreatedEvent,
    InventoryStatusChangedEvent,
    get_event_bus,
)

logger = logging.getLogger(__name__)

VALID_STAGES = (1, 2, 3, 4)


class InventoryService:

    def __init__(self, db: Session):
        self._db = db
        self._repo = InventoryRepository(db)
        self._snapshot_repo = SnapshotRepository(db)
        self._audit_repo = AuditLogRepository(db)
        self._ledger = CountLedger(db)
        self._reconciliation = ReconciliationService(db)
        self._bus = get_event_bus()

    # ── creation & freeze ─────────────────────────────────────────────────────

    def create_inventory(self, data: InventoryCreate, actor_id: int) -> InventoryDetailResponse:
        code = data.code.strip()
        if not code:
            raise ValidationException("Inventory code cannot be blank.")
        if self._repo.get_by_code(code):
            raise ValidationException(f"Inventory code '{code}' already exists.")

        location_ids = sorted(set(data.location_ids or []))
        missing = [lid for lid in location_ids if self._db.get(Location, lid) is None]
        if missing:
            raise ValidationException("Unknown location id(s).", details=missing)

        balances = self._snapshot_repo.live_stock_balances(location_ids)
        assets = self._snapshot_repo.live_serial_assets(location_ids)
        if not balances and not assets:
            raise ValidationException("Nothing to count: the selected scope has no stock.")

        now = datetime.utcnow()
        inv = Inventory(
            code=code,
            description=data.description,
            status=InventoryStatus.OPEN.value,
            created_by=actor_id,
            frozen_at=now,
        )
        self._repo.create(inv, commit=False)

        self._snapshot_repo.add_stock_lines(
            FrozenStockLine(
                inventory_id=inv.id,
                product_id=balance.product_id,
                location_id=balance.location_id,
                expected_quantity=balance.on_hand_qty or Decimal("0"),
                unit_cost=product.unit_cost or Decimal("0"),
            )
            for balance, product in balances
        )
        self._snapshot_repo.add_serial_units(
            FrozenSerialUnit(
                inventory_id=inv.id,
                product_id=asset.product_id,
                serial_number=asset.serial_number,
                expected_location_id=asset.location_id,
                expected_present=bool(asset.is_present),
            )
            for asset in assets
        )
        self._audit_repo.record(
            action="CREATE",
            entity_type="inventory",
            entity_id=inv.id,
            user_id=actor_id,
            new_values={"code": code, "status": inv.status},
            metadata={"stock_lines": len(balances), "serial_units": len(assets), "location_ids": location_ids},
        )
        self._db.commit()
        self._db.refresh(inv)

        logger.info(
            "inventory_frozen",
            extra={"inventory_id": inv.id, "code": code, "stock_lines": len(balances), "serial_units": len(assets)},
        )
        self._bus.publish(EntityCreatedEvent(entity_type="inventory", entity_id=inv.id, user_id=actor_id))
        return self._detail(inv)

    # ── reads ─────────────────────────────────────────────────────────────────

    def list_inventories(self, page: int = 1, page_size: int = 20, status: Optional[str] = None) -> InventoryListResponse:
        if status is not None:
            try:
                InventoryStatus(status)
            except ValueError:
                raise ValidationException(f"Unknown inventory status '{status}'.")
        items, total = self._repo.list_paginated(page=page, page_size=page_size, status=status)
        return InventoryListResponse(
            items=[InventoryResponse.model_validate(i) for i in items],
            total=total, page=page, page_size=page_size,
            total_pages=ceil(total / page_size) if total else 0,
        )

    def get_inventory(self, inventory_id: int) -> Inventory:
        inv = self._repo.get_by_id(inventory_id)
        if not inv:
            raise EntityNotFoundException("Inventory", inventory_id)
        return inv

    def get_inventory_detail(self, inventory_id: int) -> InventoryDetailResponse:
        return self._detail(self.get_inventory(inventory_id))

    def get_stage_progress(self, inventory_id: int, stage: int) -> StageProgress:
        self._check_stage(stage)
        self.get_inventory(inventory_id)
        return self._ledger.progress(inventory_id, stage)

    # ── lifecycle ─────────────────────────────────────────────────────────────

    def start_count(self, inventory_id: int, actor_id: int) -> StatusTransitionResponse:
        inv = self._locked(inventory_id)
        result = transition(inv.status, LifecycleAction.START_COUNT)
        events = [self._apply(inv, result, actor_id)]
        self._db.commit()
        self._publish(events)
        return StatusTransitionResponse(
            inventory_id=inv.id,
            old_status=result.current.value,
            new_status=inv.status,
            message=f"Stage {open_stage(inv.status)} is open for counting.",
        )

    def close_stage(self, inventory_id: int, stage: int, actor_id: int) -> StatusTransitionResponse:
        self._check_stage(stage)
        if stage == 4:
            raise ValidationException("The stage 4 audit pass has no close step.")
        inv = self._locked(inventory_id)
        old_status = inv.status

        unresolved = []
        active = open_stage(inv.status)
        if active == stage:
            unresolved = self._ledger.unresolved_units(inventory_id, stage)
        result = transition(
            inv.status,
            LifecycleAction.CLOSE_STAGE,
            stage=stage,
            unresolved_units=[u.label for u in unresolved],
        )
        if not result.allowed:
            self._db.rollback()
            raise StateTransitionException(
                result.reason,
                details=[u.model_dump() for u in unresolved],
            )

        events = [self._apply(inv, result, actor_id, metadata={"stage": stage})]
        self._reconciliation.refresh(inventory_id, commit=False)

        lines_for_third = serials_for_third = 0
        if inv.status == InventoryStatus.COUNT2_CLOSED.value:
            lines, serials = self._ledger.assigned_units(inventory_id, 3)
            lines_for_third, serials_for_third = len(lines), len(serials)
            if lines or serials:
                required = transition(inv.status, LifecycleAction.REQUIRE_COUNT3)
                events.append(self._apply(
                    inv, required, actor_id,
                    metadata={"stock_lines": lines_for_third, "serial_units": serials_for_third},
                ))

        self._db.commit()
        self._publish(events)

        if inv.status == InventoryStatus.COUNT3_REQUIRED.value:
            message = (
                f"Stage {stage} closed; a third count is required for "
                f"{lines_for_third} line(s) and {serials_for_third} serial unit(s)."
            )
        else:
            message = f"Stage {stage} closed."
        return StatusTransitionResponse(
            inventory_id=inv.id,
            old_status=old_status,
            new_status=inv.status,
            message=message,
            lines_requiring_count3=lines_for_third,
            serials_requiring_count3=serials_for_third,
        )

    def close_inventory(self, inventory_id: int, actor_id: int) -> StatusTransitionResponse:
        inv = self._locked(inventory_id)
        incomplete: List[str] = []
        if inv.status in (InventoryStatus.COUNT2_CLOSED.value, InventoryStatus.COUNT3_CLOSED.value):
            incomplete = self._reconciliation.incomplete_line_labels(inventory_id)
        result = transition(inv.status, LifecycleAction.CLOSE_INVENTORY, incomplete_lines=incomplete)
        if not result.allowed:
            self._db.rollback()
            raise StateTransitionException(result.reason, details=incomplete)

        inv.closed_at = datetime.utcnow()
        events = [self._apply(inv, result, actor_id)]
        self._db.commit()
        self._publish(events)

        summary = DiscrepancyService(self._db).process(inventory_id, actor_id)
        return StatusTransitionResponse(
            inventory_id=inv.id,
            old_status=result.current.value,
            new_status=InventoryStatus.CLOSED.value,
            message=(
                f"Inventory closed with {summary.summary.total_discrepancies} serial discrepancy(ies)."
            ),
        )

    def cancel_inventory(self, inventory_id: int, reason: str, actor_id: int) -> StatusTransitionResponse:
        inv = self._locked(inventory_id)
        reason = (reason or "").strip()
        result = transition(inv.status, LifecycleAction.CANCEL, reason=reason)
        if not result.allowed:
            self._db.rollback()
            raise StateTransitionException(result.reason)

        inv.cancellation_reason = reason
        events = [self._apply(inv, result, actor_id, metadata={"reason": reason})]
        self._db.commit()
        self._publish(events)
        return StatusTransitionResponse(
            inventory_id=inv.id,
            old_status=result.current.value,
            new_status=inv.status,
            message="Inventory cancelled.",
        )

    # ── helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _check_stage(stage: int) -> None:
        if stage not in VALID_STAGES:
            raise ValidationException(f"Stage must be one of {list(VALID_STAGES)}, got {stage}.")

    def _locked(self, inventory_id: int) -> Inventory:
        inv = self._repo.get_for_update(inventory_id)
        if not inv:
            raise EntityNotFoundException("Inventory", inventory_id)
        return inv

    def _apply(
        self,
        inv: Inventory,
        result: Transition,
        actor_id: int,
        metadata: Optional[dict] = None,
    ) -> DomainEvent:
        if not result.allowed:
            self._db.rollback()
            raise StateTransitionException(result.reason)
        old_status = inv.status
        inv.status = result.new_status.value
        inv.updated_at = datetime.utcnow()
        self._audit_repo.record(
            action="STATUS_CHANGE",
            entity_type="inventory",
            entity_id=inv.id,
            user_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": inv.status},
            metadata=metadata,
        )
        self._db.flush()
        logger.info(
            "inventory_status_changed",
            extra={"inventory_id": inv.id, "old_status": old_status, "new_status": inv.status, "user_id": actor_id},
        )
        return InventoryStatusChangedEvent(
            entity_type="inventory",
            entity_id=inv.id,
            user_id=actor_id,
            old_status=old_status,
            new_status=inv.status,
        )

    def _publish(self, events: List[DomainEvent]) -> None:
        for event in events:
            self._bus.publish(event)

    def _detail(self, inv: Inventory) -> InventoryDetailResponse:
        counts: Tuple[int, int] = (
            self._db.query(FrozenStockLine).filter(FrozenStockLine.inventory_id == inv.id).count(),
            self._db.query(FrozenSerialUnit).filter(FrozenSerialUnit.inventory_id == inv.id).count(),
        )
        base = InventoryResponse.model_validate(inv).model_dump()
        return InventoryDetailResponse(**base, stock_line_count=counts[0], serial_unit_count=counts[1])
