"""
Counting Service — Service Layer (SRP / DIP)

Validates and records one count observation per (unit, stage). Bad input is
rejected before anything is written.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from stocktake.core.exceptions import (
    EntityNotFoundException,
    StateTransitionException,
    ValidationException,
)
from stocktake.engine.lifecycle import InventoryStatus, TERMINAL_STATUSES, accepts_submissions
from stocktake.engine.quantity_rule import parse_quantity
from stocktake.models.inventory import Inventory
from stocktake.models.product import Location
from stocktake.models.snapshot import FrozenSerialUnit, FrozenStockLine
from stocktake.repositories.count_repository import CountRepository
from stocktake.repositories.inventory_repository import InventoryRepository
from stocktake.repositories.snapshot_repository import SnapshotRepository
from stocktake.schemas.count import CountObservationResponse, CountSubmission
from stocktake.services.ledger import UNIT_QUANTITY, UNIT_SERIAL, CountLedger
from stocktake.services.reconciliation_service import ReconciliationService
from stocktake.utils.events import CountSubmittedEvent, get_event_bus

logger = logging.getLogger(__name__)


def normalize_counted_at(value: Optional[datetime]) -> datetime:
    """Stored timestamps are naive UTC."""
    if value is None:
        return datetime.utcnow()
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CountingService:

    def __init__(self, db: Session):
        self._db = db
        self._inventory_repo = InventoryRepository(db)
        self._snapshot_repo = SnapshotRepository(db)
        self._count_repo = CountRepository(db)
        self._ledger = CountLedger(db)
        self._bus = get_event_bus()

    def submit(self, inventory_id: int, data: CountSubmission, actor_id: int) -> CountObservationResponse:
        inv = self._inventory_repo.get_by_id(inventory_id)
        if not inv:
            raise EntityNotFoundException("Inventory", inventory_id)
        self._ensure_stage_open(inv, data.stage)

        counted_at = normalize_counted_at(data.counted_at)
        if data.is_serial:
            unit = self._resolve_serial_unit(inventory_id, data)
            self._ensure_assigned(inventory_id, data.stage, serial_unit=unit)
            self._ensure_location(data.found_location_id)
            values = self._serial_values(data, actor_id, counted_at)
            values["inventory_id"] = inventory_id
            row, applied = self._count_repo.upsert_serial(unit.id, data.stage, values)
            response = CountObservationResponse(
                inventory_id=inventory_id,
                unit_kind=UNIT_SERIAL,
                unit_id=unit.id,
                stage=row.stage,
                found=bool(row.found),
                found_location_id=row.found_location_id,
                skipped=bool(row.skipped),
                counted_by=row.counted_by,
                counted_at=row.counted_at,
                applied=applied,
            )
        else:
            line = self._resolve_stock_line(inventory_id, data)
            self._ensure_assigned(inventory_id, data.stage, stock_line=line)
            values = self._quantity_values(data, actor_id, counted_at)
            values["inventory_id"] = inventory_id
            row, applied = self._count_repo.upsert_quantity(line.id, data.stage, values)
            if applied and data.stage == 4:
                # an audit count replaces the final quantity right away
                ReconciliationService(self._db).refresh(inventory_id)
            response = CountObservationResponse(
                inventory_id=inventory_id,
                unit_kind=UNIT_QUANTITY,
                unit_id=line.id,
                stage=row.stage,
                quantity=row.quantity,
                skipped=bool(row.skipped),
                counted_by=row.counted_by,
                counted_at=row.counted_at,
                applied=applied,
            )

        if applied:
            self._bus.publish(CountSubmittedEvent(
                entity_type=response.unit_kind,
                entity_id=response.unit_id,
                user_id=actor_id,
                inventory_id=inventory_id,
                stage=data.stage,
                unit_kind=response.unit_kind,
            ))
        else:
            logger.info(
                "count_submission_superseded",
                extra={
                    "inventory_id": inventory_id,
                    "unit_kind": response.unit_kind,
                    "unit_id": response.unit_id,
                    "stage": data.stage,
                },
            )
        return response

    # ── validation ────────────────────────────────────────────────────────────

    def _ensure_stage_open(self, inv: Inventory, stage: int) -> None:
        status = InventoryStatus(inv.status)
        if status in TERMINAL_STATUSES:
            raise StateTransitionException(
                f"Inventory is {status.value}; counts are no longer accepted.",
                details=[{"status": status.value}],
            )
        if not accepts_submissions(status, stage):
            raise StateTransitionException(
                f"Stage {stage} is not accepting counts in status '{status.value}'.",
                details=[{"status": status.value, "stage": stage}],
            )

    def _resolve_stock_line(self, inventory_id: int, data: CountSubmission) -> FrozenStockLine:
        line = self._snapshot_repo.get_stock_line(inventory_id, data.stock_line_id)
        if not line:
            raise ValidationException(
                f"Stock line {data.stock_line_id} is not part of inventory {inventory_id}."
            )
        return line

    def _resolve_serial_unit(self, inventory_id: int, data: CountSubmission) -> FrozenSerialUnit:
        if data.serial_unit_id is not None:
            unit = self._snapshot_repo.get_serial_unit(inventory_id, data.serial_unit_id)
            ref = data.serial_unit_id
        else:
            unit = self._snapshot_repo.get_serial_unit_by_number(inventory_id, data.serial_number)
            ref = data.serial_number
        if not unit:
            raise ValidationException(f"Serial unit {ref} is not part of inventory {inventory_id}.")
        if data.serial_number is not None and unit.serial_number != data.serial_number:
            raise ValidationException(
                f"Serial unit {unit.id} is '{unit.serial_number}', not '{data.serial_number}'."
            )
        return unit

    def _ensure_location(self, location_id: Optional[int]) -> None:
        if location_id is not None and self._db.get(Location, location_id) is None:
            raise ValidationException(f"Location {location_id} does not exist.")

    def _ensure_assigned(
        self,
        inventory_id: int,
        stage: int,
        stock_line: Optional[FrozenStockLine] = None,
        serial_unit: Optional[FrozenSerialUnit] = None,
    ) -> None:
        if stage != 3:
            return
        lines, serials = self._ledger.assigned_units(inventory_id, stage)
        if stock_line is not None and stock_line.id not in {l.id for l in lines}:
            raise StateTransitionException(
                f"Stock line {stock_line.id} is not assigned to stage 3; its first two counts settled it.",
                details=[{"unit_kind": UNIT_QUANTITY, "unit_id": stock_line.id, "stage": stage}],
            )
        if serial_unit is not None and serial_unit.id not in {u.id for u in serials}:
            raise StateTransitionException(
                f"Serial '{serial_unit.serial_number}' is not assigned to stage 3.",
                details=[{"unit_kind": UNIT_SERIAL, "unit_id": serial_unit.id, "stage": stage}],
            )

    @staticmethod
    def _quantity_values(data: CountSubmission, actor_id: int, counted_at: datetime) -> dict:
        if data.found is not None or data.found_location_id is not None:
            raise ValidationException("Quantity lines take a quantity, not a found flag.")
        if data.skipped:
            if data.stage in (3, 4):
                raise ValidationException(f"A stage {data.stage} count cannot be skipped; it settles the line.")
            if data.quantity is not None:
                raise ValidationException("A skipped count cannot carry a quantity.")
            quantity = None
        else:
            quantity = parse_quantity("quantity", data.quantity)
            if quantity is None:
                raise ValidationException("quantity is required unless the count is skipped.")
        return {
            "quantity": quantity,
            "skipped": data.skipped,
            "counted_by": actor_id,
            "counted_at": counted_at,
        }

    @staticmethod
    def _serial_values(data: CountSubmission, actor_id: int, counted_at: datetime) -> dict:
        if data.quantity is not None:
            raise ValidationException("Serial units take a found flag, not a quantity.")
        if data.found_location_id is not None and (data.skipped or not data.found):
            raise ValidationException("found_location_id is only accepted for a serial that was found.")
        if data.skipped:
            found, location_id = False, None
        else:
            if data.found is None:
                raise ValidationException("found is required unless the count is skipped.")
            found = data.found
            location_id = data.found_location_id
        return {
            "found": found,
            "found_location_id": location_id,
            "skipped": data.skipped,
            "counted_by": actor_id,
            "counted_at": counted_at,
        }
