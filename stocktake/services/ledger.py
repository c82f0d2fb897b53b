"""
Count Ledger — read-side projection

Joins the frozen snapshot with the per-stage observations and answers the
questions the lifecycle and the engines ask: which units a stage covers,
which of them still lack an observation, and what every serial's ledger
looks like as classifier input.
"""
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from stocktake.engine.quantity_rule import needs_third_count
from stocktake.engine.serial_classifier import (
    SerialLedgerEntry,
    SerialObservation,
    serial_needs_third_count,
)
from stocktake.models.count import QuantityCount, SerialCount
from stocktake.models.snapshot import FrozenStockLine, FrozenSerialUnit
from stocktake.repositories.count_repository import CountRepository
from stocktake.repositories.snapshot_repository import SnapshotRepository
from stocktake.schemas.inventory import StageProgress, UnresolvedUnit

UNIT_QUANTITY = "quantity_line"
UNIT_SERIAL = "serial_unit"


def counted_value(count: QuantityCount):
    """Quantity as the rule sees it: skipped or missing means absent."""
    if count is None or count.skipped:
        return None
    return count.quantity


def line_label(line: FrozenStockLine) -> str:
    return f"line {line.id} (product {line.product_id} @ location {line.location_id})"


class CountLedger:

    def __init__(self, db: Session):
        self._snapshots = SnapshotRepository(db)
        self._counts = CountRepository(db)

    def quantity_counts(self, inventory_id: int) -> Dict[int, Dict[int, QuantityCount]]:
        by_line: Dict[int, Dict[int, QuantityCount]] = {}
        for row in self._counts.quantity_counts_for_inventory(inventory_id):
            by_line.setdefault(row.stock_line_id, {})[row.stage] = row
        return by_line

    def serial_counts(self, inventory_id: int) -> Dict[int, Dict[int, SerialCount]]:
        by_unit: Dict[int, Dict[int, SerialCount]] = {}
        for row in self._counts.serial_counts_for_inventory(inventory_id):
            by_unit.setdefault(row.serial_unit_id, {})[row.stage] = row
        return by_unit

    @staticmethod
    def to_entry(unit: FrozenSerialUnit, counts: Dict[int, SerialCount]) -> SerialLedgerEntry:
        observations = tuple(
            SerialObservation(
                stage=row.stage,
                found=bool(row.found),
                found_location_id=row.found_location_id,
                counted_by=row.counted_by,
                counted_at=row.counted_at,
                skipped=bool(row.skipped),
            )
            for _, row in sorted(counts.items())
        )
        return SerialLedgerEntry(
            serial_number=unit.serial_number,
            product_id=unit.product_id,
            expected_location_id=unit.expected_location_id,
            expected_present=bool(unit.expected_present),
            observations=observations,
        )

    def serial_entries(self, inventory_id: int) -> List[Tuple[FrozenSerialUnit, SerialLedgerEntry]]:
        counts = self.serial_counts(inventory_id)
        return [
            (unit, self.to_entry(unit, counts.get(unit.id, {})))
            for unit in self._snapshots.get_serial_units(inventory_id)
        ]

    # ── stage assignment ──────────────────────────────────────────────────────

    def assigned_units(
        self, inventory_id: int, stage: int
    ) -> Tuple[List[FrozenStockLine], List[FrozenSerialUnit]]:
        lines = self._snapshots.get_stock_lines(inventory_id)
        if stage in (1, 2, 4):
            # the audit pass may revisit any unit; it never blocks closure
            return lines, self._snapshots.get_serial_units(inventory_id)

        quantity_counts = self.quantity_counts(inventory_id)
        third_lines = []
        for line in lines:
            counts = quantity_counts.get(line.id, {})
            if needs_third_count(line.expected_quantity, counted_value(counts.get(1)), counted_value(counts.get(2))):
                third_lines.append(line)
        third_serials = [unit for unit, entry in self.serial_entries(inventory_id) if serial_needs_third_count(entry)]
        return third_lines, third_serials

    def progress(self, inventory_id: int, stage: int) -> StageProgress:
        lines, serials = self.assigned_units(inventory_id, stage)
        quantity_counts = self.quantity_counts(inventory_id)
        serial_counts = self.serial_counts(inventory_id)

        observed = skipped = 0
        unresolved: List[UnresolvedUnit] = []
        for line in lines:
            row = quantity_counts.get(line.id, {}).get(stage)
            if row is None:
                unresolved.append(UnresolvedUnit(unit_kind=UNIT_QUANTITY, unit_id=line.id, label=line_label(line)))
            elif row.skipped:
                skipped += 1
            else:
                observed += 1
        for unit in serials:
            row = serial_counts.get(unit.id, {}).get(stage)
            if row is None:
                unresolved.append(UnresolvedUnit(unit_kind=UNIT_SERIAL, unit_id=unit.id, label=unit.serial_number))
            elif row.skipped:
                skipped += 1
            else:
                observed += 1

        return StageProgress(
            inventory_id=inventory_id,
            stage=stage,
            assigned=len(lines) + len(serials),
            observed=observed,
            skipped=skipped,
            pending=len(unresolved),
            unresolved=unresolved,
        )

    def unresolved_units(self, inventory_id: int, stage: int) -> List[UnresolvedUnit]:
        if stage == 4:
            return []
        return self.progress(inventory_id, stage).unresolved
