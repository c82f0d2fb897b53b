"""
Serial Discrepancy Classifier

Given the frozen placement of every serial unit and the per-stage findings of
the count ledger, emit the typed discrepancies of one inventory.

Three independent scans, each producing one discrepancy type. Location is
only checked for units expected to be present: the recorded location of a
unit known to be absent says nothing about where it should be, so such a
unit, once found, is UNEXPECTED_FOUND and nothing else. Attribution of a
finding always goes to the first stage, in order 1 -> 2 -> 3 -> 4, whose
observation says ``found``; later stages never overwrite it.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

LOCATION_MISMATCH = "LOCATION_MISMATCH"
NOT_FOUND = "NOT_FOUND"
UNEXPECTED_FOUND = "UNEXPECTED_FOUND"

DISCREPANCY_TYPES = (LOCATION_MISMATCH, NOT_FOUND, UNEXPECTED_FOUND)

STAGE_ORDER = (1, 2, 3, 4)


def stage_label(stage: int) -> str:
    return f"count{stage}"


@dataclass(frozen=True)
class SerialObservation:
    stage: int
    found: bool
    found_location_id: Optional[int] = None
    counted_by: Optional[int] = None
    counted_at: Optional[datetime] = None
    skipped: bool = False


@dataclass(frozen=True)
class SerialLedgerEntry:
    serial_number: str
    product_id: int
    expected_location_id: Optional[int]
    expected_present: bool
    observations: Tuple[SerialObservation, ...] = field(default_factory=tuple)

    def observation(self, stage: int) -> Optional[SerialObservation]:
        for obs in self.observations:
            if obs.stage == stage:
                return obs
        return None


@dataclass(frozen=True)
class DiscrepancyRecord:
    serial_number: str
    product_id: int
    discrepancy_type: str
    expected_location_id: Optional[int] = None
    found_location_id: Optional[int] = None
    found_by: Optional[int] = None
    found_at: Optional[datetime] = None
    count_stage: Optional[str] = None


def first_found_observation(entry: SerialLedgerEntry) -> Optional[SerialObservation]:
    """Stage-priority tie-break: the earliest stage that reported ``found``."""
    for stage in STAGE_ORDER:
        obs = entry.observation(stage)
        if obs is not None and obs.found and not obs.skipped:
            return obs
    return None


def _found_location(entry: SerialLedgerEntry, obs: SerialObservation) -> Optional[int]:
    if obs.found_location_id is not None:
        return obs.found_location_id
    return entry.expected_location_id


def _attributed(entry: SerialLedgerEntry, obs: SerialObservation, discrepancy_type: str) -> DiscrepancyRecord:
    return DiscrepancyRecord(
        serial_number=entry.serial_number,
        product_id=entry.product_id,
        discrepancy_type=discrepancy_type,
        expected_location_id=entry.expected_location_id,
        found_location_id=_found_location(entry, obs),
        found_by=obs.counted_by,
        found_at=obs.counted_at,
        count_stage=stage_label(obs.stage),
    )


def scan_location_mismatches(entries: Iterable[SerialLedgerEntry]) -> List[DiscrepancyRecord]:
    out = []
    for entry in entries:
        if not entry.expected_present:
            continue
        obs = first_found_observation(entry)
        if obs is None:
            continue
        if _found_location(entry, obs) != entry.expected_location_id:
            out.append(_attributed(entry, obs, LOCATION_MISMATCH))
    return out


def scan_not_found(entries: Iterable[SerialLedgerEntry]) -> List[DiscrepancyRecord]:
    out = []
    for entry in entries:
        if entry.expected_present and first_found_observation(entry) is None:
            out.append(
                DiscrepancyRecord(
                    serial_number=entry.serial_number,
                    product_id=entry.product_id,
                    discrepancy_type=NOT_FOUND,
                    expected_location_id=entry.expected_location_id,
                )
            )
    return out


def scan_unexpected_found(entries: Iterable[SerialLedgerEntry]) -> List[DiscrepancyRecord]:
    out = []
    for entry in entries:
        if entry.expected_present:
            continue
        obs = first_found_observation(entry)
        if obs is not None:
            out.append(_attributed(entry, obs, UNEXPECTED_FOUND))
    return out


def _unique_per_type(records: List[DiscrepancyRecord]) -> List[DiscrepancyRecord]:
    # Duplicate ledger rows for one serial collapse to the first record.
    seen = set()
    out = []
    for rec in records:
        key = (rec.serial_number, rec.discrepancy_type)
        if key in seen:
            continue
        seen.add(key)
        out.append(rec)
    return out


def classify_serials(entries: Sequence[SerialLedgerEntry]) -> List[DiscrepancyRecord]:
    """Run the three scans and return a row-order independent result."""
    ordered = sorted(entries, key=lambda e: (e.serial_number, e.product_id))
    records: List[DiscrepancyRecord] = []
    records.extend(scan_location_mismatches(ordered))
    records.extend(scan_not_found(ordered))
    records.extend(scan_unexpected_found(ordered))
    records = _unique_per_type(records)
    type_rank = {t: i for i, t in enumerate(DISCREPANCY_TYPES)}
    return sorted(records, key=lambda r: (type_rank[r.discrepancy_type], r.serial_number))


def _outcome(entry: SerialLedgerEntry, stage: int) -> Optional[Tuple[bool, Optional[int]]]:
    obs = entry.observation(stage)
    if obs is None or obs.skipped:
        return None
    if not obs.found:
        return (False, None)
    return (True, _found_location(entry, obs))


def serial_needs_third_count(entry: SerialLedgerEntry) -> bool:
    """Serial analogue of the quantity rule after two stages.

    Settled when either stage agrees with the frozen expectation, or when
    both stages agree with each other.
    """
    expected = (True, entry.expected_location_id) if entry.expected_present else (False, None)
    first, second = _outcome(entry, 1), _outcome(entry, 2)
    if first == expected or second == expected:
        return False
    if first is not None and first == second:
        return False
    return True
