from datetime import datetime

from stocktake.engine.serial_classifier import (
    LOCATION_MISMATCH,
    NOT_FOUND,
    UNEXPECTED_FOUND,
    SerialLedgerEntry,
    SerialObservation,
    classify_serials,
    first_found_observation,
    serial_needs_third_count,
)

LOC_A = 1
LOC_B = 2
T0 = datetime(2026, 3, 1, 9, 0, 0)


def _entry(serial="SN-42", expected_present=True, expected_location=LOC_A, observations=()):
    return SerialLedgerEntry(
        serial_number=serial,
        product_id=7,
        expected_location_id=expected_location,
        expected_present=expected_present,
        observations=tuple(observations),
    )


def _obs(stage, found=True, location=None, by=None, minute=0, skipped=False):
    return SerialObservation(
        stage=stage,
        found=found,
        found_location_id=location,
        counted_by=by,
        counted_at=T0.replace(minute=minute),
        skipped=skipped,
    )


def test_never_found_expected_serial_is_not_found():
    records = classify_serials([_entry(observations=[_obs(1, found=False), _obs(2, found=False)])])

    assert len(records) == 1
    rec = records[0]
    assert rec.discrepancy_type == NOT_FOUND
    assert rec.serial_number == "SN-42"
    assert rec.expected_location_id == LOC_A
    assert rec.found_location_id is None
    assert rec.count_stage is None


def test_found_elsewhere_in_stage2_is_location_mismatch():
    entry = _entry(observations=[_obs(1, found=False), _obs(2, found=True, location=LOC_B, by=5, minute=30)])

    records = classify_serials([entry])

    assert len(records) == 1
    rec = records[0]
    assert rec.discrepancy_type == LOCATION_MISMATCH
    assert rec.found_location_id == LOC_B
    assert rec.count_stage == "count2"
    assert rec.found_by == 5
    assert rec.found_at == T0.replace(minute=30)


def test_found_at_expected_location_produces_nothing():
    entry = _entry(observations=[_obs(1, found=True, location=LOC_A), _obs(2, found=True)])

    assert classify_serials([entry]) == []


def test_found_without_location_counts_as_expected_location():
    assert classify_serials([_entry(observations=[_obs(1, found=True)])]) == []


def test_first_true_wins_across_stages():
    entry = _entry(observations=[
        _obs(4, found=True, location=LOC_A, by=40, minute=40),
        _obs(3, found=True, location=LOC_B, by=30, minute=30),
        _obs(2, found=False, by=20, minute=20),
    ])

    obs = first_found_observation(entry)

    assert obs.stage == 3
    assert obs.counted_by == 30
    records = classify_serials([entry])
    assert [(r.discrepancy_type, r.count_stage, r.found_by) for r in records] == [
        (LOCATION_MISMATCH, "count3", 30),
    ]


def test_skipped_stage_is_never_attributed():
    entry = _entry(observations=[_obs(1, found=True, location=LOC_B, skipped=True), _obs(2, found=False)])

    records = classify_serials([entry])

    assert [r.discrepancy_type for r in records] == [NOT_FOUND]


def test_unexpected_serial_found_is_reported():
    entry = _entry(serial="SN-99", expected_present=False, observations=[_obs(2, found=True, by=8)])

    records = classify_serials([entry])

    assert [(r.discrepancy_type, r.count_stage, r.found_by) for r in records] == [
        (UNEXPECTED_FOUND, "count2", 8),
    ]


def test_unexpected_serial_found_elsewhere_is_only_unexpected():
    # the recorded location of an absent unit is not where it is expected
    entry = _entry(serial="SN-99", expected_present=False, observations=[_obs(1, found=True, location=LOC_B, by=3)])

    records = classify_serials([entry])

    assert [(r.discrepancy_type, r.found_location_id, r.count_stage) for r in records] == [
        (UNEXPECTED_FOUND, LOC_B, "count1"),
    ]


def test_unexpected_serial_not_found_produces_nothing():
    entry = _entry(serial="SN-99", expected_present=False, observations=[_obs(1, found=False)])

    assert classify_serials([entry]) == []


def test_classification_is_row_order_independent_and_idempotent():
    entries = [
        _entry(serial="SN-3", observations=[_obs(1, found=False)]),
        _entry(serial="SN-1", observations=[_obs(2, found=True, location=LOC_B)]),
        _entry(serial="SN-2", expected_present=False, observations=[_obs(1, found=True)]),
        _entry(serial="SN-4", observations=[_obs(1, found=True)]),
    ]

    first = classify_serials(entries)
    second = classify_serials(list(reversed(entries)))

    assert first == second
    assert first == classify_serials(entries)
    assert [(r.discrepancy_type, r.serial_number) for r in first] == [
        (LOCATION_MISMATCH, "SN-1"),
        (NOT_FOUND, "SN-3"),
        (UNEXPECTED_FOUND, "SN-2"),
    ]


def test_duplicate_ledger_rows_never_repeat_a_type():
    entry = _entry(observations=[_obs(1, found=True, location=LOC_B)])

    records = classify_serials([entry, entry])

    keys = [(r.serial_number, r.discrepancy_type) for r in records]
    assert len(keys) == len(set(keys)) == 1


def test_serial_needs_third_count():
    # settled: stage 1 agrees with the snapshot
    assert not serial_needs_third_count(_entry(observations=[_obs(1, found=True), _obs(2, found=False)]))
    # settled: both stages agree with each other
    assert not serial_needs_third_count(_entry(observations=[_obs(1, found=False), _obs(2, found=False)]))
    assert not serial_needs_third_count(
        _entry(observations=[_obs(1, found=True, location=LOC_B), _obs(2, found=True, location=LOC_B)])
    )
    # disagreement with neither matching
    assert serial_needs_third_count(
        _entry(observations=[_obs(1, found=False), _obs(2, found=True, location=LOC_B)])
    )
    assert serial_needs_third_count(
        _entry(expected_present=False, observations=[_obs(1, found=True), _obs(2, found=True, location=LOC_B)])
    )
