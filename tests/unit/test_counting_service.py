from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stocktake.core.exceptions import StateTransitionException, ValidationException
from stocktake.models.count import QuantityCount, SerialCount
from stocktake.repositories.snapshot_repository import SnapshotRepository
from stocktake.schemas.count import CountSubmission
from stocktake.schemas.inventory import InventoryCreate
from stocktake.services.counting_service import CountingService
from stocktake.services.inventory_service import InventoryService

T0 = datetime(2026, 3, 1, 10, 0, 0)


@pytest.fixture
def stage1(db, live_stock, admin_user):
    inventories = InventoryService(db)
    inv = inventories.create_inventory(InventoryCreate(code="INV-UNIT-1"), admin_user.id)
    inventories.start_count(inv.id, admin_user.id)
    line = SnapshotRepository(db).get_stock_lines(inv.id)[0]
    return inv.id, line


def test_create_freezes_quantity_lines_and_serial_units(db, live_stock, admin_user):
    detail = InventoryService(db).create_inventory(InventoryCreate(code="INV-FREEZE"), admin_user.id)

    assert detail.status == "open"
    assert detail.stock_line_count == 1
    assert detail.serial_unit_count == 3
    units = {u.serial_number: u for u in SnapshotRepository(db).get_serial_units(detail.id)}
    assert units["SN-42"].expected_location_id == live_stock["location_a"].id
    assert units["SN-99"].expected_present is False


def test_create_rejects_duplicate_code(db, live_stock, admin_user):
    service = InventoryService(db)
    service.create_inventory(InventoryCreate(code="INV-DUP"), admin_user.id)

    with pytest.raises(ValidationException):
        service.create_inventory(InventoryCreate(code="INV-DUP"), admin_user.id)


def test_later_timestamp_wins_and_older_write_is_ignored(db, stage1, counter_user):
    inventory_id, line = stage1
    service = CountingService(db)

    first = service.submit(
        inventory_id,
        CountSubmission(stage=1, stock_line_id=line.id, quantity=Decimal("5"), counted_at=T0),
        counter_user.id,
    )
    stale = service.submit(
        inventory_id,
        CountSubmission(stage=1, stock_line_id=line.id, quantity=Decimal("7"), counted_at=T0 - timedelta(minutes=5)),
        counter_user.id,
    )
    newer = service.submit(
        inventory_id,
        CountSubmission(stage=1, stock_line_id=line.id, quantity=Decimal("9"), counted_at=T0 + timedelta(minutes=5)),
        counter_user.id,
    )

    assert first.applied is True
    assert stale.applied is False
    assert stale.quantity == Decimal("5")
    assert newer.applied is True
    rows = db.query(QuantityCount).filter(QuantityCount.stock_line_id == line.id).all()
    assert len(rows) == 1
    assert rows[0].quantity == Decimal("9")


def test_aware_timestamps_are_stored_as_utc(db, stage1, counter_user):
    inventory_id, line = stage1
    aware = datetime(2026, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    result = CountingService(db).submit(
        inventory_id,
        CountSubmission(stage=1, stock_line_id=line.id, quantity=Decimal("3"), counted_at=aware),
        counter_user.id,
    )

    assert result.counted_at == datetime(2026, 3, 1, 10, 0)


def test_negative_quantity_is_rejected_and_not_persisted(db, stage1, counter_user):
    inventory_id, line = stage1

    with pytest.raises(ValidationException):
        CountingService(db).submit(
            inventory_id,
            CountSubmission(stage=1, stock_line_id=line.id, quantity=Decimal("-1")),
            counter_user.id,
        )

    assert db.query(QuantityCount).count() == 0


def test_quantity_required_unless_skipped(db, stage1, counter_user):
    inventory_id, line = stage1
    service = CountingService(db)

    with pytest.raises(ValidationException):
        service.submit(inventory_id, CountSubmission(stage=1, stock_line_id=line.id), counter_user.id)

    skipped = service.submit(
        inventory_id, CountSubmission(stage=1, stock_line_id=line.id, skipped=True), counter_user.id,
    )
    assert skipped.skipped is True
    assert skipped.quantity is None


def test_unknown_unit_is_rejected(db, stage1, counter_user):
    inventory_id, _ = stage1
    service = CountingService(db)

    with pytest.raises(ValidationException):
        service.submit(inventory_id, CountSubmission(stage=1, stock_line_id=9999, quantity=1), counter_user.id)
    with pytest.raises(ValidationException):
        service.submit(inventory_id, CountSubmission(stage=1, serial_number="NOPE", found=True), counter_user.id)


def test_stage_that_is_not_open_is_rejected(db, stage1, counter_user):
    inventory_id, line = stage1

    with pytest.raises(StateTransitionException):
        CountingService(db).submit(
            inventory_id, CountSubmission(stage=2, stock_line_id=line.id, quantity=10), counter_user.id,
        )


def test_serial_by_number_defaults_found_location(db, stage1, counter_user, live_stock):
    inventory_id, _ = stage1

    result = CountingService(db).submit(
        inventory_id, CountSubmission(stage=1, serial_number="SN-43", found=True), counter_user.id,
    )

    assert result.unit_kind == "serial_unit"
    assert result.found is True
    row = db.query(SerialCount).one()
    assert row.found_location_id is None
    assert row.inventory_id == inventory_id


def test_serial_rejects_quantity_and_unknown_location(db, stage1, counter_user):
    inventory_id, _ = stage1
    service = CountingService(db)

    with pytest.raises(ValidationException):
        service.submit(
            inventory_id, CountSubmission(stage=1, serial_number="SN-42", quantity=1), counter_user.id,
        )
    with pytest.raises(ValidationException):
        service.submit(
            inventory_id,
            CountSubmission(stage=1, serial_number="SN-42", found=True, found_location_id=4242),
            counter_user.id,
        )


def test_submission_needs_exactly_one_target():
    with pytest.raises(ValueError):
        CountSubmission(stage=1, quantity=1)
    with pytest.raises(ValueError):
        CountSubmission(stage=1, stock_line_id=1, serial_number="SN-1", quantity=1)


def test_unfound_serial_with_a_location_is_rejected(db, stage1, counter_user, live_stock):
    inventory_id, _ = stage1

    with pytest.raises(ValidationException):
        CountingService(db).submit(
            inventory_id,
            CountSubmission(stage=1, serial_number="SN-42", found=False, found_location_id=live_stock["location_b"].id),
            counter_user.id,
        )

    assert db.query(SerialCount).count() == 0


def _close_first_two_stages(db, inventory_id, line, actor_id):
    counting = CountingService(db)
    inventories = InventoryService(db)
    for stage in (1, 2):
        if stage == 2:
            inventories.start_count(inventory_id, actor_id)
        counting.submit(inventory_id, CountSubmission(stage=stage, stock_line_id=line.id, quantity=10), actor_id)
        for serial, found in (("SN-42", True), ("SN-43", True), ("SN-99", False)):
            counting.submit(inventory_id, CountSubmission(stage=stage, serial_number=serial, found=found), actor_id)
        inventories.close_stage(inventory_id, stage, actor_id)


def test_audit_count_replaces_the_final_quantity(db, stage1, admin_user):
    from stocktake.models.reconciliation import LineReconciliation

    inventory_id, line = stage1
    _close_first_two_stages(db, inventory_id, line, admin_user.id)
    rec = db.query(LineReconciliation).filter_by(stock_line_id=line.id).one()
    assert rec.stage_used == "stock"

    resp = CountingService(db).submit(
        inventory_id, CountSubmission(stage=4, stock_line_id=line.id, quantity=12), admin_user.id,
    )

    assert resp.applied is True
    db.refresh(rec)
    assert rec.final_quantity == Decimal("12")
    assert rec.stage_used == "count4"
    assert rec.is_divergent is True
    assert rec.is_incomplete is False


def test_audit_count_cannot_be_skipped(db, stage1, admin_user):
    inventory_id, line = stage1
    _close_first_two_stages(db, inventory_id, line, admin_user.id)

    with pytest.raises(ValidationException):
        CountingService(db).submit(
            inventory_id, CountSubmission(stage=4, stock_line_id=line.id, skipped=True), admin_user.id,
        )
    assert db.query(QuantityCount).filter_by(stage=4).count() == 0
