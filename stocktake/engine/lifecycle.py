"""
Inventory lifecycle state machine.

The status of an inventory only changes through ``transition``, which either
returns the next status or the reason the action is illegal. Guards that need
ledger data (unresolved units, incomplete lines) are evaluated by the caller
and passed in as plain values.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence


class InventoryStatus(str, Enum):
    OPEN = "open"
    COUNT1_OPEN = "count1_open"
    COUNT1_CLOSED = "count1_closed"
    COUNT2_OPEN = "count2_open"
    COUNT2_CLOSED = "count2_closed"
    COUNT3_REQUIRED = "count3_required"
    COUNT3_OPEN = "count3_open"
    COUNT3_CLOSED = "count3_closed"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class LifecycleAction(str, Enum):
    START_COUNT = "start_count"
    CLOSE_STAGE = "close_stage"
    REQUIRE_COUNT3 = "require_count3"
    CLOSE_INVENTORY = "close_inventory"
    CANCEL = "cancel"


TERMINAL_STATUSES = frozenset({InventoryStatus.CLOSED, InventoryStatus.CANCELLED})

_START = {
    InventoryStatus.OPEN: InventoryStatus.COUNT1_OPEN,
    InventoryStatus.COUNT1_CLOSED: InventoryStatus.COUNT2_OPEN,
    InventoryStatus.COUNT3_REQUIRED: InventoryStatus.COUNT3_OPEN,
}

_OPEN_STAGE = {
    InventoryStatus.COUNT1_OPEN: 1,
    InventoryStatus.COUNT2_OPEN: 2,
    InventoryStatus.COUNT3_OPEN: 3,
}

_CLOSE_STAGE = {
    InventoryStatus.COUNT1_OPEN: InventoryStatus.COUNT1_CLOSED,
    InventoryStatus.COUNT2_OPEN: InventoryStatus.COUNT2_CLOSED,
    InventoryStatus.COUNT3_OPEN: InventoryStatus.COUNT3_CLOSED,
}

# Statuses in which the audit pass (stage 4) is accepted.
AUDIT_STATUSES = frozenset({InventoryStatus.COUNT2_CLOSED, InventoryStatus.COUNT3_CLOSED})

_CLOSABLE = frozenset({InventoryStatus.COUNT2_CLOSED, InventoryStatus.COUNT3_CLOSED})


@dataclass(frozen=True)
class Transition:
    current: InventoryStatus
    new_status: Optional[InventoryStatus] = None
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.new_status is not None


def open_stage(status: InventoryStatus) -> Optional[int]:
    """Counting stage currently accepting submissions, if any (1-3)."""
    return _OPEN_STAGE.get(InventoryStatus(status))


def accepts_submissions(status: InventoryStatus, stage: int) -> bool:
    status = InventoryStatus(status)
    if stage == 4:
        return status in AUDIT_STATUSES
    return open_stage(status) == stage


def _reject(current: InventoryStatus, reason: str) -> Transition:
    return Transition(current=current, reason=reason)


def transition(
    current: InventoryStatus,
    action: LifecycleAction,
    *,
    stage: Optional[int] = None,
    unresolved_units: Sequence[str] = (),
    incomplete_lines: Sequence[str] = (),
    reason: Optional[str] = None,
) -> Transition:
    current = InventoryStatus(current)
    action = LifecycleAction(action)

    if action == LifecycleAction.CANCEL:
        if current in TERMINAL_STATUSES:
            return _reject(current, f"Inventory is already {current.value}.")
        if not reason or not reason.strip():
            return _reject(current, "A cancellation reason is required.")
        return Transition(current=current, new_status=InventoryStatus.CANCELLED)

    if current in TERMINAL_STATUSES:
        return _reject(current, f"Inventory is {current.value}; no further counting operations are allowed.")

    if action == LifecycleAction.START_COUNT:
        nxt = _START.get(current)
        if nxt is None:
            return _reject(current, f"Cannot start counting from status '{current.value}'.")
        return Transition(current=current, new_status=nxt)

    if action == LifecycleAction.CLOSE_STAGE:
        active = _OPEN_STAGE.get(current)
        if active is None:
            return _reject(current, f"No counting stage is open in status '{current.value}'.")
        if stage is not None and stage != active:
            return _reject(current, f"Stage {stage} is not open; the open stage is {active}.")
        if unresolved_units:
            return _reject(
                current,
                f"Stage {active} has {len(unresolved_units)} unit(s) without an observation.",
            )
        return Transition(current=current, new_status=_CLOSE_STAGE[current])

    if action == LifecycleAction.REQUIRE_COUNT3:
        if current != InventoryStatus.COUNT2_CLOSED:
            return _reject(current, "A third count can only be required after stage 2 closes.")
        return Transition(current=current, new_status=InventoryStatus.COUNT3_REQUIRED)

    if action == LifecycleAction.CLOSE_INVENTORY:
        if current not in _CLOSABLE:
            return _reject(current, f"Cannot close inventory from status '{current.value}'.")
        if incomplete_lines:
            return _reject(
                current,
                f"{len(incomplete_lines)} line(s) have no final quantity yet.",
            )
        return Transition(current=current, new_status=InventoryStatus.CLOSED)

    return _reject(current, f"Unsupported action '{action.value}'.")
