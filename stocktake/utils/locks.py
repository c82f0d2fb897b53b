"""
Per-key in-process locks.

Used to single-flight work per inventory (discrepancy processing, ERP
migration). Cross-process exclusion is still provided by row locks and the
conditional updates in the repositories.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class _Slot:
    __slots__ = ("lock", "waiters")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.waiters = 0


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: Dict[Hashable, _Slot] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.waiters += 1
        try:
            with slot.lock:
                yield
        finally:
            # Drop the slot once nobody holds or waits for it.
            with self._guard:
                slot.waiters -= 1
                if slot.waiters == 0:
                    del self._slots[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)


classification_locks = KeyedLock()
migration_locks = KeyedLock()
