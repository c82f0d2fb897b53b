import threading

from stocktake.utils.locks import KeyedLock


def test_slot_is_dropped_after_release():
    locks = KeyedLock()

    with locks.hold(1):
        assert len(locks) == 1

    assert len(locks) == 0


def test_slot_is_dropped_after_an_exception():
    locks = KeyedLock()

    try:
        with locks.hold(7):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert len(locks) == 0


def test_same_key_is_serialized_and_map_stays_empty():
    locks = KeyedLock()
    inside = []
    overlap = []
    start = threading.Barrier(4)

    def worker():
        start.wait()
        for _ in range(50):
            with locks.hold("inv-1"):
                inside.append(1)
                if len(inside) > 1:
                    overlap.append(True)
                inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlap == []
    assert len(locks) == 0


def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()

    with locks.hold(1):
        acquired = threading.Event()

        def other():
            with locks.hold(2):
                acquired.set()

        t = threading.Thread(target=other)
        t.start()
        assert acquired.wait(timeout=2)
        t.join()
        assert len(locks) == 1
