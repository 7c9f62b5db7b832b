"""
Tests for the shared-state substrate.

SharedSlot aliasing and isolation, ReadWriteLock exclusion rules,
SharedDim propagation and ResizePlan.
"""

import copy
import threading
import time

import pytest

from annmatrix.core import ReadWriteLock, ResizePlan, SharedDim, SharedSlot, hold_write
from annmatrix.validation import UninitializedAccess


class TestSharedSlot:
    """Shallow vs deep clone semantics and empty-slot handling."""

    def test_shallow_clone_sees_writes(self):
        """Writes through either handle are observed by both."""
        slot = SharedSlot([1, 2, 3])
        alias = slot.shallow_clone()

        with slot.write() as guard:
            guard.value.append(4)
        assert alias.get() == [1, 2, 3, 4]

        alias.replace(['x'])
        assert slot.get() == ['x']
        assert slot.shares_storage(alias)

    def test_deep_clone_is_independent(self):
        """Mutating the original leaves a deep clone untouched."""
        slot = SharedSlot([1, 2, 3])
        snapshot = slot.deep_clone()

        with slot.write() as guard:
            guard.value.append(4)
        slot.replace([])

        assert snapshot.get() == [1, 2, 3]
        assert not snapshot.shares_storage(slot)

    def test_write_guard_rebinds_value(self):
        slot = SharedSlot(1)
        with slot.write() as guard:
            guard.value = guard.value + 41
        assert slot.get() == 42

    def test_empty_slot_rejects_read_and_write(self):
        slot = SharedSlot.empty()
        assert slot.is_empty()

        with pytest.raises(UninitializedAccess):
            slot.get()
        with pytest.raises(UninitializedAccess):
            with slot.write():
                pass

    def test_replace_fills_empty_slot(self):
        """replace() ignores prior emptiness and returns None for it."""
        slot = SharedSlot.empty()
        assert slot.replace(7) is None
        assert slot.get() == 7
        assert slot.replace(8) == 7

    def test_take_empties_slot(self):
        slot = SharedSlot('value')
        alias = slot.shallow_clone()

        assert slot.take() == 'value'
        assert slot.is_empty()
        assert alias.is_empty()
        assert slot.take() is None
        assert str(alias) == "Empty or closed slot"

    def test_none_is_a_value(self):
        """None is stored, not treated as empty."""
        slot = SharedSlot(None)
        assert not slot.is_empty()
        assert slot.get() is None

    def test_deep_clone_of_empty_slot(self):
        slot = SharedSlot.empty()
        clone = slot.deep_clone()
        assert clone.is_empty()

        clone.replace(1)
        assert slot.is_empty()

    def test_deepcopy_preserves_aliasing(self):
        """Two handles on one cell still share one (new) cell after deepcopy."""
        slot = SharedSlot([1])
        alias = slot.shallow_clone()

        slot_copy, alias_copy = copy.deepcopy((slot, alias))
        assert slot_copy.shares_storage(alias_copy)
        assert not slot_copy.shares_storage(slot)

    def test_copy_is_shallow(self):
        slot = SharedSlot({'a': 1})
        assert copy.copy(slot).shares_storage(slot)

    def test_swap(self):
        a = SharedSlot('a')
        b = SharedSlot('b')
        a_alias = a.shallow_clone()

        a.swap(b)
        assert a.get() == 'b'
        assert b.get() == 'a'
        assert a_alias.get() == 'b'

    def test_swap_with_alias_is_noop(self):
        slot = SharedSlot(1)
        slot.swap(slot.shallow_clone())
        assert slot.get() == 1

    def test_crossed_swaps_do_not_deadlock(self):
        """a.swap(b) and b.swap(a) racing from two threads always finish."""
        a = SharedSlot(1)
        b = SharedSlot(2)

        def run(first, second):
            for _ in range(2000):
                first.swap(second)

        threads = [
            threading.Thread(target=run, args=(a, b)),
            threading.Thread(target=run, args=(b, a)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert not any(t.is_alive() for t in threads), "swap deadlocked"
        assert {a.get(), b.get()} == {1, 2}

    def test_hold_write_blocks_other_writers(self):
        """Writers on other threads wait; the holder can still read and write."""
        a = SharedSlot(1)
        b = SharedSlot(2)

        with hold_write([a, b, a.shallow_clone()]):
            a.replace(10)
            assert a.get() == 10
            t = threading.Thread(target=b.replace, args=(20,))
            t.start()
            t.join(timeout=0.1)
            assert t.is_alive()
            assert b.get() == 2

        t.join(timeout=5)
        assert b.get() == 20


class TestReadWriteLock:
    """Reader/writer exclusion and re-entrancy."""

    def test_concurrent_readers(self):
        """Two threads can hold the read side at the same time."""
        lock = ReadWriteLock()
        barrier = threading.Barrier(2, timeout=5)
        errors = []

        def reader():
            try:
                with lock.read():
                    barrier.wait()
            except threading.BrokenBarrierError as e:
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        acquired = threading.Event()

        def reader():
            with lock.read():
                acquired.set()

        lock.acquire_write()
        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.05)
        assert not acquired.is_set()

        lock.release_write()
        t.join(timeout=5)
        assert acquired.is_set()

    def test_recursive_read(self):
        lock = ReadWriteLock()
        with lock.read():
            with lock.read():
                pass
        with lock.write():
            pass

    def test_reentrant_write_and_read_under_write(self):
        lock = ReadWriteLock()
        with lock.write():
            with lock.write():
                assert lock.is_write_locked()
            with lock.read():
                assert lock.is_write_locked()
        assert not lock.is_write_locked()

    def test_upgrade_raises(self):
        """Taking the write side while reading fails instead of deadlocking."""
        lock = ReadWriteLock()
        with lock.read():
            with pytest.raises(RuntimeError):
                lock.acquire_write()

    def test_release_without_acquire(self):
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()


class TestSharedDim:
    """Shared dimension counters and resize transactions."""

    def test_shallow_clone_observes_set(self):
        dim = SharedDim(5)
        alias = dim.shallow_clone()
        dim.set(3)
        assert alias.get() == 3
        assert alias == 3
        assert alias == dim

    def test_deep_clone_is_independent(self):
        dim = SharedDim(5)
        clone = dim.deep_clone()
        dim.set(1)
        assert clone.get() == 5

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            SharedDim(-1)
        with pytest.raises(ValueError):
            SharedDim(2).set(-3)

    def test_resize_plan_applies_all(self):
        rows = SharedDim(10)
        cols = SharedDim(4)
        row_alias = rows.shallow_clone()

        plan = ResizePlan().add(rows, 2).add(cols, 3)
        assert len(plan) == 2
        plan.apply()

        assert row_alias.get() == 2
        assert cols.get() == 3

    def test_resize_plan_with_aliased_dims(self):
        """Listing two handles on one dim locks it once; the last size wins."""
        dim = SharedDim(10)
        ResizePlan([(dim, 4), (dim.shallow_clone(), 6)]).apply()
        assert dim.get() == 6

    def test_int_conversion(self):
        dim = SharedDim(3)
        assert int(dim) == 3
        assert list(range(dim)) == [0, 1, 2]
