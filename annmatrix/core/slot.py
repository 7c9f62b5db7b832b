"""
Shared Slot
===========

A concurrently accessible, optionally empty cell holding one value.

Ownership:
    A SharedSlot is a handle onto a storage cell. Every shallow clone is a
    new handle onto the SAME cell, so writes through any handle are seen by
    all of them. A deep clone copies the current value into a NEW cell.
    The cell lives as long as its last handle.

Locking:
    Each cell carries its own ReadWriteLock. Operations on one slot are
    linearizable; nothing orders operations ACROSS slots except swap(),
    which takes both cells' write locks in a fixed global order.

Usage:
    slot = SharedSlot([1, 2, 3])
    alias = slot.shallow_clone()
    with slot.write() as guard:
        guard.value.append(4)
    alias.get()              # [1, 2, 3, 4]

    snapshot = slot.deep_clone()
    slot.replace([])
    snapshot.get()           # [1, 2, 3, 4]
"""

import copy
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Generic, Iterable, Iterator, Optional, TypeVar

from annmatrix.core.rwlock import ReadWriteLock
from annmatrix.validation.errors import UninitializedAccess


T = TypeVar('T')

# Marks an emptied/closed cell; None is a legitimate value.
_EMPTY = object()


class _Cell:
    """Guarded storage shared by every shallow handle."""

    __slots__ = ('lock', 'value')

    def __init__(self, value: Any = _EMPTY):
        self.lock = ReadWriteLock()
        self.value = value


class WriteGuard(Generic[T]):
    """Exclusive access to a slot's value while the write lock is held."""

    __slots__ = ('_cell',)

    def __init__(self, cell: _Cell):
        self._cell = cell

    @property
    def value(self) -> T:
        return self._cell.value

    @value.setter
    def value(self, new_value: T) -> None:
        self._cell.value = new_value


class SharedSlot(Generic[T]):
    """
    Reference-counted, reader/writer guarded, optionally empty value.

    Read and write guards raise UninitializedAccess on an empty slot;
    replace(), take() and is_empty() work regardless of emptiness.
    """

    __slots__ = ('_cell',)

    def __init__(self, value: Any = _EMPTY, *, _cell: Optional[_Cell] = None):
        self._cell = _cell if _cell is not None else _Cell(value)

    @classmethod
    def empty(cls) -> "SharedSlot[T]":
        """A slot holding nothing."""
        return cls()

    def is_empty(self) -> bool:
        with self._cell.lock.read():
            return self._cell.value is _EMPTY

    # -------------------------------------------------------------------
    # Guarded access
    # -------------------------------------------------------------------

    @contextmanager
    def read(self) -> Iterator[T]:
        """Shared access to the value. Do not mutate it inside the block."""
        cell = self._cell
        with cell.lock.read():
            if cell.value is _EMPTY:
                raise UninitializedAccess()
            yield cell.value

    @contextmanager
    def write(self) -> Iterator[WriteGuard[T]]:
        """Exclusive access; mutate `guard.value` or rebind it."""
        cell = self._cell
        with cell.lock.write():
            if cell.value is _EMPTY:
                raise UninitializedAccess()
            yield WriteGuard(cell)

    def get(self) -> T:
        """The current value (by reference)."""
        with self.read() as value:
            return value

    def replace(self, value: T) -> Optional[T]:
        """Store `value`, returning the previous value (None if empty)."""
        cell = self._cell
        with cell.lock.write():
            previous, cell.value = cell.value, value
        return None if previous is _EMPTY else previous

    def take(self) -> Optional[T]:
        """Remove and return the value, leaving the slot empty."""
        cell = self._cell
        with cell.lock.write():
            previous, cell.value = cell.value, _EMPTY
        return None if previous is _EMPTY else previous

    def close(self) -> None:
        """Empty the slot, discarding its value."""
        self.take()

    # -------------------------------------------------------------------
    # Cloning
    # -------------------------------------------------------------------

    def shallow_clone(self) -> "SharedSlot[T]":
        """A new handle onto the same storage."""
        return SharedSlot(_cell=self._cell)

    def deep_clone(self, memo: Optional[Dict[int, Any]] = None) -> "SharedSlot[T]":
        """
        A new handle onto new storage holding a deep copy of the value.

        `memo` is the copy.deepcopy memo; two handles onto one cell that are
        deep-copied in the same pass end up sharing one new cell.
        """
        if memo is None:
            memo = {}
        key = id(self._cell)
        if key in memo:
            return SharedSlot(_cell=memo[key])

        cell = self._cell
        with cell.lock.read():
            value = _EMPTY if cell.value is _EMPTY else copy.deepcopy(cell.value, memo)
        new_cell = _Cell(value)
        memo[key] = new_cell
        return SharedSlot(_cell=new_cell)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    # -------------------------------------------------------------------
    # Multi-slot
    # -------------------------------------------------------------------

    def swap(self, other: "SharedSlot[T]") -> None:
        """
        Exchange the contents of two slots.

        Both write locks are held for the exchange, always acquired in cell
        identity order so crossed concurrent swaps cannot deadlock.
        """
        if self._cell is other._cell:
            return
        first, second = sorted((self._cell, other._cell), key=id)
        with first.lock.write(), second.lock.write():
            self._cell.value, other._cell.value = other._cell.value, self._cell.value

    def shares_storage(self, other: "SharedSlot") -> bool:
        """True if both handles point at the same cell."""
        return self._cell is other._cell

    def __str__(self):
        with self._cell.lock.read():
            if self._cell.value is _EMPTY:
                return "Empty or closed slot"
            return str(self._cell.value)

    def __repr__(self):
        with self._cell.lock.read():
            if self._cell.value is _EMPTY:
                return "SharedSlot(<empty>)"
            return f"SharedSlot({self._cell.value!r})"


@contextmanager
def hold_write(slots: Iterable[SharedSlot]) -> Iterator[None]:
    """
    Write-lock every distinct cell behind `slots` for the whole block.

    Cells are locked in identity order, the same order swap() uses. Empty
    slots are locked too. The holding thread may still read and write
    through any of the slots (the lock is reentrant for its writer).
    """
    cells = {}
    for slot in slots:
        cells[id(slot._cell)] = slot._cell
    with ExitStack() as stack:
        for key in sorted(cells):
            stack.enter_context(cells[key].lock.write())
        yield
