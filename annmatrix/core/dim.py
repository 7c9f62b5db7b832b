"""
Shared Dimensions
=================

SharedDim is a dimension-size counter that many collections hold at once.
Setting it through any handle is observed by every collection holding a
shallow clone, with no separate propagation step.

ResizePlan is the resize transaction: new sizes for several dims are
computed up front (validation happens before the plan exists) and applied
together while every involved dim is write-locked, so no reader ever sees
one dim updated and the other not.

Usage:
    n_rows = SharedDim(3)
    alias = n_rows.shallow_clone()
    ResizePlan([(n_rows, 2)]).apply()
    alias.get()  # 2
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from annmatrix.core.slot import SharedSlot, hold_write


logger = logging.getLogger(__name__)


class SharedDim:
    """Shared, lock-guarded, non-negative integer size."""

    __slots__ = ('_slot',)

    def __init__(self, size: int = 0, *, _slot: Optional[SharedSlot] = None):
        if _slot is None:
            _slot = SharedSlot(_check_size(size))
        self._slot = _slot

    def get(self) -> int:
        return self._slot.get()

    def set(self, size: int) -> None:
        self._slot.replace(_check_size(size))

    def shallow_clone(self) -> "SharedDim":
        return SharedDim(_slot=self._slot.shallow_clone())

    def deep_clone(self, memo: Optional[Dict[int, Any]] = None) -> "SharedDim":
        return SharedDim(_slot=self._slot.deep_clone(memo))

    def shares_storage(self, other: "SharedDim") -> bool:
        return self._slot.shares_storage(other._slot)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    def __int__(self):
        return self.get()

    def __index__(self):
        return self.get()

    def __eq__(self, other):
        if isinstance(other, SharedDim):
            return self.get() == other.get()
        if isinstance(other, int):
            return self.get() == other
        return NotImplemented

    __hash__ = None

    def __str__(self):
        return str(self.get())

    def __repr__(self):
        return f"SharedDim({self.get()})"


def _check_size(size: int) -> int:
    size = int(size)
    if size < 0:
        raise ValueError(f"Dimension size must be non-negative, got {size}")
    return size


@dataclass
class ResizePlan:
    """
    Pending new sizes for a set of shared dims.

    Attributes:
        changes: (dim, new_size) pairs; a dim listed twice keeps the last size
    """
    changes: List[Tuple[SharedDim, int]] = field(default_factory=list)

    def add(self, dim: SharedDim, size: int) -> "ResizePlan":
        self.changes.append((dim, _check_size(size)))
        return self

    def apply(self) -> None:
        """Set every dim while holding all of their write locks."""
        with hold_write(dim._slot for dim, _ in self.changes):
            for dim, size in self.changes:
                dim._slot._cell.value = size

        logger.debug(f"Applied resize plan: {[size for _, size in self.changes]}")

    def __len__(self):
        return len(self.changes)
