"""
annmatrix Core
==============

Shared-mutable-state substrate.

Structure:
    rwlock.py     - ReadWriteLock (many readers or one writer)
    slot.py       - SharedSlot: shallow (aliased) vs deep (independent) clones
    dim.py        - SharedDim counters and the ResizePlan transaction
    selection.py  - Selector -> explicit positions (shared by every container)
    arrays.py     - Shape/dtype/select/copy for numpy and scipy.sparse values
"""

from annmatrix.core.rwlock import ReadWriteLock
from annmatrix.core.slot import SharedSlot, WriteGuard, hold_write
from annmatrix.core.dim import SharedDim, ResizePlan
from annmatrix.core.selection import FULL, Selector, to_indices, normalize

__all__ = [
    'ReadWriteLock',
    'SharedSlot',
    'WriteGuard',
    'hold_write',
    'SharedDim',
    'ResizePlan',
    'FULL',
    'Selector',
    'to_indices',
    'normalize',
]
