"""
Array Element
=============

One numeric array (dense numpy or scipy.sparse) behind a SharedSlot.

Ownership:
    The element is a handle. Shallow clones (copy.copy, shallow_clone())
    alias the same value, so set_data/subset_inplace through one handle is
    seen through all. Deep clones own an independent copy.

Shape checks:
    set_data() does not validate shape against anything external. The
    collection holding the element validates before it accepts the element.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence, Tuple

import numpy as np

from annmatrix.core import arrays
from annmatrix.core.selection import Selector
from annmatrix.core.slot import SharedSlot


class ArrayElement:
    """Handle onto a shared array value."""

    __slots__ = ('_slot',)

    def __init__(self, data: Any = None, *, _slot: Optional[SharedSlot] = None):
        if _slot is None:
            if data is None:
                raise TypeError("ArrayElement requires array data")
            _slot = SharedSlot(arrays.as_array_value(data))
        self._slot = _slot

    # -------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------

    def get_shape(self) -> Tuple[int, ...]:
        with self._slot.read() as value:
            return arrays.shape_of(value)

    def get_type(self) -> np.dtype:
        with self._slot.read() as value:
            return arrays.dtype_of(value)

    @property
    def ndim(self) -> int:
        return len(self.get_shape())

    def is_sparse(self) -> bool:
        with self._slot.read() as value:
            return arrays.is_sparse(value)

    def is_empty(self) -> bool:
        return self._slot.is_empty()

    # -------------------------------------------------------------------
    # Data access
    # -------------------------------------------------------------------

    def get_data(self) -> Any:
        """An independent copy of the current value."""
        with self._slot.read() as value:
            return arrays.copy_value(value)

    deep_clone_content = get_data

    @contextmanager
    def read(self) -> Iterator[Any]:
        """Zero-copy access to the value under the read lock."""
        with self._slot.read() as value:
            yield value

    def set_data(self, data: Any) -> None:
        """Unconditionally replace the value (also fills an emptied element)."""
        self._slot.replace(arrays.as_array_value(data))

    def apply(self, func: Callable[[Any], Any]) -> None:
        """Replace the value with func(value) under the write lock."""
        with self._slot.write() as guard:
            guard.value = arrays.as_array_value(func(guard.value))

    def astype(self, dtype) -> None:
        """Re-type the value in place."""
        self.apply(lambda value: value.astype(dtype))

    # -------------------------------------------------------------------
    # Subsetting
    # -------------------------------------------------------------------

    def subset_inplace(self, selectors: Sequence[Selector]) -> None:
        """
        Keep only the selected positions, one selector per axis.

        The new value is computed before it is stored; a malformed
        selection leaves the element unchanged.
        """
        with self._slot.write() as guard:
            guard.value = arrays.select(guard.value, selectors)

    def subset(self, selectors: Sequence[Selector]) -> "ArrayElement":
        """Same selection as subset_inplace(), returned as a new element."""
        with self._slot.read() as value:
            return ArrayElement(arrays.select(value, selectors))

    # -------------------------------------------------------------------
    # Cloning
    # -------------------------------------------------------------------

    def shallow_clone(self) -> "ArrayElement":
        return ArrayElement(_slot=self._slot.shallow_clone())

    def deep_clone(self, memo=None) -> "ArrayElement":
        return ArrayElement(_slot=self._slot.deep_clone(memo))

    def shares_storage(self, other: "ArrayElement") -> bool:
        return self._slot.shares_storage(other._slot)

    def swap(self, other: "ArrayElement") -> None:
        """Exchange values with another element; every alias of either sees it."""
        self._slot.swap(other._slot)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    def __repr__(self):
        if self._slot.is_empty():
            return "ArrayElement(<empty>)"
        with self._slot.read() as value:
            kind = f"sparse={value.format}" if arrays.is_sparse(value) else "dense"
            return f"ArrayElement(shape={arrays.shape_of(value)}, dtype={value.dtype}, {kind})"
