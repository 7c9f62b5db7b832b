"""
Axis Collection
===============

Named arrays aligned to one or two shared dimensions.

    kind        members must have leading shape    typical use
    ROW         (dim1,)                             per-row embeddings
    ROW_COLUMN  (dim1, dim2)                        layers
    PAIRWISE    (dim1, dim1)                        row-row graphs

The shape rule is checked when an array is ADDED. Changing a shared dim
does not re-validate existing members: whoever changes the dim must
subset every collection that shares it (AnnotatedMatrix.subset_inplace
does this for all of its collections at once).

Reads hand out deep clones by default (get) so callers get a point-in-time
snapshot; get_shallow returns an aliased handle for callers that need to
see, or make, live changes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from annmatrix.core.dim import ResizePlan, SharedDim
from annmatrix.core.selection import FULL, Selector, to_indices
from annmatrix.core.slot import SharedSlot, hold_write
from annmatrix.elements.array import ArrayElement
from annmatrix.validation.errors import (
    KeyAlreadyExists,
    KeyNotFound,
    SelectionArityMismatch,
    ShapeMismatch,
)
from annmatrix.validation.shapes import AxisKind, check_shape


logger = logging.getLogger(__name__)


@dataclass
class AxisState:
    """Everything an axis collection guards with its single lock."""
    axis: AxisKind
    dim1: SharedDim
    dim2: Optional[SharedDim] = None
    members: Dict[str, ArrayElement] = field(default_factory=dict)


@dataclass
class SubsetResult:
    """Replacement members plus the dim sizes they were built for."""
    members: Dict[str, ArrayElement]
    dim1: int
    dim2: Optional[int] = None


def _element_selectors(leading: List[np.ndarray], selectors: Sequence[Selector], ndim: int) -> list:
    """Leading (dim-bound) positions, then caller selectors, then FULL."""
    result = []
    for i in range(ndim):
        if i < len(leading):
            result.append(leading[i])
        elif i < len(selectors):
            result.append(selectors[i])
        else:
            result.append(FULL)
    return result


class AxisCollection:
    """Handle onto a shared mapping of key -> ArrayElement."""

    __slots__ = ('_slot', 'name')

    def __init__(
        self,
        axis: AxisKind,
        dim1: SharedDim,
        dim2: Optional[SharedDim] = None,
        members: Optional[Dict[str, Any]] = None,
        name: str = "axis collection",
    ):
        axis = AxisKind(axis)
        if axis is AxisKind.ROW_COLUMN and dim2 is None:
            raise ValueError("ROW_COLUMN collections need a second dimension")
        if axis is not AxisKind.ROW_COLUMN and dim2 is not None:
            raise ValueError(f"{axis.value} collections take a single dimension")

        state = AxisState(axis, dim1, dim2)
        for key, element in (members or {}).items():
            element = element if isinstance(element, ArrayElement) else ArrayElement(element)
            self._check_member(state, key, element)
            state.members[key] = element

        self._slot = SharedSlot(state)
        self.name = name

    @classmethod
    def _from_slot(cls, slot: SharedSlot, name: str) -> "AxisCollection":
        collection = cls.__new__(cls)
        collection._slot = slot
        collection.name = name
        return collection

    def _check_member(self, state: AxisState, key: str, element: ArrayElement) -> None:
        dim2 = state.dim2.get() if state.dim2 is not None else None
        check_shape(element.get_shape(), state.axis, state.dim1.get(), dim2, f"{self._label()} '{key}'")

    def _label(self) -> str:
        return getattr(self, 'name', None) or "axis collection"

    # -------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------

    @property
    def axis(self) -> AxisKind:
        with self._slot.read() as state:
            return state.axis

    def dimensions(self) -> Tuple[SharedDim, Optional[SharedDim]]:
        """Shallow handles onto (dim1, dim2)."""
        with self._slot.read() as state:
            dim2 = state.dim2.shallow_clone() if state.dim2 is not None else None
            return state.dim1.shallow_clone(), dim2

    def keys(self) -> List[str]:
        with self._slot.read() as state:
            return list(state.members.keys())

    def items(self) -> List[Tuple[str, ArrayElement]]:
        """(key, shallow handle) pairs."""
        with self._slot.read() as state:
            return [(key, element.shallow_clone()) for key, element in state.members.items()]

    def __len__(self):
        with self._slot.read() as state:
            return len(state.members)

    def is_empty(self) -> bool:
        return len(self) == 0

    def __contains__(self, key):
        with self._slot.read() as state:
            return key in state.members

    def __iter__(self):
        return iter(self.keys())

    # -------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------

    def add(self, key: str, element: Any) -> None:
        """
        Insert a new member.

        Raises:
            KeyAlreadyExists: key is present
            ShapeMismatch: shape violates the axis-kind rule for current dims
        """
        element = element if isinstance(element, ArrayElement) else ArrayElement(element)
        with self._slot.write() as guard:
            state = guard.value
            if key in state.members:
                raise KeyAlreadyExists(key, self._label())
            self._check_member(state, key, element)
            state.members[key] = element

    def get(self, key: str) -> ArrayElement:
        """Independent copy of a member."""
        with self._slot.read() as state:
            if key not in state.members:
                raise KeyNotFound(key, self._label())
            return state.members[key].deep_clone()

    def get_shallow(self, key: str) -> ArrayElement:
        """Aliased handle onto a member; changes through it are live."""
        with self._slot.read() as state:
            if key not in state.members:
                raise KeyNotFound(key, self._label())
            return state.members[key].shallow_clone()

    def remove(self, key: str) -> ArrayElement:
        with self._slot.write() as guard:
            if key not in guard.value.members:
                raise KeyNotFound(key, self._label())
            return guard.value.members.pop(key)

    def update(self, key: str, element: Any) -> None:
        """Replace an existing member. Shape is NOT re-checked."""
        element = element if isinstance(element, ArrayElement) else ArrayElement(element)
        with self._slot.write() as guard:
            if key not in guard.value.members:
                raise KeyNotFound(key, self._label())
            guard.value.members[key] = element

    def map(self, func: Callable[[ArrayElement], None]) -> None:
        """
        Call func on every member under the collection's write lock.

        func mutates the element it is given (e.g. element.astype('float32')).
        Members already visited keep their changes if func raises.
        """
        with self._slot.write() as guard:
            for element in guard.value.members.values():
                func(element)

    # -------------------------------------------------------------------
    # Subsetting
    # -------------------------------------------------------------------

    def _resolve(self, state: AxisState, selectors: Sequence[Selector]) -> List[np.ndarray]:
        """Positions for the dim-bound leading axes, validated against current dims."""
        if isinstance(selectors, slice):
            selectors = [selectors]
        n = len(selectors)
        context = f"{self._label()} subset"

        if state.axis is AxisKind.ROW:
            if n < 1:
                raise SelectionArityMismatch("at least 1", n, context)
            return [to_indices(selectors[0], state.dim1.get())]

        if state.axis is AxisKind.ROW_COLUMN:
            if n < 2:
                raise SelectionArityMismatch("at least 2", n, context)
            return [
                to_indices(selectors[0], state.dim1.get()),
                to_indices(selectors[1], state.dim2.get()),
            ]

        if n < 1:
            raise SelectionArityMismatch("1 or 2", n, context)
        first = to_indices(selectors[0], state.dim1.get())
        second = to_indices(selectors[1], state.dim1.get()) if n > 1 else first
        if len(first) != len(second):
            raise ShapeMismatch((len(first), len(first)), (len(first), len(second)), context)
        return [first, second]

    def _build_subset(self, state: AxisState, selectors: Sequence[Selector]) -> SubsetResult:
        leading = self._resolve(state, selectors)
        if isinstance(selectors, slice):
            selectors = [selectors]
        members = {
            key: element.subset(_element_selectors(leading, selectors, element.ndim))
            for key, element in state.members.items()
        }
        dim2 = len(leading[1]) if state.axis is AxisKind.ROW_COLUMN else None
        return SubsetResult(members, len(leading[0]), dim2)

    def build_subset(self, selectors: Sequence[Selector]) -> SubsetResult:
        """Subsetted copies of every member, without touching this collection."""
        with self._slot.read() as state:
            return self._build_subset(state, selectors)

    def subset(self, selectors: Sequence[Selector]) -> "AxisCollection":
        """
        New, independent collection holding the selection.

        Gets its own standalone dims sized to the selection; this
        collection's shared dims are left alone.
        """
        with self._slot.read() as state:
            result = self._build_subset(state, selectors)
            axis = state.axis
        dim2 = SharedDim(result.dim2) if result.dim2 is not None else None
        collection = AxisCollection(axis, SharedDim(result.dim1), dim2, name=self.name)
        collection._slot.get().members.update(result.members)
        return collection

    def member_slots(self) -> List[SharedSlot]:
        """Storage of every member, for callers that lock them as a group."""
        with self._slot.read() as state:
            return [element._slot for element in state.members.values()]

    def subset_inplace(self, selectors: Sequence[Selector]) -> None:
        """
        Subset every member in place and resize the shared dims.

        The collection and every member stay write-locked from the build
        through the commit, so no write through another handle can land in
        between and be overwritten. Every replacement is built before
        anything is committed, so a bad selection changes nothing.

        The shared dims ARE updated, and every
        other collection holding them sees the new size immediately; those
        collections must be subset by the caller too.
        """
        with self._slot.write() as guard:
            state = guard.value
            with hold_write(element._slot for element in state.members.values()):
                result = self._build_subset(state, selectors)
                self._commit(state, result)
        logger.debug(f"Subset '{self._label()}' in place to dim1={result.dim1}")

    def commit_subset(self, result: SubsetResult, resize_dims: bool = True) -> None:
        """Install a prebuilt subset; used to fill a freshly built collection."""
        with self._slot.write() as guard:
            self._commit(guard.value, result, resize_dims)

    def _commit(self, state: AxisState, result: SubsetResult, resize_dims: bool = True) -> None:
        for key, element in result.members.items():
            if key in state.members:
                # Swap so existing shallow handles observe the new value
                state.members[key].swap(element)
            else:
                state.members[key] = element

        if resize_dims:
            plan = ResizePlan().add(state.dim1, result.dim1)
            if state.dim2 is not None and result.dim2 is not None:
                plan.add(state.dim2, result.dim2)
            plan.apply()

    # -------------------------------------------------------------------
    # Cloning
    # -------------------------------------------------------------------

    def shallow_clone(self) -> "AxisCollection":
        return AxisCollection._from_slot(self._slot.shallow_clone(), self.name)

    def deep_clone(self, memo=None) -> "AxisCollection":
        return AxisCollection._from_slot(self._slot.deep_clone(memo), self.name)

    def shares_storage(self, other: "AxisCollection") -> bool:
        return self._slot.shares_storage(other._slot)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    def __str__(self):
        with self._slot.read() as state:
            lines = [f"AxisCollection '{self._label()}' {{",
                     f"    Axis: {state.axis.value}",
                     f"    Dim1: {state.dim1.get()}"]
            if state.dim2 is not None:
                lines.append(f"    Dim2: {state.dim2.get()}")
            lines.append("    Arrays: {")
            for key, element in state.members.items():
                lines.append(f"        {key}: {element.get_shape()}")
            lines.append("    }")
            lines.append("}")
        return "\n".join(lines)

    def __repr__(self):
        with self._slot.read() as state:
            return f"AxisCollection({state.axis.value}, keys={list(state.members)})"
