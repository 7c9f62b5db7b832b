"""
Unstructured Collection
=======================

Free-form values keyed by name (the "uns" slot of an annotated matrix).
Values carry no shape constraint: parameters, color maps, nested dicts,
small arrays or tables.

Subsetting an annotated matrix never touches this collection.

Usage:
    uns = UnstructuredCollection()
    uns.add('params', {'n_neighbors': 15})
    uns.get_deep('params').get_data()  # {'n_neighbors': 15}
"""

import copy
from typing import Any, Dict, List, Optional

from annmatrix.core.slot import SharedSlot
from annmatrix.validation.errors import KeyAlreadyExists, KeyNotFound


class Element:
    """Handle onto one shared free-form value."""

    __slots__ = ('_slot',)

    def __init__(self, data: Any = None, *, _slot: Optional[SharedSlot] = None):
        self._slot = _slot if _slot is not None else SharedSlot(data)

    def get_data(self) -> Any:
        """Independent copy of the value."""
        with self._slot.read() as value:
            return copy.deepcopy(value)

    def set_data(self, data: Any) -> None:
        self._slot.replace(data)

    def shallow_clone(self) -> "Element":
        return Element(_slot=self._slot.shallow_clone())

    def deep_clone(self, memo=None) -> "Element":
        return Element(_slot=self._slot.deep_clone(memo))

    def shares_storage(self, other: "Element") -> bool:
        return self._slot.shares_storage(other._slot)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    def __repr__(self):
        if self._slot.is_empty():
            return "Element(<empty>)"
        with self._slot.read() as value:
            return f"Element({type(value).__name__})"


class UnstructuredCollection:
    """Handle onto a shared mapping of key -> Element."""

    __slots__ = ('_slot',)

    def __init__(self, members: Optional[Dict[str, Any]] = None, *, _slot: Optional[SharedSlot] = None):
        if _slot is None:
            wrapped = {
                key: value if isinstance(value, Element) else Element(value)
                for key, value in (members or {}).items()
            }
            _slot = SharedSlot(wrapped)
        self._slot = _slot

    def add(self, key: str, value: Any) -> None:
        element = value if isinstance(value, Element) else Element(value)
        with self._slot.write() as guard:
            if key in guard.value:
                raise KeyAlreadyExists(key, "unstructured")
            guard.value[key] = element

    def remove(self, key: str) -> Element:
        with self._slot.write() as guard:
            if key not in guard.value:
                raise KeyNotFound(key, "unstructured")
            return guard.value.pop(key)

    def get(self, key: str) -> Element:
        """Aliased handle onto the stored element."""
        with self._slot.read() as members:
            if key not in members:
                raise KeyNotFound(key, "unstructured")
            return members[key].shallow_clone()

    def get_deep(self, key: str) -> Element:
        """Independent copy of the stored element."""
        with self._slot.read() as members:
            if key not in members:
                raise KeyNotFound(key, "unstructured")
            return members[key].deep_clone()

    def keys(self) -> List[str]:
        with self._slot.read() as members:
            return list(members.keys())

    def __len__(self):
        with self._slot.read() as members:
            return len(members)

    def __contains__(self, key):
        with self._slot.read() as members:
            return key in members

    def is_empty(self) -> bool:
        return len(self) == 0

    def shallow_clone(self) -> "UnstructuredCollection":
        return UnstructuredCollection(_slot=self._slot.shallow_clone())

    def deep_clone(self, memo=None) -> "UnstructuredCollection":
        return UnstructuredCollection(_slot=self._slot.deep_clone(memo))

    def shares_storage(self, other: "UnstructuredCollection") -> bool:
        return self._slot.shares_storage(other._slot)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    def __repr__(self):
        return f"UnstructuredCollection(keys={self.keys()})"
