"""
Backend Stores
==============

Read-only source of every component of an annotated matrix, consumed once
by convert_to_in_memory().

Absent vs empty:
    A read that returns None means the component is ABSENT from the store.
    An empty iterable means it is present but holds nothing.

Subclasses must:
1. Implement every read_* method
2. Implement close(), called exactly once after the import
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import polars as pl


# Axis collection names a backend may provide
AXIS_COLLECTIONS = ('layers', 'row_multi', 'row_pairwise', 'col_multi', 'col_pairwise')


class Backend(ABC):
    """Base class for stores an annotated matrix can be imported from."""

    @abstractmethod
    def read_matrix(self) -> Any:
        """Primary 2-D matrix (numpy array or scipy.sparse matrix)."""
        pass

    @abstractmethod
    def read_row_names(self) -> Sequence[str]:
        pass

    @abstractmethod
    def read_col_names(self) -> Sequence[str]:
        pass

    @abstractmethod
    def read_row_meta(self) -> Optional[pl.DataFrame]:
        pass

    @abstractmethod
    def read_col_meta(self) -> Optional[pl.DataFrame]:
        pass

    @abstractmethod
    def read_axis_arrays(self, name: str) -> Optional[Iterable[Tuple[str, Any]]]:
        """(key, array) pairs of one axis collection, or None if absent."""
        pass

    @abstractmethod
    def read_unstructured(self) -> Optional[Iterable[Tuple[str, Any]]]:
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the store. Called once, after the import finishes or fails."""
        pass


@dataclass
class MemoryBackend(Backend):
    """
    Dict-backed store.

    Attributes:
        matrix: Primary matrix value
        row_names: Row labels
        col_names: Column labels
        row_meta: Row metadata table (None = absent)
        col_meta: Column metadata table (None = absent)
        axis_arrays: Collection name -> {key: array}; missing name = absent
        unstructured: {key: value} (None = absent)
    """
    matrix: Any
    row_names: List[str]
    col_names: List[str]
    row_meta: Optional[pl.DataFrame] = None
    col_meta: Optional[pl.DataFrame] = None
    axis_arrays: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    unstructured: Optional[Dict[str, Any]] = None
    closed: bool = False

    def __post_init__(self):
        unknown = sorted(set(self.axis_arrays) - set(AXIS_COLLECTIONS))
        if unknown:
            raise ValueError(f"Unknown axis collection(s): {unknown} (available: {list(AXIS_COLLECTIONS)})")

    @classmethod
    def from_annotated(cls, adata) -> "MemoryBackend":
        """Snapshot an existing AnnotatedMatrix into a store."""
        with adata.read_lock():
            axis_arrays = {
                name: {key: element.get_data() for key, element in getattr(adata, name).items()}
                for name in AXIS_COLLECTIONS
            }
            uns = adata.unstructured
            return cls(
                matrix=adata.matrix.get_data(),
                row_names=adata.row_names,
                col_names=adata.col_names,
                row_meta=adata.row_meta.get_table(),
                col_meta=adata.col_meta.get_table(),
                axis_arrays=axis_arrays,
                unstructured={key: uns.get(key).get_data() for key in uns.keys()},
            )

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("Backend is closed")

    def read_matrix(self) -> Any:
        self._check_open()
        return self.matrix

    def read_row_names(self) -> Sequence[str]:
        self._check_open()
        return self.row_names

    def read_col_names(self) -> Sequence[str]:
        self._check_open()
        return self.col_names

    def read_row_meta(self) -> Optional[pl.DataFrame]:
        self._check_open()
        return self.row_meta

    def read_col_meta(self) -> Optional[pl.DataFrame]:
        self._check_open()
        return self.col_meta

    def read_axis_arrays(self, name: str) -> Optional[Iterable[Tuple[str, Any]]]:
        self._check_open()
        if name not in AXIS_COLLECTIONS:
            raise ValueError(f"Unknown axis collection: {name}")
        arrays = self.axis_arrays.get(name)
        return None if arrays is None else list(arrays.items())

    def read_unstructured(self) -> Optional[Iterable[Tuple[str, Any]]]:
        self._check_open()
        return None if self.unstructured is None else list(self.unstructured.items())

    def close(self) -> None:
        if self.closed:
            raise RuntimeError("Backend already closed")
        self.closed = True
