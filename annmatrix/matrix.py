"""
Annotated Matrix
================

The aggregate: a primary 2-D matrix, row/column metadata tables, five
axis collections and an unstructured bag, all tied together by two
shared dims (row count and column count).

    component       kind         dims
    matrix          -            (rows, cols)
    row_meta        table        height == rows
    col_meta        table        height == cols
    layers          ROW_COLUMN   (rows, cols)
    row_multi       ROW          rows
    row_pairwise    PAIRWISE     (rows, rows)
    col_multi       ROW          cols
    col_pairwise    PAIRWISE     (cols, cols)
    unstructured    -            none

Locking:
    The aggregate owns a ReadWriteLock. Queries and per-collection edits
    take the read side; subset_inplace takes the write side. Use
    read_lock() to hold a consistent view across several queries.

    Accessors return shallow handles. Writes through a handle are live.
    subset_inplace write-locks every component and member while it runs,
    so such writes wait for it rather than get lost.

Usage:
    adata = AnnotatedMatrix.from_labels(X, ['obs1', 'obs2', 'obs3'], ['var1', 'var2', 'var3'])
    adata.add_layer('raw', X.copy())

    view = adata[[0, 2], [1, 2]]      # new, independent aggregate
    adata.subset_inplace([slice(0, 2), slice(None)])
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import polars as pl

from annmatrix.core.dim import ResizePlan, SharedDim
from annmatrix.core.rwlock import ReadWriteLock
from annmatrix.core.selection import FULL, Selector, to_indices
from annmatrix.core.slot import SharedSlot, hold_write
from annmatrix.elements.array import ArrayElement
from annmatrix.elements.axis import AxisCollection, SubsetResult
from annmatrix.elements.table import TableElement
from annmatrix.elements.unstructured import UnstructuredCollection
from annmatrix.validation.errors import SelectionArityMismatch, ShapeMismatch
from annmatrix.validation.shapes import AxisKind


logger = logging.getLogger(__name__)


# Collection attribute names, in commit order
COLLECTIONS = ('layers', 'row_multi', 'row_pairwise', 'col_multi', 'col_pairwise')


@dataclass
class SubsetParts:
    """Every replacement component of a whole-object subset, built off to the side."""
    matrix: ArrayElement
    row_meta: TableElement
    col_meta: TableElement
    collections: Dict[str, SubsetResult]
    n_rows: int
    n_cols: int


class AnnotatedMatrix:
    """In-memory annotated matrix with shared, lock-guarded components."""

    def __init__(self, matrix: ArrayElement, row_meta: TableElement, col_meta: TableElement):
        """
        Build from an already-constructed matrix element and metadata tables.

        Raises:
            ShapeMismatch: matrix shape != (row_meta.height, col_meta.height)
        """
        shape = matrix.get_shape()
        expected = (row_meta.height(), col_meta.height())
        if len(shape) != 2 or tuple(shape) != expected:
            logger.debug(f"Rejected matrix of shape {shape}, metadata implies {expected}")
            raise ShapeMismatch(expected, shape, "matrix vs metadata heights")

        n_rows, n_cols = expected
        self._row_dim = SharedDim(n_rows)
        self._col_dim = SharedDim(n_cols)
        self._matrix = matrix
        self._row_meta = row_meta
        self._col_meta = col_meta

        self._layers = AxisCollection(
            AxisKind.ROW_COLUMN, self._row_dim.shallow_clone(), self._col_dim.shallow_clone(), name="layers"
        )
        self._row_multi = AxisCollection(AxisKind.ROW, self._row_dim.shallow_clone(), name="row_multi")
        self._row_pairwise = AxisCollection(AxisKind.PAIRWISE, self._row_dim.shallow_clone(), name="row_pairwise")
        self._col_multi = AxisCollection(AxisKind.ROW, self._col_dim.shallow_clone(), name="col_multi")
        self._col_pairwise = AxisCollection(AxisKind.PAIRWISE, self._col_dim.shallow_clone(), name="col_pairwise")
        self._unstructured = UnstructuredCollection()

        self._lock = ReadWriteLock()
        logger.debug(f"Created AnnotatedMatrix {n_rows} x {n_cols}")

    @classmethod
    def from_labels(cls, data: Any, row_names: Sequence[str], col_names: Sequence[str]) -> "AnnotatedMatrix":
        """Raw matrix plus label lists; metadata tables hold only the labels."""
        return cls(ArrayElement(data), TableElement.from_labels(row_names), TableElement.from_labels(col_names))

    @classmethod
    def from_tables(
        cls,
        data: Any,
        row_names: Sequence[str],
        col_names: Sequence[str],
        row_table: Optional[pl.DataFrame] = None,
        col_table: Optional[pl.DataFrame] = None,
    ) -> "AnnotatedMatrix":
        """
        Raw matrix, label lists and metadata tables.

        Label counts are checked against the matrix shape before any table
        is built. A missing table (None) is synthesized from the labels.
        """
        matrix = ArrayElement(data)
        shape = matrix.get_shape()
        labels = (len(row_names), len(col_names))
        if len(shape) != 2 or tuple(shape) != labels:
            raise ShapeMismatch(labels, shape, "label counts vs matrix shape")
        return cls(matrix, TableElement(row_table, row_names), TableElement(col_table, col_names))

    # -------------------------------------------------------------------
    # Accessors (shallow handles)
    # -------------------------------------------------------------------

    def read_lock(self):
        """Hold the aggregate read lock across several queries."""
        return self._lock.read()

    @property
    def row_count(self) -> int:
        with self._lock.read():
            return self._row_dim.get()

    @property
    def col_count(self) -> int:
        with self._lock.read():
            return self._col_dim.get()

    @property
    def shape(self) -> Tuple[int, int]:
        with self._lock.read():
            return self._row_dim.get(), self._col_dim.get()

    @property
    def row_dim(self) -> SharedDim:
        return self._row_dim.shallow_clone()

    @property
    def col_dim(self) -> SharedDim:
        return self._col_dim.shallow_clone()

    @property
    def matrix(self) -> ArrayElement:
        return self._matrix.shallow_clone()

    @property
    def row_meta(self) -> TableElement:
        return self._row_meta.shallow_clone()

    @property
    def col_meta(self) -> TableElement:
        return self._col_meta.shallow_clone()

    @property
    def layers(self) -> AxisCollection:
        return self._layers.shallow_clone()

    @property
    def row_multi(self) -> AxisCollection:
        return self._row_multi.shallow_clone()

    @property
    def row_pairwise(self) -> AxisCollection:
        return self._row_pairwise.shallow_clone()

    @property
    def col_multi(self) -> AxisCollection:
        return self._col_multi.shallow_clone()

    @property
    def col_pairwise(self) -> AxisCollection:
        return self._col_pairwise.shallow_clone()

    @property
    def unstructured(self) -> UnstructuredCollection:
        return self._unstructured.shallow_clone()

    @property
    def row_names(self) -> List[str]:
        with self._lock.read():
            return self._row_meta.get_index()

    @property
    def col_names(self) -> List[str]:
        with self._lock.read():
            return self._col_meta.get_index()

    # -------------------------------------------------------------------
    # Layers
    # -------------------------------------------------------------------

    def add_layer(self, key: str, data: Any) -> None:
        with self._lock.read():
            self._layers.add(key, data)

    def get_layer(self, key: str) -> ArrayElement:
        """Independent copy of a layer."""
        with self._lock.read():
            return self._layers.get(key)

    def get_layer_shallow(self, key: str) -> ArrayElement:
        with self._lock.read():
            return self._layers.get_shallow(key)

    def remove_layer(self, key: str) -> ArrayElement:
        with self._lock.read():
            return self._layers.remove(key)

    def update_layer(self, key: str, data: Any) -> None:
        with self._lock.read():
            self._layers.update(key, data)

    # -------------------------------------------------------------------
    # Subsetting
    # -------------------------------------------------------------------

    @staticmethod
    def _split(selectors: Sequence[Selector]) -> Tuple[Selector, Selector]:
        if isinstance(selectors, slice) or len(selectors) != 2:
            actual = 1 if isinstance(selectors, slice) else len(selectors)
            raise SelectionArityMismatch(2, actual, "AnnotatedMatrix subset")
        return selectors[0], selectors[1]

    def _build_subset(self, rows: Selector, cols: Selector) -> SubsetParts:
        """Validate both selectors and build every replacement. Touches nothing."""
        row_idx = to_indices(rows, self._row_dim.get())
        col_idx = to_indices(cols, self._col_dim.get())

        per_collection = {
            'layers': (row_idx, col_idx),
            'row_multi': (row_idx, FULL),
            'row_pairwise': (row_idx, row_idx),
            'col_multi': (col_idx, FULL),
            'col_pairwise': (col_idx, col_idx),
        }
        collections = {
            name: getattr(self, f"_{name}").build_subset(list(selectors))
            for name, selectors in per_collection.items()
        }

        return SubsetParts(
            matrix=self._matrix.subset([row_idx, col_idx]),
            row_meta=self._row_meta.subset(row_idx),
            col_meta=self._col_meta.subset(col_idx),
            collections=collections,
            n_rows=len(row_idx),
            n_cols=len(col_idx),
        )

    def subset(self, selectors: Sequence[Selector]) -> "AnnotatedMatrix":
        """
        New aggregate holding the selected rows and columns.

        The original is untouched. The unstructured bag is carried over as a
        shallow handle (shared with the original).
        """
        rows, cols = self._split(selectors)
        with self._lock.read():
            parts = self._build_subset(rows, cols)
            unstructured = self._unstructured.shallow_clone()

        result = AnnotatedMatrix(parts.matrix, parts.row_meta, parts.col_meta)
        for name in COLLECTIONS:
            getattr(result, f"_{name}").commit_subset(parts.collections[name], resize_dims=False)
        result._unstructured = unstructured
        logger.info(f"Subset {self._describe_shape()} -> {parts.n_rows} x {parts.n_cols}")
        return result

    def __getitem__(self, key):
        if not isinstance(key, tuple):
            raise TypeError("Index with adata[rows, cols]")
        return self.subset(key)

    def subset_inplace(self, selectors: Sequence[Selector]) -> None:
        """
        Subset every component of this aggregate in place.

        All replacements are built first; a failure at that stage leaves the
        aggregate untouched. The commit (slot swaps plus one resize of both
        shared dims) runs under the aggregate write lock, so readers going
        through the aggregate see either the old or the new state.

        Every component and every collection member is write-locked from
        the build through the commit. A write through a handle made in the
        meantime waits and lands on the subsetted value instead of being
        overwritten by it.
        """
        rows, cols = self._split(selectors)
        with self._lock.write(), hold_write(self._component_slots()):
            with hold_write(self._member_slots()):
                before = self._describe_shape()
                parts = self._build_subset(rows, cols)

                self._matrix.swap(parts.matrix)
                self._row_meta.swap(parts.row_meta)
                self._col_meta.swap(parts.col_meta)
                for name in COLLECTIONS:
                    getattr(self, f"_{name}").commit_subset(parts.collections[name], resize_dims=False)

                ResizePlan().add(self._row_dim, parts.n_rows).add(self._col_dim, parts.n_cols).apply()

        logger.info(f"Subset in place {before} -> {parts.n_rows} x {parts.n_cols}")

    def _component_slots(self) -> List[SharedSlot]:
        slots = [self._matrix._slot, self._row_meta._slot, self._col_meta._slot]
        return slots + [getattr(self, f"_{name}")._slot for name in COLLECTIONS]

    def _member_slots(self) -> List[SharedSlot]:
        slots = []
        for name in COLLECTIONS:
            slots.extend(getattr(self, f"_{name}").member_slots())
        return slots

    # -------------------------------------------------------------------
    # Cloning and display
    # -------------------------------------------------------------------

    def deep_clone(self) -> "AnnotatedMatrix":
        """Fully independent copy; dims shared between components stay shared inside it."""
        return copy.deepcopy(self)

    def __deepcopy__(self, memo):
        clone = AnnotatedMatrix.__new__(AnnotatedMatrix)
        memo[id(self)] = clone
        with self._lock.read():
            for name, value in vars(self).items():
                setattr(clone, name, copy.deepcopy(value, memo))
        return clone

    def _describe_shape(self) -> str:
        return f"{self._row_dim.get()} x {self._col_dim.get()}"

    def __str__(self):
        with self._lock.read():
            lines = [f"AnnotatedMatrix object with n_rows x n_cols = {self._describe_shape()}"]
            lines.append(f"    row_meta: {', '.join(repr(c) for c in self._row_meta.columns())}")
            lines.append(f"    col_meta: {', '.join(repr(c) for c in self._col_meta.columns())}")
            for name in COLLECTIONS:
                keys = getattr(self, f"_{name}").keys()
                if keys:
                    lines.append(f"    {name}: {', '.join(repr(k) for k in keys)}")
            keys = self._unstructured.keys()
            if keys:
                lines.append(f"    unstructured: {', '.join(repr(k) for k in keys)}")
        return "\n".join(lines)

    def __repr__(self):
        return f"AnnotatedMatrix({self._describe_shape()})"
