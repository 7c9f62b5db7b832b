"""
Table Element
=============

A metadata table (polars DataFrame) and its label index, held together
behind ONE SharedSlot so they are always read and replaced as a unit.

Invariant (checked by every mutator before it commits):
    table.height == len(index)

A table with no columns counts as height 0, so the last column of a
labelled table cannot be removed.

A mutation that would break the invariant raises HeightMismatch and
leaves the element exactly as it was. Because table and index are swapped
in under a single write lock, no reader ever sees one updated without the
other.

Usage:
    obs = TableElement(pl.DataFrame({'batch': ['a', 'b', 'a']}), ['c1', 'c2', 'c3'])
    obs.attach_column(pl.Series('qc', [True, False, True]))
    obs.subset_inplace([0, 2])
    obs.get_index()  # ['c1', 'c3']
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import polars as pl

from annmatrix.config import get_settings
from annmatrix.core.selection import Selector, to_indices
from annmatrix.core.slot import SharedSlot
from annmatrix.validation.errors import HeightMismatch, KeyAlreadyExists, KeyNotFound
from annmatrix.validation.shapes import check_labels


logger = logging.getLogger(__name__)


@dataclass
class TableState:
    """The (table, label index) unit stored in the slot."""
    table: pl.DataFrame
    index: pl.Series


def as_index(labels: Any) -> pl.Series:
    """Coerce a label sequence into a string Series named 'index'."""
    if isinstance(labels, pl.Series):
        return labels.cast(pl.Utf8).rename("index")
    return pl.Series("index", [str(label) for label in labels], dtype=pl.Utf8)


def _validate(state: TableState, context: str) -> None:
    # A table without columns holds no rows, whatever height polars reports
    height = state.table.height if state.table.width > 0 else 0
    if height != len(state.index):
        logger.debug(f"{context} rejected: table height {height} != index length {len(state.index)}")
        raise HeightMismatch(height, len(state.index), context)
    check_labels(state.index, get_settings().enforce_unique_labels)


class TableElement:
    """Handle onto a shared (table, index) pair."""

    __slots__ = ('_slot',)

    def __init__(self, table: Optional[pl.DataFrame], index: Sequence[str]):
        labels = as_index(index)
        if table is None or table.width == 0:
            # No metadata: a one-column table holding the labels
            table = pl.DataFrame([labels.rename(get_settings().index_column)])
        state = TableState(table, labels)
        _validate(state, "TableElement")
        self._slot = SharedSlot(state)

    @classmethod
    def _from_slot(cls, slot: SharedSlot) -> "TableElement":
        element = cls.__new__(cls)
        element._slot = slot
        return element

    @classmethod
    def from_labels(cls, labels: Sequence[str]) -> "TableElement":
        """Minimal table: one column holding the labels themselves."""
        return cls(None, labels)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def get_table(self) -> pl.DataFrame:
        with self._slot.read() as state:
            return state.table.clone()

    def get_index(self) -> List[str]:
        with self._slot.read() as state:
            return state.index.to_list()

    def height(self) -> int:
        with self._slot.read() as state:
            return state.table.height

    def columns(self) -> List[str]:
        with self._slot.read() as state:
            return list(state.table.columns)

    def get_column(self, name: str) -> pl.Series:
        with self._slot.read() as state:
            if name not in state.table.columns:
                raise KeyNotFound(name, "table columns")
            return state.table.get_column(name).clone()

    def is_empty(self) -> bool:
        return self._slot.is_empty()

    # -------------------------------------------------------------------
    # Mutators (validate, then commit as one unit)
    # -------------------------------------------------------------------

    def _commit(self, mutate: Callable[[TableState], TableState], context: str) -> None:
        with self._slot.write() as guard:
            new_state = mutate(guard.value)
            _validate(new_state, context)
            guard.value = new_state

    def set_table_and_index(self, table: pl.DataFrame, index: Sequence[str]) -> None:
        labels = as_index(index)
        self._commit(lambda state: TableState(table, labels), "set_table_and_index")

    def set_table(self, table: pl.DataFrame) -> None:
        self._commit(lambda state: TableState(table, state.index), "set_table")

    def set_index(self, index: Sequence[str]) -> None:
        labels = as_index(index)
        self._commit(lambda state: TableState(state.table, labels), "set_index")

    def attach_column(self, column: Any, name: Optional[str] = None) -> None:
        """Append a new column; its length must equal the current height."""
        series = column if isinstance(column, pl.Series) else pl.Series(name or "", column)
        if name is not None:
            series = series.rename(name)

        def attach(state: TableState) -> TableState:
            if series.name in state.table.columns:
                raise KeyAlreadyExists(series.name, "table columns")
            if len(series) != state.table.height:
                raise HeightMismatch(state.table.height, len(series), f"attach_column '{series.name}'")
            return TableState(state.table.with_columns(series), state.index)

        self._commit(attach, "attach_column")

    def remove_column(self, name: str) -> None:
        def remove(state: TableState) -> TableState:
            if name not in state.table.columns:
                raise KeyNotFound(name, "table columns")
            return TableState(state.table.drop(name), state.index)

        self._commit(remove, "remove_column")

    def set_column(self, name: str, column: Any) -> None:
        """Replace an existing column; its length must equal the current height."""
        series = column if isinstance(column, pl.Series) else pl.Series(name, column)
        series = series.rename(name)

        def replace(state: TableState) -> TableState:
            if name not in state.table.columns:
                raise KeyNotFound(name, "table columns")
            if len(series) != state.table.height:
                raise HeightMismatch(state.table.height, len(series), f"set_column '{name}'")
            return TableState(state.table.with_columns(series), state.index)

        self._commit(replace, "set_column")

    # -------------------------------------------------------------------
    # Subsetting
    # -------------------------------------------------------------------

    @staticmethod
    def _take_rows(state: TableState, selector: Selector) -> TableState:
        positions = to_indices(selector, len(state.index))
        table = state.table.select(pl.all().gather(positions))
        return TableState(table, state.index.gather(positions))

    def subset_inplace(self, selector: Selector) -> None:
        """Keep the selected rows (positions against the current index length)."""
        self._commit(lambda state: self._take_rows(state, selector), "subset_inplace")

    def subset(self, selector: Selector) -> "TableElement":
        with self._slot.read() as state:
            new_state = self._take_rows(state, selector)
        _validate(new_state, "subset")
        return TableElement._from_slot(SharedSlot(new_state))

    # -------------------------------------------------------------------
    # Cloning
    # -------------------------------------------------------------------

    def shallow_clone(self) -> "TableElement":
        return TableElement._from_slot(self._slot.shallow_clone())

    def deep_clone(self, memo=None) -> "TableElement":
        return TableElement._from_slot(self._slot.deep_clone(memo))

    def shares_storage(self, other: "TableElement") -> bool:
        return self._slot.shares_storage(other._slot)

    def swap(self, other: "TableElement") -> None:
        """Exchange (table, index) units with another element."""
        self._slot.swap(other._slot)

    def __copy__(self):
        return self.shallow_clone()

    def __deepcopy__(self, memo):
        return self.deep_clone(memo)

    def __repr__(self):
        if self._slot.is_empty():
            return "TableElement(<empty>)"
        with self._slot.read() as state:
            return f"TableElement(height={state.table.height}, columns={state.table.columns})"
