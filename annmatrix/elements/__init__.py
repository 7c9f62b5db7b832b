"""
annmatrix Elements
==================

Handles onto the pieces of an annotated matrix. Each one is a thin wrapper
over a SharedSlot: copy.copy() aliases, copy.deepcopy() copies.

Exports:
- ArrayElement: one dense or sparse array
- TableElement: metadata table plus its label index
- AxisCollection: named arrays aligned to shared dims
- UnstructuredCollection / Element: free-form named values
"""

from annmatrix.elements.array import ArrayElement
from annmatrix.elements.table import TableElement, TableState, as_index
from annmatrix.elements.axis import AxisCollection, AxisState, SubsetResult
from annmatrix.elements.unstructured import Element, UnstructuredCollection

__all__ = [
    # Arrays
    'ArrayElement',
    # Tables
    'TableElement',
    'TableState',
    'as_index',
    # Axis collections
    'AxisCollection',
    'AxisState',
    'SubsetResult',
    # Unstructured
    'Element',
    'UnstructuredCollection',
]
