"""
annmatrix: in-memory annotated matrix with shared, lock-guarded state.

Public API:
    from annmatrix import AnnotatedMatrix
    adata = AnnotatedMatrix.from_labels(X, row_names, col_names)

Layers:
    annmatrix.core        Substrate (ReadWriteLock, SharedSlot, SharedDim, selectors)
    annmatrix.elements    Handles (ArrayElement, TableElement, AxisCollection, UnstructuredCollection)
    annmatrix.matrix      The aggregate (AnnotatedMatrix)

Also:
    annmatrix.io          One-shot import from a backend store
    annmatrix.config      Settings (YAML) and logging setup
    annmatrix.validation  Error kinds and shape/label checks
"""

from annmatrix.matrix import AnnotatedMatrix
from annmatrix.elements import ArrayElement, AxisCollection, Element, TableElement, UnstructuredCollection
from annmatrix.io import MemoryBackend, convert_to_in_memory
from annmatrix.validation.shapes import AxisKind

__all__ = [
    "AnnotatedMatrix",
    "ArrayElement",
    "AxisCollection",
    "AxisKind",
    "Element",
    "TableElement",
    "UnstructuredCollection",
    "MemoryBackend",
    "convert_to_in_memory",
]
