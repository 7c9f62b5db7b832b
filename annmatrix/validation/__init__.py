"""
annmatrix Validation Module

Error kinds and the pure checks every container runs before it mutates.

Exports:
    - AnnMatrixError: Base class of every error below
    - KeyAlreadyExists / KeyNotFound: Collection and column lookups
    - ShapeMismatch / HeightMismatch: Dimensional consistency
    - IndexOutOfBounds / SliceOutOfBounds / InvalidSliceStep: Selectors
    - SelectionArityMismatch: Wrong number of per-axis selectors
    - UninitializedAccess: Slot has been emptied
    - DuplicateLabels: Repeated labels when uniqueness is enforced
    - AxisKind, check_shape, expected_shape, check_labels
"""

from .errors import (
    AnnMatrixError,
    KeyAlreadyExists,
    KeyNotFound,
    ShapeMismatch,
    HeightMismatch,
    IndexOutOfBounds,
    SliceOutOfBounds,
    InvalidSliceStep,
    SelectionArityMismatch,
    UninitializedAccess,
    DuplicateLabels,
)

from .shapes import (
    AxisKind,
    expected_shape,
    check_shape,
    check_labels,
    find_duplicates,
)

__all__ = [
    # Errors
    'AnnMatrixError',
    'KeyAlreadyExists',
    'KeyNotFound',
    'ShapeMismatch',
    'HeightMismatch',
    'IndexOutOfBounds',
    'SliceOutOfBounds',
    'InvalidSliceStep',
    'SelectionArityMismatch',
    'UninitializedAccess',
    'DuplicateLabels',
    # Checks
    'AxisKind',
    'expected_shape',
    'check_shape',
    'check_labels',
    'find_duplicates',
]
