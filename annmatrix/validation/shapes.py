"""
Shape and Label Checks
======================

Pure checks shared by every container: the axis-kind shape rule applied
when an array joins an axis collection, and label-index validation for
metadata tables.

Axis kinds:
    ROW         shape[0] == dim1                       (trailing dims free)
    ROW_COLUMN  shape[:2] == (dim1, dim2)
    PAIRWISE    shape[:2] == (dim1, dim1)
"""

import logging
from collections import Counter
from enum import Enum
from typing import Optional, Sequence, Tuple

import polars as pl

from annmatrix.validation.errors import DuplicateLabels, ShapeMismatch


logger = logging.getLogger(__name__)


class AxisKind(str, Enum):
    """Shape rule an axis collection enforces on its members."""
    ROW = "row"                # Length matches one shared dimension
    ROW_COLUMN = "row_column"  # Matches two shared dimensions
    PAIRWISE = "pairwise"      # Both dimensions equal one shared dimension


def expected_shape(axis: AxisKind, dim1: int, dim2: Optional[int] = None) -> Tuple[int, ...]:
    """
    Leading shape an array must have to join a collection of this kind.

    Args:
        axis: Axis kind of the collection
        dim1: Current size of the first shared dimension
        dim2: Current size of the second shared dimension (ROW_COLUMN only)

    Returns:
        Tuple of the constrained leading dimensions
    """
    if axis is AxisKind.ROW:
        return (dim1,)
    if axis is AxisKind.ROW_COLUMN:
        if dim2 is None:
            raise ValueError("ROW_COLUMN collections need a second dimension")
        return (dim1, dim2)
    return (dim1, dim1)


def check_shape(
    shape: Sequence[int],
    axis: AxisKind,
    dim1: int,
    dim2: Optional[int] = None,
    context: str = "",
) -> None:
    """Raise ShapeMismatch unless `shape` satisfies the axis-kind rule."""
    expected = expected_shape(axis, dim1, dim2)
    shape = tuple(int(s) for s in shape)
    if len(shape) < len(expected) or shape[:len(expected)] != expected:
        logger.debug(f"Rejected shape {shape} for {axis.value} axis (expected {expected})")
        raise ShapeMismatch(expected, shape, context)


def find_duplicates(labels: Sequence[str]) -> list:
    """Return each label that occurs more than once, in first-seen order."""
    if isinstance(labels, pl.Series):
        return labels.filter(labels.is_duplicated()).unique(maintain_order=True).to_list()
    counts = Counter(labels)
    return [label for label, n in counts.items() if n > 1]


def check_labels(labels: Sequence[str], enforce_unique: bool = False) -> None:
    """
    Validate a label index.

    Duplicates are accepted (and logged) unless `enforce_unique` is set,
    in which case DuplicateLabels is raised.
    """
    duplicates = find_duplicates(labels)
    if not duplicates:
        return
    if enforce_unique:
        raise DuplicateLabels(duplicates)
    logger.warning(f"Label index has {len(duplicates)} duplicated label(s), e.g. {duplicates[0]!r}")
