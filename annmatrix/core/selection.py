"""
Selector Translation
====================

Turns a logical "keep these positions along one axis" request into concrete
integer positions. Every container (tables, arrays, axis collections, the
aggregate) goes through to_indices(), so they all agree on the result.

Selector forms:
    slice(start, stop, step)   stop=None means "up to bound"; step >= 1
    [2, 0, 1]                  explicit positions; order and duplicates kept
    range / tuple / int array  same as an explicit list
    bool array of len(bound)   mask (positions where True)

Rules:
    explicit: every position must satisfy 0 <= p < bound
    slice:    start < bound (an omitted start on an empty axis is allowed),
              stop <= bound, step > 0
"""

from typing import List, Sequence, Union

import numpy as np

from annmatrix.validation.errors import (
    IndexOutOfBounds,
    InvalidSliceStep,
    SelectionArityMismatch,
    ShapeMismatch,
    SliceOutOfBounds,
)


Selector = Union[slice, Sequence[int], np.ndarray]

# Select every position along an axis
FULL = slice(None)


def to_indices(selector: Selector, bound: int) -> np.ndarray:
    """
    Translate one selector into explicit positions.

    Args:
        selector: slice, sequence of ints, or boolean mask
        bound: Current length of the axis being selected

    Returns:
        1-D int64 array of positions, in selection order
    """
    if isinstance(selector, slice):
        return _slice_to_indices(selector, bound)

    if isinstance(selector, (int, np.integer)) or isinstance(selector, (str, bytes)):
        raise TypeError(f"Selector must be a slice or a sequence of positions, got {selector!r}")

    positions = np.asarray(selector)
    if positions.dtype == np.bool_:
        # An empty mask only fits an empty axis
        if positions.ndim != 1:
            raise ValueError(f"Selector must be one-dimensional, got shape {positions.shape}")
        if len(positions) != bound:
            raise ShapeMismatch((bound,), positions.shape, "Boolean selector")
        return np.flatnonzero(positions).astype(np.int64)

    if positions.size == 0:
        return np.empty(0, dtype=np.int64)
    if positions.ndim != 1:
        raise ValueError(f"Selector must be one-dimensional, got shape {positions.shape}")

    if not np.issubdtype(positions.dtype, np.integer):
        raise TypeError(f"Selector positions must be integers, got dtype {positions.dtype}")

    positions = positions.astype(np.int64, copy=False)
    bad = positions[(positions < 0) | (positions >= bound)]
    if bad.size:
        raise IndexOutOfBounds(int(bad[0]), bound)
    return positions


def _slice_to_indices(selector: slice, bound: int) -> np.ndarray:
    step = 1 if selector.step is None else int(selector.step)
    if step <= 0:
        raise InvalidSliceStep(step)

    start = 0 if selector.start is None else int(selector.start)
    end = bound if selector.stop is None else int(selector.stop)

    empty_axis_default = selector.start is None and bound == 0
    if start < 0 or end < 0 or end > bound or (start >= bound and not empty_axis_default):
        raise SliceOutOfBounds(start, selector.stop, bound)

    return np.arange(start, end, step, dtype=np.int64)


def normalize(selectors: Sequence[Selector], bounds: Sequence[int]) -> List[np.ndarray]:
    """
    Translate one selector per axis.

    Raises:
        SelectionArityMismatch: len(selectors) != len(bounds)
    """
    if isinstance(selectors, slice) or len(selectors) != len(bounds):
        actual = 1 if isinstance(selectors, slice) else len(selectors)
        raise SelectionArityMismatch(len(bounds), actual)
    return [to_indices(s, b) for s, b in zip(selectors, bounds)]
