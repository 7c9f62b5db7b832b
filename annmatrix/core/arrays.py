"""
Array Values
============

The numeric payload of an ArrayElement: a dense numpy array of any rank or
a rank-2 scipy.sparse matrix/array in any format. These helpers are the
only place that knows how to measure, copy and select from either kind.
"""

from typing import Any, Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from annmatrix.core.selection import Selector, normalize


def as_array_value(data: Any) -> Any:
    """Accept dense or sparse arrays as-is; coerce anything else to numpy."""
    if sp.issparse(data) or isinstance(data, np.ndarray):
        return data
    return np.asarray(data)


def is_sparse(value: Any) -> bool:
    return sp.issparse(value)


def shape_of(value: Any) -> Tuple[int, ...]:
    return tuple(int(s) for s in value.shape)


def dtype_of(value: Any) -> np.dtype:
    return np.dtype(value.dtype)


def copy_value(value: Any) -> Any:
    return value.copy()


def take(value: Any, indices: Sequence[np.ndarray]) -> Any:
    """
    Select explicit positions along every axis.

    Dense arrays use an open mesh (np.ix_); sparse matrices are taken
    row-then-column in CSR and converted back to their original format.
    `indices` must already be validated against the value's shape.
    """
    if sp.issparse(value):
        rows, cols = indices
        out = value.tocsr()[rows, :][:, cols]
        return out.asformat(value.format)
    return value[np.ix_(*indices)]


def select(value: Any, selectors: Sequence[Selector]) -> Any:
    """Validate one selector per axis against the value's shape, then take."""
    indices = normalize(selectors, shape_of(value))
    return take(value, indices)
