"""Shared fixtures for annmatrix tests."""

import numpy as np
import pytest
import scipy.sparse as sp

from annmatrix.config import reset_settings


ROW_NAMES = ['obs1', 'obs2', 'obs3']
COL_NAMES = ['var1', 'var2', 'var3']


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Every test starts from default settings, ignoring any ANNMATRIX_CONFIG."""
    monkeypatch.delenv('ANNMATRIX_CONFIG', raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def dense_3x3():
    """3x3 matrix whose value at (i, j) is 10*i + j."""
    return np.array([[0, 1, 2], [10, 11, 12], [20, 21, 22]], dtype=np.float64)


@pytest.fixture
def sparse_3x3(dense_3x3):
    return sp.csr_matrix(dense_3x3)


@pytest.fixture
def row_names():
    return list(ROW_NAMES)


@pytest.fixture
def col_names():
    return list(COL_NAMES)
