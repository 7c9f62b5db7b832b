"""
Tests for AxisCollection.

Shape checks on insert per axis kind, deep vs shallow reads, and
subsetting that resizes the shared dims.
"""

import threading

import numpy as np
import pytest

from annmatrix.core import SharedDim
from annmatrix.elements import ArrayElement, AxisCollection
from annmatrix.validation import (
    AxisKind,
    IndexOutOfBounds,
    KeyAlreadyExists,
    KeyNotFound,
    SelectionArityMismatch,
    ShapeMismatch,
)


@pytest.fixture
def rows():
    return SharedDim(4)


@pytest.fixture
def row_multi(rows):
    """ROW collection over 4 rows holding a (4, 2) embedding."""
    return AxisCollection(AxisKind.ROW, rows, members={'pca': np.arange(8).reshape(4, 2)})


class TestAdd:
    """add succeeds iff the shape matches the axis-kind rule."""

    def test_row_kind(self, rows):
        coll = AxisCollection(AxisKind.ROW, rows)
        coll.add('vec', np.zeros(4))
        coll.add('emb', np.zeros((4, 7, 2)))
        with pytest.raises(ShapeMismatch) as exc:
            coll.add('bad', np.zeros((3, 2)))
        assert exc.value.expected == (4,)
        assert coll.keys() == ['vec', 'emb']

    def test_row_column_kind(self):
        coll = AxisCollection(AxisKind.ROW_COLUMN, SharedDim(3), SharedDim(2))
        coll.add('raw', np.zeros((3, 2)))
        with pytest.raises(ShapeMismatch):
            coll.add('t', np.zeros((2, 3)))

    def test_row_column_needs_second_dim(self):
        with pytest.raises(ValueError):
            AxisCollection(AxisKind.ROW_COLUMN, SharedDim(3))

    def test_single_dim_kinds_reject_second_dim(self):
        with pytest.raises(ValueError):
            AxisCollection(AxisKind.PAIRWISE, SharedDim(3), SharedDim(3))

    def test_pairwise_kind(self, rows):
        coll = AxisCollection(AxisKind.PAIRWISE, rows)
        coll.add('dist', np.zeros((4, 4)))
        with pytest.raises(ShapeMismatch):
            coll.add('bad', np.zeros((4, 3)))

    def test_duplicate_key(self, row_multi):
        with pytest.raises(KeyAlreadyExists):
            row_multi.add('pca', np.zeros((4, 2)))

    def test_constructor_members_checked(self, rows):
        with pytest.raises(ShapeMismatch):
            AxisCollection(AxisKind.ROW, rows, members={'bad': np.zeros(5)})


class TestAccess:

    def test_get_is_deep(self, row_multi):
        element = row_multi.get('pca')
        element.set_data(np.zeros((4, 2)))
        assert row_multi.get('pca').get_data()[3, 1] == 7

    def test_get_shallow_aliases(self, row_multi):
        element = row_multi.get_shallow('pca')
        element.set_data(np.zeros((4, 2)))
        assert row_multi.get('pca').get_data().sum() == 0

    def test_missing_key(self, row_multi):
        with pytest.raises(KeyNotFound):
            row_multi.get('nope')
        with pytest.raises(KeyNotFound):
            row_multi.get_shallow('nope')

    def test_remove_twice(self, row_multi):
        removed = row_multi.remove('pca')
        assert isinstance(removed, ArrayElement)
        with pytest.raises(KeyNotFound):
            row_multi.remove('pca')
        assert row_multi.is_empty()

    def test_update_skips_shape_check(self, row_multi):
        """update() replaces without re-validating; the caller owns the shape."""
        row_multi.update('pca', np.zeros(9))
        assert row_multi.get('pca').get_shape() == (9,)

    def test_update_missing_key(self, row_multi):
        with pytest.raises(KeyNotFound):
            row_multi.update('nope', np.zeros(4))

    def test_introspection(self, row_multi, rows):
        assert row_multi.axis == AxisKind.ROW
        assert len(row_multi) == 1
        assert 'pca' in row_multi
        assert 'nope' not in row_multi
        dim1, dim2 = row_multi.dimensions()
        assert dim1.shares_storage(rows)
        assert dim2 is None
        assert "pca: (4, 2)" in str(row_multi)

    def test_map(self, row_multi):
        row_multi.add('vec', np.zeros(4, dtype=np.int64))
        row_multi.map(lambda element: element.astype(np.float32))
        assert all(row_multi.get(k).get_type() == np.float32 for k in row_multi.keys())


class TestSubset:
    """subset_inplace resizes the shared dim; subset leaves it alone."""

    def test_subset_inplace_updates_dim(self, row_multi, rows):
        row_multi.subset_inplace([[0, 3]])
        assert rows.get() == 2
        np.testing.assert_array_equal(row_multi.get('pca').get_data(), [[0, 1], [6, 7]])

    def test_other_collections_see_new_dim(self, row_multi, rows):
        other = AxisCollection(AxisKind.ROW, rows.shallow_clone())
        row_multi.subset_inplace([slice(0, 2)])

        assert other.dimensions()[0].get() == 2
        with pytest.raises(ShapeMismatch):
            other.add('old', np.zeros(4))
        other.add('new', np.zeros(2))

    def test_existing_handle_sees_subset(self, row_multi):
        handle = row_multi.get_shallow('pca')
        row_multi.subset_inplace([[1]])
        assert handle.get_shape() == (1, 2)

    def test_writes_during_subset_wait_for_commit(self, row_multi, monkeypatch):
        """Writes through other handles land on the subsetted state."""
        handle = row_multi.get_shallow('pca')
        alias = row_multi.shallow_clone()
        original = AxisCollection._build_subset
        threads = []

        def build_subset(collection, state, selectors):
            threads.append(threading.Thread(target=handle.apply, args=(lambda value: value * 10,)))
            threads.append(threading.Thread(target=alias.add, args=('late', np.zeros(2))))
            for t in threads:
                t.start()
                t.join(timeout=0.1)
            assert all(t.is_alive() for t in threads)
            return original(collection, state, selectors)

        monkeypatch.setattr(AxisCollection, '_build_subset', build_subset)
        row_multi.subset_inplace([[1, 3]])
        for t in threads:
            t.join(timeout=5)

        np.testing.assert_array_equal(row_multi.get('pca').get_data(), [[20, 30], [60, 70]])
        assert row_multi.keys() == ['pca', 'late']
        assert row_multi.get('late').get_shape() == (2,)

    def test_failed_subset_changes_nothing(self, row_multi, rows):
        row_multi.add('vec', np.arange(4))
        with pytest.raises(IndexOutOfBounds):
            row_multi.subset_inplace([[0, 4]])
        assert rows.get() == 4
        assert row_multi.get('pca').get_shape() == (4, 2)
        assert row_multi.get('vec').get_shape() == (4,)

    def test_trailing_selectors(self, row_multi):
        """Selectors past the shared dims apply to trailing axes."""
        result = row_multi.subset([[0, 1], [1]])
        np.testing.assert_array_equal(result.get('pca').get_data(), [[1], [3]])

    def test_subset_is_independent(self, row_multi, rows):
        result = row_multi.subset([[2]])
        assert rows.get() == 4
        dim1, _ = result.dimensions()
        assert dim1.get() == 1
        assert not dim1.shares_storage(rows)
        assert row_multi.get('pca').get_shape() == (4, 2)

    def test_pairwise_single_selector(self, rows):
        coll = AxisCollection(AxisKind.PAIRWISE, rows, members={'d': np.arange(16).reshape(4, 4)})
        coll.subset_inplace([[0, 3]])
        np.testing.assert_array_equal(coll.get('d').get_data(), [[0, 3], [12, 15]])
        assert rows.get() == 2

    def test_pairwise_lengths_must_match(self, rows):
        coll = AxisCollection(AxisKind.PAIRWISE, rows, members={'d': np.zeros((4, 4))})
        with pytest.raises(ShapeMismatch):
            coll.subset([[0, 1], [0]])

    def test_row_column_needs_two_selectors(self):
        coll = AxisCollection(AxisKind.ROW_COLUMN, SharedDim(2), SharedDim(2))
        with pytest.raises(SelectionArityMismatch):
            coll.subset_inplace([[0]])

    def test_row_column_resizes_both_dims(self):
        n_rows, n_cols = SharedDim(3), SharedDim(3)
        coll = AxisCollection(AxisKind.ROW_COLUMN, n_rows, n_cols, members={'raw': np.arange(9).reshape(3, 3)})
        coll.subset_inplace([[0, 2], [1, 2]])
        assert (n_rows.get(), n_cols.get()) == (2, 2)
        np.testing.assert_array_equal(coll.get('raw').get_data(), [[1, 2], [7, 8]])


class TestClone:

    def test_deep_clone_owns_dims(self, row_multi, rows):
        clone = row_multi.deep_clone()
        row_multi.subset_inplace([[0]])

        assert clone.dimensions()[0].get() == 4
        assert clone.get('pca').get_shape() == (4, 2)

    def test_shallow_clone_shares(self, row_multi):
        alias = row_multi.shallow_clone()
        alias.add('vec', np.zeros(4))
        assert 'vec' in row_multi
        assert alias.shares_storage(row_multi)
