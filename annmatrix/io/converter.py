"""
In-Memory Import
================

One-shot copy of a backend store into a fresh AnnotatedMatrix.

Order:
    1. matrix + labels + metadata tables -> AnnotatedMatrix.from_tables
    2. every axis collection the store provides (absent ones are skipped)
    3. the unstructured bag
    4. backend.close(), also when any step above raised

Usage:
    from annmatrix.io import MemoryBackend, convert_to_in_memory

    adata = convert_to_in_memory(MemoryBackend(X, rows, cols))
"""

import logging

from annmatrix.io.backend import AXIS_COLLECTIONS, Backend
from annmatrix.matrix import AnnotatedMatrix


logger = logging.getLogger(__name__)


def convert_to_in_memory(backend: Backend) -> AnnotatedMatrix:
    """
    Read every component of `backend` into a new AnnotatedMatrix.

    Args:
        backend: Store to import from; closed on return

    Returns:
        Independent in-memory aggregate

    Raises:
        Whatever the constructors or add operations raise (shape, height,
        duplicate key errors); the backend is still closed.
    """
    try:
        adata = AnnotatedMatrix.from_tables(
            backend.read_matrix(),
            backend.read_row_names(),
            backend.read_col_names(),
            backend.read_row_meta(),
            backend.read_col_meta(),
        )
        logger.info(f"Importing {adata.row_count} x {adata.col_count} matrix")

        for name in AXIS_COLLECTIONS:
            arrays = backend.read_axis_arrays(name)
            if arrays is None:
                logger.debug(f"{name}: absent from backend")
                continue
            collection = getattr(adata, name)
            for key, value in arrays:
                collection.add(key, value)
            logger.debug(f"{name}: imported {len(collection)} array(s)")

        uns = backend.read_unstructured()
        if uns is not None:
            target = adata.unstructured
            for key, value in uns:
                target.add(key, value)

        logger.info(f"Import complete: {adata!r}")
        return adata
    finally:
        backend.close()
