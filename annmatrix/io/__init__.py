"""
annmatrix I/O
=============

Import from external stores.

Exports:
- Backend: abstract read-only store
- MemoryBackend: dict-backed store
- convert_to_in_memory: one-shot import into an AnnotatedMatrix
"""

from annmatrix.io.backend import AXIS_COLLECTIONS, Backend, MemoryBackend
from annmatrix.io.converter import convert_to_in_memory

__all__ = [
    'AXIS_COLLECTIONS',
    'Backend',
    'MemoryBackend',
    'convert_to_in_memory',
]
