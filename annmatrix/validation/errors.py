"""
Error Kinds
===========

Every failure an annotated matrix can report. All of them derive from
AnnMatrixError and from the builtin exception a caller would naturally
catch (KeyError for lookups, ValueError for shape problems, IndexError for
selections out of range).

PRINCIPLE: "Validate at the point of mutation, never after"

Usage:
    from annmatrix.validation import KeyNotFound, ShapeMismatch

    try:
        adata.get_layer('raw')
    except KeyNotFound as e:
        print(e.key)
"""

from typing import Any, List, Optional, Sequence, Tuple


class AnnMatrixError(Exception):
    """Base class for all annotated matrix errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError subclasses would otherwise repr-quote the message
        return self.message


class KeyAlreadyExists(AnnMatrixError, KeyError):
    """Raised when adding a key that a collection already holds."""

    def __init__(self, key: str, collection: Optional[str] = None):
        self.key = key
        self.collection = collection
        where = f" in {collection}" if collection else ""
        super().__init__(f"Key already exists{where}: '{key}'")


class KeyNotFound(AnnMatrixError, KeyError):
    """Raised when a key (or table column) is not present."""

    def __init__(self, key: str, collection: Optional[str] = None):
        self.key = key
        self.collection = collection
        where = f" in {collection}" if collection else ""
        super().__init__(f"Key not found{where}: '{key}'")


class ShapeMismatch(AnnMatrixError, ValueError):
    """Raised when an array's shape does not match the expected dimensions."""

    def __init__(self, expected: Tuple[Any, ...], actual: Tuple[int, ...], context: str = ""):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        message = f"Data shape {self.actual} does not match expected shape {self.expected}"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class HeightMismatch(AnnMatrixError, ValueError):
    """Raised when a table's height and its label index length disagree."""

    def __init__(self, table: int, index: int, context: str = ""):
        self.table = table
        self.index = index
        message = f"Length of index ({index}) does not match height of table ({table})"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class IndexOutOfBounds(AnnMatrixError, IndexError):
    """Raised when an explicit position is outside [0, bound)."""

    def __init__(self, index: int, bound: int):
        self.index = index
        self.bound = bound
        super().__init__(f"Index out of bounds: {index} >= {bound}")


class SliceOutOfBounds(AnnMatrixError, IndexError):
    """Raised when a slice selector reaches past the axis length."""

    def __init__(self, start: int, end: Optional[int], bound: int):
        self.start = start
        self.end = end
        self.bound = bound
        super().__init__(f"Slice out of bounds: start={start}, end={end}, bound={bound}")


class InvalidSliceStep(AnnMatrixError, ValueError):
    """Raised for slice selectors with a zero or negative step."""

    def __init__(self, step: int):
        self.step = step
        super().__init__(f"Slice step must be a positive integer, got {step}")


class SelectionArityMismatch(AnnMatrixError, ValueError):
    """Raised when the number of per-axis selectors is wrong."""

    def __init__(self, expected: Any, actual: int, context: str = ""):
        self.expected = expected
        self.actual = actual
        message = f"Selection requires {expected} selector(s), got {actual}"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class UninitializedAccess(AnnMatrixError, RuntimeError):
    """Raised when reading or writing a slot that has been emptied."""

    def __init__(self, what: str = "slot"):
        self.what = what
        super().__init__(f"Accessing an empty {what}")


class DuplicateLabels(AnnMatrixError, ValueError):
    """Raised for repeated labels when label uniqueness is enforced."""

    def __init__(self, labels: Sequence[str]):
        self.labels: List[str] = list(labels)
        shown = ", ".join(repr(l) for l in self.labels[:10])
        if len(self.labels) > 10:
            shown += f", ... and {len(self.labels) - 10} more"
        super().__init__(f"Duplicate labels in index: {shown}")
