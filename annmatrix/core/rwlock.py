"""
Reader/Writer Lock
==================

Many concurrent readers OR one exclusive writer.

Properties:
    - Writer preference: once a writer is waiting, new readers queue
      behind it, so a steady read load cannot starve writers.
    - Recursive reads: a thread already holding the read side re-enters
      without waiting (even if a writer is queued).
    - Reentrant writes: the writing thread may take the write side again
      and may read under its own write lock.
    - No upgrade: taking the write side while holding the read side raises
      RuntimeError instead of deadlocking.

Blocking only. No timeout, no cancellation.

Usage:
    lock = ReadWriteLock()
    with lock.read():
        ...
    with lock.write():
        ...
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """Reader/writer lock built on a single condition variable."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = None            # ident of the writing thread
        self._writers_waiting = 0
        self._local = threading.local()

    def _counts(self):
        local = self._local
        if not hasattr(local, 'reads'):
            local.reads = 0
            local.writes = 0
            local.write_reads = 0
        return local

    # -------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------

    def acquire_read(self) -> None:
        local = self._counts()
        if self._writer == threading.get_ident():
            local.write_reads += 1
            return

        with self._cond:
            if local.reads == 0:
                while self._writer is not None or self._writers_waiting:
                    self._cond.wait()
            self._readers += 1
        local.reads += 1

    def release_read(self) -> None:
        local = self._counts()
        if local.write_reads and self._writer == threading.get_ident():
            local.write_reads -= 1
            return
        if local.reads == 0:
            raise RuntimeError("release_read() called without holding the read lock")

        with self._cond:
            self._readers -= 1
            local.reads -= 1
            if self._readers == 0:
                self._cond.notify_all()

    # -------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------

    def acquire_write(self) -> None:
        local = self._counts()
        me = threading.get_ident()
        if self._writer == me:
            local.writes += 1
            return
        if local.reads:
            raise RuntimeError("Cannot take the write lock while holding the read lock")

        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer is not None or self._readers > 0:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = me
        local.writes = 1

    def release_write(self) -> None:
        local = self._counts()
        if self._writer != threading.get_ident():
            raise RuntimeError("release_write() called by a thread not holding the write lock")

        local.writes -= 1
        if local.writes:
            return
        with self._cond:
            self._writer = None
            self._cond.notify_all()

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    def is_write_locked(self) -> bool:
        return self._writer is not None

    def __copy__(self):
        return ReadWriteLock()

    def __deepcopy__(self, memo):
        return ReadWriteLock()

    def __repr__(self):
        return (f"ReadWriteLock(readers={self._readers}, "
                f"writer={'held' if self._writer is not None else 'free'}, "
                f"waiting={self._writers_waiting})")
