"""Index container — the single owner of the live ContentIndex.

Request handlers read through ``query``; the reload coordinator swaps in a
new snapshot through ``replace``.  Snapshots are immutable, so the lock only
guards the reference itself: a reader holds it for as long as its accessor
runs and never sees half of one build and half of another.

Thread Safety:
    ``ReadWriteLock`` prefers writers.  Once a replace is waiting, new readers
    queue behind it, so a steady stream of requests cannot starve a reload.
    Readers that already hold the lock finish undisturbed.

"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from mew._errors import LockError
from mew.content.index import ContentIndex


class ReadWriteLock:
    """Many readers or one writer, built on ``threading.Condition``.

    Args:
        timeout: Seconds to wait for acquisition before raising LockError.
            None waits forever.

    """

    __slots__ = ("_cond", "_readers", "_timeout", "_writer", "_writers_waiting")

    def __init__(self, timeout: float | None = None) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._timeout = timeout

    def _wait_for(self, predicate: Callable[[], bool], what: str) -> None:
        if self._timeout is None:
            self._cond.wait_for(predicate)
            return
        deadline = time.monotonic() + self._timeout
        if not self._cond.wait_for(predicate, timeout=max(0.0, deadline - time.monotonic())):
            msg = f"Timed out after {self._timeout}s waiting for the index {what} lock"
            raise LockError(msg)

    def acquire_read(self) -> None:
        with self._cond:
            self._wait_for(lambda: not self._writer and self._writers_waiting == 0, "read")
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                msg = "release_read() called without a held read lock"
                raise LockError(msg)
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                self._wait_for(lambda: not self._writer and self._readers == 0, "write")
            finally:
                self._writers_waiting -= 1
                # A writer that gave up may have been holding readers back.
                self._cond.notify_all()
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                msg = "release_write() called without a held write lock"
                raise LockError(msg)
            self._writer = False
            self._cond.notify_all()

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

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        with self._cond:
            return self._readers


class IndexContainer:
    """Holds exactly one current ContentIndex.

    Args:
        initial: The snapshot to serve until the first replace.
        lock_timeout: Passed to the ReadWriteLock.

    """

    __slots__ = ("_index", "_lock")

    def __init__(self, initial: ContentIndex, *, lock_timeout: float | None = None) -> None:
        self._index = initial
        self._lock = ReadWriteLock(timeout=lock_timeout)

    def query[R](self, fn: Callable[[ContentIndex], R]) -> R:
        """Run ``fn`` against the current snapshot under the read lock."""
        with self._lock.read():
            return fn(self._index)

    def replace(self, new_index: ContentIndex) -> ContentIndex:
        """Install ``new_index`` and return the snapshot it replaced."""
        with self._lock.write():
            old, self._index = self._index, new_index
        return old

    def snapshot(self) -> ContentIndex:
        """The current snapshot.  Safe to keep after the lock is released."""
        return self.query(lambda index: index)

    @property
    def generation(self) -> int:
        """Generation number of the current snapshot."""
        return self.query(lambda index: index.generation)
