from __future__ import annotations

import types
from threading import Condition as T_CONDITION
from threading import Lock as T_LOCK

import anyio


class AsyncReadWriteLock:
    """
    Writer-preferring read/write lock for tasks.

    Any number of readers may hold the lock at once, a writer holds it alone.
    New readers wait while a writer is waiting, so writers cannot starve.

    Example:
        ```python
        lock = AsyncReadWriteLock()

        async with lock.read():
            ...

        async with lock.write():
            ...
        ```
    """

    def __init__(self) -> None:
        self._condition = anyio.Condition()
        self._readers = 0
        self._writers_waiting = 0
        self._writing = False

    def read(self) -> _AsyncReadGuard:
        return _AsyncReadGuard(self)

    def write(self) -> _AsyncWriteGuard:
        return _AsyncWriteGuard(self)

    async def _acquire_read(self) -> None:
        async with self._condition:
            while self._writing or self._writers_waiting:
                await self._condition.wait()
            self._readers += 1

    async def _release_read(self) -> None:
        with anyio.CancelScope(shield=True):
            async with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()

    async def _acquire_write(self) -> None:
        async with self._condition:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    await self._condition.wait()
            except BaseException:
                # wake readers held back by this writer
                self._writers_waiting -= 1
                self._condition.notify_all()
                raise
            self._writers_waiting -= 1
            self._writing = True

    async def _release_write(self) -> None:
        with anyio.CancelScope(shield=True):
            async with self._condition:
                self._writing = False
                self._condition.notify_all()


class _AsyncReadGuard:
    def __init__(self, lock: AsyncReadWriteLock) -> None:
        self._lock = lock

    async def __aenter__(self) -> None:
        await self._lock._acquire_read()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        await self._lock._release_read()


class _AsyncWriteGuard:
    def __init__(self, lock: AsyncReadWriteLock) -> None:
        self._lock = lock

    async def __aenter__(self) -> None:
        await self._lock._acquire_write()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        await self._lock._release_write()


class ReadWriteLock:
    """Thread flavour of ``AsyncReadWriteLock``, for thread-per-request hosts."""

    def __init__(self) -> None:
        self._condition = T_CONDITION(T_LOCK())
        self._readers = 0
        self._writers_waiting = 0
        self._writing = False

    def read(self) -> _ReadGuard:
        return _ReadGuard(self)

    def write(self) -> _WriteGuard:
        return _WriteGuard(self)

    def _acquire_read(self) -> None:
        with self._condition:
            while self._writing or self._writers_waiting:
                self._condition.wait()
            self._readers += 1

    def _release_read(self) -> None:
        with self._condition:
            self._readers -= 1
            if not self._readers:
                self._condition.notify_all()

    def _acquire_write(self) -> None:
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    self._condition.wait()
            except BaseException:
                self._writers_waiting -= 1
                self._condition.notify_all()
                raise
            self._writers_waiting -= 1
            self._writing = True

    def _release_write(self) -> None:
        with self._condition:
            self._writing = False
            self._condition.notify_all()


class _ReadGuard:
    def __init__(self, lock: ReadWriteLock) -> None:
        self._lock = lock

    def __enter__(self) -> None:
        self._lock._acquire_read()

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        self._lock._release_read()


class _WriteGuard:
    def __init__(self, lock: ReadWriteLock) -> None:
        self._lock = lock

    def __enter__(self) -> None:
        self._lock._acquire_write()

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        self._lock._release_write()
