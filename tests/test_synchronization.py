import threading
import time

import anyio
import pytest

from proxy_cron._synchronization import AsyncReadWriteLock, ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)

    def reader() -> None:
        with lock.read():
            # every reader has to be inside at once to pass the barrier
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not inside.broken
    assert lock._readers == 0


def test_writer_is_exclusive():
    lock = ReadWriteLock()
    events: list = []

    def writer(name: str) -> None:
        with lock.write():
            events.append((name, "enter"))
            time.sleep(0.01)
            events.append((name, "exit"))

    threads = [threading.Thread(target=writer, args=(f"w{i}",)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(events) == 8
    for enter, exit in zip(events[::2], events[1::2]):
        assert enter[0] == exit[0]
        assert (enter[1], exit[1]) == ("enter", "exit")


def test_writer_waits_for_readers():
    lock = ReadWriteLock()
    reading = threading.Event()
    release = threading.Event()
    order: list = []

    def reader() -> None:
        with lock.read():
            reading.set()
            release.wait(timeout=5)
            order.append("reader done")

    def writer() -> None:
        reading.wait(timeout=5)
        with lock.write():
            order.append("writer")

    threads = [threading.Thread(target=reader), threading.Thread(target=writer)]
    for thread in threads:
        thread.start()
    reading.wait(timeout=5)
    time.sleep(0.05)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert order == ["reader done", "writer"]


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()

    with lock.read():
        waiting = threading.Thread(target=lambda: lock.write().__enter__())
        waiting.start()
        while not lock._writers_waiting:
            time.sleep(0.001)

        acquired = threading.Event()

        def reader() -> None:
            with lock.read():
                acquired.set()

        late_reader = threading.Thread(target=reader)
        late_reader.start()
        assert not acquired.wait(timeout=0.05)

    waiting.join(timeout=5)
    assert lock._writing
    lock._release_write()
    late_reader.join(timeout=5)
    assert acquired.is_set()


@pytest.mark.anyio
async def test_async_readers_share_the_lock():
    lock = AsyncReadWriteLock()
    active = 0
    peak = 0

    async def reader() -> None:
        nonlocal active, peak
        async with lock.read():
            active += 1
            peak = max(peak, active)
            await anyio.sleep(0.01)
            active -= 1

    async with anyio.create_task_group() as tg:
        for _ in range(5):
            tg.start_soon(reader)

    assert peak == 5


@pytest.mark.anyio
async def test_async_writer_is_exclusive():
    lock = AsyncReadWriteLock()
    readers = 0
    writers = 0
    overlaps = []

    async def writer() -> None:
        nonlocal writers
        async with lock.write():
            if readers or writers:
                overlaps.append(("writer", readers, writers))
            writers += 1
            await anyio.sleep(0.01)
            writers -= 1

    async def reader() -> None:
        nonlocal readers
        async with lock.read():
            if writers:
                overlaps.append(("reader", readers, writers))
            readers += 1
            await anyio.sleep(0.005)
            readers -= 1

    async with anyio.create_task_group() as tg:
        for _ in range(3):
            tg.start_soon(writer)
            tg.start_soon(reader)

    assert overlaps == []
    assert lock._readers == 0
    assert not lock._writing


@pytest.mark.anyio
async def test_async_cancelled_writer_releases_readers():
    lock = AsyncReadWriteLock()

    async with lock.read():
        with anyio.move_on_after(0.01):
            async with lock.write():
                pytest.fail("writer must not get the lock while a reader holds it")

        assert lock._writers_waiting == 0

    async with lock.read():
        assert lock._readers == 1
