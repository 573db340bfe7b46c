"""Unit tests for chessbot/services/room_locks.py"""

import asyncio

from chessbot.services.room_locks import RoomLocks


def test_same_room_is_serialized_in_arrival_order() -> None:
    locks = RoomLocks()
    log: list[str] = []

    async def work(name: str) -> None:
        async with locks.hold("!room"):
            log.append(f"start {name}")
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            log.append(f"end {name}")

    async def run() -> None:
        await asyncio.gather(work("a"), work("b"), work("c"))

    asyncio.run(run())
    assert log == ["start a", "end a", "start b", "end b", "start c", "end c"]


def test_different_rooms_interleave() -> None:
    locks = RoomLocks()
    log: list[str] = []
    both_inside = asyncio.Event()

    async def work(room: str) -> None:
        async with locks.hold(room):
            log.append(f"start {room}")
            if len(log) == 2:
                both_inside.set()
            await asyncio.wait_for(both_inside.wait(), timeout=1)
            log.append(f"end {room}")

    async def run() -> None:
        await asyncio.gather(work("!a"), work("!b"))

    asyncio.run(run())
    assert log[:2] == ["start !a", "start !b"]


def test_locks_are_released_when_idle() -> None:
    locks = RoomLocks()

    async def run() -> None:
        async with locks.hold("!room"):
            assert len(locks) == 1
        assert len(locks) == 0

    asyncio.run(run())
