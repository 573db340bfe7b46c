"""
Per-room mutual exclusion.

All read-modify-write work on a room's game runs under that room's lock, so two moves
sent at the same time cannot both read the old PGN. asyncio.Lock wakes waiters in FIFO order,
which also keeps replies in the order their messages arrived. Different rooms never wait on each other.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from chessbot.core.models import RoomID


class RoomLocks:
    def __init__(self) -> None:
        self._locks: dict[RoomID, asyncio.Lock] = {}
        self._holders: dict[RoomID, int] = {}

    @asynccontextmanager
    async def hold(self, room_id: RoomID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        self._holders[room_id] = self._holders.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[room_id] -= 1
            # nobody holds or waits for it any more
            if self._holders[room_id] == 0:
                del self._holders[room_id]
                del self._locks[room_id]

    def __len__(self) -> int:
        return len(self._locks)
