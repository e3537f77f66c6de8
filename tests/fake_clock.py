"""Manually advanced clock for timer tests."""

from __future__ import annotations

import asyncio


async def settle(rounds: int = 50) -> None:
    """Let ready tasks run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    """Replacement for ``asyncio.sleep`` whose time only moves on ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []

    async def sleep(self, delay: float) -> None:
        fut = asyncio.get_running_loop().create_future()
        self._seq += 1
        entry = (self.now + delay, self._seq, fut)
        self._sleepers.append(entry)
        try:
            await fut
        finally:
            if entry in self._sleepers:
                self._sleepers.remove(entry)

    @property
    def pending(self) -> int:
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            await settle()
            due = sorted(
                (e for e in self._sleepers if e[0] <= target and not e[2].done()),
                key=lambda e: (e[0], e[1]),
            )
            if not due:
                break
            deadline, _, fut = due[0]
            self.now = deadline
            fut.set_result(None)
        self.now = target
        await settle()
