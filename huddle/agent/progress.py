"""Timed status lines for long-running tool steps."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence

from loguru import logger


class ProgressReporter:
    """
    Emits status strings at fixed offsets until cancelled.

    Used while a slow step (IPFS pins, confirmations) is in flight so the
    viewer sees something happen. Cancelling stops any line not yet sent;
    emit failures are logged and never propagate.

    Usage:
        async with ProgressReporter(say, [(10, "still going"), (20, "almost")]):
            await slow_step()
    """

    def __init__(
        self,
        emit: Callable[[str], Awaitable[Any]],
        schedule: Sequence[tuple[float, str]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._emit = emit
        self._schedule = sorted(schedule, key=lambda item: item[0])
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.emitted: list[str] = []

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        elapsed = 0.0
        for offset, text in self._schedule:
            await self._sleep(max(0.0, offset - elapsed))
            elapsed = offset
            try:
                await self._emit(text)
                self.emitted.append(text)
            except Exception as e:
                logger.warning(f"Progress update failed: {e}")

    async def cancel(self) -> None:
        """Stop the reporter and wait for it to unwind."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> ProgressReporter:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.cancel()
