"""Periodic progress reporting for long-running async phases."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Callable, Optional


class ProgressTicker:
    """
    Call `report` every `interval` seconds while the context is active.

    `report` is called one last time on exit so the final counters are visible.
    A non-positive interval disables periodic reporting.
    """

    def __init__(self, report: Callable[[], None], interval: float) -> None:
        self._report = report
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    async def __aenter__(self) -> "ProgressTicker":
        if self._interval > 0:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._report()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self._report()
