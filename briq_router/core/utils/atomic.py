from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger


class Compensations:
    """Stack of undo actions for external effects already applied.

    Local ledger state is only touched after every external call succeeded,
    so unwinding these is enough to leave the world as it was before the
    entry point ran.
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._undo: list[tuple[str, Callable[[], Any]]] = []

    def push(self, description: str, undo: Callable[[], Any]) -> None:
        self._undo.append((description, undo))

    def clear(self) -> None:
        self._undo.clear()

    async def unwind(self) -> None:
        while self._undo:
            description, undo = self._undo.pop()
            logger.warning(f"[{self.label}] rolling back: {description}")
            result = undo()
            if inspect.isawaitable(result):
                await result


@asynccontextmanager
async def compensating(label: str) -> AsyncIterator[Compensations]:
    comp = Compensations(label)
    try:
        yield comp
    except BaseException:
        await comp.unwind()
        raise
