"""Sequential iteration helper with error-first continuation callbacks."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Optional

from asyncqueue.logging_config import get_logger
from asyncqueue.task_queue.service import only_once

logger = get_logger(__name__)

SeriesIterator = Callable[[Any, Callable[..., None]], Any]
SeriesCallback = Callable[[Any], Any]


class _SeriesRunner:
    """Drives ``iterator`` over ``items`` one at a time.

    Steps whose ``next`` is called synchronously are run from a loop rather
    than by recursion, so long synchronous series keep a flat stack.
    """

    def __init__(
        self,
        items: list[Any],
        iterator: SeriesIterator,
        callback: Optional[SeriesCallback],
        defer_next: bool,
    ) -> None:
        self._items = items
        self._iterator = iterator
        self._callback = callback
        self._defer_next = defer_next
        self._loop = asyncio.get_running_loop() if defer_next else None
        self._index = 0
        self._stepping = False
        self._step_requested = False

    def start(self) -> None:
        self._advance(None)

    def _advance(self, err: Any = None) -> None:
        if err or self._index == len(self._items):
            self._finish(err)
            return
        if self._defer_next and self._index > 0:
            self._loop.call_soon(self._step)
            return
        self._step_requested = True
        if self._stepping:
            return
        self._stepping = True
        try:
            while self._step_requested:
                self._step_requested = False
                self._step()
        finally:
            self._stepping = False

    def _step(self) -> None:
        item = self._items[self._index]
        self._index += 1
        self._iterator(item, only_once(self._advance))

    def _finish(self, err: Any) -> None:
        if err:
            logger.debug("series_failed", completed=self._index, total=len(self._items))
        if self._callback is not None:
            self._callback(err)


def each_series(
    items: Iterable[Any],
    iterator: SeriesIterator,
    callback: Optional[SeriesCallback] = None,
    *,
    defer_next: bool = False,
) -> None:
    """Run ``iterator(item, next)`` for each item, strictly in order.

    ``next(err=None)`` moves on to the following item; a truthy ``err`` stops
    the series and is passed to ``callback``. ``callback(None)`` runs after the
    last item. With ``defer_next`` every step after the first is scheduled on
    the running asyncio loop instead of being invoked from inside ``next``.
    """
    _SeriesRunner(list(items), iterator, callback, defer_next).start()
