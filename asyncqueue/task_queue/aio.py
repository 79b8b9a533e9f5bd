"""asyncio bridges for the callback-based task queue."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Coroutine

from asyncqueue.task_queue.errors import TaskFailedError
from asyncqueue.task_queue.models import TaskCallback, Worker
from asyncqueue.task_queue.service import TaskQueue

CoroutineFunction = Callable[[Any], Coroutine[Any, Any, Any]]


def coroutine_worker(func: CoroutineFunction) -> Worker:
    """Adapt ``async def func(task)`` into a ``(task, done)`` queue worker.

    Must be used from inside a running event loop; each dispatched task is
    scheduled as an ``asyncio.Task``.
    """

    def worker(task: Any, done: TaskCallback) -> None:
        future = asyncio.ensure_future(func(task))

        def _finish(fut: asyncio.Future) -> None:
            if fut.cancelled():
                done(asyncio.CancelledError())
                return
            exc = fut.exception()
            if exc is not None:
                done(exc)
            else:
                done(None, fut.result())

        future.add_done_callback(_finish)

    return worker


def _result_value(results: tuple[Any, ...]) -> Any:
    if not results:
        return None
    if len(results) == 1:
        return results[0]
    return results


def submit(queue: TaskQueue, task: Any, *, front: bool = False) -> asyncio.Future:
    """Admit ``task`` and return a future for its outcome.

    The future resolves with the worker's result (a tuple when several values
    are reported) or fails with its error. Errors that are not exceptions are
    wrapped in ``TaskFailedError``.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _resolve(err: Any = None, *results: Any) -> None:
        if future.done():
            return
        if isinstance(err, asyncio.CancelledError):
            future.cancel()
        elif err:
            if not isinstance(err, BaseException):
                err = TaskFailedError(err, task)
            future.set_exception(err)
        else:
            future.set_result(_result_value(results))

    # Wrapped in a one-element batch so list and tuple payloads stay whole.
    if front:
        queue.unshift([task], _resolve)
    else:
        queue.push([task], _resolve)
    return future


async def wait_idle(queue: TaskQueue, poll_interval: float = 0.01) -> None:
    """Wait until the queue has no backlog and nothing running."""
    while not queue.idle():
        await asyncio.sleep(poll_interval)
