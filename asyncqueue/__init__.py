"""asyncqueue: a single-process task queue with bounded concurrency."""

__version__ = "0.1.0"

from asyncqueue.task_queue import (  # noqa: E402
    QueueEvent,
    QueueHooks,
    TaskQueue,
    coroutine_worker,
    each_series,
    submit,
    wait_idle,
)

__all__ = [
    "TaskQueue",
    "QueueEvent",
    "QueueHooks",
    "coroutine_worker",
    "each_series",
    "submit",
    "wait_idle",
]
