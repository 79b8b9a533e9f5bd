"""Task Queue: concurrency-bounded worker dispatch with lifecycle hooks."""

from asyncqueue.task_queue.aio import coroutine_worker, submit, wait_idle
from asyncqueue.task_queue.errors import (
    CallbackAlreadyCalledError,
    InvalidCallbackError,
    InvalidConcurrencyError,
    QueueError,
    QueueKilledError,
    TaskFailedError,
)
from asyncqueue.task_queue.models import QueueEvent, QueueHooks, QueueItem
from asyncqueue.task_queue.series import each_series
from asyncqueue.task_queue.service import TaskQueue, only_once

__all__ = [
    "TaskQueue",
    "QueueEvent",
    "QueueHooks",
    "QueueItem",
    "only_once",
    "each_series",
    "coroutine_worker",
    "submit",
    "wait_idle",
    "QueueError",
    "InvalidConcurrencyError",
    "InvalidCallbackError",
    "CallbackAlreadyCalledError",
    "QueueKilledError",
    "TaskFailedError",
]
