"""Exceptions raised by the task queue.

Task-level failures reported by a worker are never raised by the queue itself;
they are delivered to the task's callback and the ``error`` hook. The classes
here cover programmer errors that fail fast at the offending call.
"""

from __future__ import annotations

from typing import Any


class QueueError(Exception):
    """Base class for all task queue errors."""


class InvalidConcurrencyError(QueueError, ValueError):
    """Concurrency is not a positive integer."""


class InvalidCallbackError(QueueError, TypeError):
    """A callback or hook handler is not callable."""


class CallbackAlreadyCalledError(QueueError, RuntimeError):
    """A completion callback was invoked more than once."""

    def __init__(self, message: str = "Callback was already called.") -> None:
        super().__init__(message)


class QueueKilledError(QueueError, RuntimeError):
    """Work was submitted to a queue after ``kill()``."""


class TaskFailedError(QueueError):
    """Carries a worker error that is not an exception instance."""

    def __init__(self, error: Any, task: Any = None) -> None:
        super().__init__(f"Task failed: {error!r}")
        self.error = error
        self.task = task
