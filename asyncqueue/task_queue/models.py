"""Data models for the task queue: events, hook registration, queued items."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Any, Callable, Optional

# Completion callbacks follow the error-first convention: ``done(err, *results)``.
TaskCallback = Callable[..., Any]
Worker = Callable[[Any, TaskCallback], Any]
Hook = Callable[[], Any]
ErrorHook = Callable[[Any, Any], Any]
# Receives a zero-argument callable to run once the current turn has finished.
Scheduler = Callable[[Callable[[], None]], Any]

_admission_counter = itertools.count(1)


class QueueEvent(StrEnum):
    """Lifecycle transitions a queue reports through its hooks."""
    SATURATED = "saturated"       # running count reached concurrency
    UNSATURATED = "unsaturated"   # running count fell to concurrency - buffer
    EMPTY = "empty"               # last backlog item handed to a worker
    DRAIN = "drain"               # backlog empty and nothing running
    ERROR = "error"               # a task completed with an error


@dataclass
class QueueHooks:
    """Single-handler slots for each queue event.

    ``error`` receives ``(error, task)``; every other handler takes no arguments.
    """
    saturated: Optional[Hook] = None
    unsaturated: Optional[Hook] = None
    empty: Optional[Hook] = None
    drain: Optional[Hook] = None
    error: Optional[ErrorHook] = None

    def get(self, event: QueueEvent) -> Optional[Callable[..., Any]]:
        return getattr(self, event.value)

    def set(self, event: QueueEvent, handler: Optional[Callable[..., Any]]) -> None:
        setattr(self, event.value, handler)

    def copy(self) -> QueueHooks:
        return QueueHooks(**{f.name: getattr(self, f.name) for f in fields(self)})

    def registered(self) -> list[QueueEvent]:
        """Events that currently have a handler."""
        return [event for event in QueueEvent if self.get(event) is not None]


class QueueItem:
    """A task admitted to the queue, waiting for or assigned to a worker."""

    __slots__ = ("seq", "data", "callback", "completed")

    def __init__(self, data: Any, callback: Optional[TaskCallback] = None) -> None:
        self.seq = next(_admission_counter)
        self.data = data
        self.callback = callback
        self.completed = False

    def __repr__(self) -> str:
        return f"QueueItem(seq={self.seq}, data={self.data!r}, completed={self.completed})"
