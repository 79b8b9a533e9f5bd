"""Concurrency-bounded task queue with ordered admission and lifecycle hooks.

Callers push payloads; up to ``concurrency`` of them are handed to a worker
function at a time. The worker signals completion through an error-first
callback ``done(err, *results)`` that may be invoked synchronously or at any
later point (for example from an event loop timer). Each ``done`` may be called
exactly once; a second call raises ``CallbackAlreadyCalledError``.
"""

from __future__ import annotations

import asyncio
import functools
from collections import deque
from typing import Any, Callable, Optional, Union

from asyncqueue.config import Settings, get_settings
from asyncqueue.logging_config import get_logger
from asyncqueue.task_queue.errors import (
    CallbackAlreadyCalledError,
    InvalidCallbackError,
    InvalidConcurrencyError,
    QueueError,
    QueueKilledError,
)
from asyncqueue.task_queue.models import (
    QueueEvent,
    QueueHooks,
    QueueItem,
    Scheduler,
    TaskCallback,
    Worker,
)

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 1
DEFAULT_BUFFER_RATIO = 0.25


def only_once(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap ``fn`` so that a second call raises instead of running again."""
    called = False

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        nonlocal called
        if called:
            raise CallbackAlreadyCalledError()
        called = True
        return fn(*args, **kwargs)

    return wrapper


def _validate_concurrency(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidConcurrencyError(f"Concurrency must be a positive integer, got {value!r}")
    return value


def _loop_scheduler() -> Optional[Scheduler]:
    try:
        return asyncio.get_running_loop().call_soon
    except RuntimeError:
        return None


def _coerce_event(event: Union[QueueEvent, str]) -> QueueEvent:
    try:
        return QueueEvent(event)
    except ValueError:
        raise ValueError(f"Unknown queue event: {event!r}") from None


class TaskQueue:
    """Runs a worker over queued tasks with at most ``concurrency`` in flight.

    Admission does not start work by itself. ``push``/``unshift`` schedule a
    single dispatch pass for the end of the current turn, so every task
    admitted in one turn waits in the backlog until then and a ``kill()`` in
    the same turn discards it. The pass is handed to ``scheduler`` when given,
    otherwise to the running event loop's ``call_soon``; outside an event
    loop there is no later turn and the pass runs before ``push`` returns.

    Completions, ``resume()`` and ``concurrency`` assignments dispatch
    directly. Tasks start in backlog order; completion order is up to the
    worker.
    """

    def __init__(
        self,
        worker: Worker,
        concurrency: int = DEFAULT_CONCURRENCY,
        *,
        hooks: Optional[QueueHooks] = None,
        buffer: Optional[float] = None,
        buffer_ratio: float = DEFAULT_BUFFER_RATIO,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        if not callable(worker):
            raise InvalidCallbackError("worker must be callable")
        self._concurrency = _validate_concurrency(concurrency)
        if buffer_ratio < 0:
            raise ValueError(f"buffer_ratio must not be negative, got {buffer_ratio!r}")
        self._buffer_ratio = buffer_ratio
        self._buffer: Optional[float] = None
        self.buffer = buffer

        if scheduler is not None and not callable(scheduler):
            raise InvalidCallbackError("scheduler must be callable")

        self._worker = worker
        self._scheduler = scheduler
        self._tasks: deque[QueueItem] = deque()
        self._workers = 0
        self._started = False
        self._paused = False
        self._killed = False
        self._dispatching = False
        self._pass_scheduled = False

        self._hooks = QueueHooks()
        if hooks is not None:
            for event in hooks.registered():
                self.on(event, hooks.get(event))

        logger.debug("queue_created", concurrency=self._concurrency, buffer=self.buffer)

    @classmethod
    def from_settings(
        cls,
        worker: Worker,
        settings: Optional[Settings] = None,
        *,
        hooks: Optional[QueueHooks] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> TaskQueue:
        """Build a queue using the configured default concurrency and buffer ratio."""
        settings = settings or get_settings()
        return cls(
            worker,
            settings.asyncqueue_default_concurrency,
            hooks=hooks,
            buffer_ratio=settings.asyncqueue_buffer_ratio,
            scheduler=scheduler,
        )

    # ── Configuration ────────────────────────────────────────────────

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @concurrency.setter
    def concurrency(self, value: int) -> None:
        value = _validate_concurrency(value)
        previous, self._concurrency = self._concurrency, value
        logger.debug("concurrency_changed", previous=previous, concurrency=value)
        self._process()

    @property
    def buffer(self) -> float:
        """Distance below ``concurrency`` at which ``unsaturated`` fires.

        Follows ``concurrency * buffer_ratio`` until a value is assigned.
        """
        if self._buffer is not None:
            return self._buffer
        return self._concurrency * self._buffer_ratio

    @buffer.setter
    def buffer(self, value: Optional[float]) -> None:
        if value is not None and value < 0:
            raise ValueError(f"buffer must not be negative, got {value!r}")
        self._buffer = value

    @property
    def started(self) -> bool:
        return self._started

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def killed(self) -> bool:
        return self._killed

    # ── Hooks ────────────────────────────────────────────────────────

    @property
    def hooks(self) -> QueueHooks:
        """Snapshot of the registered handlers."""
        return self._hooks.copy()

    def on(self, event: Union[QueueEvent, str], handler: Optional[Callable[..., Any]]) -> None:
        """Register ``handler`` for ``event``, replacing any previous one."""
        event = _coerce_event(event)
        if handler is not None and not callable(handler):
            raise InvalidCallbackError(f"handler for {event.value!r} must be callable")
        self._hooks.set(event, handler)

    def off(self, event: Union[QueueEvent, str]) -> None:
        """Remove the handler for ``event``."""
        self._hooks.set(_coerce_event(event), None)

    # ── Admission ────────────────────────────────────────────────────

    def push(self, task: Any, callback: Optional[TaskCallback] = None) -> None:
        """Append a task (or a list/tuple of tasks) to the end of the backlog."""
        self._insert(task, False, callback)

    def unshift(self, task: Any, callback: Optional[TaskCallback] = None) -> None:
        """Place a task (or a list/tuple of tasks) at the head of the backlog."""
        self._insert(task, True, callback)

    def _insert(self, data: Any, at_front: bool, callback: Optional[TaskCallback]) -> None:
        if callback is not None and not callable(callback):
            raise InvalidCallbackError("task callback must be a function")
        if self._killed:
            raise QueueKilledError("Cannot add tasks to a killed queue")

        self._started = True
        batch = list(data) if isinstance(data, (list, tuple)) else [data]
        items = [QueueItem(entry, callback) for entry in batch]
        if at_front:
            self._tasks.extendleft(reversed(items))
        else:
            self._tasks.extend(items)

        logger.debug(
            "task_admitted",
            count=len(items),
            front=at_front,
            backlog=len(self._tasks),
        )
        self._schedule_process()

    # ── Dispatch ─────────────────────────────────────────────────────

    def _schedule_process(self) -> None:
        # One pending pass covers every admission made before it runs.
        if self._pass_scheduled:
            return
        schedule = self._scheduler if self._scheduler is not None else _loop_scheduler()
        if schedule is None:
            self._process()
            return
        self._pass_scheduled = True
        schedule(self._run_scheduled_pass)

    def _run_scheduled_pass(self) -> None:
        self._pass_scheduled = False
        self._process()

    def _process(self) -> None:
        # Completions that arrive while a pass is running are picked up by
        # the loop below instead of starting a nested pass.
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while (
                not self._paused
                and not self._killed
                and self._workers < self._concurrency
                and self._tasks
            ):
                item = self._tasks.popleft()
                if not self._tasks:
                    self._fire(QueueEvent.EMPTY)
                    # A hook may kill the queue; the popped item is dropped.
                    if self._killed:
                        break

                self._workers += 1
                if self._workers == self._concurrency:
                    self._fire(QueueEvent.SATURATED)
                    if self._killed:
                        break

                self._run(item)
        finally:
            self._dispatching = False

    def _run(self, item: QueueItem) -> None:
        done = only_once(functools.partial(self._complete, item))
        logger.debug("task_dispatched", seq=item.seq, running=self._workers)
        try:
            self._worker(item.data, done)
        except QueueError:
            raise
        except Exception as exc:
            if item.completed:
                logger.exception("worker_raised_after_completion", seq=item.seq)
            else:
                done(exc)

    def _complete(self, item: QueueItem, *args: Any) -> None:
        item.completed = True
        error = args[0] if args else None

        if self._killed:
            return

        before = self._workers
        self._workers -= 1
        logger.debug("task_completed", seq=item.seq, running=self._workers, failed=bool(error))

        self._invoke_callback(item, args)

        if error:
            logger.warning("task_failed", seq=item.seq, error=str(error))
            self._fire(QueueEvent.ERROR, error, item.data)

        threshold = self._concurrency - self.buffer
        if self._workers <= threshold < before:
            self._fire(QueueEvent.UNSATURATED)

        if self.idle():
            self._fire(QueueEvent.DRAIN)

        self._process()

    def _invoke_callback(self, item: QueueItem, args: tuple[Any, ...]) -> None:
        if item.callback is None:
            return
        try:
            item.callback(*args)
        except Exception:
            logger.exception("task_callback_failed", seq=item.seq)

    def _fire(self, event: QueueEvent, *args: Any) -> None:
        if self._killed:
            return
        handler = self._hooks.get(event)
        if handler is None:
            return
        try:
            handler(*args)
        except Exception:
            logger.exception("queue_hook_failed", event=event.value)

    # ── Control ──────────────────────────────────────────────────────

    def pause(self) -> None:
        """Stop starting new tasks; running tasks are left alone."""
        if self._paused:
            return
        self._paused = True
        logger.debug("queue_paused", running=self._workers, backlog=len(self._tasks))

    def resume(self) -> None:
        """Start dispatching again."""
        if not self._paused:
            return
        self._paused = False
        logger.debug("queue_resumed", running=self._workers, backlog=len(self._tasks))
        self._process()

    def kill(self) -> None:
        """Discard the backlog and stop all further dispatch and hooks.

        Tasks already handed to the worker are not interrupted; their
        completions are accepted once and otherwise ignored.
        """
        if self._killed:
            return
        dropped = len(self._tasks)
        self._tasks.clear()
        self._workers = 0
        self._killed = True
        logger.info("queue_killed", dropped=dropped)

    # ── Introspection ────────────────────────────────────────────────

    def length(self) -> int:
        """Number of tasks waiting to start."""
        return len(self._tasks)

    def running(self) -> int:
        """Number of tasks handed to the worker and not yet completed."""
        return self._workers

    def idle(self) -> bool:
        return not self._tasks and self._workers == 0

    def __repr__(self) -> str:
        return (
            f"TaskQueue(concurrency={self._concurrency}, running={self._workers}, "
            f"backlog={len(self._tasks)}, paused={self._paused}, killed={self._killed})"
        )
