"""Shared test fixtures and configuration."""

from __future__ import annotations

import os
from typing import Any, Callable

import pytest

os.environ.setdefault("ASYNCQUEUE_ENV", "test")
os.environ.setdefault("ASYNCQUEUE_LOG_LEVEL", "WARNING")

from asyncqueue.config import Settings, get_settings
from asyncqueue.logging_config import setup_logging

setup_logging(get_settings())


class ManualWorker:
    """Worker that records each dispatch and lets the test complete it later."""

    def __init__(self) -> None:
        self.started: list[Any] = []
        self._in_flight: list[tuple[Any, Callable[..., None]]] = []

    def __call__(self, task: Any, done: Callable[..., None]) -> None:
        self.started.append(task)
        self._in_flight.append((task, done))

    @property
    def pending(self) -> list[Any]:
        """Tasks dispatched but not finished yet, oldest first."""
        return [task for task, _ in self._in_flight]

    def done_for(self, task: Any) -> Callable[..., None]:
        for candidate, done in self._in_flight:
            if candidate == task:
                return done
        raise KeyError(task)

    def finish(self, task: Any, *args: Any) -> None:
        for index, (candidate, done) in enumerate(self._in_flight):
            if candidate == task:
                del self._in_flight[index]
                done(*args)
                return
        raise KeyError(task)

    def finish_oldest(self, *args: Any) -> Any:
        task, done = self._in_flight.pop(0)
        done(*args)
        return task


class ManualScheduler:
    """Holds deferred dispatch passes until the test ends the current turn."""

    def __init__(self) -> None:
        self.pending: list[Callable[[], None]] = []

    def __call__(self, callback: Callable[[], None]) -> None:
        self.pending.append(callback)

    def run(self) -> None:
        while self.pending:
            self.pending.pop(0)()


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Provide a scheduler that runs dispatch passes only when asked."""
    return ManualScheduler()


@pytest.fixture
def manual_worker() -> ManualWorker:
    """Provide a worker whose tasks stay in flight until finished by hand."""
    return ManualWorker()


@pytest.fixture
def settings() -> Settings:
    """Return test settings."""
    return Settings(
        asyncqueue_env="test",
        asyncqueue_log_level="WARNING",
        _env_file=None,
    )
