# src/lecture_rag/jobs/runner.py

"""Detached background jobs with a pollable status.

A job is identified by name; at most one run per name is active. There is
no cancellation: callers can only see that a job is already running.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

ALREADY_RUNNING = "already_running"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class JobStatus:
    name: str
    state: JobState = JobState.IDLE
    started_at: datetime | None = None
    finished_at: datetime | None = None
    last_updated_at: datetime | None = None
    progress: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def running(self) -> bool:
        return self.state is JobState.RUNNING


@dataclass(frozen=True)
class StartResult:
    started: bool
    reason: str | None = None


class JobContext:
    """Handed to a running job so it can publish progress."""

    def __init__(self, runner: "JobRunner", name: str) -> None:
        self._runner = runner
        self.name = name

    def update(self, **progress: Any) -> None:
        self._runner._update(self.name, progress)


JobFactory = Callable[[JobContext], Awaitable[Any]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobRunner:
    """Keeps the status of every running job and of the last
    ``max_finished`` finished ones. Older finished statuses are evicted and
    read back as idle."""

    def __init__(self, max_finished: int = 100) -> None:
        if max_finished < 1:
            raise ValueError("max_finished must be at least 1")
        self._max_finished = max_finished
        self._statuses: dict[str, JobStatus] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def start(self, name: str, factory: JobFactory) -> StartResult:
        """Launch ``factory`` as a detached task. Must be called from a
        running event loop."""
        if self.status(name).running:
            logger.info("Job %s not started: already running", name)
            return StartResult(started=False, reason=ALREADY_RUNNING)

        now = _now()
        self._statuses[name] = JobStatus(
            name=name, state=JobState.RUNNING, started_at=now, last_updated_at=now
        )
        self._tasks[name] = asyncio.create_task(self._run(name, factory), name=name)
        logger.info("Job %s started", name)
        return StartResult(started=True)

    def status(self, name: str) -> JobStatus:
        return self._statuses.get(name, JobStatus(name=name))

    async def wait(self, name: str) -> JobStatus:
        """Wait for the current run of ``name``, if any, and return its status."""
        task = self._tasks.get(name)
        if task is not None:
            await asyncio.wait({task})
        return self.status(name)

    async def _run(self, name: str, factory: JobFactory) -> None:
        try:
            await factory(JobContext(self, name))
        except Exception as exc:
            logger.error("Job %s failed: %s", name, exc, exc_info=True)
            self._finish(name, JobState.FAILED, str(exc) or type(exc).__name__)
        else:
            logger.info("Job %s completed", name)
            self._finish(name, JobState.COMPLETED)
        finally:
            self._tasks.pop(name, None)

    def _update(self, name: str, progress: Mapping[str, Any]) -> None:
        current = self.status(name)
        self._statuses[name] = replace(
            current, progress={**current.progress, **progress}, last_updated_at=_now()
        )

    def _finish(self, name: str, state: JobState, error: str | None = None) -> None:
        now = _now()
        self._statuses[name] = replace(
            self.status(name), state=state, finished_at=now, last_updated_at=now, error=error
        )
        self._evict_finished()

    def _evict_finished(self) -> None:
        finished = [s for s in self._statuses.values() if s.finished_at and not s.running]
        excess = len(finished) - self._max_finished
        if excess <= 0:
            return
        finished.sort(key=lambda s: s.finished_at)
        for status in finished[:excess]:
            del self._statuses[status.name]
        logger.debug("Evicted %d finished job statuses", excess)
