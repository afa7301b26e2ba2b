"""Units of background database work.

Every connect, fetch, execute and commit is a :class:`Job`. ``work`` runs off
the UI thread; exactly one of the callbacks then runs back on the UI thread.
A job bound to a connection that was closed meanwhile is dropped silently.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..db.exceptions import ConnectionClosedError

if TYPE_CHECKING:
    from textual.app import App

    from .registry import LiveConnection

LOG = logging.getLogger(__name__)


@dataclass
class Job:
    """A request-driven unit of backend work."""

    name: str
    work: Callable[[], Any]
    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[Exception], None] | None = None
    handle: LiveConnection | None = None

    @property
    def stale(self) -> bool:
        return self.handle is not None and self.handle.closed


class JobRunner(ABC):
    """Runs jobs and tracks how many are outstanding."""

    def __init__(self) -> None:
        self.pending = 0
        self._on_change: Callable[[int], None] | None = None

    @property
    def busy(self) -> bool:
        return self.pending > 0

    def set_change_callback(self, callback: Callable[[int], None]) -> None:
        self._on_change = callback

    def submit(self, job: Job) -> None:
        self.pending += 1
        self._notify()
        LOG.debug("Job %s submitted", job.name)
        self._start(job)

    @abstractmethod
    def _start(self, job: Job) -> None:
        """Begin running ``job`` and arrange for :meth:`_finish` to be called."""

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self.pending)

    def _finish(self, job: Job, result: Any = None, error: Exception | None = None) -> None:
        """Apply a job's outcome. Must run on the UI thread."""
        self.pending = max(0, self.pending - 1)
        try:
            if job.stale:
                LOG.debug("Discarding result of %s: connection closed", job.name)
                return
            if error is not None:
                if isinstance(error, ConnectionClosedError) and job.handle is not None:
                    LOG.debug("Discarding %s: %s", job.name, error)
                    return
                LOG.debug("Job %s failed: %s", job.name, error)
                if job.on_error:
                    job.on_error(error)
                return
            if job.on_success:
                job.on_success(result)
        finally:
            self._notify()


def _run_work(job: Job) -> tuple[Any, Exception | None]:
    try:
        return job.work(), None
    except Exception as e:
        return None, e


class SyncJobRunner(JobRunner):
    """Runs each job to completion inside ``submit``."""

    def _start(self, job: Job) -> None:
        result, error = _run_work(job)
        self._finish(job, result, error)


class DeferredJobRunner(JobRunner):
    """Queues jobs until :meth:`run_pending` is called."""

    def __init__(self) -> None:
        super().__init__()
        self.queue: list[Job] = []

    def _start(self, job: Job) -> None:
        self.queue.append(job)

    def run_pending(self) -> None:
        while self.queue:
            job = self.queue.pop(0)
            result, error = _run_work(job)
            self._finish(job, result, error)


class TextualJobRunner(JobRunner):
    """Runs work in a Textual thread worker and completes on the app thread."""

    def __init__(self, app: App) -> None:
        super().__init__()
        self._app = app

    def _start(self, job: Job) -> None:
        def do_work() -> None:
            """Worker function with error handling."""
            result, error = _run_work(job)
            self._app.call_from_thread(self._finish, job, result, error)

        self._app.run_worker(do_work, name=job.name, thread=True, group="db")
