"""
Latest-request-wins background execution of slice renders.

Interactive slider movement produces bursts of slice requests; only the most
recent one matters. SliceWorker runs jobs on a single background thread and
hands each job a ``should_cancel`` callback. Submitting a new job supersedes
the previous one: a queued job is cancelled outright, a running job sees
``should_cancel()`` turn True at its next check and aborts with
SliceCancelled.

Usage:
    worker = SliceWorker()
    future = worker.submit(lambda should_cancel: session.render_slice(
        "z", 10.0, should_cancel=should_cancel))
    raster = future.result()
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional
import threading

from meshslice.slicing.sampler import SliceCancelled

Job = Callable[[Callable[[], bool]], Any]


class SliceWorker:
    """
    Single-thread executor where each submission supersedes the previous one.

    Attributes
    ----------
    latest_ticket : int
        Ticket number of the most recent submission.
    """

    def __init__(self, thread_name_prefix: str = "meshslice-worker"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)
        self._lock = threading.Lock()
        self._ticket = 0
        self._pending: Optional[Future] = None

    @property
    def latest_ticket(self) -> int:
        with self._lock:
            return self._ticket

    def is_current(self, ticket: int) -> bool:
        """True while no newer job has been submitted after ``ticket``."""
        with self._lock:
            return ticket == self._ticket

    def submit(self, job: Job) -> Future:
        """
        Schedule ``job(should_cancel)`` and supersede any earlier job.

        Returns
        -------
        future : concurrent.futures.Future
            Resolves to the job's return value. A superseded job's future is
            either cancelled (never started) or fails with SliceCancelled.
        """
        with self._lock:
            self._ticket += 1
            ticket = self._ticket
            previous = self._pending

        if previous is not None:
            previous.cancel()

        def should_cancel() -> bool:
            return not self.is_current(ticket)

        def run():
            if should_cancel():
                raise SliceCancelled(f"Request {ticket} superseded before it started")
            return job(should_cancel)

        future = self._executor.submit(run)
        with self._lock:
            if self._ticket == ticket:
                self._pending = future
        return future

    def cancel_all(self) -> None:
        """Supersede whatever is queued or running without submitting new work."""
        with self._lock:
            self._ticket += 1
            previous = self._pending
            self._pending = None
        if previous is not None:
            previous.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel_all()
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
        return False
