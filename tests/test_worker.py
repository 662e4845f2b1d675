"""Tests for latest-request-wins background execution."""

import pytest
import threading

from meshslice.slicing.sampler import SliceCancelled
from meshslice.slicing.worker import SliceWorker

TIMEOUT = 5.0


class TestSliceWorker:

    def test_runs_job(self):
        with SliceWorker() as worker:
            future = worker.submit(lambda should_cancel: 42)
            assert future.result(TIMEOUT) == 42

    def test_running_job_is_superseded(self):
        started = threading.Event()
        release = threading.Event()

        def slow(should_cancel):
            started.set()
            release.wait(TIMEOUT)
            if should_cancel():
                raise SliceCancelled("superseded")
            return "first"

        with SliceWorker() as worker:
            first = worker.submit(slow)
            assert started.wait(TIMEOUT)
            second = worker.submit(lambda should_cancel: "second")
            release.set()

            with pytest.raises(SliceCancelled):
                first.result(TIMEOUT)
            assert second.result(TIMEOUT) == "second"

    def test_queued_job_is_cancelled(self):
        started = threading.Event()
        release = threading.Event()

        def blocking(should_cancel):
            started.set()
            release.wait(TIMEOUT)
            return "blocking"

        with SliceWorker() as worker:
            worker.submit(blocking)
            assert started.wait(TIMEOUT)
            queued = worker.submit(lambda should_cancel: "queued")
            latest = worker.submit(lambda should_cancel: "latest")
            release.set()

            assert queued.cancelled()
            assert latest.result(TIMEOUT) == "latest"

    def test_tickets(self):
        with SliceWorker() as worker:
            assert worker.latest_ticket == 0
            worker.submit(lambda should_cancel: None).result(TIMEOUT)
            assert worker.is_current(1)
            worker.cancel_all()
            assert not worker.is_current(1)
            assert worker.latest_ticket == 2
