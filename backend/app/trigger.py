"""
app/trigger.py
--------------
Fire-and-forget hand-off from the write path to the assessment pipeline.

The write endpoints commit the new record, call trigger_assessment(), and
return straight away. The run itself happens on a worker thread so the
(blocking) storage and notification calls never hold up the HTTP response.

Ordering: runs for the same user are not serialised. Each run reads a fresh
snapshot, so whichever finishes last reflects the latest data.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures

from app.assessment import HealthAssessmentService


class AssessmentTrigger:
    """Queue of background assessment runs, each with its own error boundary."""

    def __init__(
        self,
        assessor: HealthAssessmentService,
        max_workers: int = 4,
        logger: logging.Logger | None = None,
    ):
        self._assessor = assessor
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="assessment"
        )
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        # Strong references so in-flight runs can be waited on at shutdown
        self._pending: set[Future] = set()

    def trigger_assessment(self, user_id: str) -> Future:
        """
        Queue an assessment run for a user and return without waiting.

        The returned future resolves to the list of raised events (empty if
        the run failed); it never carries an exception.
        """
        future = self._executor.submit(self._run, user_id)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        self._log.debug("Assessment queued for user %s", user_id)
        return future

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every queued run has finished. False on timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait_for_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, user_id: str):
        try:
            return self._assessor.assess_and_notify(user_id)
        except Exception:
            self._log.exception("Background assessment crashed for user %s", user_id)
            return []

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
