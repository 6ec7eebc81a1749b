"""
tests/test_trigger.py
---------------------
Tests for the fire-and-forget assessment hand-off (app/trigger.py).
"""

import threading

import pytest

from app.trigger import AssessmentTrigger
from conftest import USER_ID


class _BlockingAssessor:
    """Holds every run until `release` is set."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def assess_and_notify(self, user_id):
        with self._lock:
            self.calls.append(user_id)
        self.started.set()
        self.release.wait(timeout=5)
        return ["done"]


class _CrashingAssessor:
    def assess_and_notify(self, user_id):
        raise RuntimeError("assessment blew up")


@pytest.fixture
def blocking():
    assessor = _BlockingAssessor()
    trigger = AssessmentTrigger(assessor, max_workers=2)
    yield assessor, trigger
    assessor.release.set()
    trigger.shutdown(wait=True)


class TestAssessmentTrigger:

    def test_returns_before_run_completes(self, blocking):
        assessor, trigger = blocking
        future = trigger.trigger_assessment(USER_ID)

        assert assessor.started.wait(timeout=5)
        assert not future.done()

        assessor.release.set()
        assert future.result(timeout=5) == ["done"]

    def test_wait_idle_times_out_while_runs_are_pending(self, blocking):
        assessor, trigger = blocking
        trigger.trigger_assessment(USER_ID)
        assert assessor.started.wait(timeout=5)

        assert trigger.wait_idle(timeout=0.05) is False
        assessor.release.set()
        assert trigger.wait_idle(timeout=5) is True

    def test_one_run_per_call(self, blocking):
        assessor, trigger = blocking
        assessor.release.set()
        for _ in range(3):
            trigger.trigger_assessment(USER_ID)

        assert trigger.wait_idle(timeout=5)
        assert assessor.calls == [USER_ID] * 3

    def test_crashing_run_resolves_to_empty_list(self):
        trigger = AssessmentTrigger(_CrashingAssessor(), max_workers=1)
        try:
            future = trigger.trigger_assessment(USER_ID)
            assert future.result(timeout=5) == []
            assert future.exception() is None
        finally:
            trigger.shutdown(wait=True)

    def test_wait_idle_with_nothing_queued(self):
        trigger = AssessmentTrigger(_CrashingAssessor(), max_workers=1)
        try:
            assert trigger.wait_idle(timeout=0) is True
        finally:
            trigger.shutdown(wait=True)

    def test_real_pipeline_dispatches_from_worker(
        self, store, dispatcher, clock, add_reading, save_profile
    ):
        from app.assessment import HealthAssessmentService
        from app.care_priority import CarePriorityService

        save_profile()
        add_reading(170, 115)
        assessor = HealthAssessmentService(
            CarePriorityService(store, clock=clock), store, dispatcher, clock=clock
        )
        trigger = AssessmentTrigger(assessor, max_workers=1)
        try:
            trigger.trigger_assessment(USER_ID)
            assert trigger.wait_idle(timeout=5)
        finally:
            trigger.shutdown(wait=True)

        assert len(dispatcher.kinds) == 2
        assert dispatcher.events[-1].payload == {"priority": "EMERGENCY"}
