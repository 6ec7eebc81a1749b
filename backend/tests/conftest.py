"""
Pytest configuration and shared fixtures.

The fakes here stand in for the storage and notification collaborators so
the care priority code can be exercised without Supabase or a network.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from app.accessors import InMemoryHealthStore
from app.exceptions import DataAccessError
from app.models import (
    AgeRange,
    KnownCondition,
    NotificationEvent,
    NotificationKind,
    Reading,
    RiskProfile,
    SymptomRecord,
    SymptomType,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = "user-123"


class RecordingDispatcher:
    """Keeps every event it is handed. Can be told to raise or reject."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: list[NotificationEvent] = []
        self.attempts = 0
        self.raise_on: set[NotificationKind] = set()
        self.reject = False
        self.closed = False

    def dispatch(self, event: NotificationEvent) -> bool:
        with self._lock:
            self.attempts += 1
            if event.kind in self.raise_on:
                raise RuntimeError(f"delivery failed for {event.kind.value}")
            self.events.append(event)
        return not self.reject

    def close(self) -> None:
        self.closed = True

    @property
    def kinds(self) -> list[NotificationKind]:
        return [e.kind for e in self.events]


class FlakyHealthStore(InMemoryHealthStore):
    """In-memory store whose named read operations raise DataAccessError."""

    READ_OPERATIONS = ("profile", "latest_reading", "readings_since", "symptoms_since")

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()

    def fail(self, *operations: str) -> None:
        self.failing.update(operations or self.READ_OPERATIONS)

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise DataAccessError("storage unavailable", operation=operation)

    def profile(self, user_id):
        self._check("profile")
        return super().profile(user_id)

    def latest_reading(self, user_id):
        self._check("latest_reading")
        return super().latest_reading(user_id)

    def readings_since(self, user_id, cutoff):
        self._check("readings_since")
        return super().readings_since(user_id, cutoff)

    def symptoms_since(self, user_id, cutoff):
        self._check("symptoms_since")
        return super().symptoms_since(user_id, cutoff)


# ===========================================================================
# Fixtures
# ===========================================================================

@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store() -> InMemoryHealthStore:
    return InMemoryHealthStore()


@pytest.fixture
def flaky_store() -> FlakyHealthStore:
    return FlakyHealthStore()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def add_reading(store):
    """Add a reading `hours_ago` before NOW to the in-memory store."""
    def _add(systolic: int, diastolic: int, hours_ago: float = 0, target=None) -> Reading:
        reading = Reading(USER_ID, systolic, diastolic, NOW - timedelta(hours=hours_ago))
        return (target or store).add_reading(reading)
    return _add


@pytest.fixture
def add_symptom(store):
    def _add(symptom_type: SymptomType, hours_ago: float = 1, target=None) -> SymptomRecord:
        record = SymptomRecord(USER_ID, symptom_type, NOW - timedelta(hours=hours_ago))
        return (target or store).add_symptom(record)
    return _add


@pytest.fixture
def save_profile(store):
    def _save(
        age_range: AgeRange = AgeRange.AGE_20_34,
        conditions: tuple[KnownCondition, ...] = (),
        target=None,
    ) -> RiskProfile:
        profile = RiskProfile(
            user_id=USER_ID,
            age_range=age_range,
            known_conditions=frozenset(conditions),
            pregnancy_weeks=30,
            first_pregnancy=True,
        )
        return (target or store).save_profile(profile)
    return _save
