"""
app/accessors.py
----------------
Narrow read/write interfaces over a user's readings, symptoms and profile.

The care priority code depends only on HealthDataAccessor (the read side).
The HTTP write path uses HealthDataStore, which adds the create operations.

Implementations:
    InMemoryHealthStore            → process-local, thread-safe (dev + tests)
    db.supabase_client.SupabaseHealthStore → Supabase tables

Conventions every implementation follows:
  - sequences come back newest first
  - a missing profile raises ProfileNotFoundError
  - storage / network failures raise DataAccessError
"""

from __future__ import annotations

import threading
from collections import defaultdict
from datetime import datetime
from typing import Protocol, Sequence

from app.exceptions import ProfileNotFoundError
from app.models import Reading, RiskProfile, SymptomRecord


class HealthDataAccessor(Protocol):
    """Read operations consumed by the care priority engine."""

    def latest_reading(self, user_id: str) -> Reading | None: ...

    def readings_since(self, user_id: str, cutoff: datetime) -> Sequence[Reading]: ...

    def symptoms_since(self, user_id: str, cutoff: datetime) -> Sequence[SymptomRecord]: ...

    def profile(self, user_id: str) -> RiskProfile: ...


class HealthDataStore(HealthDataAccessor, Protocol):
    """Accessor plus the write operations used by the routers."""

    def add_reading(self, reading: Reading) -> Reading: ...

    def add_symptom(self, symptom: SymptomRecord) -> SymptomRecord: ...

    def save_profile(self, profile: RiskProfile) -> RiskProfile: ...

    def list_readings(self, user_id: str, limit: int = 50) -> Sequence[Reading]: ...

    def list_symptoms(self, user_id: str, limit: int = 100) -> Sequence[SymptomRecord]: ...


class InMemoryHealthStore:
    """
    Thread-safe in-process store.

    Records are immutable dataclasses, so returned lists can be handed out
    without copying the records themselves.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._readings: dict[str, list[Reading]] = defaultdict(list)
        self._symptoms: dict[str, list[SymptomRecord]] = defaultdict(list)
        self._profiles: dict[str, RiskProfile] = {}

    # -- write side --------------------------------------------------------

    def add_reading(self, reading: Reading) -> Reading:
        with self._lock:
            self._readings[reading.user_id].append(reading)
        return reading

    def add_symptom(self, symptom: SymptomRecord) -> SymptomRecord:
        with self._lock:
            self._symptoms[symptom.user_id].append(symptom)
        return symptom

    def save_profile(self, profile: RiskProfile) -> RiskProfile:
        with self._lock:
            self._profiles[profile.user_id] = profile
        return profile

    # -- read side ---------------------------------------------------------

    def latest_reading(self, user_id: str) -> Reading | None:
        readings = self._sorted_readings(user_id)
        return readings[0] if readings else None

    def readings_since(self, user_id: str, cutoff: datetime) -> list[Reading]:
        return [r for r in self._sorted_readings(user_id) if r.recorded_at >= cutoff]

    def symptoms_since(self, user_id: str, cutoff: datetime) -> list[SymptomRecord]:
        return [s for s in self._sorted_symptoms(user_id) if s.recorded_at >= cutoff]

    def profile(self, user_id: str) -> RiskProfile:
        with self._lock:
            profile = self._profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)
        return profile

    def list_readings(self, user_id: str, limit: int = 50) -> list[Reading]:
        return self._sorted_readings(user_id)[:limit]

    def list_symptoms(self, user_id: str, limit: int = 100) -> list[SymptomRecord]:
        return self._sorted_symptoms(user_id)[:limit]

    def _sorted_readings(self, user_id: str) -> list[Reading]:
        with self._lock:
            readings = list(self._readings.get(user_id, ()))
        return sorted(readings, key=lambda r: r.recorded_at, reverse=True)

    def _sorted_symptoms(self, user_id: str) -> list[SymptomRecord]:
        with self._lock:
            symptoms = list(self._symptoms.get(user_id, ()))
        return sorted(symptoms, key=lambda s: s.recorded_at, reverse=True)
