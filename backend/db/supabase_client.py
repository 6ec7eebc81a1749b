"""
db/supabase_client.py
---------------------
Initializes and exposes a singleton Supabase client, plus the Supabase
implementations of the storage and notification interfaces.

Public API:
    get_supabase_client()            → cached Client singleton
    SupabaseHealthStore              → HealthDataStore over the tables below
    SupabaseNotificationDispatcher   → appends events to `notifications`

Tables:
    blood_pressure_readings  (user_id, systolic, diastolic, recorded_at)
    symptom_records          (user_id, symptom_type, recorded_at)
    user_profiles            (user_id, age_range, known_conditions[],
                              pregnancy_weeks, first_pregnancy)
    notifications            (user_id, kind, template, payload, created_at)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, TypeVar

from supabase import Client, create_client

from app.config import get_settings
from app.exceptions import DataAccessError, ProfileNotFoundError
from app.models import (
    AgeRange,
    KnownCondition,
    NotificationEvent,
    Reading,
    RiskProfile,
    SymptomRecord,
    SymptomType,
)

logger = logging.getLogger(__name__)

READINGS_TABLE = "blood_pressure_readings"
SYMPTOMS_TABLE = "symptom_records"
PROFILES_TABLE = "user_profiles"
NOTIFICATIONS_TABLE = "notifications"

T = TypeVar("T")


@lru_cache()
def get_supabase_client() -> Client:
    """
    Return a cached Supabase client instance.

    The client is created once and reused for the lifetime of the process.
    Credentials are pulled from the app settings (loaded from .env).

    Returns:
        supabase.Client: An authenticated Supabase client.

    Raises:
        ValueError: If SUPABASE_URL or SUPABASE_KEY are not set.
    """
    settings = get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_KEY must be set in your .env file."
        )

    client: Client = create_client(settings.supabase_url, settings.supabase_key)
    return client


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _reading_from_row(row: dict[str, Any]) -> Reading:
    return Reading(
        user_id=row["user_id"],
        systolic=int(row["systolic"]),
        diastolic=int(row["diastolic"]),
        recorded_at=_parse_timestamp(row["recorded_at"]),
    )


def _symptom_from_row(row: dict[str, Any]) -> SymptomRecord:
    return SymptomRecord(
        user_id=row["user_id"],
        symptom_type=SymptomType(row["symptom_type"]),
        recorded_at=_parse_timestamp(row["recorded_at"]),
    )


def _profile_from_row(row: dict[str, Any]) -> RiskProfile:
    return RiskProfile(
        user_id=row["user_id"],
        age_range=AgeRange(row["age_range"]),
        known_conditions=frozenset(
            KnownCondition(c) for c in (row.get("known_conditions") or [])
        ),
        pregnancy_weeks=int(row.get("pregnancy_weeks") or 0),
        first_pregnancy=bool(row.get("first_pregnancy")),
    )


# ---------------------------------------------------------------------------
# Health data store
# ---------------------------------------------------------------------------

class SupabaseHealthStore:
    """
    HealthDataStore backed by Supabase.

    Every client error, and every row that cannot be mapped back to a
    domain record, is raised as DataAccessError so callers can apply their
    conservative-default handling; nothing here swallows failures.
    """

    def __init__(self, client: Client | None = None):
        # Resolved lazily so importing the app never needs credentials
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    # -- write side --------------------------------------------------------

    def add_reading(self, reading: Reading) -> Reading:
        row = {
            "user_id": reading.user_id,
            "systolic": reading.systolic,
            "diastolic": reading.diastolic,
            "recorded_at": reading.recorded_at.isoformat(),
        }
        stored = self._execute(
            "add_reading",
            lambda: self.client.table(READINGS_TABLE).insert(row),
            _reading_from_row,
        )
        logger.info(
            "BP reading created for user: %s (%s/%s)",
            reading.user_id, reading.systolic, reading.diastolic,
        )
        return stored[0] if stored else reading

    def add_symptom(self, symptom: SymptomRecord) -> SymptomRecord:
        row = {
            "user_id": symptom.user_id,
            "symptom_type": symptom.symptom_type.value,
            "recorded_at": symptom.recorded_at.isoformat(),
        }
        stored = self._execute(
            "add_symptom",
            lambda: self.client.table(SYMPTOMS_TABLE).insert(row),
            _symptom_from_row,
        )
        logger.info(
            "Symptom recorded for user: %s (%s)",
            symptom.user_id, symptom.symptom_type.value,
        )
        return stored[0] if stored else symptom

    def save_profile(self, profile: RiskProfile) -> RiskProfile:
        row = {
            "user_id": profile.user_id,
            "age_range": profile.age_range.value,
            "known_conditions": sorted(c.value for c in profile.known_conditions),
            "pregnancy_weeks": profile.pregnancy_weeks,
            "first_pregnancy": profile.first_pregnancy,
        }
        stored = self._execute(
            "save_profile",
            lambda: self.client.table(PROFILES_TABLE).upsert(row, on_conflict="user_id"),
            _profile_from_row,
        )
        logger.info("Profile saved for user: %s", profile.user_id)
        return stored[0] if stored else profile

    # -- read side ---------------------------------------------------------

    def latest_reading(self, user_id: str) -> Reading | None:
        readings = self._execute(
            "latest_reading",
            lambda: (
                self.client.table(READINGS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("recorded_at", desc=True)
                .limit(1)
            ),
            _reading_from_row,
        )
        return readings[0] if readings else None

    def readings_since(self, user_id: str, cutoff: datetime) -> list[Reading]:
        return self._execute(
            "readings_since",
            lambda: (
                self.client.table(READINGS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .gte("recorded_at", cutoff.isoformat())
                .order("recorded_at", desc=True)
            ),
            _reading_from_row,
        )

    def symptoms_since(self, user_id: str, cutoff: datetime) -> list[SymptomRecord]:
        return self._execute(
            "symptoms_since",
            lambda: (
                self.client.table(SYMPTOMS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .gte("recorded_at", cutoff.isoformat())
                .order("recorded_at", desc=True)
            ),
            _symptom_from_row,
        )

    def profile(self, user_id: str) -> RiskProfile:
        profiles = self._execute(
            "profile",
            lambda: (
                self.client.table(PROFILES_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .limit(1)
            ),
            _profile_from_row,
        )
        if not profiles:
            raise ProfileNotFoundError(user_id)
        return profiles[0]

    def list_readings(self, user_id: str, limit: int = 50) -> list[Reading]:
        return self._execute(
            "list_readings",
            lambda: (
                self.client.table(READINGS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("recorded_at", desc=True)
                .limit(limit)
            ),
            _reading_from_row,
        )

    def list_symptoms(self, user_id: str, limit: int = 100) -> list[SymptomRecord]:
        return self._execute(
            "list_symptoms",
            lambda: (
                self.client.table(SYMPTOMS_TABLE)
                .select("*")
                .eq("user_id", user_id)
                .order("recorded_at", desc=True)
                .limit(limit)
            ),
            _symptom_from_row,
        )

    def _execute(
        self,
        operation: str,
        build_query: Callable[[], Any],
        from_row: Callable[[dict[str, Any]], T],
    ) -> list[T]:
        try:
            result = build_query().execute()
        except Exception as exc:
            logger.error("Supabase %s failed: %s", operation, exc)
            raise DataAccessError(str(exc), operation=operation) from exc

        try:
            return [from_row(row) for row in result.data or []]
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Supabase %s returned a malformed row: %r", operation, exc)
            raise DataAccessError(
                f"Malformed {operation} row: {exc!r}", operation=operation
            ) from exc


# ---------------------------------------------------------------------------
# Notification persistence
# ---------------------------------------------------------------------------

class SupabaseNotificationDispatcher:
    """
    Append each notification event to the `notifications` table.

    Insert errors are logged and reported as False; they must never
    propagate back into the assessment run.
    """

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def dispatch(self, event: NotificationEvent) -> bool:
        try:
            result = self.client.table(NOTIFICATIONS_TABLE).insert(event.to_dict()).execute()
        except Exception as exc:
            logger.error(
                "Failed to persist %s notification for user=%s: %s",
                event.kind.value, event.user_id, exc,
            )
            return False

        if not result.data:
            logger.warning(
                "notifications insert returned no data for user=%s  kind=%s",
                event.user_id, event.kind.value,
            )
            return False

        logger.info(
            "Notification saved: kind=%s  user=%s  id=%s",
            event.kind.value, event.user_id, result.data[0].get("id"),
        )
        return True
