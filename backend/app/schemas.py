"""
app/schemas.py
--------------
Request / response bodies for the HTTP surface.

Ingestion limits live here: readings outside 60–260 / 40–160 mmHg and
pregnancy weeks outside 0–42 are rejected with HTTP 422 before anything
reaches storage.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from app.models import (
    AgeRange,
    KnownCondition,
    PriorityTier,
    Reading,
    RiskProfile,
    SymptomRecord,
    SymptomType,
    utcnow,
)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Blood pressure
# ---------------------------------------------------------------------------

class BloodPressureCreate(BaseModel):
    systolic: int = Field(ge=60, le=260, description="Systolic (60-260 mmHg)")
    diastolic: int = Field(ge=40, le=160, description="Diastolic (40-160 mmHg)")
    recorded_at: datetime | None = Field(None, description="Defaults to now")

    @field_validator("recorded_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def to_reading(self, user_id: str) -> Reading:
        return Reading(
            user_id=user_id,
            systolic=self.systolic,
            diastolic=self.diastolic,
            recorded_at=self.recorded_at or utcnow(),
        )


class BloodPressureOut(BaseModel):
    user_id: str
    systolic: int
    diastolic: int
    recorded_at: datetime

    @classmethod
    def from_reading(cls, reading: Reading) -> "BloodPressureOut":
        return cls(
            user_id=reading.user_id,
            systolic=reading.systolic,
            diastolic=reading.diastolic,
            recorded_at=reading.recorded_at,
        )


# ---------------------------------------------------------------------------
# Symptoms
# ---------------------------------------------------------------------------

class SymptomCreate(BaseModel):
    symptom_type: SymptomType
    recorded_at: datetime | None = Field(None, description="Defaults to now")

    @field_validator("recorded_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def to_record(self, user_id: str) -> SymptomRecord:
        return SymptomRecord(
            user_id=user_id,
            symptom_type=self.symptom_type,
            recorded_at=self.recorded_at or utcnow(),
        )


class SymptomOut(BaseModel):
    user_id: str
    symptom_type: SymptomType
    recorded_at: datetime

    @classmethod
    def from_record(cls, record: SymptomRecord) -> "SymptomOut":
        return cls(
            user_id=record.user_id,
            symptom_type=record.symptom_type,
            recorded_at=record.recorded_at,
        )


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class ProfileUpsert(BaseModel):
    age_range: AgeRange
    pregnancy_weeks: int = Field(ge=0, le=42)
    first_pregnancy: bool
    known_conditions: list[KnownCondition] = Field(default_factory=list)

    def to_profile(self, user_id: str) -> RiskProfile:
        return RiskProfile(
            user_id=user_id,
            age_range=self.age_range,
            known_conditions=frozenset(self.known_conditions),
            pregnancy_weeks=self.pregnancy_weeks,
            first_pregnancy=self.first_pregnancy,
        )


class ProfileOut(ProfileUpsert):
    user_id: str

    @classmethod
    def from_profile(cls, profile: RiskProfile) -> "ProfileOut":
        return cls(
            user_id=profile.user_id,
            age_range=profile.age_range,
            pregnancy_weeks=profile.pregnancy_weeks,
            first_pregnancy=profile.first_pregnancy,
            known_conditions=sorted(profile.known_conditions, key=lambda c: c.value),
        )


# ---------------------------------------------------------------------------
# Care priority
# ---------------------------------------------------------------------------

class CarePriorityOut(BaseModel):
    priority: PriorityTier
    message: str
    reasons: list[str]
    timestamp: datetime
