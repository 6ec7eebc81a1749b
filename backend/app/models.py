"""
app/models.py
-------------
Domain types shared by the classifier, the assessment pipeline and the
storage adapters.

Readings, symptom records and profiles are owned by the write path; the
care priority code only ever reads them. Assessment results and
notification events are built fresh on every run and never stored by the
core.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class SymptomType(str, enum.Enum):
    HEADACHE = "HEADACHE"
    BLURRED_VISION = "BLURRED_VISION"
    UPPER_ABDOMINAL_PAIN = "UPPER_ABDOMINAL_PAIN"
    NAUSEA_VOMITING = "NAUSEA_VOMITING"
    SHORTNESS_OF_BREATH = "SHORTNESS_OF_BREATH"
    REDUCED_URINE = "REDUCED_URINE"
    SWELLING = "SWELLING"


class KnownCondition(str, enum.Enum):
    CHRONIC_HYPERTENSION = "CHRONIC_HYPERTENSION"
    PREECLAMPSIA_HISTORY = "PREECLAMPSIA_HISTORY"
    KIDNEY_DISEASE = "KIDNEY_DISEASE"
    MULTIPLE_PREGNANCY = "MULTIPLE_PREGNANCY"
    GESTATIONAL_DIABETES = "GESTATIONAL_DIABETES"
    NONE_KNOWN = "NONE_KNOWN"


HIGH_RISK_CONDITIONS: frozenset[KnownCondition] = frozenset({
    KnownCondition.CHRONIC_HYPERTENSION,
    KnownCondition.PREECLAMPSIA_HISTORY,
    KnownCondition.KIDNEY_DISEASE,
})


class AgeRange(str, enum.Enum):
    UNDER_20 = "UNDER_20"
    AGE_20_34 = "AGE_20_34"
    AGE_35_PLUS = "AGE_35_PLUS"


class PriorityTier(str, enum.Enum):
    """
    Care escalation levels, lowest to highest.

    These are NOT diagnoses or risk scores. Each tier maps to a fixed
    next-step message (see app.templates.message_for).

      ROUTINE               → next scheduled appointment
      INCREASED_MONITORING  → monitor more often, mention at next visit
      URGENT_REVIEW         → contact a provider within 24 h
      EMERGENCY             → seek immediate medical attention
    """

    ROUTINE = "ROUTINE"
    INCREASED_MONITORING = "INCREASED_MONITORING"
    URGENT_REVIEW = "URGENT_REVIEW"
    EMERGENCY = "EMERGENCY"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    # str already defines the rich comparisons, so all four are overridden
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PriorityTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, PriorityTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, PriorityTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, PriorityTier):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def highest(cls, *tiers: "PriorityTier") -> "PriorityTier":
        """Highest-wins merge; ROUTINE when called with nothing."""
        return max(tiers, key=lambda t: t.rank, default=cls.ROUTINE)


_TIER_RANK = {
    PriorityTier.ROUTINE: 0,
    PriorityTier.INCREASED_MONITORING: 1,
    PriorityTier.URGENT_REVIEW: 2,
    PriorityTier.EMERGENCY: 3,
}


class NotificationKind(str, enum.Enum):
    CARE_PRIORITY = "CARE_PRIORITY"
    SEVERE_BP = "SEVERE_BP"
    ELEVATED_BP = "ELEVATED_BP"
    DANGEROUS_SYMPTOMS = "DANGEROUS_SYMPTOMS"
    WARNING_SYMPTOM = "WARNING_SYMPTOM"


# ---------------------------------------------------------------------------
# Records (read-only to the core)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Reading:
    """A single self-reported blood pressure reading, in mmHg."""
    user_id: str
    systolic: int
    diastolic: int
    recorded_at: datetime


@dataclass(frozen=True)
class SymptomRecord:
    """One symptom per record. No severity, no free text."""
    user_id: str
    symptom_type: SymptomType
    recorded_at: datetime


@dataclass(frozen=True)
class RiskProfile:
    user_id: str
    age_range: AgeRange
    known_conditions: frozenset[KnownCondition] = frozenset()
    pregnancy_weeks: int = 0
    first_pregnancy: bool = False

    @property
    def has_high_risk_condition(self) -> bool:
        return bool(self.known_conditions & HIGH_RISK_CONDITIONS)


# ---------------------------------------------------------------------------
# Per-run outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AssessmentResult:
    tier: PriorityTier
    reasons: tuple[str, ...]
    evaluated_at: datetime


@dataclass(frozen=True)
class NotificationEvent:
    """
    A notification the assessment pipeline wants raised.

    `template` names a fixed entry in app.templates; `payload` only ever
    carries raw values for non-diagnostic slots (the reading pair, symptom
    names, the tier).
    """
    user_id: str
    kind: NotificationKind
    template: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "kind": self.kind.value,
            "template": self.template,
            "payload": dict(self.payload),
            "created_at": self.created_at.isoformat(),
        }
