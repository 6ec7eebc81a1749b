"""
app/care_priority.py
--------------------
Deterministic care priority engine for hypertensive disorders of pregnancy.

Rules follow ACOG / Preeclampsia Foundation / NHS thresholds for blood
pressure in pregnancy. There is no scoring and no probability: the engine
only decides how soon the user should seek care.

Tiers (evaluated in priority order):
  EMERGENCY             → severe-range BP or a dangerous symptom pattern
  URGENT_REVIEW         → confirmed elevation, high-risk + raised BP, warning symptoms
  INCREASED_MONITORING  → borderline BP, risk factors, any symptom at all
  ROUTINE               → nothing above applies

The first tier with at least one matching rule wins. Inside that tier every
matching rule contributes its reason, in table order. Lower tiers are never
consulted once a higher one has matched.

Safety: whenever the assessment cannot complete normally (missing profile,
a failed data source, an unexpected error) the result is at least
INCREASED_MONITORING, never ROUTINE.

Usage:
    from app.care_priority import classify

    result = classify(latest, recent_readings, recent_symptoms, profile)
    # → AssessmentResult(tier=PriorityTier.URGENT_REVIEW, reasons=(...), ...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Sequence

from app.accessors import HealthDataAccessor
from app.exceptions import AssessmentUnavailableError, ProfileNotFoundError
from app.models import (
    AgeRange,
    AssessmentResult,
    KnownCondition,
    PriorityTier,
    Reading,
    RiskProfile,
    SymptomRecord,
    SymptomType,
    utcnow,
)
from app.templates import message_for

logger = logging.getLogger(__name__)

NO_CONCERNS_REASON = "No concerning factors identified"
INCOMPLETE_REASON = (
    "Unable to complete assessment - please contact your healthcare provider"
)

# Thresholds in mmHg
SEVERE_SYSTOLIC, SEVERE_DIASTOLIC = 160, 110
ELEVATED_SYSTOLIC, ELEVATED_DIASTOLIC = 140, 90
BORDERLINE_SYSTOLIC, BORDERLINE_DIASTOLIC = 130, 85


def is_severe(reading: Reading) -> bool:
    return reading.systolic >= SEVERE_SYSTOLIC or reading.diastolic >= SEVERE_DIASTOLIC


def is_elevated(reading: Reading) -> bool:
    return (
        reading.systolic >= ELEVATED_SYSTOLIC
        or reading.diastolic >= ELEVATED_DIASTOLIC
    )


def _is_raised(reading: Reading) -> bool:
    return (
        reading.systolic >= BORDERLINE_SYSTOLIC
        or reading.diastolic >= BORDERLINE_DIASTOLIC
    )


def _is_borderline(reading: Reading) -> bool:
    return (
        BORDERLINE_SYSTOLIC <= reading.systolic < ELEVATED_SYSTOLIC
        or BORDERLINE_DIASTOLIC <= reading.diastolic < ELEVATED_DIASTOLIC
    )


# ---------------------------------------------------------------------------
# Internal data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _Evidence:
    """Everything a rule may look at, derived once per evaluation."""
    latest: Reading | None
    recent_readings: tuple[Reading, ...]
    symptom_types: frozenset[SymptomType]
    symptom_count: int
    profile: RiskProfile | None

    @property
    def conditions(self) -> frozenset[KnownCondition]:
        return self.profile.known_conditions if self.profile else frozenset()

    @property
    def high_risk(self) -> bool:
        return bool(self.profile and self.profile.has_high_risk_condition)

    def has_all(self, *symptoms: SymptomType) -> bool:
        return all(s in self.symptom_types for s in symptoms)

    def has_any(self, *symptoms: SymptomType) -> bool:
        return any(s in self.symptom_types for s in symptoms)


@dataclass(frozen=True)
class _PriorityRule:
    """A single escalation rule."""
    tier: PriorityTier
    reason: str                               # shown to the user, non-diagnostic
    applies: Callable[[_Evidence], bool]


# ---------------------------------------------------------------------------
# Rule table
# Tiers are scanned highest first; rule order inside a tier is reason order.
# ---------------------------------------------------------------------------

_RULES: list[_PriorityRule] = [
    # ======================================================================
    # EMERGENCY: seek immediate medical attention
    # ======================================================================
    _PriorityRule(
        tier=PriorityTier.EMERGENCY,
        reason="Blood pressure reading indicates severe hypertension",
        applies=lambda e: e.latest is not None and is_severe(e.latest),
    ),
    _PriorityRule(
        tier=PriorityTier.EMERGENCY,
        reason="Combination of severe headache and vision changes",
        applies=lambda e: e.has_all(SymptomType.HEADACHE, SymptomType.BLURRED_VISION),
    ),
    _PriorityRule(
        tier=PriorityTier.EMERGENCY,
        reason="Upper abdominal pain with nausea/vomiting",
        applies=lambda e: e.has_all(
            SymptomType.UPPER_ABDOMINAL_PAIN, SymptomType.NAUSEA_VOMITING
        ),
    ),
    _PriorityRule(
        tier=PriorityTier.EMERGENCY,
        reason="Difficulty breathing reported",
        applies=lambda e: e.has_any(SymptomType.SHORTNESS_OF_BREATH),
    ),

    # ======================================================================
    # URGENT_REVIEW: contact a provider within 24 hours
    # ======================================================================
    _PriorityRule(
        tier=PriorityTier.URGENT_REVIEW,
        reason="Multiple elevated blood pressure readings",
        applies=lambda e: sum(1 for r in e.recent_readings if is_elevated(r)) >= 2,
    ),
    _PriorityRule(
        tier=PriorityTier.URGENT_REVIEW,
        reason="High-risk condition with elevated blood pressure",
        applies=lambda e: e.high_risk and e.latest is not None and _is_raised(e.latest),
    ),
    _PriorityRule(
        tier=PriorityTier.URGENT_REVIEW,
        reason="Warning symptoms present",
        applies=lambda e: e.has_any(
            SymptomType.HEADACHE,
            SymptomType.BLURRED_VISION,
            SymptomType.UPPER_ABDOMINAL_PAIN,
        ),
    ),
    _PriorityRule(
        tier=PriorityTier.URGENT_REVIEW,
        reason="Reduced urine output reported",
        applies=lambda e: e.has_any(SymptomType.REDUCED_URINE),
    ),

    # ======================================================================
    # INCREASED_MONITORING: monitor more often, discuss at next visit
    # ======================================================================
    _PriorityRule(
        tier=PriorityTier.INCREASED_MONITORING,
        reason="Blood pressure in borderline range",
        applies=lambda e: e.latest is not None and _is_borderline(e.latest),
    ),
    _PriorityRule(
        tier=PriorityTier.INCREASED_MONITORING,
        reason="High-risk pregnancy condition present",
        applies=lambda e: e.high_risk,
    ),
    _PriorityRule(
        tier=PriorityTier.INCREASED_MONITORING,
        reason="Advanced maternal age",
        applies=lambda e: e.profile is not None
        and e.profile.age_range is AgeRange.AGE_35_PLUS,
    ),
    _PriorityRule(
        tier=PriorityTier.INCREASED_MONITORING,
        reason="Multiple pregnancy",
        applies=lambda e: KnownCondition.MULTIPLE_PREGNANCY in e.conditions,
    ),
    _PriorityRule(
        tier=PriorityTier.INCREASED_MONITORING,
        reason="Symptoms reported",
        applies=lambda e: e.symptom_count > 0,
    ),
]

_TIER_ORDER: tuple[PriorityTier, ...] = (
    PriorityTier.EMERGENCY,
    PriorityTier.URGENT_REVIEW,
    PriorityTier.INCREASED_MONITORING,
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def classify(
    latest: Reading | None,
    recent_readings: Sequence[Reading],
    recent_symptoms: Sequence[SymptomRecord],
    profile: RiskProfile | None,
    *,
    complete: bool = True,
    now: datetime | None = None,
    log: logging.Logger | None = None,
) -> AssessmentResult:
    """
    Classify a user's care priority from a snapshot of their data.

    Pure apart from logging: no I/O, no raised exceptions. Missing readings
    or symptoms count as "no evidence of elevation", not as evidence of
    safety.

    Args:
        latest:           Most recent reading, or None if the user has none.
        recent_readings:  Readings inside the readings window (default 48 h).
        recent_symptoms:  Symptom records inside the symptoms window (default 72 h).
        profile:          The user's risk profile, or None if it is missing.
        complete:         False when some data could not be loaded; the
                          result is then floored at INCREASED_MONITORING.
        now:              Evaluation timestamp (defaults to current UTC time).
        log:              Logger to report evaluation faults to.

    Returns:
        AssessmentResult with the winning tier and its reasons in rule order.
    """
    now = now or utcnow()
    log = log or logger

    try:
        evidence = _Evidence(
            latest=latest,
            recent_readings=tuple(recent_readings),
            symptom_types=frozenset(
                SymptomType(s.symptom_type) for s in recent_symptoms
            ),
            symptom_count=len(recent_symptoms),
            profile=profile,
        )
        tier, reasons = _evaluate(evidence)
    except Exception:
        log.exception("Care priority evaluation failed - using conservative default")
        return conservative_result(now)

    if not complete or profile is None:
        tier, reasons = _floor_incomplete(tier, reasons)

    return AssessmentResult(tier=tier, reasons=reasons, evaluated_at=now)


def conservative_result(now: datetime | None = None) -> AssessmentResult:
    """The result used whenever an assessment cannot complete normally."""
    return AssessmentResult(
        tier=PriorityTier.INCREASED_MONITORING,
        reasons=(INCOMPLETE_REASON,),
        evaluated_at=now or utcnow(),
    )


def _evaluate(evidence: _Evidence) -> tuple[PriorityTier, tuple[str, ...]]:
    for tier in _TIER_ORDER:
        reasons = tuple(
            rule.reason
            for rule in _RULES
            if rule.tier is tier and rule.applies(evidence)
        )
        if reasons:
            return tier, reasons
    return PriorityTier.ROUTINE, (NO_CONCERNS_REASON,)


def _floor_incomplete(
    tier: PriorityTier, reasons: tuple[str, ...]
) -> tuple[PriorityTier, tuple[str, ...]]:
    """Keep any escalation that was found, but never report ROUTINE."""
    floored = PriorityTier.highest(tier, PriorityTier.INCREASED_MONITORING)
    if floored is not tier:
        return floored, (INCOMPLETE_REASON,)
    return tier, reasons + (INCOMPLETE_REASON,)


# ---------------------------------------------------------------------------
# Service (read path)
# ---------------------------------------------------------------------------

@dataclass
class Snapshot:
    """One read of a user's data, taken at `loaded_at`."""
    loaded_at: datetime
    latest: Reading | None = None
    recent_readings: tuple[Reading, ...] = ()
    recent_symptoms: tuple[SymptomRecord, ...] = ()
    profile: RiskProfile | None = None
    failures: tuple[str, ...] = ()

    def loaded(self, name: str) -> bool:
        return name not in self.failures


class CarePriorityService:
    """
    Loads a user's data through a HealthDataAccessor and classifies it.

    Stateless apart from its collaborators, so it is safe to share across threads
    and concurrent requests.
    """

    def __init__(
        self,
        accessor: HealthDataAccessor,
        readings_window_hours: int = 48,
        symptoms_window_hours: int = 72,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._accessor = accessor
        self._readings_window = timedelta(hours=readings_window_hours)
        self._symptoms_window = timedelta(hours=symptoms_window_hours)
        self._log = logger or logging.getLogger(__name__)
        self._clock = clock

    @property
    def symptoms_window(self) -> timedelta:
        return self._symptoms_window

    def calculate(self, user_id: str) -> AssessmentResult:
        """
        Calculate the current care priority for a user.

        A missing profile or a failed data source never produces ROUTINE.

        Raises:
            AssessmentUnavailableError: every data source failed.
        """
        result, _ = self.assess(user_id)
        return result

    def assess(self, user_id: str) -> tuple[AssessmentResult, Snapshot]:
        """
        Like calculate(), but also returns the snapshot the result was
        classified from, so callers can derive more from the same read.

        Raises:
            AssessmentUnavailableError: every data source failed.
        """
        now = self._clock()
        snapshot = self._load_snapshot(user_id, now)

        result = classify(
            snapshot.latest,
            snapshot.recent_readings,
            snapshot.recent_symptoms,
            snapshot.profile,
            complete=not snapshot.failures,
            now=now,
            log=self._log,
        )

        if result.tier is PriorityTier.EMERGENCY:
            self._log.warning(
                "EMERGENCY priority for user %s: %s",
                user_id, "; ".join(result.reasons),
            )
        else:
            self._log.info(
                "Care priority for user %s: %s (%d reasons)",
                user_id, result.tier.value, len(result.reasons),
            )
        return result, snapshot

    def current_priority(self, user_id: str) -> dict[str, Any]:
        """
        Read-only view used by GET /care-priority. Raises no notifications.

        Returns:
            dict: { "priority", "message", "reasons", "timestamp" }
        """
        result = self.calculate(user_id)
        return {
            "priority": result.tier.value,
            "message": message_for(result.tier),
            "reasons": list(result.reasons),
            "timestamp": result.evaluated_at,
        }

    def _load_snapshot(self, user_id: str, now: datetime) -> Snapshot:
        """Fetch every input independently so one failure doesn't hide the rest."""
        snapshot = Snapshot(loaded_at=now)
        failures: list[str] = []
        outages: list[str] = []

        fetches: list[tuple[str, Callable[[], Any]]] = [
            ("profile", lambda: self._accessor.profile(user_id)),
            ("latest_reading", lambda: self._accessor.latest_reading(user_id)),
            ("recent_readings", lambda: tuple(
                self._accessor.readings_since(user_id, now - self._readings_window)
            )),
            ("recent_symptoms", lambda: tuple(
                self._accessor.symptoms_since(user_id, now - self._symptoms_window)
            )),
        ]

        for name, fetch in fetches:
            try:
                value = fetch()
            except ProfileNotFoundError:
                self._log.warning(
                    "No risk profile for user %s - assessment marked incomplete",
                    user_id,
                )
                failures.append(name)
                continue
            except Exception as exc:
                self._log.error(
                    "Failed to load %s for user %s: %s", name, user_id, exc
                )
                failures.append(name)
                outages.append(name)
                continue
            if name == "profile":
                snapshot.profile = value
            elif name == "latest_reading":
                snapshot.latest = value
            elif name == "recent_readings":
                snapshot.recent_readings = value
            else:
                snapshot.recent_symptoms = value

        # A missing profile is "no data", not an outage
        if len(outages) == len(fetches):
            raise AssessmentUnavailableError(user_id, {"failed": outages})

        # Readings come back newest first, so the window still holds the latest
        if "latest_reading" in failures and snapshot.recent_readings:
            snapshot.latest = snapshot.recent_readings[0]

        snapshot.failures = tuple(failures)
        return snapshot
