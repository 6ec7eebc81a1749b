"""
app/assessment.py
-----------------
Post-write health assessment: re-classify the user and raise notifications.

Runs after every new blood pressure reading or symptom record, off the
request path (see app.trigger). Each run reads one fresh snapshot and
derives the tier and every alert from it, so the events of a run never
contradict each other and overlapping runs for the same user are harmless.

Events raised per run (in this order):
  1. at most one BP alert       SEVERE_BP (≥160/110) beats ELEVATED_BP (≥140/90)
  2. at most one symptom alert  DANGEROUS_SYMPTOMS beats WARNING_SYMPTOM
  3. CARE_PRIORITY              whenever the tier is not ROUTINE

Best effort: assess_and_notify() never raises.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from app.accessors import HealthDataAccessor
from app.care_priority import (
    CarePriorityService,
    Snapshot,
    conservative_result,
    is_elevated,
    is_severe,
)
from app.exceptions import AssessmentUnavailableError
from app.models import (
    AssessmentResult,
    NotificationEvent,
    NotificationKind,
    PriorityTier,
    Reading,
    SymptomRecord,
    SymptomType,
    utcnow,
)
from app.notifications import NotificationDispatcher
from app.templates import TEMPLATE_KEYS

DANGEROUS_SYMPTOMS: tuple[SymptomType, ...] = (
    SymptomType.HEADACHE,
    SymptomType.BLURRED_VISION,
    SymptomType.UPPER_ABDOMINAL_PAIN,
    SymptomType.SHORTNESS_OF_BREATH,
)


class HealthAssessmentService:
    def __init__(
        self,
        care_priority: CarePriorityService,
        accessor: HealthDataAccessor,
        dispatcher: NotificationDispatcher,
        alert_symptoms_window_hours: int = 24,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._care_priority = care_priority
        self._accessor = accessor
        self._dispatcher = dispatcher
        self._alert_window = timedelta(hours=alert_symptoms_window_hours)
        self._log = logger or logging.getLogger(__name__)
        self._clock = clock

    def assess_and_notify(self, user_id: str) -> list[NotificationEvent]:
        """
        Assess a user after a new data point and dispatch notifications.

        Returns:
            list[NotificationEvent]: the events handed to the dispatcher
            (empty if the run failed before raising any).
        """
        try:
            self._log.info("Starting health assessment for user: %s", user_id)

            assessment, snapshot = self._assess(user_id)
            events = self._alert_events(user_id, snapshot)
            if assessment.tier is not PriorityTier.ROUTINE:
                events.append(self._care_priority_event(user_id, assessment))

            for event in events:
                self._dispatch(event)

            self._log.info(
                "Health assessment completed for user: %s  tier=%s  events=%d",
                user_id, assessment.tier.value, len(events),
            )
            return events
        except Exception:
            self._log.exception("Error during health assessment for user %s", user_id)
            return []

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _assess(self, user_id: str) -> tuple[AssessmentResult, Snapshot | None]:
        try:
            return self._care_priority.assess(user_id)
        except AssessmentUnavailableError as exc:
            # No data at all still fails toward escalation
            self._log.error(
                "Assessment unavailable for user %s (%s) - using conservative default",
                user_id, exc.details.get("failed"),
            )
            return conservative_result(self._clock()), None

    def _alert_events(
        self, user_id: str, snapshot: Snapshot | None
    ) -> list[NotificationEvent]:
        """BP and symptom alerts, read from the snapshot the tier came from."""
        if snapshot is None:
            return []

        events: list[NotificationEvent] = []

        bp_event = self._bp_event(user_id, snapshot.latest)
        if bp_event is not None:
            events.append(bp_event)

        symptoms = self._alert_symptoms(user_id, snapshot)
        if symptoms is None:
            return events

        symptom_event = self._symptom_event(user_id, symptoms)
        if symptom_event is not None:
            events.append(symptom_event)

        return events

    def _alert_symptoms(
        self, user_id: str, snapshot: Snapshot
    ) -> list[SymptomRecord] | None:
        """Symptoms inside the alert window, cut off from the snapshot's time."""
        cutoff = snapshot.loaded_at - self._alert_window
        covered = self._alert_window <= self._care_priority.symptoms_window
        if covered and snapshot.loaded("recent_symptoms"):
            return [s for s in snapshot.recent_symptoms if s.recorded_at >= cutoff]

        # Alert window reaches past what the snapshot holds
        try:
            return list(self._accessor.symptoms_since(user_id, cutoff))
        except Exception as exc:
            self._log.error(
                "Could not load symptoms for user %s - skipping symptom alert: %s",
                user_id, exc,
            )
            return None

    def _bp_event(self, user_id: str, latest: Reading | None) -> NotificationEvent | None:
        if latest is None:
            return None

        if is_severe(latest):
            kind = NotificationKind.SEVERE_BP
        elif is_elevated(latest):
            kind = NotificationKind.ELEVATED_BP
        else:
            return None

        return NotificationEvent(
            user_id=user_id,
            kind=kind,
            template=TEMPLATE_KEYS[kind],
            payload={"systolic": latest.systolic, "diastolic": latest.diastolic},
        )

    def _symptom_event(
        self, user_id: str, symptoms: list[SymptomRecord]
    ) -> NotificationEvent | None:
        if not symptoms:
            return None

        # Distinct types, newest first
        seen: list[SymptomType] = []
        for record in symptoms:
            symptom_type = SymptomType(record.symptom_type)
            if symptom_type not in seen:
                seen.append(symptom_type)

        dangerous = [s for s in seen if s in DANGEROUS_SYMPTOMS]
        if dangerous:
            kind = NotificationKind.DANGEROUS_SYMPTOMS
            payload = {"symptoms": [s.value for s in dangerous]}
        else:
            kind = NotificationKind.WARNING_SYMPTOM
            payload = {"symptom": seen[0].value}

        return NotificationEvent(
            user_id=user_id,
            kind=kind,
            template=TEMPLATE_KEYS[kind],
            payload=payload,
        )

    def _care_priority_event(
        self, user_id: str, assessment: AssessmentResult
    ) -> NotificationEvent:
        return NotificationEvent(
            user_id=user_id,
            kind=NotificationKind.CARE_PRIORITY,
            template=assessment.tier.value,
            payload={"priority": assessment.tier.value},
        )

    def _dispatch(self, event: NotificationEvent) -> None:
        try:
            delivered = self._dispatcher.dispatch(event)
        except Exception as exc:
            self._log.error(
                "Dispatch of %s failed for user %s: %s",
                event.kind.value, event.user_id, exc,
                exc_info=True,
            )
            return
        if not delivered:
            self._log.warning(
                "Dispatcher reported failure for %s / user %s",
                event.kind.value, event.user_id,
            )
