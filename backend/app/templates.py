# CRITICAL: This file contains clinically-reviewed wording.
# Do not edit any message text without sign-off from the clinical lead.
"""
app/templates.py
----------------
Fixed, pre-approved text for the care priority surface and for
notifications.

Design principles:
  - Predefined wording only, no generated or interpolated medical text
  - No diagnostic language, no predictions, no fear-based phrasing
  - Reading values may appear in notification payloads, never in this text
"""

from __future__ import annotations

from dataclasses import dataclass

from app.models import NotificationEvent, NotificationKind, PriorityTier


# ---------------------------------------------------------------------------
# Safe next-step messages (one per tier)
# ---------------------------------------------------------------------------

_NEXT_STEP_MESSAGES: dict[PriorityTier, str] = {
    PriorityTier.EMERGENCY: (
        "Seek immediate medical attention. Call emergency services or go to "
        "the nearest emergency room."
    ),
    PriorityTier.URGENT_REVIEW: (
        "Contact your healthcare provider within the next 24 hours to discuss "
        "your readings."
    ),
    PriorityTier.INCREASED_MONITORING: (
        "Continue monitoring your blood pressure regularly and discuss with "
        "your healthcare provider at your next appointment."
    ),
    PriorityTier.ROUTINE: (
        "Continue routine prenatal care and monitoring as recommended by your "
        "healthcare provider."
    ),
}


def message_for(tier: PriorityTier) -> str:
    """Return the fixed next-step message for a care priority tier."""
    return _NEXT_STEP_MESSAGES[PriorityTier(tier)]


# ---------------------------------------------------------------------------
# Notification templates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotificationTemplate:
    subject: str
    body: str
    call_to_action: str


CARE_PRIORITY_TEMPLATES: dict[PriorityTier, NotificationTemplate] = {
    PriorityTier.EMERGENCY: NotificationTemplate(
        subject="Important: Seek Immediate Medical Attention",
        body=(
            "Based on your recent readings, we recommend seeking immediate "
            "medical attention. This is a precautionary measure to ensure you "
            "and your baby receive appropriate care."
        ),
        call_to_action="Call emergency services or go to the nearest emergency room now.",
    ),
    PriorityTier.URGENT_REVIEW: NotificationTemplate(
        subject="Action Needed: Contact Your Healthcare Provider",
        body=(
            "Your recent readings suggest you should speak with your healthcare "
            "provider within the next 24 hours. They can review your "
            "information and provide personalized guidance."
        ),
        call_to_action="Contact your healthcare provider within 24 hours.",
    ),
    PriorityTier.INCREASED_MONITORING: NotificationTemplate(
        subject="Reminder: Continue Monitoring",
        body=(
            "Your readings indicate that more frequent monitoring would be "
            "beneficial. Please continue tracking your blood pressure and "
            "discuss your readings with your healthcare provider at your next "
            "appointment."
        ),
        call_to_action="Monitor regularly and discuss at your next appointment.",
    ),
    PriorityTier.ROUTINE: NotificationTemplate(
        subject="Keep Up the Good Work",
        body=(
            "Your readings look good. Continue with your routine prenatal care "
            "and monitoring as recommended by your healthcare provider."
        ),
        call_to_action="Continue routine care as planned.",
    ),
}

BP_ALERT_TEMPLATES: dict[str, NotificationTemplate] = {
    "SEVERE_HYPERTENSION": NotificationTemplate(
        subject="Critical: High Blood Pressure Reading",
        body=(
            "Your blood pressure reading is significantly elevated. Please "
            "seek immediate medical attention."
        ),
        call_to_action="Seek immediate medical care.",
    ),
    "ELEVATED_BP": NotificationTemplate(
        subject="Notice: Elevated Blood Pressure",
        body=(
            "Your blood pressure reading is elevated. Please monitor closely "
            "and contact your healthcare provider if it remains elevated."
        ),
        call_to_action="Monitor and contact provider if readings stay elevated.",
    ),
}

SYMPTOM_ALERT_TEMPLATES: dict[str, NotificationTemplate] = {
    "DANGEROUS_COMBINATION": NotificationTemplate(
        subject="Important: Warning Symptoms Reported",
        body=(
            "You have reported symptoms that may require medical attention. "
            "Please contact your healthcare provider or seek immediate care if "
            "symptoms worsen."
        ),
        call_to_action="Contact your healthcare provider or seek immediate care.",
    ),
    "SINGLE_WARNING_SYMPTOM": NotificationTemplate(
        subject="Notice: Warning Symptom Reported",
        body=(
            "You have reported a symptom that should be discussed with your "
            "healthcare provider. Please mention this at your next appointment "
            "or contact them if you have concerns."
        ),
        call_to_action="Discuss with your healthcare provider.",
    ),
}

# Template key carried on each event kind (CARE_PRIORITY keys by tier instead)
TEMPLATE_KEYS: dict[NotificationKind, str] = {
    NotificationKind.SEVERE_BP: "SEVERE_HYPERTENSION",
    NotificationKind.ELEVATED_BP: "ELEVATED_BP",
    NotificationKind.DANGEROUS_SYMPTOMS: "DANGEROUS_COMBINATION",
    NotificationKind.WARNING_SYMPTOM: "SINGLE_WARNING_SYMPTOM",
}


def template_for(event: NotificationEvent) -> NotificationTemplate:
    """
    Resolve the fixed template referenced by a notification event.

    Raises:
        KeyError: if the event references a template that does not exist.
    """
    if event.kind is NotificationKind.CARE_PRIORITY:
        return CARE_PRIORITY_TEMPLATES[PriorityTier(event.template)]
    if event.kind in (NotificationKind.SEVERE_BP, NotificationKind.ELEVATED_BP):
        return BP_ALERT_TEMPLATES[event.template]
    return SYMPTOM_ALERT_TEMPLATES[event.template]
