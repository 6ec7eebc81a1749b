"""
app/routers/care_priority.py
----------------------------
Read-only care priority endpoint.

    GET /care-priority
    → { "priority": "ROUTINE" | "INCREASED_MONITORING" | "URGENT_REVIEW" | "EMERGENCY",
        "message":  "<fixed next-step message>",
        "reasons":  ["Factor 1", "Factor 2"],
        "timestamp": "2024-01-01T00:00:00Z" }

Recalculated on every call and never raises notifications. A degraded
(incomplete) assessment still returns 200 with at least
INCREASED_MONITORING; only a total data outage returns 503.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.care_priority import CarePriorityService
from app.dependencies import get_care_priority, get_user_id
from app.exceptions import AssessmentUnavailableError
from app.schemas import CarePriorityOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/care-priority", tags=["Care Priority"])


@router.get("", response_model=CarePriorityOut)
def get_care_priority(
    user_id: str = Depends(get_user_id),
    service: CarePriorityService = Depends(get_care_priority),
) -> CarePriorityOut:
    try:
        view = service.current_priority(user_id)
    except AssessmentUnavailableError as exc:
        logger.error("Care priority unavailable for user %s: %s", user_id, exc.details)
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return CarePriorityOut(**view)
