"""
app/routers/symptoms.py
-----------------------
Symptom reports: one enumerated symptom per record, no severity, no
free text.

Recording a symptom queues a background health assessment, exactly like a
new blood pressure reading.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query

from app.accessors import HealthDataStore
from app.dependencies import get_store, get_trigger, get_user_id
from app.exceptions import DataAccessError
from app.models import utcnow
from app.schemas import SymptomCreate, SymptomOut
from app.trigger import AssessmentTrigger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/symptoms", tags=["Symptoms"])


@router.post("", status_code=201, response_model=SymptomOut)
def create_symptom(
    body: SymptomCreate,
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
    trigger: AssessmentTrigger = Depends(get_trigger),
) -> SymptomOut:
    try:
        record = store.add_symptom(body.to_record(user_id))
    except DataAccessError as exc:
        logger.error("Could not store symptom for user %s: %s", user_id, exc)
        raise HTTPException(status_code=503, detail=exc.to_dict())

    trigger.trigger_assessment(user_id)
    return SymptomOut.from_record(record)


@router.get("", response_model=list[SymptomOut])
def list_symptoms(
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
) -> list[SymptomOut]:
    try:
        records = store.list_symptoms(user_id, limit=limit)
    except DataAccessError as exc:
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return [SymptomOut.from_record(r) for r in records]


@router.get("/recent", response_model=list[SymptomOut])
def recent_symptoms(
    hours: int = Query(48, ge=1, le=24 * 14),
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
) -> list[SymptomOut]:
    """Symptoms recorded in the last `hours` hours, newest first."""
    try:
        records = store.symptoms_since(user_id, utcnow() - timedelta(hours=hours))
    except DataAccessError as exc:
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return [SymptomOut.from_record(r) for r in records]
