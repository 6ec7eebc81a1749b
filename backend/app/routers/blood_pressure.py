"""
app/routers/blood_pressure.py
-----------------------------
Blood pressure readings: manual entry and retrieval.

Readings are stored as-is; no normal/abnormal label is ever attached.
Creating a reading queues a background health assessment for the user
once the record is committed; the response does not wait for it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.accessors import HealthDataStore
from app.dependencies import get_store, get_trigger, get_user_id
from app.exceptions import DataAccessError
from app.schemas import BloodPressureCreate, BloodPressureOut
from app.trigger import AssessmentTrigger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/blood-pressure", tags=["Blood Pressure"])


@router.post("", status_code=201, response_model=BloodPressureOut)
def create_reading(
    body: BloodPressureCreate,
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
    trigger: AssessmentTrigger = Depends(get_trigger),
) -> BloodPressureOut:
    """Record a reading, then queue an assessment (not awaited)."""
    try:
        reading = store.add_reading(body.to_reading(user_id))
    except DataAccessError as exc:
        logger.error("Could not store BP reading for user %s: %s", user_id, exc)
        raise HTTPException(status_code=503, detail=exc.to_dict())

    trigger.trigger_assessment(user_id)
    return BloodPressureOut.from_reading(reading)


@router.get("", response_model=list[BloodPressureOut])
def list_readings(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
) -> list[BloodPressureOut]:
    """Readings for the caller, newest first."""
    try:
        readings = store.list_readings(user_id, limit=limit)
    except DataAccessError as exc:
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return [BloodPressureOut.from_reading(r) for r in readings]


@router.get("/latest", response_model=BloodPressureOut | None)
def latest_reading(
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
) -> BloodPressureOut | None:
    try:
        reading = store.latest_reading(user_id)
    except DataAccessError as exc:
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return BloodPressureOut.from_reading(reading) if reading else None
