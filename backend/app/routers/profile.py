"""
app/routers/profile.py
----------------------
The caller's risk profile (age range, pregnancy details, known conditions).
One profile per user; PUT creates or replaces it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.accessors import HealthDataStore
from app.dependencies import get_store, get_user_id
from app.exceptions import DataAccessError, ProfileNotFoundError
from app.schemas import ProfileOut, ProfileUpsert

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.put("", response_model=ProfileOut)
def upsert_profile(
    body: ProfileUpsert,
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
) -> ProfileOut:
    try:
        profile = store.save_profile(body.to_profile(user_id))
    except DataAccessError as exc:
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return ProfileOut.from_profile(profile)


@router.get("", response_model=ProfileOut)
def get_profile(
    user_id: str = Depends(get_user_id),
    store: HealthDataStore = Depends(get_store),
) -> ProfileOut:
    try:
        profile = store.profile(user_id)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict())
    except DataAccessError as exc:
        raise HTTPException(status_code=503, detail=exc.to_dict())
    return ProfileOut.from_profile(profile)
