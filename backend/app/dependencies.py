"""
app/dependencies.py
-------------------
FastAPI dependencies that hand the routers their collaborators.

The collaborators are built once in app.main.create_app() and kept on
`app.state`, so tests can swap in in-memory fakes.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request

from app.accessors import HealthDataStore
from app.care_priority import CarePriorityService
from app.trigger import AssessmentTrigger


def get_user_id(
    x_user_id: str | None = Header(default=None, alias="x-user-id"),
) -> str:
    """Identity of the caller. Authentication happens upstream of this service."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing x-user-id header")
    return x_user_id.strip()


def get_store(request: Request) -> HealthDataStore:
    return request.app.state.store


def get_care_priority(request: Request) -> CarePriorityService:
    return request.app.state.care_priority


def get_trigger(request: Request) -> AssessmentTrigger:
    return request.app.state.trigger
