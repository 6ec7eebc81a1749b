import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.accessors import HealthDataStore, InMemoryHealthStore
from app.assessment import HealthAssessmentService
from app.care_priority import CarePriorityService
from app.config import Settings, get_settings
from app.notifications import (
    CompositeNotificationDispatcher,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    WebhookNotificationDispatcher,
)
from app.routers import blood_pressure as blood_pressure_router
from app.routers import care_priority as care_priority_router
from app.routers import profile as profile_router
from app.routers import symptoms as symptoms_router
from app.trigger import AssessmentTrigger
from db.supabase_client import SupabaseHealthStore, SupabaseNotificationDispatcher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------
def build_store(settings: Settings) -> HealthDataStore:
    if settings.storage_backend == "supabase":
        return SupabaseHealthStore()
    logger.warning("Using in-memory storage - data is lost on restart")
    return InMemoryHealthStore()


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    dispatchers: list[NotificationDispatcher] = [LoggingNotificationDispatcher()]
    if settings.storage_backend == "supabase":
        dispatchers.append(SupabaseNotificationDispatcher())
    if settings.notification_webhook_url:
        dispatchers.append(
            WebhookNotificationDispatcher(
                settings.notification_webhook_url,
                timeout=settings.notification_timeout_seconds,
            )
        )
    return CompositeNotificationDispatcher(dispatchers)


def create_app(
    settings: Settings | None = None,
    store: HealthDataStore | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> FastAPI:
    """Build the API with its collaborators kept on `app.state`."""
    settings = settings or get_settings()
    store = store if store is not None else build_store(settings)
    dispatcher = dispatcher if dispatcher is not None else build_dispatcher(settings)

    care_priority = CarePriorityService(
        store,
        readings_window_hours=settings.readings_window_hours,
        symptoms_window_hours=settings.symptoms_window_hours,
    )
    assessor = HealthAssessmentService(
        care_priority,
        store,
        dispatcher,
        alert_symptoms_window_hours=settings.alert_symptoms_window_hours,
    )
    trigger = AssessmentTrigger(assessor, max_workers=settings.assessment_workers)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Let queued assessments finish so no notification is dropped
        trigger.shutdown(wait=True)
        close = getattr(dispatcher, "close", None)
        if close is not None:
            close()

    app = FastAPI(
        title="Care Priority API",
        description="Blood pressure and symptom tracking with deterministic care escalation",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.care_priority = care_priority
    app.state.assessor = assessor
    app.state.trigger = trigger

    # -----------------------------------------------------------------------
    # CORS
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict to your frontend domain in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(care_priority_router.router)
    app.include_router(blood_pressure_router.router)
    app.include_router(symptoms_router.router)
    app.include_router(profile_router.router)

    # -----------------------------------------------------------------------
    # Health check
    # -----------------------------------------------------------------------
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Returns a simple health status."""
        return {"status": "ok"}

    return app


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app(settings)
