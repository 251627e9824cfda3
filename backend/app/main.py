from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.routes.health import router as health_router
from app.api.v1.routes.runs import router as runs_router
from app.catalog.templates import default_templates
from app.core.db import SessionLocal, init_db, settings
from app.core.logging import configure_logging_if_needed
from app.maintenance.orchestrator import MaintenanceOrchestrator
from app.maintenance.scheduler import MaintenanceScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging_if_needed(settings.log_level)
    init_db()

    app.state.scheduler = None
    if settings.maintenance_enabled:
        orchestrator = MaintenanceOrchestrator(
            SessionLocal,
            settings.window,
            default_templates(settings.catalog),
        )
        app.state.scheduler = MaintenanceScheduler(orchestrator, settings.maintenance_interval_cron)
        app.state.scheduler.start()
    try:
        yield
    finally:
        if app.state.scheduler is not None:
            app.state.scheduler.stop(timeout=30)


app = FastAPI(title="Run Catalog API", lifespan=lifespan)

# Dev-friendly CORS policy: allow all origins/methods/headers so the frontend can call the API directly.
# Tighten this for production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/v1")
app.include_router(runs_router)
