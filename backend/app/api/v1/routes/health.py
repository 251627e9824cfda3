from fastapi import APIRouter, Request

from app.api.v1.schemas.health import Health

router = APIRouter(tags=["health"])


@router.get("/health", response_model=Health)
def health(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return Health(status="ok", maintenance="disabled")
    return Health(status="ok", maintenance=scheduler.orchestrator.state)
