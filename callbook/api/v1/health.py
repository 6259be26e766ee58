"""Health check endpoint with database and scheduler status."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from callbook.core.config import settings
from callbook.core.database import check_db_connected, get_db
from callbook.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(request: Request, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service liveness, database reachability and reminder scheduler state.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    scheduler = getattr(request.app.state, "scheduler", None)
    scheduler_status = "running" if scheduler is not None and scheduler.running else "stopped"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        scheduler=scheduler_status,
    )
