from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cashdrawer.core.config import settings
from cashdrawer.core.logging import get_logger
from cashdrawer.db import get_db
from cashdrawer.models.shift import Shift, ShiftStatus

router = APIRouter(tags=["health"])
log = get_logger("health")


@router.get("/health", operation_id="health_v1")
def health(db: Session = Depends(get_db)):
    body = {
        "status": "ok",
        "version": settings.app_version,
        "time": datetime.now(timezone.utc).isoformat(),
    }
    try:
        body["open_shifts"] = db.execute(
            select(func.count()).select_from(Shift).where(Shift.status == ShiftStatus.OPEN.value)
        ).scalar()
    except SQLAlchemyError as exc:
        log.error("health check could not reach the store: %r", exc)
        body["status"] = "degraded"
        body["open_shifts"] = None
    return body
