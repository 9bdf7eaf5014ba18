"""Event log API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models import EventLogEntry
from schemas import EventLogEntryResponse

router = APIRouter(prefix="/api/event-logs", tags=["event-logs"])


@router.get("", response_model=list[EventLogEntryResponse])
def list_event_logs(
    status: Optional[str] = None,
    sync_configuration_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """List logged dispatch attempts, newest first."""
    query = db.query(EventLogEntry)
    if status:
        query = query.filter(EventLogEntry.status == status)
    if sync_configuration_id:
        query = query.filter(EventLogEntry.sync_configuration_id == sync_configuration_id)
    return query.order_by(EventLogEntry.created_at.desc()).limit(limit).all()
