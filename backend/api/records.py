"""Record change API endpoints - the inbound side of the per-record pipeline."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from integrations.record_source import read_field
from schemas import DispatchOutcomeResponse, RecordChangeRequest, RecordChangeResponse
from services.record_change_service import RecordChangeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["records"])


def get_record_change_service() -> RecordChangeService:
    """Get RecordChangeService instance (overridden in tests)."""
    return RecordChangeService()


@router.post("/{entity_type}/changes", response_model=RecordChangeResponse)
def record_changed(
    entity_type: str,
    body: RecordChangeRequest,
    db: Session = Depends(get_db),
    service: RecordChangeService = Depends(get_record_change_service),
):
    """Notify that a CRM record was inserted or updated.

    The record is dispatched to every active configuration for the entity
    type. Always returns 200; per-connection results are in ``outcomes``.
    Log entries are written in the background.
    """
    outcomes = service.on_record_changed(
        db, body.record, entity_type=entity_type, previous_values=body.previous_values
    )
    record_id = read_field(body.record, "Id")
    return RecordChangeResponse(
        entity_type=entity_type,
        record_id=str(record_id) if record_id is not None else None,
        outcomes=[
            DispatchOutcomeResponse(
                connection_id=o.connection_id,
                status=o.status,
                status_code=o.status_code,
                response_body=o.response_body,
                skipped=o.skipped,
                skip_reason=o.skip_reason,
            )
            for o in outcomes
        ],
    )
