"""Historical sync API endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import get_cet_client, get_or_404
from database import get_db
from integrations.cet_client import CetClient
from integrations.record_source import RecordSource, SalesforceRecordSource
from models import SyncConfiguration
from schemas import HistoricalSyncRequest, HistoricalSyncResponse
from services.event_logger import EventLogger
from services.historical_sync_service import HistoricalSyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/historical-sync", tags=["historical-sync"])


def get_record_source() -> RecordSource:
    """CRM record source built from settings (overridden in tests)."""
    return SalesforceRecordSource()


def get_event_logger() -> EventLogger:
    return EventLogger()


@router.post("/{configuration_id}", response_model=HistoricalSyncResponse)
def run_historical_sync(
    configuration_id: str,
    body: HistoricalSyncRequest | None = None,
    db: Session = Depends(get_db),
    record_source: RecordSource = Depends(get_record_source),
    event_logger: EventLogger = Depends(get_event_logger),
    cet_client: CetClient = Depends(get_cet_client),
):
    """Replay every record of the configuration's entity through it.

    Runs synchronously and returns the totals. Per-record failures are
    counted and logged, not raised.

    Raises:
        HTTPException:
            - 404 Not Found: Unknown configuration
    """
    body = body or HistoricalSyncRequest()
    get_or_404(db, SyncConfiguration, configuration_id)

    engine = HistoricalSyncEngine(
        db,
        configuration_id,
        record_source,
        cet_client=cet_client,
        event_logger=event_logger,
        emit_summary=body.emit_summary,
    )
    result = engine.run(chunk_size=body.chunk_size)
    return HistoricalSyncResponse.model_validate(result)
