"""Pydantic schemas for the event log."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class EventLogEntryResponse(BaseModel):
    """Response schema for one logged dispatch attempt."""

    id: str
    status: str
    response_text: Optional[str] = None
    sync_configuration_id: Optional[str] = None
    connection_id: Optional[str] = None
    lead_id: Optional[str] = None
    contact_id: Optional[str] = None
    account_id: Optional[str] = None
    opportunity_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
