"""Pydantic schemas for inbound record change notifications."""

from typing import Any, Optional

from pydantic import BaseModel


class RecordChangeRequest(BaseModel):
    """A changed record, as sent by the CRM trigger layer."""

    record: dict[str, Any]
    previous_values: Optional[dict[str, Any]] = None


class DispatchOutcomeResponse(BaseModel):
    connection_id: Optional[str] = None  # None when the configuration has no connection
    status: str
    status_code: int
    response_body: str
    skipped: bool = False
    skip_reason: Optional[str] = None


class RecordChangeResponse(BaseModel):
    """Outcomes of dispatching one changed record."""

    entity_type: str
    record_id: Optional[str] = None
    outcomes: list[DispatchOutcomeResponse]
