"""Pydantic schemas for historical sync runs."""

from typing import Optional

from pydantic import BaseModel, Field


class HistoricalSyncRequest(BaseModel):
    chunk_size: Optional[int] = Field(default=None, ge=1, le=2000)
    emit_summary: Optional[bool] = None


class HistoricalSyncResponse(BaseModel):
    """Totals of a completed historical sync run."""

    configuration_id: str
    entity_type: str
    processed: int
    succeeded: int
    failed: int
    skipped: int
    log_entries_written: int
    summary_logged: bool
    error: Optional[str] = None

    model_config = {"from_attributes": True}
