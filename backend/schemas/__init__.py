"""Pydantic schemas for API request/response validation."""

from schemas.configuration import (
    ConnectionCreate,
    ConnectionResponse,
    ConnectionValidateRequest,
    CredentialCheckResponse,
    FieldMappingInput,
    FieldMappingResponse,
    FieldMappingsUpdate,
    SyncConfigurationCreate,
    SyncConfigurationResponse,
)
from schemas.event_log import EventLogEntryResponse
from schemas.historical_sync import HistoricalSyncRequest, HistoricalSyncResponse
from schemas.record import DispatchOutcomeResponse, RecordChangeRequest, RecordChangeResponse

__all__ = [
    "ConnectionCreate",
    "ConnectionResponse",
    "ConnectionValidateRequest",
    "CredentialCheckResponse",
    "DispatchOutcomeResponse",
    "EventLogEntryResponse",
    "FieldMappingInput",
    "FieldMappingResponse",
    "FieldMappingsUpdate",
    "HistoricalSyncRequest",
    "HistoricalSyncResponse",
    "RecordChangeRequest",
    "RecordChangeResponse",
    "SyncConfigurationCreate",
    "SyncConfigurationResponse",
]
