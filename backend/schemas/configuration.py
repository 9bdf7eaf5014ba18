"""Pydantic schemas for connections, sync configurations and field mappings."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionCreate(BaseModel):
    """Request body for creating or updating a connection (matched by name)."""

    name: str
    region: str = "EU"
    account_id: str
    passcode: str
    base_api_url: Optional[str] = None


class ConnectionResponse(BaseModel):
    """Connection as returned by the API. The passcode is never returned."""

    id: str
    name: str
    region: Optional[str] = None
    base_api_url: Optional[str] = None
    account_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConnectionValidateRequest(BaseModel):
    region: str = "EU"
    account_id: str
    passcode: str
    base_api_url: Optional[str] = None


class CredentialCheckResponse(BaseModel):
    """Outcome of a credential check; invalid credentials are not an HTTP error."""

    is_valid: bool
    message: str

    model_config = ConfigDict(from_attributes=True)


class SyncConfigurationCreate(BaseModel):
    """Request body for creating or updating a sync configuration."""

    id: Optional[str] = None
    name: str
    source_entity: str
    target_entity: str  # "profile" | "event"
    connection_id: str
    status: str = "Active"
    sync_type: Optional[str] = None


class SyncConfigurationResponse(BaseModel):
    id: str
    name: str
    sync_type: Optional[str] = None
    source_entity: str
    target_entity: str
    status: str
    connection_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FieldMappingInput(BaseModel):
    """One ordinary mapping row."""

    destination_field: str
    source_field: str
    data_type: str = "Text"


class FieldMappingsUpdate(BaseModel):
    """Request body replacing every mapping of a configuration."""

    identity_source_field: str
    event_name: Optional[str] = None
    mappings: list[FieldMappingInput] = Field(default_factory=list)


class FieldMappingResponse(BaseModel):
    id: str
    sync_configuration_id: str
    destination_field: str
    source_field: Optional[str] = None
    data_type: str
    is_mandatory: bool

    model_config = ConfigDict(from_attributes=True)
