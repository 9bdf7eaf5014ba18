"""Connection and sync configuration API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_cet_client, get_or_404, unprocessable
from database import get_db
from integrations.cet_client import CetClient
from integrations.exceptions import MappingValidationError
from models import SyncConfiguration
from schemas import (
    ConnectionCreate,
    ConnectionResponse,
    ConnectionValidateRequest,
    CredentialCheckResponse,
    FieldMappingResponse,
    FieldMappingsUpdate,
    SyncConfigurationCreate,
    SyncConfigurationResponse,
)
from services.configuration_service import ConfigurationService, MappingInput

router = APIRouter(tags=["configuration"])


@router.get("/api/connections", response_model=list[ConnectionResponse])
def list_connections(db: Session = Depends(get_db)):
    return ConfigurationService.list_connections(db)


@router.post("/api/connections/validate", response_model=CredentialCheckResponse)
def validate_connection(
    body: ConnectionValidateRequest, cet_client: CetClient = Depends(get_cet_client)
):
    """Check tenant credentials without saving them.

    Rejected credentials come back as ``is_valid: false`` with a 200.
    """
    try:
        return ConfigurationService.validate_credentials(
            body.region,
            body.account_id,
            body.passcode,
            base_api_url=body.base_api_url,
            client=cet_client,
        )
    except MappingValidationError as e:
        raise unprocessable(e) from e


@router.post("/api/connections", response_model=ConnectionResponse)
def save_connection(
    body: ConnectionCreate,
    db: Session = Depends(get_db),
    cet_client: CetClient = Depends(get_cet_client),
):
    """Create or update a connection by name.

    The credentials are checked against the tenant first and nothing is
    saved when the check fails.

    Raises:
        HTTPException:
            - 422 Unprocessable Entity: Invalid fields or rejected credentials
    """
    try:
        check = ConfigurationService.validate_credentials(
            body.region,
            body.account_id,
            body.passcode,
            base_api_url=body.base_api_url,
            client=cet_client,
        )
        if not check.is_valid:
            raise HTTPException(status_code=422, detail=check.message)
        return ConfigurationService.save_connection(
            db,
            name=body.name,
            region=body.region,
            account_id=body.account_id,
            passcode=body.passcode,
            base_api_url=body.base_api_url,
        )
    except MappingValidationError as e:
        raise unprocessable(e) from e


@router.delete("/api/connections/{connection_id}", status_code=204)
def delete_connection(connection_id: str, db: Session = Depends(get_db)):
    """Delete a connection; its sync configurations are detached, not deleted."""
    try:
        ConfigurationService.delete_connection(db, connection_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/api/sync-configurations", response_model=list[SyncConfigurationResponse])
def list_sync_configurations(
    source_entity: Optional[str] = None, db: Session = Depends(get_db)
):
    return ConfigurationService.list_sync_configurations(db, source_entity=source_entity)


@router.post("/api/sync-configurations", response_model=SyncConfigurationResponse)
def save_sync_configuration(body: SyncConfigurationCreate, db: Session = Depends(get_db)):
    """Create a sync configuration, or update it when ``id`` is given."""
    try:
        return ConfigurationService.save_sync_configuration(
            db,
            name=body.name,
            source_entity=body.source_entity,
            target_entity=body.target_entity,
            connection_id=body.connection_id,
            status=body.status,
            sync_type=body.sync_type,
            configuration_id=body.id,
        )
    except MappingValidationError as e:
        raise unprocessable(e) from e
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get(
    "/api/sync-configurations/{configuration_id}/mappings",
    response_model=list[FieldMappingResponse],
)
def get_field_mappings(configuration_id: str, db: Session = Depends(get_db)):
    get_or_404(db, SyncConfiguration, configuration_id)
    return ConfigurationService.get_field_mappings(db, configuration_id)


@router.put(
    "/api/sync-configurations/{configuration_id}/mappings",
    response_model=list[FieldMappingResponse],
)
def save_field_mappings(
    configuration_id: str, body: FieldMappingsUpdate, db: Session = Depends(get_db)
):
    """Replace every field mapping of a configuration."""
    get_or_404(db, SyncConfiguration, configuration_id)
    try:
        return ConfigurationService.save_field_mappings(
            db,
            configuration_id,
            identity_source_field=body.identity_source_field,
            mappings=[
                MappingInput(
                    destination_field=m.destination_field,
                    source_field=m.source_field,
                    data_type=m.data_type,
                )
                for m in body.mappings
            ],
            event_name=body.event_name,
        )
    except MappingValidationError as e:
        raise unprocessable(e) from e
