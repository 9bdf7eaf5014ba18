"""Configuration service - saves connections, sync configurations and field mappings.

This is the write side of the configuration store that the dispatch core
reads. Validation here mirrors what the configuration screens enforce:
every configuration needs an identity mapping, event targets get a default
event name, and destination names must be unique per configuration.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from integrations.cet_client import CetClient
from integrations.exceptions import CetConnectionError, MappingValidationError
from models import Connection, FieldMapping, SyncConfiguration
from models.field_mapping import DATA_TYPES, EVENT_NAME_FIELD, IDENTITY_FIELD, IDENTITY_FIELDS
from models.sync_configuration import STATUS_ACTIVE, STATUS_INACTIVE, TARGET_EVENT, TARGET_PROFILE
from services.connection_registry import (
    PAYLOAD_PROFILE,
    REGION_HOST_PREFIXES,
    default_base_url,
    resolve_endpoint,
)
from services.mapping_resolver import default_event_name

logger = logging.getLogger(__name__)


@dataclass
class MappingInput:
    """One ordinary (non-mandatory) mapping row as entered by a user."""

    destination_field: str
    source_field: str
    data_type: str = "Text"


@dataclass
class CredentialCheck:
    """Outcome of testing a tenant login against the upload API."""

    is_valid: bool
    message: str


def _tenant_fields(region: str, account_id: str, passcode: str) -> tuple[str, str, str]:
    """Normalized region, account id and passcode, or MappingValidationError."""
    region = (region or "").strip().upper()
    if region not in REGION_HOST_PREFIXES:
        raise MappingValidationError(f"Unknown region: {region or '(blank)'}")
    account_id = (account_id or "").strip()
    passcode = (passcode or "").strip()
    if not account_id or not passcode:
        raise MappingValidationError("Account id and passcode are required")
    return region, account_id, passcode


class ConfigurationService:
    """Service for managing connections, sync configurations and mappings."""

    @staticmethod
    def list_connections(db: Session) -> list[Connection]:
        return db.query(Connection).order_by(Connection.name).all()

    @staticmethod
    def save_connection(
        db: Session,
        name: str,
        region: str,
        account_id: str,
        passcode: str,
        base_api_url: Optional[str] = None,
    ) -> Connection:
        """Create or update a connection by name.

        A blank base URL is derived from the region.

        Raises:
            MappingValidationError: If name, account id or passcode is blank,
                or the region is unknown.
        """
        name = (name or "").strip()
        if not name:
            raise MappingValidationError("Connection name is required")
        region, account_id, passcode = _tenant_fields(region, account_id, passcode)

        base_api_url = (base_api_url or "").strip() or default_base_url(region)

        connection = db.query(Connection).filter(Connection.name == name).first()
        if connection is None:
            connection = Connection(name=name)
            db.add(connection)
        connection.region = region
        connection.base_api_url = base_api_url
        connection.account_id = account_id
        connection.passcode = passcode

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise MappingValidationError(f"Connection '{name}' could not be saved") from e

        db.refresh(connection)
        logger.info("Saved connection %s (%s)", name, region)
        return connection

    @staticmethod
    def validate_credentials(
        region: str,
        account_id: str,
        passcode: str,
        base_api_url: Optional[str] = None,
        client: Optional[CetClient] = None,
    ) -> CredentialCheck:
        """Test a tenant login by uploading an empty batch.

        The platform answers an empty upload with HTTP 200 for a valid
        account id and passcode and rejects anything else, so nothing is
        written to the tenant.

        Raises:
            MappingValidationError: If the region is unknown or a credential
                is blank (nothing is sent in that case).
        """
        region, account_id, passcode = _tenant_fields(region, account_id, passcode)
        base_api_url = (base_api_url or "").strip() or default_base_url(region)
        url = resolve_endpoint(base_api_url, PAYLOAD_PROFILE)
        client = client or CetClient()

        try:
            response = client.upload(url, account_id, passcode, json.dumps({"d": []}))
        except CetConnectionError as e:
            logger.warning("Credential check against %s failed: %s", url, e)
            return CredentialCheck(False, f"Could not reach {url}: {e}")

        try:
            body = json.loads(response.text) if response.text else {}
        except ValueError:
            body = {}
        reported = body.get("status") if isinstance(body, dict) else None

        if response.status_code == 200 and reported != "fail":
            return CredentialCheck(True, "Credentials validated successfully")
        if response.status_code in (401, 403) or reported == "fail":
            detail = body.get("error") if isinstance(body, dict) else None
            return CredentialCheck(False, detail or "Invalid account id or passcode")
        return CredentialCheck(
            False, f"Validation failed: HTTP {response.status_code} {response.text[:200]}"
        )

    @staticmethod
    def delete_connection(db: Session, connection_id: str) -> int:
        """Delete a connection.

        Sync configurations that used it are kept but detached; records
        routed through them are then skipped for missing credentials.

        Returns:
            The number of sync configurations detached.

        Raises:
            ValueError: If the connection does not exist.
        """
        connection = db.query(Connection).filter(Connection.id == connection_id).first()
        if connection is None:
            raise ValueError(f"Connection {connection_id} not found")
        name = connection.name

        detached = (
            db.query(SyncConfiguration)
            .filter(SyncConfiguration.connection_id == connection.id)
            .update({SyncConfiguration.connection_id: None}, synchronize_session=False)
        )
        db.delete(connection)
        db.commit()

        logger.info(
            "Deleted connection %s (%s); detached %d sync configurations",
            name, connection_id, detached,
        )
        return detached

    @staticmethod
    def list_sync_configurations(
        db: Session, source_entity: Optional[str] = None
    ) -> list[SyncConfiguration]:
        query = db.query(SyncConfiguration)
        if source_entity:
            query = query.filter(SyncConfiguration.source_entity == source_entity)
        return query.order_by(SyncConfiguration.name).all()

    @staticmethod
    def save_sync_configuration(
        db: Session,
        name: str,
        source_entity: str,
        target_entity: str,
        connection_id: str,
        status: str = STATUS_ACTIVE,
        sync_type: Optional[str] = None,
        configuration_id: Optional[str] = None,
    ) -> SyncConfiguration:
        """Create a sync configuration, or update one when configuration_id is given.

        Raises:
            MappingValidationError: On a blank name or entity, an unknown
                target or status, or a connection that does not exist.
            ValueError: If configuration_id is given but not found.
        """
        name = (name or "").strip()
        source_entity = (source_entity or "").strip()
        target_entity = (target_entity or "").strip().lower()
        if not name or not source_entity:
            raise MappingValidationError("Name and source entity are required")
        if target_entity not in (TARGET_PROFILE, TARGET_EVENT):
            raise MappingValidationError(f"Unknown target entity: {target_entity or '(blank)'}")
        if status not in (STATUS_ACTIVE, STATUS_INACTIVE):
            raise MappingValidationError(f"Unknown status: {status}")

        connection = db.query(Connection).filter(Connection.id == connection_id).first()
        if connection is None:
            raise MappingValidationError(f"Connection {connection_id} not found")

        if configuration_id:
            configuration = (
                db.query(SyncConfiguration)
                .filter(SyncConfiguration.id == configuration_id)
                .first()
            )
            if configuration is None:
                raise ValueError(f"Sync configuration {configuration_id} not found")
        else:
            configuration = SyncConfiguration()
            db.add(configuration)

        configuration.name = name
        configuration.source_entity = source_entity
        configuration.target_entity = target_entity
        configuration.connection_id = connection.id
        configuration.status = status
        configuration.sync_type = sync_type
        db.commit()
        db.refresh(configuration)

        logger.info(
            "Saved sync configuration %s: %s -> %s (%s)",
            configuration.id, source_entity, target_entity, status,
        )
        return configuration

    @staticmethod
    def get_field_mappings(db: Session, configuration_id: str) -> list[FieldMapping]:
        return (
            db.query(FieldMapping)
            .filter(FieldMapping.sync_configuration_id == configuration_id)
            .order_by(FieldMapping.is_mandatory.desc(), FieldMapping.destination_field)
            .all()
        )

    @staticmethod
    def save_field_mappings(
        db: Session,
        configuration_id: str,
        identity_source_field: str,
        mappings: list[MappingInput],
        event_name: Optional[str] = None,
    ) -> list[FieldMapping]:
        """Replace every field mapping of a configuration.

        The identity mapping is stored as ``customer_id``. Event targets also
        get an event-name mapping; when no event name is given it defaults
        to ``sf_<entity>``, but an explicitly blank one is rejected. Rows with
        a blank source or destination are ignored.

        Raises:
            MappingValidationError: If the identity field is blank, a row has an
                unknown data type, a destination name is used twice or is a reserved
                name (case-insensitive), or an event target gets a blank event name.
            ValueError: If the configuration does not exist.
        """
        configuration = (
            db.query(SyncConfiguration)
            .filter(SyncConfiguration.id == configuration_id)
            .first()
        )
        if configuration is None:
            raise ValueError(f"Sync configuration {configuration_id} not found")

        identity_source_field = (identity_source_field or "").strip()
        if not identity_source_field:
            raise MappingValidationError("Identity field mapping is required")

        rows = [
            FieldMapping(
                destination_field=IDENTITY_FIELD,
                source_field=identity_source_field,
                data_type="Text",
                is_mandatory=True,
            )
        ]
        if configuration.is_event_target:
            if event_name is None:
                event_name = default_event_name(configuration.source_entity)
            elif not event_name.strip():
                raise MappingValidationError("Event name is required for event targets")
            rows.append(
                FieldMapping(
                    destination_field=EVENT_NAME_FIELD,
                    source_field=event_name.strip(),
                    data_type="Text",
                    is_mandatory=True,
                )
            )

        # Reserved names are never ordinary mappings, whatever the target
        reserved = {name.lower() for name in IDENTITY_FIELDS | {EVENT_NAME_FIELD}}
        seen: set[str] = set()
        for item in mappings:
            destination = (item.destination_field or "").strip()
            source = (item.source_field or "").strip()
            if not destination or not source:
                continue
            if item.data_type not in DATA_TYPES:
                raise MappingValidationError(f"Unknown data type: {item.data_type}")
            if destination.lower() in reserved:
                raise MappingValidationError(f"Reserved destination field: {destination}")
            if destination.lower() in seen:
                raise MappingValidationError(f"Duplicate destination field: {destination}")
            seen.add(destination.lower())
            rows.append(
                FieldMapping(
                    destination_field=destination,
                    source_field=source,
                    data_type=item.data_type,
                    is_mandatory=False,
                )
            )

        db.query(FieldMapping).filter(
            FieldMapping.sync_configuration_id == configuration.id
        ).delete(synchronize_session=False)
        for row in rows:
            row.sync_configuration_id = configuration.id
        db.add_all(rows)
        db.commit()
        db.expire(configuration, ["field_mappings"])

        logger.info(
            "Saved %d field mappings for configuration %s", len(rows), configuration.id
        )
        return ConfigurationService.get_field_mappings(db, configuration.id)
