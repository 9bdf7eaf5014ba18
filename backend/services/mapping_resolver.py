"""Mapping resolver - turns a changed record into per-connection payloads."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from config import settings
from integrations.record_source import read_field
from models import FieldMapping, SyncConfiguration
from models.field_mapping import EVENT_NAME_FIELD, IDENTITY_FIELDS
from models.sync_configuration import STATUS_ACTIVE
from services.connection_registry import PAYLOAD_EVENT, PAYLOAD_PROFILE
from services.value_converter import convert_value

logger = logging.getLogger(__name__)


@dataclass
class ResolvedDispatch:
    """One payload bound for one connection."""

    connection_id: str | None
    payload: dict[str, Any]
    sync_configuration_id: str | None = None


def default_event_name(entity_type: str) -> str:
    """Event name used by historical sync when no event-name mapping is set."""
    return "sf_" + (entity_type or "").lower()


def find_identity_mapping(mappings: list[FieldMapping]) -> FieldMapping | None:
    return next((m for m in mappings if m.is_identity), None)


def find_event_name_mapping(mappings: list[FieldMapping]) -> FieldMapping | None:
    return next((m for m in mappings if m.is_event_name), None)


def is_data_mapping(mapping: FieldMapping) -> bool:
    """True for ordinary field mappings (not mandatory, not identity, not event name)."""
    if mapping.is_mandatory:
        return False
    return (
        mapping.destination_field not in IDENTITY_FIELDS
        and mapping.destination_field != EVENT_NAME_FIELD
    )


def build_payload_data(mappings: list[FieldMapping], record: Any) -> dict[str, Any]:
    """Collect converted values for every ordinary mapping.

    Mappings whose source value is None are left out entirely.
    """
    data: dict[str, Any] = {}
    for mapping in mappings:
        if not is_data_mapping(mapping):
            continue
        raw = read_field(record, mapping.source_field)
        if raw is None:
            continue
        data[mapping.destination_field] = convert_value(raw, mapping.data_type)
    return data


def build_payload(
    configuration: SyncConfiguration,
    mappings: list[FieldMapping],
    record: Any,
    entity_type: str,
    use_default_event_name: bool = False,
) -> Optional[dict[str, Any]]:
    """Assemble the outbound payload for one configuration and record.

    Args:
        configuration: The sync configuration being applied.
        mappings: Its field mappings.
        record: Source record (mapping or attribute object).
        entity_type: Source entity type name, used for the default event name.
        use_default_event_name: When True (historical sync), an event target
            without an event-name value gets ``"sf_<entity>"``. When False
            (per-record path) such a configuration is skipped.

    Returns:
        The payload dict, or None when the configuration does not apply to
        this record (no identity mapping, blank identity, missing event name).
    """
    identity_mapping = find_identity_mapping(mappings)
    if identity_mapping is None:
        logger.debug("Configuration %s has no identity mapping", configuration.id)
        return None

    identity_value = read_field(record, identity_mapping.source_field)
    identity = "" if identity_value is None else str(identity_value).strip()
    if not identity:
        logger.debug(
            "Configuration %s: blank identity field %s",
            configuration.id, identity_mapping.source_field,
        )
        return None

    event_name = None
    if configuration.is_event_target:
        # The mapping's source_field is the literal event name, not a field reference
        event_mapping = find_event_name_mapping(mappings)
        if event_mapping is not None and event_mapping.source_field and event_mapping.source_field.strip():
            event_name = event_mapping.source_field.strip()
        elif use_default_event_name:
            event_name = default_event_name(entity_type)
        else:
            logger.debug(
                "Configuration %s: event target without event name, skipping",
                configuration.id,
            )
            return None

    data = build_payload_data(mappings, record)

    payload: dict[str, Any] = {"identity": identity}
    if event_name is not None:
        payload["type"] = PAYLOAD_EVENT
        payload["evtName"] = event_name
        payload["evtData"] = data
    else:
        payload["type"] = PAYLOAD_PROFILE
        payload["profileData"] = data
    payload["$source"] = settings.CET_SOURCE_MARKER
    return payload


class MappingResolver:
    """Resolves which connections a changed record goes to, and with what payload."""

    def __init__(self, db: Session):
        self._db = db

    def get_active_configurations(self, entity_type: str) -> list[SyncConfiguration]:
        return (
            self._db.query(SyncConfiguration)
            .filter(
                SyncConfiguration.source_entity == entity_type,
                SyncConfiguration.status == STATUS_ACTIVE,
            )
            .all()
        )

    def get_mappings(self, sync_configuration_id: str) -> list[FieldMapping]:
        return (
            self._db.query(FieldMapping)
            .filter(FieldMapping.sync_configuration_id == sync_configuration_id)
            .all()
        )

    def resolve_connections(self, record: Any, entity_type: str) -> list[ResolvedDispatch]:
        """Build one payload per active configuration that applies to the record.

        Configurations are independent: a configuration that is missing
        pieces, or that raises while being processed, is skipped and the
        rest are still resolved.

        Args:
            record: The changed source record.
            entity_type: Its entity type name (e.g., "Lead").

        Returns:
            Zero or more (connection, payload) pairs, in no particular order.
        """
        if not entity_type:
            return []

        try:
            configurations = self.get_active_configurations(entity_type)
        except Exception:
            logger.error(
                "Failed to load sync configurations for %s", entity_type, exc_info=True
            )
            return []

        if not configurations:
            logger.debug("No active sync configurations for %s", entity_type)
            return []

        resolved: list[ResolvedDispatch] = []
        for configuration in configurations:
            try:
                mappings = self.get_mappings(configuration.id)
                if not mappings:
                    logger.debug("Configuration %s has no field mappings", configuration.id)
                    continue

                payload = build_payload(configuration, mappings, record, entity_type)
                if payload is None:
                    continue

                resolved.append(
                    ResolvedDispatch(
                        connection_id=configuration.connection_id,
                        payload=payload,
                        sync_configuration_id=configuration.id,
                    )
                )
            except Exception:
                logger.error(
                    "Unexpected error resolving configuration %s for %s",
                    configuration.id, entity_type, exc_info=True,
                )

        logger.debug(
            "%s record resolved to %d of %d configurations",
            entity_type, len(resolved), len(configurations),
        )
        return resolved
