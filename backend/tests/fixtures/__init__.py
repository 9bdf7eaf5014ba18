"""Test fixtures and sample data."""
import pytest
from sqlalchemy.orm import Session

from models import Connection, FieldMapping, SyncConfiguration
from models.field_mapping import EVENT_NAME_FIELD, IDENTITY_FIELD


def add_mapping(
    db: Session,
    configuration: SyncConfiguration,
    destination_field: str,
    source_field: str | None,
    data_type: str = "Text",
    is_mandatory: bool = False,
) -> FieldMapping:
    """Add one field mapping to a configuration.

    This is a helper function (not a fixture) for tests that need to build
    up custom mapping sets.
    """
    mapping = FieldMapping(
        sync_configuration_id=configuration.id,
        destination_field=destination_field,
        source_field=source_field,
        data_type=data_type,
        is_mandatory=is_mandatory,
    )
    db.add(mapping)
    db.commit()
    return mapping


def create_configuration(
    db: Session,
    connection: Connection | None,
    source_entity: str = "Lead",
    target_entity: str = "profile",
    status: str = "Active",
    name: str | None = None,
) -> SyncConfiguration:
    """Create a sync configuration without mappings (and optionally without a connection)."""
    configuration = SyncConfiguration(
        name=name or f"{source_entity} to {target_entity}",
        source_entity=source_entity,
        target_entity=target_entity,
        status=status,
        connection_id=connection.id if connection is not None else None,
    )
    db.add(configuration)
    db.commit()
    db.refresh(configuration)
    return configuration


@pytest.fixture
def connection(db: Session) -> Connection:
    """Create a complete test connection."""
    conn = Connection(
        name="Primary EU",
        region="EU",
        base_api_url="https://eu1.api.clevertap.com",
        account_id="ACC-1",
        passcode="PASS-1",
    )
    db.add(conn)
    db.commit()
    db.refresh(conn)
    return conn


@pytest.fixture
def incomplete_connection(db: Session) -> Connection:
    """Create a connection with a blank passcode."""
    conn = Connection(
        name="Half configured",
        region="US",
        base_api_url="https://us1.api.clevertap.com",
        account_id="ACC-2",
        passcode="",
    )
    db.add(conn)
    db.commit()
    db.refresh(conn)
    return conn


@pytest.fixture
def profile_configuration(db: Session, connection: Connection) -> SyncConfiguration:
    """Lead -> profile configuration with identity Email and two data mappings."""
    configuration = create_configuration(db, connection, "Lead", "profile")
    add_mapping(db, configuration, IDENTITY_FIELD, "Email", is_mandatory=True)
    add_mapping(db, configuration, "First Name", "FirstName")
    add_mapping(db, configuration, "Revenue", "AnnualRevenue", data_type="Number")
    return configuration


@pytest.fixture
def event_configuration(db: Session, connection: Connection) -> SyncConfiguration:
    """Lead -> event configuration named "lead_updated"."""
    configuration = create_configuration(db, connection, "Lead", "event")
    add_mapping(db, configuration, IDENTITY_FIELD, "Email", is_mandatory=True)
    add_mapping(db, configuration, EVENT_NAME_FIELD, "lead_updated", is_mandatory=True)
    add_mapping(db, configuration, "Created", "CreatedDate", data_type="Date")
    return configuration
