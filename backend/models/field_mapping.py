"""FieldMapping model - one source field to destination field rule."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utcnow

# Destination names with special meaning. Older configurations store the
# identity under the reserved key; both identify the customer.
IDENTITY_FIELD = "customer_id"
RESERVED_IDENTITY_FIELD = "sfmc_customer_id"
IDENTITY_FIELDS = frozenset({IDENTITY_FIELD, RESERVED_IDENTITY_FIELD})
EVENT_NAME_FIELD = "evtName"

DATA_TYPES = ("Text", "Number", "Date", "Boolean")


class FieldMapping(Base):
    """Maps a source record field to a destination field with a data type.

    For the event-name mapping, source_field holds the literal event name
    rather than a record field reference.
    """

    __tablename__ = "field_mappings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    sync_configuration_id = Column(
        String(36), ForeignKey("sync_configurations.id"), index=True, nullable=False
    )
    destination_field = Column(String, nullable=False)
    source_field = Column(String, nullable=True)
    data_type = Column(String, nullable=False, default="Text")  # "Text" | "Number" | "Date" | "Boolean"
    is_mandatory = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    sync_configuration = relationship("SyncConfiguration", back_populates="field_mappings")

    @property
    def is_identity(self) -> bool:
        return bool(self.is_mandatory) and self.destination_field in IDENTITY_FIELDS

    @property
    def is_event_name(self) -> bool:
        return bool(self.is_mandatory) and self.destination_field == EVENT_NAME_FIELD
