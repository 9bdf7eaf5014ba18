"""SyncConfiguration model - routes one source entity to one connection."""

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utcnow

STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"

TARGET_PROFILE = "profile"
TARGET_EVENT = "event"


class SyncConfiguration(Base):
    """Describes how records of one source entity are sent to one connection.

    Many configurations may share a source_entity; each active one fans a
    changed record out to its own connection and target shape.
    """

    __tablename__ = "sync_configurations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    sync_type = Column(String, nullable=True)
    source_entity = Column(String, index=True, nullable=False)  # e.g., "Lead", "Contact"
    target_entity = Column(String, nullable=False)  # "profile" | "event"
    status = Column(String, nullable=False, default=STATUS_ACTIVE)  # "Active" | "Inactive"
    connection_id = Column(String(36), ForeignKey("connections.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
    )

    # Relationships
    connection = relationship("Connection", back_populates="sync_configurations")
    field_mappings = relationship(
        "FieldMapping",
        back_populates="sync_configuration",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @property
    def is_event_target(self) -> bool:
        return (self.target_entity or "").lower() == TARGET_EVENT
