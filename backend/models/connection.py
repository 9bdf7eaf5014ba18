"""Connection model - one destination tenant on the engagement platform."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utcnow


class Connection(Base):
    """Credentials for one destination tenant.

    A connection is usable only when base_api_url, account_id and passcode
    are all non-blank. The dispatch core reads connections but never writes them.
    """

    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, unique=True, index=True, nullable=False)
    region = Column(String, nullable=True)  # "EU" | "IN" | "SG" | "US" | "ID" | "UAE"
    base_api_url = Column(String, nullable=True)
    account_id = Column(String, nullable=True)
    passcode = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
    )

    # Relationships
    sync_configurations = relationship("SyncConfiguration", back_populates="connection")
