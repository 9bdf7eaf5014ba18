"""EventLogEntry model - append-only audit row per dispatch attempt."""

from sqlalchemy import Column, DateTime, String, Text

from database import Base
from models.utils import generate_uuid, utcnow

STATUS_SUCCESS = "Success"
STATUS_FAILED = "Failed"


class EventLogEntry(Base):
    """The outcome of one attempt to deliver a record to a connection.

    The originating record is referenced through the relation column for its
    entity type (lead_id, contact_id, ...). Records of other entity types
    carry their id as a text prefix of response_text instead.
    Rows are inserted once and never updated.
    """

    __tablename__ = "event_log_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    status = Column(String, nullable=False)  # "Success" | "Failed"
    response_text = Column(Text, nullable=True)
    sync_configuration_id = Column(String(36), nullable=True, index=True)
    connection_id = Column(String(36), nullable=True)
    lead_id = Column(String, nullable=True, index=True)
    contact_id = Column(String, nullable=True, index=True)
    account_id = Column(String, nullable=True, index=True)
    opportunity_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)
