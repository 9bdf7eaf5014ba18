"""SQLAlchemy ORM models."""

from .connection import Connection
from .event_log import EventLogEntry
from .field_mapping import FieldMapping
from .sync_configuration import SyncConfiguration
from .utils import generate_uuid, utcnow

__all__ = ["Connection", "EventLogEntry", "FieldMapping", "SyncConfiguration", "generate_uuid", "utcnow"]
