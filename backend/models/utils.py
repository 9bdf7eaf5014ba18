"""Shared column defaults for ORM models."""

import uuid
from datetime import datetime, timezone


def generate_uuid() -> str:
    """Generate a UUID string primary key."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware current time, used for created_at/updated_at defaults."""
    return datetime.now(timezone.utc)
