"""Connection registry - resolves destination credentials and upload endpoints."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from config import settings
from models import Connection

logger = logging.getLogger(__name__)

PAYLOAD_PROFILE = "profile"
PAYLOAD_EVENT = "event"

# Upload path per payload kind. Both kinds share one path today; keep the
# lookup so they can diverge without touching the dispatcher.
UPLOAD_PATHS: dict[str, str] = {
    PAYLOAD_PROFILE: settings.CET_UPLOAD_PATH,
    PAYLOAD_EVENT: settings.CET_UPLOAD_PATH,
}

# Region code -> API host prefix
REGION_HOST_PREFIXES: dict[str, str] = {
    "EU": "eu1",
    "IN": "in1",
    "SG": "sg1",
    "US": "us1",
    "ID": "aps3",
    "UAE": "mec1",
}

DEFAULT_REGION = "EU"


@dataclass(frozen=True)
class ConnectionCredentials:
    """Resolved credentials for one destination tenant."""

    connection_id: str
    base_url: str
    account_id: str
    passcode: str

    @property
    def is_complete(self) -> bool:
        """True when no required field is blank."""
        return all(
            value and value.strip()
            for value in (self.base_url, self.account_id, self.passcode)
        )


class ConnectionRegistry:
    """Looks up connections in the configuration store.

    Example:
        registry = ConnectionRegistry(db)
        creds = registry.get_credentials("prod-eu")
        if creds and creds.is_complete:
            url = resolve_endpoint(creds.base_url, "profile")
    """

    def __init__(self, db: Session):
        self._db = db

    def get_connection(self, connection_key: str | None) -> Connection | None:
        """Find a connection by id, falling back to its name."""
        if not connection_key:
            return None
        connection = self._db.query(Connection).filter(Connection.id == connection_key).first()
        if connection is None:
            connection = (
                self._db.query(Connection).filter(Connection.name == connection_key).first()
            )
        return connection

    def get_credentials(self, connection_key: str | None) -> ConnectionCredentials | None:
        """Resolve credentials for a connection id or name.

        Blank fields are returned as-is; deciding whether they are usable is
        the dispatcher's job.

        Returns:
            The credentials, or None if no connection matches.
        """
        connection = self.get_connection(connection_key)
        if connection is None:
            logger.debug("No connection found for %s", connection_key)
            return None
        return ConnectionCredentials(
            connection_id=connection.id,
            base_url=connection.base_api_url or "",
            account_id=connection.account_id or "",
            passcode=connection.passcode or "",
        )


def resolve_endpoint(base_url: str, kind: str) -> str:
    """Build the upload URL for a payload kind.

    Any upload path already present on base_url is stripped first, so
    connections saved with either form resolve the same.

    Args:
        base_url: Connection base URL, with or without the upload path.
        kind: "profile" or "event".

    Raises:
        ValueError: If kind is not a known payload kind.
    """
    path = UPLOAD_PATHS.get((kind or "").lower())
    if path is None:
        raise ValueError(f"Unknown payload kind: {kind!r}")

    base = (base_url or "").strip().rstrip("/")
    for suffix in set(UPLOAD_PATHS.values()):
        suffix = suffix.rstrip("/")
        if base.endswith(suffix):
            base = base[: -len(suffix)].rstrip("/")
            break
    return base + path


def default_base_url(region: str | None) -> str:
    """Derive a tenant base URL from its region code.

    Unknown or blank regions use the default region.
    """
    code = (region or DEFAULT_REGION).strip().upper()
    prefix = REGION_HOST_PREFIXES.get(code)
    if prefix is None:
        logger.warning("Unknown region %r, using %s", region, DEFAULT_REGION)
        prefix = REGION_HOST_PREFIXES[DEFAULT_REGION]
    return f"https://{prefix}.{settings.CET_API_DOMAIN}"
