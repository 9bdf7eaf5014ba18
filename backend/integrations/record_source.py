"""CRM record access.

Source records are owned by the CRM and are read-only here. They are
duck-typed: any mapping (a JSON object, a query result row) or any object
exposing fields as attributes works with :func:`read_field`.

Historical sync pulls full record sets through a :class:`RecordSource`;
:class:`SalesforceRecordSource` implements it with ``simple_salesforce``.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, Protocol

import requests
from simple_salesforce import Salesforce
from simple_salesforce.exceptions import SalesforceError

from config import settings
from integrations.exceptions import RecordSourceError

logger = logging.getLogger(__name__)

# Query result rows carry type metadata under this key
_ATTRIBUTES_KEY = "attributes"


def read_field(record: Any, field_name: str | None) -> Any:
    """Read a field value from a record.

    Dotted names ("Account.Name") walk relationship values. Lookups are
    exact first, then case-insensitive for mapping records, since CRM
    field names are case-insensitive.

    Args:
        record: A mapping or attribute-bearing object.
        field_name: Field name or dotted relationship path.

    Returns:
        The value, or None if any segment is missing.
    """
    if record is None or not field_name:
        return None

    value = record
    for segment in field_name.strip().split("."):
        if value is None:
            return None
        value = _read_segment(value, segment)
    return value


def _read_segment(value: Any, segment: str) -> Any:
    if isinstance(value, Mapping):
        if segment in value:
            return value[segment]
        lowered = segment.lower()
        for key, item in value.items():
            if isinstance(key, str) and key.lower() == lowered:
                return item
        return None
    return getattr(value, segment, None)


def record_type_of(record: Any) -> str | None:
    """Entity type declared by a query-result style record, if any."""
    attributes = read_field(record, _ATTRIBUTES_KEY)
    if isinstance(attributes, Mapping):
        record_type = attributes.get("type")
        if record_type:
            return str(record_type)
    return None


def strip_attributes(record: Mapping[str, Any]) -> dict[str, Any]:
    """Drop query metadata from a result row, recursing into relationships."""
    cleaned: dict[str, Any] = {}
    for key, value in record.items():
        if key == _ATTRIBUTES_KEY:
            continue
        if isinstance(value, Mapping):
            value = strip_attributes(value)
        cleaned[key] = value
    return cleaned


def build_select_query(entity_type: str, fields: Sequence[str]) -> str:
    """Construct the full-scan query used for historical sync.

    Field order is preserved and duplicates (case-insensitive) are dropped.
    """
    seen: set[str] = set()
    field_list: list[str] = []
    for name in fields:
        key = name.lower()
        if key not in seen:
            seen.add(key)
            field_list.append(name)
    return f"SELECT {', '.join(field_list)} FROM {entity_type}"


def chunk_records(
    records: Iterable[Mapping[str, Any]], chunk_size: int
) -> Iterator[list[Mapping[str, Any]]]:
    """Group an iterable of records into lists of ``chunk_size``."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    chunk: list[Mapping[str, Any]] = []
    for record in records:
        chunk.append(record)
        if len(chunk) == chunk_size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class RecordSource(Protocol):
    """Queryable CRM record store."""

    def query(self, soql: str) -> Iterator[Mapping[str, Any]]:
        """Yield every record matching the query, lazily."""
        ...


class SalesforceRecordSource:
    """Query CRM records through the Salesforce REST API.

    Credentials come from settings (environment, ``.env`` or keychain).
    The client is created on first use.
    """

    def __init__(
        self,
        username: str | None = None,
        password: str | None = None,
        security_token: str | None = None,
        domain: str | None = None,
        client: Salesforce | None = None,
    ):
        self._username = username or settings.SF_USERNAME
        self._password = password or settings.SF_PASSWORD
        self._security_token = security_token or settings.SF_SECURITY_TOKEN
        self._domain = domain or settings.SF_DOMAIN
        self._client = client

    def is_configured(self) -> bool:
        """Check if CRM credentials are present."""
        if self._client is not None:
            return True
        return bool(self._username and self._password and self._security_token)

    def _get_client(self) -> Salesforce:
        if self._client is not None:
            return self._client
        if not self.is_configured():
            raise RecordSourceError(
                "CRM credentials not configured. Set SF_USERNAME, SF_PASSWORD "
                "and SF_SECURITY_TOKEN (environment, .env or keychain)."
            )

        kwargs: dict[str, str] = {}
        if self._domain:
            kwargs["domain"] = self._domain
        try:
            self._client = Salesforce(
                username=self._username,
                password=self._password,
                security_token=self._security_token,
                **kwargs,
            )
        except (SalesforceError, requests.RequestException) as exc:
            raise RecordSourceError(f"CRM login failed: {exc}") from exc
        return self._client

    def query(self, soql: str) -> Iterator[Mapping[str, Any]]:
        """Yield records for the query, following result pages lazily.

        Raises:
            RecordSourceError: If the client cannot be created or the query fails.
        """
        client = self._get_client()
        logger.debug("CRM query: %s", soql)
        try:
            for row in client.query_all_iter(soql):
                yield strip_attributes(row)
        except (SalesforceError, requests.RequestException) as exc:
            # requests errors cover dropped connections and timeouts mid-cursor
            raise RecordSourceError(f"CRM query failed: {exc}") from exc
