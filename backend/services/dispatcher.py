"""Dispatcher - sends one payload to one connection and reports the outcome."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from integrations.cet_client import CetClient
from integrations.exceptions import CetError, CredentialsInvalidError
from models.event_log import STATUS_FAILED, STATUS_SUCCESS
from services.connection_registry import (
    PAYLOAD_PROFILE,
    ConnectionCredentials,
    ConnectionRegistry,
    resolve_endpoint,
)

logger = logging.getLogger(__name__)

# Status code recorded when no HTTP response was received
TRANSPORT_FAILURE_STATUS = 0


def serialize_envelope(payload: dict[str, Any]) -> str:
    """Wrap a payload in the single-element batch envelope ``{"d": [payload]}``."""
    return json.dumps({"d": [payload]})


def classify_outcome(status_code: int, response_body: str | None) -> str:
    """Classify an upload response as "Success" or "Failed".

    Anything other than HTTP 200 is a failure. A 200 is a success whether
    the body reports ``{"status": "success"}``, something else, or is not
    JSON at all.
    """
    if status_code != 200:
        return STATUS_FAILED

    try:
        body = json.loads(response_body) if response_body else None
    except (ValueError, TypeError):
        body = None
    if isinstance(body, dict) and body.get("status") != "success":
        logger.debug("HTTP 200 with non-success body treated as success: %s", response_body)
    return STATUS_SUCCESS


@dataclass
class DispatchOutcome:
    """Result of one dispatch attempt.

    A skipped outcome means no HTTP call was made (credentials missing or
    incomplete); request_body is still set when a payload was available.
    """

    connection_id: Optional[str]
    status_code: int = TRANSPORT_FAILURE_STATUS
    response_body: str = ""
    request_body: str = ""
    skipped: bool = False
    skip_reason: Optional[str] = None

    @property
    def status(self) -> str:
        if self.skipped:
            return STATUS_FAILED
        return classify_outcome(self.status_code, self.response_body)

    @property
    def is_success(self) -> bool:
        return self.status == STATUS_SUCCESS


class Dispatcher:
    """Delivers payloads to connections, isolating failures per connection."""

    def __init__(self, registry: ConnectionRegistry, client: Optional[CetClient] = None):
        """Initialize with a connection registry and optional HTTP client.

        Args:
            registry: Resolves connection credentials.
            client: Upload client. If None, a default client is created on first use.
        """
        self._registry = registry
        self._client = client

    @property
    def client(self) -> CetClient:
        if self._client is None:
            self._client = CetClient()
        return self._client

    def _check_credentials(self, connection_id: Optional[str]) -> ConnectionCredentials:
        credentials = self._registry.get_credentials(connection_id)
        if credentials is None:
            raise CredentialsInvalidError(
                f"Connection {connection_id} not found", connection_id=connection_id
            )
        if not credentials.is_complete:
            raise CredentialsInvalidError(
                f"Connection {connection_id} is missing base URL, account id or passcode",
                connection_id=connection_id,
            )
        return credentials

    def dispatch(self, connection_id: Optional[str], payload: dict[str, Any]) -> DispatchOutcome:
        """Send one payload to one connection.

        Never raises: missing credentials produce a skipped outcome, and
        transport or unexpected errors produce a status 0 outcome whose body
        describes the error.

        Args:
            connection_id: Connection id (or name).
            payload: Payload built by the mapping resolver.

        Returns:
            The DispatchOutcome for this attempt.
        """
        request_body = ""
        try:
            request_body = serialize_envelope(payload)
            credentials = self._check_credentials(connection_id)
        except CredentialsInvalidError as e:
            logger.warning("Dispatch skipped: %s", e)
            return DispatchOutcome(
                connection_id=connection_id,
                request_body=request_body,
                skipped=True,
                skip_reason=str(e),
            )
        except Exception as e:
            logger.error(
                "Unexpected error preparing dispatch to %s: %s",
                connection_id, e, exc_info=True,
            )
            return DispatchOutcome(
                connection_id=connection_id,
                response_body=f"Error: {e}",
                request_body=request_body,
            )

        try:
            kind = payload.get("type") or PAYLOAD_PROFILE
            url = resolve_endpoint(credentials.base_url, kind)
            response = self.client.upload(
                url,
                credentials.account_id,
                credentials.passcode,
                request_body,
                connection_id=credentials.connection_id,
            )
        except CetError as e:
            logger.warning("Dispatch to %s failed: %s", connection_id, e)
            return DispatchOutcome(
                connection_id=connection_id,
                response_body=f"Error: {e}",
                request_body=request_body,
            )
        except Exception as e:
            logger.error(
                "Unexpected error dispatching to %s: %s", connection_id, e, exc_info=True,
            )
            return DispatchOutcome(
                connection_id=connection_id,
                response_body=f"Error: {e}",
                request_body=request_body,
            )

        outcome = DispatchOutcome(
            connection_id=connection_id,
            status_code=response.status_code,
            response_body=response.text or "",
            request_body=request_body,
        )
        if outcome.is_success:
            logger.info("Dispatched %s payload to %s", kind, connection_id)
        else:
            logger.warning(
                "Dispatch to %s returned HTTP %d", connection_id, response.status_code
            )
        return outcome
