"""HTTP client for the customer-engagement platform upload API.

The upload endpoint accepts a JSON envelope ``{"d": [...]}`` authenticated
by two tenant headers. Non-2xx responses are returned to the caller, not
raised, because the response body is part of the audit trail.
"""

import logging
from dataclasses import dataclass

import httpx

from config import settings
from integrations.exceptions import CetConnectionError

logger = logging.getLogger(__name__)

ACCOUNT_ID_HEADER = "X-Provider-Account-Id"
PASSCODE_HEADER = "X-Provider-Passcode"


@dataclass
class CetResponse:
    status_code: int
    text: str


class CetClient:
    """Thin wrapper around ``httpx`` for upload calls.

    One short-lived ``httpx.Client`` is opened per call; dispatch volume is
    one request per record and connection.
    """

    def __init__(self, timeout: float | None = None):
        """Initialize the client.

        Args:
            timeout: Request timeout in seconds (defaults to settings).
        """
        self._timeout = timeout if timeout is not None else settings.CET_REQUEST_TIMEOUT_SECONDS

    @property
    def timeout(self) -> float:
        return self._timeout

    def upload(
        self,
        url: str,
        account_id: str,
        passcode: str,
        body: str,
        connection_id: str = "",
    ) -> CetResponse:
        """POST an already-serialized envelope to an upload endpoint.

        Args:
            url: Fully resolved upload endpoint.
            account_id: Tenant account id header value.
            passcode: Tenant passcode header value.
            body: JSON request body.
            connection_id: Used only for error context.

        Returns:
            The status code and raw body of the response.

        Raises:
            CetConnectionError: On timeouts and other transport failures.
        """
        headers = {
            ACCOUNT_ID_HEADER: account_id,
            PASSCODE_HEADER: passcode,
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(url, content=body.encode("utf-8"), headers=headers)
        except httpx.TimeoutException as exc:
            raise CetConnectionError(
                f"Request to {url} timed out after {self._timeout:g}s",
                connection_id=connection_id,
                timed_out=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise CetConnectionError(
                f"Request to {url} failed: {exc}",
                connection_id=connection_id,
            ) from exc

        logger.debug("Upload to %s returned HTTP %d", url, response.status_code)
        return CetResponse(status_code=response.status_code, text=response.text)
