"""Typed exception hierarchy for destination and CRM integration errors.

Provides structured exceptions for differentiated error handling
(credential gaps vs transient network errors vs CRM query failures).
None of these escape the dispatch core; services catch them at the
connection or record boundary and turn them into log entries.
"""


class CetError(Exception):
    """Base exception for all destination-platform errors.

    Carries the connection id so callers can identify which tenant failed.
    """

    def __init__(self, message: str, connection_id: str = ""):
        self.connection_id = connection_id
        super().__init__(message)


class CredentialsInvalidError(CetError):
    """Connection missing, or its base URL, account id or passcode is blank."""

    pass


class CetConnectionError(CetError):
    """Network failures: timeouts, DNS resolution, connection refused."""

    def __init__(self, message: str, connection_id: str = "", timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(message, connection_id)


class RecordSourceError(Exception):
    """The CRM record store could not be queried."""

    pass


class MappingValidationError(ValueError):
    """A configuration save was rejected (missing identity, duplicate fields, ...)."""

    pass
