"""Event logger - durable, out-of-band audit trail of dispatch attempts.

Log rows are written in their own session on a background executor, so a
failed dispatch or a failed log insert can never roll back the business
write that triggered the dispatch. Outcomes from one triggering call are
written together as one unit of work.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from config import settings
from database import get_session_local
from integrations.entity_types import get_entity_definition
from models import EventLogEntry
from services.dispatcher import DispatchOutcome
from services.execution_context import async_context

logger = logging.getLogger(__name__)

_executor_lock = threading.Lock()
_default_executor: ThreadPoolExecutor | None = None


def get_log_executor() -> ThreadPoolExecutor:
    """Shared background executor for log writes (created on first use)."""
    global _default_executor
    with _executor_lock:
        if _default_executor is None:
            _default_executor = ThreadPoolExecutor(
                max_workers=settings.EVENT_LOG_WORKERS,
                thread_name_prefix="event-log",
            )
        return _default_executor


def shutdown_log_executor(wait: bool = True) -> None:
    """Stop the shared executor, letting queued writes finish when ``wait``.

    A later ``get_log_executor`` call starts a fresh pool.
    """
    global _default_executor
    with _executor_lock:
        executor, _default_executor = _default_executor, None
    if executor is not None:
        executor.shutdown(wait=wait)
        logger.debug("Event log executor shut down")


def build_response_text(response_body: str | None, request_body: str | None) -> str:
    """Response body followed by the request, or just the request if no response."""
    request_body = request_body or ""
    if response_body:
        return f"{response_body}\nRequest: {request_body}"
    return request_body


def build_entry(
    record_id: str | None,
    record_type: str | None,
    status: str,
    response_text: str,
    connection_id: str | None = None,
    sync_configuration_id: str | None = None,
) -> EventLogEntry:
    """Create (but do not persist) a log entry referencing the originating record.

    Known entity types store the record id in their relation column. Other
    entity types get ``"<type> ID: <id>"`` prepended to the response text.
    """
    entry = EventLogEntry(
        status=status,
        connection_id=connection_id,
        sync_configuration_id=sync_configuration_id,
    )
    definition = get_entity_definition(record_type)
    if record_id and definition is not None:
        setattr(entry, definition.relation_column, str(record_id))
    elif record_id:
        response_text = f"{record_type} ID: {record_id}\n{response_text}"
    entry.response_text = response_text
    return entry


@dataclass
class LogRequest:
    """One dispatch outcome waiting to be written."""

    record_id: str | None
    record_type: str | None
    outcome: DispatchOutcome
    request_body: str | None = None
    sync_configuration_id: str | None = None

    def to_entry(self) -> EventLogEntry:
        request_body = self.request_body if self.request_body is not None else self.outcome.request_body
        return build_entry(
            self.record_id,
            self.record_type,
            self.outcome.status,
            build_response_text(self.outcome.response_body, request_body),
            connection_id=self.outcome.connection_id,
            sync_configuration_id=self.sync_configuration_id,
        )


class EventLogger:
    """Writes EventLogEntry rows off the caller's transaction."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        executor: Optional[Executor] = None,
    ):
        """Initialize with optional session factory and executor.

        Args:
            session_factory: Creates the session each log batch is written in.
                Defaults to the application sessionmaker.
            executor: Runs log batches. Defaults to a shared background thread pool.
        """
        self._session_factory = session_factory
        self._executor = executor

    @property
    def session_factory(self) -> Callable[[], Session]:
        if self._session_factory is None:
            self._session_factory = get_session_local()
        return self._session_factory

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = get_log_executor()
        return self._executor

    def log_outcome(
        self,
        record_id: str | None,
        record_type: str | None,
        outcome: DispatchOutcome,
        request_body: str | None = None,
        sync_configuration_id: str | None = None,
    ) -> Optional[Future]:
        """Queue a single outcome for logging."""
        return self.log_outcomes([
            LogRequest(
                record_id=record_id,
                record_type=record_type,
                outcome=outcome,
                request_body=request_body,
                sync_configuration_id=sync_configuration_id,
            )
        ])

    def log_outcomes(self, requests: list[LogRequest]) -> Optional[Future]:
        """Queue several outcomes to be written as one background unit.

        Returns:
            The Future for the background write, or None if there was
            nothing to write or the executor refused the work.
        """
        if not requests:
            return None
        try:
            return self.executor.submit(self._write_requests, list(requests))
        except RuntimeError:
            logger.debug("Event log executor unavailable, dropping %d entries", len(requests), exc_info=True)
            return None

    def _write_requests(self, requests: list[LogRequest]) -> int:
        with async_context():
            try:
                entries = [request.to_entry() for request in requests]
            except Exception:
                logger.debug("Failed to build event log entries", exc_info=True)
                return 0
            return self.write_entries(entries)

    def write_entries(self, entries: list[EventLogEntry]) -> int:
        """Insert log entries in one transaction, best-effort.

        Insert failures are reported on the debug channel only.

        Returns:
            Number of entries written (0 on failure).
        """
        if not entries:
            return 0
        db = self.session_factory()
        try:
            db.add_all(entries)
            db.commit()
            logger.debug("Wrote %d event log entries", len(entries))
            return len(entries)
        except Exception:
            db.rollback()
            logger.debug("Failed to write %d event log entries", len(entries), exc_info=True)
            return 0
        finally:
            db.close()
