"""Record change service - the per-record resolve, dispatch and log pipeline."""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from sqlalchemy.orm import Session

from integrations.cet_client import CetClient
from integrations.record_source import read_field, record_type_of
from services.connection_registry import ConnectionRegistry
from services.dispatcher import DispatchOutcome, Dispatcher
from services.event_logger import EventLogger, LogRequest
from services.execution_context import in_async_context
from services.mapping_resolver import MappingResolver

logger = logging.getLogger(__name__)


class RecordChangeService:
    """Handles "a record changed" notifications from the trigger layer."""

    def __init__(
        self,
        cet_client: Optional[CetClient] = None,
        event_logger: Optional[EventLogger] = None,
    ):
        """Initialize with optional collaborators for dependency injection.

        Args:
            cet_client: Upload client shared by every dispatch.
            event_logger: Out-of-band logger. Defaults to the background logger.
        """
        self._cet_client = cet_client
        self._event_logger = event_logger

    @property
    def event_logger(self) -> EventLogger:
        if self._event_logger is None:
            self._event_logger = EventLogger()
        return self._event_logger

    def on_record_changed(
        self,
        db: Session,
        record: Any,
        entity_type: str | None = None,
        previous_values: Optional[Mapping[str, Any]] = None,
    ) -> list[DispatchOutcome]:
        """Dispatch a changed record to every applicable connection.

        Called after every insert and update; filtering updates down to
        relevant field changes is the caller's decision. Dispatches run
        sequentially, one per resolved connection. Outcomes that reached the
        network are logged as one background batch; connections skipped for
        missing credentials are not logged on this path.

        Never raises. Calls made from inside background logging or a
        historical sync run are ignored.

        Args:
            db: Session for reading configuration.
            record: The changed record (mapping or attribute object).
            entity_type: Entity type name. Read from the record's
                ``attributes.type`` when omitted.
            previous_values: Field values before the change (unused by the
                core; accepted for trigger compatibility).

        Returns:
            One DispatchOutcome per resolved connection, including skipped ones.
        """
        if in_async_context():
            logger.debug("Ignoring record change raised from async/batch context")
            return []

        try:
            entity_type = entity_type or record_type_of(record)
            if not entity_type:
                logger.debug("Record change without entity type ignored")
                return []

            resolver = MappingResolver(db)
            resolved = resolver.resolve_connections(record, entity_type)
            if not resolved:
                return []

            dispatcher = Dispatcher(ConnectionRegistry(db), client=self._cet_client)
            record_id = read_field(record, "Id")

            outcomes: list[DispatchOutcome] = []
            log_requests: list[LogRequest] = []
            for item in resolved:
                outcome = dispatcher.dispatch(item.connection_id, item.payload)
                outcomes.append(outcome)
                if outcome.skipped:
                    continue
                log_requests.append(
                    LogRequest(
                        record_id=str(record_id) if record_id is not None else None,
                        record_type=entity_type,
                        outcome=outcome,
                        sync_configuration_id=item.sync_configuration_id,
                    )
                )

            self.event_logger.log_outcomes(log_requests)

            succeeded = sum(1 for o in outcomes if o.is_success)
            logger.info(
                "%s %s: %d dispatched, %d succeeded, %d skipped",
                entity_type, record_id, len(outcomes), succeeded,
                sum(1 for o in outcomes if o.skipped),
            )
            return outcomes

        except Exception:
            logger.error("Unexpected error handling %s record change", entity_type, exc_info=True)
            return []
