"""Historical sync - replays every record of an entity through one configuration.

The engine follows a start / execute-chunk / finish contract so an external
batch scheduler can drive it; :meth:`HistoricalSyncEngine.run` is the
built-in sequential driver. Counters and buffered log entries live in a
:class:`HistoricalSyncState` passed through every chunk, and log entries are
written in one bulk insert at the end.

One engine instance and its state are meant for one sequential run. A
scheduler that executes chunks in parallel should give each chunk its own
state and merge the counters before calling finish.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from config import settings
from integrations.cet_client import CetClient
from integrations.entity_types import queryable_field_name
from integrations.exceptions import RecordSourceError
from integrations.record_source import RecordSource, build_select_query, chunk_records, read_field
from models import EventLogEntry, FieldMapping, SyncConfiguration
from models.event_log import STATUS_FAILED, STATUS_SUCCESS
from services.connection_registry import ConnectionRegistry
from services.dispatcher import Dispatcher, serialize_envelope
from services.event_logger import EventLogger, build_entry, build_response_text
from services.execution_context import async_context
from services.mapping_resolver import build_payload

logger = logging.getLogger(__name__)


@dataclass
class HistoricalSyncState:
    """Running totals and buffered log entries for one historical sync run."""

    configuration_id: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0  # records with no identity value: nothing was attempted
    pending_entries: list[EventLogEntry] = field(default_factory=list)


@dataclass
class HistoricalSyncResult:
    """Final totals of a historical sync run."""

    configuration_id: str
    entity_type: str
    processed: int
    succeeded: int
    failed: int
    skipped: int
    log_entries_written: int
    summary_logged: bool
    error: Optional[str] = None


class RecordCursor:
    """Lazy, restartable iteration over the records of one query.

    Each iteration re-issues the query, so a cursor can be replayed.
    """

    def __init__(self, source: RecordSource, soql: str):
        self._source = source
        self.soql = soql

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        return iter(self._source.query(self.soql))

    def chunks(self, chunk_size: int) -> Iterator[list[Mapping[str, Any]]]:
        return chunk_records(self, chunk_size)


class HistoricalSyncEngine:
    """Backfills one sync configuration from the CRM record store."""

    def __init__(
        self,
        db: Session,
        configuration_id: str,
        record_source: RecordSource,
        cet_client: Optional[CetClient] = None,
        event_logger: Optional[EventLogger] = None,
        emit_summary: Optional[bool] = None,
    ):
        """Initialize the engine for one configuration.

        Args:
            db: Session for reading configuration.
            configuration_id: The sync configuration to replay.
            record_source: CRM record store to read from.
            cet_client: Upload client (defaults to a new CetClient).
            event_logger: Used for the final bulk insert.
            emit_summary: Write a totals entry at finish (defaults to settings).
        """
        self._db = db
        self.configuration_id = configuration_id
        self._record_source = record_source
        self._event_logger = event_logger or EventLogger()
        self._emit_summary = (
            settings.HISTORICAL_SYNC_EMIT_SUMMARY if emit_summary is None else emit_summary
        )
        self._dispatcher = Dispatcher(ConnectionRegistry(db), client=cet_client)
        self._configuration: SyncConfiguration | None = None
        self._mappings: list[FieldMapping] = []

    @property
    def configuration(self) -> SyncConfiguration:
        """The target configuration, loaded once per engine.

        Raises:
            ValueError: If the configuration does not exist.
        """
        if self._configuration is None:
            configuration = (
                self._db.query(SyncConfiguration)
                .filter(SyncConfiguration.id == self.configuration_id)
                .first()
            )
            if configuration is None:
                raise ValueError(f"Sync configuration {self.configuration_id} not found")
            self._configuration = configuration
            self._mappings = (
                self._db.query(FieldMapping)
                .filter(FieldMapping.sync_configuration_id == configuration.id)
                .all()
            )
        return self._configuration

    @property
    def entity_type(self) -> str:
        return self.configuration.source_entity

    def build_query_fields(self) -> list[str]:
        """Minimal field list: Id plus every mapped source field that can be queried.

        Standard fields are queried under their standard spelling whatever
        case the mapping uses. Source fields that do not look like fields of
        the entity (such as a literal event name) are left out.
        """
        entity_type = self.entity_type
        fields = ["Id"]
        seen = {"id"}
        for mapping in self._mappings:
            name = queryable_field_name(entity_type, mapping.source_field)
            if name is None or name.lower() in seen:
                continue
            seen.add(name.lower())
            fields.append(name)
        return fields

    def start(self) -> RecordCursor:
        """Build the query for the configuration and return a cursor over it."""
        soql = build_select_query(self.entity_type, self.build_query_fields())
        logger.info("Historical sync %s starting: %s", self.configuration_id, soql)
        return RecordCursor(self._record_source, soql)

    def new_state(self) -> HistoricalSyncState:
        return HistoricalSyncState(configuration_id=self.configuration_id)

    def execute_chunk(
        self, state: HistoricalSyncState, chunk: Sequence[Mapping[str, Any]]
    ) -> HistoricalSyncState:
        """Map and dispatch every record in a chunk, updating state.

        A record that raises is counted as failed and logged; the rest of the
        chunk continues.
        """
        configuration = self.configuration
        entity_type = configuration.source_entity

        for record in chunk:
            state.processed += 1
            record_id = read_field(record, "Id")
            record_id = str(record_id) if record_id is not None else None
            request_body = ""
            try:
                payload = build_payload(
                    configuration,
                    self._mappings,
                    record,
                    entity_type,
                    use_default_event_name=True,
                )
                if payload is None:
                    state.skipped += 1
                    continue

                request_body = serialize_envelope(payload)
                outcome = self._dispatcher.dispatch(configuration.connection_id, payload)

                if outcome.skipped:
                    state.failed += 1
                    response_text = build_response_text(
                        f"Invalid credentials: {outcome.skip_reason}", outcome.request_body
                    )
                    status = STATUS_FAILED
                else:
                    status = outcome.status
                    if status == STATUS_SUCCESS:
                        state.succeeded += 1
                    else:
                        state.failed += 1
                    response_text = build_response_text(
                        outcome.response_body, outcome.request_body
                    )

                state.pending_entries.append(
                    build_entry(
                        record_id,
                        entity_type,
                        status,
                        response_text,
                        connection_id=configuration.connection_id,
                        sync_configuration_id=configuration.id,
                    )
                )
            except Exception as e:
                logger.error(
                    "Historical sync %s: error processing record %s",
                    self.configuration_id, record_id, exc_info=True,
                )
                state.failed += 1
                state.pending_entries.append(
                    build_entry(
                        record_id,
                        entity_type,
                        STATUS_FAILED,
                        build_response_text(f"Error: {e}", request_body),
                        connection_id=configuration.connection_id,
                        sync_configuration_id=configuration.id,
                    )
                )

        logger.debug(
            "Historical sync %s chunk done: %d processed so far",
            self.configuration_id, state.processed,
        )
        return state

    def _summary_entry(self, state: HistoricalSyncState) -> EventLogEntry:
        configuration = self.configuration
        text = (
            f"Historical sync of {configuration.source_entity} for '{configuration.name}' "
            f"completed: processed {state.processed}, succeeded {state.succeeded}, "
            f"failed {state.failed}, skipped {state.skipped}"
        )
        return build_entry(
            None,
            configuration.source_entity,
            STATUS_SUCCESS if state.failed == 0 else STATUS_FAILED,
            text,
            connection_id=configuration.connection_id,
            sync_configuration_id=configuration.id,
        )

    def finish(self, state: HistoricalSyncState, error: Optional[str] = None) -> HistoricalSyncResult:
        """Flush buffered log entries in one insert and report totals."""
        entries = list(state.pending_entries)
        summary_logged = False
        if self._emit_summary:
            entries.append(self._summary_entry(state))
            summary_logged = True

        written = self._event_logger.write_entries(entries)
        state.pending_entries.clear()

        logger.info(
            "Historical sync %s finished: processed %d, succeeded %d, failed %d, skipped %d",
            self.configuration_id, state.processed, state.succeeded, state.failed, state.skipped,
        )
        return HistoricalSyncResult(
            configuration_id=self.configuration_id,
            entity_type=self.entity_type,
            processed=state.processed,
            succeeded=state.succeeded,
            failed=state.failed,
            skipped=state.skipped,
            log_entries_written=written,
            summary_logged=summary_logged and written > 0,
            error=error,
        )

    def run(self, chunk_size: Optional[int] = None) -> HistoricalSyncResult:
        """Run start, every chunk and finish sequentially.

        A failure of the record source itself, or any other error outside a
        single record, ends the run early; whatever was processed up to that
        point is still logged and the result carries the error.

        Raises:
            ValueError: If the configuration does not exist.
        """
        chunk_size = chunk_size or settings.HISTORICAL_SYNC_CHUNK_SIZE
        with async_context():
            cursor = self.start()
            state = self.new_state()
            error = None
            try:
                for chunk in cursor.chunks(chunk_size):
                    self.execute_chunk(state, chunk)
            except RecordSourceError as e:
                logger.error("Historical sync %s aborted: %s", self.configuration_id, e)
                error = str(e)
            except Exception as e:
                logger.error(
                    "Historical sync %s aborted unexpectedly", self.configuration_id, exc_info=True
                )
                error = f"Unexpected error: {e}"
            return self.finish(state, error=error)
