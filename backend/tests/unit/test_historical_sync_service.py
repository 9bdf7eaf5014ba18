"""Tests for the historical sync engine."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from integrations.cet_client import CetResponse
from integrations.record_source import SalesforceRecordSource
from models import EventLogEntry
from models.event_log import STATUS_FAILED, STATUS_SUCCESS
from models.field_mapping import EVENT_NAME_FIELD, IDENTITY_FIELD
from services.execution_context import in_async_context
from services.historical_sync_service import HistoricalSyncEngine
from tests.fixtures import add_mapping, create_configuration
from tests.fixtures.mocks import SAMPLE_LEAD, MockCetClient, MockRecordSource


def _leads(count: int) -> list[dict]:
    return [
        {"Id": f"00Q{i:012d}", "Email": f"lead{i}@example.com", "FirstName": f"Lead {i}"}
        for i in range(count)
    ]


def _engine(db, configuration, records, event_logger, client=None, emit_summary=False):
    return HistoricalSyncEngine(
        db,
        configuration.id,
        MockRecordSource(records),
        cet_client=client or MockCetClient(),
        event_logger=event_logger,
        emit_summary=emit_summary,
    )


class TestBuildQueryFields:
    def test_id_plus_mapped_fields(self, db, event_logger, profile_configuration):
        engine = _engine(db, profile_configuration, [], event_logger)
        assert engine.build_query_fields() == ["Id", "Email", "FirstName", "AnnualRevenue"]

    def test_literal_event_name_excluded(self, db, event_logger, event_configuration):
        engine = _engine(db, event_configuration, [], event_logger)
        fields = engine.build_query_fields()
        assert "lead_updated" not in fields
        assert fields == ["Id", "Email", "CreatedDate"]

    def test_custom_and_relationship_fields_kept(self, db, event_logger, connection):
        configuration = create_configuration(db, connection, source_entity="Contact")
        add_mapping(db, configuration, IDENTITY_FIELD, "Email", is_mandatory=True)
        add_mapping(db, configuration, "Tier", "Loyalty_Tier__c")
        add_mapping(db, configuration, "Company", "Account.Name")
        add_mapping(db, configuration, "Email Copy", "email")
        engine = _engine(db, configuration, [], event_logger)
        assert engine.build_query_fields() == ["Id", "Email", "Loyalty_Tier__c", "Account.Name"]

    def test_lowercase_standard_fields_use_standard_spelling(self, db, event_logger, connection):
        configuration = create_configuration(db, connection)
        add_mapping(db, configuration, IDENTITY_FIELD, "email", is_mandatory=True)
        add_mapping(db, configuration, "first_name", "firstname")
        engine = _engine(db, configuration, [], event_logger)
        assert engine.build_query_fields() == ["Id", "Email", "FirstName"]

    def test_lowercase_identity_field_records_dispatched(self, db, event_logger, connection):
        configuration = create_configuration(db, connection)
        add_mapping(db, configuration, IDENTITY_FIELD, "email", is_mandatory=True)
        client = MockCetClient()
        result = _engine(db, configuration, _leads(2), event_logger, client).run()
        assert result.succeeded == 2
        assert result.skipped == 0
        assert len(client.requests) == 2

    def test_start_builds_query(self, db, event_logger, profile_configuration):
        source = MockRecordSource(_leads(2))
        engine = HistoricalSyncEngine(
            db, profile_configuration.id, source, event_logger=event_logger
        )
        cursor = engine.start()
        assert cursor.soql == "SELECT Id, Email, FirstName, AnnualRevenue FROM Lead"
        assert source.queries == []
        assert len(list(cursor)) == 2
        assert len(list(cursor)) == 2
        assert len(source.queries) == 2


class TestRun:
    def test_all_records_dispatched_and_logged(self, db, event_logger, profile_configuration):
        client = MockCetClient()
        engine = _engine(db, profile_configuration, _leads(5), event_logger, client)

        result = engine.run(chunk_size=2)

        assert (result.processed, result.succeeded, result.failed, result.skipped) == (5, 5, 0, 0)
        assert result.log_entries_written == 5
        assert len(client.requests) == 5
        entries = db.query(EventLogEntry).all()
        assert len(entries) == 5
        assert all(e.status == STATUS_SUCCESS for e in entries)
        assert all(e.sync_configuration_id == profile_configuration.id for e in entries)
        assert {e.lead_id for e in entries} == {f"00Q{i:012d}" for i in range(5)}

    def test_blank_identity_skipped_without_log(self, db, event_logger, profile_configuration):
        records = _leads(2) + [{"Id": "00Qblank", "Email": "", "FirstName": "x"}]
        result = _engine(db, profile_configuration, records, event_logger).run()
        assert result.processed == 3
        assert result.skipped == 1
        assert result.succeeded == 2
        assert db.query(EventLogEntry).count() == 2

    def test_default_event_name_used(self, db, event_logger, connection):
        configuration = create_configuration(db, connection, target_entity="event")
        add_mapping(db, configuration, IDENTITY_FIELD, "Email", is_mandatory=True)
        client = MockCetClient()

        result = _engine(db, configuration, [SAMPLE_LEAD], event_logger, client).run()

        assert result.succeeded == 1
        assert '"evtName": "sf_lead"' in client.requests[0]["body"]

    def test_blank_event_name_mapping_uses_default(self, db, event_logger, connection):
        configuration = create_configuration(db, connection, target_entity="event")
        add_mapping(db, configuration, IDENTITY_FIELD, "Email", is_mandatory=True)
        add_mapping(db, configuration, EVENT_NAME_FIELD, "", is_mandatory=True)
        client = MockCetClient()
        _engine(db, configuration, [SAMPLE_LEAD], event_logger, client).run()
        assert '"evtName": "sf_lead"' in client.requests[0]["body"]

    def test_failures_counted_and_logged(self, db, event_logger, profile_configuration):
        client = MockCetClient(responses=[
            CetResponse(200, "ok"),
            CetResponse(401, "denied"),
        ])
        result = _engine(db, profile_configuration, _leads(3), event_logger, client).run()

        assert (result.succeeded, result.failed) == (2, 1)
        failed = db.query(EventLogEntry).filter(EventLogEntry.status == STATUS_FAILED).one()
        assert failed.response_text.startswith("denied\nRequest: ")

    def test_invalid_credentials_logged_as_failed(
        self, db, event_logger, incomplete_connection
    ):
        configuration = create_configuration(db, incomplete_connection)
        add_mapping(db, configuration, IDENTITY_FIELD, "Email", is_mandatory=True)
        client = MockCetClient()

        result = _engine(db, configuration, _leads(2), event_logger, client).run()

        assert result.failed == 2
        assert client.requests == []
        entries = db.query(EventLogEntry).all()
        assert len(entries) == 2
        assert all(e.status == STATUS_FAILED for e in entries)
        assert all(e.response_text.startswith("Invalid credentials: ") for e in entries)

    def test_record_exception_isolated(self, db, event_logger, profile_configuration):
        from services import historical_sync_service

        real_build = historical_sync_service.build_payload
        calls = {"n": 0}

        def flaky(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("bad record")
            return real_build(*args, **kwargs)

        with patch("services.historical_sync_service.build_payload", side_effect=flaky):
            result = _engine(db, profile_configuration, _leads(3), event_logger).run(chunk_size=1)

        assert (result.processed, result.succeeded, result.failed) == (3, 2, 1)
        failed = db.query(EventLogEntry).filter(EventLogEntry.status == STATUS_FAILED).one()
        assert failed.response_text.startswith("Error: bad record")
        assert failed.lead_id == "00Q000000000001"

    def test_does_not_require_active_configuration(
        self, db, event_logger, profile_configuration
    ):
        profile_configuration.status = "Inactive"
        db.commit()
        result = _engine(db, profile_configuration, _leads(1), event_logger).run()
        assert result.succeeded == 1

    def test_summary_entry(self, db, event_logger, profile_configuration):
        result = _engine(
            db, profile_configuration, _leads(2), event_logger, emit_summary=True
        ).run()

        assert result.summary_logged is True
        assert result.log_entries_written == 3
        summary = (
            db.query(EventLogEntry)
            .filter(EventLogEntry.lead_id.is_(None))
            .one()
        )
        assert summary.status == STATUS_SUCCESS
        assert "processed 2, succeeded 2, failed 0, skipped 0" in summary.response_text

    def test_summary_failed_when_any_failure(self, db, event_logger, profile_configuration):
        client = MockCetClient(status_code=500, text="down")
        _engine(
            db, profile_configuration, _leads(1), event_logger, client, emit_summary=True
        ).run()
        summary = db.query(EventLogEntry).filter(EventLogEntry.lead_id.is_(None)).one()
        assert summary.status == STATUS_FAILED

    def test_empty_source(self, db, event_logger, profile_configuration):
        result = _engine(db, profile_configuration, [], event_logger).run()
        assert result.processed == 0
        assert result.log_entries_written == 0

    def test_source_failure_stops_run_but_flushes(
        self, db, event_logger, profile_configuration
    ):
        engine = HistoricalSyncEngine(
            db,
            profile_configuration.id,
            MockRecordSource(_leads(5), fail_after=3),
            cet_client=MockCetClient(),
            event_logger=event_logger,
            emit_summary=False,
        )
        result = engine.run(chunk_size=2)

        assert result.error == "Mock query failure"
        assert result.processed == 2
        assert db.query(EventLogEntry).count() == 2

    def test_crm_connection_drop_still_flushes(self, db, event_logger, profile_configuration):
        def rows(soql):
            yield {"attributes": {"type": "Lead"}, **SAMPLE_LEAD}
            raise requests.exceptions.ConnectionError("connection reset")

        crm = MagicMock()
        crm.query_all_iter.side_effect = rows
        client = MockCetClient()
        engine = HistoricalSyncEngine(
            db,
            profile_configuration.id,
            SalesforceRecordSource(client=crm),
            cet_client=client,
            event_logger=event_logger,
            emit_summary=False,
        )

        result = engine.run(chunk_size=1)

        assert "connection reset" in result.error
        assert result.processed == 1
        assert len(client.requests) == 1
        entries = db.query(EventLogEntry).all()
        assert len(entries) == 1
        assert entries[0].lead_id == SAMPLE_LEAD["Id"]

    def test_unexpected_source_error_still_flushes(
        self, db, event_logger, profile_configuration
    ):
        def rows(soql):
            yield from _leads(2)
            raise RuntimeError("cursor exploded")

        source = MockRecordSource()
        source.query = rows
        engine = HistoricalSyncEngine(
            db,
            profile_configuration.id,
            source,
            cet_client=MockCetClient(),
            event_logger=event_logger,
            emit_summary=True,
        )

        result = engine.run(chunk_size=5)

        assert result.error == "Unexpected error: cursor exploded"
        assert result.processed == 2
        # two record entries plus the summary
        assert db.query(EventLogEntry).count() == 3

    def test_runs_in_async_context(self, db, event_logger, profile_configuration):
        seen = []
        client = MockCetClient()
        real_upload = client.upload

        def upload(*args, **kwargs):
            seen.append(in_async_context())
            return real_upload(*args, **kwargs)

        client.upload = upload
        _engine(db, profile_configuration, _leads(1), event_logger, client).run()
        assert seen == [True]
        assert in_async_context() is False

    def test_unknown_configuration(self, db, event_logger):
        engine = HistoricalSyncEngine(
            db, "missing", MockRecordSource([]), event_logger=event_logger
        )
        with pytest.raises(ValueError, match="not found"):
            engine.run()


class TestChunkedControl:
    def test_external_driver(self, db, event_logger, profile_configuration):
        """A scheduler can drive start / execute_chunk / finish itself."""
        engine = _engine(db, profile_configuration, _leads(4), event_logger)
        cursor = engine.start()
        state = engine.new_state()

        for chunk in cursor.chunks(3):
            engine.execute_chunk(state, chunk)
            assert db.query(EventLogEntry).count() == 0

        assert len(state.pending_entries) == 4
        result = engine.finish(state)

        assert result.processed == 4
        assert state.pending_entries == []
        assert db.query(EventLogEntry).count() == 4
