"""Tests for audit entries and sinks."""

from __future__ import annotations

from meno_compliance.audit import (
    AuditLogEntry, InMemoryAuditSink, JournalEntryDetails, RequestMetadata,
    GateEvaluationDetails, emit_audit,
)
from meno_compliance.constants import AuditActions


class TestAuditDetails:
    def test_details_are_camel_cased_and_sparse(self) -> None:
        details = JournalEntryDetails(is_shared=True, text_length=12)

        assert details.to_payload() == {"isShared": True, "textLength": 12}

    def test_unknown_detail_keys_are_ignored(self) -> None:
        details = GateEvaluationDetails.model_validate(
            {"allowed": False, "reason": "no_consent_record", "futureField": "x"}
        )

        assert details.to_payload() == {
            "allowed": False,
            "reason": "no_consent_record",
            "permissions": [],
        }

    def test_build_applies_request_metadata_defaults(self) -> None:
        entry = AuditLogEntry.build("U1", AuditActions.CONSENT_GIVEN)

        assert entry.ip_address == "0.0.0.0"
        assert entry.user_agent == "Unknown"
        assert entry.details == {}
        assert entry.timestamp is None
        assert entry.id.startswith("audit_")


class TestSQLAuditSink:
    def test_record_assigns_store_timestamp_and_sequence(self, audit_sink) -> None:
        stored = audit_sink.record(AuditLogEntry.build(
            "U1",
            AuditActions.USER_ONBOARDED,
            metadata=RequestMetadata(ip_address="10.1.1.1", user_agent="agent/1"),
        ))

        assert stored.timestamp is not None
        assert stored.sequence is not None
        assert stored.ip_address == "10.1.1.1"
        assert stored.user_agent == "agent/1"

    def test_entries_keep_submission_order_per_user(self, audit_sink) -> None:
        actions = [
            AuditActions.USER_ONBOARDED,
            AuditActions.CONSENT_GIVEN,
            AuditActions.CONSENT_WITHDRAWN,
            AuditActions.CONSENT_GIVEN,
        ]
        for action in actions:
            audit_sink.record(AuditLogEntry.build("U1", action))
        audit_sink.record(AuditLogEntry.build("U2", AuditActions.USER_ONBOARDED))

        entries = audit_sink.list_entries(user_id="U1")

        assert [e.action for e in entries] == actions
        sequences = [e.sequence for e in entries]
        assert sequences == sorted(sequences)

    def test_details_round_trip_through_store(self, audit_sink) -> None:
        audit_sink.record(AuditLogEntry.build(
            "U1",
            AuditActions.JOURNAL_ENTRY_CREATED,
            details=JournalEntryDetails(is_shared=False, text_length=3, has_consent=True),
            resource_id="entry_1",
            resource_type="journal_entry",
        ))

        [entry] = audit_sink.list_entries(action=AuditActions.JOURNAL_ENTRY_CREATED)

        assert entry.details == {"isShared": False, "textLength": 3, "hasConsent": True}
        assert entry.resource_id == "entry_1"
        assert entry.resource_type == "journal_entry"


class TestEmitAudit:
    def test_failures_are_swallowed(self, failing_audit_sink) -> None:
        result = emit_audit(failing_audit_sink, AuditLogEntry.build("U1", AuditActions.CONSENT_GIVEN))

        assert result is None
        assert len(failing_audit_sink.attempts) == 1

    def test_success_returns_stored_entry(self) -> None:
        sink = InMemoryAuditSink()

        result = emit_audit(sink, AuditLogEntry.build("U1", AuditActions.CONSENT_GIVEN))

        assert result is not None
        assert result.sequence == 1
        assert sink.list_entries(user_id="U1") == [result]
