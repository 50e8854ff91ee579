"""Tests for the compliance platform operation surface."""

from __future__ import annotations

import json
import threading

import httpx
import pytest

from meno_compliance.analysis import AnalysisClient
from meno_compliance.audit import InMemoryAuditSink
from meno_compliance.constants import AuditActions
from meno_compliance.exceptions import (
    AnalysisServiceError, CleanupAuthError, ConsentDeniedError, InvalidArgumentError,
    InviteNotFoundError, InvitePreconditionError, UnauthenticatedError,
)
from meno_compliance.invites import UserRole
from meno_compliance.service import CompliancePlatform
from meno_compliance.store import JournalEntryRow, RetentionRow


class RecordingHandler:
    """httpx mock handler that records every outbound request."""

    def __init__(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {
            "sentiment": "low",
            "crisisAssessment": {"risk_level": "low"},
        }
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def platform(database, sink, config, handler) -> CompliancePlatform:
    client = AnalysisClient(transport=httpx.MockTransport(handler), config=config)
    return CompliancePlatform(database, audit_sink=sink, analysis_client=client, config=config)


def _journal_rows(database):
    with database.session() as session:
        return session.query(JournalEntryRow).all()


class TestOnboarding:
    @pytest.mark.asyncio
    async def test_onboard_creates_primary_account(self, platform, sink, make_caller,
                                                   database) -> None:
        result = await platform.onboard_user(make_caller("U1"), "U1", "u1@example.com", "Una")

        assert result["success"] is True
        account = platform.accounts.get("U1")
        assert account.role == UserRole.PRIMARY
        assert account.email == "u1@example.com"
        assert account.created_at is not None
        with database.session() as session:
            retention = session.get(RetentionRow, "U1")
        assert retention.retention_period_days == 2555
        [entry] = sink.list_entries(user_id="U1")
        assert entry.action == AuditActions.USER_ONBOARDED
        assert entry.details == {"email": "u1@example.com", "displayName": "Una"}

    @pytest.mark.asyncio
    async def test_onboard_requires_matching_caller(self, platform, make_caller) -> None:
        with pytest.raises(UnauthenticatedError):
            await platform.onboard_user(make_caller("U1"), "U2")
        with pytest.raises(UnauthenticatedError):
            await platform.onboard_user(None, "U1")

    @pytest.mark.asyncio
    async def test_reonboarding_keeps_partner_link(self, platform, make_caller, seed_user,
                                                   get_user) -> None:
        seed_user("U2", role=UserRole.PARTNER, partner_id="U1")

        await platform.onboard_user(make_caller("U2"), "U2", display_name="Partner")

        row = get_user("U2")
        assert row.role == UserRole.PARTNER.value
        assert row.partner_id == "U1"
        assert row.display_name == "Partner"


class TestGatedWrite:
    @pytest.mark.asyncio
    async def test_denied_write_leaves_no_trace_but_the_evaluation(
        self, platform, sink, make_caller, database
    ) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, {"dataProcessing": False})
        before = len(sink.list_entries(user_id="U1"))

        with pytest.raises(ConsentDeniedError) as exc_info:
            await platform.gated_write(caller, "save_journal_entry",
                                       {"text": "Hot flushes again", "isShared": False})

        assert exc_info.value.reason == "permission_not_granted:dataProcessing"
        entries = sink.list_entries(user_id="U1")
        assert len(entries) == before + 1
        evaluation = entries[-1]
        assert evaluation.action == AuditActions.CONSENT_EVALUATED
        assert evaluation.details["allowed"] is False
        assert evaluation.details["reason"] == "permission_not_granted:dataProcessing"
        assert _journal_rows(database) == []

    @pytest.mark.asyncio
    async def test_write_without_consent_record_is_denied(self, platform, make_caller) -> None:
        with pytest.raises(ConsentDeniedError) as exc_info:
            await platform.gated_write(make_caller("U1"), "save_journal_entry", {"text": "hi"})

        assert exc_info.value.reason == "no_consent_record"

    @pytest.mark.asyncio
    async def test_allowed_write_stores_only_declared_fields(
        self, platform, sink, make_caller, all_granted, database
    ) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)

        result = await platform.gated_write(
            caller, "save_journal_entry",
            {"text": "Better sleep", "isShared": True, "location": "Leeds"},
        )

        assert result["success"] is True
        [row] = _journal_rows(database)
        assert row.id == result["id"]
        assert row.text == "Better sleep"
        assert row.is_shared is True
        assert row.app_origin == "MenoWellness"
        assert "Leeds" not in row.analysis
        [created] = sink.list_entries(user_id="U1", action=AuditActions.JOURNAL_ENTRY_CREATED)
        assert created.resource_id == result["id"]
        assert created.details == {"isShared": True, "textLength": 12, "hasConsent": True}

    @pytest.mark.asyncio
    async def test_write_after_withdrawal_is_denied(self, platform, make_caller,
                                                    all_granted) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)
        await platform.withdraw_consent(caller)

        with pytest.raises(ConsentDeniedError) as exc_info:
            await platform.gated_write(caller, "save_journal_entry", {"text": "hi"})

        assert exc_info.value.reason == "consent_withdrawn"

    @pytest.mark.asyncio
    async def test_blank_text_and_unknown_action_are_rejected(self, platform, make_caller,
                                                              sink) -> None:
        caller = make_caller("U1")

        with pytest.raises(InvalidArgumentError):
            await platform.gated_write(caller, "save_journal_entry", {"text": "   "})
        with pytest.raises(InvalidArgumentError):
            await platform.gated_write(caller, "request_analysis", {"text": "hi"})

        assert sink.list_entries(user_id="U1") == []

    @pytest.mark.asyncio
    async def test_audit_outage_does_not_fail_write(self, database, config, make_caller,
                                                    all_granted, failing_audit_sink) -> None:
        platform = CompliancePlatform(database, audit_sink=failing_audit_sink, config=config)
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)

        result = await platform.gated_write(caller, "save_journal_entry", {"text": "ok"})

        assert result["success"] is True
        assert len(_journal_rows(database)) == 1


class TestAnalysis:
    @pytest.mark.asyncio
    async def test_denied_analysis_makes_no_outbound_call(self, platform, sink, handler,
                                                          make_caller) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, {"dataProcessing": True, "sentimentAnalysis": False})

        with pytest.raises(ConsentDeniedError) as exc_info:
            await platform.request_analysis(caller, "I feel anxious")

        assert exc_info.value.reason == "permission_not_granted:sentimentAnalysis"
        assert handler.requests == []
        assert sink.list_entries(action=AuditActions.SENTIMENT_ANALYSIS_REQUESTED) == []

    @pytest.mark.asyncio
    async def test_analysis_success_is_audited(self, platform, sink, handler, make_caller,
                                               all_granted) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)

        result = await platform.request_analysis(caller, "I feel calmer")

        assert result.risk_level == "low"
        [request] = handler.requests
        assert json.loads(request.content) == {"text": "I feel calmer",
                                               "focus": "Menopause Analysis"}
        actions = [e.action for e in sink.list_entries(user_id="U1")]
        assert actions[-3:] == [
            AuditActions.CONSENT_EVALUATED,
            AuditActions.SENTIMENT_ANALYSIS_REQUESTED,
            AuditActions.SENTIMENT_ANALYSIS_COMPLETED,
        ]
        completed = sink.list_entries(action=AuditActions.SENTIMENT_ANALYSIS_COMPLETED)[0]
        assert completed.details == {"hasResult": True, "riskLevel": "low"}

    @pytest.mark.asyncio
    async def test_service_error_is_classified_and_audited(self, database, sink, config,
                                                           make_caller, all_granted) -> None:
        handler = RecordingHandler(status_code=503, body={"error": "model overloaded"})
        client = AnalysisClient(transport=httpx.MockTransport(handler), config=config)
        platform = CompliancePlatform(database, audit_sink=sink, analysis_client=client,
                                      config=config)
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)

        with pytest.raises(AnalysisServiceError) as exc_info:
            await platform.request_analysis(caller, "text")

        assert exc_info.value.kind == "analysis_http_error"
        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "model overloaded"
        [failed] = sink.list_entries(action=AuditActions.SENTIMENT_ANALYSIS_FAILED)
        assert failed.details == {"error": "model overloaded", "kind": "analysis_http_error"}

    @pytest.mark.asyncio
    async def test_unconfigured_service(self, database, sink, config, make_caller,
                                        all_granted) -> None:
        client = AnalysisClient(base_url="", config=config)
        platform = CompliancePlatform(database, audit_sink=sink, analysis_client=client,
                                      config=config)
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)

        with pytest.raises(AnalysisServiceError) as exc_info:
            await platform.request_analysis(caller, "text")

        assert exc_info.value.kind == "analysis_not_configured"
        assert sink.list_entries(action=AuditActions.SENTIMENT_ANALYSIS_REQUESTED) == []


class TestRedeemInvite:
    @pytest.mark.asyncio
    async def test_redeem_success(self, platform, make_caller, seed_user, seed_invite,
                                  get_user) -> None:
        seed_user("U1")
        seed_user("U2")
        seed_invite("ABC123", "U1")

        result = await platform.redeem_invite(make_caller("U2"), "ABC123")

        assert result["success"] is True
        assert get_user("U2").partner_id == "U1"

    @pytest.mark.asyncio
    async def test_failures_map_to_caller_errors(self, platform, sink, make_caller,
                                                 seed_user, seed_invite) -> None:
        seed_user("U1")
        seed_user("U2")
        seed_user("U3")
        seed_invite("ABC123", "U1")
        await platform.redeem_invite(make_caller("U2"), "ABC123")

        with pytest.raises(InvitePreconditionError) as used:
            await platform.redeem_invite(make_caller("U3"), "ABC123")
        with pytest.raises(InviteNotFoundError):
            await platform.redeem_invite(make_caller("U3"), "MISSING1")
        seed_invite("MINE01", "U3")
        with pytest.raises(InvitePreconditionError) as own:
            await platform.redeem_invite(make_caller("U3"), "MINE01")

        assert used.value.kind == "invite_already_used"
        assert own.value.kind == "invite_self_redemption"
        assert len(sink.list_entries(user_id="U3")) == 3

    @pytest.mark.asyncio
    async def test_relinking_a_linked_account_is_rejected(self, platform, make_caller, seed_user,
                                                          seed_invite, get_user) -> None:
        for uid in ("U1", "U2", "U3"):
            seed_user(uid)
        seed_invite("ABC123", "U1")
        seed_invite("XYZ789", "U3")
        await platform.redeem_invite(make_caller("U2"), "ABC123")

        with pytest.raises(InvitePreconditionError) as exc_info:
            await platform.redeem_invite(make_caller("U2"), "XYZ789")

        assert exc_info.value.kind == "invite_account_already_linked"
        assert exc_info.value.http_status == 412
        assert get_user("U1").partner_id == "U2"

    @pytest.mark.asyncio
    async def test_redemption_runs_off_the_event_loop(self, platform, make_caller, seed_user,
                                                      seed_invite, monkeypatch) -> None:
        seed_user("U1")
        seed_user("U2")
        seed_invite("ABC123", "U1")
        redeem = platform.link_transaction.redeem
        threads = []

        def _recording_redeem(*args, **kwargs):
            threads.append(threading.get_ident())
            return redeem(*args, **kwargs)

        monkeypatch.setattr(platform.link_transaction, "redeem", _recording_redeem)

        await platform.redeem_invite(make_caller("U2"), "ABC123")

        assert threads and threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_invalid_code_is_audited(self, platform, sink, make_caller) -> None:
        with pytest.raises(InvalidArgumentError):
            await platform.redeem_invite(make_caller("U2"), "")

        [entry] = sink.list_entries(user_id="U2")
        assert entry.action == AuditActions.PARTNER_INVITE_FAILED
        assert entry.details["error"] == "invalid_argument"
        assert entry.details["committedStateChange"] is False

    @pytest.mark.asyncio
    async def test_unauthenticated_redeem(self, platform) -> None:
        with pytest.raises(UnauthenticatedError):
            await platform.redeem_invite(None, "ABC123")


class TestAnonymizeAndCleanup:
    @pytest.mark.asyncio
    async def test_anonymize_requires_licensing_consent(self, platform, make_caller) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, {"dataProcessing": True})

        with pytest.raises(ConsentDeniedError) as exc_info:
            await platform.anonymize_user_data(caller)

        assert exc_info.value.reason == "permission_not_granted:anonymizedLicensing"

    @pytest.mark.asyncio
    async def test_anonymize_placeholder(self, platform, make_caller, all_granted) -> None:
        caller = make_caller("U1")
        await platform.submit_consent(caller, all_granted)

        result = await platform.anonymize_user_data(caller)

        assert result["success"] is True

    def test_cleanup_requires_shared_secret(self, platform) -> None:
        with pytest.raises(CleanupAuthError):
            platform.cleanup_expired_data(None)
        with pytest.raises(CleanupAuthError):
            platform.cleanup_expired_data("wrong")

        first = platform.cleanup_expired_data("cron-secret")
        second = platform.cleanup_expired_data("cron-secret")

        assert first == second == {"success": True, "message": "Cleanup not yet implemented."}
