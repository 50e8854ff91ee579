"""
Compliance platform facade
The operation surface exposed to collaborators: onboarding, invite
redemption, consent changes, gated writes and analysis requests
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

import structlog
from sqlalchemy.orm import Session

from .accounts import AccountService
from .analysis import AnalysisClient, AnalysisResult
from .audit import (
    AuditLogEntry, AuditSink, SQLAuditSink, AnalysisDetails, InviteRedemptionDetails,
    JournalEntryDetails, emit_audit,
)
from .config import ComplianceConfig, get_config
from .consent import ConsentGate, ConsentRecord, ConsentStore, ConsentSubmission
from .constants import APP_ORIGIN, AnalysisFailureKinds, AuditActions, ResourceTypes
from .exceptions import (
    AnalysisServiceError, ConsentDeniedError, InvalidArgumentError, InviteNotFoundError,
    InvitePreconditionError, StoreError, UnauthenticatedError, ComplianceError,
)
from .identity import CallerContext
from .invites import InviteLedger, LinkTransaction, RedemptionFailureKind
from .maintenance import RetentionCleanupTrigger
from .privacy import DataMinimizer, GatedActions, WRITABLE_ACTIONS, get_action_policy
from .store import Database, JournalEntryRow
from .utils import generate_journal_entry_id, utcnow, validate_invite_code, validate_user_id

logger = structlog.get_logger(__name__)


def redemption_error(kind: RedemptionFailureKind) -> ComplianceError:
    """Map a redemption failure kind onto the caller-visible error"""
    if kind == RedemptionFailureKind.NOT_FOUND:
        return InviteNotFoundError(kind.value)
    if kind == RedemptionFailureKind.ALREADY_USED:
        return InvitePreconditionError(kind.value, "Invite has already been used or expired.")
    if kind == RedemptionFailureKind.EXPIRED:
        return InvitePreconditionError(kind.value, "This invite has expired.")
    if kind == RedemptionFailureKind.SELF_REDEMPTION:
        return InvitePreconditionError(kind.value, "You cannot accept your own invite.")
    if kind == RedemptionFailureKind.ALREADY_LINKED:
        return InvitePreconditionError(kind.value, "One of these accounts is already linked to a partner.")
    return StoreError("An unexpected error occurred while accepting the invite.")


class CompliancePlatform:
    """
    Wires the consent gate, minimizer, audit sink and invite transaction
    around the durable store. Handles are injected so tests can swap in
    fakes for the audit sink and the analysis service.

    Blocking store work runs in worker threads; only the analysis call is
    awaited on the event loop.
    """

    def __init__(
        self,
        database: Database,
        audit_sink: Optional[AuditSink] = None,
        analysis_client: Optional[AnalysisClient] = None,
        config: Optional[ComplianceConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or get_config()
        self.database = database
        self.audit_sink = audit_sink or SQLAuditSink(database)

        self.accounts = AccountService(database, self.audit_sink, self.config)
        self.consent_store = ConsentStore(database, self.audit_sink)
        self.gate = ConsentGate(self.consent_store, self.audit_sink)
        self.minimizer = DataMinimizer()
        self.ledger = InviteLedger(database)
        self.link_transaction = LinkTransaction(
            database, self.ledger, self.audit_sink,
            lock_enabled=self.config.invite_lock_enabled,
            clock=clock,
        )
        self.analysis_client = analysis_client or AnalysisClient(config=self.config)
        self.cleanup_trigger = RetentionCleanupTrigger(self.config)

    @staticmethod
    def _require_caller(caller: Optional[CallerContext]) -> CallerContext:
        if caller is None:
            raise UnauthenticatedError()
        return caller

    async def _audit(self, entry: AuditLogEntry) -> None:
        await asyncio.to_thread(emit_audit, self.audit_sink, entry)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def onboard_user(self, caller: Optional[CallerContext], uid: str,
                           email: Optional[str] = None,
                           display_name: Optional[str] = None) -> Dict[str, Any]:
        """Create or update the caller's account; the claimed uid must match the verified one"""
        if caller is None or caller.uid != uid:
            raise UnauthenticatedError()
        uid = validate_user_id(uid)

        await asyncio.to_thread(self.accounts.onboard, uid, email, display_name, caller.metadata)
        return {"success": True, "message": "User onboarded or updated successfully."}

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------

    async def redeem_invite(self, caller: Optional[CallerContext],
                            invite_code: Any) -> Dict[str, Any]:
        """Redeem an invite code for the caller and link both accounts"""
        caller = self._require_caller(caller)

        try:
            code = validate_invite_code(invite_code)
        except InvalidArgumentError as exc:
            await self._audit(AuditLogEntry.build(
                user_id=caller.uid,
                action=AuditActions.PARTNER_INVITE_FAILED,
                details=InviteRedemptionDetails(
                    invite_code=str(invite_code or "")[:64],
                    error=exc.error_code.lower(),
                    committed_state_change=False,
                ),
                resource_type=ResourceTypes.INVITE,
                metadata=caller.metadata,
            ))
            raise

        outcome = await asyncio.to_thread(self.link_transaction.redeem, code, caller.uid, caller.metadata)
        if not outcome.linked:
            raise redemption_error(outcome.kind)
        return {"success": True, "message": "Partner connection established successfully."}

    # ------------------------------------------------------------------
    # Consent
    # ------------------------------------------------------------------

    async def get_consent(self, caller: Optional[CallerContext]) -> Optional[ConsentRecord]:
        caller = self._require_caller(caller)
        return await asyncio.to_thread(self.consent_store.get_current, caller.uid)

    async def submit_consent(self, caller: Optional[CallerContext],
                             submission: Union[ConsentSubmission, Mapping[str, Any]]) -> ConsentRecord:
        caller = self._require_caller(caller)
        if not isinstance(submission, ConsentSubmission):
            submission = ConsentSubmission.model_validate(dict(submission))
        return await asyncio.to_thread(self.consent_store.submit, caller.uid, submission, caller.metadata)

    async def withdraw_consent(self, caller: Optional[CallerContext]) -> ConsentRecord:
        caller = self._require_caller(caller)
        return await asyncio.to_thread(self.consent_store.withdraw, caller.uid, caller.metadata)

    # ------------------------------------------------------------------
    # Gated data operations
    # ------------------------------------------------------------------

    async def gated_write(self, caller: Optional[CallerContext], action: str,
                          payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Persist a payload for a consent-gated action.

        Denials raise ConsentDeniedError; the gate's evaluation entry is
        then the only audit entry for the attempt.
        """
        caller = self._require_caller(caller)
        if action not in WRITABLE_ACTIONS:
            raise InvalidArgumentError(f"Unknown action: {action}", field="action")
        policy = get_action_policy(action)

        text = payload.get("text")
        if not isinstance(text, str) or not text.strip():
            raise InvalidArgumentError("text is required", field="text")

        decision = await asyncio.to_thread(self.gate.evaluate, caller.uid, policy.required_permissions,
                                            action=action, metadata=caller.metadata)
        if not decision.allowed:
            raise ConsentDeniedError(decision.reason, action)

        sanitized = self.minimizer.sanitize(policy, payload, decision)
        is_shared = bool(sanitized.get("isShared", False))

        try:
            entry_id = await asyncio.to_thread(
                self.database.run_in_transaction,
                lambda session: self._insert_journal_entry(session, caller.uid, sanitized["text"], is_shared)
            )
        except StoreError as exc:
            logger.error("Failed to save entry", user_id=caller.uid, error=exc.message)
            await self._audit(AuditLogEntry.build(
                user_id=caller.uid,
                action=AuditActions.JOURNAL_ENTRY_CREATE_FAILED,
                details=JournalEntryDetails(error=exc.message),
                resource_type=ResourceTypes.JOURNAL_ENTRY,
                metadata=caller.metadata,
            ))
            raise

        await self._audit(AuditLogEntry.build(
            user_id=caller.uid,
            action=AuditActions.JOURNAL_ENTRY_CREATED,
            details=JournalEntryDetails(
                is_shared=is_shared,
                text_length=len(text),
                has_consent=True,
            ),
            resource_id=entry_id,
            resource_type=ResourceTypes.JOURNAL_ENTRY,
            metadata=caller.metadata,
        ))
        return {"success": True, "id": entry_id}

    @staticmethod
    def _insert_journal_entry(session: Session, user_id: str, text: str, is_shared: bool) -> str:
        entry_id = generate_journal_entry_id()
        session.add(JournalEntryRow(
            id=entry_id,
            user_id=user_id,
            text=text,
            is_shared=is_shared,
            app_origin=APP_ORIGIN,
            analysis=json.dumps({}),
        ))
        return entry_id

    async def request_analysis(self, caller: Optional[CallerContext], text: Any) -> AnalysisResult:
        """
        Send journal text to the external analysis service.

        Consent is checked before anything leaves the platform; a denied
        request makes no outbound call and records no analysis entry.
        """
        caller = self._require_caller(caller)
        if not isinstance(text, str) or not text.strip():
            raise InvalidArgumentError("text is required", field="text")

        policy = GatedActions.REQUEST_ANALYSIS
        decision = await asyncio.to_thread(self.gate.evaluate, caller.uid, policy.required_permissions,
                                            action=policy.name, metadata=caller.metadata)
        if not decision.allowed:
            raise ConsentDeniedError(decision.reason, policy.name)

        if not self.analysis_client.configured:
            raise AnalysisServiceError(AnalysisFailureKinds.NOT_CONFIGURED,
                                       "The analysis service is not configured correctly.")

        sanitized = self.minimizer.sanitize(policy, {"text": text}, decision)

        await self._audit(AuditLogEntry.build(
            user_id=caller.uid,
            action=AuditActions.SENTIMENT_ANALYSIS_REQUESTED,
            details=AnalysisDetails(text_length=len(text), has_consent=True),
            metadata=caller.metadata,
        ))

        try:
            result = await self.analysis_client.analyze(sanitized["text"])
        except AnalysisServiceError as exc:
            await self._audit(AuditLogEntry.build(
                user_id=caller.uid,
                action=AuditActions.SENTIMENT_ANALYSIS_FAILED,
                details=AnalysisDetails(error=exc.message, kind=exc.kind),
                metadata=caller.metadata,
            ))
            raise

        await self._audit(AuditLogEntry.build(
            user_id=caller.uid,
            action=AuditActions.SENTIMENT_ANALYSIS_COMPLETED,
            details=AnalysisDetails(has_result=True, risk_level=result.risk_level),
            metadata=caller.metadata,
        ))
        return result

    async def anonymize_user_data(self, caller: Optional[CallerContext]) -> Dict[str, Any]:
        """Research anonymization hook; consent-gated, anonymization itself pending"""
        caller = self._require_caller(caller)
        policy = GatedActions.ANONYMIZE_USER_DATA
        decision = await asyncio.to_thread(self.gate.evaluate, caller.uid, policy.required_permissions,
                                            action=policy.name, metadata=caller.metadata)
        if not decision.allowed:
            raise ConsentDeniedError(decision.reason, policy.name)

        logger.info("Anonymization function called", user_id=caller.uid)
        return {"success": True, "message": "Anonymization not yet implemented."}

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_expired_data(self, token: Optional[str]) -> Dict[str, Any]:
        return self.cleanup_trigger.run(token)
