"""
Invite redemption state machine for the compliance core
Atomic, race-free linking of a primary account and its partner
"""

import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager, nullcontext
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..audit.models import AuditLogEntry, InviteRedemptionDetails, RequestMetadata
from ..audit.sink import AuditSink, emit_audit
from ..config import get_config
from ..constants import AuditActions, ResourceTypes
from ..exceptions import StoreError
from ..store.database import Database, UserRow
from ..utils.ids import utcnow
from .ledger import InviteLedger
from .models import InviteStatus, RedemptionFailureKind, RedemptionOutcome, UserRole

logger = structlog.get_logger(__name__)


class KeyedLock:
    """Process-local single-writer locks keyed by string"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._holders: Dict[str, int] = defaultdict(int)

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold every key, acquired in sorted order"""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._hold_one(key))
            yield

    @contextmanager
    def _hold_one(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
            self._holders[key] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[key] -= 1
                if self._holders[key] == 0:
                    del self._holders[key]
                    del self._locks[key]


class LinkTransaction:
    """
    Redeems an invite and links both accounts in one atomic transaction.

    pending -> completed on success, pending -> expired on the first late
    attempt; both terminal states are absorbing. The audit entry is written
    after the transaction so an audit failure never undoes a link.
    """

    def __init__(self, database: Database, ledger: InviteLedger, audit_sink: AuditSink,
                 lock_enabled: Optional[bool] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.database = database
        self.ledger = ledger
        self.audit_sink = audit_sink
        self.clock = clock
        if lock_enabled is None:
            lock_enabled = get_config().invite_lock_enabled
        self._locks = KeyedLock() if lock_enabled else None

    def redeem(self, code: str, redeeming_user_id: str,
               metadata: Optional[RequestMetadata] = None) -> RedemptionOutcome:
        try:
            guard = nullcontext()
            if self._locks:
                guard = self._locks.hold(*self._lock_keys(code, redeeming_user_id))
            with guard:
                outcome = self.database.run_in_transaction(
                    lambda session: self._apply(session, code, redeeming_user_id)
                )
        except StoreError as e:
            logger.error("Invite redemption transaction failed", invite_code=code,
                         user_id=redeeming_user_id, error=str(e))
            outcome = RedemptionOutcome.failure(RedemptionFailureKind.INTERNAL)

        if outcome.linked:
            logger.info("Partner linked", invite_code=code, user_id=redeeming_user_id,
                        primary_user_id=outcome.primary_user_id)
            emit_audit(self.audit_sink, AuditLogEntry.build(
                user_id=redeeming_user_id,
                action=AuditActions.PARTNER_ACCEPTED_INVITE,
                details=InviteRedemptionDetails(invite_code=code),
                resource_id=code,
                resource_type=ResourceTypes.INVITE,
                metadata=metadata,
            ))
        else:
            logger.warning("Invite redemption failed", invite_code=code,
                           user_id=redeeming_user_id, kind=outcome.kind.value)
            emit_audit(self.audit_sink, AuditLogEntry.build(
                user_id=redeeming_user_id,
                action=AuditActions.PARTNER_INVITE_FAILED,
                details=InviteRedemptionDetails(
                    invite_code=code,
                    error=outcome.kind.value,
                    committed_state_change=outcome.committed_state_change,
                ),
                resource_id=code,
                resource_type=ResourceTypes.INVITE,
                metadata=metadata,
            ))
        return outcome

    def _lock_keys(self, code: str, redeeming_user_id: str) -> List[str]:
        """The invite plus every account the redemption may link"""
        keys = [f"invite:{code}", f"user:{redeeming_user_id}"]
        # from_user_id never changes, so a snapshot read is enough to pick the lock
        invite = self.ledger.get(code)
        if invite is not None:
            keys.append(f"user:{invite.from_user_id}")
        return keys

    def _apply(self, session: Session, code: str, redeeming_user_id: str) -> RedemptionOutcome:
        invite = self.ledger.lookup(session, code)
        if invite is None:
            return RedemptionOutcome.failure(RedemptionFailureKind.NOT_FOUND)

        if invite.status == InviteStatus.COMPLETED.value:
            return RedemptionOutcome.failure(RedemptionFailureKind.ALREADY_USED)
        if invite.status == InviteStatus.EXPIRED.value:
            return RedemptionOutcome.failure(RedemptionFailureKind.EXPIRED)

        if invite.expires_at < self.clock():
            # Closing the invite commits with this failure
            invite.status = InviteStatus.EXPIRED.value
            return RedemptionOutcome.failure(RedemptionFailureKind.EXPIRED,
                                             committed_state_change=True)

        primary_user_id = invite.from_user_id
        if primary_user_id == redeeming_user_id:
            return RedemptionOutcome.failure(RedemptionFailureKind.SELF_REDEMPTION)

        primary = session.get(UserRow, primary_user_id, with_for_update=True)
        partner = session.get(UserRow, redeeming_user_id, with_for_update=True)
        if primary is None or partner is None:
            logger.error("Invite references a missing account", invite_code=code,
                         primary_found=primary is not None, partner_found=partner is not None)
            return RedemptionOutcome.failure(RedemptionFailureKind.INTERNAL)

        if (primary.partner_id not in (None, redeeming_user_id)
                or partner.partner_id not in (None, primary_user_id)):
            logger.warning("Invite would break an existing partner link", invite_code=code,
                           primary_partner_id=primary.partner_id,
                           partner_partner_id=partner.partner_id)
            return RedemptionOutcome.failure(RedemptionFailureKind.ALREADY_LINKED)

        primary.partner_id = redeeming_user_id
        partner.partner_id = primary_user_id
        partner.role = UserRole.PARTNER.value

        invite.status = InviteStatus.COMPLETED.value
        invite.accepted_by = redeeming_user_id
        invite.completed_at = func.now()

        return RedemptionOutcome.success(primary_user_id)
