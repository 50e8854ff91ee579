"""
Consent gate for the compliance core
Per-action consent evaluation with audited outcomes
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

import structlog

from ..audit.models import AuditLogEntry, GateEvaluationDetails, RequestMetadata
from ..audit.sink import AuditSink, emit_audit
from ..constants import AuditActions, DenyReasons
from .models import ConsentRecord, Permission
from .store import ConsentStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GateDecision:
    """Allow, or deny with a machine-readable reason"""
    allowed: bool
    permissions: FrozenSet[Permission]
    reason: Optional[str] = None

    @classmethod
    def allow(cls, permissions: Iterable[Permission]) -> "GateDecision":
        return cls(allowed=True, permissions=frozenset(permissions))

    @classmethod
    def deny(cls, reason: str, permissions: Iterable[Permission]) -> "GateDecision":
        return cls(allowed=False, permissions=frozenset(permissions), reason=reason)

    def permission_names(self) -> List[str]:
        return sorted(p.value for p in self.permissions)


def decide(record: Optional[ConsentRecord],
           required_permissions: Iterable[Permission]) -> GateDecision:
    """
    Pure consent decision.

    A missing record denies everything. A withdrawal newer than the grant
    denies everything. Otherwise every required flag must be set; the first
    missing flag (in name order) is reported.
    """
    required = frozenset(required_permissions)

    if record is None:
        return GateDecision.deny(DenyReasons.NO_CONSENT_RECORD, required)

    if record.is_withdrawn():
        return GateDecision.deny(DenyReasons.CONSENT_WITHDRAWN, required)

    for permission in sorted(required, key=lambda p: p.value):
        if not record.is_granted(permission):
            return GateDecision.deny(DenyReasons.permission_not_granted(permission.value), required)

    return GateDecision.allow(required)


class ConsentGate:
    """Evaluates consent before sensitive operations and audits every evaluation"""

    def __init__(self, consent_store: ConsentStore, audit_sink: AuditSink):
        self.consent_store = consent_store
        self.audit_sink = audit_sink

    def evaluate(self, user_id: str, required_permissions: Iterable[Permission],
                 action: Optional[str] = None,
                 metadata: Optional[RequestMetadata] = None) -> GateDecision:
        """
        Evaluate the caller's current consent against the required permissions.

        Store read failures propagate: consent enforcement is hard-blocking.
        Audit failures are swallowed by emit_audit.
        """
        record = self.consent_store.get_current(user_id)
        decision = decide(record, required_permissions)

        if decision.allowed:
            logger.info("Consent check passed", user_id=user_id, action=action,
                        permissions=decision.permission_names())
        else:
            logger.warning("Consent check failed", user_id=user_id, action=action,
                           permissions=decision.permission_names(), reason=decision.reason)

        emit_audit(self.audit_sink, AuditLogEntry.build(
            user_id=user_id,
            action=AuditActions.CONSENT_EVALUATED,
            details=GateEvaluationDetails(
                allowed=decision.allowed,
                reason=decision.reason,
                permissions=decision.permission_names(),
                gated_action=action,
            ),
            metadata=metadata,
        ))
        return decision
