"""
Audit Subpackage for the compliance core

Append-only audit trail for consent changes, gated data operations,
invite redemptions and analysis requests.
"""

from .models import (
    AuditLogEntry, RequestMetadata, AuditDetails, OnboardingDetails,
    ConsentChangeDetails, GateEvaluationDetails, InviteRedemptionDetails,
    JournalEntryDetails, AnalysisDetails,
)
from .sink import AuditSink, SQLAuditSink, InMemoryAuditSink, emit_audit

__all__ = [
    "AuditLogEntry",
    "RequestMetadata",
    "AuditDetails",
    "OnboardingDetails",
    "ConsentChangeDetails",
    "GateEvaluationDetails",
    "InviteRedemptionDetails",
    "JournalEntryDetails",
    "AnalysisDetails",
    "AuditSink",
    "SQLAuditSink",
    "InMemoryAuditSink",
    "emit_audit",
]
