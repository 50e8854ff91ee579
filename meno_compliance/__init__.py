"""
MenoWellness Compliance Core
Consent gate, audit trail and partner invite redemption for MenoWellness
"""

__version__ = "0.1.0"
__author__ = "MenoWellness"

# Core exports
from .config import ComplianceConfig, get_config

# Audit
from .audit import AuditLogEntry, AuditSink, SQLAuditSink, InMemoryAuditSink, emit_audit

# Consent management
from .consent import (
    Permission, ConsentSubmission, ConsentRecord, ConsentStore,
    ConsentGate, GateDecision,
)

# Privacy protection
from .privacy import DataMinimizer, GatedActions

# Partner invites
from .invites import (
    InviteStatus, UserRole, RedemptionFailureKind, RedemptionOutcome,
    InviteLedger, LinkTransaction,
)

# Store and platform
from .store import Database, init_database, get_database
from .identity import CallerContext
from .service import CompliancePlatform

__all__ = [
    # Config
    "ComplianceConfig",
    "get_config",

    # Audit
    "AuditLogEntry",
    "AuditSink",
    "SQLAuditSink",
    "InMemoryAuditSink",
    "emit_audit",

    # Consent
    "Permission",
    "ConsentSubmission",
    "ConsentRecord",
    "ConsentStore",
    "ConsentGate",
    "GateDecision",

    # Privacy
    "DataMinimizer",
    "GatedActions",

    # Invites
    "InviteStatus",
    "UserRole",
    "RedemptionFailureKind",
    "RedemptionOutcome",
    "InviteLedger",
    "LinkTransaction",

    # Platform
    "Database",
    "init_database",
    "get_database",
    "CallerContext",
    "CompliancePlatform",
]
