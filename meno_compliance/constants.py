"""
Constants for the MenoWellness compliance core

Centralized identifiers for audit actions, gate reasons, redemption
failure kinds, table names and domain defaults.
"""

from typing import Final

# =============================================================================
# SERVICE IDENTIFICATION
# =============================================================================

SERVICE_NAME: Final[str] = "meno-compliance"
SERVICE_VERSION: Final[str] = "0.1.0"
APP_ORIGIN: Final[str] = "MenoWellness"

# =============================================================================
# STORE COLLECTIONS
# =============================================================================

class Collections:
    """Table names of the durable store"""
    USERS: Final[str] = "users"
    CONSENTS: Final[str] = "user_consents"
    INVITES: Final[str] = "invites"
    AUDIT_LOGS: Final[str] = "audit_logs"
    JOURNAL_ENTRIES: Final[str] = "journal_entries"
    DATA_RETENTION: Final[str] = "data_retention"


# =============================================================================
# AUDIT ACTIONS
# =============================================================================

class AuditActions:
    """Audit action tags"""
    USER_ONBOARDED: Final[str] = "user_onboarded"

    CONSENT_GIVEN: Final[str] = "consent_given"
    CONSENT_WITHDRAWN: Final[str] = "consent_withdrawn"
    CONSENT_EVALUATED: Final[str] = "consent_evaluated"

    PARTNER_ACCEPTED_INVITE: Final[str] = "partner_accepted_invite"
    PARTNER_INVITE_FAILED: Final[str] = "partner_invite_failed"

    JOURNAL_ENTRY_CREATED: Final[str] = "journal_entry_created"
    JOURNAL_ENTRY_CREATE_FAILED: Final[str] = "journal_entry_create_failed"

    SENTIMENT_ANALYSIS_REQUESTED: Final[str] = "sentiment_analysis_requested"
    SENTIMENT_ANALYSIS_COMPLETED: Final[str] = "sentiment_analysis_completed"
    SENTIMENT_ANALYSIS_FAILED: Final[str] = "sentiment_analysis_failed"


class ResourceTypes:
    """Audit resource type tags"""
    USER: Final[str] = "user"
    INVITE: Final[str] = "invite"
    JOURNAL_ENTRY: Final[str] = "journal_entry"
    CONSENT: Final[str] = "consent"


# =============================================================================
# GATE REASONS
# =============================================================================

class DenyReasons:
    """Machine-readable consent gate denial reasons"""
    NO_CONSENT_RECORD: Final[str] = "no_consent_record"
    CONSENT_WITHDRAWN: Final[str] = "consent_withdrawn"
    PERMISSION_NOT_GRANTED_PREFIX: Final[str] = "permission_not_granted:"

    @classmethod
    def permission_not_granted(cls, permission: str) -> str:
        return f"{cls.PERMISSION_NOT_GRANTED_PREFIX}{permission}"


# =============================================================================
# DATA MINIMIZATION
# =============================================================================

CONSENT_REQUIRED_SENTINEL: Final[str] = "[CONSENT_REQUIRED]"

# =============================================================================
# REQUEST METADATA DEFAULTS
# =============================================================================

DEFAULT_IP_ADDRESS: Final[str] = "0.0.0.0"
DEFAULT_USER_AGENT: Final[str] = "Unknown"

# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCodes:
    """Standardized error codes for the compliance core"""
    UNAUTHENTICATED: Final[str] = "UNAUTHENTICATED"
    INVALID_ARGUMENT: Final[str] = "INVALID_ARGUMENT"
    PERMISSION_DENIED: Final[str] = "PERMISSION_DENIED"
    NOT_FOUND: Final[str] = "NOT_FOUND"
    FAILED_PRECONDITION: Final[str] = "FAILED_PRECONDITION"
    INTERNAL: Final[str] = "INTERNAL"
    ANALYSIS_FAILED: Final[str] = "ANALYSIS_FAILED"


class AnalysisFailureKinds:
    """Failure kinds of the external analysis service"""
    NOT_CONFIGURED: Final[str] = "analysis_not_configured"
    UNAVAILABLE: Final[str] = "analysis_unavailable"
    TIMEOUT: Final[str] = "analysis_timeout"
    HTTP_ERROR: Final[str] = "analysis_http_error"
    INVALID_RESPONSE: Final[str] = "analysis_invalid_response"


# =============================================================================
# RETENTION
# =============================================================================

class RetentionDefaults:
    """Default data retention record values"""
    DATA_TYPE: Final[str] = "personal"
    PERIOD_DAYS: Final[int] = 2555
    JURISDICTION: Final[str] = "OTHER"
