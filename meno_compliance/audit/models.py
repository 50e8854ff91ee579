"""
Audit data models for the compliance core
Audit entry structure and the typed details recorded per action kind
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..constants import DEFAULT_IP_ADDRESS, DEFAULT_USER_AGENT
from ..utils.ids import generate_audit_id


class RequestMetadata(BaseModel):
    """Caller network/client metadata attached to audit entries"""
    ip_address: str = DEFAULT_IP_ADDRESS
    user_agent: str = DEFAULT_USER_AGENT


class AuditDetails(BaseModel):
    """Base for typed audit details; unknown keys are ignored, keys are camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OnboardingDetails(AuditDetails):
    email: Optional[str] = None
    display_name: Optional[str] = None


class ConsentChangeDetails(AuditDetails):
    permissions: Dict[str, bool] = Field(default_factory=dict)


class GateEvaluationDetails(AuditDetails):
    allowed: bool
    reason: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    gated_action: Optional[str] = None


class InviteRedemptionDetails(AuditDetails):
    invite_code: str
    error: Optional[str] = None
    committed_state_change: Optional[bool] = None


class JournalEntryDetails(AuditDetails):
    is_shared: Optional[bool] = None
    text_length: Optional[int] = None
    has_consent: Optional[bool] = None
    error: Optional[str] = None


class AnalysisDetails(AuditDetails):
    text_length: Optional[int] = None
    has_consent: Optional[bool] = None
    has_result: Optional[bool] = None
    risk_level: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[str] = None


class AuditLogEntry(BaseModel):
    """
    Immutable record of a compliance-relevant action.

    timestamp and sequence are assigned by the sink when the entry is
    durably appended; callers never supply them.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_audit_id)
    user_id: str
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    resource_id: Optional[str] = None
    resource_type: Optional[str] = None
    ip_address: str = DEFAULT_IP_ADDRESS
    user_agent: str = DEFAULT_USER_AGENT
    timestamp: Optional[datetime] = None
    sequence: Optional[int] = None

    @classmethod
    def build(
        cls,
        user_id: str,
        action: str,
        details: Optional[AuditDetails] = None,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        metadata: Optional[RequestMetadata] = None,
    ) -> "AuditLogEntry":
        """Create an entry from typed details and request metadata"""
        metadata = metadata or RequestMetadata()
        return cls(
            user_id=user_id,
            action=action,
            details=details.to_payload() if details else {},
            resource_id=resource_id,
            resource_type=resource_type,
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent,
        )
