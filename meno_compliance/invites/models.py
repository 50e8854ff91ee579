"""
Invite and account models for the compliance core
Invite lifecycle, account roles and the redemption result type
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class InviteStatus(str, Enum):
    """Invite lifecycle; completed and expired are terminal"""
    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"


class UserRole(str, Enum):
    PRIMARY = "primary"
    PARTNER = "partner"
    UNLINKED = "unlinked"


class RedemptionFailureKind(str, Enum):
    """Reasons a redemption does not link the accounts"""
    NOT_FOUND = "invite_not_found"
    ALREADY_USED = "invite_already_used"
    EXPIRED = "invite_expired"
    SELF_REDEMPTION = "invite_self_redemption"
    ALREADY_LINKED = "invite_account_already_linked"
    INTERNAL = "internal"


class InviteRecord(BaseModel):
    code: str
    from_user_id: str
    status: InviteStatus
    expires_at: datetime
    accepted_by: Optional[str] = None
    completed_at: Optional[datetime] = None


class UserAccount(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: UserRole = UserRole.PRIMARY
    partner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None


@dataclass(frozen=True)
class RedemptionOutcome:
    """
    Result of one redemption attempt.

    committed_state_change is True when the attempt durably changed the
    invite, which happens on a successful link and when the first late
    attempt closes an expired invite.
    """
    linked: bool
    kind: Optional[RedemptionFailureKind] = None
    committed_state_change: bool = False
    primary_user_id: Optional[str] = None

    @classmethod
    def success(cls, primary_user_id: str) -> "RedemptionOutcome":
        return cls(linked=True, committed_state_change=True, primary_user_id=primary_user_id)

    @classmethod
    def failure(cls, kind: RedemptionFailureKind,
                committed_state_change: bool = False) -> "RedemptionOutcome":
        return cls(linked=False, kind=kind, committed_state_change=committed_state_change)
