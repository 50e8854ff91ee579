"""
Partner invite module for the compliance core
Invite records and the atomic redemption transaction
"""

from .models import (
    InviteStatus, UserRole, RedemptionFailureKind, InviteRecord,
    UserAccount, RedemptionOutcome,
)
from .ledger import InviteLedger
from .transaction import LinkTransaction, KeyedLock

__all__ = [
    "InviteStatus",
    "UserRole",
    "RedemptionFailureKind",
    "InviteRecord",
    "UserAccount",
    "RedemptionOutcome",
    "InviteLedger",
    "LinkTransaction",
    "KeyedLock",
]
