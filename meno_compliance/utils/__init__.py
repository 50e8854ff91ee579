"""
Utility functions for the compliance core
ID generation and input validation
"""

from .ids import generate_audit_id, generate_journal_entry_id, utcnow
from .validators import validate_user_id, validate_invite_code

__all__ = [
    "generate_audit_id",
    "generate_journal_entry_id",
    "utcnow",
    "validate_user_id",
    "validate_invite_code",
]
