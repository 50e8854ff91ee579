"""
ID generation utilities for the compliance core
Unique identifiers for audit entries and journal entries
"""

import uuid
from datetime import datetime, UTC


def generate_audit_id() -> str:
    """Generate audit entry ID"""
    return f"audit_{uuid.uuid4()}"


def generate_journal_entry_id() -> str:
    """Generate journal entry ID"""
    return f"entry_{uuid.uuid4().hex}"


def utcnow() -> datetime:
    """Naive UTC now, matching how the store persists timestamps"""
    return datetime.now(UTC).replace(tzinfo=None)
