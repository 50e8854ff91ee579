"""
Durable store for the compliance core
SQLAlchemy tables and the transaction primitive
"""

from .database import (
    Base, Database, UserRow, ConsentRow, InviteRow, AuditLogRow,
    JournalEntryRow, RetentionRow, init_database, get_database,
)

__all__ = [
    "Base",
    "Database",
    "UserRow",
    "ConsentRow",
    "InviteRow",
    "AuditLogRow",
    "JournalEntryRow",
    "RetentionRow",
    "init_database",
    "get_database",
]
