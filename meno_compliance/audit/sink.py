"""
Audit sinks for the compliance core
Append-only recording of compliance-relevant actions
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import structlog
from sqlalchemy import select

from ..store.database import AuditLogRow, Database
from ..utils.ids import utcnow
from .models import AuditLogEntry

logger = structlog.get_logger(__name__)


class AuditSink(ABC):
    """Durable, append-only recorder of audit entries"""

    @abstractmethod
    def record(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Append an entry and return it with its assigned timestamp and sequence"""

    @abstractmethod
    def list_entries(self, user_id: Optional[str] = None, action: Optional[str] = None,
                     limit: int = 100) -> List[AuditLogEntry]:
        """Entries in append order, oldest first"""


class SQLAuditSink(AuditSink):
    """Audit sink writing to the audit_logs table; the store's clock stamps entries"""

    def __init__(self, database: Database):
        self.database = database

    def record(self, entry: AuditLogEntry) -> AuditLogEntry:
        def _append(session) -> AuditLogEntry:
            row = AuditLogRow(
                id=entry.id,
                user_id=entry.user_id,
                action=entry.action,
                details=json.dumps(entry.details),
                resource_id=entry.resource_id,
                resource_type=entry.resource_type,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return self._from_row(row)

        stored = self.database.run_in_transaction(_append)
        logger.info("Audit entry recorded", action=entry.action, user_id=entry.user_id,
                    sequence=stored.sequence)
        return stored

    def list_entries(self, user_id: Optional[str] = None, action: Optional[str] = None,
                     limit: int = 100) -> List[AuditLogEntry]:
        query = select(AuditLogRow)
        if user_id:
            query = query.where(AuditLogRow.user_id == user_id)
        if action:
            query = query.where(AuditLogRow.action == action)
        query = query.order_by(AuditLogRow.seq).limit(limit)

        with self.database.session() as session:
            return [self._from_row(row) for row in session.scalars(query)]

    @staticmethod
    def _from_row(row: AuditLogRow) -> AuditLogEntry:
        details = {}
        if row.details:
            try:
                details = json.loads(row.details)
            except json.JSONDecodeError:
                logger.warning("Invalid audit details JSON", audit_id=row.id)

        return AuditLogEntry(
            id=row.id,
            user_id=row.user_id,
            action=row.action,
            details=details,
            resource_id=row.resource_id,
            resource_type=row.resource_type,
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            timestamp=row.timestamp,
            sequence=row.seq,
        )


class InMemoryAuditSink(AuditSink):
    """In-memory audit sink for testing"""

    def __init__(self):
        self.entries: List[AuditLogEntry] = []
        self._lock = threading.Lock()

    def record(self, entry: AuditLogEntry) -> AuditLogEntry:
        with self._lock:
            stored = entry.model_copy(update={
                "timestamp": utcnow(),
                "sequence": len(self.entries) + 1,
            })
            self.entries.append(stored)
        return stored

    def list_entries(self, user_id: Optional[str] = None, action: Optional[str] = None,
                     limit: int = 100) -> List[AuditLogEntry]:
        with self._lock:
            entries = list(self.entries)
        if user_id:
            entries = [e for e in entries if e.user_id == user_id]
        if action:
            entries = [e for e in entries if e.action == action]
        return entries[:limit]


def emit_audit(sink: AuditSink, entry: AuditLogEntry) -> Optional[AuditLogEntry]:
    """
    Record an entry on a best-effort basis.

    Audit failures never propagate into the triggering operation; they
    are reported on the operational error log instead.
    """
    try:
        return sink.record(entry)
    except Exception as e:
        logger.error("Audit logging failed", action=entry.action,
                     user_id=entry.user_id, error=str(e))
        return None
