"""
Consent storage for the compliance core
Durable current consent record per user with audited changes
"""

from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..audit.models import AuditLogEntry, ConsentChangeDetails, RequestMetadata
from ..audit.sink import AuditSink, emit_audit
from ..constants import AuditActions, ResourceTypes
from ..store.database import ConsentRow, Database
from .models import ConsentRecord, ConsentSubmission, Permission

logger = structlog.get_logger(__name__)


class ConsentStore:
    """
    Single-owner consent records.

    The owning user is the only legitimate writer, so writes are
    last-writer-wins without optimistic concurrency. Withdrawal rewrites
    the record instead of deleting it; history lives in the audit trail.
    """

    def __init__(self, database: Database, audit_sink: AuditSink):
        self.database = database
        self.audit_sink = audit_sink

    def get_current(self, user_id: str) -> Optional[ConsentRecord]:
        """Get the current consent record, or None if the user never consented"""
        with self.database.session() as session:
            row = session.get(ConsentRow, user_id)
            if row is None:
                return None
            return self._from_row(row)

    def submit(self, user_id: str, submission: ConsentSubmission,
               metadata: Optional[RequestMetadata] = None) -> ConsentRecord:
        """Overwrite the current record with the submitted flags"""
        record = self.database.run_in_transaction(
            lambda session: self._write(session, user_id, submission, withdrawn=False)
        )
        logger.info("Consent submitted", user_id=user_id, permissions=record.permissions())

        emit_audit(self.audit_sink, AuditLogEntry.build(
            user_id=user_id,
            action=AuditActions.CONSENT_GIVEN,
            details=ConsentChangeDetails(permissions=record.permissions()),
            resource_id=user_id,
            resource_type=ResourceTypes.CONSENT,
            metadata=metadata,
        ))
        return record

    def withdraw(self, user_id: str,
                 metadata: Optional[RequestMetadata] = None) -> ConsentRecord:
        """Rewrite the current record with every flag cleared and withdrawn_at set"""
        record = self.database.run_in_transaction(
            lambda session: self._write(session, user_id, ConsentSubmission.cleared(), withdrawn=True)
        )
        logger.info("Consent withdrawn", user_id=user_id)

        emit_audit(self.audit_sink, AuditLogEntry.build(
            user_id=user_id,
            action=AuditActions.CONSENT_WITHDRAWN,
            details=ConsentChangeDetails(permissions=record.permissions()),
            resource_id=user_id,
            resource_type=ResourceTypes.CONSENT,
            metadata=metadata,
        ))
        return record

    def _write(self, session: Session, user_id: str, submission: ConsentSubmission,
               withdrawn: bool) -> ConsentRecord:
        row = session.get(ConsentRow, user_id)
        if row is None:
            row = ConsentRow(user_id=user_id)
            session.add(row)

        for permission, granted in submission.flags().items():
            setattr(row, permission.field_name, granted)

        # Timestamps come from the store's clock
        if withdrawn:
            row.withdrawn_at = func.now()
        else:
            row.granted_at = func.now()
            row.withdrawn_at = None
        row.updated_at = func.now()

        session.flush()
        session.refresh(row)
        return self._from_row(row)

    @staticmethod
    def _from_row(row: ConsentRow) -> ConsentRecord:
        return ConsentRecord(
            user_id=row.user_id,
            granted_at=row.granted_at,
            withdrawn_at=row.withdrawn_at,
            updated_at=row.updated_at,
            **{p.field_name: bool(getattr(row, p.field_name)) for p in Permission},
        )
