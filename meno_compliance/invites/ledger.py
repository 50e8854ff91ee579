"""
Invite ledger for the compliance core
Read access to invite records; mutation only happens inside LinkTransaction
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..store.database import Database, InviteRow
from .models import InviteRecord, InviteStatus


class InviteLedger:
    """Durable invite records; exposes no standalone mutation methods"""

    def __init__(self, database: Database):
        self.database = database

    def lookup(self, session: Session, code: str) -> Optional[InviteRow]:
        """
        Load an invite row for update inside the caller's transaction.

        Backends that support row locks hold one on the invite until the
        transaction ends.
        """
        query = select(InviteRow).where(InviteRow.code == code).with_for_update()
        return session.scalars(query).first()

    def get(self, code: str) -> Optional[InviteRecord]:
        """Read-only snapshot of an invite"""
        def _read(session: Session) -> Optional[InviteRecord]:
            row = session.get(InviteRow, code)
            return self.to_record(row) if row is not None else None

        return self.database.run_in_transaction(_read)

    @staticmethod
    def to_record(row: InviteRow) -> InviteRecord:
        return InviteRecord(
            code=row.code,
            from_user_id=row.from_user_id,
            status=InviteStatus(row.status),
            expires_at=row.expires_at,
            accepted_by=row.accepted_by,
            completed_at=row.completed_at,
        )
