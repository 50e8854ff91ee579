"""
Account onboarding for the compliance core
Creates or refreshes the user account and its retention record
"""

from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..audit.models import AuditLogEntry, OnboardingDetails, RequestMetadata
from ..audit.sink import AuditSink, emit_audit
from ..config import ComplianceConfig, get_config
from ..constants import AuditActions, ResourceTypes, RetentionDefaults
from ..exceptions import StoreError
from ..invites.models import UserAccount, UserRole
from ..store.database import Database, RetentionRow, UserRow

logger = structlog.get_logger(__name__)


class AccountService:
    """User accounts; created on first onboarding, never deleted here"""

    def __init__(self, database: Database, audit_sink: AuditSink,
                 config: Optional[ComplianceConfig] = None):
        self.database = database
        self.audit_sink = audit_sink
        self.config = config or get_config()

    def onboard(self, uid: str, email: Optional[str] = None,
                display_name: Optional[str] = None,
                metadata: Optional[RequestMetadata] = None) -> UserAccount:
        """
        Create the account on first call, otherwise merge profile fields.

        Role and partner link are left untouched for existing accounts so
        re-onboarding a linked partner never unlinks it.
        """
        try:
            account = self.database.run_in_transaction(
                lambda session: self._upsert(session, uid, email, display_name)
            )
        except StoreError as exc:
            logger.error("Onboarding error", user_id=uid, error=exc.message)
            raise StoreError("Failed to onboard user.") from exc

        logger.info("User onboarded", user_id=uid, role=account.role.value)
        emit_audit(self.audit_sink, AuditLogEntry.build(
            user_id=uid,
            action=AuditActions.USER_ONBOARDED,
            details=OnboardingDetails(email=email, display_name=display_name),
            resource_id=uid,
            resource_type=ResourceTypes.USER,
            metadata=metadata,
        ))
        return account

    def get(self, uid: str) -> Optional[UserAccount]:
        with self.database.session() as session:
            row = session.get(UserRow, uid)
            if row is None:
                return None
            return self._from_row(row)

    def _upsert(self, session: Session, uid: str, email: Optional[str],
                display_name: Optional[str]) -> UserAccount:
        row = session.get(UserRow, uid)
        if row is None:
            row = UserRow(uid=uid, role=UserRole.PRIMARY.value)
            session.add(row)
        if email is not None:
            row.email = email
        if display_name is not None:
            row.display_name = display_name
        row.last_active_at = func.now()

        if session.get(RetentionRow, uid) is None:
            session.add(RetentionRow(
                user_id=uid,
                data_type=RetentionDefaults.DATA_TYPE,
                retention_period_days=self.config.retention_period_days,
                jurisdiction=self.config.retention_jurisdiction,
            ))

        session.flush()
        session.refresh(row)
        return self._from_row(row)

    @staticmethod
    def _from_row(row: UserRow) -> UserAccount:
        return UserAccount(
            uid=row.uid,
            email=row.email,
            display_name=row.display_name,
            role=UserRole(row.role),
            partner_id=row.partner_id,
            created_at=row.created_at,
            last_active_at=row.last_active_at,
        )
