"""Shared fixtures for compliance core tests."""

from __future__ import annotations

from datetime import timedelta
from typing import Callable, List, Optional

import pytest

from meno_compliance.audit import AuditLogEntry, AuditSink, SQLAuditSink
from meno_compliance.config import ComplianceConfig
from meno_compliance.consent import ConsentSubmission
from meno_compliance.identity import CallerContext
from meno_compliance.invites import InviteStatus, UserRole
from meno_compliance.store import ConsentRow, Database, InviteRow, UserRow
from meno_compliance.utils import utcnow


class FailingAuditSink(AuditSink):
    """Audit sink whose every write fails."""

    def __init__(self) -> None:
        self.attempts: List[AuditLogEntry] = []

    def record(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.attempts.append(entry)
        raise RuntimeError("audit backend unavailable")

    def list_entries(self, user_id=None, action=None, limit=100) -> List[AuditLogEntry]:
        return []


@pytest.fixture
def database(tmp_path) -> Database:
    db = Database(f"sqlite:///{tmp_path / 'meno.db'}", max_retries=3)
    yield db
    db.dispose()


@pytest.fixture
def audit_sink(database: Database) -> SQLAuditSink:
    return SQLAuditSink(database)


@pytest.fixture
def failing_audit_sink() -> FailingAuditSink:
    return FailingAuditSink()


@pytest.fixture
def config() -> ComplianceConfig:
    return ComplianceConfig(
        database_url="sqlite:///:memory:",
        cleanup_trigger_secret="cron-secret",
        identity_secret="test-identity-secret",
        analysis_api_url="https://analysis.example/analyze",
        invite_lock_enabled=True,
    )


@pytest.fixture
def seed_user(database: Database) -> Callable[..., None]:
    def _seed(uid: str, role: UserRole = UserRole.PRIMARY, partner_id: Optional[str] = None) -> None:
        with database.session() as session:
            session.add(UserRow(uid=uid, role=role.value, partner_id=partner_id))
            session.commit()
    return _seed


@pytest.fixture
def seed_invite(database: Database) -> Callable[..., None]:
    def _seed(code: str, from_user_id: str,
              status: InviteStatus = InviteStatus.PENDING,
              expires_in: timedelta = timedelta(days=7)) -> None:
        with database.session() as session:
            session.add(InviteRow(
                code=code,
                from_user_id=from_user_id,
                status=status.value,
                expires_at=utcnow() + expires_in,
            ))
            session.commit()
    return _seed


@pytest.fixture
def get_user(database: Database) -> Callable[[str], Optional[UserRow]]:
    def _get(uid: str) -> Optional[UserRow]:
        with database.session() as session:
            return session.get(UserRow, uid)
    return _get


@pytest.fixture
def get_invite(database: Database) -> Callable[[str], Optional[InviteRow]]:
    def _get(code: str) -> Optional[InviteRow]:
        with database.session() as session:
            return session.get(InviteRow, code)
    return _get


@pytest.fixture
def consent_row_count(database: Database) -> Callable[[], int]:
    def _count() -> int:
        with database.session() as session:
            return session.query(ConsentRow).count()
    return _count


def caller(uid: str) -> CallerContext:
    return CallerContext(uid=uid, ip_address="10.0.0.1", user_agent="pytest")


@pytest.fixture
def make_caller() -> Callable[[str], CallerContext]:
    return caller


@pytest.fixture
def all_granted() -> ConsentSubmission:
    return ConsentSubmission(
        data_processing=True,
        sentiment_analysis=True,
        anonymized_licensing=True,
        research_participation=True,
    )
