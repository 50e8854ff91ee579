"""
Durable transactional store for the MenoWellness compliance core
SQLAlchemy tables and the transaction primitive every component runs on
"""

import time
from typing import Callable, Optional, TypeVar

import structlog
from sqlalchemy import (
    create_engine, Column, String, Integer, Boolean, DateTime, Text, func
)
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..constants import Collections
from ..exceptions import StoreError

logger = structlog.get_logger(__name__)

Base = declarative_base()

T = TypeVar("T")

# Backoff between transaction retries (seconds), multiplied by attempt number
RETRY_BACKOFF_SECONDS = 0.05


class UserRow(Base):
    """SQLAlchemy model for user accounts"""
    __tablename__ = Collections.USERS

    uid = Column(String, primary_key=True)
    email = Column(String)
    display_name = Column(String)
    role = Column(String, nullable=False)
    partner_id = Column(String)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    last_active_at = Column(DateTime)


class ConsentRow(Base):
    """SQLAlchemy model for the current consent record of a user"""
    __tablename__ = Collections.CONSENTS

    user_id = Column(String, primary_key=True)
    data_processing = Column(Boolean, nullable=False, default=False)
    sentiment_analysis = Column(Boolean, nullable=False, default=False)
    anonymized_licensing = Column(Boolean, nullable=False, default=False)
    research_participation = Column(Boolean, nullable=False, default=False)
    granted_at = Column(DateTime)
    withdrawn_at = Column(DateTime)
    updated_at = Column(DateTime)


class InviteRow(Base):
    """SQLAlchemy model for partner invite codes"""
    __tablename__ = Collections.INVITES

    code = Column(String, primary_key=True)
    from_user_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    accepted_by = Column(String)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class AuditLogRow(Base):
    """SQLAlchemy model for append-only audit entries"""
    __tablename__ = Collections.AUDIT_LOGS

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, nullable=False, unique=True)
    user_id = Column(String, nullable=False, index=True)
    action = Column(String, nullable=False, index=True)
    details = Column(Text)  # JSON string
    resource_id = Column(String)
    resource_type = Column(String)
    timestamp = Column(DateTime, nullable=False, server_default=func.now())
    ip_address = Column(String)
    user_agent = Column(Text)


class JournalEntryRow(Base):
    """SQLAlchemy model for journal entries"""
    __tablename__ = Collections.JOURNAL_ENTRIES

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=False)
    is_shared = Column(Boolean, nullable=False, default=False)
    app_origin = Column(String, nullable=False)
    analysis = Column(Text)  # JSON string
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class RetentionRow(Base):
    """SQLAlchemy model for per-user data retention records"""
    __tablename__ = Collections.DATA_RETENTION

    user_id = Column(String, primary_key=True)
    data_type = Column(String, nullable=False)
    retention_period_days = Column(Integer, nullable=False)
    jurisdiction = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Database:
    """Engine, session factory and transaction runner for the durable store"""

    def __init__(self, database_url: Optional[str] = None, max_retries: Optional[int] = None):
        config = get_config()
        self.database_url = database_url or config.database_url
        self.max_retries = config.store_max_retries if max_retries is None else max_retries

        engine_kwargs = {}
        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.database_url:
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        # Create tables
        Base.metadata.create_all(bind=self.engine)
        logger.info("Store initialised", database_url=self.database_url)

    def session(self) -> Session:
        """Open a plain session for read paths"""
        return self.SessionLocal()

    def run_in_transaction(self, fn: Callable[[Session], T]) -> T:
        """
        Run fn inside a single transaction and commit once.

        Any exception raised by fn rolls the whole transaction back.
        Transient store errors are retried up to max_retries times; fn must
        therefore be safe to re-run from scratch.

        Raises:
            StoreError: If the store fails or retries are exhausted
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.SessionLocal() as session:
                    with session.begin():
                        return fn(session)
            except OperationalError as exc:
                if attempt > self.max_retries:
                    logger.error("Store transaction failed after retries",
                                 attempts=attempt, error=str(exc))
                    raise StoreError() from exc
                logger.warning("Transient store error, retrying",
                               attempt=attempt, error=str(exc))
                time.sleep(RETRY_BACKOFF_SECONDS * attempt)
            except SQLAlchemyError as exc:
                logger.error("Store transaction failed", error=str(exc))
                raise StoreError() from exc

    def dispose(self) -> None:
        self.engine.dispose()


# Process-wide store handle
_database: Optional[Database] = None


def init_database(database_url: Optional[str] = None) -> Database:
    """Initialise the process-wide store handle; must run before get_database()"""
    global _database
    if _database is None:
        _database = Database(database_url)
    return _database


def get_database() -> Database:
    """Get the process-wide store handle"""
    if _database is None:
        raise RuntimeError("Database not initialised; call init_database() first")
    return _database
