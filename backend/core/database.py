"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support (sqlite in-memory)
- Table definitions for tenant submodule entitlements and audit events
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, false, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, UniqueConstraint
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from backend.core.config import settings


logger = logging.getLogger("bizdesk.database")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def build_engine(url: str):
    """Create an engine for `url`.

    sqlite in-memory databases share one connection (StaticPool) so every
    session sees the same tables; server databases get a pooled engine.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, future=True, **kwargs)

    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = build_engine(url)

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session(session_factory=None):
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)

    Pass `session_factory` to use a specific engine instead of the global one.
    """
    SessionLocal = session_factory or get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine=None):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    eng = engine or get_engine()
    metadata.create_all(bind=eng)


def drop_all_tables(engine=None):
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    eng = engine or get_engine()
    metadata.drop_all(bind=eng)


# Tenant submodule entitlements
# One row per (tenant, module, submodule); disable flips is_enabled and keeps the row.
tenant_submodules = Table(
    'tenant_submodules',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('tenant_id', String(100), nullable=False),
    Column('module_code', String(50), nullable=False),
    Column('submodule_code', String(100), nullable=False),
    Column('is_enabled', Boolean, nullable=False, server_default=false()),
    Column('enabled_at', DateTime(timezone=True), nullable=True),
    Column('enabled_by_id', String(100), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    UniqueConstraint('tenant_id', 'module_code', 'submodule_code', name='uq_tenant_submodules_tenant_module_code'),
    # Gate reads: all enabled codes for a tenant
    Index('idx_tenant_submodules_tenant_enabled', 'tenant_id', 'is_enabled'),
    Index('idx_tenant_submodules_tenant_code', 'tenant_id', 'submodule_code'),
)

# Audit events (append-only)
audit_events = Table(
    'audit_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('ts', DateTime(timezone=True), nullable=False),
    Column('request_id', String(64), nullable=True),
    Column('tenant_id', String(100), nullable=True),
    Column('actor_id', String(100), nullable=True),
    Column('action', String(128), nullable=False),
    Column('metadata', JSON, nullable=True),
    Column('ip', String(64), nullable=True),
    Column('user_agent', Text, nullable=True),
    Index('idx_audit_events_tenant_ts', 'tenant_id', 'ts'),
    Index('idx_audit_events_action', 'action'),
)
