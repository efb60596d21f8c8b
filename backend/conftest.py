# backend/conftest.py
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add repo root to PYTHONPATH
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class StepClock:
    """Deterministic clock: every call advances one second."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def catalog():
    from backend.features.submodules.registry import build_default_catalog
    return build_default_catalog()


@pytest.fixture
def memory_store():
    from backend.features.submodules.store import MemorySubmoduleStore
    return MemorySubmoduleStore()


@pytest.fixture
def service(catalog, memory_store, clock):
    from backend.features.submodules.service import SubmoduleService
    return SubmoduleService(catalog, memory_store, clock=clock)


@pytest.fixture
def sqlite_engine():
    """Fresh sqlite in-memory database with all tables."""
    from backend.core.database import build_engine, create_all_tables
    engine = build_engine("sqlite:///:memory:")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine):
    from backend.features.submodules.store import SqlSubmoduleStore
    return SqlSubmoduleStore(sqlite_engine)


@pytest.fixture(autouse=True)
def header_auth(monkeypatch):
    """Trusted-header identity is on for tests unless a test turns it off."""
    from backend.core.config import settings
    monkeypatch.setattr(settings, "AUTH_HEADER_FALLBACK", True)
    monkeypatch.setattr(settings, "AUTH_SECRET_KEY", "test-secret-key-with-32-bytes-min")
    monkeypatch.setattr(settings, "SUBMODULE_ADMIN_ROLES", "ADMIN,OWNER")
    yield


@pytest.fixture(autouse=True)
def clear_audit_buffer():
    from backend.features.audit.service import clear_buffered_audit_events
    clear_buffered_audit_events()
    yield
    clear_buffered_audit_events()


@pytest.fixture
def app(memory_store):
    from backend.main import create_app
    return create_app(store=memory_store)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"X-User-Id": "user-admin", "X-Tenant-Id": "tenant-a", "X-User-Role": "ADMIN"}


@pytest.fixture
def member_headers():
    return {"X-User-Id": "user-member", "X-Tenant-Id": "tenant-a", "X-User-Role": "MEMBER"}
