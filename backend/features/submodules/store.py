"""
backend/features/submodules/store.py

Durable tenant entitlement records.

Handles:
- SubmoduleStore: the contract the service depends on
- SqlSubmoduleStore: SQLAlchemy Core over tenant_submodules
- MemorySubmoduleStore: process-local fallback (no DATABASE_URL, tests)

Stores never validate; dependency/conflict rules live in the service.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple

from sqlalchemy import and_, select, insert, update, inspect, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from backend.core.database import get_db_session, tenant_submodules, create_all_tables
from backend.models.submodule import TenantSubmodule

logger = logging.getLogger("bizdesk.submodules.store")


class SubmoduleStore(Protocol):
    def list_records(self, tenant_id: str) -> List[TenantSubmodule]:
        ...

    def list_enabled_records(self, tenant_id: str) -> List[TenantSubmodule]:
        ...

    def list_enabled_codes(self, tenant_id: str) -> List[str]:
        ...

    def is_enabled(self, tenant_id: str, submodule_code: str) -> bool:
        ...

    def upsert_enabled(
        self,
        tenant_id: str,
        module_code: str,
        submodule_code: str,
        enabled_at: datetime,
        enabled_by_id: Optional[str],
    ) -> TenantSubmodule:
        ...

    def disable(self, tenant_id: str, submodule_code: str, now: datetime) -> int:
        ...

    def ping(self) -> bool:
        ...


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite drops tzinfo on read
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _row_to_record(row) -> TenantSubmodule:
    return TenantSubmodule(
        tenant_id=row.tenant_id,
        module_code=row.module_code,
        submodule_code=row.submodule_code,
        is_enabled=bool(row.is_enabled),
        enabled_at=_as_utc(row.enabled_at),
        enabled_by_id=row.enabled_by_id,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


class SqlSubmoduleStore:
    """
    tenant_submodules-backed store.

    Upserts rely on uq_tenant_submodules_tenant_module_code: a concurrent
    insert from another process surfaces as IntegrityError and is retried
    as an update.
    """

    def __init__(self, engine=None):
        self._engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None

    def create_tables(self) -> None:
        create_all_tables(self._engine)

    def _session(self):
        return get_db_session(self._session_factory)

    def list_records(self, tenant_id: str) -> List[TenantSubmodule]:
        with self._session() as session:
            rows = session.execute(
                select(tenant_submodules)
                .where(tenant_submodules.c.tenant_id == tenant_id)
                .order_by(tenant_submodules.c.submodule_code)
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_enabled_records(self, tenant_id: str) -> List[TenantSubmodule]:
        with self._session() as session:
            rows = session.execute(
                select(tenant_submodules)
                .where(
                    and_(
                        tenant_submodules.c.tenant_id == tenant_id,
                        tenant_submodules.c.is_enabled == true(),
                    )
                )
                .order_by(tenant_submodules.c.submodule_code)
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_enabled_codes(self, tenant_id: str) -> List[str]:
        with self._session() as session:
            rows = session.execute(
                select(tenant_submodules.c.submodule_code)
                .where(
                    and_(
                        tenant_submodules.c.tenant_id == tenant_id,
                        tenant_submodules.c.is_enabled == true(),
                    )
                )
                .distinct()
                .order_by(tenant_submodules.c.submodule_code)
            ).fetchall()
        return [r.submodule_code for r in rows]

    def is_enabled(self, tenant_id: str, submodule_code: str) -> bool:
        with self._session() as session:
            row = session.execute(
                select(tenant_submodules.c.id)
                .where(
                    and_(
                        tenant_submodules.c.tenant_id == tenant_id,
                        tenant_submodules.c.submodule_code == submodule_code,
                        tenant_submodules.c.is_enabled == true(),
                    )
                )
                .limit(1)
            ).first()
        return row is not None

    def _select_one(self, session, tenant_id: str, module_code: str, submodule_code: str):
        return session.execute(
            select(tenant_submodules).where(
                and_(
                    tenant_submodules.c.tenant_id == tenant_id,
                    tenant_submodules.c.module_code == module_code,
                    tenant_submodules.c.submodule_code == submodule_code,
                )
            )
        ).first()

    def _update_enabled(self, session, tenant_id, module_code, submodule_code, enabled_at, enabled_by_id):
        session.execute(
            update(tenant_submodules)
            .where(
                and_(
                    tenant_submodules.c.tenant_id == tenant_id,
                    tenant_submodules.c.module_code == module_code,
                    tenant_submodules.c.submodule_code == submodule_code,
                )
            )
            .values(is_enabled=True, enabled_at=enabled_at, enabled_by_id=enabled_by_id, updated_at=enabled_at)
        )

    def upsert_enabled(
        self,
        tenant_id: str,
        module_code: str,
        submodule_code: str,
        enabled_at: datetime,
        enabled_by_id: Optional[str],
    ) -> TenantSubmodule:
        try:
            with self._session() as session:
                existing = self._select_one(session, tenant_id, module_code, submodule_code)
                if existing:
                    self._update_enabled(session, tenant_id, module_code, submodule_code, enabled_at, enabled_by_id)
                else:
                    session.execute(
                        insert(tenant_submodules).values(
                            tenant_id=tenant_id,
                            module_code=module_code,
                            submodule_code=submodule_code,
                            is_enabled=True,
                            enabled_at=enabled_at,
                            enabled_by_id=enabled_by_id,
                            created_at=enabled_at,
                            updated_at=enabled_at,
                        )
                    )
        except IntegrityError:
            logger.info(
                "submodule.store.upsert_retry",
                extra={"tenant_id": tenant_id, "submodule_code": submodule_code},
            )
            with self._session() as session:
                self._update_enabled(session, tenant_id, module_code, submodule_code, enabled_at, enabled_by_id)

        with self._session() as session:
            row = self._select_one(session, tenant_id, module_code, submodule_code)
        return _row_to_record(row)

    def disable(self, tenant_id: str, submodule_code: str, now: datetime) -> int:
        with self._session() as session:
            result = session.execute(
                update(tenant_submodules)
                .where(
                    and_(
                        tenant_submodules.c.tenant_id == tenant_id,
                        tenant_submodules.c.submodule_code == submodule_code,
                    )
                )
                .values(is_enabled=False, enabled_at=None, updated_at=now)
            )
            return result.rowcount or 0

    def ping(self) -> bool:
        """True when the database answers and tenant_submodules exists."""
        try:
            with self._session() as session:
                return inspect(session.get_bind()).has_table(tenant_submodules.name)
        except Exception as e:
            logger.warning(f"Submodule store ping failed: {e}")
            return False


class MemorySubmoduleStore:
    """Process-local store with the same semantics as SqlSubmoduleStore."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[Tuple[str, str, str], TenantSubmodule] = {}

    def list_records(self, tenant_id: str) -> List[TenantSubmodule]:
        with self._lock:
            records = [r for (t, _, _), r in self._records.items() if t == tenant_id]
        return sorted(records, key=lambda r: r.submodule_code)

    def list_enabled_records(self, tenant_id: str) -> List[TenantSubmodule]:
        return [r for r in self.list_records(tenant_id) if r.is_enabled]

    def list_enabled_codes(self, tenant_id: str) -> List[str]:
        return sorted({r.submodule_code for r in self.list_enabled_records(tenant_id)})

    def is_enabled(self, tenant_id: str, submodule_code: str) -> bool:
        return submodule_code in self.list_enabled_codes(tenant_id)

    def upsert_enabled(
        self,
        tenant_id: str,
        module_code: str,
        submodule_code: str,
        enabled_at: datetime,
        enabled_by_id: Optional[str],
    ) -> TenantSubmodule:
        key = (tenant_id, module_code, submodule_code)
        with self._lock:
            existing = self._records.get(key)
            record = TenantSubmodule(
                tenant_id=tenant_id,
                module_code=module_code,
                submodule_code=submodule_code,
                is_enabled=True,
                enabled_at=enabled_at,
                enabled_by_id=enabled_by_id,
                created_at=existing.created_at if existing else enabled_at,
                updated_at=enabled_at,
            )
            self._records[key] = record
        return record

    def disable(self, tenant_id: str, submodule_code: str, now: datetime) -> int:
        updated = 0
        with self._lock:
            for key, record in list(self._records.items()):
                if key[0] == tenant_id and key[2] == submodule_code:
                    self._records[key] = record.model_copy(
                        update={"is_enabled": False, "enabled_at": None, "updated_at": now}
                    )
                    updated += 1
        return updated

    def ping(self) -> bool:
        return True
