"""
backend/features/submodules/service.py

Tenant submodule entitlements.

Handles:
- enable / disable with dependency, conflict and protection checks
- batch_enable (ordered, non-atomic) and initialize_defaults (idempotent)
- read paths used by the API and the request gate

Every mutation runs inside a per-tenant lock so the read-then-write steps of
one tenant are serialised within the process.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from backend.core.errors import AppError
from backend.core.logging import get_request_id, log_event
from backend.features.audit.service import record_audit_event
from backend.features.submodules.catalog import SubmoduleCatalog
from backend.features.submodules.errors import SubmoduleNotFoundError, SubmoduleValidationError
from backend.features.submodules.store import SubmoduleStore
from backend.models.submodule import (
    BatchEnableResult,
    EnabledSubmodule,
    InitializeDefaultsResult,
    SubmoduleDefinition,
    TenantSubmodule,
)

logger = logging.getLogger("bizdesk.submodules")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantLockRegistry:
    """One lock per tenant id, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def lock_for(self, tenant_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(tenant_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[tenant_id] = lock
            return lock

    @contextmanager
    def hold(self, tenant_id: str):
        with self.lock_for(tenant_id):
            yield


class SubmoduleService:
    def __init__(
        self,
        catalog: SubmoduleCatalog,
        store: SubmoduleStore,
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[TenantLockRegistry] = None,
    ):
        self.catalog = catalog
        self.store = store
        self._clock = clock or _utcnow
        self._locks = locks or TenantLockRegistry()

    def _resolve(self, code: str) -> SubmoduleDefinition:
        definition = self.catalog.get_by_code(code)
        if definition is None:
            raise SubmoduleNotFoundError(code)
        return definition

    def enable(self, tenant_id: str, code: str, actor_id: Optional[str] = None) -> TenantSubmodule:
        """
        Enable `code` for a tenant.

        Raises:
            SubmoduleNotFoundError: code is not in the catalog
            SubmoduleValidationError: inactive, missing dependencies or conflicts
        """
        definition = self._resolve(code)
        if not definition.is_active:
            raise SubmoduleValidationError(
                f"Submodule {code} is not active", reason="inactive", submodule_code=code
            )

        with self._locks.hold(tenant_id):
            enabled = set(self.store.list_enabled_codes(tenant_id))

            missing = [c for c in definition.required_submodules if c not in enabled]
            if missing:
                raise SubmoduleValidationError(
                    f"Cannot enable {code}: missing required submodules: {', '.join(missing)}",
                    reason="missing_dependencies",
                    submodule_code=code,
                    codes=missing,
                )

            conflicts = [c for c in definition.conflicts_with if c in enabled]
            if conflicts:
                raise SubmoduleValidationError(
                    f"Cannot enable {code}: conflicts with enabled submodules: {', '.join(conflicts)}",
                    reason="conflicts",
                    submodule_code=code,
                    codes=conflicts,
                )

            record = self.store.upsert_enabled(
                tenant_id,
                definition.parent_module.value,
                code,
                self._clock(),
                actor_id,
            )

        logger.info(
            "submodule.enabled",
            extra={"tenant_id": tenant_id, "submodule_code": code, "actor_id": actor_id},
        )
        record_audit_event(
            action="submodule.enabled",
            actor_id=actor_id,
            tenant_id=tenant_id,
            request_id=get_request_id(),
            metadata={"submodule_code": code},
        )
        return record

    def disable(self, tenant_id: str, code: str, actor_id: Optional[str] = None) -> int:
        """Disable `code` for a tenant. Returns the number of records updated (0 if never enabled)."""
        definition = self._resolve(code)
        if definition.default_enabled:
            raise SubmoduleValidationError(
                f"Cannot disable default-enabled submodule {code}",
                reason="protected",
                submodule_code=code,
            )

        with self._locks.hold(tenant_id):
            enabled = self.store.list_enabled_codes(tenant_id)
            dependents = self.catalog.find_dependents(code, enabled)
            if dependents:
                raise SubmoduleValidationError(
                    f"Cannot disable {code}: required by {', '.join(dependents)}",
                    reason="has_dependents",
                    submodule_code=code,
                    codes=dependents,
                )
            updated = self.store.disable(tenant_id, code, self._clock())

        logger.info(
            "submodule.disabled",
            extra={"tenant_id": tenant_id, "submodule_code": code, "actor_id": actor_id},
        )
        record_audit_event(
            action="submodule.disabled",
            actor_id=actor_id,
            tenant_id=tenant_id,
            request_id=get_request_id(),
            metadata={"submodule_code": code, "updated": updated},
        )
        return updated

    def batch_enable(
        self, tenant_id: str, codes: Iterable[str], actor_id: Optional[str] = None
    ) -> BatchEnableResult:
        """
        Enable codes one by one in the given order.

        Each step sees the effect of the previous ones. Failures never abort
        the batch and earlier successes are kept.
        """
        enabled: List[str] = []
        skipped: List[str] = []
        errors: List[str] = []

        for code in codes:
            try:
                self.enable(tenant_id, code, actor_id)
                enabled.append(code)
            except SubmoduleNotFoundError:
                skipped.append(code)
            except Exception as e:
                if isinstance(e, AppError):
                    message = e.message
                else:
                    message = str(e) or "Unknown error"
                    logger.warning(
                        "submodule.batch_enable.step_failed",
                        exc_info=True,
                        extra={"tenant_id": tenant_id, "submodule_code": code, "actor_id": actor_id},
                    )
                errors.append(f"{code}: {message}")

        if skipped or errors:
            log_event(
                "warning",
                "submodule.batch_enable.partial",
                tenant_id=tenant_id,
                user_id=actor_id,
                extra={"skipped": len(skipped), "errors": len(errors)},
            )
        return BatchEnableResult(enabled=enabled, skipped=skipped, errors=errors)

    def initialize_defaults(self, tenant_id: str, actor_id: Optional[str] = None) -> InitializeDefaultsResult:
        """
        Switch on every active default submodule for a tenant.

        Dependency and conflict checks are skipped. Safe to call repeatedly:
        enabled records are left alone, disabled ones are re-enabled.
        """
        initialized: List[str] = []
        already_enabled: List[str] = []

        with self._locks.hold(tenant_id):
            current = {r.submodule_code: r for r in self.store.list_records(tenant_id)}
            now = self._clock()
            for definition in self.catalog.get_defaults():
                record = current.get(definition.code)
                if record is not None and record.is_enabled:
                    already_enabled.append(definition.code)
                    continue
                self.store.upsert_enabled(
                    tenant_id, definition.parent_module.value, definition.code, now, actor_id
                )
                initialized.append(definition.code)

        logger.info(
            "submodule.defaults_initialized",
            extra={"tenant_id": tenant_id, "actor_id": actor_id},
        )
        if initialized:
            record_audit_event(
                action="submodule.defaults_initialized",
                actor_id=actor_id,
                tenant_id=tenant_id,
                request_id=get_request_id(),
                metadata={"initialized": ",".join(initialized)},
            )
        return InitializeDefaultsResult(initialized=initialized, already_enabled=already_enabled)

    def is_enabled(self, tenant_id: str, code: str) -> bool:
        return self.store.is_enabled(tenant_id, code)

    def get_enabled_codes(self, tenant_id: str) -> List[str]:
        return sorted(self.store.list_enabled_codes(tenant_id))

    def get_enabled_with_details(self, tenant_id: str) -> List[EnabledSubmodule]:
        details = []
        for record in self.store.list_enabled_records(tenant_id):
            definition = self.catalog.get_by_code(record.submodule_code)
            if definition is None:
                logger.debug(
                    "submodule.unknown_record",
                    extra={"tenant_id": tenant_id, "submodule_code": record.submodule_code},
                )
                continue
            details.append(
                EnabledSubmodule(
                    code=record.submodule_code,
                    definition=definition,
                    enabled_at=record.enabled_at,
                    enabled_by_id=record.enabled_by_id,
                )
            )
        return details
