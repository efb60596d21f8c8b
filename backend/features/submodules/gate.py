"""
backend/features/submodules/gate.py

Request-time submodule gate.

Handles:
- SubmodulePolicy: explicit table of operation id / group -> required codes
- evaluate_access: pure allow/deny decision for one principal
- SubmoduleGate: FastAPI dependency for gated routers
- DEFAULT_POLICY: gated operations of the bizdesk API

Precedence: an operation entry (even an empty one) wins over its group entry.

Usage:
    router = APIRouter(dependencies=[Depends(SubmoduleGate(group="crm.segments"))])

    @router.post("/{segment_id}/export", name="crm.segments.export")
    def export_segment(...):
        ...
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from fastapi import Request

from backend.core.auth import Principal, resolve_principal
from backend.features.submodules.catalog import CatalogError, SubmoduleCatalog
from backend.features.submodules.errors import SubmoduleAccessError, SubmoduleAuthenticationError

logger = logging.getLogger("bizdesk.submodules.gate")


def _freeze(table: Optional[Mapping[str, Sequence[str]]]) -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({key: tuple(codes) for key, codes in (table or {}).items()})


class SubmodulePolicy:
    def __init__(
        self,
        operations: Optional[Mapping[str, Sequence[str]]] = None,
        groups: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self.operations = _freeze(operations)
        self.groups = _freeze(groups)

    def requirements_for(self, operation_id: Optional[str], group: Optional[str] = None) -> Tuple[str, ...]:
        if operation_id is not None and operation_id in self.operations:
            return self.operations[operation_id]
        if group is not None and group in self.groups:
            return self.groups[group]
        return ()

    def declared_codes(self) -> Tuple[str, ...]:
        seen = []
        for codes in list(self.operations.values()) + list(self.groups.values()):
            for code in codes:
                if code not in seen:
                    seen.append(code)
        return tuple(seen)

    def validate_against(self, catalog: SubmoduleCatalog) -> None:
        unknown = [c for c in self.declared_codes() if c not in catalog]
        if unknown:
            raise CatalogError(f"Submodule policy references unknown submodules: {', '.join(unknown)}")


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    operation_id: Optional[str]
    required: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()
    tenant_id: Optional[str] = None


def evaluate_access(
    policy: SubmodulePolicy,
    service,
    principal: Optional[Principal],
    operation_id: Optional[str],
    group: Optional[str] = None,
) -> GateDecision:
    """
    Decide whether `principal` may run `operation_id`.

    Returns an allowing GateDecision or raises:
        SubmoduleAuthenticationError: requirements exist but no tenant identity
        SubmoduleAccessError: some required codes are not enabled (403)
    """
    required = policy.requirements_for(operation_id, group)
    if not required:
        return GateDecision(allowed=True, operation_id=operation_id)

    if principal is None or not principal.tenant_id:
        raise SubmoduleAuthenticationError()

    enabled = set(service.get_enabled_codes(principal.tenant_id))
    missing = tuple(c for c in required if c not in enabled)
    if missing:
        logger.warning(
            "submodule.gate.denied",
            extra={
                "tenant_id": principal.tenant_id,
                "user_id": principal.user_id,
                "operation_id": operation_id,
                "submodule_code": ",".join(missing),
            },
        )
        raise SubmoduleAccessError(required, missing, operation_id=operation_id)

    logger.debug(
        "submodule.gate.allowed",
        extra={"tenant_id": principal.tenant_id, "operation_id": operation_id},
    )
    return GateDecision(
        allowed=True,
        operation_id=operation_id,
        required=required,
        tenant_id=principal.tenant_id,
    )


class SubmoduleGate:
    """
    FastAPI dependency enforcing the policy stored on app.state.

    The operation id is the matched route's name unless given explicitly.
    """

    def __init__(self, group: Optional[str] = None, operation_id: Optional[str] = None):
        self.group = group
        self.operation_id = operation_id

    def _operation_id(self, request: Request) -> Optional[str]:
        if self.operation_id:
            return self.operation_id
        route = request.scope.get("route")
        return getattr(route, "name", None)

    def __call__(self, request: Request) -> GateDecision:
        policy: SubmodulePolicy = request.app.state.submodule_policy
        operation_id = self._operation_id(request)

        # Open operations never touch identity or the store
        if not policy.requirements_for(operation_id, self.group):
            return GateDecision(allowed=True, operation_id=operation_id)

        decision = evaluate_access(
            policy,
            request.app.state.submodule_service,
            resolve_principal(request),
            operation_id,
            self.group,
        )
        request.state.submodule_decision = decision
        return decision


# Requirements for the business routers (CRM, WMS, quotes, invoices, ...) that
# mount SubmoduleGate. create_app() checks every code against the catalog at
# boot and installs the table on app.state.submodule_policy.
DEFAULT_POLICY = SubmodulePolicy(
    operations={
        "crm.segments.export": ["CRM.SEGMENTS", "CRM.EXPORT"],
        "wms.inventory.start": ["WMS.INVENTORY"],
        "quotes.convert": ["QUOTES.BASIC", "ORDERS.BASIC"],
        "invoices.ksef.send": ["INVOICES.KSEF"],
        # listing price tables stays open to every tenant
        "pricing.tables.list": [],
    },
    groups={
        "crm.segments": ["CRM.SEGMENTS"],
        "crm.tags": ["CRM.TAGS"],
        "wms.locations": ["WMS.LOCATIONS"],
        "wms.documents": ["WMS.DOCUMENTS"],
        "pricing.tables": ["PRICING.TABLES"],
        "loyalty.points": ["LOYALTY.POINTS"],
        "loyalty.tiers": ["LOYALTY.TIERS"],
        "production.planning": ["PRODUCTION.PLANNING"],
        "production.preorder": ["PRODUCTION.PREORDER"],
        "reports.sales": ["REPORTS.SALES"],
    },
)
