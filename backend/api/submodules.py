"""
Submodule administration router (/v1/submodules).

Every endpoint needs an authenticated principal with a tenant; mutations
additionally need an elevated role (SUBMODULE_ADMIN_ROLES).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backend.core.auth import Principal, get_current_principal, require_tenant_admin
from backend.core.errors import ValidationError
from backend.features.submodules.service import SubmoduleService
from backend.models.submodule import ModuleCode

logger = logging.getLogger("bizdesk.api.submodules")

router = APIRouter(prefix="/v1/submodules", tags=["submodules"])


class BatchEnableRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    submodule_codes: List[str] = Field(..., description="Codes to enable, in order")


def get_submodule_service(request: Request) -> SubmoduleService:
    return request.app.state.submodule_service


@router.get("")
def list_submodules(
    principal: Principal = Depends(get_current_principal),
    service: SubmoduleService = Depends(get_submodule_service),
):
    submodules = [d.to_wire() for d in service.catalog.get_all()]
    return {"submodules": submodules, "total": len(submodules)}


@router.get("/module/{module_code}")
def list_module_submodules(
    module_code: str,
    principal: Principal = Depends(get_current_principal),
    service: SubmoduleService = Depends(get_submodule_service),
):
    try:
        module = ModuleCode(module_code.upper())
    except ValueError:
        raise ValidationError(
            f"Unknown module: {module_code}",
            details={"allowed": [m.value for m in ModuleCode]},
        )
    submodules = [d.to_wire() for d in service.catalog.get_by_module(module)]
    return {"moduleCode": module.value, "submodules": submodules, "total": len(submodules)}


@router.get("/pricing")
def pricing_catalog(
    principal: Principal = Depends(get_current_principal),
    service: SubmoduleService = Depends(get_submodule_service),
):
    addons = [p.to_wire() for p in service.catalog.get_pricing_catalog()]
    return {"addons": addons, "total": len(addons)}


@router.get("/enabled")
def enabled_submodules(
    details: bool = Query(False),
    principal: Principal = Depends(get_current_principal),
    service: SubmoduleService = Depends(get_submodule_service),
):
    if details:
        submodules = [e.to_wire() for e in service.get_enabled_with_details(principal.tenant_id)]
    else:
        submodules = service.get_enabled_codes(principal.tenant_id)
    return {"tenantId": principal.tenant_id, "submodules": submodules, "total": len(submodules)}


@router.post("/batch-enable")
def batch_enable(
    payload: BatchEnableRequest,
    principal: Principal = Depends(require_tenant_admin),
    service: SubmoduleService = Depends(get_submodule_service),
):
    result = service.batch_enable(principal.tenant_id, payload.submodule_codes, principal.user_id)
    return {
        "success": not result.errors,
        "tenantId": principal.tenant_id,
        "enabled": list(result.enabled),
        "skipped": list(result.skipped),
        "errors": list(result.errors),
    }


@router.post("/initialize")
def initialize_defaults(
    principal: Principal = Depends(require_tenant_admin),
    service: SubmoduleService = Depends(get_submodule_service),
):
    result = service.initialize_defaults(principal.tenant_id, principal.user_id)
    return {
        "success": True,
        "message": f"Initialized {len(result.initialized)} default submodules",
        "tenantId": principal.tenant_id,
        "initialized": list(result.initialized),
        "alreadyEnabled": list(result.already_enabled),
    }


@router.get("/{code}/check")
def check_submodule(
    code: str,
    principal: Principal = Depends(get_current_principal),
    service: SubmoduleService = Depends(get_submodule_service),
):
    return {
        "tenantId": principal.tenant_id,
        "submoduleCode": code,
        "isEnabled": service.is_enabled(principal.tenant_id, code),
    }


@router.post("/{code}/enable")
def enable_submodule(
    code: str,
    principal: Principal = Depends(require_tenant_admin),
    service: SubmoduleService = Depends(get_submodule_service),
):
    service.enable(principal.tenant_id, code, principal.user_id)
    return {
        "success": True,
        "message": f"Submodule {code} enabled",
        "tenantId": principal.tenant_id,
        "submoduleCode": code,
    }


@router.post("/{code}/disable")
def disable_submodule(
    code: str,
    principal: Principal = Depends(require_tenant_admin),
    service: SubmoduleService = Depends(get_submodule_service),
):
    service.disable(principal.tenant_id, code, principal.user_id)
    return {
        "success": True,
        "message": f"Submodule {code} disabled",
        "tenantId": principal.tenant_id,
        "submoduleCode": code,
    }
