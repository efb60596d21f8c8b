"""
Health endpoints for the bizdesk API.

Liveness never touches dependencies; readiness probes the entitlement store.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("bizdesk")

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz(request: Request):
    """Readiness check: store reachable and tenant_submodules present (SQL)."""
    store = getattr(request.app.state, "submodule_store", None)
    if store is None:
        return JSONResponse(status_code=503, content={"status": "error", "detail": "submodule store not initialised"})

    if not store.ping():
        logger.warning("[readyz] submodule store unavailable")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "submodule store unavailable"})

    return {"status": "ok", "store": type(store).__name__}
