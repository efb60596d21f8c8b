"""
Principal resolution for bizdesk API.

Identity is issued upstream (login service); this module only verifies it:
- Bearer JWT (HS256 by default) with claims sub, tenant_id, role
- Trusted X-User-Id / X-Tenant-Id / X-User-Role headers when
  AUTH_HEADER_FALLBACK is on (dev + tests, never production)

Dependencies:
- get_current_principal: 401 when no identity or no tenant context
- require_tenant_admin: additionally 403 unless the role is elevated
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import logging
from fastapi import Request

from backend.core.config import settings, csv_setting
from backend.core.errors import AuthenticationError, PermissionError

logger = logging.getLogger("bizdesk.auth")


@dataclass(frozen=True)
class Principal:
    """Authenticated actor acting inside one tenant."""
    user_id: str
    tenant_id: Optional[str]
    role: Optional[str] = None
    auth_mechanism: str = "jwt"

    @property
    def is_admin(self) -> bool:
        allowed = {r.upper() for r in csv_setting(settings.SUBMODULE_ADMIN_ROLES)}
        return bool(self.role) and self.role.upper() in allowed


def create_access_token(
    user_id: str,
    tenant_id: Optional[str],
    role: Optional[str] = None,
    *,
    expires_in: timedelta = timedelta(hours=1),
    secret: Optional[str] = None,
) -> str:
    """Sign a token carrying the claims this service reads (tests + tooling)."""
    key = secret or settings.AUTH_SECRET_KEY
    if not key:
        raise RuntimeError("AUTH_SECRET_KEY is not configured")
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "iat": now, "exp": now + expires_in}
    if tenant_id:
        claims["tenant_id"] = tenant_id
    if role:
        claims["role"] = role
    return jwt.encode(claims, key, algorithm=settings.AUTH_ALGORITHM)


def _principal_from_token(token: str) -> Principal:
    if not settings.AUTH_SECRET_KEY:
        raise AuthenticationError("Bearer tokens are not accepted: AUTH_SECRET_KEY is not configured")
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_SECRET_KEY,
            algorithms=[settings.AUTH_ALGORITHM],
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired", code="token_expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationError("Invalid token", code="token_invalid")

    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token: missing 'sub' claim", code="token_invalid")
    return Principal(
        user_id=str(user_id),
        tenant_id=claims.get("tenant_id"),
        role=claims.get("role"),
        auth_mechanism="jwt",
    )


def resolve_principal(request: Request) -> Optional[Principal]:
    """
    Resolve the caller from the request.

    Priority:
    1. Bearer JWT from Authorization header (invalid token raises 401)
    2. Trusted headers (only when AUTH_HEADER_FALLBACK is on)
    3. None
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return _principal_from_token(token)

    if settings.AUTH_HEADER_FALLBACK:
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if user_id:
            return Principal(
                user_id=user_id,
                tenant_id=(request.headers.get("X-Tenant-Id") or "").strip() or None,
                role=(request.headers.get("X-User-Role") or "").strip() or None,
                auth_mechanism="header",
            )

    return None


def get_current_principal(request: Request) -> Principal:
    """
    FastAPI dependency: require an authenticated principal with a tenant context.

    Usage:
        @router.get("/endpoint")
        def endpoint(principal: Principal = Depends(get_current_principal)):
            ...
    """
    principal = resolve_principal(request)
    if principal is None:
        raise AuthenticationError(
            "Missing Authorization (Bearer JWT) or X-User-Id header",
            code="authentication_required",
        )
    if not principal.tenant_id:
        raise AuthenticationError(
            "No tenant context for the authenticated user",
            code="tenant_required",
        )
    return principal


def require_tenant_admin(request: Request) -> Principal:
    """FastAPI dependency: principal must hold an elevated role in its tenant."""
    principal = get_current_principal(request)
    if not principal.is_admin:
        logger.warning(
            "auth.admin_denied",
            extra={"user_id": principal.user_id, "tenant_id": principal.tenant_id},
        )
        raise PermissionError(
            "Administrator role required",
            details={"role": principal.role, "allowed_roles": csv_setting(settings.SUBMODULE_ADMIN_ROLES)},
        )
    return principal
