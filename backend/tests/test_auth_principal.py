"""Principal resolution: bearer tokens and trusted headers."""

from datetime import timedelta

import jwt
import pytest
from starlette.requests import Request

from backend.core.auth import (
    Principal,
    create_access_token,
    get_current_principal,
    require_tenant_admin,
    resolve_principal,
)
from backend.core.config import settings
from backend.core.errors import AuthenticationError, PermissionError


def _request(headers=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "query_string": b""})


def test_bearer_token_resolves_claims():
    token = create_access_token("u1", "tenant-a", "ADMIN")
    principal = resolve_principal(_request({"Authorization": f"Bearer {token}"}))
    assert principal == Principal(user_id="u1", tenant_id="tenant-a", role="ADMIN", auth_mechanism="jwt")
    assert principal.is_admin


def test_bearer_token_takes_priority_over_headers():
    token = create_access_token("u-jwt", "tenant-jwt")
    principal = resolve_principal(
        _request({"Authorization": f"Bearer {token}", "X-User-Id": "u-hdr", "X-Tenant-Id": "tenant-hdr"})
    )
    assert principal.user_id == "u-jwt"
    assert principal.tenant_id == "tenant-jwt"


def test_expired_token_rejected():
    token = create_access_token("u1", "tenant-a", expires_in=timedelta(seconds=-5))
    with pytest.raises(AuthenticationError) as exc:
        resolve_principal(_request({"Authorization": f"Bearer {token}"}))
    assert exc.value.code == "token_expired"


def test_token_signed_with_other_key_rejected():
    token = create_access_token("u1", "tenant-a", secret="another-secret-key-of-32-bytes-x")
    with pytest.raises(AuthenticationError) as exc:
        resolve_principal(_request({"Authorization": f"Bearer {token}"}))
    assert exc.value.code == "token_invalid"


def test_token_without_subject_rejected():
    token = jwt.encode({"tenant_id": "tenant-a"}, settings.AUTH_SECRET_KEY, algorithm="HS256")
    with pytest.raises(AuthenticationError):
        resolve_principal(_request({"Authorization": f"Bearer {token}"}))


def test_trusted_headers_when_fallback_enabled():
    principal = resolve_principal(_request({"X-User-Id": "u1", "X-Tenant-Id": "tenant-a", "X-User-Role": "owner"}))
    assert principal.auth_mechanism == "header"
    assert principal.is_admin


def test_trusted_headers_ignored_when_fallback_disabled(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_HEADER_FALLBACK", False)
    assert resolve_principal(_request({"X-User-Id": "u1", "X-Tenant-Id": "tenant-a"})) is None


def test_get_current_principal_requires_tenant():
    with pytest.raises(AuthenticationError) as exc:
        get_current_principal(_request({"X-User-Id": "u1"}))
    assert exc.value.code == "tenant_required"

    with pytest.raises(AuthenticationError) as exc:
        get_current_principal(_request())
    assert exc.value.code == "authentication_required"


def test_require_tenant_admin_checks_role(monkeypatch):
    member = _request({"X-User-Id": "u1", "X-Tenant-Id": "tenant-a", "X-User-Role": "MEMBER"})
    with pytest.raises(PermissionError):
        require_tenant_admin(member)

    monkeypatch.setattr(settings, "SUBMODULE_ADMIN_ROLES", "ADMIN,OWNER,MEMBER")
    assert require_tenant_admin(member).user_id == "u1"


def test_no_role_is_not_admin():
    assert Principal(user_id="u1", tenant_id="t").is_admin is False
