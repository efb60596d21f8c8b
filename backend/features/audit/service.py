import logging
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from sqlalchemy import insert

from backend.core.config import settings
from backend.core.database import audit_events, get_db_session, create_all_tables, get_database_url
from backend.core.logging import _safe_truncate

logger = logging.getLogger("bizdesk.audit")

_memory_events = []  # Fallback buffer when DB is unavailable


def record_audit_event(
    *,
    action: str,
    actor_id: Optional[str],
    tenant_id: Optional[str] = None,
    request_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
):
    """Record an audit event to the database (or fallback buffer).

    Notes:
    - No-op unless AUDIT_ENABLED.
    - Never logs secrets; metadata is truncated.
    """

    if not settings.AUDIT_ENABLED:
        return

    safe_metadata = None
    if metadata:
        safe_metadata = {k: _safe_truncate(v) for k, v in metadata.items()}

    record = {
        "ts": datetime.now(timezone.utc),
        "request_id": request_id,
        "tenant_id": tenant_id,
        "actor_id": actor_id,
        "action": action,
        "metadata": safe_metadata,
        "ip": ip,
        "user_agent": _safe_truncate(user_agent) if user_agent else None,
    }

    if not get_database_url():
        _memory_events.append(record)
        logger.debug("Audit event buffered in memory (no DB configured)")
        return

    try:
        create_all_tables()
        with get_db_session() as session:
            session.execute(insert(audit_events).values(**record))
    except Exception as exc:
        logger.warning(f"Audit event write failed: {exc}", extra={"tenant_id": tenant_id})
        _memory_events.append(record)


def get_buffered_audit_events():
    return list(_memory_events)


def clear_buffered_audit_events() -> None:
    _memory_events.clear()
