# Overview: Service-layer operations for the security audit trail.

"""
Security Audit Trail

WHY: Immutable record of authentication outcomes and cross-tenant probes.
Every row carries the internal diagnostic in `reason`; callers only ever see
the generic error, so the table is the one place a failed sub-check can be
told apart.
"""

from datetime import timedelta

from flask import current_app, has_request_context, request

from ..extensions import db
from ..models import SecurityEvent
from grocer.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    reason: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    Request context (path, method, client address, user agent) is captured
    automatically when called inside a request.

    event_type examples:
    - AUTH_SUCCEEDED
    - AUTH_FAILED
    - LOGIN_SUCCEEDED
    - LOGIN_FAILED
    - CROSS_TENANT_ACCESS_DENIED
    """
    resource = action = ip_address = user_agent = None
    if has_request_context():
        resource = request.path[:128]
        action = request.method
        ip_address = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:512] or None

    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )
    db.session.add(event)

    log = current_app.logger.info if success else current_app.logger.warning
    log("security event %s user_id=%s resource=%s reason=%s", event_type, user_id, resource, reason)

    if commit:
        db.session.commit()
    return event


def cleanup_security_events(retention_days: int) -> int:
    """
    Delete security events older than the retention window.

    Returns count of events deleted.
    """
    if retention_days < 1:
        raise ValueError("retention_days must be >= 1")

    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = (
        db.session.query(SecurityEvent)
        .filter(SecurityEvent.occurred_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
