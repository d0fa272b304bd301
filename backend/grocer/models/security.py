from __future__ import annotations

from ..extensions import db

class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track authentication outcomes and cross-tenant probes. The reason
    column holds the internal diagnostic (which auth sub-check failed); it is
    never returned to the caller who triggered the event.

    IMMUTABLE: Never update. Only the retention cleanup deletes rows.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # No FK: events must survive deletion of the user they mention
    user_id = db.Column(db.Integer, nullable=True, index=True)  # Nullable for anonymous

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # AUTH_SUCCEEDED, AUTH_FAILED, ...
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/sales"
    action = db.Column(db.String(64), nullable=True)     # e.g., "POST"

    # Event details
    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

