# Overview: Flask API routes for the dashboard summary.

from flask import Blueprint, jsonify, g

from ..services import dashboard_service
from ..decorators import require_auth


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
def stats_route():
    """Counts and revenue for the caller's catalog and ledger."""
    return jsonify(dashboard_service.summarize(g.owner.user_id))
