# Overview: Flask API route that seeds a sample catalog for the caller.

from flask import Blueprint, jsonify, g, current_app

from ..services import products_service
from ..decorators import require_auth


setup_bp = Blueprint("setup", __name__, url_prefix="/api/setup")


@setup_bp.post("/sample-data")
@require_auth
def sample_data_route():
    """
    Replace the caller's catalog with sample grocery products.

    Other owners' catalogs are untouched.
    """
    try:
        products = products_service.load_sample_products(g.owner.user_id)
    except Exception:
        current_app.logger.exception("Failed to load sample data")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "message": "Sample data added to your account",
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }), 201
