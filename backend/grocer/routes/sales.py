# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/grocer/routes/sales.py
"""Sales ledger API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import (
    SaleError,
    EmptySaleError,
    ProductNotFoundError,
    InsufficientStockError,
)
from ..services.tenant_service import NotFoundError
from ..validation import ValidationError
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale and deduct stock.

    Body:
    - items: [{product_id, quantity, unit_price_cents}, ...]
    - payment_method: str

    All or nothing: on any error no stock moves and no sale is stored.
    """
    data = request.get_json(silent=True) or {}

    try:
        sale = sales_service.process_sale(
            g.owner.user_id,
            data.get("items"),
            data.get("payment_method"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e), "field": e.field}), 400
    except EmptySaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ProductNotFoundError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
def list_sales_route():
    """The caller's sales, most recent first."""
    sales = sales_service.list_sales(g.owner.user_id)
    return jsonify({"items": sales, "count": len(sales)}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.owner.user_id, sale_id)
    except NotFoundError:
        return jsonify({"error": "Sale not found"}), 404

    return jsonify({"sale": sale.to_dict()}), 200
