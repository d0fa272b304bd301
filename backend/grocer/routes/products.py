# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/grocer/routes/products.py
"""
Product catalog routes.

MULTI-TENANT: All product operations are scoped to the caller.
The owner is derived from g.owner (set by @require_auth); an owner value in
the request body is ignored.

A product id that exists but belongs to someone else answers 404, exactly
like an id that does not exist.
"""
from flask import Blueprint, request, jsonify, g, current_app
from ..services import products_service
from ..services.tenant_service import NotFoundError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _validation_response(e: ValidationError):
    return jsonify({"error": str(e), "field": e.field}), 400


@products_bp.get("")
@require_auth
def list_products():
    """
    List the caller's products, newest first.

    Query params:
    - category: str (optional) - exact category; "All Categories" means no filter
    - search: str (optional) - case-insensitive match on name or sku
    """
    products = products_service.list_products(
        g.owner.user_id,
        category=request.args.get("category"),
        search=request.args.get("search"),
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/low-stock")
@require_auth
def list_low_stock():
    """Products whose quantity is at or below their reorder level."""
    products = products_service.list_low_stock(g.owner.user_id)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/categories")
@require_auth
def list_categories():
    return jsonify({"categories": products_service.list_categories(g.owner.user_id)})


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(g.owner.user_id, product_id)
    except NotFoundError:
        return jsonify({"error": "Product not found"}), 404
    return jsonify(product.to_dict())


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a product owned by the caller."""
    payload = request.get_json(silent=True)

    try:
        product = products_service.create_product(g.owner.user_id, payload)
    except ValidationError as e:
        return _validation_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """Partially update one of the caller's products."""
    payload = request.get_json(silent=True)

    try:
        product = products_service.update_product(g.owner.user_id, product_id, payload)
    except NotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except ValidationError as e:
        return _validation_response(e)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """Permanently delete one of the caller's products."""
    try:
        products_service.delete_product(g.owner.user_id, product_id)
    except NotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True, "message": "Product deleted"}), 200
