# backend/grocer/services/products_service.py
"""
Product Catalog Service with Owner Scoping

MULTI-TENANT: Every operation takes the caller's owner_id and goes through
OwnerScope, so a product owned by someone else can be neither seen nor
changed. Lookups that miss on (id, owner) raise NotFoundError, which is the
same error a caller gets for an id that never existed.
"""
from __future__ import annotations
from flask import current_app
from sqlalchemy.orm.exc import StaleDataError
from ..extensions import db
from ..models import Product
from ..validation import ConflictError, ModelValidationPolicy, validate_payload, enforce_rules_product
from .concurrency import run_with_retry
from .tenant_service import OwnerScope

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "category", "supplier", "description",
        "price_cents", "cost_cents", "quantity", "reorder_level",
    },
    required_on_create={"name", "sku", "category", "price_cents", "cost_cents", "supplier"},
    # Ownership always comes from the authenticated caller
    ignored_fields={"owner_id", "owner", "id"},
)

PRODUCT_DEFAULTS = {
    "description": "",
    "quantity": 0,
    "reorder_level": 10,
}

# UI sentinel meaning "no category filter"
ALL_CATEGORIES = "All Categories"

SAMPLE_PRODUCTS = [
    {"name": "Apples", "sku": "FRU001", "category": "Fruits", "price_cents": 5000, "cost_cents": 3000,
     "quantity": 25, "reorder_level": 10, "supplier": "Fresh Farms", "description": "Fresh red apples"},
    {"name": "Milk", "sku": "DAI001", "category": "Dairy", "price_cents": 6000, "cost_cents": 4500,
     "quantity": 15, "reorder_level": 8, "supplier": "Dairy Fresh", "description": "Full cream milk 1L"},
    {"name": "Bread", "sku": "BAK001", "category": "Bakery", "price_cents": 3500, "cost_cents": 2000,
     "quantity": 5, "reorder_level": 6, "supplier": "City Bakery", "description": "Fresh white bread"},
    {"name": "Eggs", "sku": "DAI002", "category": "Dairy", "price_cents": 8000, "cost_cents": 6000,
     "quantity": 3, "reorder_level": 5, "supplier": "Happy Hens", "description": "Farm fresh eggs (dozen)"},
    {"name": "Rice", "sku": "GRO001", "category": "Grains", "price_cents": 12000, "cost_cents": 9000,
     "quantity": 20, "reorder_level": 10, "supplier": "Grains Co", "description": "Basmati rice 1kg"},
]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_products(owner_id: int, category: str | None = None, search: str | None = None) -> list[Product]:
    """
    Owner-scoped product listing, newest first.

    Args:
        owner_id: Caller identity
        category: Exact category match. Blank or "All Categories" means no filter.
        search: Case-insensitive substring matched against name OR sku
    """
    query = OwnerScope(owner_id).query(Product)

    category = (category or "").strip()
    if category and category != ALL_CATEGORIES:
        query = query.filter(Product.category == category)

    search = (search or "").strip()
    if search:
        pattern = f"%{_escape_like(search)}%"
        query = query.filter(
            db.or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.sku.ilike(pattern, escape="\\"),
            )
        )

    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def list_low_stock(owner_id: int) -> list[Product]:
    """
    Products at or below their reorder level.

    Evaluated in SQL against the live quantity column on every call, so a
    sale is reflected immediately.
    """
    return (
        OwnerScope(owner_id)
        .query(Product)
        .filter(Product.is_low_stock)
        .order_by(Product.quantity.asc(), Product.name.asc(), Product.id.asc())
        .all()
    )


def list_categories(owner_id: int) -> list[str]:
    rows = (
        OwnerScope(owner_id)
        .query(Product, Product.category)
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row.category for row in rows]


def get_product(owner_id: int, product_id: int) -> Product:
    return OwnerScope(owner_id).get(Product, product_id)


def create_product(owner_id: int, payload: dict) -> Product:
    """
    Create a product owned by the caller.

    Any owner value in the payload is ignored.

    Raises:
        ValidationError: missing/malformed field
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    values = {**PRODUCT_DEFAULTS, **{k: v for k, v in patch.items() if v is not None}}
    enforce_rules_product(values)

    product = OwnerScope(owner_id).add(Product(**values))
    db.session.commit()

    current_app.logger.info("product created id=%s owner_id=%s sku=%s", product.id, owner_id, product.sku)
    return product


def update_product(owner_id: int, product_id: int, payload: dict) -> Product:
    """
    Partially update an owned product.

    The merged result is re-validated with the create rules.

    Raises:
        NotFoundError: no such product for this owner
        ValidationError: malformed field or merged record invalid
        ConflictError: the row kept changing underneath (version mismatch on every attempt)
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    scope = OwnerScope(owner_id)

    def _op():
        try:
            product = scope.get(Product, product_id)

            merged = {key: getattr(product, key) for key in PRODUCT_POLICY.writable_fields}
            merged.update(patch)
            enforce_rules_product(merged)

            for key, value in patch.items():
                setattr(product, key, value)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return product

    # A sale committing between load and flush bumps version_id; retrying
    # reloads the row and re-applies the patch on top of the new stock.
    try:
        product = run_with_retry(_op)
    except StaleDataError:
        current_app.logger.warning("product update conflict id=%s owner_id=%s", product_id, owner_id)
        raise ConflictError("Product was modified concurrently, please retry")

    current_app.logger.info(
        "product updated id=%s owner_id=%s fields=%s", product.id, owner_id, ",".join(sorted(patch))
    )
    return product


def delete_product(owner_id: int, product_id: int) -> None:
    """
    Permanently delete an owned product.

    Sales that sold it keep their name snapshot.

    Raises:
        NotFoundError: no such product for this owner
    """
    product = OwnerScope(owner_id).get(Product, product_id)
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info("product deleted id=%s owner_id=%s", product_id, owner_id)


def load_sample_products(owner_id: int) -> list[Product]:
    """
    Replace the caller's catalog with a small grocery sample set.

    Only the caller's products are removed.
    """
    scope = OwnerScope(owner_id)
    scope.query(Product).delete(synchronize_session=False)

    products = [scope.add(Product(**values)) for values in SAMPLE_PRODUCTS]
    db.session.commit()
    return products
