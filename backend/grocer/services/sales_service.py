"""
Sales Ledger Service - multi-line sale processing

WHY: A sale is the only operation that mutates several records at once
(one stock decrement per line plus the sale itself). It is all-or-nothing:
either every line's stock is taken and the sale is recorded, or nothing
changes.

FLOW:
1. Parse the request (non-empty items, integer quantities and prices)
2. Validation pass: resolve every product for the owner and check stock
   against the aggregated requested quantity, before any write
3. Write pass: one conditional UPDATE per line
   (quantity = quantity - n WHERE quantity >= n), so two concurrent sales
   can never drive stock negative
4. Append the Sale with name snapshots and caller-supplied unit prices
5. Commit; any failure rolls the whole transaction back
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..validation import ValidationError, coerce_int, MAX_PRICE_CENTS, MAX_QUANTITY
from grocer.time_utils import utcnow
from .concurrency import begin_write_transaction, run_with_retry
from .tenant_service import OwnerScope, NotFoundError, MAX_RECORD_ID

PAYMENT_METHOD_MAX_LENGTH = 32


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EmptySaleError(SaleError):
    """A sale needs at least one line item."""


class ProductNotFoundError(SaleError):
    """A line references a product the caller does not own (or that does not exist)."""

    def __init__(self, product_id: int):
        super().__init__("Product not found in your inventory", details={"product_id": product_id})
        self.product_id = product_id


class InsufficientStockError(SaleError):
    """Requested quantity exceeds what is on hand."""

    def __init__(self, product_id: int, available: int, requested: int, product_name: str | None = None):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}",
            details={"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


def parse_sale_items(items) -> list[LineRequest]:
    """
    Validate the raw line items of a sale request.

    Raises:
        EmptySaleError: items missing or empty
        ValidationError: malformed line (field names the offending line)
        ProductNotFoundError: product_id can never name a stored product
    """
    if items is None or (isinstance(items, list) and not items):
        raise EmptySaleError("A sale requires at least one item")
    if not isinstance(items, list):
        raise ValidationError("items must be a list", field="items")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object", field=f"items[{index}]")

        values = {}
        for key in ("product_id", "quantity", "unit_price_cents"):
            field = f"items[{index}].{key}"
            if raw.get(key) is None:
                raise ValidationError(f"{field} is required", field=field)
            values[key] = coerce_int(raw[key], field)

        if not 1 <= values["product_id"] <= MAX_RECORD_ID:
            raise ProductNotFoundError(values["product_id"])
        if values["quantity"] <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0", field=f"items[{index}].quantity")
        if values["quantity"] > MAX_QUANTITY:
            raise ValidationError(
                f"items[{index}].quantity cannot exceed {MAX_QUANTITY}", field=f"items[{index}].quantity"
            )
        if not 0 <= values["unit_price_cents"] <= MAX_PRICE_CENTS:
            raise ValidationError(
                f"items[{index}].unit_price_cents must be between 0 and {MAX_PRICE_CENTS}",
                field=f"items[{index}].unit_price_cents",
            )

        lines.append(LineRequest(**values))

    return lines


def _clean_payment_method(payment_method) -> str:
    if not isinstance(payment_method, str) or not payment_method.strip():
        raise ValidationError("payment_method is required", field="payment_method")
    payment_method = payment_method.strip()
    if len(payment_method) > PAYMENT_METHOD_MAX_LENGTH:
        raise ValidationError(
            f"payment_method exceeds max length {PAYMENT_METHOD_MAX_LENGTH}", field="payment_method"
        )
    return payment_method


def _validate_lines(scope: OwnerScope, lines: list[LineRequest]) -> dict[int, Product]:
    """Read-only pass: resolve every product and check stock. No writes."""
    products: dict[int, Product] = {}
    requested: dict[int, int] = {}

    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            try:
                product = scope.get(Product, line.product_id, for_update=True)
            except NotFoundError:
                raise ProductNotFoundError(line.product_id)
            products[line.product_id] = product

        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
        if product.quantity < requested[line.product_id]:
            raise InsufficientStockError(
                product.id,
                available=product.quantity,
                requested=requested[line.product_id],
                product_name=product.name,
            )

    return products


def _decrement_stock(scope: OwnerScope, line: LineRequest, product: Product) -> None:
    """Write pass for one line: conditional decrement, checked at write time."""
    changed = scope.update_where(
        Product,
        line.product_id,
        {
            "quantity": Product.quantity - line.quantity,
            "version_id": Product.version_id + 1,
            "updated_at": utcnow(),
        },
        Product.quantity >= line.quantity,
    )
    if changed != 1:
        available = scope.query(Product, Product.quantity).filter(Product.id == line.product_id).scalar()
        raise InsufficientStockError(
            line.product_id,
            available=available or 0,
            requested=line.quantity,
            product_name=product.name,
        )


def _process_locked(scope: OwnerScope, lines: list[LineRequest], payment_method: str, total: int) -> Sale:
    products = _validate_lines(scope, lines)

    for line in lines:
        _decrement_stock(scope, line, products[line.product_id])

    sale = scope.add(Sale(
        total_amount_cents=total,
        payment_method=payment_method,
        created_at=utcnow(),
    ))
    for position, line in enumerate(lines, start=1):
        sale.lines.append(SaleLine(
            position=position,
            product_id=line.product_id,
            product_name=products[line.product_id].name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
        ))

    db.session.flush()
    return sale


def process_sale(owner_id: int, items, payment_method) -> Sale:
    """
    Record a sale and take its stock, all or nothing.

    The total is computed from the caller-supplied unit prices; the
    catalog price is never consulted (point-of-sale price capture).

    Raises:
        EmptySaleError: no items
        ValidationError: malformed line or payment method
        ProductNotFoundError: a line's product is absent or foreign-owned
        InsufficientStockError: a line asks for more than is on hand
    """
    lines = parse_sale_items(items)
    payment_method = _clean_payment_method(payment_method)
    total = sum(line.line_total_cents for line in lines)
    scope = OwnerScope(owner_id)

    def _op():
        begin_write_transaction()
        try:
            sale = _process_locked(scope, lines, payment_method, total)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return sale

    try:
        sale = run_with_retry(_op)
    except SaleError as e:
        current_app.logger.warning("sale rejected owner_id=%s: %s %s", owner_id, e, e.details)
        raise

    current_app.logger.info(
        "sale recorded id=%s owner_id=%s lines=%d total_cents=%d",
        sale.id, owner_id, len(lines), total,
    )
    return sale


def get_sale(owner_id: int, sale_id: int) -> Sale:
    return OwnerScope(owner_id).get(Sale, sale_id)


def list_sales(owner_id: int) -> list[dict]:
    """
    Owner's sales, most recent first.

    Each item is annotated with the product's current name and sku
    (`product`), or None when the product has since been deleted.
    """
    scope = OwnerScope(owner_id)
    sales = scope.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    product_ids = {line.product_id for sale in sales for line in sale.lines}
    current = {}
    if product_ids:
        rows = scope.query(Product, Product.id, Product.name, Product.sku).filter(Product.id.in_(product_ids)).all()
        current = {row.id: {"id": row.id, "name": row.name, "sku": row.sku} for row in rows}

    result = []
    for sale in sales:
        data = sale.to_dict()
        for item in data["items"]:
            item["product"] = current.get(item["product_id"])
        result.append(data)
    return result
