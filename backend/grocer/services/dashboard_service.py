"""
Dashboard Aggregates

Read-only summary of one owner's catalog and ledger. No side effects; each
figure is a single scoped aggregate query.
"""

from __future__ import annotations

from sqlalchemy import func

from ..models import Product, Sale
from .tenant_service import OwnerScope


def summarize(owner_id: int) -> dict:
    scope = OwnerScope(owner_id)

    total_products = scope.query(Product, func.count(Product.id)).scalar()
    low_stock_count = scope.query(Product, func.count(Product.id)).filter(Product.is_low_stock).scalar()
    total_sales = scope.query(Sale, func.count(Sale.id)).scalar()
    total_revenue_cents = scope.query(Sale, func.coalesce(func.sum(Sale.total_amount_cents), 0)).scalar()

    return {
        "total_products": int(total_products or 0),
        "low_stock_count": int(low_stock_count or 0),
        "total_sales": int(total_sales or 0),
        "total_revenue_cents": int(total_revenue_cents or 0),
    }
