from __future__ import annotations

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from grocer.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are owned by exactly one user via owner_id.
    owner_id is set from the caller identity on create and never changes.

    SKU DESIGN DECISION:
    SKUs are free text and NOT unique, not even per owner. Two products of
    the same owner may share a SKU; lookups always go by id.

    Stock lives directly on the row (quantity). Sales decrement it with a
    conditional UPDATE, see sales_service.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_owner_created", "owner_id", "created_at"),
        db.Index("ix_products_owner_category", "owner_id", "category"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("reorder_level >= 0", name="ck_products_reorder_level_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    supplier = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("products", lazy=True, passive_deletes=True))
    __mapper_args__ = {"version_id_col": version_id}

    @hybrid_property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_level

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "supplier": self.supplier,
            "description": self.description,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
            "is_low_stock": self.quantity <= self.reorder_level,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
