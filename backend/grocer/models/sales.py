from __future__ import annotations

from ..extensions import db
from grocer.time_utils import to_utc_z

class Sale(db.Model):
    """
    Completed sale (ledger entry).

    Created exactly once by sales_service.process_sale and never updated or
    deleted afterwards. total_amount_cents is fixed at creation from the
    caller-supplied line prices.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    owner = db.relationship("User", backref=db.backref("sales", lazy=True, passive_deletes=True))
    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "items": [line.to_dict() for line in self.lines],
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
        }

class SaleLine(db.Model):
    """
    Individual line items on a sale.

    product_id is a plain reference (no FK) so deleting a product later never
    rewrites history; product_name is the snapshot taken at sale time.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "position", name="uq_sale_lines_sale_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
