from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .inventory import new_id


class Sale(db.Model):
    """
    Sale ledger record.

    IMMUTABLE except for the one-way transition Active -> Refunded.
    refund_date is set if and only if refunded is true.
    total_cents is the sum of the item line totals and is written once,
    in the same transaction as the items.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_date", "date"),
        db.Index("ix_sales_refunded_date", "refunded", "date"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    # Business time of the sale (UTC-naive, second precision)
    date = db.Column(db.DateTime, nullable=False)

    total_cents = db.Column(db.BigInteger, nullable=False, default=0)

    refunded = db.Column(db.Boolean, nullable=False, default=False)
    refund_date = db.Column(db.DateTime, nullable=True)

    # Client-supplied token that makes a retried checkout return the original sale
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} total_cents={self.total_cents} refunded={self.refunded}>"

    @property
    def status(self) -> str:
        return "REFUNDED" if self.refunded else "COMPLETED"

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "date": to_utc_z(self.date),
            "total_cents": self.total_cents,
            "item_count": self.item_count,
            "status": self.status,
            "refunded": self.refunded,
            "refund_date": to_utc_z(self.refund_date) if self.refund_date else None,
            "idempotency_key": self.idempotency_key,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line on a sale.

    name/variant/price/cost are snapshots taken at sale time and never
    recomputed from the live product. product_id is a soft reference: the
    product may since have been deleted.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_sale_position", "sale_id", "position"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    sale_id = db.Column(db.String(32), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Soft reference: no foreign key so deleting a product leaves history intact
    product_id = db.Column(db.String(32), nullable=False, index=True)

    name_snapshot = db.Column(db.String(255), nullable=False)
    variant_snapshot = db.Column(db.String(255), nullable=True)
    price_snapshot_cents = db.Column(db.Integer, nullable=False)
    cost_price_snapshot_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "position": self.position,
            "product_id": self.product_id,
            "name": self.name_snapshot,
            "variant": self.variant_snapshot,
            "price_cents": self.price_snapshot_cents,
            "cost_price_cents": self.cost_price_snapshot_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
        }
