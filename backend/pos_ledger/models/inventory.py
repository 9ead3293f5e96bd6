from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z


def new_id() -> str:
    """Opaque string identifier shared by products, sales and sale items."""
    return uuid.uuid4().hex


class Product(db.Model):
    """
    Product master data.

    UNIQUENESS: (name, variant) identifies a product. A NULL variant counts as
    one value for this purpose, which the database constraint alone cannot
    express, so products_service checks it before writing.

    QUANTITY: on-hand stock. Only the sale and refund flows move it (through
    products_service.adjust_quantity); edits may correct it directly.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("name", "variant", name="uq_products_name_variant"),
        db.Index("ix_products_name", "name"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    name = db.Column(db.String(255), nullable=False)
    variant = db.Column(db.String(255), nullable=True)

    # Authoritative storage in cents (clients format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} variant={self.variant!r} qty={self.quantity}>"

    @property
    def display_name(self) -> str:
        if self.variant:
            return f"{self.name} ({self.variant})"
        return self.name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "variant": self.variant,
            "display_name": self.display_name,
            "cost_price_cents": self.cost_price_cents,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
