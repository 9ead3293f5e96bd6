"""
Persistence layer for products and sales.

The one place that knows how products, sales and sale items are stored.
Services call these functions inside their own transaction: nothing here
commits, writes are flushed so generated values are visible, and the caller
decides when the unit of work is durable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import func, or_

from .extensions import db
from .models import Product, Sale, SaleItem, new_id
from .services.concurrency import lock_for_update


# =============================================================================
# PRODUCTS
# =============================================================================

def get_products(search: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(func.coalesce(Product.variant, "")).like(pattern),
            )
        )
    return query.order_by(Product.name.asc(), Product.variant.asc(), Product.id.asc()).all()


def count_products() -> int:
    return db.session.query(func.count(Product.id)).scalar() or 0


def get_product(product_id: str, *, for_update: bool = False) -> Product | None:
    query = db.session.query(Product).filter(Product.id == product_id)
    if for_update:
        query = lock_for_update(query)
    return query.first()


def get_products_by_ids(product_ids: Iterable[str], *, for_update: bool = False) -> dict[str, Product]:
    ids = set(product_ids)
    if not ids:
        return {}
    query = db.session.query(Product).filter(Product.id.in_(ids))
    if for_update:
        query = lock_for_update(query)
    return {p.id: p for p in query.all()}


def find_product_by_name_variant(name: str, variant: str | None, *, exclude_id: str | None = None) -> Product | None:
    query = db.session.query(Product).filter(Product.name == name)
    if variant is None:
        query = query.filter(Product.variant.is_(None))
    else:
        query = query.filter(Product.variant == variant)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first()


def create_product(data: dict) -> Product:
    p = Product(id=new_id(), **data)
    db.session.add(p)
    db.session.flush()
    return p


def update_product(product_id: str, data: dict) -> Product | None:
    p = get_product(product_id, for_update=True)
    if p is None:
        return None
    for k, v in data.items():
        setattr(p, k, v)
    db.session.flush()
    return p


def delete_product(product_id: str) -> bool:
    p = get_product(product_id, for_update=True)
    if p is None:
        return False
    db.session.delete(p)
    db.session.flush()
    return True


# =============================================================================
# SALES
# =============================================================================

def get_sales(
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    end_exclusive: bool = False,
    include_refunded: bool = True,
) -> list[Sale]:
    """
    Sales ordered by date ascending.

    start is inclusive; end is inclusive unless end_exclusive (used for the
    half-open day/month windows of the stats).
    """
    query = db.session.query(Sale)
    if start is not None:
        query = query.filter(Sale.date >= start)
    if end is not None:
        query = query.filter(Sale.date < end if end_exclusive else Sale.date <= end)
    if not include_refunded:
        query = query.filter(Sale.refunded.is_(False))
    return query.order_by(Sale.date.asc(), Sale.id.asc()).all()


def get_recent_sales(limit: int) -> list[Sale]:
    """Newest first."""
    return (
        db.session.query(Sale)
        .order_by(Sale.date.desc(), Sale.created_at.desc())
        .limit(limit)
        .all()
    )


def get_sale(sale_id: str, *, for_update: bool = False) -> Sale | None:
    query = db.session.query(Sale).filter(Sale.id == sale_id)
    if for_update:
        query = lock_for_update(query)
    return query.first()


def get_sale_by_idempotency_key(key: str) -> Sale | None:
    return db.session.query(Sale).filter(Sale.idempotency_key == key).first()


def create_sale_record(sale: Sale, items: list[SaleItem]) -> Sale:
    """Attach items to the sale and stage both in the current transaction."""
    if not sale.id:
        sale.id = new_id()
    for position, item in enumerate(items):
        if not item.id:
            item.id = new_id()
        item.position = position
        sale.items.append(item)
    db.session.add(sale)
    db.session.flush()
    return sale


def mark_refunded(sale_id: str, refund_date: datetime) -> bool:
    """
    One-way transition to refunded.

    Returns False when the sale is unknown or already refunded, so the caller
    can tell the transition did not happen.
    """
    sale = get_sale(sale_id, for_update=True)
    if sale is None or sale.refunded:
        return False
    sale.refunded = True
    sale.refund_date = refund_date
    db.session.flush()
    return True
