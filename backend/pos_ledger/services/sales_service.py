"""
Sales ledger: checkout and sale lookups.

Checkout is two-phase. Every cart line is validated against current stock
before anything is mutated, so a cart that fails on its last line leaves
every product exactly as it was. Only then are quantities decremented, item
snapshots taken and the sale written, all in one transaction.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from .. import repository
from ..errors import (
    ConflictError,
    InsufficientStockError,
    ProductNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..time_utils import utcnow
from ..validation import validate_cart_lines
from .concurrency import run_with_retry, serialized_write
from .ledger_service import append_ledger_event
from .products_service import adjust_quantity

logger = logging.getLogger(__name__)

MAX_IDEMPOTENCY_KEY_LENGTH = 128


def _cart_fingerprint(lines: list[tuple[str, int]]) -> list[tuple[str, int]]:
    """Summed quantity per product, sorted; line order and splitting do not matter."""
    totals: dict[str, int] = {}
    for product_id, qty in lines:
        totals[product_id] = totals.get(product_id, 0) + qty
    return sorted(totals.items())


def _load_products(lines: list[tuple[str, int]]) -> dict[str, Product]:
    products = repository.get_products_by_ids((pid for pid, _ in lines), for_update=True)
    missing = sorted({pid for pid, _ in lines if pid not in products})
    if missing:
        raise ProductNotFoundError(
            "Product not found",
            details={"product_ids": missing},
        )
    return products


def _validate_on_hand(lines: list[tuple[str, int]], products: dict[str, Product]) -> None:
    requested: dict[str, int] = {}
    for product_id, qty in lines:
        requested[product_id] = requested.get(product_id, 0) + qty

    insufficient = []
    for product_id, qty in requested.items():
        on_hand = products[product_id].quantity
        if qty > on_hand:
            insufficient.append({
                "product_id": product_id,
                "name": products[product_id].display_name,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise InsufficientStockError(
            "Insufficient stock to complete sale",
            details={"items": insufficient},
        )


def _build_items(lines: list[tuple[str, int]], products: dict[str, Product]) -> list[SaleItem]:
    items = []
    for product_id, qty in lines:
        p = products[product_id]
        items.append(SaleItem(
            product_id=p.id,
            name_snapshot=p.name,
            variant_snapshot=p.variant,
            price_snapshot_cents=p.price_cents,
            cost_price_snapshot_cents=p.cost_price_cents,
            quantity=qty,
            line_total_cents=p.price_cents * qty,
        ))
    return items


def create_sale(cart_lines, idempotency_key: str | None = None) -> Sale:
    """
    Check out a cart of {product_id, quantity} lines.

    With an idempotency_key, a repeated call returns the sale the first call
    created and touches no inventory. Reusing a key with a different cart is
    a ConflictError.

    Raises:
        ValidationError: empty cart, malformed line or key
        ProductNotFoundError: a line references an unknown product
        InsufficientStockError: any product lacks stock for the summed quantity
        ConflictError: idempotency_key already used for a different cart
    """
    lines = validate_cart_lines(cart_lines)

    if idempotency_key is not None:
        idempotency_key = idempotency_key.strip()
        if not idempotency_key or len(idempotency_key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            raise ValidationError(f"Idempotency key must be 1-{MAX_IDEMPOTENCY_KEY_LENGTH} characters")

    with serialized_write():
        if idempotency_key:
            existing = repository.get_sale_by_idempotency_key(idempotency_key)
            if existing is not None:
                stored = [(item.product_id, item.quantity) for item in existing.items]
                if _cart_fingerprint(stored) != _cart_fingerprint(lines):
                    raise ConflictError(
                        "Idempotency key was already used for a different cart",
                        details={"idempotency_key": idempotency_key, "sale_id": existing.id},
                    )
                logger.info("Checkout replay for key %s returned sale %s", idempotency_key, existing.id)
                return existing

        # Phase 1: validate every line; nothing has been mutated yet
        products = _load_products(lines)
        _validate_on_hand(lines, products)

        # Phase 2: commit every line
        for product_id, qty in lines:
            adjust_quantity(products[product_id], -qty)

        items = _build_items(lines, products)
        sale = Sale(
            date=utcnow(),
            total_cents=sum(item.line_total_cents for item in items),
            refunded=False,
            refund_date=None,
            idempotency_key=idempotency_key or None,
        )
        repository.create_sale_record(sale, items)

        append_ledger_event(
            event_type="sale.created",
            entity_type="sale",
            entity_id=sale.id,
            occurred_at=sale.date,
            note=f"Sale of {sale.item_count} item(s), total_cents={sale.total_cents}",
            payload=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in lines]),
        )
        db.session.commit()

    logger.info("Sale %s created: %d line(s), total_cents=%d", sale.id, len(lines), sale.total_cents)
    return sale


def get_sale(sale_id: str) -> Sale:
    sale = run_with_retry(lambda: repository.get_sale(sale_id))
    if sale is None:
        raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(start: datetime | None = None, end: datetime | None = None) -> list[Sale]:
    """Sales in [start, end] (both optional, inclusive), oldest first."""
    if start is not None and end is not None and start > end:
        raise ValidationError("start must be before end")
    return run_with_retry(lambda: repository.get_sales(start, end))
