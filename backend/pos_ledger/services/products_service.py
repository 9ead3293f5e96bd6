# backend/pos_ledger/services/products_service.py
"""
Inventory store: product records and on-hand quantities.

- (name, variant) is unique; a missing variant is a value of its own.
- add/update/remove are validated here and written through the repository.
- adjust_quantity is the only path the sale and refund flows use to move stock;
  it never lets a quantity go negative.
- Deleting a product is unconditional. Sales keep snapshots, not live references.
"""
from __future__ import annotations

import logging

from .. import repository
from ..errors import ConflictError, InsufficientStockError, ProductNotFoundError
from ..extensions import db
from ..models import Product
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from .concurrency import run_with_retry, serialized_write
from .ledger_service import append_ledger_event

logger = logging.getLogger(__name__)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "variant", "cost_price_cents", "price_cents", "quantity"}),
    required_on_create=frozenset({"name", "cost_price_cents", "price_cents"}),
)


def validate_product_data(data: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    return patch


def list_products(search: str | None = None) -> list[Product]:
    return run_with_retry(lambda: repository.get_products(search))


def get_product(product_id: str) -> Product:
    p = run_with_retry(lambda: repository.get_product(product_id))
    if p is None:
        raise ProductNotFoundError("Product not found", details={"product_id": product_id})
    return p


def _ensure_unique(name: str, variant: str | None, exclude_id: str | None = None) -> None:
    existing = repository.find_product_by_name_variant(name, variant, exclude_id=exclude_id)
    if existing:
        raise ConflictError(
            "A product with this name and variant already exists.",
            details={"product_id": existing.id, "name": name, "variant": variant},
        )


def add_product(data: dict) -> Product:
    """
    Create a product from a raw payload.

    Raises:
        ValidationError: bad or missing fields
        ConflictError: (name, variant) already taken
    """
    patch = validate_product_data(data, partial=False)
    patch.setdefault("variant", None)
    patch.setdefault("quantity", 0)

    with serialized_write():
        _ensure_unique(patch["name"], patch["variant"])
        p = repository.create_product(patch)

        append_ledger_event(
            event_type="product.created",
            entity_type="product",
            entity_id=p.id,
            note=f"Created product {p.display_name} qty={p.quantity}",
        )
        db.session.commit()

    logger.info("Product %s created (%s)", p.id, p.display_name)
    return p


def update_product(product_id: str, data: dict) -> Product:
    """
    Partial update of a product.

    Raises:
        ValidationError: bad fields
        ProductNotFoundError: unknown id
        ConflictError: the new (name, variant) belongs to another product
    """
    patch = validate_product_data(data, partial=True)

    with serialized_write():
        current = repository.get_product(product_id, for_update=True)
        if current is None:
            raise ProductNotFoundError("Product not found", details={"product_id": product_id})

        if not patch:
            return current

        if "name" in patch or "variant" in patch:
            name = patch.get("name", current.name)
            variant = patch["variant"] if "variant" in patch else current.variant
            _ensure_unique(name, variant, exclude_id=product_id)

        p = repository.update_product(product_id, patch)

        append_ledger_event(
            event_type="product.updated",
            entity_type="product",
            entity_id=p.id,
            note=f"Updated fields: {', '.join(sorted(patch.keys()))}",
        )
        db.session.commit()

    return p


def remove_product(product_id: str) -> None:
    """Hard delete. Historical sales keep their snapshots."""
    with serialized_write():
        p = repository.get_product(product_id)
        if p is None:
            raise ProductNotFoundError("Product not found", details={"product_id": product_id})
        label = p.display_name

        repository.delete_product(product_id)
        append_ledger_event(
            event_type="product.deleted",
            entity_type="product",
            entity_id=product_id,
            note=f"Deleted product {label}",
        )
        db.session.commit()

    logger.info("Product %s deleted (%s)", product_id, label)


def adjust_quantity(product: Product | str, delta: int) -> Product:
    """
    Move on-hand stock by delta inside the caller's transaction.

    Accepts a product already loaded (and locked) by the caller, or an id.
    Does not commit.

    Raises:
        ProductNotFoundError: unknown id
        InsufficientStockError: the result would be negative
    """
    if not isinstance(product, Product):
        product_id = product
        product = repository.get_product(product_id, for_update=True)
        if product is None:
            raise ProductNotFoundError("Product not found", details={"product_id": product_id})

    new_quantity = product.quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {product.display_name}",
            details={
                "product_id": product.id,
                "on_hand": product.quantity,
                "requested_quantity": -delta,
            },
        )

    product.quantity = new_quantity
    return product
