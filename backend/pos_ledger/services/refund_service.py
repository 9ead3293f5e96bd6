"""
Refund processing.

A refund is the one-way transition Active -> Refunded. It restocks every
item of the sale by the sold quantity; a product deleted since the sale is
skipped and recorded in the ledger, never treated as fatal. A second refund
of the same sale is rejected before any inventory is touched, so stock can
never be restored twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .. import repository
from ..errors import AlreadyRefundedError, SaleNotFoundError
from ..extensions import db
from ..models import Sale
from ..time_utils import utcnow, to_utc_z
from .concurrency import serialized_write
from .ledger_service import append_ledger_event
from .products_service import adjust_quantity

logger = logging.getLogger(__name__)


@dataclass
class RefundResult:
    sale: Sale
    restocked: dict[str, int] = field(default_factory=dict)
    skipped_product_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(),
            "restocked": self.restocked,
            "skipped_product_ids": self.skipped_product_ids,
        }


def refund_sale(sale_id: str) -> RefundResult:
    """
    Refund a sale and restore its inventory.

    Raises:
        SaleNotFoundError: unknown sale id
        AlreadyRefundedError: the sale was refunded before
    """
    with serialized_write():
        sale = repository.get_sale(sale_id, for_update=True)
        if sale is None:
            raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})

        if sale.refunded:
            raise AlreadyRefundedError(
                "Sale already refunded",
                details={"sale_id": sale_id, "refund_date": to_utc_z(sale.refund_date)},
            )

        result = RefundResult(sale=sale)
        products = repository.get_products_by_ids(
            (item.product_id for item in sale.items), for_update=True
        )

        for item in sale.items:
            product = products.get(item.product_id)
            if product is None:
                # Best-effort restock: the product was deleted after the sale
                logger.warning(
                    "Refund of sale %s: product %s no longer exists, skipping restock of %d",
                    sale.id, item.product_id, item.quantity,
                )
                append_ledger_event(
                    event_type="refund.restock_skipped",
                    entity_type="product",
                    entity_id=item.product_id,
                    note=f"Sale {sale.id}: {item.name_snapshot} x{item.quantity} not restocked (product deleted)",
                )
                if item.product_id not in result.skipped_product_ids:
                    result.skipped_product_ids.append(item.product_id)
                continue

            adjust_quantity(product, item.quantity)
            result.restocked[product.id] = result.restocked.get(product.id, 0) + item.quantity

        refund_date = utcnow()
        repository.mark_refunded(sale.id, refund_date)

        append_ledger_event(
            event_type="sale.refunded",
            entity_type="sale",
            entity_id=sale.id,
            occurred_at=refund_date,
            note=f"Refunded total_cents={sale.total_cents}",
        )
        db.session.commit()

    logger.info("Sale %s refunded (%d product(s) restocked, %d skipped)",
                sale_id, len(result.restocked), len(result.skipped_product_ids))
    return result
