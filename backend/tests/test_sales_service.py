"""
Checkout tests.

Verifies:
- Totals and snapshots on a committed sale
- All-or-nothing stock validation (no partial decrement)
- Unknown products and malformed carts are rejected before any mutation
- Idempotency keys make a retried checkout return the original sale
- Snapshots survive later product edits and deletes
"""

from datetime import datetime

import pytest
from sqlalchemy import BigInteger

from pos_ledger.errors import (
    ConflictError,
    InsufficientStockError,
    ProductNotFoundError,
    SaleNotFoundError,
    ValidationError,
)
from pos_ledger.models import LedgerEvent, Product, Sale, SaleItem
from pos_ledger.services import products_service, sales_service
from pos_ledger.validation import MAX_PRICE_CENTS, MAX_QUANTITY


def _quantity(db_session, product_id):
    db_session.expire_all()
    return db_session.get(Product, product_id).quantity


class TestCreateSale:

    def test_widget_sale(self, db_session, widget):
        sale = sales_service.create_sale([{"product_id": widget.id, "quantity": 2}])

        assert _quantity(db_session, widget.id) == 3
        assert sale.total_cents == 2000
        assert sale.refunded is False
        assert sale.refund_date is None
        assert len(sale.items) == 1

        item = sale.items[0]
        assert item.name_snapshot == "Widget"
        assert item.price_snapshot_cents == 1000
        assert item.cost_price_snapshot_cents == 400
        assert item.quantity == 2
        assert item.line_total_cents == 2000

    def test_totals_are_exact_sums(self, db_session, make_product):
        a = make_product(name="A", price_cents=333, quantity=10)
        b = make_product(name="B", price_cents=1999, quantity=10)
        c = make_product(name="C", price_cents=1, quantity=10)

        sale = sales_service.create_sale([
            {"product_id": a.id, "quantity": 3},
            {"product_id": b.id, "quantity": 7},
            {"product_id": c.id, "quantity": 1},
        ])

        for item in sale.items:
            assert item.line_total_cents == item.price_snapshot_cents * item.quantity
        assert sale.total_cents == sum(item.line_total_cents for item in sale.items)
        assert sale.total_cents == 999 + 13993 + 1
        assert [item.name_snapshot for item in sale.items] == ["A", "B", "C"]

    def test_timestamp_is_utc_second_precision(self, db_session, widget, clock):
        clock("2025-04-05T23:30:00")
        sale = sales_service.create_sale([{"product_id": widget.id, "quantity": 1}])
        assert sale.date == datetime(2025, 4, 5, 23, 30, 0)
        assert sale.to_dict()["date"] == "2025-04-05T23:30:00Z"

    def test_appends_ledger_event(self, db_session, widget):
        sale = sales_service.create_sale([{"product_id": widget.id, "quantity": 1}])
        ev = db_session.query(LedgerEvent).filter_by(event_type="sale.created").one()
        assert ev.entity_id == sale.id

    def test_largest_allowed_line_total_is_stored_exactly(self, db_session):
        p = products_service.add_product({
            "name": "Bulk",
            "cost_price_cents": 0,
            "price_cents": MAX_PRICE_CENTS,
            "quantity": MAX_QUANTITY,
        })
        sale = sales_service.create_sale([{"product_id": p.id, "quantity": MAX_QUANTITY}])

        db_session.expire_all()
        stored = sales_service.get_sale(sale.id)
        assert stored.total_cents == 999_999_999_000_000
        assert stored.items[0].line_total_cents == 999_999_999_000_000
        assert isinstance(Sale.__table__.c.total_cents.type, BigInteger)
        assert isinstance(SaleItem.__table__.c.line_total_cents.type, BigInteger)

    def test_same_product_on_two_lines(self, db_session, widget):
        sale = sales_service.create_sale([
            {"product_id": widget.id, "quantity": 2},
            {"product_id": widget.id, "quantity": 3},
        ])
        assert len(sale.items) == 2
        assert sale.total_cents == 5000
        assert _quantity(db_session, widget.id) == 0


class TestAtomicity:

    def test_second_line_over_stock_leaves_both_unchanged(self, db_session, make_product):
        first = make_product(name="First", quantity=10)
        second = make_product(name="Second", quantity=1)

        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale([
                {"product_id": first.id, "quantity": 2},
                {"product_id": second.id, "quantity": 5},
            ])

        assert _quantity(db_session, first.id) == 10
        assert _quantity(db_session, second.id) == 1
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleItem).count() == 0
        assert exc.value.details["items"][0]["product_id"] == second.id

    def test_lines_summed_per_product(self, db_session, widget):
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale([
                {"product_id": widget.id, "quantity": 3},
                {"product_id": widget.id, "quantity": 3},
            ])
        assert _quantity(db_session, widget.id) == 5

    def test_unknown_product(self, db_session, widget):
        with pytest.raises(ProductNotFoundError) as exc:
            sales_service.create_sale([
                {"product_id": widget.id, "quantity": 1},
                {"product_id": "nope", "quantity": 1},
            ])
        assert exc.value.details["product_ids"] == ["nope"]
        assert _quantity(db_session, widget.id) == 5
        assert db_session.query(Sale).count() == 0

    def test_no_ledger_event_on_failure(self, db_session, widget):
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale([{"product_id": widget.id, "quantity": 99}])
        assert db_session.query(LedgerEvent).filter_by(event_type="sale.created").count() == 0


class TestCartValidation:

    @pytest.mark.parametrize(
        "cart",
        [
            None,
            [],
            {"product_id": "x", "quantity": 1},
            [{"quantity": 1}],
            [{"product_id": "", "quantity": 1}],
            [{"product_id": "x"}],
            [{"product_id": "x", "quantity": 0}],
            [{"product_id": "x", "quantity": -2}],
            [{"product_id": "x", "quantity": 1.5}],
            ["x"],
        ],
    )
    def test_rejects(self, db_session, cart):
        with pytest.raises(ValidationError):
            sales_service.create_sale(cart)


class TestIdempotency:

    def test_replay_returns_same_sale(self, db_session, widget):
        first = sales_service.create_sale([{"product_id": widget.id, "quantity": 2}], idempotency_key="abc-1")
        second = sales_service.create_sale([{"product_id": widget.id, "quantity": 2}], idempotency_key="abc-1")

        assert first.id == second.id
        assert db_session.query(Sale).count() == 1
        assert _quantity(db_session, widget.id) == 3

    def test_different_keys_are_different_sales(self, db_session, widget):
        sales_service.create_sale([{"product_id": widget.id, "quantity": 1}], idempotency_key="k1")
        sales_service.create_sale([{"product_id": widget.id, "quantity": 1}], idempotency_key="k2")
        assert db_session.query(Sale).count() == 2
        assert _quantity(db_session, widget.id) == 3

    def test_same_cart_split_across_lines_replays(self, db_session, widget):
        first = sales_service.create_sale([{"product_id": widget.id, "quantity": 2}], idempotency_key="k-split")
        second = sales_service.create_sale(
            [{"product_id": widget.id, "quantity": 1}, {"product_id": widget.id, "quantity": 1}],
            idempotency_key="k-split",
        )
        assert first.id == second.id
        assert _quantity(db_session, widget.id) == 3

    def test_reused_key_with_different_cart_conflicts(self, db_session, make_product):
        a = make_product(name="A", quantity=10)
        b = make_product(name="B", quantity=10)
        first = sales_service.create_sale([{"product_id": a.id, "quantity": 2}], idempotency_key="k-cart")

        with pytest.raises(ConflictError) as exc:
            sales_service.create_sale([{"product_id": b.id, "quantity": 2}], idempotency_key="k-cart")
        with pytest.raises(ConflictError):
            sales_service.create_sale([{"product_id": a.id, "quantity": 3}], idempotency_key="k-cart")

        assert exc.value.status_code == 409
        assert exc.value.details["sale_id"] == first.id
        assert db_session.query(Sale).count() == 1
        assert _quantity(db_session, a.id) == 8
        assert _quantity(db_session, b.id) == 10

    def test_blank_key_rejected(self, db_session, widget):
        with pytest.raises(ValidationError):
            sales_service.create_sale([{"product_id": widget.id, "quantity": 1}], idempotency_key="  ")


class TestSnapshots:

    def test_price_edit_does_not_change_history(self, db_session, widget):
        sale = sales_service.create_sale([{"product_id": widget.id, "quantity": 2}])
        products_service.update_product(widget.id, {"price_cents": 5000, "name": "Renamed"})

        db_session.expire_all()
        stored = sales_service.get_sale(sale.id)
        assert stored.total_cents == 2000
        assert stored.items[0].price_snapshot_cents == 1000
        assert stored.items[0].name_snapshot == "Widget"

    def test_deleting_product_keeps_sale(self, db_session, widget):
        sale = sales_service.create_sale([{"product_id": widget.id, "quantity": 1}])
        products_service.remove_product(widget.id)

        stored = sales_service.get_sale(sale.id)
        assert stored.items[0].product_id == widget.id
        assert stored.total_cents == 1000


class TestLookups:

    def test_get_unknown_sale(self, db_session):
        with pytest.raises(SaleNotFoundError):
            sales_service.get_sale("missing")

    def test_list_sales_window_is_inclusive(self, db_session, widget, clock):
        clock("2025-04-01T00:00:00")
        a = sales_service.create_sale([{"product_id": widget.id, "quantity": 1}])
        clock("2025-04-02T12:00:00")
        b = sales_service.create_sale([{"product_id": widget.id, "quantity": 1}])
        clock("2025-04-03T00:00:00")
        c = sales_service.create_sale([{"product_id": widget.id, "quantity": 1}])

        window = sales_service.list_sales(datetime(2025, 4, 1), datetime(2025, 4, 2, 12))
        assert [s.id for s in window] == [a.id, b.id]
        assert [s.id for s in sales_service.list_sales()] == [a.id, b.id, c.id]
        assert [s.id for s in sales_service.list_sales(start=datetime(2025, 4, 3))] == [c.id]

    def test_list_sales_rejects_inverted_window(self, db_session):
        with pytest.raises(ValidationError):
            sales_service.list_sales(datetime(2025, 5, 1), datetime(2025, 4, 1))
