"""
Inventory store tests.

Verifies:
- Product validation (name, prices, quantity)
- (name, variant) uniqueness on create and update
- Removal and not-found handling
- adjust_quantity never goes negative
- Every mutation lands in the audit ledger
"""

import pytest

from pos_ledger.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from pos_ledger.models import LedgerEvent, Product
from pos_ledger.services import products_service


class TestAddProduct:

    def test_creates_with_generated_id(self, db_session, make_product):
        p = make_product(name="Widget", variant="Blue", quantity=7)

        assert isinstance(p.id, str) and len(p.id) == 32
        assert p.variant == "Blue"
        assert p.quantity == 7
        assert db_session.query(Product).count() == 1

    def test_quantity_defaults_to_zero(self, db_session):
        p = products_service.add_product({"name": "Gadget", "cost_price_cents": 100, "price_cents": 200})
        assert p.quantity == 0
        assert p.variant is None

    def test_blank_variant_is_no_variant(self, db_session):
        p = products_service.add_product(
            {"name": "Gadget", "variant": "  ", "cost_price_cents": 100, "price_cents": 200}
        )
        assert p.variant is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "", "cost_price_cents": 1, "price_cents": 1},
            {"name": "   ", "cost_price_cents": 1, "price_cents": 1},
            {"name": "X", "cost_price_cents": -1, "price_cents": 1},
            {"name": "X", "cost_price_cents": 1, "price_cents": -5},
            {"name": "X", "cost_price_cents": 1, "price_cents": 1, "quantity": -1},
            {"name": "X", "cost_price_cents": 1, "price_cents": 1, "quantity": 1.5},
            {"name": "X", "cost_price_cents": "abc", "price_cents": 1},
            {"name": "X", "cost_price_cents": 1, "price_cents": True},
            {"name": "X", "price_cents": 1},
            {"name": "X", "cost_price_cents": 1, "price_cents": 1, "id": "forged"},
        ],
    )
    def test_rejects_invalid_payloads(self, db_session, payload):
        with pytest.raises(ValidationError):
            products_service.add_product(payload)
        assert db_session.query(Product).count() == 0

    def test_integer_strings_are_accepted(self, db_session):
        p = products_service.add_product(
            {"name": "Gadget", "cost_price_cents": "150", "price_cents": "300", "quantity": "4"}
        )
        assert (p.cost_price_cents, p.price_cents, p.quantity) == (150, 300, 4)

    def test_duplicate_name_and_variant_conflicts(self, db_session, make_product):
        make_product(name="Shirt", variant="M")
        with pytest.raises(ConflictError):
            make_product(name="Shirt", variant="M")

    def test_duplicate_name_without_variant_conflicts(self, db_session, make_product):
        make_product(name="Widget")
        with pytest.raises(ConflictError):
            make_product(name="Widget")

    def test_same_name_different_variant_is_allowed(self, db_session, make_product):
        make_product(name="Shirt", variant="M")
        make_product(name="Shirt", variant="L")
        make_product(name="Shirt")
        assert db_session.query(Product).count() == 3

    def test_appends_ledger_event(self, db_session, widget):
        ev = db_session.query(LedgerEvent).filter_by(entity_id=widget.id).one()
        assert ev.event_type == "product.created"


class TestUpdateProduct:

    def test_partial_update(self, db_session, widget):
        updated = products_service.update_product(widget.id, {"price_cents": 1250})
        assert updated.price_cents == 1250
        assert updated.cost_price_cents == 400
        assert updated.name == "Widget"

    def test_unknown_id(self, db_session):
        with pytest.raises(ProductNotFoundError):
            products_service.update_product("missing", {"price_cents": 1})

    def test_validation_applies(self, db_session, widget):
        with pytest.raises(ValidationError):
            products_service.update_product(widget.id, {"cost_price_cents": -1})
        db_session.expire_all()
        assert db_session.get(Product, widget.id).cost_price_cents == 400

    def test_rename_into_existing_pair_conflicts(self, db_session, make_product):
        make_product(name="Shirt", variant="M")
        other = make_product(name="Shirt", variant="L")
        with pytest.raises(ConflictError):
            products_service.update_product(other.id, {"variant": "M"})

    def test_empty_update_changes_nothing(self, db_session, widget):
        before = widget.updated_at
        result = products_service.update_product(widget.id, {})

        assert result.id == widget.id
        assert result.updated_at == before
        assert db_session.query(LedgerEvent).filter_by(event_type="product.updated").count() == 0

    def test_renaming_to_own_pair_is_fine(self, db_session, widget):
        updated = products_service.update_product(widget.id, {"name": "Widget", "price_cents": 999})
        assert updated.price_cents == 999


class TestRemoveProduct:

    def test_removes(self, db_session, widget):
        products_service.remove_product(widget.id)
        assert db_session.query(Product).count() == 0
        assert db_session.query(LedgerEvent).filter_by(event_type="product.deleted").count() == 1

    def test_unknown_id(self, db_session):
        with pytest.raises(NotFoundError):
            products_service.remove_product("missing")


class TestListProducts:

    def test_search_matches_name_and_variant(self, db_session, make_product):
        make_product(name="Coffee Beans", variant="1kg")
        make_product(name="Tea", variant="Green")
        make_product(name="Mug", variant="coffee print")

        names = [p.name for p in products_service.list_products(search="COFFEE")]
        assert names == ["Coffee Beans", "Mug"]

    def test_ordered_by_name(self, db_session, make_product):
        make_product(name="b")
        make_product(name="a")
        assert [p.name for p in products_service.list_products()] == ["a", "b"]


class TestAdjustQuantity:

    def test_increment_and_decrement(self, db_session, widget):
        products_service.adjust_quantity(widget.id, -3)
        assert widget.quantity == 2
        products_service.adjust_quantity(widget, 4)
        assert widget.quantity == 6

    def test_cannot_go_negative(self, db_session, widget):
        with pytest.raises(InsufficientStockError) as exc:
            products_service.adjust_quantity(widget, -6)
        assert widget.quantity == 5
        assert exc.value.details["on_hand"] == 5

    def test_unknown_id(self, db_session):
        with pytest.raises(ProductNotFoundError):
            products_service.adjust_quantity("missing", 1)
