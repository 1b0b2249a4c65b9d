import pytest

from models import db, InventoryLog, Product
from app.services import inventory
from app.services.errors import (
    ConcurrentUpdate,
    InsufficientStock,
    PermissionDenied,
    ProductNotFound,
    ValidationError,
)


@pytest.mark.parametrize("change_type,qty,expected", [
    ("add", 3, 3),
    ("return", 2, 2),
    ("remove", 3, -3),
    ("order", 1, -1),
    ("adjustment", -4, -4),
    ("adjustment", 5, 5),
])
def test_signed_delta(change_type, qty, expected):
    assert inventory.signed_delta(change_type, qty) == expected


def test_signed_delta_unknown_type():
    with pytest.raises(ValidationError):
        inventory.signed_delta("gift", 1)


def test_record_change_joins_caller_transaction(app, seller_a, make_product):
    product = make_product(seller_a, stock=5)
    inventory.record_change(product.id, "add", 2, 5, 7, triggered_by=seller_a.id)
    db.session.rollback()
    assert InventoryLog.query.count() == 0


def test_record_change_rejects_inconsistent_entry(app, seller_a, make_product):
    product = make_product(seller_a, stock=5)
    with pytest.raises(ValidationError):
        inventory.record_change(product.id, "remove", 2, 5, 4, triggered_by=seller_a.id)
    with pytest.raises(ValidationError):
        inventory.record_change(product.id, "add", -2, 5, 3, triggered_by=seller_a.id)
    with pytest.raises(ValidationError):
        inventory.record_change(product.id, "adjustment", 0, 5, 5, triggered_by=seller_a.id)


def test_set_stock_logs_add_and_remove(app, seller_a, make_product):
    product = make_product(seller_a, stock=5)

    up = inventory.set_stock(seller_a.id, product.id, 9)
    assert (up.change_type, up.quantity_changed, up.previous_stock, up.new_stock) == ("add", 4, 5, 9)

    down = inventory.set_stock(seller_a.id, product.id, 6, reason="Damaged")
    assert (down.change_type, down.quantity_changed, down.new_stock) == ("remove", 3, 6)
    assert down.reason == "Damaged"

    assert inventory.set_stock(seller_a.id, product.id, 6) is None
    assert db.session.get(Product, product.id).stock == 6


def test_set_stock_validation_and_ownership(app, seller_a, seller_b, make_product):
    product = make_product(seller_a, stock=5)
    with pytest.raises(ValidationError):
        inventory.set_stock(seller_a.id, product.id, -1)
    with pytest.raises(PermissionDenied):
        inventory.set_stock(seller_b.id, product.id, 2)
    with pytest.raises(ProductNotFound):
        inventory.set_stock(seller_a.id, "missing", 2)


def test_set_stock_detects_concurrent_change(app, seller_a, make_product, monkeypatch):
    product = make_product(seller_a, stock=5)
    real_owned = inventory._owned_product

    def racing_owned(seller_id, product_id):
        found = real_owned(seller_id, product_id)
        found.stock  # load the value the seller saw
        Product.query.filter_by(id=product_id).update({"stock": 8}, synchronize_session=False)
        return found

    monkeypatch.setattr(inventory, "_owned_product", racing_owned)
    with pytest.raises(ConcurrentUpdate) as exc:
        inventory.set_stock(seller_a.id, product.id, 3)
    assert exc.value.retryable is True


def test_apply_stock_delta_never_goes_negative(app, seller_a, make_product):
    product = make_product(seller_a, stock=2)
    with pytest.raises(InsufficientStock) as exc:
        inventory.apply_stock_delta(product.id, "order", 3, triggered_by=seller_a.id)
    assert exc.value.details["available"] == 2
    db.session.rollback()
    assert db.session.get(Product, product.id).stock == 2


def test_adjustment_and_return(app, seller_a, make_product):
    product = make_product(seller_a, stock=5)
    adj = inventory.record_adjustment(seller_a.id, product.id, -2, "Miscount")
    assert (adj.previous_stock, adj.new_stock) == (5, 3)
    ret = inventory.restock_return(seller_a.id, product.id, 1, order_id="order-9")
    assert (ret.change_type, ret.new_stock, ret.order_id) == ("return", 4, "order-9")

    with pytest.raises(ValidationError):
        inventory.record_adjustment(seller_a.id, product.id, 1, "")


def test_history_is_newest_first_and_consistent(app, seller_a, seller_b, make_product):
    product = make_product(seller_a, stock=5)
    inventory.set_stock(seller_a.id, product.id, 8)
    inventory.record_adjustment(seller_a.id, product.id, -1, "Breakage")
    inventory.restock_return(seller_a.id, product.id, 2)

    history = inventory.history_for_seller(seller_a.id, product.id)
    assert [e.change_type for e in history] == ["return", "adjustment", "add"]
    for entry in history:
        assert entry.new_stock == entry.previous_stock + inventory.signed_delta(
            entry.change_type, entry.quantity_changed
        )
    assert history[0].new_stock == db.session.get(Product, product.id).stock

    with pytest.raises(PermissionDenied):
        inventory.history_for_seller(seller_b.id, product.id)
