from datetime import date

import pytest

from models import db, Order, OrderStatusLog, Notification, InventoryLog, Product
from app.auth.identity import CurrentUser
from app.services import order_state
from app.services.cart import Cart
from app.services.checkout import place_orders
from app.services.errors import (
    InsufficientStock,
    InvalidTransition,
    OrderNotFound,
    PermissionDenied,
    ValidationError,
)


@pytest.fixture
def pending_order(app, buyer, seller_a, make_product, checkout_details):
    product = make_product(seller_a, title="Kettle", price="15.00", stock=4)
    cart = Cart(buyer.id)
    cart.add(product, 3)
    order = place_orders(buyer, cart, checkout_details)[0]
    return order.id, product.id


def test_allowed_actions():
    assert order_state.allowed_actions("pending") == ["accept", "reject"]
    assert order_state.allowed_actions("accepted") == ["ship"]
    assert order_state.allowed_actions("shipped") == ["deliver"]
    assert order_state.allowed_actions("delivered") == []
    assert order_state.allowed_actions("rejected") == []


def test_accept_updates_status_stock_and_ledger(pending_order, buyer, seller_a):
    order_id, product_id = pending_order
    before = db.session.get(Order, order_id).updated_at

    order = order_state.accept(seller_a, order_id)

    assert order.status == "accepted"
    assert order.updated_at > before
    assert db.session.get(Product, product_id).stock == 1

    entry = InventoryLog.query.filter_by(product_id=product_id).one()
    assert entry.change_type == "order"
    assert (entry.quantity_changed, entry.previous_stock, entry.new_stock) == (3, 4, 1)
    assert entry.order_id == order_id
    assert entry.triggered_by == seller_a.id

    note = Notification.query.filter_by(user_id=buyer.id, type="order_accepted").one()
    assert note.title == "Order Accepted"
    assert note.message == "Your order for $45.00 has been accepted"
    assert note.order_id == order_id
    assert [log.status for log in OrderStatusLog.query.filter_by(order_id=order_id).order_by(OrderStatusLog.id)] == [
        "pending",
        "accepted",
    ]


def test_accept_twice_fails_without_side_effects(pending_order, buyer, seller_a):
    order_id, product_id = pending_order
    order_state.accept(seller_a, order_id)

    with pytest.raises(InvalidTransition) as exc:
        order_state.accept(seller_a, order_id)
    assert exc.value.details["current_status"] == "accepted"
    assert Notification.query.filter_by(user_id=buyer.id, type="order_accepted").count() == 1
    assert db.session.get(Product, product_id).stock == 1
    assert InventoryLog.query.count() == 1


def test_accept_without_enough_stock_rolls_back(pending_order, seller_a):
    order_id, product_id = pending_order
    Product.query.filter_by(id=product_id).update({"stock": 2})
    db.session.commit()

    with pytest.raises(InsufficientStock):
        order_state.accept(seller_a, order_id)

    assert db.session.get(Order, order_id).status == "pending"
    assert db.session.get(Product, product_id).stock == 2
    assert InventoryLog.query.count() == 0
    assert Notification.query.filter_by(type="order_accepted").count() == 0


def test_reject_is_terminal(pending_order, seller_a):
    order_id, product_id = pending_order
    order_state.reject(seller_a, order_id)
    assert db.session.get(Product, product_id).stock == 4

    for action in ("accept", "ship", "deliver", "reject"):
        with pytest.raises(InvalidTransition):
            order_state.ACTIONS[action](seller_a, order_id)


def test_cannot_reject_after_accept(pending_order, seller_a):
    order_id, _ = pending_order
    order_state.accept(seller_a, order_id)
    with pytest.raises(InvalidTransition):
        order_state.reject(seller_a, order_id)


def test_ship_requires_accepted(pending_order, seller_a):
    order_id, _ = pending_order
    with pytest.raises(InvalidTransition):
        order_state.mark_shipped(seller_a, order_id)
    assert db.session.get(Order, order_id).status == "pending"


def test_full_lifecycle_with_tracking(pending_order, buyer, seller_a):
    order_id, _ = pending_order
    order_state.accept(seller_a, order_id)
    order = order_state.mark_shipped(
        seller_a,
        order_id,
        courier_name="FastShip",
        tracking_number="FS123",
        estimated_delivery_date=date(2026, 11, 2),
    )
    assert order.status == "shipped"
    assert order.courier_name == "FastShip"
    assert order.estimated_delivery_date == date(2026, 11, 2)

    order = order_state.update_tracking(seller_a, order_id, tracking_number="FS999")
    assert order.tracking_number == "FS999"
    assert order.courier_name == "FastShip"

    order = order_state.mark_delivered(seller_a, order_id)
    assert order.status == "delivered"
    types = {n.type for n in Notification.query.filter_by(user_id=buyer.id)}
    assert types == {"order_accepted", "order_shipped", "order_delivered"}

    with pytest.raises(ValidationError):
        order_state.update_tracking(seller_a, order_id, tracking_number="late")


def test_update_tracking_needs_a_value(pending_order, seller_a):
    order_id, _ = pending_order
    with pytest.raises(ValidationError):
        order_state.update_tracking(seller_a, order_id)


def test_other_seller_is_denied(pending_order, seller_b):
    order_id, _ = pending_order
    with pytest.raises(PermissionDenied):
        order_state.accept(seller_b, order_id)
    assert db.session.get(Order, order_id).status == "pending"


def test_unknown_order(app, seller_a):
    with pytest.raises(OrderNotFound):
        order_state.accept(seller_a, "does-not-exist")


def test_buyer_cannot_drive_transitions(pending_order, buyer):
    order_id, _ = pending_order
    with pytest.raises(PermissionDenied):
        order_state.accept(CurrentUser(id=buyer.id, role="buyer"), order_id)


def test_updated_at_advances_on_coarse_clock(pending_order, seller_a, monkeypatch):
    order_id, _ = pending_order
    frozen = db.session.get(Order, order_id).updated_at
    monkeypatch.setattr(order_state, "utcnow", lambda: frozen)

    accepted = order_state.accept(seller_a, order_id).updated_at
    assert accepted > frozen
    shipped = order_state.mark_shipped(seller_a, order_id, tracking_number="T-1").updated_at
    assert shipped > accepted
    corrected = order_state.update_tracking(seller_a, order_id, tracking_number="T-2").updated_at
    assert corrected > shipped
