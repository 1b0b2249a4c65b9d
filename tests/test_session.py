import pytest

from app.auth.identity import CurrentUser
from app.realtime import change_feed
from app.services.cart import MemoryCartStorage, ProductSnapshot
from app.services.cart import Cart
from app.services.checkout import place_orders
from app.services.errors import InvalidTransition, PermissionDenied
from app.services.orders import load_order_view
from app.session import SessionManager, StaticAuthProvider


def test_login_restores_cart_and_logout_tears_down(app):
    storage = MemoryCartStorage()
    auth = StaticAuthProvider()
    manager = SessionManager(auth, storage)
    buyer = CurrentUser(id="b1", role="buyer")

    auth.sign_in(buyer)
    session = manager.current
    session.cart.add(ProductSnapshot(id="p1", seller_id="s1", title="Tea", price="4.00", stock=3), 2)
    before = change_feed.subscriber_count()
    bridge = session.open_order_view(threaded=False)
    assert change_feed.subscriber_count() == before + 1

    auth.sign_out()
    assert manager.current is None
    assert session.closed
    assert not bridge.subscribed
    assert change_feed.subscriber_count() == before

    auth.sign_in(buyer)
    assert manager.current.cart.get("p1").quantity == 2
    manager.shutdown()


def test_existing_user_is_restored_on_start(app):
    auth = StaticAuthProvider(CurrentUser(id="s1", role="seller"))
    manager = SessionManager(auth)
    assert manager.current.user.id == "s1"
    manager.shutdown()
    assert manager.current is None


def test_switching_user_replaces_session(app):
    auth = StaticAuthProvider()
    manager = SessionManager(auth)
    auth.sign_in(CurrentUser(id="b1", role="buyer"))
    first = manager.current
    auth.sign_in(CurrentUser(id="b2", role="buyer"))
    assert first.closed
    assert manager.current.user.id == "b2"
    manager.shutdown()


def test_admin_has_no_order_list(app):
    manager = SessionManager(StaticAuthProvider(CurrentUser(id="a1", role="admin")))
    with pytest.raises(PermissionDenied):
        manager.current.open_order_view(threaded=False)
    manager.shutdown()


def test_advance_order_is_optimistic(app, buyer, seller_a, make_product, checkout_details):
    product = make_product(seller_a, stock=5)
    cart = Cart(buyer.id)
    cart.add(product, 1)
    order_id = place_orders(buyer, cart, checkout_details)[0].id

    manager = SessionManager(StaticAuthProvider(seller_a))
    bridge = manager.current.open_order_view([load_order_view(order_id)], threaded=False)
    view = bridge.view

    manager.current.advance_order("accept", order_id, view)
    assert view.get(order_id)["status"] == "accepted"

    with pytest.raises(InvalidTransition):
        manager.current.advance_order("deliver", order_id, view)
    assert view.get(order_id)["status"] == "accepted"
    manager.shutdown()


def test_seller_view_lists_new_order_with_items(app, buyer, seller_a, make_product, checkout_details):
    manager = SessionManager(StaticAuthProvider(seller_a))
    bridge = manager.current.open_order_view(threaded=False)
    try:
        product = make_product(seller_a, title="Lamp", price="12.00", stock=5)
        cart = Cart(buyer.id)
        cart.add(product, 2)
        order_id = place_orders(buyer, cart, checkout_details)[0].id

        assert bridge.drain() == 1
        listed = bridge.view.get(order_id)
        assert listed["status"] == "pending"
        assert [item["quantity"] for item in listed["items"]] == [2]
        assert "courier_name" in listed

        assert bridge.refetch() == 1
        assert bridge.view.ids() == [order_id]
    finally:
        manager.shutdown()
