from decimal import Decimal

import pytest

from models import db, InventoryLog, Product
from app.schemas.products import ProductCreateRequest
from app.services import order_state, products
from app.services.cart import Cart
from app.services.checkout import place_orders
from app.services.errors import PermissionDenied, ProductInUse, ProductNotFound


def _request(**overrides):
    data = {"title": "Teapot", "price": "18.50", "stock": 6, "category": "kitchen"}
    data.update(overrides)
    return ProductCreateRequest.model_validate(data)


def test_create_product_logs_initial_stock(app, seller_a):
    product = products.create_product(seller_a, _request(images=["https://img.example/teapot.jpg"]))

    stored = db.session.get(Product, product.id)
    assert stored.seller_id == seller_a.id
    assert stored.seller_name == "Alpha Goods"
    assert stored.price == Decimal("18.50")
    assert stored.primary_image == "https://img.example/teapot.jpg"

    entry = InventoryLog.query.filter_by(product_id=product.id).one()
    assert entry.change_type == "add"
    assert (entry.quantity_changed, entry.previous_stock, entry.new_stock) == (6, 0, 6)
    assert entry.triggered_by == seller_a.id
    assert entry.reason == "Initial stock"


def test_create_without_stock_writes_no_entry(app, seller_a):
    product = products.create_product(seller_a, _request(stock=0))
    assert product.stock == 0
    assert InventoryLog.query.filter_by(product_id=product.id).count() == 0


def test_create_request_validation():
    with pytest.raises(ValueError):
        _request(price="0")
    with pytest.raises(ValueError):
        _request(stock=-1)
    with pytest.raises(ValueError):
        _request(title="  ")


def test_list_products_filters(app, seller_a, seller_b):
    teapot = products.create_product(seller_a, _request())
    mug = products.create_product(seller_a, _request(title="Stoneware Mug", category="kitchen", featured=True))
    scarf = products.create_product(seller_b, _request(title="Wool Scarf", category="apparel",
                                                       description="Hand-knit teal wool"))

    assert {p.id for p in products.list_products()} == {teapot.id, mug.id, scarf.id}
    assert {p.id for p in products.list_products(search="TEA")} == {teapot.id, scarf.id}
    assert {p.id for p in products.list_products(category="kitchen")} == {teapot.id, mug.id}
    assert [p.id for p in products.list_products(featured=True)] == [mug.id]
    assert {p.id for p in products.list_seller_products(seller_b.id)} == {scarf.id}


def test_get_missing_product(app):
    with pytest.raises(ProductNotFound):
        products.get_product("missing")


def test_delete_product(app, buyer, seller_a, seller_b, checkout_details):
    product = products.create_product(seller_a, _request(stock=3))
    cart = Cart(buyer.id)
    cart.add(product, 1)
    order_id = place_orders(buyer, cart, checkout_details)[0].id

    with pytest.raises(PermissionDenied):
        products.delete_product(seller_b.id, product.id)
    with pytest.raises(ProductInUse) as exc:
        products.delete_product(seller_a.id, product.id)
    assert exc.value.details["open_orders"] == 1

    order_state.reject(seller_a, order_id)
    products.delete_product(seller_a.id, product.id)

    assert db.session.get(Product, product.id) is None
    assert InventoryLog.query.filter_by(product_id=product.id).count() == 1
    with pytest.raises(ProductNotFound):
        products.delete_product(seller_a.id, product.id)
