from flask import request, current_app
from flask_limiter.util import get_remote_address
from extensions import limiter
from models import db, Product
from app.schemas.cart import AddToCartRequest, UpdateQuantityRequest
from app.services.cart import Cart, DatabaseCartStorage
from app.services.checkout import place_orders
from app.services.errors import ProductNotFound
from app.utils import ok, current_user, validate_schema
from . import buyer_bp


def _load_cart() -> Cart:
    return Cart.load(
        current_user().id,
        DatabaseCartStorage(),
        max_quantity=current_app.config.get("CART_MAX_QUANTITY", 10),
    )


@buyer_bp.route("/cart", methods=["GET"])
def view_cart():
    return ok(_load_cart().to_dict())


@buyer_bp.route("/cart", methods=["DELETE"])
def clear_cart():
    cart = _load_cart()
    cart.clear()
    return ok(cart.to_dict(), message="Cart cleared")


@buyer_bp.route("/cart/items", methods=["POST"])
@validate_schema(AddToCartRequest)
def add_to_cart():
    data = request.validated_data
    product = db.session.get(Product, data.product_id)
    if product is None:
        raise ProductNotFound(data.product_id)
    cart = _load_cart()
    line = cart.add(product, data.quantity)
    message = "Item added to cart" if line else "Product is out of stock"
    return ok(cart.to_dict(), message=message)


@buyer_bp.route("/cart/items/<product_id>", methods=["PATCH"])
@validate_schema(UpdateQuantityRequest)
def update_cart_item(product_id):
    cart = _load_cart()
    cart.update_quantity(product_id, request.validated_data.quantity)
    return ok(cart.to_dict(), message="Cart quantity updated")


@buyer_bp.route("/cart/items/<product_id>", methods=["DELETE"])
def remove_cart_item(product_id):
    cart = _load_cart()
    cart.remove(product_id)
    return ok(cart.to_dict(), message="Item removed from cart")


@buyer_bp.route("/checkout", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["CHECKOUT_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many checkouts from this IP",
)
def checkout():
    cart = _load_cart()
    orders = place_orders(current_user(), cart, request.get_json(silent=True) or {})
    return ok(
        {"orders": [o.to_dict(include_items=True) for o in orders]},
        message=f"{len(orders)} order(s) placed",
        status=201,
    )
