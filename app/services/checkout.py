"""Checkout: split a multi-seller cart into one order per seller.

Each seller's order is written in its own transaction. When a later seller
fails, orders already written stay in place (there is no cross-order
transaction); the cart keeps only the lines that were not ordered and a
:class:`PartialCheckoutError` names what went through.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from flask import current_app
from pydantic import ValidationError as PydanticValidationError

from models import db, Product, Order, OrderItem, OrderStatusLog, PaymentTransaction
from app.metrics import CHECKOUT_ORDERS
from app.schemas.checkout import CheckoutDetails
from app.services.cart import Cart, CartItem
from app.services.errors import (
    ValidationError,
    ProductNotFound,
    InsufficientStock,
    PartialCheckoutError,
)
from app.services.notifications import notify, fan_out
from app.utils.db import transactional

logger = logging.getLogger(__name__)


@dataclass
class SellerGroup:
    seller_id: str
    seller_name: Optional[str] = None
    items: List[CartItem] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))


def split_cart(cart: Cart) -> List[SellerGroup]:
    """Group cart lines by seller, sellers in order of first appearance."""
    groups = {}
    for item in cart.items:
        seller_id = item.product.seller_id
        if seller_id not in groups:
            groups[seller_id] = SellerGroup(seller_id=seller_id, seller_name=item.product.seller_name)
        groups[seller_id].items.append(item)
    return list(groups.values())


def _validated(details) -> CheckoutDetails:
    if isinstance(details, CheckoutDetails):
        return details
    try:
        return CheckoutDetails.model_validate(details or {})
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise ValidationError(f"Invalid checkout details: {', '.join(fields)}", fields=fields) from e


def _check_live_stock(group: SellerGroup) -> None:
    # Read-only check; nothing is reserved until the seller accepts.
    for item in group.items:
        product = db.session.get(Product, item.product_id)
        if product is None:
            raise ProductNotFound(item.product_id)
        if product.stock < item.quantity:
            raise InsufficientStock(item.product_id, requested=item.quantity, available=product.stock)


def _create_order(buyer, group: SellerGroup, details: CheckoutDetails):
    total = group.subtotal
    order = Order(
        buyer_id=buyer.id,
        seller_id=group.seller_id,
        products=[
            {
                "product_id": item.product_id,
                "title": item.product.title,
                "price": float(item.product.price),
                "quantity": item.quantity,
                "image": item.product.image,
            }
            for item in group.items
        ],
        total=total,
        status="pending",
        shipping_address=details.shipping_address,
        payment_method=details.payment_method,
    )
    order.items = [
        OrderItem(
            product_id=item.product_id,
            product_name=item.product.title,
            product_image=item.product.image,
            quantity=item.quantity,
            price_per_item=item.product.price,
        )
        for item in group.items
    ]
    db.session.add(order)
    db.session.flush()

    db.session.add(OrderStatusLog(order_id=order.id, status="pending", updated_by=buyer.id))
    db.session.add(
        PaymentTransaction(
            user_id=buyer.id,
            order_id=order.id,
            amount=total,
            status="pending",
            payment_method=details.payment_method,
        )
    )
    notification = notify(
        group.seller_id,
        "new_order",
        "New Order Received!",
        f"Order for ${total:.2f} has been placed",
        order_id=order.id,
    )
    return order, notification


def place_orders(buyer, cart: Cart, details, revalidate_stock: Optional[bool] = None) -> List[Order]:
    """Write one pending order per seller in ``cart`` and empty the cart."""
    if cart.is_empty():
        raise ValidationError("Your cart is empty")
    details = _validated(details)
    if revalidate_stock is None:
        revalidate_stock = current_app.config.get("CHECKOUT_REVALIDATE_STOCK", True)

    groups = split_cart(cart)
    created: List[Order] = []
    created_ids: List[str] = []
    ordered_sellers = set()
    for group in groups:
        try:
            with transactional(f"Order creation failed for seller {group.seller_id}"):
                if revalidate_stock:
                    _check_live_stock(group)
                order, notification = _create_order(buyer, group, details)
        except Exception as e:
            CHECKOUT_ORDERS.labels("failed").inc()
            if not created:
                raise
            cart.retain_sellers(g.seller_id for g in groups if g.seller_id not in ordered_sellers)
            logger.error(
                "Checkout for %s stopped at seller %s after %d order(s)",
                buyer.id, group.seller_id, len(created),
            )
            raise PartialCheckoutError(created_ids, group.seller_id, e) from e

        CHECKOUT_ORDERS.labels("created").inc()
        created.append(order)
        created_ids.append(order.id)
        ordered_sellers.add(group.seller_id)
        fan_out([notification])
        logger.info("Order %s placed by %s with seller %s", order.id, buyer.id, group.seller_id)

    cart.clear()
    return created


__all__ = ["SellerGroup", "split_cart", "place_orders"]
