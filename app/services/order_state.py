"""Seller-side order lifecycle.

    pending --accept--> accepted --ship--> shipped --deliver--> delivered
    pending --reject--> rejected

``rejected`` and ``delivered`` are terminal. Every transition is a single
conditional UPDATE matching ``(id, seller_id, required status)``; when it
matches nothing the transaction is rolled back and the reason is worked out
with a plain read. Side effects (status log, buyer notification and, for
accept, the stock decrement with its ledger rows) commit together with the
status change.
"""
import logging
from collections import namedtuple
from datetime import date, timedelta
from typing import Optional

from models import db, Order, OrderStatusLog, utcnow
from app.metrics import ORDER_TRANSITIONS
from app.realtime.feed import change_feed
from app.services import inventory
from app.services.errors import (
    MarketplaceError,
    ValidationError,
    PermissionDenied,
    OrderNotFound,
    InvalidTransition,
)
from app.services.notifications import notify, fan_out
from app.utils.db import transactional

logger = logging.getLogger(__name__)

Transition = namedtuple("Transition", "source target notification_type title")

TRANSITIONS = {
    "accept": Transition("pending", "accepted", "order_accepted", "Order Accepted"),
    "reject": Transition("pending", "rejected", "order_rejected", "Order Rejected"),
    "ship": Transition("accepted", "shipped", "order_shipped", "Order Shipped"),
    "deliver": Transition("shipped", "delivered", "order_delivered", "Order Delivered"),
}

TERMINAL_STATUSES = frozenset({"rejected", "delivered"})


def allowed_actions(status: str):
    """Transition names that are legal from ``status``."""
    return [name for name, t in TRANSITIONS.items() if t.source == status]


def _diagnose(seller_id: str, order_id: str, transition: Transition) -> MarketplaceError:
    order = db.session.get(Order, order_id, populate_existing=True)
    if order is None:
        return OrderNotFound(order_id)
    if order.seller_id != seller_id:
        return PermissionDenied()
    return InvalidTransition(order_id, order.status, transition.target)


def _next_updated_at(order_id: str):
    """A stamp later than the order's current one, even on a coarse clock."""
    current = db.session.query(Order.updated_at).filter_by(id=order_id).scalar()
    now = utcnow()
    if current is not None and now <= current:
        return current + timedelta(microseconds=1)
    return now


def _transition(seller, order_id: str, action: str, extra_values: Optional[dict] = None) -> Order:
    transition = TRANSITIONS[action]
    values = {"status": transition.target}
    values.update(extra_values or {})
    try:
        with transactional(f"Order {action} failed"):
            values["updated_at"] = _next_updated_at(order_id)
            matched = (
                Order.query.filter_by(id=order_id, seller_id=seller.id, status=transition.source)
                .update(values, synchronize_session=False)
            )
            if not matched:
                raise _diagnose(seller.id, order_id, transition)

            order = db.session.get(Order, order_id, populate_existing=True)
            if action == "accept":
                for item in order.items:
                    inventory.apply_stock_delta(
                        item.product_id,
                        "order",
                        item.quantity,
                        triggered_by=seller.id,
                        order_id=order.id,
                        reason=f"Order {order.id} accepted",
                    )
            db.session.add(OrderStatusLog(order_id=order.id, status=transition.target, updated_by=seller.id))
            notification = notify(
                order.buyer_id,
                transition.notification_type,
                transition.title,
                f"Your order for ${order.total:.2f} has been {transition.target}",
                order_id=order.id,
            )
            change_feed.stage_update(db.session, order)
    except MarketplaceError as e:
        ORDER_TRANSITIONS.labels(action, type(e).__name__).inc()
        raise

    ORDER_TRANSITIONS.labels(action, "ok").inc()
    fan_out([notification])
    logger.info("Order %s %s -> %s by seller %s", order_id, transition.source, transition.target, seller.id)
    return order


def accept(seller, order_id: str) -> Order:
    """Accept a pending order and take its quantities out of stock."""
    return _transition(seller, order_id, "accept")


def reject(seller, order_id: str) -> Order:
    return _transition(seller, order_id, "reject")


def mark_shipped(seller, order_id: str, courier_name: Optional[str] = None,
                 tracking_number: Optional[str] = None,
                 estimated_delivery_date: Optional[date] = None) -> Order:
    extra = {}
    if courier_name is not None:
        extra["courier_name"] = courier_name
    if tracking_number is not None:
        extra["tracking_number"] = tracking_number
    if estimated_delivery_date is not None:
        extra["estimated_delivery_date"] = estimated_delivery_date
    return _transition(seller, order_id, "ship", extra)


def mark_delivered(seller, order_id: str) -> Order:
    return _transition(seller, order_id, "deliver")


def update_tracking(seller, order_id: str, courier_name: Optional[str] = None,
                    tracking_number: Optional[str] = None,
                    estimated_delivery_date: Optional[date] = None) -> Order:
    """Correct courier details of an order that is already on its way."""
    values = {
        key: value
        for key, value in (
            ("courier_name", courier_name),
            ("tracking_number", tracking_number),
            ("estimated_delivery_date", estimated_delivery_date),
        )
        if value is not None
    }
    if not values:
        raise ValidationError("Nothing to update")
    with transactional("Tracking update failed"):
        values["updated_at"] = _next_updated_at(order_id)
        matched = (
            Order.query.filter_by(id=order_id, seller_id=seller.id, status="shipped")
            .update(values, synchronize_session=False)
        )
        if not matched:
            order = db.session.get(Order, order_id, populate_existing=True)
            if order is None:
                raise OrderNotFound(order_id)
            if order.seller_id != seller.id:
                raise PermissionDenied()
            raise ValidationError(f"Tracking can only change while an order is shipped, not {order.status}")
        order = db.session.get(Order, order_id, populate_existing=True)
        change_feed.stage_update(db.session, order)
    return order


ACTIONS = {
    "accept": accept,
    "reject": reject,
    "ship": mark_shipped,
    "deliver": mark_delivered,
}

__all__ = [
    "TRANSITIONS",
    "TERMINAL_STATUSES",
    "ACTIONS",
    "allowed_actions",
    "accept",
    "reject",
    "mark_shipped",
    "mark_delivered",
    "update_tracking",
]
