from typing import Dict, List, Optional

from models import db, Order
from app.services.errors import OrderNotFound, PermissionDenied, ValidationError
from models.order import ORDER_STATUSES


def list_buyer_orders(buyer_id: str) -> List[Order]:
    return (
        Order.query.filter_by(buyer_id=buyer_id)
        .order_by(Order.created_at.desc())
        .all()
    )


def list_seller_orders(seller_id: str, status: Optional[str] = None) -> List[Order]:
    query = Order.query.filter_by(seller_id=seller_id)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown order status: {status}")
        query = query.filter_by(status=status)
    return query.order_by(Order.created_at.desc()).all()


def get_order_for(user, order_id: str) -> Order:
    """Fetch an order the user is party to; admins see every order."""
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if not user.is_admin and user.id not in (order.buyer_id, order.seller_id):
        raise PermissionDenied()
    return order


def load_order_view(order_id: str) -> Optional[Dict]:
    """Complete order with its line items, as an order list holds it."""
    order = db.session.get(Order, order_id, populate_existing=True)
    return order.to_dict(include_items=True) if order else None


def make_order_loader(app):
    """Loader usable from a bridge worker thread, which has no app context."""

    def _load(order_id):
        with app.app_context():
            return load_order_view(order_id)

    return _load


def make_order_list_loader(app, role: str, user_id: str):
    def _load_all():
        with app.app_context():
            orders = list_buyer_orders(user_id) if role == "buyer" else list_seller_orders(user_id)
            return [o.to_dict(include_items=True) for o in orders]

    return _load_all


__all__ = [
    "list_buyer_orders",
    "list_seller_orders",
    "get_order_for",
    "load_order_view",
    "make_order_loader",
    "make_order_list_loader",
]
