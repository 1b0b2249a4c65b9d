import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import BigInteger, Integer, inspect

# Use BigInteger in production but fall back to Integer for SQLite
BIGINT = BigInteger().with_variant(Integer, "sqlite")

db = SQLAlchemy()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_snapshot(obj) -> dict:
    """Column values currently loaded on ``obj``, without triggering loads.

    Used by the change feed while a flush is in progress, where touching an
    expired attribute would emit SQL.
    """
    state = inspect(obj)
    loaded = state.dict
    return {
        attr.key: jsonable(loaded[attr.key])
        for attr in state.mapper.column_attrs
        if attr.key in loaded
    }


# Re-export common models for convenience
from .product import Product  # noqa: E402,F401
from .order import Order, OrderItem, OrderStatusLog  # noqa: E402,F401
from .inventory import InventoryLog  # noqa: E402,F401
from .notification import Notification  # noqa: E402,F401
from .payment import PaymentTransaction  # noqa: E402,F401
from .cart import SavedCart  # noqa: E402,F401
