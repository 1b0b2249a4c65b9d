"""Inventory ledger: stock mutations and their append-only audit trail.

``record_change`` and ``apply_stock_delta`` never commit; they join the
caller's transaction so that the stock write and the log row land together.
``set_stock``, ``record_adjustment`` and ``restock_return`` are entry points
and commit on their own.
"""
import logging
from typing import List, Optional

from models import db, Product, InventoryLog
from app.services.errors import (
    ValidationError,
    PermissionDenied,
    ProductNotFound,
    InsufficientStock,
    ConcurrentUpdate,
)
from app.utils.db import transactional

logger = logging.getLogger(__name__)

CHANGE_TYPES = ("add", "remove", "order", "return", "adjustment")
_INCREASING = {"add", "return"}
_DECREASING = {"remove", "order"}


def signed_delta(change_type: str, quantity_changed: int) -> int:
    """Stock delta described by a ledger entry.

    ``adjustment`` entries carry their own sign; every other type stores a
    positive magnitude whose direction is implied by the type.
    """
    if change_type in _INCREASING:
        return quantity_changed
    if change_type in _DECREASING:
        return -quantity_changed
    if change_type == "adjustment":
        return quantity_changed
    raise ValidationError(f"Unknown inventory change type: {change_type}")


def _validate_quantity(change_type: str, quantity_changed) -> None:
    if not isinstance(quantity_changed, int) or isinstance(quantity_changed, bool):
        raise ValidationError("quantity_changed must be an integer")
    if change_type == "adjustment":
        if quantity_changed == 0:
            raise ValidationError("An adjustment must change the stock")
    elif quantity_changed <= 0:
        raise ValidationError(f"{change_type} entries need a positive quantity")


def record_change(
    product_id: str,
    change_type: str,
    quantity_changed: int,
    previous_stock: int,
    new_stock: int,
    *,
    triggered_by: str,
    order_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> InventoryLog:
    if change_type not in CHANGE_TYPES:
        raise ValidationError(f"Unknown inventory change type: {change_type}")
    _validate_quantity(change_type, quantity_changed)
    if new_stock != previous_stock + signed_delta(change_type, quantity_changed):
        raise ValidationError(
            f"Inconsistent ledger entry: {previous_stock} {change_type} "
            f"{quantity_changed} does not give {new_stock}"
        )
    if new_stock < 0:
        raise ValidationError("Stock cannot go below zero")
    entry = InventoryLog(
        product_id=product_id,
        change_type=change_type,
        quantity_changed=quantity_changed,
        previous_stock=previous_stock,
        new_stock=new_stock,
        order_id=order_id,
        triggered_by=triggered_by,
        reason=reason,
    )
    db.session.add(entry)
    return entry


def apply_stock_delta(
    product_id: str,
    change_type: str,
    quantity: int,
    *,
    triggered_by: str,
    order_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> InventoryLog:
    """Compare-and-swap the product's stock and log the change.

    The update only matches while the resulting stock stays non-negative, so
    two concurrent decrements can never oversell.
    """
    _validate_quantity(change_type, quantity)
    delta = signed_delta(change_type, quantity)
    matched = (
        Product.query.filter(Product.id == product_id, Product.stock + delta >= 0)
        .update({Product.stock: Product.stock + delta}, synchronize_session=False)
    )
    if not matched:
        product = db.session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        raise InsufficientStock(product_id, requested=-delta, available=product.stock)

    product = db.session.get(Product, product_id, populate_existing=True)
    new_stock = product.stock
    return record_change(
        product_id,
        change_type,
        quantity,
        new_stock - delta,
        new_stock,
        triggered_by=triggered_by,
        order_id=order_id,
        reason=reason,
    )


def get_history(product_id: str) -> List[InventoryLog]:
    """Ledger entries for a product, newest first."""
    return (
        InventoryLog.query.filter_by(product_id=product_id)
        .order_by(InventoryLog.id.desc())
        .all()
    )


def _owned_product(seller_id: str, product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if product.seller_id != seller_id:
        raise PermissionDenied()
    return product


def history_for_seller(seller_id: str, product_id: str) -> List[InventoryLog]:
    _owned_product(seller_id, product_id)
    return get_history(product_id)


def set_stock(seller_id: str, product_id: str, new_stock, reason: Optional[str] = None):
    """Seller edit of the absolute stock level.

    Logged as ``add`` or ``remove``. The write is conditional on the stock the
    seller last saw; a concurrent change raises :class:`ConcurrentUpdate`
    instead of silently overwriting it. Returns the ledger entry, or ``None``
    when the level is unchanged.
    """
    if not isinstance(new_stock, int) or isinstance(new_stock, bool) or new_stock < 0:
        raise ValidationError("Stock must be a non-negative integer")
    with transactional("Stock update failed"):
        product = _owned_product(seller_id, product_id)
        previous = product.stock
        if new_stock == previous:
            return None
        matched = (
            Product.query.filter_by(id=product_id, stock=previous)
            .update({Product.stock: new_stock}, synchronize_session=False)
        )
        if not matched:
            raise ConcurrentUpdate(
                f"Stock of product {product_id} changed while it was being edited",
                product_id=product_id,
            )
        delta = new_stock - previous
        entry = record_change(
            product_id,
            "add" if delta > 0 else "remove",
            abs(delta),
            previous,
            new_stock,
            triggered_by=seller_id,
            reason=reason or "Manual stock update",
        )
    logger.info("Stock of %s set %s -> %s by %s", product_id, previous, new_stock, seller_id)
    return entry


def record_adjustment(seller_id: str, product_id: str, quantity: int, reason: str) -> InventoryLog:
    """Compensating entry; the only way to correct an earlier mistake."""
    if not reason:
        raise ValidationError("An adjustment needs a reason")
    with transactional("Inventory adjustment failed"):
        _owned_product(seller_id, product_id)
        entry = apply_stock_delta(
            product_id, "adjustment", quantity, triggered_by=seller_id, reason=reason
        )
    logger.info("Adjusted stock of %s by %s: %s", product_id, quantity, reason)
    return entry


def restock_return(seller_id: str, product_id: str, quantity: int, order_id: Optional[str] = None,
                   reason: Optional[str] = None) -> InventoryLog:
    with transactional("Return restock failed"):
        _owned_product(seller_id, product_id)
        entry = apply_stock_delta(
            product_id, "return", quantity,
            triggered_by=seller_id, order_id=order_id, reason=reason or "Returned item",
        )
    return entry


__all__ = [
    "CHANGE_TYPES",
    "signed_delta",
    "record_change",
    "apply_stock_delta",
    "get_history",
    "history_for_seller",
    "set_stock",
    "record_adjustment",
    "restock_return",
]
