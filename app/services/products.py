"""Seller catalogue: creating, listing and removing products.

A product's opening stock is written to the inventory ledger as an ``add``
entry in the same transaction that creates it, so the ledger accounts for
every unit from the start.
"""
import logging
from typing import List, Optional

from models import db, Product, Order, OrderItem
from app.schemas.products import ProductCreateRequest
from app.services import inventory
from app.services.errors import PermissionDenied, ProductNotFound, ProductInUse
from app.utils.db import transactional

logger = logging.getLogger(__name__)

OPEN_ORDER_STATUSES = ("pending", "accepted")


def create_product(seller, data: ProductCreateRequest) -> Product:
    product = Product(
        seller_id=seller.id,
        seller_name=seller.name,
        title=data.title,
        description=data.description,
        category=data.category,
        price=data.price,
        original_price=data.original_price,
        stock=data.stock,
        images=list(data.images),
        featured=data.featured,
    )
    with transactional("Failed to add product"):
        db.session.add(product)
        db.session.flush()
        if data.stock > 0:
            inventory.record_change(
                product.id,
                "add",
                data.stock,
                0,
                data.stock,
                triggered_by=seller.id,
                reason="Initial stock",
            )
    logger.info("Product %s added by seller %s with stock %d", product.id, seller.id, data.stock)
    return product


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def list_products(search: Optional[str] = None, category: Optional[str] = None,
                  featured: Optional[bool] = None, seller_id: Optional[str] = None) -> List[Product]:
    """Catalogue listing, newest first. ``search`` is a plain substring match."""
    query = Product.query
    if seller_id:
        query = query.filter(Product.seller_id == seller_id)
    if category:
        query = query.filter(Product.category == category)
    if featured is not None:
        query = query.filter(Product.featured == featured)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.title.ilike(pattern), Product.description.ilike(pattern)))
    return query.order_by(Product.created_at.desc()).all()


def list_seller_products(seller_id: str) -> List[Product]:
    return list_products(seller_id=seller_id)


def delete_product(seller_id: str, product_id: str) -> None:
    """Remove a seller's own product.

    Refused while pending or accepted orders still hold it. Ledger entries
    for the product are kept.
    """
    with transactional("Failed to delete product"):
        product = get_product(product_id)
        if product.seller_id != seller_id:
            raise PermissionDenied()
        open_orders = (
            db.session.query(OrderItem.order_id)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(OrderItem.product_id == product_id, Order.status.in_(OPEN_ORDER_STATUSES))
            .distinct()
            .count()
        )
        if open_orders:
            raise ProductInUse(product_id, open_orders)
        db.session.delete(product)
    logger.info("Product %s deleted by seller %s", product_id, seller_id)


__all__ = [
    "create_product",
    "get_product",
    "list_products",
    "list_seller_products",
    "delete_product",
]
