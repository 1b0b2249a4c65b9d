"""Buyer cart aggregate.

The cart lives in memory and is written through to a :class:`CartStorage`
after every mutation, so ``Cart.load`` rebuilds the same cart after a reload.
One buyer writes one cart; concurrent writers are not coordinated.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

from models import db, SavedCart
from app.services.errors import ValidationError
from app.utils.db import transactional

logger = logging.getLogger(__name__)

MAX_QUANTITY_PER_ITEM = 10


class ProductSnapshot(BaseModel):
    id: str
    seller_id: str
    seller_name: Optional[str] = None
    title: str
    price: Decimal
    image: Optional[str] = None
    stock: int

    @classmethod
    def from_product(cls, product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            seller_id=product.seller_id,
            seller_name=product.seller_name,
            title=product.title,
            price=Decimal(str(product.price)),
            image=product.primary_image,
            stock=product.stock,
        )


class CartItem(BaseModel):
    product_id: str
    product: ProductSnapshot
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity


class CartState(BaseModel):
    owner_id: str
    items: List[CartItem] = []


# ==========================================
# Storage
# ==========================================

class CartStorage:
    def load(self, owner_id: str) -> Optional[str]:
        raise NotImplementedError

    def save(self, owner_id: str, payload: str) -> None:
        raise NotImplementedError


class MemoryCartStorage(CartStorage):
    def __init__(self):
        self._payloads: Dict[str, str] = {}

    def load(self, owner_id):
        return self._payloads.get(owner_id)

    def save(self, owner_id, payload):
        self._payloads[owner_id] = payload


class DatabaseCartStorage(CartStorage):
    """Keeps one serialized cart per buyer in the ``saved_cart`` table."""

    def load(self, owner_id):
        row = db.session.get(SavedCart, owner_id)
        return row.payload if row else None

    def save(self, owner_id, payload):
        with transactional("Failed to persist cart"):
            db.session.merge(SavedCart(buyer_id=owner_id, payload=payload))


# ==========================================
# Aggregate
# ==========================================

class Cart:
    def __init__(self, owner_id: str, storage: Optional[CartStorage] = None,
                 max_quantity: int = MAX_QUANTITY_PER_ITEM, items: Iterable[CartItem] = ()):
        self.owner_id = owner_id
        self.storage = storage
        self.max_quantity = max_quantity
        self._items: Dict[str, CartItem] = {item.product_id: item for item in items}

    @classmethod
    def load(cls, owner_id: str, storage: CartStorage, max_quantity: int = MAX_QUANTITY_PER_ITEM) -> "Cart":
        payload = storage.load(owner_id)
        if not payload:
            return cls(owner_id, storage, max_quantity)
        try:
            state = CartState.model_validate_json(payload)
        except PydanticValidationError:
            logger.warning("Discarding unreadable cart for %s", owner_id, exc_info=True)
            return cls(owner_id, storage, max_quantity)
        return cls(owner_id, storage, max_quantity, items=state.items)

    # --- queries ---

    @property
    def items(self) -> List[CartItem]:
        return [item.model_copy(deep=True) for item in self._items.values()]

    def get(self, product_id: str) -> Optional[CartItem]:
        item = self._items.get(product_id)
        return item.model_copy(deep=True) if item else None

    def __len__(self):
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def total(self) -> Decimal:
        return sum((item.subtotal for item in self._items.values()), Decimal("0"))

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def seller_ids(self) -> List[str]:
        seen = []
        for item in self._items.values():
            if item.product.seller_id not in seen:
                seen.append(item.product.seller_id)
        return seen

    # --- mutations ---

    def _ceiling(self, snapshot: ProductSnapshot) -> int:
        return min(snapshot.stock, self.max_quantity)

    def add(self, product, quantity: int = 1) -> Optional[CartItem]:
        """Add ``quantity`` units; the stored quantity is clamped, never rejected.

        Returns the resulting line, or ``None`` for an out-of-stock product.
        """
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError("Quantity must be a positive integer")
        snapshot = product if isinstance(product, ProductSnapshot) else ProductSnapshot.from_product(product)
        ceiling = self._ceiling(snapshot)
        if ceiling < 1:
            logger.info("Product %s is out of stock, not added to cart", snapshot.id)
            return None
        existing = self._items.get(snapshot.id)
        wanted = quantity + (existing.quantity if existing else 0)
        line = CartItem(product_id=snapshot.id, product=snapshot, quantity=min(wanted, ceiling))
        self._items[snapshot.id] = line
        self._persist()
        return line.model_copy(deep=True)

    def remove(self, product_id: str) -> None:
        if self._items.pop(product_id, None) is not None:
            self._persist()

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartItem]:
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise ValidationError("Quantity must be an integer")
        if quantity <= 0:
            self.remove(product_id)
            return None
        line = self._items.get(product_id)
        if line is None:
            return None
        line.quantity = max(1, min(quantity, self._ceiling(line.product)))
        self._persist()
        return line.model_copy(deep=True)

    def clear(self) -> None:
        self._items.clear()
        self._persist()

    def retain_sellers(self, seller_ids: Iterable[str]) -> None:
        """Drop every line whose seller is not in ``seller_ids``."""
        keep = set(seller_ids)
        self._items = {pid: item for pid, item in self._items.items() if item.product.seller_id in keep}
        self._persist()

    def to_state(self) -> CartState:
        return CartState(owner_id=self.owner_id, items=list(self._items.values()))

    def to_dict(self):
        return {
            "items": [
                {
                    "product_id": item.product_id,
                    "title": item.product.title,
                    "seller_id": item.product.seller_id,
                    "seller_name": item.product.seller_name,
                    "image": item.product.image,
                    "price": float(item.product.price),
                    "stock": item.product.stock,
                    "quantity": item.quantity,
                    "subtotal": float(item.subtotal),
                }
                for item in self._items.values()
            ],
            "total": float(self.total()),
            "item_count": self.item_count(),
        }

    def _persist(self) -> None:
        if self.storage is not None:
            self.storage.save(self.owner_id, self.to_state().model_dump_json())


__all__ = [
    "MAX_QUANTITY_PER_ITEM",
    "ProductSnapshot",
    "CartItem",
    "CartState",
    "CartStorage",
    "MemoryCartStorage",
    "DatabaseCartStorage",
    "Cart",
]
