from sqlalchemy import Column, Integer, String, Numeric, Text, DateTime, Date, ForeignKey
from models import db, BIGINT, new_id, utcnow, jsonable


ORDER_STATUSES = ("pending", "accepted", "rejected", "shipped", "delivered")


class Order(db.Model):
    __tablename__ = "order"
    __table_args__ = (
        db.Index("ix_order_seller_status", "seller_id", "status"),
        db.Index("ix_order_buyer_created", "buyer_id", "created_at"),
    )
    id = Column(String(36), primary_key=True, default=new_id)
    buyer_id = Column(String(36), nullable=False)
    seller_id = Column(String(36), nullable=False)
    # Snapshot of the cart lines: [{product_id, title, price, quantity, image}]
    products = Column(db.JSON, nullable=False, default=list)
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, accepted, rejected, shipped, delivered
    shipping_address = Column(Text, nullable=False)
    payment_method = Column(String(20), nullable=False)  # card, upi, wallet, cod
    courier_name = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    estimated_delivery_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    items = db.relationship(
        "OrderItem", backref="order", cascade="all, delete-orphan", lazy=True,
        order_by="OrderItem.id",
    )

    def to_dict(self, include_items=False):
        data = {
            column.key: jsonable(getattr(self, column.key))
            for column in self.__table__.columns
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_item"
    id = Column(BIGINT, primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False)
    product_name = Column(String(200), nullable=False)
    product_image = Column(String(500), nullable=True)
    quantity = Column(Integer, nullable=False)
    price_per_item = Column(Numeric(10, 2), nullable=False)  # snapshot, not a live reference

    @property
    def subtotal(self):
        return self.price_per_item * self.quantity

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_image": self.product_image,
            "quantity": self.quantity,
            "price_per_item": float(self.price_per_item),
        }


class OrderStatusLog(db.Model):
    __tablename__ = "order_status_log"
    id = Column(BIGINT, primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    updated_by = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "order_id": self.order_id,
            "status": self.status,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
