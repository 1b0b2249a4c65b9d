from sqlalchemy import Column, Integer, String, Text, DateTime
from models import db, BIGINT, utcnow


class InventoryLog(db.Model):
    """Append-only record of a single stock mutation."""

    __tablename__ = "inventory_log"
    __table_args__ = (
        db.Index("ix_inventory_log_product", "product_id", "id"),
    )
    id = Column(BIGINT, primary_key=True)
    product_id = Column(String(36), nullable=False)
    change_type = Column(String(20), nullable=False)  # add, remove, order, return, adjustment
    quantity_changed = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    order_id = Column(String(36), nullable=True)
    triggered_by = Column(String(36), nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "change_type": self.change_type,
            "quantity_changed": self.quantity_changed,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "order_id": self.order_id,
            "triggered_by": self.triggered_by,
            "reason": self.reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
