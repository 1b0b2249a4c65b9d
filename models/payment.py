from sqlalchemy import Column, String, Numeric, DateTime
from models import db, new_id, utcnow


class PaymentTransaction(db.Model):
    """Placeholder payment row written at checkout; no gateway is attached."""

    __tablename__ = "payment_transaction"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    order_id = Column(String(36), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default="pending")  # pending, processing, success, failed, cancelled, refunded
    payment_method = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "amount": float(self.amount),
            "currency": self.currency,
            "status": self.status,
            "payment_method": self.payment_method,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
