from sqlalchemy import Column, String, Text, Boolean, DateTime
from models import db, new_id, utcnow


NOTIFICATION_TYPES = (
    "new_order",
    "order_accepted",
    "order_rejected",
    "order_shipped",
    "order_delivered",
    "promo",
    "system",
)


class Notification(db.Model):
    __tablename__ = "notification"
    __table_args__ = (
        db.Index("ix_notification_user_read", "user_id", "read"),
    )
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    type = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    order_id = Column(String(36), nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "order_id": self.order_id,
            "read": bool(self.read),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
