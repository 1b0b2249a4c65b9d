from sqlalchemy import Column, String, Text, Numeric, Integer, Float, Boolean, DateTime, CheckConstraint
from models import db, new_id, utcnow


class Product(db.Model):
    __tablename__ = "product"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        db.Index("ix_product_seller", "seller_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    seller_id = Column(String(36), nullable=False)
    seller_name = Column(String(120), nullable=True)

    # Core details
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=True)   # strike-through price

    # Inventory
    stock = Column(Integer, nullable=False, default=0)

    # Media
    images = Column(db.JSON, nullable=False, default=list)

    # Reviews
    rating = Column(Float, default=0.0)
    review_count = Column(Integer, default=0)

    featured = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    @property
    def primary_image(self):
        return self.images[0] if self.images else None

    def to_dict(self):
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": float(self.price),
            "original_price": float(self.original_price) if self.original_price is not None else None,
            "stock": self.stock,
            "images": list(self.images or []),
            "rating": self.rating,
            "review_count": self.review_count,
            "featured": bool(self.featured),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
