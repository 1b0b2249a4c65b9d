from models import db, utcnow


class SavedCart(db.Model):
    """Serialized cart of one buyer, rewritten on every cart mutation."""

    __tablename__ = "saved_cart"

    buyer_id = db.Column(db.String(36), primary_key=True)
    payload = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
