from app.routes import (
    buyer_bp,
    seller_bp,
    notifications_bp,
    catalog_bp,
)


def register_api_v1(app):
    """Register blueprint routes under the API version prefix."""
    app.register_blueprint(buyer_bp)
    app.register_blueprint(seller_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(catalog_bp)
