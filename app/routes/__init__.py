from .buyer import buyer_bp
from .seller import seller_bp
from .notifications import notifications_bp
from .catalog import catalog_bp


__all__ = [
    'buyer_bp',
    'seller_bp',
    'notifications_bp',
    'catalog_bp',
]
