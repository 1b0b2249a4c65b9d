from .feed import ChangeFeed, Subscription, change_feed
from .messages import ChangeEvent, OrderInserted, OrderUpdated, decode_order_event
from .view import OrderListView, optimistic
from .bridge import OrderSyncBridge

__all__ = [
    'ChangeFeed',
    'Subscription',
    'change_feed',
    'ChangeEvent',
    'OrderInserted',
    'OrderUpdated',
    'decode_order_event',
    'OrderListView',
    'optimistic',
    'OrderSyncBridge',
]
