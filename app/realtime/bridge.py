"""Keeps an open order list in step with changes made by the other party.

The bridge owns a subscription on the change feed filtered by the viewer's
identity and a receive loop that decodes each event into a typed message and
applies it to the :class:`OrderListView`. Events missed while no bridge was
subscribed are not replayed; :meth:`OrderSyncBridge.refetch` is the recovery
path. Delivery order across producers is not re-sequenced.
"""
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional

from app.realtime.feed import ChangeFeed
from app.realtime.messages import (
    ChangeEvent,
    OrderInserted,
    OrderMessage,
    OrderUpdated,
    UndecodableEvent,
    decode_order_event,
)
from app.realtime.view import OrderListView

logger = logging.getLogger(__name__)

FILTER_COLUMNS = {"buyer": "buyer_id", "seller": "seller_id"}

OrderLoader = Callable[[str], Optional[Dict[str, Any]]]
OrderListLoader = Callable[[], List[Dict[str, Any]]]


class OrderSyncBridge:
    def __init__(
        self,
        feed: ChangeFeed,
        view: OrderListView,
        *,
        role: str,
        user_id: str,
        loader: OrderLoader,
        list_loader: Optional[OrderListLoader] = None,
        poll_interval: float = 0.1,
    ):
        if role not in FILTER_COLUMNS:
            raise ValueError(f"unsupported role for order sync: {role}")
        if loader is None:
            raise ValueError("an order loader is required to list new orders with their items")
        self.feed = feed
        self.view = view
        self.role = role
        self.user_id = user_id
        self.loader = loader
        self.list_loader = list_loader
        self.poll_interval = poll_interval
        self._subscription = None
        self._thread: Optional[threading.Thread] = None
        self._stop: Optional[threading.Event] = None

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def open(self) -> "OrderSyncBridge":
        """Subscribe without a worker thread; events are applied by :meth:`drain`."""
        if not self.subscribed:
            self._subscription = self.feed.subscribe(
                "order", FILTER_COLUMNS[self.role], self.user_id, events=("INSERT", "UPDATE")
            )
        return self

    def start(self) -> "OrderSyncBridge":
        self.open()
        if self._thread is None or not self._thread.is_alive():
            # Each run gets its own stop event so a worker that outlived
            # stop() cannot be revived by a later start().
            self._stop = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop, self._subscription),
                name=f"order-sync-{self.role}-{self.user_id}",
                daemon=True,
            )
            self._thread.start()
        return self

    def stop(self) -> None:
        """Tear down the subscription; safe to call more than once."""
        if self._stop is not None:
            self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=max(1.0, self.poll_interval * 5))
            if self._thread.is_alive():
                logger.warning("Order sync worker %s still busy after stop", self._thread.name)
            self._thread = None
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    def drain(self) -> int:
        """Apply every queued event on the calling thread. Returns how many were handled."""
        if self._subscription is None:
            return 0
        handled = 0
        while True:
            try:
                change = self._subscription.get_nowait()
            except queue.Empty:
                return handled
            self.handle(change)
            handled += 1

    def handle(self, change: ChangeEvent) -> bool:
        try:
            message = decode_order_event(change)
        except UndecodableEvent as e:
            logger.warning("Skipping change event: %s", e)
            return False
        return self.apply(message)

    def apply(self, message: OrderMessage) -> bool:
        if isinstance(message, OrderUpdated):
            return self.view.apply_update(message.order_id, message.changes)
        if isinstance(message, OrderInserted):
            order = self.loader(message.order_id)
            if order is None:
                logger.warning("New order %s vanished before it could be loaded", message.order_id)
                return False
            return self.view.prepend(order)
        raise TypeError(f"unknown order message: {message!r}")

    def refetch(self) -> int:
        """Reload the whole list, e.g. when the screen regains focus."""
        if self.list_loader is None:
            return len(self.view)
        orders = self.list_loader()
        self.view.replace_all(orders)
        return len(orders)

    def _run(self, stop: threading.Event, subscription):
        while not stop.is_set() and not subscription.closed:
            try:
                change = subscription.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            if stop.is_set():
                return
            try:
                self.handle(change)
            except Exception:
                logger.error("Failed to apply order change", exc_info=True)


__all__ = ["OrderSyncBridge", "FILTER_COLUMNS"]
