"""Explicit per-user session state.

A :class:`UserSession` is created when a user signs in (or a stored session
is restored) and torn down on sign-out. It owns the buyer's cart and every
order sync bridge opened through it, and is passed to whatever needs them
instead of living in module globals.
"""
import logging
from typing import Callable, List, Optional

from flask import current_app

from app.auth.identity import CurrentUser
from app.realtime.bridge import OrderSyncBridge
from app.realtime.feed import ChangeFeed, change_feed
from app.realtime.view import OrderListView, optimistic
from app.services import order_state
from app.services.cart import Cart, CartStorage, MemoryCartStorage, MAX_QUANTITY_PER_ITEM
from app.services.errors import PermissionDenied
from app.services.orders import make_order_list_loader, make_order_loader

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


class AuthProvider:
    """What the marketplace needs from the hosted auth service."""

    def current_user(self) -> Optional[CurrentUser]:
        raise NotImplementedError

    def on_auth_state_change(self, callback: Callable[[str, Optional[CurrentUser]], None]) -> Callable[[], None]:
        """Register ``callback(event, user)``; returns a function that unregisters it."""
        raise NotImplementedError


class StaticAuthProvider(AuthProvider):
    """Auth provider driven by explicit sign-in / sign-out calls."""

    def __init__(self, user: Optional[CurrentUser] = None):
        self._user = user
        self._listeners: List[Callable] = []

    def current_user(self):
        return self._user

    def on_auth_state_change(self, callback):
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def sign_in(self, user: CurrentUser) -> None:
        self._user = user
        self._emit(SIGNED_IN, user)

    def sign_out(self) -> None:
        self._user = None
        self._emit(SIGNED_OUT, None)

    def _emit(self, event, user):
        for listener in list(self._listeners):
            listener(event, user)


class UserSession:
    def __init__(self, user: CurrentUser, cart: Cart, feed: ChangeFeed = change_feed):
        self.user = user
        self.cart = cart
        self.feed = feed
        self._bridges: List[OrderSyncBridge] = []
        self.closed = False

    def open_order_view(self, orders=None, loader=None, list_loader=None, threaded: bool = True) -> OrderSyncBridge:
        """Open a synced order list for this user's role.

        Buyers follow orders they placed and sellers orders placed with them.
        Without explicit loaders, new orders and refetches are read through
        the current application.
        """
        if self.user.role not in ("buyer", "seller"):
            raise PermissionDenied("Only buyers and sellers have an order list")
        if loader is None or list_loader is None:
            app = current_app._get_current_object()
            loader = loader or make_order_loader(app)
            list_loader = list_loader or make_order_list_loader(app, self.user.role, self.user.id)
        bridge = OrderSyncBridge(
            self.feed,
            OrderListView(orders),
            role=self.user.role,
            user_id=self.user.id,
            loader=loader,
            list_loader=list_loader,
        )
        if threaded:
            bridge.start()
        else:
            bridge.open()
        self._bridges.append(bridge)
        return bridge

    def close_order_view(self, bridge: OrderSyncBridge) -> None:
        bridge.stop()
        if bridge in self._bridges:
            self._bridges.remove(bridge)

    def advance_order(self, action: str, order_id: str, view: Optional[OrderListView] = None, **kwargs):
        """Run a seller transition, showing its result in ``view`` right away.

        The optimistic status is reverted if the transition fails.
        """
        transition = order_state.ACTIONS[action]
        if view is None:
            return transition(self.user, order_id, **kwargs)
        target = order_state.TRANSITIONS[action].target
        with optimistic(view, order_id, {"status": target}):
            order = transition(self.user, order_id, **kwargs)
        view.apply_update(order_id, order.to_dict())
        return order

    def close(self) -> None:
        for bridge in list(self._bridges):
            self.close_order_view(bridge)
        self.closed = True


class SessionManager:
    """Creates and tears down :class:`UserSession` objects from auth events."""

    def __init__(self, auth: AuthProvider, cart_storage: Optional[CartStorage] = None,
                 feed: ChangeFeed = change_feed, max_quantity: int = MAX_QUANTITY_PER_ITEM):
        self.auth = auth
        self.cart_storage = cart_storage or MemoryCartStorage()
        self.feed = feed
        self.max_quantity = max_quantity
        self.current: Optional[UserSession] = None
        self._unsubscribe = auth.on_auth_state_change(self._on_auth_event)
        existing = auth.current_user()
        if existing is not None:
            self.login(existing)

    def login(self, user: CurrentUser) -> UserSession:
        if self.current is not None:
            if self.current.user == user:
                return self.current
            self.logout()
        cart = Cart.load(user.id, self.cart_storage, self.max_quantity)
        self.current = UserSession(user, cart, self.feed)
        logger.info("Session opened for %s (%s)", user.id, user.role)
        return self.current

    def logout(self) -> None:
        if self.current is None:
            return
        logger.info("Session closed for %s", self.current.user.id)
        self.current.close()
        self.current = None

    def shutdown(self) -> None:
        self.logout()
        self._unsubscribe()

    def _on_auth_event(self, event: str, user: Optional[CurrentUser]) -> None:
        if event == SIGNED_IN and user is not None:
            self.login(user)
        elif event == SIGNED_OUT:
            self.logout()


__all__ = [
    "SIGNED_IN",
    "SIGNED_OUT",
    "AuthProvider",
    "StaticAuthProvider",
    "UserSession",
    "SessionManager",
]
