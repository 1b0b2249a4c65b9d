import copy
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional


class OrderListView:
    """In-memory order list backing one open buyer or seller screen.

    Local optimistic edits and realtime messages both go through
    :meth:`apply_update` / :meth:`prepend`, so an order mutation is applied the
    same way whatever its origin.
    """

    def __init__(self, orders: Optional[Iterable[Dict[str, Any]]] = None):
        self._lock = threading.RLock()
        self._orders: List[Dict[str, Any]] = [dict(o) for o in (orders or [])]

    def __len__(self):
        with self._lock:
            return len(self._orders)

    @property
    def orders(self) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._orders)

    def ids(self) -> List[str]:
        with self._lock:
            return [o["id"] for o in self._orders]

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            index = self._index(order_id)
            return copy.deepcopy(self._orders[index]) if index is not None else None

    def replace_all(self, orders: Iterable[Dict[str, Any]]) -> None:
        with self._lock:
            self._orders = [dict(o) for o in orders]

    def prepend(self, order: Dict[str, Any]) -> bool:
        """Insert a new order at the top; returns False if it is already listed."""
        with self._lock:
            if self._index(order["id"]) is not None:
                return False
            self._orders.insert(0, dict(order))
            return True

    def apply_update(self, order_id: str, changes: Dict[str, Any]) -> bool:
        """Shallow-merge ``changes`` into the listed order.

        Line items are never replaced by an update. Unknown ids are ignored.
        Returns True only if something actually changed, which makes
        re-applying the same update a no-op.
        """
        with self._lock:
            index = self._index(order_id)
            if index is None:
                return False
            current = self._orders[index]
            merged = dict(current)
            merged.update({k: v for k, v in changes.items() if k != "items"})
            if merged == current:
                return False
            self._orders[index] = merged
            return True

    def snapshot(self, order_id: str) -> Optional[Dict[str, Any]]:
        return self.get(order_id)

    def restore(self, order_id: str, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            index = self._index(order_id)
            if index is not None:
                self._orders[index] = copy.deepcopy(snapshot)

    def _index(self, order_id: str) -> Optional[int]:
        for i, order in enumerate(self._orders):
            if order.get("id") == order_id:
                return i
        return None


@contextmanager
def optimistic(view: OrderListView, order_id: str, changes: Dict[str, Any]):
    """Apply ``changes`` now and put the previous state back if the body fails."""
    before = view.snapshot(order_id)
    view.apply_update(order_id, changes)
    try:
        yield view
    except Exception:
        if before is not None:
            view.restore(order_id, before)
        raise


__all__ = ["OrderListView", "optimistic"]
