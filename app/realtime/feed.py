"""In-process change feed over the ``order`` and ``notification`` tables.

Row changes are captured from SQLAlchemy session events while a flush runs,
held on the session, and only published once the transaction commits. A
rollback drops them, so subscribers never see a write that did not land.
"""
import logging
import queue
import threading
from typing import Iterable, List, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session

from models import Order, Notification, row_snapshot
from app.realtime.messages import ChangeEvent

logger = logging.getLogger(__name__)

EVENT_TYPES = ("INSERT", "UPDATE")


class Subscription:
    """One filtered view of the feed with its own delivery queue."""

    def __init__(self, feed, table: str, column: str, value, events: Iterable[str]):
        self.feed = feed
        self.table = table
        self.column = column
        self.value = value
        self.events = frozenset(events)
        self._queue = queue.Queue()
        self.closed = False

    def matches(self, change: ChangeEvent) -> bool:
        return (
            not self.closed
            and change.table == self.table
            and change.type in self.events
            and change.new.get(self.column) == self.value
        )

    def deliver(self, change: ChangeEvent) -> None:
        self._queue.put_nowait(change)

    def get(self, timeout: Optional[float] = None) -> ChangeEvent:
        """Block for the next event; raises ``queue.Empty`` on timeout."""
        return self._queue.get(timeout=timeout)

    def get_nowait(self) -> ChangeEvent:
        return self._queue.get_nowait()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self.feed.unsubscribe(self)

    def __repr__(self):
        return f"<Subscription {self.table} {self.column}={self.value} {sorted(self.events)}>"


class ChangeFeed:
    def __init__(self, tracked=(Order, Notification)):
        self._tracked = tuple(tracked)
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()
        self._bound_targets = set()
        self._pending_key = f"change_feed.pending.{id(self)}"

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, table: str, column: str, value, events: Iterable[str] = EVENT_TYPES) -> Subscription:
        events = tuple(events)
        unknown = set(events) - set(EVENT_TYPES)
        if unknown:
            raise ValueError(f"unsupported event types: {sorted(unknown)}")
        sub = Subscription(self, table, column, value, events)
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug("Subscribed %r", sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)
        sub.closed = True
        logger.debug("Unsubscribed %r", sub)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, change: ChangeEvent) -> int:
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(change)]
        for sub in targets:
            sub.deliver(change)
        return len(targets)

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def stage(self, session, type: str, obj) -> None:
        """Queue a row change on ``session`` until it commits."""
        if isinstance(session, scoped_session):
            session = session()
        change = ChangeEvent(table=obj.__tablename__, type=type, new=row_snapshot(obj))
        session.info.setdefault(self._pending_key, []).append(change)

    def stage_update(self, session, obj) -> None:
        """Record an UPDATE made outside the unit of work (bulk conditional update)."""
        self.stage(session, "UPDATE", obj)

    def bind(self, target=Session) -> None:
        """Attach the capture hooks to a session class or sessionmaker, once."""
        key = id(target)
        if key in self._bound_targets:
            return
        event.listen(target, "after_flush", self._after_flush)
        event.listen(target, "after_commit", self._after_commit)
        event.listen(target, "after_rollback", self._after_rollback)
        self._bound_targets.add(key)

    def _after_flush(self, session, flush_context):
        for obj in session.new:
            if isinstance(obj, self._tracked):
                self.stage(session, "INSERT", obj)
        for obj in session.dirty:
            if isinstance(obj, self._tracked) and session.is_modified(obj, include_collections=False):
                self.stage(session, "UPDATE", obj)

    def _after_commit(self, session):
        pending = session.info.pop(self._pending_key, [])
        for change in pending:
            delivered = self.publish(change)
            logger.debug("Published %s %s to %d subscriber(s)", change.type, change.table, delivered)

    def _after_rollback(self, session):
        dropped = session.info.pop(self._pending_key, [])
        if dropped:
            logger.debug("Dropped %d uncommitted change(s)", len(dropped))


# Process-wide feed; sessions and bridges receive it explicitly.
change_feed = ChangeFeed()

__all__ = ["ChangeFeed", "Subscription", "change_feed", "EVENT_TYPES"]
