import logging
from typing import Iterable, List, Optional

from models import db, Notification
from models.notification import NOTIFICATION_TYPES
from app.services.errors import ValidationError, PermissionDenied, NotFound
from app.utils.db import transactional

logger = logging.getLogger(__name__)


def notify(user_id: str, type: str, title: str, message: str, order_id: Optional[str] = None) -> Notification:
    """Stage a notification row in the current transaction. Does NOT commit."""
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Unknown notification type: {type}")
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        order_id=order_id,
        read=False,
    )
    db.session.add(notification)
    return notification


def fan_out(notifications: Iterable[Notification]) -> None:
    """Hand committed notifications to the push worker.

    A failed hand-off is logged and dropped; the notification row already
    exists, so the recipient still sees it in their list.
    """
    from app.tasks.notifications import push_notification_task

    for n in notifications:
        try:
            push_notification_task.delay(n.user_id, n.type, n.title, n.order_id)
        except Exception:
            logger.error("Could not dispatch notification %s", n.id, exc_info=True)


def list_for_user(user_id: str, unread_only: bool = False) -> List[Notification]:
    query = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter_by(read=False)
    return query.order_by(Notification.created_at.desc()).all()


def unread_count(user_id: str) -> int:
    return Notification.query.filter_by(user_id=user_id, read=False).count()


def mark_read(user_id: str, notification_id: str) -> Notification:
    with transactional("Failed to mark notification read"):
        notification = db.session.get(Notification, notification_id)
        if notification is None:
            raise NotFound(f"Notification {notification_id} not found")
        if notification.user_id != user_id:
            raise PermissionDenied()
        notification.read = True
    return notification


def mark_all_read(user_id: str) -> int:
    with transactional("Failed to mark notifications read"):
        updated = (
            Notification.query.filter_by(user_id=user_id, read=False)
            .update({Notification.read: True}, synchronize_session=False)
        )
    return updated


__all__ = [
    "notify",
    "fan_out",
    "list_for_user",
    "unread_count",
    "mark_read",
    "mark_all_read",
]
