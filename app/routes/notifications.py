from flask import Blueprint, request
from app.version import API_PREFIX
from app.services import notifications
from app.utils import ok, auth_required, current_user

notifications_bp = Blueprint("notifications", __name__, url_prefix=f"{API_PREFIX}/notifications")


@notifications_bp.route("", methods=["GET"])
@auth_required
def list_notifications():
    user = current_user()
    unread_only = request.args.get("unread", "").lower() in ("1", "true", "yes")
    items = notifications.list_for_user(user.id, unread_only=unread_only)
    return ok({
        "notifications": [n.to_dict() for n in items],
        "unread": notifications.unread_count(user.id),
    })


@notifications_bp.route("/<notification_id>/read", methods=["POST"])
@auth_required
def mark_read(notification_id):
    n = notifications.mark_read(current_user().id, notification_id)
    return ok(n.to_dict(), message="Notification marked as read")


@notifications_bp.route("/read-all", methods=["POST"])
@auth_required
def mark_all_read():
    count = notifications.mark_all_read(current_user().id)
    return ok({"updated": count}, message="All notifications marked as read")
