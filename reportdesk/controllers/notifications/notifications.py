# controllers/notifications/notifications.py
from flask import request
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field

from ...addons.auth import login_required, current_user
from ...addons.functions import jsonifyFormat, int_arg, parse_body
from ...addons.notification_store import DEFAULT_PAGE_SIZE, DEFAULT_LATEST
from ...addons.services import get_services

notifications_tag = Tag(name="Notifications", description="Per-user notification inbox")
notifications_bp = APIBlueprint(
    'notifications', __name__, url_prefix='/api/notifications', abp_tags=[notifications_tag],
    abp_security=[{"jwt": []}, {"cookie": []}],
)


class NotificationIdSchema(BaseModel):
    notificationId: int = Field(..., description="Notification ID")


@notifications_bp.get('/list')
@login_required()
def list_notifications():
    """Paginated notifications of the caller, newest first"""
    page = int_arg(request.args, 'page', 1)
    limit = int_arg(request.args, 'limit', DEFAULT_PAGE_SIZE)
    notifications, pagination = get_services().notifications.list(current_user().id, page, limit)
    return jsonifyFormat({
        'success': True,
        'notifications': notifications,
        'pagination': pagination,
    }, 200)


@notifications_bp.get('/latest')
@login_required()
def latest_notifications():
    """Most recent notifications of the caller"""
    limit = int_arg(request.args, 'limit', DEFAULT_LATEST)
    notifications = get_services().notifications.latest(current_user().id, limit)
    return jsonifyFormat({'success': True, 'notifications': notifications}, 200)


@notifications_bp.get('/unread-count')
@login_required()
def unread_count():
    """Number of unread notifications of the caller"""
    count = get_services().notifications.unread_count(current_user().id)
    return jsonifyFormat({'success': True, 'count': count}, 200)


@notifications_bp.post('/mark-read')
@login_required()
def mark_read():
    """Mark one of the caller's notifications as read"""
    body = parse_body(NotificationIdSchema)
    get_services().notifications.mark_read(current_user().id, body.notificationId)
    return jsonifyFormat({'success': True, 'message': 'Notification marked as read'}, 200)


@notifications_bp.delete('/delete')
@login_required()
def delete_notification():
    """Delete one of the caller's notifications"""
    body = parse_body(NotificationIdSchema)
    get_services().notifications.delete(current_user().id, body.notificationId)
    return jsonifyFormat({'success': True, 'message': 'Notification deleted'}, 200)
