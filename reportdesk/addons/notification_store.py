"""Per-user notification inbox."""
import logging
import math

from sqlalchemy.exc import SQLAlchemyError

from .functions import utc_now
from ..models import Notification

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20
MAX_LATEST = 20
DEFAULT_LATEST = 5


class NotificationStore:
    """Reads never fail the caller: a backend error yields an empty result.

    Writes are scoped to the owner, so touching someone else's notification
    simply matches no rows.
    """

    def __init__(self, database):
        self.db = database

    def _owned(self, user_id):
        return Notification.query.filter(Notification.user_id == user_id)

    def list(self, user_id, page=1, limit=DEFAULT_PAGE_SIZE):
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        try:
            query = self._owned(user_id)
            total = query.count()
            items = (
                query.order_by(Notification.created_at.desc(), Notification.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(f"Notifications fetch failed for user {user_id}")
            total, items = 0, []

        total_pages = math.ceil(total / limit) if total else 0
        return [n.to_dict() for n in items], {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': total_pages,
            'hasNext': page < total_pages,
            'hasPrev': page > 1,
        }

    def latest(self, user_id, limit=DEFAULT_LATEST):
        limit = min(max(limit, 1), MAX_LATEST)
        try:
            items = (
                self._owned(user_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(f"Latest notifications fetch failed for user {user_id}")
            return []
        return [n.to_dict() for n in items]

    def unread_count(self, user_id):
        try:
            return self._owned(user_id).filter(Notification.read.is_(False)).count()
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception(f"Unread notifications count failed for user {user_id}")
            return 0

    def mark_read(self, user_id, notification_id):
        updated = self._owned(user_id).filter(Notification.id == notification_id).update(
            {'read': True, 'updated_at': utc_now()}, synchronize_session=False
        )
        self.db.session.commit()
        return updated

    def delete(self, user_id, notification_id):
        deleted = self._owned(user_id).filter(Notification.id == notification_id).delete(
            synchronize_session=False
        )
        self.db.session.commit()
        return deleted

    def notify(self, user_id, type, title, message, data=None):
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {},
        )
        self.db.session.add(notification)
        self.db.session.commit()
        return notification
