import logging
from datetime import timedelta
from typing import List, Optional

from skillforge.config import Settings
from skillforge.errors import NotFoundError, ValidationFailedError
from skillforge.models.common import as_utc, utcnow
from skillforge.models.notification import Notification, NotificationType
from skillforge.models.user import User
from skillforge.services.notifications.triggers import (
    EPOCH,
    REMINDER_MESSAGE,
    WELCOME_MESSAGE,
    achievement_message,
    achievement_milestone,
    is_visible_to,
    needs_reminder,
    with_reader,
)
from skillforge.services.storage.database import DatabaseClient

logger = logging.getLogger(__name__)


class NotificationService:
    """Evaluates notification rules on request and serves learner feeds."""

    def __init__(self, db_client: DatabaseClient, settings: Settings):
        self.db = db_client
        self.reminder_window = timedelta(days=settings.reminder_after_days)
        self.achievement_every = settings.achievement_every

    async def evaluate_reminder(self, user: User) -> Optional[Notification]:
        """Create a reminder if the learner has gone quiet.

        A learner gets at most one reminder per reminder window.
        """
        now = utcnow()
        if not needs_reminder(user, now, self.reminder_window):
            return None

        recent = await self.db.find_notification_since(
            user.id, NotificationType.reminder, now - self.reminder_window
        )
        if recent:
            logger.info(f"Reminder for user {user.id} already sent at {recent.created_at}")
            return None

        return await self._create(
            Notification(
                message=REMINDER_MESSAGE,
                type=NotificationType.reminder,
                recipients=[user.id],
            )
        )

    async def evaluate_achievement(self, user: User) -> Optional[Notification]:
        """Celebrate every ``achievement_every`` viewed topics, once per milestone."""
        milestone = achievement_milestone(
            len(user.viewed_topics), self.achievement_every
        )
        if milestone is None:
            return None

        if await self.db.find_achievement(user.id, milestone):
            return None

        return await self._create(
            Notification(
                message=achievement_message(milestone),
                type=NotificationType.achievement,
                recipients=[user.id],
                milestone=milestone,
            )
        )

    async def welcome(self, user: User) -> Notification:
        return await self._create(
            Notification(
                message=WELCOME_MESSAGE,
                type=NotificationType.info,
                recipients=[user.id],
            )
        )

    async def broadcast(
        self, message: str, notification_type: NotificationType = NotificationType.info
    ) -> Notification:
        if not message or not message.strip():
            raise ValidationFailedError("Message required")
        return await self._create(
            Notification(message=message, type=notification_type, recipients=[])
        )

    async def feed(self, user: User) -> List[Notification]:
        since = as_utc(user.last_login) if user.last_login else EPOCH
        notifications = await self.db.get_feed(user.id, since)
        return [n for n in notifications if is_visible_to(n, user)]

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """Record that ``user_id`` dismissed the notification. Idempotent."""
        notification = await self.db.get_notification(notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if user_id in notification.read_by:
            return notification

        if not await self.db.mark_read(notification_id, user_id):
            raise NotFoundError("Notification", notification_id)
        return with_reader(notification, user_id)

    async def list_all(self) -> List[Notification]:
        return await self.db.list_notifications()

    async def _create(self, notification: Notification) -> Notification:
        try:
            await self.db.insert_notification(notification)
        except Exception as e:
            logger.error(f"Error creating {notification.type.value} notification: {str(e)}")
            raise
        logger.info(
            f"Created {notification.type.value} notification {notification.id} "
            f"for {notification.recipients or 'everyone'}"
        )
        return notification
