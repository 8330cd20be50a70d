"""Rules deciding when a learner gets a reminder, an achievement or sees a notification."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from skillforge.models.common import as_utc
from skillforge.models.notification import Notification
from skillforge.models.user import User

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

REMINDER_MESSAGE = (
    "It's been a while since you viewed a topic. Continue your learning journey!"
)
WELCOME_MESSAGE = "Welcome to SkillForge! Start your learning journey now."


def achievement_message(count: int) -> str:
    return f"Congratulations! You have viewed {count} topics!"


def needs_reminder(user: User, now: datetime, window: timedelta) -> bool:
    """True when the learner never viewed a topic or has been idle past ``window``."""
    last_viewed = user.last_viewed_at
    if last_viewed is None:
        return True
    return as_utc(now) - last_viewed > window


def achievement_milestone(viewed_count: int, every: int = 5) -> Optional[int]:
    if viewed_count > 0 and viewed_count % every == 0:
        return viewed_count
    return None


def is_visible_to(notification: Notification, user: User) -> bool:
    """Whether ``notification`` belongs in the learner's feed.

    Anything created before the learner's most recent login is left out,
    read or not.
    """
    addressed = notification.is_broadcast or user.id in notification.recipients
    if not addressed or user.id in notification.read_by:
        return False
    last_login = as_utc(user.last_login) if user.last_login else EPOCH
    return as_utc(notification.created_at) > last_login


def with_reader(notification: Notification, user_id: str) -> Notification:
    """Return ``notification`` with ``user_id`` in ``read_by`` exactly once."""
    if user_id in notification.read_by:
        return notification
    return notification.model_copy(
        update={"read_by": [*notification.read_by, user_id]}
    )
