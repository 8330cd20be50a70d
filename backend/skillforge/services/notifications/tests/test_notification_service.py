from datetime import timedelta
from unittest.mock import patch

import pytest

from skillforge.errors import NotFoundError, ValidationFailedError
from skillforge.models.common import utcnow
from skillforge.models.notification import Notification, NotificationType
from skillforge.models.user import User, ViewedTopic
from skillforge.services.notifications.notification_service import (
    NotificationService,
)


@pytest.fixture
def service(mock_db, settings):
    return NotificationService(mock_db, settings)


def learner_with_views(count, days_ago=0):
    viewed_at = utcnow() - timedelta(days=days_ago)
    return User(
        id="u1",
        username="ana",
        email="ana@example.com",
        viewed_topics=[
            ViewedTopic(topic_id=f"t{i}", viewed_at=viewed_at) for i in range(count)
        ],
    )


@pytest.mark.asyncio
async def test_reminder_created_for_idle_learner(service, mock_db):
    mock_db.find_notification_since.return_value = None

    reminder = await service.evaluate_reminder(learner_with_views(1, days_ago=3))

    assert reminder.type == NotificationType.reminder
    assert reminder.recipients == ["u1"]
    mock_db.insert_notification.assert_awaited_once_with(reminder)

    # Deduplication looks back over the reminder window only
    _, kind, since = mock_db.find_notification_since.call_args[0]
    assert kind == NotificationType.reminder
    assert utcnow() - since >= timedelta(days=2) - timedelta(seconds=5)


@pytest.mark.asyncio
async def test_reminder_not_repeated_within_window(service, mock_db):
    mock_db.find_notification_since.return_value = Notification(
        message="earlier", type=NotificationType.reminder, recipients=["u1"]
    )

    assert await service.evaluate_reminder(learner_with_views(0)) is None
    mock_db.insert_notification.assert_not_called()


@pytest.mark.asyncio
async def test_no_reminder_for_active_learner(service, mock_db):
    assert await service.evaluate_reminder(learner_with_views(2)) is None
    mock_db.find_notification_since.assert_not_called()


@pytest.mark.asyncio
async def test_achievement_at_milestone_once(service, mock_db):
    mock_db.find_achievement.return_value = None

    achievement = await service.evaluate_achievement(learner_with_views(5))

    assert achievement.milestone == 5
    assert "5 topics" in achievement.message
    mock_db.find_achievement.assert_awaited_once_with("u1", 5)

    mock_db.find_achievement.return_value = achievement
    assert await service.evaluate_achievement(learner_with_views(5)) is None
    mock_db.insert_notification.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_achievement_between_milestones(service, mock_db):
    assert await service.evaluate_achievement(learner_with_views(6)) is None
    mock_db.find_achievement.assert_not_called()


@pytest.mark.asyncio
async def test_broadcast_requires_message(service, mock_db):
    with pytest.raises(ValidationFailedError):
        await service.broadcast("   ")

    notification = await service.broadcast("Maintenance tonight", NotificationType.system)
    assert notification.is_broadcast
    assert notification.type == NotificationType.system


@pytest.mark.asyncio
async def test_mark_read_twice_keeps_single_reader(service, mock_db):
    notification = Notification(id="n1", message="hi")
    mock_db.get_notification.return_value = notification
    mock_db.mark_read.return_value = True

    first = await service.mark_read("n1", "u1")
    assert first.read_by == ["u1"]

    mock_db.get_notification.return_value = first
    second = await service.mark_read("n1", "u1")

    assert second.read_by == ["u1"]
    mock_db.mark_read.assert_awaited_once_with("n1", "u1")


@pytest.mark.asyncio
async def test_mark_read_unknown_notification(service, mock_db):
    mock_db.get_notification.return_value = None

    with pytest.raises(NotFoundError):
        await service.mark_read("missing", "u1")


@pytest.mark.asyncio
async def test_feed_drops_items_from_before_last_login(service, mock_db):
    user = learner_with_views(0).model_copy(update={"last_login": utcnow()})
    stale = Notification(message="old", created_at=utcnow() - timedelta(days=1))
    fresh = Notification(message="new", created_at=utcnow() + timedelta(seconds=1))
    mock_db.get_feed.return_value = [fresh, stale]

    feed = await service.feed(user)

    assert feed == [fresh]
    mock_db.get_feed.assert_awaited_once_with("u1", user.last_login)


@pytest.mark.asyncio
async def test_store_failure_is_logged_and_raised(service, mock_db):
    mock_db.insert_notification.side_effect = RuntimeError("connection lost")

    with patch("skillforge.services.notifications.notification_service.logger") as log:
        with pytest.raises(RuntimeError):
            await service.broadcast("hello")

    assert "connection lost" in log.error.call_args[0][0]
