from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from skillforge.api.dependencies import (
    get_admin_service,
    get_analytics_service,
    get_learner_service,
    get_notification_service,
    get_quiz_generator,
)
from skillforge.config import get_settings
from skillforge.errors import (
    ExternalServiceError,
    NotFoundError,
    PrerequisiteCycleError,
)
from skillforge.main import app
from skillforge.models.content import EdgeKind, LearningPath, PathRating
from skillforge.models.notification import Notification, NotificationType
from skillforge.models.progress import (
    CourseProgress,
    LearnerExport,
    TopicSeen,
    UnlockStatus,
)
from skillforge.models.user import User
from skillforge.services.admin.admin_service import AdminService
from skillforge.services.analytics.reports import AnalyticsService
from skillforge.services.notifications.notification_service import (
    NotificationService,
)
from skillforge.services.progression.learner_service import LearnerService
from skillforge.services.quiz.quiz_generator import QuizGenerator


@pytest.fixture
def services(settings):
    mocks = {
        "learner": AsyncMock(spec=LearnerService),
        "admin": AsyncMock(spec=AdminService),
        "notifications": AsyncMock(spec=NotificationService),
        "analytics": AsyncMock(spec=AnalyticsService),
        "quiz": AsyncMock(spec=QuizGenerator),
    }
    mocks["learner"].get_user.return_value = User(
        id="u1", username="ana", email="ana@example.com"
    )

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_learner_service] = lambda: mocks["learner"]
    app.dependency_overrides[get_admin_service] = lambda: mocks["admin"]
    app.dependency_overrides[get_notification_service] = lambda: mocks["notifications"]
    app.dependency_overrides[get_analytics_service] = lambda: mocks["analytics"]
    app.dependency_overrides[get_quiz_generator] = lambda: mocks["quiz"]
    yield mocks
    app.dependency_overrides.clear()


@pytest.fixture
def client(services):
    return TestClient(app)


def auth(settings, user_id="u1", role="user"):
    token = jwt.encode(
        {"sub": user_id, "role": role}, settings.jwt_secret, algorithm=settings.jwt_algorithm
    )
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_missing_or_bad_token_is_unauthorized(client):
    assert client.get("/api/me/courses/progress").status_code == 401

    response = client.get(
        "/api/me/courses/progress", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_learner_cannot_use_admin_routes(client, settings):
    response = client.get("/api/admin/users", headers=auth(settings))
    assert response.status_code == 403


def test_subject_unlock(client, services, settings):
    services["learner"].subject_unlocked_in_course.return_value = UnlockStatus(
        node_id="B", container_id="c1", kind=EdgeKind.course_subject, unlocked=True
    )

    response = client.get(
        "/api/me/courses/c1/subjects/B/unlocked", headers=auth(settings)
    )

    assert response.status_code == 200
    assert response.json()["unlocked"] is True
    user, course_id, subject_id = services["learner"].subject_unlocked_in_course.call_args[0]
    assert (user.id, course_id, subject_id) == ("u1", "c1", "B")


def test_not_found_is_404_with_details(client, services, settings):
    services["learner"].course_progress.side_effect = NotFoundError("Course", "nope")

    response = client.get("/api/me/courses/nope/progress", headers=auth(settings))

    assert response.status_code == 404
    assert response.json() == {"message": "Course not found", "resource": "Course", "id": "nope"}


def test_course_progress(client, services, settings):
    services["learner"].all_course_progress.return_value = [
        CourseProgress(
            id="c1", title="Chain", total_topics=3, viewed_topics=2, percentage=67
        )
    ]

    response = client.get("/api/me/courses/progress", headers=auth(settings))

    assert response.json()[0]["percentage"] == 67


def test_record_view(client, services, settings):
    services["learner"].record_view.return_value = True

    response = client.post(
        "/api/me/topics/t1/view",
        json={"short_description": "loops"},
        headers=auth(settings),
    )

    assert response.status_code == 200
    assert response.json() == {"topic_id": "t1", "newly_viewed": True}
    _, topic_id, short_description = services["learner"].record_view.call_args[0]
    assert (topic_id, short_description) == ("t1", "loops")


def test_quiz_score_out_of_range_rejected(client, services, settings):
    response = client.post(
        "/api/me/quiz-scores",
        json={"course_id": "c1", "score": 140},
        headers=auth(settings),
    )
    assert response.status_code == 422
    services["learner"].save_quiz_score.assert_not_called()


def test_rate_path(client, services, settings):
    services["learner"].rate_path.return_value = LearningPath(
        id="p1", title="Path", ratings=[PathRating(user_id="u1", score=4, review="ok")]
    )

    response = client.post(
        "/api/me/paths/p1/rating",
        json={"score": 4, "review": "ok"},
        headers=auth(settings),
    )

    assert response.status_code == 200
    assert response.json()["ratings"][0]["score"] == 4
    _, path_id, score, review = services["learner"].rate_path.call_args[0]
    assert (path_id, score, review) == ("p1", 4, "ok")


def test_rating_out_of_range_rejected(client, services, settings):
    response = client.post(
        "/api/me/paths/p1/rating", json={"score": 6}, headers=auth(settings)
    )
    assert response.status_code == 422
    services["learner"].rate_path.assert_not_called()


def test_topic_seen(client, services, settings):
    services["learner"].topic_seen.return_value = TopicSeen(topic_id="t1", seen=True)

    response = client.get("/api/me/topics/t1/seen", headers=auth(settings))

    assert response.json() == {"topic_id": "t1", "seen": True}


def test_export_wraps_the_caller(client, services, settings):
    user = services["learner"].get_user.return_value
    services["learner"].export_data.return_value = LearnerExport(user=user)

    response = client.get("/api/me/export", headers=auth(settings))

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "ana"
    services["learner"].export_data.assert_awaited_once_with(user)


def test_mark_notification_read(client, services, settings):
    services["notifications"].mark_read.return_value = Notification(
        id="n1", message="hi", read_by=["u1"]
    )

    response = client.post("/api/me/notifications/n1/read", headers=auth(settings))

    assert response.status_code == 200
    assert response.json()["read_by"] == ["u1"]
    services["notifications"].mark_read.assert_awaited_once_with("n1", "u1")


def test_admin_broadcast(client, services, settings):
    services["notifications"].broadcast.return_value = Notification(
        message="Maintenance", type=NotificationType.system
    )

    response = client.post(
        "/api/admin/notifications/broadcast",
        json={"message": "Maintenance", "type": "system"},
        headers=auth(settings, role="admin"),
    )

    assert response.status_code == 201
    services["notifications"].broadcast.assert_awaited_once_with(
        "Maintenance", NotificationType.system
    )


def test_prerequisite_cycle_is_400(client, services, settings):
    services["admin"].set_prerequisites.side_effect = PrerequisiteCycleError(["a", "b", "a"])

    response = client.put(
        "/api/admin/topics/a/prerequisites",
        json={"prerequisites": ["b"]},
        headers=auth(settings, role="admin"),
    )

    assert response.status_code == 400
    assert response.json()["cycle"] == ["a", "b", "a"]


def test_quiz_failure_carries_raw_text(client, services, settings):
    services["quiz"].generate.side_effect = ExternalServiceError(
        "Quiz provider did not return 10 valid questions", raw="garbage", questions=[]
    )

    response = client.post(
        "/api/quiz/generate", json={"course_id": "c1"}, headers=auth(settings)
    )

    assert response.status_code == 502
    assert response.json()["raw"] == "garbage"


def test_unexpected_error_is_500(services, settings):
    services["learner"].recent_activity.side_effect = RuntimeError("boom")
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/me/recent-activity", headers=auth(settings))

    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}
