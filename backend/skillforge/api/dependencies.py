from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from skillforge.config import Settings, get_settings
from skillforge.errors import ForbiddenError, UnauthorizedError
from skillforge.models.user import Identity, User
from skillforge.services.admin.admin_service import AdminService
from skillforge.services.analytics.reports import AnalyticsService
from skillforge.services.notifications.notification_service import (
    NotificationService,
)
from skillforge.services.progression.learner_service import LearnerService
from skillforge.services.quiz.quiz_generator import QuizGenerator
from skillforge.services.storage.database import DatabaseClient

bearer_scheme = HTTPBearer(auto_error=False)

# Store service instances globally
learner_service = None
admin_service = None
notification_service = None
analytics_service = None
quiz_generator = None


def init_services(db_client: DatabaseClient, settings: Settings) -> None:
    global learner_service, admin_service, notification_service
    global analytics_service, quiz_generator

    notification_service = NotificationService(db_client, settings)
    learner_service = LearnerService(db_client, notification_service, settings)
    admin_service = AdminService(db_client, notification_service, settings)
    analytics_service = AnalyticsService(db_client)
    quiz_generator = QuizGenerator(
        db_client,
        settings.openai_api_key,
        settings.quiz_model,
        settings.quiz_question_count,
    )


async def get_learner_service() -> LearnerService:
    if learner_service is None:
        raise RuntimeError("LearnerService not initialized")
    return learner_service


async def get_admin_service() -> AdminService:
    if admin_service is None:
        raise RuntimeError("AdminService not initialized")
    return admin_service


async def get_notification_service() -> NotificationService:
    if notification_service is None:
        raise RuntimeError("NotificationService not initialized")
    return notification_service


async def get_analytics_service() -> AnalyticsService:
    if analytics_service is None:
        raise RuntimeError("AnalyticsService not initialized")
    return analytics_service


async def get_quiz_generator() -> QuizGenerator:
    if quiz_generator is None:
        raise RuntimeError("QuizGenerator not initialized")
    return quiz_generator


async def get_identity(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Identity:
    """Caller identity from the bearer token's ``sub`` and ``role`` claims."""
    if credentials is None:
        raise UnauthorizedError("Missing bearer token")
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token")
    try:
        return Identity(id=user_id, role=payload.get("role", "user"))
    except ValidationError:
        raise UnauthorizedError("Invalid token")


async def require_admin(
    identity: Annotated[Identity, Depends(get_identity)],
) -> Identity:
    if not identity.is_admin:
        raise ForbiddenError("Forbidden: Admins only")
    return identity


async def get_current_user(
    identity: Annotated[Identity, Depends(get_identity)],
    service: Annotated[LearnerService, Depends(get_learner_service)],
) -> User:
    return await service.get_user(identity.id)
