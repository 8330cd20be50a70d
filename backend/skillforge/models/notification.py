from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from skillforge.models.common import IdStr, MongoModel, utcnow


class NotificationType(str, Enum):
    info = "info"
    progress = "progress"
    admin = "admin"
    system = "system"
    reminder = "reminder"
    achievement = "achievement"


class Notification(MongoModel):
    message: str
    type: NotificationType = NotificationType.info
    recipients: List[IdStr] = Field(
        default_factory=list, description="Addressed users; empty means broadcast"
    )
    read_by: List[IdStr] = Field(
        default_factory=list, description="Users who dismissed this notification"
    )
    created_at: datetime = Field(default_factory=utcnow)
    milestone: Optional[int] = Field(
        default=None, description="Viewed-topic count an achievement celebrates"
    )

    @property
    def is_broadcast(self) -> bool:
        return not self.recipients
