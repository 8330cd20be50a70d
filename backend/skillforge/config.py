from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    mongodb_uri: Optional[str] = None
    database_name: str = "skillforge"
    openai_api_key: Optional[str] = None
    quiz_model: str = "gpt-4o-mini"
    quiz_question_count: int = 10
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    cors_origins: List[str] = ["http://localhost:5173"]
    environment: str = "development"

    # Caps enforced on administrator actions
    max_users: int = 10
    max_admins: int = 2
    max_courses: int = 10
    max_topics_per_course: int = 5

    # Learner behaviour rules
    reminder_after_days: int = 2
    achievement_every: int = 5
    recent_activity_capacity: int = 10

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
