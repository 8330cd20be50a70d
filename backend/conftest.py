from unittest.mock import AsyncMock

import pytest

from skillforge.config import Settings
from skillforge.services.storage.database import DatabaseClient


@pytest.fixture
def settings():
    """Settings with defaults only, never read from a local .env file."""
    return Settings(
        _env_file=None,
        mongodb_uri="mongodb://localhost:27017",
        openai_api_key="test-key",
        jwt_secret="test-secret",
    )


@pytest.fixture
def mock_db():
    return AsyncMock(spec=DatabaseClient)
