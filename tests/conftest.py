"""Shared pytest fixtures."""

from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from commentbox.config import Config
from commentbox.core.modules.comment.models import Comment
from commentbox.core.modules.user.models import User
from tests.fakes import RecordingNotifier

AUTHOR_ID = UUID("87654321-4321-8765-4321-876543218765")
OTHER_ID = UUID("12345678-1234-5678-1234-567812345678")
COMMENT_ID = UUID("aaaaaaaa-0000-4000-8000-000000000001")


@pytest.fixture
def test_config():
    """Configuration that never reads the environment's .env file."""
    return Config(
        _env_file=None,
        database_url="mongodb://localhost:27017/commentbox_test",
        jwt_secret="test-secret",
        debug=False,
    )


@pytest.fixture
def mock_user():
    """Create a mock user for testing."""
    return User(
        id=AUTHOR_ID,
        name="Alice",
        email="a@x.com",
        password_hash="$2b$12$hashed_password_here",
    )


@pytest.fixture
def other_user():
    """A second user who does not own the test comments."""
    return User(
        id=OTHER_ID,
        name="Bob",
        email="b@x.com",
        password_hash="$2b$12$hashed_password_here",
    )


@pytest.fixture
def mock_comment(mock_user):
    """A top-level comment written by mock_user with no votes."""
    return Comment(id=COMMENT_ID, content="hello", author_id=mock_user.id)


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()


@pytest.fixture
def mock_collection():
    """A comments collection whose async methods are AsyncMocks."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=0))
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def mock_core(test_config, recording_notifier, mock_user, other_user):
    """Core stand-in exposing config, notifier and a user service that knows both users."""
    users = {mock_user.id: mock_user, other_user.id: other_user}

    async def get_users(user_ids):
        return {user_id: users[user_id] for user_id in set(user_ids) if user_id in users}

    core = MagicMock()
    core.config = test_config
    core.notifier = recording_notifier
    core.services.user.get_users = AsyncMock(side_effect=get_users)
    return core
