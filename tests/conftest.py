import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from fitlife.repositories.user_repository import UserRepository
from fitlife.repositories.class_repository import ClassRepository
from fitlife.repositories.interaction_repository import InteractionRepository
from fitlife.repositories.recommendation_repository import RecommendationRepository
from fitlife.schemas.fitness_class import FitnessClass
from fitlife.schemas.interaction import EventType, Interaction, InteractionMetadata
from fitlife.schemas.user import FitnessLevel, Segment, UserProfile
from fitlife.services.cache import RecommendationCache
from fitlife.services.recommendation_service import RecommendationService

# Monday 2026-03-02 08:00 UTC
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class FakeRedis:
    """In-memory stand-in for the redis.asyncio calls the cache makes."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def ping(self):
        return True


def _make_user(user_id="U", **overrides) -> UserProfile:
    data = {
        "user_id": user_id,
        "fitness_level": FitnessLevel.INTERMEDIATE,
        "preferred_categories": [],
        "segment": Segment.GENERAL,
    }
    data.update(overrides)
    return UserProfile(**data)


def _make_class(class_id="c1", **overrides) -> FitnessClass:
    data = {
        "class_id": class_id,
        "name": f"Class {class_id}",
        "category": "Pilates",
        "instructor_id": "I9",
        "level": "Intermediate",
        "start_time": NOW + timedelta(days=5),
        "capacity": 20,
        "current_enrollment": 10,
        "average_rating": 0.0,
        "weekly_bookings": 0,
    }
    data.update(overrides)
    return FitnessClass(**data)


def _make_interaction(event_type=EventType.VIEW, item_id="c1", user_id="U", occurred_at=None, **metadata) -> Interaction:
    return Interaction(
        user_id=user_id,
        item_id=item_id,
        event_type=event_type,
        occurred_at=occurred_at or NOW - timedelta(days=1),
        metadata=InteractionMetadata(**metadata),
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def make_class():
    return _make_class


@pytest.fixture
def make_interaction():
    return _make_interaction


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return RecommendationCache(fake_redis)


@pytest.fixture
def mock_user_repo():
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def mock_class_repo():
    return AsyncMock(spec=ClassRepository)


@pytest.fixture
def mock_interaction_repo():
    repo = AsyncMock(spec=InteractionRepository)
    repo.get_recent.return_value = []
    return repo


@pytest.fixture
def mock_recommendation_repo():
    repo = AsyncMock(spec=RecommendationRepository)
    repo.get_recent.return_value = []  # No persisted rows by default
    return repo


@pytest.fixture
def recommendation_service(mock_user_repo, mock_class_repo, mock_interaction_repo, mock_recommendation_repo, cache):
    return RecommendationService(
        mock_user_repo, mock_class_repo, mock_interaction_repo, mock_recommendation_repo, cache
    )


@pytest.fixture
def mock_db_pool():
    pool = MagicMock()
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchrow = AsyncMock(return_value=None)
    pool.fetchval = AsyncMock(return_value=1)
    pool.execute = AsyncMock()
    # Connection context manager with a transaction
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.executemany = AsyncMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool
