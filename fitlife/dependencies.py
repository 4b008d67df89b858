import asyncio
from typing import List

import asyncpg
import redis.asyncio as redis
from aiokafka import AIOKafkaProducer

from .config import settings, POSTGRES_DSN, REDIS_URL, KAFKA_BOOTSTRAP_SERVERS
from .repositories.user_repository import UserRepository
from .repositories.class_repository import ClassRepository
from .repositories.interaction_repository import InteractionRepository
from .repositories.recommendation_repository import RecommendationRepository
from .services.cache import RecommendationCache
from .services.recommendation_service import RecommendationService
from .workers.base import BackgroundWorker
from .workers.event_consumer import EventConsumer, create_consumer
from .workers.recommendation_refresher import BatchRecommendationRefresher
from .workers.user_segmentation import UserSegmentationJob

# Global state for connections
class AppState:
    pg_pool: asyncpg.Pool = None
    redis_client: redis.Redis = None
    kafka_producer: AIOKafkaProducer = None

state = AppState()

async def init_resources():
    """Initialize all resources"""
    state.pg_pool = await asyncpg.create_pool(
        POSTGRES_DSN,
        min_size=5,
        max_size=20,
        command_timeout=60
    )

    state.redis_client = await redis.from_url(
        REDIS_URL,
        encoding="utf-8",
        decode_responses=True
    )

    state.kafka_producer = AIOKafkaProducer(bootstrap_servers=KAFKA_BOOTSTRAP_SERVERS)
    await state.kafka_producer.start()

async def close_resources():
    """Close all resources"""
    if state.redis_client:
        await state.redis_client.aclose()
    if state.pg_pool:
        await state.pg_pool.close()
    if state.kafka_producer:
        await state.kafka_producer.stop()

# Dependencies
async def get_db_pool() -> asyncpg.Pool:
    return state.pg_pool

async def get_redis() -> redis.Redis:
    return state.redis_client

async def get_kafka_producer() -> AIOKafkaProducer:
    return state.kafka_producer

def build_recommendation_service(db: asyncpg.Pool, redis_client: redis.Redis) -> RecommendationService:
    return RecommendationService(
        UserRepository(db),
        ClassRepository(db),
        InteractionRepository(db),
        RecommendationRepository(db),
        RecommendationCache(redis_client),
    )

def build_workers(stop_event: asyncio.Event) -> List[BackgroundWorker]:
    """Background workers enabled in settings, sharing one stop event."""
    db = state.pg_pool
    service = build_recommendation_service(db, state.redis_client)
    workers: List[BackgroundWorker] = []

    if settings.EVENT_CONSUMER_ENABLED:
        workers.append(EventConsumer(create_consumer(), InteractionRepository(db), service, stop_event))
    if settings.REFRESHER_ENABLED:
        workers.append(BatchRecommendationRefresher(UserRepository(db), service, stop_event))
    if settings.SEGMENTATION_ENABLED:
        workers.append(
            UserSegmentationJob(
                UserRepository(db), ClassRepository(db), InteractionRepository(db), service, stop_event
            )
        )
    return workers
