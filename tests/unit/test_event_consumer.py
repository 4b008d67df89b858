import asyncio
import json
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from aiokafka.structs import TopicPartition

from fitlife.schemas.interaction import EventType
from fitlife.services.recommendation_service import RecommendationService
from fitlife.workers.event_consumer import EventConsumer

TP = TopicPartition("user-events", 0)


def record(offset, event_type="Book", user_id="U", value=None):
    if value is None:
        value = json.dumps({
            "userId": user_id,
            "itemId": "c1",
            "itemType": "Class",
            "eventType": event_type,
            "timestamp": "2026-03-02T10:00:00Z",
            "metadata": {"source": "recommendation", "instructorId": "I1"},
        }).encode("utf-8")
    return SimpleNamespace(partition=TP.partition, offset=offset, value=value)


@pytest.fixture
def mock_consumer():
    consumer = MagicMock()
    consumer.start = AsyncMock()
    consumer.stop = AsyncMock()
    consumer.commit = AsyncMock()
    consumer.getmany = AsyncMock(return_value={})
    return consumer


@pytest.fixture
def mock_service():
    return AsyncMock(spec=RecommendationService)


@pytest.fixture
def event_consumer(mock_consumer, mock_interaction_repo, mock_service):
    return EventConsumer(
        mock_consumer, mock_interaction_repo, mock_service,
        stop_event=asyncio.Event(), error_backoff_seconds=30,
    )


@pytest.mark.asyncio
async def test_book_event_is_persisted_then_invalidates_once(event_consumer, mock_interaction_repo, mock_service):
    event = await event_consumer.handle_message(record(0))

    assert event.event_type == EventType.BOOK
    mock_interaction_repo.add.assert_awaited_once()
    interaction = mock_interaction_repo.add.await_args.args[0]
    assert interaction.user_id == "U"
    assert interaction.event_type == EventType.BOOK
    assert interaction.metadata.instructor_id == "I1"
    mock_service.invalidate_cache.assert_awaited_once_with("U")


@pytest.mark.asyncio
async def test_event_type_is_case_insensitive(event_consumer, mock_service):
    event = await event_consumer.handle_message(record(0, event_type="book"))

    assert event.event_type == EventType.BOOK
    mock_service.invalidate_cache.assert_awaited_once_with("U")


@pytest.mark.asyncio
async def test_non_booking_event_does_not_invalidate(event_consumer, mock_interaction_repo, mock_service):
    await event_consumer.handle_message(record(0, event_type="Complete"))

    mock_interaction_repo.add.assert_awaited_once()
    mock_service.invalidate_cache.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [b"not json", b'{"userId": "U"}', b'{"userId": "U", "itemId": "c1", "eventType": "Dance"}'])
async def test_undecodable_message_is_dropped(event_consumer, mock_interaction_repo, payload):
    assert await event_consumer.handle_message(record(0, value=payload)) is None
    mock_interaction_repo.add.assert_not_called()


@pytest.mark.asyncio
async def test_partition_commits_each_processed_offset(event_consumer, mock_consumer):
    healthy = await event_consumer.process_partition(TP, [record(5), record(6, value=b"garbage"), record(7)])

    assert healthy is True
    assert [c.args[0] for c in mock_consumer.commit.await_args_list] == [{TP: 6}, {TP: 7}, {TP: 8}]
    mock_consumer.seek.assert_not_called()


@pytest.mark.asyncio
async def test_persistence_failure_seeks_back_and_stops_partition(event_consumer, mock_consumer, mock_interaction_repo):
    mock_interaction_repo.add.side_effect = [None, ConnectionError("db down"), None]

    healthy = await event_consumer.process_partition(TP, [record(5), record(6), record(7)])

    assert healthy is False
    assert [c.args[0] for c in mock_consumer.commit.await_args_list] == [{TP: 6}]
    mock_consumer.seek.assert_called_once_with(TP, 6)
    assert mock_interaction_repo.add.await_count == 2


@pytest.mark.asyncio
async def test_invalidation_failure_is_not_acknowledged(event_consumer, mock_consumer, mock_service):
    mock_service.invalidate_cache.side_effect = ConnectionError("redis down")

    healthy = await event_consumer.process_partition(TP, [record(3)])

    assert healthy is False
    mock_consumer.commit.assert_not_called()
    mock_consumer.seek.assert_called_once_with(TP, 3)


@pytest.mark.asyncio
async def test_run_polls_commits_and_closes(event_consumer, mock_consumer):
    async def getmany(**kwargs):
        if mock_consumer.getmany.await_count > 1:
            event_consumer.stop_event.set()
            return {}
        return {TP: [record(0, event_type="View")]}

    mock_consumer.getmany.side_effect = getmany

    await event_consumer.run()

    mock_consumer.start.assert_awaited_once()
    mock_consumer.commit.assert_awaited_once_with({TP: 1})
    mock_consumer.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_backs_off_after_failure(event_consumer, mock_consumer, mock_interaction_repo):
    mock_interaction_repo.add.side_effect = ConnectionError("db down")
    mock_consumer.getmany.return_value = {TP: [record(0)]}
    event_consumer._wait = AsyncMock(return_value=True)

    await event_consumer.run()

    event_consumer._wait.assert_awaited_once_with(30)
    mock_consumer.seek.assert_called_once_with(TP, 0)
    mock_consumer.stop.assert_awaited_once()
