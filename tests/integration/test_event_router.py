import json
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock
from aiokafka.errors import KafkaError

from fitlife.main import app
from fitlife.dependencies import get_kafka_producer
from fitlife.limiter import limiter


def event(user_id="U", event_type="Book", **extra):
    body = {"userId": user_id, "itemId": "c1", "itemType": "Class", "eventType": event_type, "metadata": {"source": "search"}}
    body.update(extra)
    return body


@pytest.fixture
def mock_kafka():
    return AsyncMock()


@pytest_asyncio.fixture
async def client(mock_kafka):
    app.dependency_overrides[get_kafka_producer] = lambda: mock_kafka

    transport = ASGITransport(app=app)
    limiter.enabled = False
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    limiter.enabled = True

    app.dependency_overrides = {}


@pytest.mark.asyncio
async def test_track_event_publishes_keyed_by_user(client: AsyncClient, mock_kafka):
    response = await client.post("/api/events", json=event(timestamp="2001-01-01T00:00:00Z"))

    assert response.status_code == 202
    assert response.json() == {"status": "accepted", "published": 1, "failed": 0}

    topic = mock_kafka.send_and_wait.await_args.args[0]
    kwargs = mock_kafka.send_and_wait.await_args.kwargs
    assert topic == "user-events"
    assert kwargs["key"] == b"U"
    message = json.loads(kwargs["value"])
    assert message["eventType"] == "Book"
    assert message["metadata"] == {"source": "search"}
    # Server clock replaces the client timestamp
    assert not message["timestamp"].startswith("2001")


@pytest.mark.asyncio
async def test_lowercase_event_type_is_normalized(client: AsyncClient, mock_kafka):
    response = await client.post("/api/events", json=event(event_type="complete"))

    assert response.status_code == 202
    message = json.loads(mock_kafka.send_and_wait.await_args.kwargs["value"])
    assert message["eventType"] == "Complete"


@pytest.mark.asyncio
async def test_unknown_event_type_is_rejected(client: AsyncClient, mock_kafka):
    response = await client.post("/api/events", json=event(event_type="Dance"))

    assert response.status_code == 422
    mock_kafka.send_and_wait.assert_not_called()


@pytest.mark.asyncio
async def test_publish_failure_is_service_unavailable(client: AsyncClient, mock_kafka):
    mock_kafka.send_and_wait.side_effect = KafkaError()

    response = await client.post("/api/events", json=event())

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_missing_producer_is_service_unavailable(client: AsyncClient):
    app.dependency_overrides[get_kafka_producer] = lambda: None

    response = await client.post("/api/events", json=event())

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_batch_reports_partial_failures(client: AsyncClient, mock_kafka):
    mock_kafka.send_and_wait.side_effect = [None, KafkaError(), None]

    response = await client.post("/api/events/batch", json={"events": [event("u1"), event("u2"), event("u3")]})

    assert response.status_code == 202
    assert response.json() == {"status": "accepted", "published": 2, "failed": 1}
    keys = [c.kwargs["key"] for c in mock_kafka.send_and_wait.await_args_list]
    assert keys == [b"u1", b"u2", b"u3"]


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 101])
async def test_batch_size_is_bounded(client: AsyncClient, mock_kafka, count):
    response = await client.post("/api/events/batch", json={"events": [event() for _ in range(count)]})

    assert response.status_code == 422
    mock_kafka.send_and_wait.assert_not_called()
