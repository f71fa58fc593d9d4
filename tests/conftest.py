# tests/conftest.py
import pytest
import sys
import os
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

# Ajouter le répertoire racine au sys.path
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from musico.api.schemas.queue_schema import Queue, QueueTrack  # noqa: E402
from musico.api.services.queue_service import QueueService  # noqa: E402
from musico.api.services.redis_client import RedisClient  # noqa: E402
from musico.api_app import create_api  # noqa: E402


@pytest.fixture
def redis_store():
    """Contenu du faux Redis : clé -> valeur JSON."""
    return {}


@pytest.fixture
def mock_redis(redis_store):
    """Client Redis simulé, adossé à un dict, qui enregistre les TTL posés."""
    mock = MagicMock()
    mock.ttls = {}

    async def _get(key):
        return redis_store.get(key)

    async def _setex(key, ttl, value):
        redis_store[key] = value
        mock.ttls[key] = ttl
        return True

    async def _delete(*keys):
        return sum(1 for key in keys if redis_store.pop(key, None) is not None)

    mock.get = AsyncMock(side_effect=_get)
    mock.setex = AsyncMock(side_effect=_setex)
    mock.delete = AsyncMock(side_effect=_delete)
    mock.ping = AsyncMock(return_value=True)
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def redis_client(mock_redis):
    return RedisClient(redis_url="redis://test:6379/0", client=mock_redis)


@pytest.fixture
def queue_service(redis_client):
    return QueueService(redis_client, key_prefix="queue:", ttl_seconds=86400)


@pytest.fixture
def make_tracks():
    """Fabrique de références de pistes : make_tracks('a', 'b') -> [QueueTrack, QueueTrack]."""
    def _make_tracks(*track_ids):
        return [QueueTrack(id=track_id, title=f"Track {track_id}", artist_name="Test Artist")
                for track_id in track_ids]
    return _make_tracks


@pytest.fixture
def store_queue(redis_store):
    """Écrit directement une file dans le faux Redis."""
    def _store_queue(user_id, tracks, current=-1):
        queue = Queue(current=current, tracks=tracks)
        redis_store[f"queue:{user_id}"] = queue.model_dump_json(by_alias=True)
        return queue
    return _store_queue


@pytest.fixture
def client(redis_client):
    """Client de test FastAPI branché sur le faux Redis."""
    app = create_api(redis_client=redis_client)
    with TestClient(app) as test_client:
        yield test_client
