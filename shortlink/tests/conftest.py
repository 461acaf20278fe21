import itertools
import random

import pytest
from fastapi.testclient import TestClient

from shortlink.api.dependencies import get_url_service
from shortlink.db.database import create_db_engine, migrate
from shortlink.main import app
from shortlink.services.cipher import CipherService
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.shortener import URLService
from shortlink.storage.memory import InMemoryStorage
from shortlink.storage.snapshot import FileSnapshotStorage
from shortlink.storage.sql import SQLStorage


TEST_KEY = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def cipher():
    return CipherService(TEST_KEY)


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "urls.json"


@pytest.fixture
def snapshot_storage(snapshot_path):
    storage = FileSnapshotStorage(snapshot_path)
    yield storage
    storage.close()


@pytest.fixture
def sql_engine(tmp_path):
    """File-backed SQLite so concurrent sessions get their own connections."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'urls.db'}")
    migrate(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_storage(sql_engine):
    return SQLStorage(sql_engine)


@pytest.fixture(params=["memory", "file", "sql"])
def storage(request):
    """Runs the test once per storage backend."""
    return request.getfixturevalue(f"{'snapshot' if request.param == 'file' else request.param}_storage")


@pytest.fixture
def url_service(storage, cipher):
    return URLService(storage, cipher, code_generator=CodeGenerator(storage))


@pytest.fixture
def memory_service(memory_storage, cipher):
    return URLService(memory_storage, cipher)


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def client(memory_service):
    """Creates a test client with overridden service dependency."""
    app.dependency_overrides[get_url_service] = lambda: memory_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_urls():
    """Provides sample URLs for testing."""
    return [
        "https://example.com/test1",
        "https://google.com/search?q=test",
        "https://github.com/user/repo",
        "http://localhost:8080/path?with=query&and=more#fragment",
    ]


class StubRedis:
    """Just enough of redis.Redis for the redirect cache."""

    def __init__(self, fail_with=None):
        self.data = {}
        self.fail_with = fail_with
        self.closed = False

    def get(self, key):
        if self.fail_with:
            raise self.fail_with
        return self.data.get(key)

    def setex(self, key, ttl, value):
        if self.fail_with:
            raise self.fail_with
        self.data[key] = value.encode() if isinstance(value, str) else value

    def delete(self, key):
        if self.fail_with:
            raise self.fail_with
        self.data.pop(key, None)

    def close(self):
        self.closed = True


@pytest.fixture
def stub_redis():
    return StubRedis()


class ScriptedRng:
    """Returns the characters of ``codes`` in order, cycling forever."""

    def __init__(self, *codes):
        self._chars = itertools.cycle("".join(codes))

    def choice(self, seq):
        return next(self._chars)
