import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from tigertix.database.db import Base, make_engine, make_session_factory
from tigertix.main import app
from tigertix.services.inventory import InventoryStore, get_store
from tigertix.services.locks import LocalEventLocker, RedisEventLocker

# Import models so that they register with Base.metadata
from tigertix.models import events, purchases  # noqa: F401


@pytest.fixture
def database_url(tmp_path) -> str:
    # A file database, so every thread gets its own connection like in production
    return f"sqlite:///{tmp_path / 'tigertix.sqlite'}"


@pytest.fixture
def engine(database_url: str):
    engine: Engine = make_engine(database_url, busy_timeout=5)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine: Engine):
    db: Session = make_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def locker() -> LocalEventLocker:
    return LocalEventLocker()


@pytest.fixture
def store(engine: Engine, locker: LocalEventLocker):
    store = InventoryStore(engine, locker, transaction_timeout=5, lock_timeout=5)
    yield store
    store.close()


@pytest.fixture
def fake_redis():
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def redis_store(engine: Engine, fake_redis):
    store = InventoryStore(engine, RedisEventLocker(fake_redis, expiry=10), transaction_timeout=5, lock_timeout=5)
    yield store
    store.close()


@pytest.fixture
def client(store: InventoryStore):
    # no context manager: the lifespan would open the configured database
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
