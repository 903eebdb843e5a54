import os
import tempfile

# Настройки читаются при импорте app.*, поэтому окружение задаём до импортов
_TMP_DIR = tempfile.mkdtemp(prefix="floor-admin-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/default.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.api.deps import get_db_session
from app.core.config import Settings
from app.db.base import Base
from app.main import create_app
from app.services.floor_store import RelationalFloorStore
from app.services.object_storage import InMemoryStorageClient

S3_SETTINGS = {
    "S3_ACCESS_KEY": "AKIATEST",
    "S3_SECRET_KEY": "secret",
    "S3_REGION": "us-east-2",
    "S3_BUCKET": "wayfinder-floors",
}


def make_settings(s3: bool = False, **overrides) -> Settings:
    values = {
        "DATABASE_URL": os.environ["DATABASE_URL"],
        "JWT_SECRET": os.environ["JWT_SECRET"],
        "LOG_DIR": os.environ["LOG_DIR"],
        "S3_ACCESS_KEY": None,
        "S3_SECRET_KEY": None,
        "S3_REGION": None,
        "S3_BUCKET": None,
    }
    if s3:
        values.update(S3_SETTINGS)
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def engine(tmp_path):
    # NullPool: соединения aiosqlite не переживают event loop отдельного теста
    return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'floors.db'}", poolclass=NullPool)


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def create_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def relational_store(create_tables, session_factory):
    return RelationalFloorStore(session_factory)


@pytest.fixture
def memory_storage():
    return InMemoryStorageClient(bucket=S3_SETTINGS["S3_BUCKET"], region=S3_SETTINGS["S3_REGION"])


@pytest.fixture
def make_client(engine, session_factory):
    """Фабрика TestClient: make_client(storage=..., s3=True, MAX_UPLOAD_BYTES=...)."""
    clients = []

    def _make(storage=None, s3=False, **overrides):
        app = create_app(
            settings=make_settings(s3=s3, **overrides),
            storage=storage,
            session_factory=session_factory,
            engine=engine,
        )

        async def _session():
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_db_session] = _session
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def db_client(make_client):
    return make_client()


@pytest.fixture
def manifest_client(make_client, memory_storage):
    return make_client(storage=memory_storage, s3=True)
