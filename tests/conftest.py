import asyncio
import os
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.engine.base import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tests.helpers import FakeBlobStore

POSTGRES_IMAGE = "postgres:17-alpine"

MINIO_IMAGE = "minio/minio:RELEASE.2025-07-23T15-54-02Z"
MINIO_ROOT_USER = "minioadmin"
MINIO_ROOT_PASSWORD = "minioadmin"
MINIO_PORT = 9000
MINIO_BUCKET = "objectgate-test"


def _docker_available() -> bool:
    try:
        import docker

        docker.from_env().ping()
    except Exception:
        return False
    return True


def pytest_collection_modifyitems(config, items):
    if _docker_available():
        return
    skip_integration = pytest.mark.skip(reason="Docker is not available")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# --- SQLite (no Docker needed) -------------------------------------------------


@pytest.fixture
def sqlite_engine() -> Generator[Engine]:
    """Fresh in-memory database with the same tables, indexes and triggers as PostgreSQL."""
    from objectgate.db import Base
    from objectgate.models import File, User  # noqa: F401

    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Generator[Session]:
    with sessionmaker(bind=sqlite_engine)() as session:
        yield session


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def object_service(sqlite_session: Session, blob_store: FakeBlobStore):
    from objectgate.object_service import ObjectService
    from objectgate.repositories import FileRepository, UserRepository

    return ObjectService(UserRepository(sqlite_session), FileRepository(sqlite_session), blob_store)


@pytest.fixture
def api_client(sqlite_session: Session, blob_store: FakeBlobStore, monkeypatch) -> Generator[TestClient]:
    """FastAPI client wired to the SQLite session and the in-memory blob store."""
    from objectgate import main
    from objectgate.db import get_db
    from objectgate.dependencies import get_s3_client
    from objectgate.main import app

    # lifespan builds the S3 client and checks its bucket on startup
    monkeypatch.setattr(main, "AsyncS3Client", lambda: blob_store)

    def override_get_db():
        yield sqlite_session

    async def override_get_s3_client():
        yield blob_store

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_s3_client] = override_get_s3_client

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- Containers (Docker) -------------------------------------------------------


@pytest.fixture(scope="session")
def postgres_container():
    """PostgreSQL container shared by the whole test session."""
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(image=POSTGRES_IMAGE, driver="psycopg") as container:
        url = make_url(container.get_connection_url())
        os.environ.update(
            {
                "POSTGRES_DB": url.database or "",
                "POSTGRES_USER": url.username or "",
                "POSTGRES_PASSWORD": url.password or "",
                "POSTGRES_HOST": url.host or "",
                "POSTGRES_PORT": str(url.port or 5432),
            }
        )
        yield container


@pytest.fixture(scope="session")
def pg_engine(postgres_container) -> Generator[Engine]:
    from objectgate.db import Base, create_db_engine
    from objectgate.models import File, User  # noqa: F401

    engine = create_db_engine(postgres_container.get_connection_url())
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def pg_session(pg_engine: Engine) -> Generator[Session]:
    """Session isolated in an outer transaction that is rolled back after the test."""
    connection = pg_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="session")
def minio_container():
    """MinIO container with a versioned bucket.

    Runs on four drives: single-drive MinIO does not support bucket versioning.
    """
    from testcontainers.core.container import DockerContainer
    from testcontainers.core.waiting_utils import wait_for_logs

    from objectgate.config import S3Settings
    from objectgate.s3_service import AsyncS3Client

    container = (
        DockerContainer(MINIO_IMAGE)
        .with_env("MINIO_ROOT_USER", MINIO_ROOT_USER)
        .with_env("MINIO_ROOT_PASSWORD", MINIO_ROOT_PASSWORD)
        .with_exposed_ports(MINIO_PORT)
        .with_command("server /data{1...4} --console-address :9001")
    )

    with container as minio:
        wait_for_logs(minio, "API:", timeout=60)
        endpoint = f"{minio.get_container_host_ip()}:{minio.get_exposed_port(MINIO_PORT)}"
        os.environ.update(
            {
                "S3_ENDPOINT": endpoint,
                "S3_ACCESS_KEY": MINIO_ROOT_USER,
                "S3_SECRET_KEY": MINIO_ROOT_PASSWORD,
                "S3_BUCKET": MINIO_BUCKET,
            }
        )
        settings = S3Settings(endpoint=endpoint, access_key=MINIO_ROOT_USER, secret_key=MINIO_ROOT_PASSWORD, bucket=MINIO_BUCKET)
        asyncio.run(AsyncS3Client(settings).ensure_bucket())
        yield minio


@pytest.fixture
def client(pg_session: Session, minio_container) -> Generator[TestClient]:
    """FastAPI client against real PostgreSQL and MinIO."""
    from objectgate.db import get_db
    from objectgate.main import app

    def override_get_db():
        yield pg_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
