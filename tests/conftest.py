"""
Test configuration and fixtures
"""

import os
import secrets
import tempfile
from datetime import timedelta
from typing import AsyncGenerator, Awaitable, Callable, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Keep the default data directory away from /app before the app is imported
if not os.getenv("ELKARBACKUP_DATA_DIR"):
    os.environ["ELKARBACKUP_DATA_DIR"] = tempfile.mkdtemp(prefix="elkarbackup-tests-")

from elkarbackup.dependencies import (  # noqa: E402
    get_job_queue,
    get_message_store,
    get_parameter_store,
)
from elkarbackup.main import app  # noqa: E402
from elkarbackup.models.database import (  # noqa: E402
    Base,
    BackupLocation,
    Client,
    Job,
    User,
    UserSession,
    get_db,
)
from elkarbackup.services.jobs.job_queue import JobQueue  # noqa: E402
from elkarbackup.services.messages.message_store import MessageStore  # noqa: E402
from elkarbackup.services.parameters.parameter_store import (  # noqa: E402
    ParameterStore,
)
from elkarbackup.utils.datetime_utils import now_utc  # noqa: E402


@pytest_asyncio.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def test_db(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as db:
        yield db


@pytest.fixture
def message_store(session_maker: async_sessionmaker[AsyncSession]) -> MessageStore:
    return MessageStore(session_maker)


@pytest.fixture
def job_queue(session_maker: async_sessionmaker[AsyncSession]) -> JobQueue:
    return JobQueue(session_maker)


@pytest.fixture
def parameter_store(tmp_path) -> ParameterStore:
    return ParameterStore(str(tmp_path / "parameters.json"))


@pytest_asyncio.fixture
async def async_client(
    session_maker: async_sessionmaker[AsyncSession],
    message_store: MessageStore,
    job_queue: JobQueue,
    parameter_store: ParameterStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client wired to the test database. The app lifespan is not run."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_message_store] = lambda: message_store
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    app.dependency_overrides[get_parameter_store] = lambda: parameter_store

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://testserver"
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(
    test_db: AsyncSession,
) -> Callable[..., Awaitable[User]]:
    async def _make_user(
        username: str = "user", is_admin: bool = False, is_active: bool = True
    ) -> User:
        user = User(username=username, is_admin=is_admin, is_active=is_active)
        test_db.add(user)
        await test_db.commit()
        await test_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_client(
    test_db: AsyncSession,
) -> Callable[..., Awaitable[Client]]:
    async def _make_client(
        name: str = "client",
        owner: Optional[User] = None,
        url: str = "root@client.example.com",
        ssh_args: Optional[str] = None,
    ) -> Client:
        client = Client(
            name=name,
            url=url,
            ssh_args=ssh_args,
            owner_id=owner.id if owner is not None else None,
        )
        test_db.add(client)
        await test_db.commit()
        await test_db.refresh(client)
        return client

    return _make_client


@pytest.fixture
def make_job(
    test_db: AsyncSession,
) -> Callable[..., Awaitable[Job]]:
    async def _make_job(
        client: Client,
        name: str = "job",
        token: Optional[str] = None,
        priority: Optional[int] = None,
    ) -> Job:
        job = Job(client_id=client.id, name=name, path="/etc", token=token)
        if priority is not None:
            job.priority = priority
        test_db.add(job)
        await test_db.commit()
        await test_db.refresh(job)
        return job

    return _make_job


@pytest.fixture
def make_location(
    test_db: AsyncSession,
) -> Callable[..., Awaitable[BackupLocation]]:
    async def _make_location(
        name: str = "default", directory: str = "/var/spool/elkarbackup/backups"
    ) -> BackupLocation:
        location = BackupLocation(name=name, directory=directory)
        test_db.add(location)
        await test_db.commit()
        await test_db.refresh(location)
        return location

    return _make_location


@pytest.fixture
def login(
    test_db: AsyncSession,
) -> Callable[[AsyncClient, User], Awaitable[str]]:
    """Create a session for ``user`` and attach its cookie to the client."""

    async def _login(client: AsyncClient, user: User) -> str:
        token = secrets.token_urlsafe(32)
        test_db.add(
            UserSession(
                user_id=user.id,
                session_token=token,
                expires_at=now_utc() + timedelta(hours=1),
            )
        )
        await test_db.commit()
        client.cookies.set("auth_token", token)
        return token

    return _login
