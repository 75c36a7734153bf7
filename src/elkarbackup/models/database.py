from typing import AsyncGenerator

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base, relationship

from elkarbackup.config_module import DATABASE_URL
from elkarbackup.utils.datetime_utils import now_utc

# Job priority used when nothing else is configured
DEFAULT_JOB_PRIORITY = 2147483647

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_async_engine(DATABASE_URL, connect_args=connect_args)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=now_utc)

    sessions = relationship(
        "UserSession", back_populates="user", cascade="all, delete-orphan"
    )
    clients = relationship("Client", back_populates="owner")


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    session_token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=now_utc)

    user = relationship("User", back_populates="sessions")


class BackupLocation(Base):
    __tablename__ = "backup_locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    host = Column(String, nullable=True)
    directory = Column(String, nullable=False)
    max_parallel_jobs = Column(Integer, default=1, nullable=False)


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    url = Column(String, nullable=False, default="")  # user@host, empty for local
    ssh_args = Column(String, nullable=True)
    rsync_short_args = Column(String, nullable=True)
    rsync_long_args = Column(String, nullable=True)
    quota = Column(Integer, default=-1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    backup_location_id = Column(
        Integer, ForeignKey("backup_locations.id"), nullable=True
    )

    owner = relationship("User", back_populates="clients")
    backup_location = relationship("BackupLocation")
    jobs = relationship("Job", back_populates="client", cascade="all, delete-orphan")


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    path = Column(String, nullable=False)
    include = Column(Text, nullable=True)
    exclude = Column(Text, nullable=True)
    token = Column(String, nullable=True)  # Per-job secret for anonymous runs
    priority = Column(Integer, default=DEFAULT_JOB_PRIORITY, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    notifications_email = Column(String, nullable=True)
    min_notification_level = Column(Integer, default=400, nullable=False)

    client = relationship("Client", back_populates="jobs")
    queue_entries = relationship(
        "QueueEntry", back_populates="job", cascade="all, delete-orphan"
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    source = Column(String, nullable=False)
    target = Column(String, nullable=False, index=True)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=now_utc, nullable=False)


class QueueEntry(Base):
    __tablename__ = "queue"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    priority = Column(Integer, default=DEFAULT_JOB_PRIORITY, nullable=False)
    aborted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=now_utc, nullable=False)

    job = relationship("Job", back_populates="queue_entries")


class LogRecord(Base):
    __tablename__ = "log_records"

    id = Column(Integer, primary_key=True, index=True)
    channel = Column(String, nullable=False)
    created_at = Column(DateTime, default=now_utc, nullable=False, index=True)
    level = Column(Integer, nullable=False)
    level_name = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True, index=True)
    source = Column(String, nullable=True)
    user_id = Column(Integer, nullable=True)
    user_name = Column(String, nullable=True)
    log_file = Column(String, nullable=True)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as db:
        yield db
