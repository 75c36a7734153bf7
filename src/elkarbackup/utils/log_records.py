"""
Logging handler that stores log entries as LogRecord rows.

Log calls may carry ``extra={"link": ..., "source": ...}`` so the stored
entry can be tied back to the client, job or command it concerns. Entries
are buffered by ``emit`` and written by ``flush_records``, which the worker
awaits after every cycle; nothing reaches the database without it. The
buffer holds at most ``max_pending`` entries and drops the oldest ones
once full.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from elkarbackup.exceptions import StorageError
from elkarbackup.models.database import LogRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 10000


class DatabaseLogHandler(logging.Handler):
    def __init__(
        self,
        async_session_maker: async_sessionmaker[AsyncSession],
        level: int = logging.INFO,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        super().__init__(level)
        self.async_session_maker = async_session_maker
        self.max_pending = max_pending
        self._dropped = 0
        self._pending: List[Dict[str, object]] = []
        self._messages: List[Dict[str, object]] = []
        self._recording = False

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "channel": record.name,
                "created_at": datetime.fromtimestamp(
                    record.created, tz=timezone.utc
                ).replace(tzinfo=None),
                "level": record.levelno,
                "level_name": record.levelname,
                "message": record.getMessage(),
                "link": getattr(record, "link", None),
                "source": getattr(record, "source", None),
                "user_id": getattr(record, "user_id", None),
                "user_name": getattr(record, "user_name", None),
                "log_file": getattr(record, "logfile", None),
            }
        except Exception:
            self.handleError(record)
            return

        self.acquire()
        try:
            self._pending.append(entry)
            self._trim_pending()
            if self._recording:
                self._messages.append(entry)
        finally:
            self.release()

    def _trim_pending(self) -> None:
        # caller holds the handler lock
        excess = len(self._pending) - self.max_pending
        if excess > 0:
            del self._pending[:excess]
            self._dropped += excess

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def dropped_count(self) -> int:
        """Entries discarded since the last flush because the buffer was full"""
        return self._dropped

    async def flush_records(self) -> int:
        """
        Write buffered entries to the database.

        Returns:
            Number of rows written

        Raises:
            StorageError: If the write fails; the entries stay buffered,
                up to ``max_pending`` of them
        """
        self.acquire()
        try:
            dropped, self._dropped = self._dropped, 0
        finally:
            self.release()
        if dropped:
            logger.warning(f"Log buffer full, dropped {dropped} oldest log records")

        self.acquire()
        try:
            batch, self._pending = self._pending, []
        finally:
            self.release()

        if not batch:
            return 0

        try:
            async with self.async_session_maker() as db:
                db.add_all([LogRecord(**entry) for entry in batch])
                await db.commit()
        except SQLAlchemyError as e:
            self.acquire()
            try:
                self._pending = batch + self._pending
                self._trim_pending()
            finally:
                self.release()
            raise StorageError(f"Unable to store log records: {e}") from e

        return len(batch)

    def start_recording(self) -> None:
        self._recording = True

    def stop_recording(self) -> None:
        self._recording = False

    def clear_messages(self) -> None:
        self._messages = []

    def get_messages(self, link: Optional[str] = None) -> List[Dict[str, object]]:
        """Entries seen while recording, optionally only those for ``link``"""
        if link is None:
            return list(self._messages)
        return [m for m in self._messages if m["link"] == link]
