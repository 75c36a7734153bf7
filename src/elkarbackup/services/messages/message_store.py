"""
Message Store - durable mailbox of commands for the background worker
"""

import logging
from typing import Dict, List, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from elkarbackup.exceptions import StorageError
from elkarbackup.models.commands import BaseCommand, payload_to_json
from elkarbackup.models.database import Message
from elkarbackup.protocols.message_store_protocol import MessageStoreProtocol
from elkarbackup.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


class MessageStore(MessageStoreProtocol):
    """
    Persists messages and hands them back in insertion order.

    Messages are only ever inserted and deleted. A message whose handler
    fails stays in the store, so delivery is at-least-once and handlers
    must be idempotent.
    """

    def __init__(self, async_session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.async_session_maker = async_session_maker

    async def enqueue(
        self,
        source: str,
        target: str,
        payload: Union[BaseCommand, Dict[str, object], str],
    ) -> Message:
        """Persist a new message addressed to ``target``"""
        message = Message(
            source=source,
            target=target,
            payload=payload_to_json(payload),
            created_at=now_utc(),
        )
        try:
            async with self.async_session_maker() as db:
                db.add(message)
                await db.commit()
                await db.refresh(message)
        except SQLAlchemyError as e:
            logger.error(f"Failed to enqueue message from {source} to {target}: {e}")
            raise StorageError(f"Unable to store message: {e}") from e

        logger.debug(f"Enqueued message {message.id} from {source} to {target}")
        return message

    async def fetch_all(self, target: Optional[str] = None) -> List[Message]:
        query = select(Message).order_by(Message.id.asc())
        if target is not None:
            query = query.where(Message.target == target)
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch messages: {e}")
            raise StorageError(f"Unable to read messages: {e}") from e

    async def fetch_next(self, target: Optional[str] = None) -> Optional[Message]:
        query = select(Message).order_by(Message.id.asc()).limit(1)
        if target is not None:
            query = query.where(Message.target == target)
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(query)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch next message: {e}")
            raise StorageError(f"Unable to read messages: {e}") from e

    async def remove(self, message_id: int) -> bool:
        """Delete a message. Returns False if it was already gone."""
        try:
            async with self.async_session_maker() as db:
                result = await db.execute(
                    delete(Message).where(Message.id == message_id)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove message {message_id}: {e}")
            raise StorageError(f"Unable to remove message {message_id}: {e}") from e

        removed = bool(result.rowcount)
        if not removed:
            logger.warning(f"Message {message_id} was already removed")
        return removed
