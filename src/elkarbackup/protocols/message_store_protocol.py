"""
Protocol for the durable command mailbox
"""

from typing import Dict, List, Optional, Protocol, Union

from elkarbackup.models.commands import BaseCommand
from elkarbackup.models.database import Message


class MessageStoreProtocol(Protocol):
    """Durable FIFO of commands handed from request handlers to the worker"""

    async def enqueue(
        self,
        source: str,
        target: str,
        payload: Union[BaseCommand, Dict[str, object], str],
    ) -> Message:
        """Persist a new message"""
        ...

    async def fetch_all(self, target: Optional[str] = None) -> List[Message]:
        """Return pending messages in insertion order"""
        ...

    async def fetch_next(self, target: Optional[str] = None) -> Optional[Message]:
        """Return the oldest pending message, if any"""
        ...

    async def remove(self, message_id: int) -> bool:
        """Delete a processed message"""
        ...
