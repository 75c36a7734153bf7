"""
Command Dispatcher - the single consumer of the message store
"""

import asyncio
import logging
from typing import Awaitable, Callable, Mapping, Optional

from elkarbackup.config_module import TICK_COMMAND_TARGET
from elkarbackup.exceptions import InvalidCommandError, StorageError
from elkarbackup.models.commands import Command, CommandName, decode_command
from elkarbackup.models.database import Message
from elkarbackup.models.results import DispatcherState, DispatchReport
from elkarbackup.protocols.message_store_protocol import MessageStoreProtocol
from elkarbackup.utils.log_records import DatabaseLogHandler

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Command], Awaitable[None]]

LOG_SOURCE = "TickCommand"


class CommandDispatcher:
    """
    Polls the message store and runs the handler named by each message.

    A message is removed only after its handler returns. Messages that fail
    to decode or whose handler raises are left in the store and logged with
    their payload; processing moves on to the next message either way.
    """

    def __init__(
        self,
        message_store: MessageStoreProtocol,
        handlers: Mapping[CommandName, CommandHandler],
        target: str = TICK_COMMAND_TARGET,
        log_handler: Optional[DatabaseLogHandler] = None,
    ) -> None:
        self.message_store = message_store
        self.handlers = dict(handlers)
        self.target = target
        self.log_handler = log_handler
        self.state = DispatcherState.IDLE
        self._lock = asyncio.Lock()

    async def dispatch_pending(self) -> DispatchReport:
        """
        Run one dispatch cycle over every pending message.

        Raises:
            StorageError: If the pending messages cannot be read
        """
        if self._lock.locked():
            logger.info("Dispatcher is busy, skipping this tick")
            return DispatchReport(skipped=True)

        async with self._lock:
            report = DispatchReport()
            try:
                self.state = DispatcherState.FETCHING
                messages = await self.message_store.fetch_all(self.target)

                self.state = DispatcherState.EXECUTING
                for message in messages:
                    await self._dispatch_message(message, report)
            finally:
                self.state = DispatcherState.IDLE
                await self._flush_log_records()

            if report.total:
                logger.info(
                    f"Dispatch cycle: {len(report.processed)} processed, "
                    f"{len(report.failed)} failed, {len(report.rejected)} rejected"
                )
            return report

    async def _dispatch_message(self, message: Message, report: DispatchReport) -> None:
        extra = {"source": LOG_SOURCE}

        try:
            command = decode_command(message.payload)
        except InvalidCommandError as e:
            logger.error(
                f"Rejected message {message.id} from {message.source}: {e}. "
                f"Payload: {message.payload}",
                extra=extra,
            )
            report.rejected.append(message.id)
            return
        except Exception as e:
            logger.error(
                f"Rejected message {message.id} from {message.source}, "
                f"payload could not be decoded: {e!r}",
                extra=extra,
            )
            report.rejected.append(message.id)
            return

        name = CommandName(command.command)
        handler = self.handlers.get(name)
        if handler is None:
            logger.error(
                f"No handler registered for command {name.value} (message {message.id})",
                extra=extra,
            )
            report.rejected.append(message.id)
            return

        logger.info(f"Running command {name.value} from message {message.id}", extra=extra)
        try:
            await handler(command)
        except Exception as e:
            logger.error(
                f"Command {name.value} failed for message {message.id}, "
                f"it will be retried: {e}. Payload: {message.payload}",
                extra=extra,
            )
            report.failed.append(message.id)
            return

        try:
            await self.message_store.remove(message.id)
        except StorageError as e:
            logger.error(
                f"Command {name.value} succeeded but message {message.id} "
                f"could not be removed: {e}",
                extra=extra,
            )
            report.failed.append(message.id)
            return

        report.processed.append(message.id)

    async def _flush_log_records(self) -> None:
        if self.log_handler is None:
            return
        try:
            await self.log_handler.flush_records()
        except StorageError as e:
            logger.error(f"Failed to persist log records: {e}")
