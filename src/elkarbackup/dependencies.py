"""
FastAPI dependency providers for the application.
"""

import logging
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends

from elkarbackup.config_module import (
    ABORT_CHECK_INTERVAL,
    PARAMETERS_FILE,
    RUN_JOB_COMMAND,
    TICK_INTERVAL,
)
from elkarbackup.models.database import async_session_maker
from elkarbackup.protocols.command_protocols import CommandRunnerProtocol
from elkarbackup.services.authorization_service import AuthorizationService
from elkarbackup.services.command_execution.simple_command_runner import (
    SimpleCommandRunner,
)
from elkarbackup.services.dispatch.command_dispatcher import CommandDispatcher
from elkarbackup.services.dispatch.handlers import build_default_handlers
from elkarbackup.services.jobs.command_job_executor import CommandJobExecutor
from elkarbackup.services.jobs.job_queue import JobQueue
from elkarbackup.services.jobs.job_queue_runner import JobQueueRunner
from elkarbackup.services.jobs.job_queue_service import JobQueueService
from elkarbackup.services.messages.maintenance_service import MaintenanceService
from elkarbackup.services.messages.message_store import MessageStore
from elkarbackup.services.parameters.parameter_store import (
    Parameters,
    ParameterStore,
)
from elkarbackup.services.scheduling.tick_service import TickService
from elkarbackup.utils.log_records import DatabaseLogHandler

logger = logging.getLogger(__name__)


@lru_cache()
def get_message_store() -> MessageStore:
    """Application-scoped message store bound to the global session maker."""
    return MessageStore(async_session_maker)


@lru_cache()
def get_job_queue() -> JobQueue:
    return JobQueue(async_session_maker)


@lru_cache()
def get_authorization_service() -> AuthorizationService:
    return AuthorizationService()


@lru_cache()
def get_parameter_store() -> ParameterStore:
    return ParameterStore(PARAMETERS_FILE)


@lru_cache()
def get_command_runner() -> CommandRunnerProtocol:
    return SimpleCommandRunner()


@lru_cache()
def get_log_handler() -> DatabaseLogHandler:
    """Single handler instance, attached to the package logger at startup."""
    return DatabaseLogHandler(async_session_maker)


def _current_url_prefix(parameter_store: ParameterStore) -> str:
    """url_prefix for log links; an unreadable parameters file means no prefix"""
    try:
        return parameter_store.load().url_prefix
    except (OSError, ValueError) as e:
        logger.warning(f"Cannot read parameters, using default url prefix: {e}")
        return Parameters().url_prefix


def get_job_queue_service(
    job_queue: Annotated[JobQueue, Depends(get_job_queue)],
    authorization: Annotated[AuthorizationService, Depends(get_authorization_service)],
    parameter_store: Annotated[ParameterStore, Depends(get_parameter_store)],
) -> JobQueueService:
    """Request-scoped so a changed url_prefix is picked up immediately."""
    return JobQueueService(
        job_queue, authorization, url_prefix=_current_url_prefix(parameter_store)
    )


def get_maintenance_service(
    message_store: Annotated[MessageStore, Depends(get_message_store)],
    authorization: Annotated[AuthorizationService, Depends(get_authorization_service)],
    parameter_store: Annotated[ParameterStore, Depends(get_parameter_store)],
) -> MaintenanceService:
    return MaintenanceService(
        message_store, authorization, url_prefix=_current_url_prefix(parameter_store)
    )


@lru_cache()
def get_command_dispatcher() -> CommandDispatcher:
    parameter_store = get_parameter_store()
    handlers = build_default_handlers(get_command_runner(), parameter_store.load)
    return CommandDispatcher(
        get_message_store(), handlers, log_handler=get_log_handler()
    )


@lru_cache()
def get_job_queue_runner() -> Optional[JobQueueRunner]:
    """Runner for queued jobs, or None when no job command is configured."""
    if not RUN_JOB_COMMAND.strip():
        return None
    executor = CommandJobExecutor(RUN_JOB_COMMAND)
    return JobQueueRunner(
        get_job_queue(), executor, abort_check_interval=ABORT_CHECK_INTERVAL
    )


@lru_cache()
def get_tick_service() -> TickService:
    return TickService(
        get_command_dispatcher(),
        get_job_queue_runner(),
        get_parameter_store().load,
        interval_seconds=TICK_INTERVAL,
        log_handler=get_log_handler(),
    )


# Type aliases for dependency injection
JobQueueServiceDep = Annotated[JobQueueService, Depends(get_job_queue_service)]
MaintenanceServiceDep = Annotated[MaintenanceService, Depends(get_maintenance_service)]
ParameterStoreDep = Annotated[ParameterStore, Depends(get_parameter_store)]
AuthorizationServiceDep = Annotated[
    AuthorizationService, Depends(get_authorization_service)
]
