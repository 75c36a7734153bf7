from .command_protocols import CommandRunnerProtocol, CommandResult
from .message_store_protocol import MessageStoreProtocol
from .job_queue_protocol import JobQueueProtocol, JobExecutorProtocol

__all__ = [
    "CommandRunnerProtocol",
    "CommandResult",
    "MessageStoreProtocol",
    "JobQueueProtocol",
    "JobExecutorProtocol",
]
