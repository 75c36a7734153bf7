"""
Result types returned by the queue, the dispatcher and the request-facing services.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class QueueOutcome(str, Enum):
    """Outcome of a job queue mutation. None of these are errors."""

    QUEUED = "queued"
    ALREADY_QUEUED = "already_queued"
    ABORTING = "aborting"
    ALREADY_ENDED = "already_ended"


class DispatcherState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EXECUTING = "executing"


@dataclass
class DispatchReport:
    """Summary of one dispatcher cycle"""

    processed: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    rejected: List[int] = field(default_factory=list)
    skipped: bool = False

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.failed) + len(self.rejected)


@dataclass
class JobRunReport:
    """Summary of one job queue runner cycle"""

    completed: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    aborted: List[int] = field(default_factory=list)
    discarded: List[int] = field(default_factory=list)
    skipped: bool = False


@dataclass
class ActionResult:
    """User-facing result of a request: success flag plus human text"""

    error: bool
    msg: str
    data: List[int] = field(default_factory=list)
    action: Optional[str] = None
    outcome: Optional[QueueOutcome] = None

    def to_dict(self) -> Dict[str, object]:
        body: Dict[str, object] = {"error": self.error, "msg": self.msg}
        if self.data:
            body["data"] = self.data
        if self.action:
            body["action"] = self.action
        if self.outcome:
            body["status"] = self.outcome.value
        return body
