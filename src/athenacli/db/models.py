from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from athenacli.db.utils import format_bytes, format_duration
from athenacli.logging.logger import get_logger

log = get_logger("db.models")


class ExecutionState(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def rank(self) -> int:
        return _RANK[self]


_TERMINAL = {ExecutionState.SUCCEEDED, ExecutionState.FAILED, ExecutionState.CANCELLED}
_RANK = {
    ExecutionState.QUEUED: 0,
    ExecutionState.RUNNING: 1,
    ExecutionState.SUCCEEDED: 2,
    ExecutionState.FAILED: 2,
    ExecutionState.CANCELLED: 2,
}


@dataclass(frozen=True)
class ExecutionStats:
    data_scanned_bytes: int = 0
    engine_execution_time_ms: int = 0
    queue_time_ms: int = 0
    total_execution_time_ms: int = 0

    def data_scanned(self) -> str:
        return format_bytes(self.data_scanned_bytes)

    def total_time(self) -> str:
        return format_duration(self.total_execution_time_ms)


@dataclass
class Execution:
    """One remote run of a single statement.

    Only the status poller mutates an Execution, and only through advance().
    """

    execution_id: str
    state: ExecutionState = ExecutionState.QUEUED
    error_message: Optional[str] = None
    result_location: Optional[str] = None
    statement_type: Optional[str] = None
    stats: ExecutionStats = field(default_factory=ExecutionStats)

    def advance(self, new_state: ExecutionState) -> bool:
        """Move forward to new_state. Returns False when the report was ignored.

        Athena occasionally reports an earlier state again (e.g. RUNNING after
        QUEUED -> RUNNING -> QUEUED on an internal retry); those reports are
        dropped so the local state only ever moves forward.
        """
        if self.state.is_terminal:
            if new_state == self.state:
                return False
            raise ValueError(
                f"execution {self.execution_id} is already {self.state.value}; cannot move to {new_state.value}"
            )
        if new_state.rank < self.state.rank:
            log.debug(
                "Ignoring backwards state report",
                extra={"execution_id": self.execution_id, "from": self.state.value, "to": new_state.value},
            )
            return False
        self.state = new_state
        return True


@dataclass(frozen=True)
class ResultSet:
    execution_id: str
    columns: Tuple[str, ...]
    column_types: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]
    stats: ExecutionStats = field(default_factory=ExecutionStats)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def as_lists(self) -> List[List[str]]:
        return [list(r) for r in self.rows]
