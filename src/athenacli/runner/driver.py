from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from athenacli.db.athena import AthenaExecutor
from athenacli.exceptions.errors import AthenaCliError
from athenacli.export.exporter import ResultWriter
from athenacli.ingestion.reader import Statement
from athenacli.logging.logger import get_logger


log = get_logger("runner.driver")


class Phase(str, Enum):
    PENDING = "PENDING"
    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    FETCHING = "FETCHING"
    WRITING = "WRITING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class StatementOutcome:
    statement: Statement
    phase: Phase = Phase.PENDING
    failed_phase: Optional[Phase] = None
    execution_id: Optional[str] = None
    rows: int = 0
    export_path: Optional[str] = None
    error: Optional[AthenaCliError] = None


@dataclass
class RunSummary:
    total: int
    outcomes: List[StatementOutcome] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for o in self.outcomes if o.phase == Phase.DONE)

    @property
    def failure(self) -> Optional[StatementOutcome]:
        for o in self.outcomes:
            if o.phase == Phase.FAILED:
                return o
        return None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.completed == self.total

    @property
    def partial(self) -> bool:
        return self.failure is not None and self.completed > 0

    def describe(self) -> str:
        f = self.failure
        if f is None:
            return f"{self.completed} of {self.total} statement(s) succeeded"
        skipped = self.total - self.completed - 1
        where = f.failed_phase.value.lower() if f.failed_phase else "execution"
        msg = (
            f"statement {f.statement.index} of {self.total} failed during {where}: {f.error}; "
            f"{self.completed} completed, {skipped} not attempted"
        )
        if f.execution_id:
            msg += f" (query execution id {f.execution_id})"
        return msg


@dataclass
class StatementDriver:
    """Run statements one at a time: submit, poll, fetch, write.

    The first failure stops the run; later statements are never submitted.
    """

    executor: AthenaExecutor
    writer: ResultWriter

    def run(self, statements: Sequence[Statement]) -> RunSummary:
        summary = RunSummary(total=len(statements))
        for stmt in statements:
            outcome = StatementOutcome(statement=stmt)
            summary.outcomes.append(outcome)
            try:
                self._run_one(outcome)
            except AthenaCliError as e:
                outcome.failed_phase = outcome.phase
                outcome.phase = Phase.FAILED
                outcome.error = e
                log.error(
                    "error running query",
                    extra={
                        "statement_index": stmt.index,
                        "phase": outcome.failed_phase.value,
                        "execution_id": outcome.execution_id,
                        "error": str(e),
                    },
                )
                break
        return summary

    def _run_one(self, outcome: StatementOutcome) -> None:
        stmt = outcome.statement
        log.debug("Running statement", extra={"statement_index": stmt.index, "sql_head": stmt.head})

        outcome.phase = Phase.SUBMITTING
        outcome.execution_id = self.executor.submit(stmt.sql)

        outcome.phase = Phase.POLLING
        try:
            execution = self.executor.await_completion(outcome.execution_id)
        except KeyboardInterrupt:
            log.warning("Interrupted; cancelling query", extra={"execution_id": outcome.execution_id})
            self.executor.cancel(outcome.execution_id)
            raise

        outcome.phase = Phase.FETCHING
        result = self.executor.fetch(execution)
        outcome.rows = result.row_count
        log.info(
            "query complete: %d rows, %s scanned in %s",
            result.row_count,
            result.stats.data_scanned(),
            result.stats.total_time(),
            extra={
                "statement_index": stmt.index,
                "execution_id": result.execution_id,
                "rows": result.row_count,
                "data_scanned": result.stats.data_scanned(),
                "execution_time": result.stats.total_time(),
            },
        )

        outcome.phase = Phase.WRITING
        outcome.export_path = self.writer.write(result)

        outcome.phase = Phase.DONE
