from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple
import random
import time
import uuid

from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, PartialCredentialsError

from athenacli.config.settings import RunConfig
from athenacli.db.credentials import resolve_session
from athenacli.db.models import Execution, ExecutionState, ExecutionStats, ResultSet
from athenacli.exceptions.errors import (
    AuthError,
    ConfigError,
    ExecutionFailed,
    ExecutionTimeoutError,
    FetchError,
    PollError,
    SubmissionError,
)
from athenacli.logging.logger import get_logger


log = get_logger("db.athena")

# GetQueryResults refuses anything larger.
PAGE_SIZE = 1000

_AUTH_ERROR_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "ExpiredToken",
    "ExpiredTokenException",
    "InvalidClientTokenId",
    "InvalidSignatureException",
    "UnrecognizedClientException",
}


def _sleep_backoff(attempt: int) -> None:
    base = 0.25 * (2 ** (attempt - 1))
    jitter = random.uniform(0.0, 0.1)
    time.sleep(min(5.0, base + jitter))


def _client_error_parts(e: ClientError) -> Tuple[str, str]:
    err = (getattr(e, "response", None) or {}).get("Error", {}) or {}
    return str(err.get("Code", "")), str(err.get("Message", "") or e)


def _stats_from(qe: Dict[str, Any]) -> ExecutionStats:
    st = qe.get("Statistics") or {}
    return ExecutionStats(
        data_scanned_bytes=int(st.get("DataScannedInBytes") or 0),
        engine_execution_time_ms=int(st.get("EngineExecutionTimeInMillis") or 0),
        queue_time_ms=int(st.get("QueryQueueTimeInMillis") or 0),
        total_execution_time_ms=int(st.get("TotalExecutionTimeInMillis") or 0),
    )


@dataclass
class AthenaExecutor:
    """Submit, poll and fetch a single Athena query at a time.

    `client` may be injected (tests do); otherwise one is built from the
    botocore credential chain on first use.
    """

    config: RunConfig
    client: Any = None

    def _athena(self) -> Any:
        if self.client is None:
            session = resolve_session(self.config.region)
            try:
                self.client = session.client(
                    "athena",
                    config=BotoConfig(retries={"max_attempts": 3, "mode": "standard"}, user_agent_extra="athenacli"),
                )
            except BotoCoreError as e:
                raise ConfigError(f"Cannot create Athena client for region {self.config.region!r}: {e}") from e
        return self.client

    # -----------------------------
    # Submit
    # -----------------------------
    def submit(self, statement: str) -> str:
        """Start one query execution and return its QueryExecutionId."""
        if not (statement or "").strip():
            raise SubmissionError("Refusing to submit an empty statement")

        c = self.config
        start_args: Dict[str, Any] = {
            "QueryString": statement,
            "ClientRequestToken": str(uuid.uuid4()),
            "QueryExecutionContext": {"Database": c.database, "Catalog": c.catalog},
            "ResultConfiguration": {"OutputLocation": c.result_bucket},
        }
        if c.workgroup:
            start_args["WorkGroup"] = c.workgroup

        log.info(
            "Athena start_query_execution",
            extra={
                "database": c.database,
                "workgroup": c.workgroup,
                "output": c.result_bucket,
                "sql_head": statement[:300],
            },
        )

        client = self._athena()
        try:
            resp = client.start_query_execution(**start_args)
        except (NoCredentialsError, PartialCredentialsError) as e:
            raise AuthError(f"AWS credentials unavailable: {e}") from e
        except ClientError as e:
            code, message = _client_error_parts(e)
            if code in _AUTH_ERROR_CODES:
                raise AuthError(f"{code}: {message}") from e
            raise SubmissionError(f"{code}: {message}" if code else message) from e
        except BotoCoreError as e:
            raise SubmissionError(f"Error starting query execution: {e}") from e

        qid = (resp or {}).get("QueryExecutionId")
        if not qid:
            raise SubmissionError("Athena did not return a QueryExecutionId")
        log.debug("Query submitted", extra={"execution_id": qid})
        return qid

    # -----------------------------
    # Poll
    # -----------------------------
    def await_completion(self, execution_id: str, deadline: Optional[float] = None) -> Execution:
        """Block until the execution is terminal.

        Returns the Execution on SUCCEEDED; raises ExecutionFailed on FAILED or
        CANCELLED. `deadline` is a time.monotonic() value; when omitted and
        config.timeout is set, the deadline starts now.
        """
        if deadline is None and self.config.timeout:
            deadline = time.monotonic() + self.config.timeout

        client = self._athena()
        execution = Execution(execution_id=execution_id)
        started = time.monotonic()
        failures = 0

        while True:
            if deadline is not None and time.monotonic() >= deadline:
                raise ExecutionTimeoutError(
                    f"Query {execution_id} still {execution.state.value} after {time.monotonic() - started:.1f}s"
                )

            try:
                resp = client.get_query_execution(QueryExecutionId=execution_id)
            except (NoCredentialsError, PartialCredentialsError) as e:
                raise AuthError(f"AWS credentials unavailable: {e}") from e
            except (ClientError, BotoCoreError) as e:
                if isinstance(e, ClientError):
                    code, message = _client_error_parts(e)
                    if code in _AUTH_ERROR_CODES:
                        raise AuthError(f"{code}: {message}") from e
                failures += 1
                if failures > self.config.max_poll_retries:
                    log.error("Error getting query execution status", extra={"execution_id": execution_id, "error": str(e)})
                    raise PollError(
                        f"Giving up on status of {execution_id} after {failures} failed attempts: {e}"
                    ) from e
                log.warning(
                    "Transient error polling query status",
                    extra={"execution_id": execution_id, "attempt": failures, "error": str(e)},
                )
                _sleep_backoff(failures)
                continue
            failures = 0

            qe = (resp or {}).get("QueryExecution") or {}
            status = qe.get("Status") or {}
            raw_state = status.get("State")
            try:
                state = ExecutionState(raw_state)
            except ValueError as e:
                raise PollError(f"Unexpected state {raw_state!r} for query {execution_id}") from e

            execution.advance(state)
            execution.statement_type = qe.get("StatementType") or execution.statement_type
            execution.result_location = (qe.get("ResultConfiguration") or {}).get("OutputLocation") or execution.result_location
            execution.stats = _stats_from(qe)

            if execution.state == ExecutionState.SUCCEEDED:
                return execution

            if execution.state.is_terminal:
                reason = status.get("StateChangeReason") or (status.get("AthenaError") or {}).get("ErrorMessage")
                if not reason:
                    reason = "Query cancelled" if execution.state == ExecutionState.CANCELLED else "Query failed"
                execution.error_message = reason
                log.error(
                    "Query did not succeed",
                    extra={"execution_id": execution_id, "result": execution.state.value, "reason": reason},
                )
                raise ExecutionFailed(reason, state=execution.state.value, execution_id=execution_id)

            log.debug(
                "Query not finished",
                extra={
                    "execution_id": execution_id,
                    "state": execution.state.value,
                    "elapsed_s": round(time.monotonic() - started, 1),
                },
            )
            time.sleep(self.config.poll_interval)

    # -----------------------------
    # Fetch
    # -----------------------------
    def fetch(self, execution: Execution) -> ResultSet:
        """Read every result page for a SUCCEEDED execution.

        For DML the service repeats the column names as the first row of the
        first page; that row is dropped once. DDL/UTILITY results have no
        header row.
        """
        if execution.state != ExecutionState.SUCCEEDED:
            raise FetchError(f"Query {execution.execution_id} is {execution.state.value}; no results to fetch")

        client = self._athena()
        strip_header = (execution.statement_type or "DML").upper() == "DML"

        columns: List[str] = []
        column_types: List[str] = []
        rows: List[Tuple[str, ...]] = []
        seen_tokens: Set[str] = set()
        next_token: Optional[str] = None
        first = True

        while True:
            page_args: Dict[str, Any] = {"QueryExecutionId": execution.execution_id, "MaxResults": PAGE_SIZE}
            if next_token:
                page_args["NextToken"] = next_token
            try:
                r = client.get_query_results(**page_args) or {}
            except ClientError as e:
                code, message = _client_error_parts(e)
                raise FetchError(f"Error getting query results: {code}: {message}") from e
            except BotoCoreError as e:
                raise FetchError(f"Error getting query results: {e}") from e

            rs = r.get("ResultSet") or {}
            if first:
                info = (rs.get("ResultSetMetadata") or {}).get("ColumnInfo") or []
                columns = [str(c.get("Name", "")) for c in info]
                column_types = [str(c.get("Type", "")) for c in info]

            page_rows = [
                tuple(str(d.get("VarCharValue", "")) for d in (row.get("Data") or []))
                for row in (rs.get("Rows") or [])
            ]
            if first and strip_header and page_rows:
                page_rows = page_rows[1:]
            first = False

            for row in page_rows:
                if columns and len(row) != len(columns):
                    raise FetchError(
                        f"Row has {len(row)} values but {len(columns)} columns were declared "
                        f"(query {execution.execution_id})"
                    )
                rows.append(row)

            log.debug("Fetched result page", extra={"execution_id": execution.execution_id, "rows_read": len(rows)})

            token = r.get("NextToken")
            if not token:
                break
            if token in seen_tokens:
                raise FetchError(f"Pagination token repeated while reading results of {execution.execution_id}")
            seen_tokens.add(token)
            next_token = token

        return ResultSet(
            execution_id=execution.execution_id,
            columns=tuple(columns),
            column_types=tuple(column_types),
            rows=tuple(rows),
            stats=execution.stats,
        )

    # -----------------------------
    # Cancel
    # -----------------------------
    def cancel(self, execution_id: str) -> bool:
        """Best-effort StopQueryExecution. Returns True when the request was accepted."""
        try:
            self._athena().stop_query_execution(QueryExecutionId=execution_id)
        except (ClientError, BotoCoreError) as e:
            log.warning("Could not cancel query", extra={"execution_id": execution_id, "error": str(e)})
            return False
        log.info("Cancelled query", extra={"execution_id": execution_id})
        return True
