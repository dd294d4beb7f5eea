from __future__ import annotations

"""
athenacli
---------

Run one or more SQL statements against Amazon Athena and print the results.

Usage:
    athenacli -r eu-west-1 -d analytics -b s3://my-results/athena/ -c "SELECT 1"
    athenacli -d analytics -b s3://my-results/ -f queries.sql --format csv

Statements in a --file are separated by ';'. Every --command runs first, in the
order given, then the file's statements. Execution stops at the first failure.

Exit codes: 0 all statements succeeded, 1 an error occurred, 2 bad usage,
130 interrupted.
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from athenacli.config.settings import OUTPUT_FORMATS, RunConfig, load_run_config
from athenacli.db.athena import AthenaExecutor
from athenacli.exceptions.errors import AthenaCliError
from athenacli.export.exporter import ResultWriter
from athenacli.ingestion.reader import collect_statements
from athenacli.logging.logger import get_logger, init_logging, level_for_verbosity
from athenacli.runner.driver import StatementDriver

log = get_logger("cli.main")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="athenacli", description="Basic Athena CLI")
    parser.add_argument("-r", "--region", default=None, help="AWS region (defaults to AWS_REGION).")
    parser.add_argument("-d", "--database", default=None, help="Database name to connect to.")
    parser.add_argument(
        "-b", "--results", dest="result_bucket", default=None,
        help="S3 location for query results (eg s3://my-results).",
    )
    parser.add_argument("-w", "--workgroup", default=None, help="Athena workgroup to use.")
    parser.add_argument("--catalog", default=None, help="Data catalog (default AwsDataCatalog).")
    parser.add_argument(
        "-c", "--command", dest="commands", action="append", default=None,
        help="Run a single SQL statement; can be repeated.",
    )
    parser.add_argument("-f", "--file", dest="file", default=None, help="Execute the ';'-separated SQL statements in a file.")
    parser.add_argument("--format", dest="output_format", choices=OUTPUT_FORMATS, default=None, help="Output format (default table).")
    parser.add_argument("-o", "--output-dir", dest="output_dir", default=None, help="Also export every result as <execution id>.csv here.")
    parser.add_argument("--poll-interval", dest="poll_interval", type=float, default=None, help="Seconds between status checks (default 1).")
    parser.add_argument("--timeout", type=float, default=None, help="Give up on a statement after this many seconds.")
    parser.add_argument("--config", dest="config_path", default=None, help="Optional YAML config file (ATHENACLI_CONFIG).")
    parser.add_argument("--log-file", dest="log_file", default=None, help="Also write logs to this file.")
    parser.add_argument("-v", dest="verbose", action="count", default=0, help="Logging verbosity (repeat for more detail).")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    keys = (
        "region", "database", "result_bucket", "workgroup", "catalog", "output_format",
        "output_dir", "poll_interval", "timeout", "config_path", "log_file", "verbose",
    )
    return {k: getattr(args, k) for k in keys}


def _fatal(error: object) -> int:
    print(f"FATAL ERROR: {error}", file=sys.stderr)
    return EXIT_ERROR


def run(config: RunConfig, commands: Optional[List[str]], file_path: Optional[str], client: Any = None) -> int:
    statements = collect_statements(commands, file_path)

    log.debug(
        "executing queries",
        extra={
            "region": config.region,
            "database": config.database,
            "results_bucket": config.result_bucket,
            "workgroup": config.workgroup,
            "statements": len(statements),
        },
    )

    driver = StatementDriver(
        executor=AthenaExecutor(config=config, client=client),
        writer=ResultWriter(output_format=config.output_format, output_dir=config.output_dir),
    )
    summary = driver.run(statements)

    if summary.ok:
        log.debug(summary.describe())
        return EXIT_OK

    if summary.partial:
        print(
            f"PARTIAL SUCCESS: {summary.completed} of {summary.total} statement(s) completed before a failure",
            file=sys.stderr,
        )
    return _fatal(summary.describe())


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_run_config(_overrides(args))
        init_logging(level_for_verbosity(config.verbose), log_file=config.log_file, verbose=config.verbose)
    except AthenaCliError as e:
        return _fatal(e)

    try:
        return run(config, args.commands, args.file)
    except AthenaCliError as e:
        log.error("athenacli failed", extra={"error": str(e)})
        return _fatal(e)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
