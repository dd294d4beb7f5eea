from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence
from pathlib import Path
import sqlparse

from athenacli.logging.logger import get_logger
from athenacli.exceptions.errors import StatementSourceError

log = get_logger("ingestion.reader")

@dataclass(frozen=True)
class Statement:
    index: int
    sql: str

    @property
    def head(self) -> str:
        first = self.sql.strip().splitlines()[0] if self.sql.strip() else ""
        return first[:80]

def split_statements(text: str) -> List[str]:
    """Split SQL text on ';' using sqlparse's tokenizer.

    Semicolons inside string literals, quoted identifiers and comments do not
    split. Comments are removed, segments left empty are dropped, and the
    trailing ';' is removed from each statement.
    """
    out: List[str] = []
    for raw in sqlparse.split(text or ""):
        body = sqlparse.format(raw, strip_comments=True).strip().rstrip(";").rstrip()
        if body:
            out.append(body)
    return out

def read_statement_file(file_path: str, encoding: str = "utf-8") -> List[str]:
    p = Path(file_path)
    if not p.exists():
        raise StatementSourceError(f"input file does not exist: {file_path}")
    if not p.is_file():
        raise StatementSourceError(f"input path is not a file: {file_path}")
    try:
        text = p.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise StatementSourceError(f"could not read {file_path}: {e}") from e

    statements = split_statements(text)
    log.debug("Read statement file", extra={"source_file": p.name, "statements": len(statements)})
    return statements

def collect_statements(commands: Optional[Sequence[str]] = None, file_path: Optional[str] = None) -> List[Statement]:
    """Gather statements in run order: every --command, then the file's statements."""
    sqls: List[str] = []
    for cmd in commands or []:
        if not (cmd or "").strip():
            raise StatementSourceError("--command was given an empty statement")
        sqls.append(cmd.strip())
    if file_path:
        sqls.extend(read_statement_file(file_path))

    if not sqls:
        if file_path:
            raise StatementSourceError(f"no SQL statements found in {file_path}")
        raise StatementSourceError("must specify at least one --command or a --file")

    return [Statement(index=i, sql=s) for i, s in enumerate(sqls, start=1)]
