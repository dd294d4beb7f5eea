from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, TextIO
import sys
import pandas as pd

from athenacli.db.models import ResultSet
from athenacli.exceptions.errors import ExportError
from athenacli.logging.logger import get_logger

log = get_logger("export.exporter")

_DELIMITERS = {"csv": ",", "tsv": "\t"}

def to_dataframe(result: ResultSet) -> pd.DataFrame:
    """Every value stays a string; no type coercion."""
    return pd.DataFrame(result.as_lists(), columns=list(result.columns), dtype=str)

_CONTROL_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t"})

def _cell(value: str) -> str:
    # Display only; delimited output and exports keep the raw value.
    return value.translate(_CONTROL_ESCAPES)

def render_table(columns: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Left-aligned ASCII box table with a header row."""
    columns = [_cell(c) for c in columns]
    rows = [[_cell(v) for v in r] for r in rows]
    widths = [len(c) for c in columns]
    for row in rows:
        for i, v in enumerate(row):
            widths[i] = max(widths[i], len(v))

    border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def line(values: Sequence[str]) -> str:
        cells = [f" {v.ljust(widths[i])} " for i, v in enumerate(values)]
        return "|" + "|".join(cells) + "|"

    out: List[str] = [border, line(columns), border]
    out.extend(line(r) for r in rows)
    out.append(border)
    return "\n".join(out) + "\n"

def render_delimited(result: ResultSet, output_format: str) -> str:
    if not result.columns:
        return ""
    sep = _DELIMITERS[output_format]
    return to_dataframe(result).to_csv(sep=sep, index=False, lineterminator="\n")

def export_result(result: ResultSet, out_dir: str) -> str:
    Path(out_dir).mkdir(parents=True, exist_ok=True)
    csv_path = str(Path(out_dir) / f"{result.execution_id}.csv")
    try:
        to_dataframe(result).to_csv(csv_path, index=False, encoding="utf-8")
    except OSError as e:
        log.exception("CSV export failed")
        raise ExportError(f"CSV export to {csv_path} failed: {e}") from e
    log.info("Exported CSV", extra={"path": csv_path, "rows": result.row_count})
    return csv_path

@dataclass
class ResultWriter:
    output_format: str = "table"
    output_dir: Optional[str] = None
    stream: Optional[TextIO] = None

    def write(self, result: ResultSet) -> Optional[str]:
        """Render one result to the stream; returns the export path when exporting."""
        out = self.stream if self.stream is not None else sys.stdout

        if self.output_format == "table":
            if result.row_count and result.columns:
                out.write(render_table(result.columns, result.rows))
        else:
            out.write(render_delimited(result, self.output_format))
        out.flush()

        if self.output_dir:
            return export_result(result, self.output_dir)
        return None
