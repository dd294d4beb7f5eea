import io
import os
import tempfile
from unittest import TestCase

import pandas as pd

from athenacli.db.models import ResultSet
from athenacli.export.exporter import ResultWriter, render_delimited, render_table


def _result(rows, columns=("id", "name")):
    return ResultSet(
        execution_id="qid-1",
        columns=tuple(columns),
        column_types=tuple("varchar" for _ in columns),
        rows=tuple(tuple(r) for r in rows),
    )


class RenderTableTests(TestCase):
    def test_left_aligned_box_table(self):
        out = render_table(("id", "name"), [("1", "alice"), ("22", "bo")])

        self.assertEqual(
            "+----+-------+\n"
            "| id | name  |\n"
            "+----+-------+\n"
            "| 1  | alice |\n"
            "| 22 | bo    |\n"
            "+----+-------+\n",
            out,
        )

    def test_control_characters_are_escaped_for_display(self):
        out = render_table(("note",), [("x\ny",), ("a\tb",)])

        lines = out.splitlines()
        self.assertEqual(6, len(lines))
        self.assertEqual("| x\\ny |", lines[3])
        self.assertEqual("| a\\tb |", lines[4])
        self.assertTrue(all(len(line) == len(lines[0]) for line in lines))

    def test_delimited_output_keeps_raw_control_characters(self):
        result = _result([("1", "x\ny")])

        df = pd.read_csv(io.StringIO(render_delimited(result, "csv")), dtype=str, keep_default_na=False)
        self.assertEqual([["1", "x\ny"]], df.values.tolist())


class ResultWriterTests(TestCase):
    def test_table_output_preserves_row_order(self):
        stream = io.StringIO()
        ResultWriter(stream=stream).write(_result([("2", "b"), ("1", "a")]))

        lines = stream.getvalue().splitlines()
        self.assertEqual("| 2  | b    |", lines[3])
        self.assertEqual("| 1  | a    |", lines[4])

    def test_empty_table_prints_nothing(self):
        stream = io.StringIO()
        ResultWriter(stream=stream).write(_result([]))

        self.assertEqual("", stream.getvalue())

    def test_csv_output_has_header_even_when_empty(self):
        stream = io.StringIO()
        ResultWriter(output_format="csv", stream=stream).write(_result([]))

        self.assertEqual("id,name\n", stream.getvalue())

    def test_tsv_output(self):
        stream = io.StringIO()
        ResultWriter(output_format="tsv", stream=stream).write(_result([("1", "a b")]))

        self.assertEqual("id\tname\n1\ta b\n", stream.getvalue())

    def test_delimited_output_parses_back_to_same_values(self):
        rows = [
            ("1", "plain"),
            ("2", "comma, inside"),
            ("3", 'quote " inside'),
            ("4", ""),
            ("005", "1e3"),
        ]
        result = _result(rows)

        for fmt, sep in (("csv", ","), ("tsv", "\t")):
            text = render_delimited(result, fmt)
            df = pd.read_csv(io.StringIO(text), sep=sep, dtype=str, keep_default_na=False)
            self.assertEqual(list(result.columns), list(df.columns))
            self.assertEqual([list(r) for r in rows], df.values.tolist())

    def test_export_dir_writes_csv_named_after_execution(self):
        with tempfile.TemporaryDirectory() as tmp:
            out_dir = os.path.join(tmp, "exports")
            path = ResultWriter(output_dir=out_dir, stream=io.StringIO()).write(_result([("1", "a")]))

            self.assertEqual(os.path.join(out_dir, "qid-1.csv"), path)
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
            self.assertEqual([["1", "a"]], df.values.tolist())
