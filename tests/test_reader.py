import os
import tempfile
from unittest import TestCase

from athenacli.exceptions.errors import ConfigError, StatementSourceError
from athenacli.ingestion.reader import collect_statements, read_statement_file, split_statements


class SplitStatementsTests(TestCase):
    def test_splits_on_semicolons(self):
        self.assertEqual(
            ["SELECT 1", "SELECT 2"],
            split_statements("SELECT 1;\nSELECT 2;\n"),
        )

    def test_semicolon_inside_string_literal_does_not_split(self):
        self.assertEqual(
            ["SELECT 'a;b' AS v", "SELECT 2"],
            split_statements("SELECT 'a;b' AS v;\nSELECT 2"),
        )

    def test_empty_and_comment_only_segments_are_dropped(self):
        self.assertEqual(
            ["SELECT 1"],
            split_statements("SELECT 1;\n;\n-- nothing to run here\n"),
        )

    def test_blank_text_has_no_statements(self):
        self.assertEqual([], split_statements("  \n\n"))


class ReadStatementFileTests(TestCase):
    def setUp(self):
        self._dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self._dir.cleanup()

    def _write(self, name, text):
        path = os.path.join(self._dir.name, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_reads_statements_in_file_order(self):
        path = self._write("q.sql", "CREATE TABLE t (a int);\nINSERT INTO t VALUES (1);\nSELECT * FROM t;\n")

        self.assertEqual(
            ["CREATE TABLE t (a int)", "INSERT INTO t VALUES (1)", "SELECT * FROM t"],
            read_statement_file(path),
        )

    def test_missing_file(self):
        with self.assertRaises(StatementSourceError) as ctx:
            read_statement_file(os.path.join(self._dir.name, "missing.sql"))
        self.assertIn("does not exist", str(ctx.exception))

    def test_directory_is_rejected(self):
        with self.assertRaises(StatementSourceError):
            read_statement_file(self._dir.name)

    def test_commands_run_before_file_statements(self):
        path = self._write("q.sql", "SELECT 3;")

        statements = collect_statements(["SELECT 1", "SELECT 2"], path)

        self.assertEqual(["SELECT 1", "SELECT 2", "SELECT 3"], [s.sql for s in statements])
        self.assertEqual([1, 2, 3], [s.index for s in statements])

    def test_no_statements_is_a_config_error(self):
        with self.assertRaises(ConfigError):
            collect_statements([], None)

    def test_file_without_statements(self):
        path = self._write("empty.sql", "-- just a comment\n")

        with self.assertRaises(StatementSourceError):
            collect_statements(None, path)

    def test_empty_command_is_rejected(self):
        with self.assertRaises(StatementSourceError):
            collect_statements(["  "], None)
