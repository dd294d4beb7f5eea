import glob
import io
import logging
import os
import tempfile
from unittest import TestCase
from unittest.mock import patch

from athenacli.cli import main as cli
from athenacli.exceptions.errors import ConfigError
from athenacli.logging.logger import (
    SizeTimestampRotatingFileHandler,
    get_logger,
    init_logging,
    level_for_verbosity,
    parse_log_level,
)


class LoggerTests(TestCase):
    def test_level_for_verbosity(self):
        self.assertEqual("INFO", level_for_verbosity(0))
        self.assertEqual("DEBUG", level_for_verbosity(1))
        self.assertEqual("DEBUG", level_for_verbosity(3))

    def test_loggers_are_namespaced(self):
        self.assertEqual("athenacli.db.athena", get_logger("db.athena").name)

    def test_rollover_renames_with_timestamp_and_keeps_backups(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "athenacli.log")
            handler = SizeTimestampRotatingFileHandler(path, maxBytes=64, backupCount=1, encoding="utf-8")
            try:
                for i in range(6):
                    handler.emit(logging.makeLogRecord({"msg": f"line {i} " + "x" * 40}))
            finally:
                handler.close()

            rotated = glob.glob(os.path.join(tmp, "athenacli_*.log"))
            self.assertEqual(1, len(rotated))
            self.assertTrue(os.path.exists(path))


class LogLevelEnvTests(TestCase):
    def test_plain_level_names(self):
        self.assertEqual("DEBUG", parse_log_level("debug"))
        self.assertEqual("WARNING", parse_log_level(" Warning "))

    def test_filter_directives(self):
        self.assertEqual("DEBUG", parse_log_level("athenacli=debug"))
        self.assertEqual("ERROR", parse_log_level("botocore=debug,athenacli=error"))

    def test_trace_means_debug(self):
        self.assertEqual("DEBUG", parse_log_level("trace"))
        self.assertEqual("DEBUG", parse_log_level("athenacli=trace"))

    def test_invalid_values_are_rejected(self):
        for value in ("loud", "athenacli=", "botocore=debug", "athenacli=verbose", "loud,debug"):
            with self.assertRaises(ConfigError) as ctx:
                parse_log_level(value)
            self.assertIn("ATHENACLI_LOG contained invalid format", str(ctx.exception))

    @patch("athenacli.logging.logger.logging.basicConfig")
    @patch("athenacli.logging.logger._INITIALIZED", False)
    def test_init_logging_rejects_invalid_env_before_configuring(self, basic_config):
        with patch.dict(os.environ, {"ATHENACLI_LOG": "loud"}):
            with self.assertRaises(ConfigError):
                init_logging("INFO")
        basic_config.assert_not_called()

    @patch("athenacli.logging.logger.logging.basicConfig")
    @patch("athenacli.logging.logger._INITIALIZED", False)
    def test_cli_reports_invalid_env_as_fatal_error(self, basic_config):
        stderr = io.StringIO()
        env = {"ATHENACLI_LOG": "loud"}
        with patch.dict(os.environ, env, clear=True), patch("sys.stderr", stderr):
            code = cli.main(["-r", "us-east-1", "-d", "analytics", "-b", "s3://results/", "-c", "SELECT 1"])

        self.assertEqual(1, code)
        self.assertIn("FATAL ERROR: ATHENACLI_LOG contained invalid format", stderr.getvalue())
