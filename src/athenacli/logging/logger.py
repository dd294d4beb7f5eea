import logging
import os
import glob
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from athenacli.exceptions.errors import ConfigError

_INITIALIZED = False

# Third-party loggers that are only interesting at -vv.
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")
_LEVEL_NAMES = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class SizeTimestampRotatingFileHandler(RotatingFileHandler):
    """Rotate a single log file once it reaches maxBytes.

    - Current log always stays at the configured log_file path (e.g. logs/athenacli.log)
    - When rotation happens, the previous file is renamed with a timestamp, e.g.:
        logs/athenacli_20260124_153012.log
    - backupCount=0 keeps every rotated log; backupCount > 0 keeps the newest N.
    """

    def doRollover(self) -> None:
        if self.stream:
            try:
                self.stream.close()
            finally:
                self.stream = None

        base = self.baseFilename
        base_path = Path(base)
        log_dir = str(base_path.parent)
        stem = base_path.stem
        suffix = base_path.suffix or ".log"

        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        rotated = os.path.join(log_dir, f"{stem}_{ts}{suffix}")
        i = 1
        while os.path.exists(rotated):
            rotated = os.path.join(log_dir, f"{stem}_{ts}_{i}{suffix}")
            i += 1

        if os.path.exists(base):
            os.replace(base, rotated)

        if self.backupCount and self.backupCount > 0:
            pattern = os.path.join(log_dir, f"{stem}_*{suffix}")
            files = sorted(glob.glob(pattern), key=lambda p: os.path.getmtime(p), reverse=True)
            for f in files[self.backupCount:]:
                os.remove(f)

        if not self.delay:
            self.stream = self._open()


def level_for_verbosity(verbose: int) -> str:
    """Map the count of -v flags to a log level name."""
    if verbose <= 0:
        return "INFO"
    return "DEBUG"


def parse_log_level(value: str) -> str:
    """Read an ATHENACLI_LOG value: a level name, or `athenacli=<level>` directives.

    `trace` is accepted as DEBUG. Anything else raises ConfigError.
    """
    level = None
    for directive in (value or "").split(","):
        directive = directive.strip()
        if not directive:
            continue
        target, sep, name = directive.partition("=")
        if not sep:
            target, name = "athenacli", target
        if target.strip() != "athenacli":
            continue
        level = name.strip().upper()
        if level == "TRACE":
            level = "DEBUG"
        if level not in _LEVEL_NAMES:
            break

    if level not in _LEVEL_NAMES:
        raise ConfigError(f"ATHENACLI_LOG contained invalid format: {value!r}")
    return level


def init_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: int = 0,
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 0,             # 0 = keep all rotated logs
) -> None:
    """Configure root logging once per process.

    ATHENACLI_LOG (see parse_log_level) wins over `log_level`.
    """
    global _INITIALIZED
    if _INITIALIZED:
        return

    env_level = os.environ.get("ATHENACLI_LOG")
    if env_level:
        log_level = parse_log_level(env_level)
    level = getattr(logging, log_level.upper(), logging.INFO)
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            SizeTimestampRotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    logging.basicConfig(level=level, format=fmt, handlers=handlers)

    if verbose < 2:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"athenacli.{name}")
