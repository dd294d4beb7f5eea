from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import yaml
from dotenv import load_dotenv

from athenacli.db.utils import parse_s3_uri
from athenacli.exceptions.errors import ConfigError

load_dotenv()

OUTPUT_FORMATS = ("table", "csv", "tsv")
DEFAULT_CATALOG = "AwsDataCatalog"

def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)

def _first(*values: Any) -> Any:
    """Return the first value that is not None or an empty string."""
    for v in values:
        if v is not None and v != "":
            return v
    return None

def _as_float(key: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e

def _as_int(key: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e

@dataclass(frozen=True)
class RunConfig:
    region: str
    database: str
    result_bucket: str
    workgroup: Optional[str] = None
    catalog: str = DEFAULT_CATALOG

    verbose: int = 0
    log_file: Optional[str] = None

    # Status polling
    poll_interval: float = 1.0
    max_poll_retries: int = 5
    timeout: Optional[float] = None

    # Output
    output_format: str = "table"
    output_dir: Optional[str] = None

def _read_yaml(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config not found: {p}")
    try:
        cfg = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {p}: {e}") from e
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config {p} must be a mapping at the top level")
    return cfg

def load_run_config(overrides: Optional[Mapping[str, Any]] = None) -> RunConfig:
    """Build the RunConfig once at startup.

    Precedence, highest first: explicit overrides (CLI flags), environment,
    optional YAML file (`config_path` override or ATHENACLI_CONFIG), defaults.
    """
    o = dict(overrides or {})

    cfg_path = _first(o.get("config_path"), _env("ATHENACLI_CONFIG"))
    cfg = _read_yaml(cfg_path) if cfg_path else {}
    ath_cfg = cfg.get("athena") or {}
    client_cfg = cfg.get("client") or {}
    out_cfg = cfg.get("output") or {}
    log_cfg = cfg.get("logging") or {}

    region = _first(o.get("region"), _env("AWS_REGION"), ath_cfg.get("region"))
    database = _first(o.get("database"), _env("ATHENA_DATABASE"), ath_cfg.get("database"))
    result_bucket = _first(
        o.get("result_bucket"), _env("ATHENA_OUTPUT_LOCATION"), ath_cfg.get("output_location")
    )
    workgroup = _first(o.get("workgroup"), _env("ATHENA_WORKGROUP"), ath_cfg.get("workgroup"))
    catalog = _first(o.get("catalog"), _env("ATHENA_CATALOG"), ath_cfg.get("catalog")) or DEFAULT_CATALOG

    poll_interval = _as_float(
        "poll_interval",
        _first(o.get("poll_interval"), _env("ATHENACLI_POLL_INTERVAL"), client_cfg.get("poll_interval")),
    )
    max_poll_retries = _as_int(
        "max_poll_retries",
        _first(o.get("max_poll_retries"), _env("ATHENACLI_MAX_POLL_RETRIES"), client_cfg.get("max_poll_retries")),
    )
    timeout = _as_float(
        "timeout", _first(o.get("timeout"), _env("ATHENACLI_TIMEOUT"), client_cfg.get("timeout"))
    )

    output_format = (
        _first(o.get("output_format"), _env("ATHENACLI_FORMAT"), out_cfg.get("format")) or "table"
    ).strip().lower()
    output_dir = _first(o.get("output_dir"), _env("ATHENACLI_OUTPUT_DIR"), out_cfg.get("dir"))
    log_file = _first(o.get("log_file"), _env("ATHENACLI_LOG_FILE"), log_cfg.get("file"))

    config = RunConfig(
        region=str(region or ""),
        database=str(database or ""),
        result_bucket=str(result_bucket or ""),
        workgroup=str(workgroup) if workgroup else None,
        catalog=str(catalog),
        verbose=int(o.get("verbose") or 0),
        log_file=str(log_file) if log_file else None,
        poll_interval=1.0 if poll_interval is None else poll_interval,
        max_poll_retries=5 if max_poll_retries is None else max_poll_retries,
        timeout=timeout,
        output_format=output_format,
        output_dir=str(output_dir) if output_dir else None,
    )
    validate_run_config(config)
    return config

def validate_run_config(config: RunConfig) -> None:
    if not config.region:
        raise ConfigError("a region is required: pass --region or set AWS_REGION")
    if not config.database:
        raise ConfigError("a database is required: pass --database or set ATHENA_DATABASE")
    if not config.result_bucket:
        raise ConfigError("a result bucket is required: pass --results s3://bucket/prefix")
    try:
        parse_s3_uri(config.result_bucket)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    if config.poll_interval <= 0:
        raise ConfigError("poll_interval must be greater than zero")
    if config.max_poll_retries < 0:
        raise ConfigError("max_poll_retries must not be negative")
    if config.timeout is not None and config.timeout <= 0:
        raise ConfigError("timeout must be greater than zero")
    if config.output_format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"unknown output format {config.output_format!r}; expected one of {', '.join(OUTPUT_FORMATS)}"
        )
