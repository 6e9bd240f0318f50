"""Configuration loading from CLI args, env vars, and optional YAML file.

Precedence, lowest to highest: dataclass defaults, YAML file, environment,
command-line flags.
"""

import logging
import os
from dataclasses import dataclass, field

import yaml

from wtmp_sessions.sessions import ALGORITHMS

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("text", "json")
DEFAULT_WTMP = "/var/log/wtmp"


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    files: list[str] = field(default_factory=lambda: [DEFAULT_WTMP])
    limit: int | None = None
    output: str = "text"
    utc: bool = False
    algorithm: str = "sweep"
    split_shutdown: bool = False
    log_level: str = "WARNING"


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.info("Loaded YAML config from %s", path)
        return data
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}


def _pick(cli_value, env_key: str, yaml_data: dict, yaml_key: str, default):
    if cli_value is not None:
        return cli_value
    if env_key in os.environ:
        return os.environ[env_key]
    return yaml_data.get(yaml_key, default)


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data.

    Raises:
        ValueError: Unknown output format or algorithm, or a negative limit.
    """
    files = getattr(cli_args, "files", None)
    if not files:
        if "WTMP_FILE" in os.environ:
            files = [os.environ["WTMP_FILE"]]
        else:
            files = yaml_data.get("files", [DEFAULT_WTMP])
            if isinstance(files, str):
                files = [files]

    limit = _pick(getattr(cli_args, "limit", None), "WTMP_LIMIT", yaml_data, "limit", None)
    if limit is not None:
        limit = int(limit)
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

    output = _pick(getattr(cli_args, "output", None), "WTMP_OUTPUT", yaml_data, "output", Config.output)
    if output not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format {output!r}, expected one of {OUTPUT_FORMATS}")

    algorithm = _pick(getattr(cli_args, "algorithm", None), "WTMP_ALGORITHM", yaml_data, "algorithm",
                      Config.algorithm)
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm {algorithm!r}, expected one of {ALGORITHMS}")

    # store_true flags are None when absent so env/YAML can still apply
    utc = _pick(getattr(cli_args, "utc", None), "WTMP_UTC", yaml_data, "utc", Config.utc)
    split_shutdown = _pick(getattr(cli_args, "split_shutdown", None), "WTMP_SPLIT_SHUTDOWN",
                           yaml_data, "split_shutdown", Config.split_shutdown)
    log_level = _pick(getattr(cli_args, "log_level", None), "WTMP_LOG_LEVEL", yaml_data, "log_level",
                      Config.log_level)

    return Config(
        files=list(files),
        limit=limit,
        output=output,
        utc=_parse_bool(utc),
        algorithm=algorithm,
        split_shutdown=_parse_bool(split_shutdown),
        log_level=str(log_level).upper(),
    )
