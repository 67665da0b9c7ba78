"""Scan settings: built-in defaults, overridden by a TOML file, then by CLI flags."""

import logging
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

from domain_snipe.errors import ConfigError
from domain_snipe.probe import DEFAULT_ATTEMPTS, DEFAULT_RETRY_DELAY
from domain_snipe.scheduler import (
    DEFAULT_BATCH_DELAY_MS,
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_BACKOFF_MS,
    DEFAULT_REQUEUE_LIMIT,
)
from domain_snipe.state import DEFAULT_EXPIRING_DAYS, DEFAULT_OUTPUT_DIR

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("snipe.toml")
CONFIG_TABLE = "snipe"
DEFAULT_TLDS = ("com",)


@dataclass
class SnipeSettings:
    tlds: list[str] = field(default_factory=lambda: list(DEFAULT_TLDS))
    concurrency: int = DEFAULT_CONCURRENCY
    batch_delay_ms: int = DEFAULT_BATCH_DELAY_MS
    requeue_limit: int = DEFAULT_REQUEUE_LIMIT
    max_backoff_ms: int = DEFAULT_MAX_BACKOFF_MS
    expiring_days: int = DEFAULT_EXPIRING_DAYS
    output_dir: Path = DEFAULT_OUTPUT_DIR
    prefer: str = "rdap"
    enable_rdap: bool = True
    enable_whois: bool = True
    retry_attempts: int = DEFAULT_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    timeout: float = 10.0
    keep_registered: bool = False

    def merged(self, **overrides) -> "SnipeSettings":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce(name: str, value, default):
    if name == "tlds":
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, list):
            raise ConfigError("'tlds' must be a list or comma-separated string")
        return [str(t).strip().lower().lstrip(".") for t in value if str(t).strip()]
    if name == "output_dir":
        return Path(value)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"'{name}' must be true or false")
        return value
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"'{name}' must be a number")
        return type(default)(value)
    return str(value)


def load_settings(path: Path | None = None) -> SnipeSettings:
    """Load settings from the `[snipe]` table of a TOML file.

    With no `path`, `snipe.toml` in the working directory is used if present.
    An explicitly given file that is missing is an error.
    """
    defaults = SnipeSettings()
    if path is None:
        if not DEFAULT_CONFIG_FILE.exists():
            return defaults
        path = DEFAULT_CONFIG_FILE

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file {path} not found") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid TOML: {exc}") from exc

    table = data.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{CONFIG_TABLE}] in {path} must be a table")

    known = {f.name: getattr(defaults, f.name) for f in fields(SnipeSettings)}
    values = {}
    for key, value in table.items():
        name = key.replace("-", "_")
        if name not in known:
            logger.warning("Ignoring unknown setting '%s' in %s", key, path)
            continue
        values[name] = _coerce(name, value, known[name])

    if values.get("prefer", defaults.prefer) not in ("rdap", "whois"):
        raise ConfigError("'prefer' must be 'rdap' or 'whois'")
    logger.debug("Loaded %d setting(s) from %s", len(values), path)
    return replace(defaults, **values)
