"""
Process settings and logging setup.

Settings come from environment variables (optionally loaded from a .env file):

    SKISCHEDULE_DATA_DIR                 local JSON store directory
    SKISCHEDULE_SUPABASE_URL             remote service base URL (http/https)
    SKISCHEDULE_SUPABASE_ANON_KEY        remote service public key
    SKISCHEDULE_SUPABASE_ACCESS_TOKEN    signed-in session token
    SKISCHEDULE_LOG_LEVEL                DEBUG / INFO / WARNING / ... (default WARNING)
    SKISCHEDULE_HTTP_TIMEOUT             seconds per remote request (default 30)

Nothing here talks to the network; remote availability is decided per call
by remote.RemoteSession.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from rich.logging import RichHandler

from skischedule.errors import ConfigError

LOGGER_NAME = "skischedule"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_data_dir() -> Path:
    """
    Return the default directory of the local JSON store inside the package.

    Using a function instead of a constant makes testing easier,
    because tests can point SKISCHEDULE_DATA_DIR somewhere else.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data"


def _validate_url(url: str, name: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ConfigError(f"{name} must use http or https scheme, got: {url!r}")
    if not parsed.netloc:
        raise ConfigError(f"{name} must have a valid domain, got: {url!r}")
    return url.rstrip("/")


def _validate_log_level(level: str, name: str) -> str:
    if level not in LOG_LEVELS:
        raise ConfigError(f"{name} must be one of {', '.join(LOG_LEVELS)}, got: {level!r}")
    return level


@dataclass
class Settings:
    data_dir: Path
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_access_token: Optional[str] = None
    log_level: str = "WARNING"
    http_timeout: float = 30.0

    @property
    def remote_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from the environment, reading env_file (or ./.env) first.

    Variables already present in the environment win over the file.
    Raises ConfigError for a malformed URL, timeout or log level.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    data_dir_raw = _env("SKISCHEDULE_DATA_DIR")
    data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else _default_data_dir()

    url = _env("SKISCHEDULE_SUPABASE_URL")
    if url:
        url = _validate_url(url, "SKISCHEDULE_SUPABASE_URL")

    timeout_raw = _env("SKISCHEDULE_HTTP_TIMEOUT") or "30"
    try:
        timeout = float(timeout_raw)
    except ValueError as e:
        raise ConfigError(f"SKISCHEDULE_HTTP_TIMEOUT must be a number, got: {timeout_raw!r}") from e

    log_level = _validate_log_level((_env("SKISCHEDULE_LOG_LEVEL") or "WARNING").upper(), "SKISCHEDULE_LOG_LEVEL")

    return Settings(
        data_dir=data_dir,
        supabase_url=url,
        supabase_anon_key=_env("SKISCHEDULE_SUPABASE_ANON_KEY"),
        supabase_access_token=_env("SKISCHEDULE_SUPABASE_ACCESS_TOKEN"),
        log_level=log_level,
        http_timeout=timeout,
    )


def setup_logging(level: str | int = "WARNING") -> logging.Logger:
    """
    Attach a rich console handler to the package logger (once).

    Library modules only call logging.getLogger(__name__); output is
    configured here, by the CLI.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    handler = RichHandler(show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger
