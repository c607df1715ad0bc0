"""
Configuration for corral.

Loads settings from environment variables with sensible defaults.
Timeouts are in seconds.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> int | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    return int(value)


@dataclass
class Config:
    """Corral configuration."""

    # Shutdown escalation
    graceful_timeout: float = float(os.environ.get("CORRAL_GRACEFUL_TIMEOUT", "8.0"))
    kill_interval: float = float(os.environ.get("CORRAL_KILL_INTERVAL", "1.0"))

    # Waiting on children after their channel closes
    reap_timeout: float = float(os.environ.get("CORRAL_REAP_TIMEOUT", "0.1"))

    # Health checks
    health_check_interval: float = float(os.environ.get("CORRAL_HEALTH_CHECK_INTERVAL", "1.0"))

    # Parallelism
    processor_count: int | None = _optional_int("CORRAL_PROCESSOR_COUNT")

    # Logging
    log_level: str = os.environ.get("CORRAL_LOG_LEVEL", "INFO")
    log_file: Path = None
    log_max_bytes: int = int(os.environ.get("CORRAL_LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    log_backup_count: int = int(os.environ.get("CORRAL_LOG_BACKUP_COUNT", "5"))

    # Status API
    status_host: str = os.environ.get("CORRAL_STATUS_HOST", "127.0.0.1")
    status_port: int | None = _optional_int("CORRAL_STATUS_PORT")

    def __post_init__(self):
        """Resolve the log file path and create its directory."""
        log_file = os.environ.get("CORRAL_LOG_FILE")
        if self.log_file is None and log_file:
            self.log_file = Path(log_file).expanduser()

        if self.log_file is not None:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)


config = Config()
