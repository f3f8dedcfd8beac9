"""
Settings Module - Runtime configuration and logging setup

Handles:
- Environment-backed defaults (KFC_NAMESPACE, KFC_TAIL_LINES, KFC_MAX_RETRY, KFC_TIMEOUT)
- User config directory (~/.kfctl) used for the error detector and log files
- File logging (the terminal belongs to the viewer while it runs)
"""
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _default_config_dir() -> Path:
    return Path(os.getenv("KFC_CONFIG_DIR", str(Path.home() / ".kfctl")))


class Settings(BaseModel):
    """Viewer settings; command-line flags override the environment defaults"""

    deployment: Optional[str] = None
    namespace: str = Field(default_factory=lambda: os.getenv("KFC_NAMESPACE", "default"))
    context: Optional[str] = None
    tail_lines: int = Field(default_factory=lambda: _env_int("KFC_TAIL_LINES", 100), ge=0)
    max_retry: int = Field(default_factory=lambda: _env_int("KFC_MAX_RETRY", 10), ge=0)
    timeout_s: int = Field(default_factory=lambda: _env_int("KFC_TIMEOUT", 10), gt=0)
    buffer_capacity: int = Field(default=10000, gt=0)

    # Initial filter (grep-style flags)
    grep_pattern: str = ""
    grep_after: int = Field(default=0, ge=0)
    grep_before: int = Field(default=0, ge=0)
    grep_context: int = Field(default=0, ge=0, le=20)
    grep_ignore_case: bool = False
    grep_invert: bool = False

    config_dir: Path = Field(default_factory=_default_config_dir)

    @property
    def log_dir(self) -> Path:
        return self.config_dir / "app_log"


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_dir: Path, level: int = logging.INFO) -> Path:
    """
    Route all logging to a file in log_dir

    Args:
        log_dir: Directory for kfc.log (created if missing)
        level: Root logger level

    Returns:
        Path of the log file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "kfc.log"

    root = logging.getLogger()
    # Idempotent: only one file handler per log file
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file:
            return log_file

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    root.addHandler(file_handler)
    root.setLevel(level)

    # Client libraries are chatty at INFO
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return log_file
