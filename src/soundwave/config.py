"""
Configuration helpers for storage paths, search policy, and logging.
"""

from __future__ import annotations

import logging.config
import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DB_PATH = "~/.soundwave/songs.duckdb"
ENV_DB_PATH = "SOUNDWAVE_DB_PATH"

DEFAULT_UPLOAD_DIR = "~/.soundwave/uploads"
ENV_UPLOAD_DIR = "SOUNDWAVE_UPLOAD_DIR"

ENV_LOG_LEVEL = "SOUNDWAVE_LOG_LEVEL"
ENV_HTTP_TIMEOUT = "SOUNDWAVE_HTTP_TIMEOUT"
DEFAULT_HTTP_TIMEOUT = 60.0

MAX_UPLOAD_BYTES = 15 * 1024 * 1024

# Search policy. Scores are cosine similarities for semantic hits and fixed
# placeholders for the fallback paths.
SEMANTIC_THRESHOLD = 0.5
SUBSTRING_SCORE = 0.6
RECENT_SCORE = 0.5
PAGE_SIZE = 20


@dataclass(frozen=True)
class SearchPolicy:
    """Thresholds and page size applied by the search engine."""

    semantic_threshold: float = SEMANTIC_THRESHOLD
    substring_score: float = SUBSTRING_SCORE
    recent_score: float = RECENT_SCORE
    page_size: int = PAGE_SIZE


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) SOUNDWAVE_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def resolve_upload_dir(override_path: str | None = None) -> str:
    """Resolve and create the directory where uploaded files are kept."""
    raw_path = override_path or os.getenv(ENV_UPLOAD_DIR) or DEFAULT_UPLOAD_DIR
    resolved = Path(raw_path).expanduser().resolve()
    resolved.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def http_timeout() -> float:
    return float(os.getenv(ENV_HTTP_TIMEOUT, str(DEFAULT_HTTP_TIMEOUT)))


def configure_logging(level: str | None = None) -> None:
    """Install a console handler on the root logger."""
    resolved_level = (level or os.getenv(ENV_LOG_LEVEL) or "INFO").upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "root": {"handlers": ["console"], "level": resolved_level},
        }
    )
