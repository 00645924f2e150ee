"""
Sentilytics Structured Logging Configuration
============================================

Configures logging for the CLI, the API and batch scripts with support for:
- JSON structured output (for production / log aggregation)
- Human-readable output (for development)
- File rotation

Usage:
    from src.orchestrator.logging_config import setup_logging

    setup_logging(json_output=True, log_file="analysis.log")
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Optional

# Extra record attributes copied into JSON lines
EXTRA_FIELDS = ("run_id", "product_id", "stage", "duration", "reviews_failed")


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON lines.

    Output format:
        {"ts": "2026-...", "level": "INFO", "logger": "src.orchestrator", "msg": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
):
    """
    Configure application logging.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON structured format
        log_file: Optional file path for log output (with rotation)
        max_bytes: Max file size before rotation
        backup_count: Number of rotated files to keep
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    root.handlers.clear()

    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)-36s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Quiet noisy libraries
    for name in ("boto3", "botocore", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug(
        "Logging configured: level=%s json=%s file=%s",
        level, json_output, log_file or "none",
    )


def setup_logging_from_settings(verbose: bool = False):
    """Configure logging from LoggingConfig (LOG_LEVEL, LOG_JSON, LOG_FILE)."""
    from ..data.config import get_settings
    config = get_settings().logging
    setup_logging(
        level="DEBUG" if verbose else config.level,
        json_output=config.json_logs,
        log_file=config.log_file,
    )
