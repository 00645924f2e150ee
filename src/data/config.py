"""
Sentilytics Configuration Module
================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    AWS_REGION: Region of the Comprehend endpoint (default: us-east-1)
    COMPREHEND_LANGUAGE_CODE: Review language (default: en)
    COMPREHEND_MAX_RETRIES: Maximum retry attempts per call (default: 3)
    COMPREHEND_RETRY_BASE_DELAY: Base backoff delay in seconds (default: 0.5)
    COMPREHEND_RETRY_MAX_DELAY: Maximum backoff delay in seconds (default: 20)
    COMPREHEND_CONNECT_TIMEOUT: Connect timeout in seconds (default: 5)
    COMPREHEND_READ_TIMEOUT: Read timeout in seconds (default: 15)
    COMPREHEND_MAX_TEXT_BYTES: Per-document size limit (default: 5000)

    DATABASE_HOST: PostgreSQL host (default: localhost)
    DATABASE_PORT: PostgreSQL port (default: 5432)
    DATABASE_NAME: Database name (default: sentilytics)
    DATABASE_USER: Database user (default: sentilytics_app)
    DATABASE_PASSWORD: Database password (default: empty)
    DATABASE_POOL_MIN: Minimum pool connections (default: 1)
    DATABASE_POOL_MAX: Maximum pool connections (default: 5)
    REVIEWS_TABLE: Table holding raw reviews (default: product_reviews)
    ANALYSIS_TABLE: Table holding summaries (default: product_review_analysis)

    ANALYSIS_PARALLEL_WORKERS: Concurrent detector calls (default: 4)
    ANALYSIS_MAX_REVIEWS: Reviews analyzed per product, 0 = all (default: 0)
    ANALYSIS_MAX_ASPECTS: Aspect table cap, 0 = unbounded (default: 0)
"""

import os
import re
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv()


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class ComprehendConfig:
    """AWS Comprehend (sentiment / key phrase detector) configuration."""

    region: str = field(default_factory=lambda: get_env("AWS_REGION", "us-east-1"))
    language_code: str = field(default_factory=lambda: get_env("COMPREHEND_LANGUAGE_CODE", "en"))

    # Retry configuration
    max_retries: int = field(default_factory=lambda: get_env_int("COMPREHEND_MAX_RETRIES", 3))
    retry_base_delay: float = field(default_factory=lambda: get_env_float("COMPREHEND_RETRY_BASE_DELAY", 0.5))
    retry_max_delay: float = field(default_factory=lambda: get_env_float("COMPREHEND_RETRY_MAX_DELAY", 20.0))

    # Per-call timeouts in seconds
    connect_timeout: int = field(default_factory=lambda: get_env_int("COMPREHEND_CONNECT_TIMEOUT", 5))
    read_timeout: int = field(default_factory=lambda: get_env_int("COMPREHEND_READ_TIMEOUT", 15))

    # Comprehend rejects documents above 5000 UTF-8 bytes
    max_text_bytes: int = field(default_factory=lambda: get_env_int("COMPREHEND_MAX_TEXT_BYTES", 5000))

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.region:
            raise ValueError("AWS_REGION is required")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.max_text_bytes <= 0:
            raise ValueError("max_text_bytes must be positive")


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = field(default_factory=lambda: get_env("DATABASE_HOST", "localhost"))
    port: int = field(default_factory=lambda: get_env_int("DATABASE_PORT", 5432))
    name: str = field(default_factory=lambda: get_env("DATABASE_NAME", "sentilytics"))
    user: str = field(default_factory=lambda: get_env("DATABASE_USER", "sentilytics_app"))
    password: str = field(default_factory=lambda: get_env("DATABASE_PASSWORD", ""))

    # Connection pool settings
    pool_min_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MIN", 1))
    pool_max_size: int = field(default_factory=lambda: get_env_int("DATABASE_POOL_MAX", 5))

    # Connection timeout
    connect_timeout: int = field(default_factory=lambda: get_env_int("DATABASE_CONNECT_TIMEOUT", 10))

    # SSL mode: disable, allow, prefer, require, verify-ca, verify-full
    ssl_mode: str = field(default_factory=lambda: get_env("DATABASE_SSL_MODE", "prefer"))

    # Table names
    reviews_table: str = field(default_factory=lambda: get_env("REVIEWS_TABLE", "product_reviews"))
    analysis_table: str = field(default_factory=lambda: get_env("ANALYSIS_TABLE", "product_review_analysis"))

    @property
    def connection_dict(self) -> dict:
        """Connection parameters as dictionary for psycopg2."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "sslmode": self.ssl_mode,
            "connect_timeout": self.connect_timeout,
        }

    def __post_init__(self):
        """Validate configuration."""
        if self.pool_min_size > self.pool_max_size:
            raise ValueError("pool_min_size cannot exceed pool_max_size")
        # Table names are interpolated into SQL
        for table in (self.reviews_table, self.analysis_table):
            if not _IDENTIFIER.match(table):
                raise ValueError(f"Invalid table name: {table!r}")


@dataclass
class AnalysisConfig:
    """Sentiment analysis run configuration."""

    # Concurrent detector calls per product (1 = sequential)
    parallel_workers: int = field(default_factory=lambda: get_env_int("ANALYSIS_PARALLEL_WORKERS", 4))

    # Reviews fetched per product (0 = all)
    max_reviews: int = field(default_factory=lambda: get_env_int("ANALYSIS_MAX_REVIEWS", 0))

    # Aspect table cap (0 = unbounded)
    max_aspects: int = field(default_factory=lambda: get_env_int("ANALYSIS_MAX_ASPECTS", 0))

    def __post_init__(self):
        """Validate configuration."""
        if self.parallel_workers <= 0:
            raise ValueError("parallel_workers must be positive")
        if self.max_reviews < 0:
            raise ValueError("max_reviews cannot be negative")
        if self.max_aspects < 0:
            raise ValueError("max_aspects cannot be negative")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    comprehend: ComprehendConfig = field(default_factory=ComprehendConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Raises:
        ValueError: If configuration is invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None
