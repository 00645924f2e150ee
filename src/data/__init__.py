"""
Sentilytics Data Module
=======================

Configuration and PostgreSQL storage for reviews and analysis summaries.

This module provides:
    - Settings: environment driven configuration
    - ReviewStore: ordered review texts per product (read-only)
    - ResultStore: one summary per product (upsert, last write wins)

Quick Start:
    from src.data import ReviewStore, ResultStore

    reviews = ReviewStore().fetch_reviews("B09XXXXX")

Configuration:
    Set environment variables or create a .env file.
    See .env.example for all available options.
"""

from .config import get_settings, reset_settings, Settings
from .database import DatabaseError, get_connection, ensure_schema, check_health
from .review_store import ReviewStore
from .result_store import ResultStore

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "reset_settings",
    "get_settings",
    "Settings",
    # Storage
    "DatabaseError",
    "get_connection",
    "ensure_schema",
    "check_health",
    "ReviewStore",
    "ResultStore",
]
