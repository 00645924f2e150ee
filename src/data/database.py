"""
Sentilytics Database Connection
===============================

PostgreSQL access shared by the review store and the result store.
Uses psycopg2 with a lazily created threaded connection pool.

Usage:
    from src.data.database import get_connection

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

import psycopg2
from psycopg2 import pool

from .config import DatabaseConfig, get_settings

logger = logging.getLogger(__name__)

_pool: Optional[pool.ThreadedConnectionPool] = None


class DatabaseError(Exception):
    """Database operation error."""
    pass


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {reviews_table} (
    product_id  TEXT NOT NULL,
    review_id   TEXT NOT NULL,
    review_text TEXT,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (product_id, review_id)
);

CREATE TABLE IF NOT EXISTS {analysis_table} (
    product_id      TEXT PRIMARY KEY,
    review_analysis JSON NOT NULL,
    total_reviews   INTEGER NOT NULL DEFAULT 0,
    reviews_failed  INTEGER NOT NULL DEFAULT 0,
    computed_at     TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


def get_pool(config: Optional[DatabaseConfig] = None) -> Optional[pool.ThreadedConnectionPool]:
    """Get or create the connection pool (lazy singleton). None if unreachable."""
    global _pool
    if _pool is not None:
        return _pool

    config = config or get_settings().database
    try:
        _pool = pool.ThreadedConnectionPool(
            config.pool_min_size,
            config.pool_max_size,
            **config.connection_dict,
        )
        logger.info(f"DB pool created: {config.host}:{config.port}/{config.name}")
        return _pool
    except psycopg2.Error as e:
        logger.warning(f"Failed to create DB pool: {e}")
        return None


def close_pool():
    """Close the connection pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("DB pool closed")


@contextmanager
def get_connection(db_pool: Optional[pool.AbstractConnectionPool] = None):
    """
    Get a connection from the pool.

    Commits on success, rolls back and raises DatabaseError on failure
    (also when the rollback itself fails; the connection is then closed),
    and always returns the connection to the pool.
    """
    db_pool = db_pool or get_pool()
    if db_pool is None:
        raise DatabaseError("Database pool not available")

    conn = None
    broken = False
    try:
        conn = db_pool.getconn()
        yield conn
        conn.commit()
    except Exception as e:
        if conn is not None:
            try:
                conn.rollback()
            except psycopg2.Error as rollback_error:
                # Typically "connection already closed" after a dropped session
                broken = True
                logger.warning(f"Rollback failed, discarding connection: {rollback_error}")
        if isinstance(e, DatabaseError):
            raise
        raise DatabaseError(f"Database operation failed: {e}") from e
    finally:
        if conn is not None:
            if broken:
                db_pool.putconn(conn, close=True)
            else:
                db_pool.putconn(conn)


def ensure_schema(db_pool=None, config: Optional[DatabaseConfig] = None) -> None:
    """Create the review and analysis tables if missing."""
    config = config or get_settings().database
    sql = SCHEMA_SQL.format(
        reviews_table=config.reviews_table,
        analysis_table=config.analysis_table,
    )
    with get_connection(db_pool) as conn:
        with conn.cursor() as cur:
            cur.execute(sql)
    logger.info(
        f"Schema ready: {config.reviews_table}, {config.analysis_table}"
    )


def check_health(db_pool=None) -> Dict[str, Any]:
    """
    Check database health. Returns status dict.
    Non-blocking: returns 'disconnected' if DB is not reachable.
    """
    try:
        with get_connection(db_pool) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT version()")
                row = cur.fetchone()
        version = row[0].split(",")[0] if row and row[0] else "unknown"
        return {"status": "connected", "version": version}
    except DatabaseError as e:
        logger.warning(f"DB health check failed: {e}")
        return {"status": "disconnected", "error": str(e)}
