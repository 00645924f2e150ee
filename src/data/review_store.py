"""
Review Store
============

Read-only access to raw review texts, keyed by product id.

A missing product and an unreachable store both yield an empty list;
the orchestrator treats an empty list as "product not found".
"""

import logging
from typing import List, Optional

from .config import DatabaseConfig, get_settings
from .database import DatabaseError, get_connection

logger = logging.getLogger(__name__)


class ReviewStore:
    """Fetches the ordered review texts of a product from PostgreSQL."""

    def __init__(self, db_pool=None, config: Optional[DatabaseConfig] = None):
        self._db_pool = db_pool
        self.config = config or get_settings().database

    def fetch_reviews(self, product_id: str, limit: Optional[int] = None) -> List[str]:
        """
        Return the product's review texts, oldest first.

        Args:
            product_id: Product identifier
            limit: Maximum number of reviews (None or 0 = all)
        """
        sql = f"""
            SELECT review_text
            FROM {self.config.reviews_table}
            WHERE product_id = %s AND review_text IS NOT NULL AND review_text != ''
            ORDER BY created_at, review_id
        """
        params: tuple = (product_id,)
        if limit:
            sql += " LIMIT %s"
            params = (product_id, limit)

        try:
            with get_connection(self._db_pool) as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    rows = cur.fetchall()
        except DatabaseError as e:
            logger.error(f"Failed to load reviews for {product_id}: {e}")
            return []

        reviews = [row[0] for row in rows]
        logger.debug(f"Loaded {len(reviews)} reviews for {product_id}")
        return reviews
