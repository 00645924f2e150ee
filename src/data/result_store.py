"""
Result Store
============

Persists one AnalysisSummary per product (last write wins) and loads
stored summaries back for the API and the CLI.
"""

import json
import logging
from typing import Any, Dict, Optional

from ..sentiment.sentiment_models import AnalysisSummary
from .config import DatabaseConfig, get_settings
from .database import get_connection

logger = logging.getLogger(__name__)


class ResultStore:
    """Upserts summaries into the analysis table."""

    def __init__(self, db_pool=None, config: Optional[DatabaseConfig] = None):
        self._db_pool = db_pool
        self.config = config or get_settings().database

    def save_summary(
        self,
        product_id: str,
        summary: AnalysisSummary,
        reviews_failed: int = 0,
    ) -> None:
        """
        Store the summary under product_id, replacing any previous one.

        Raises:
            DatabaseError: If the write fails
        """
        payload = json.dumps(summary.to_dict())
        with get_connection(self._db_pool) as conn:
            with conn.cursor() as cur:
                cur.execute(f"""
                    INSERT INTO {self.config.analysis_table} (
                        product_id, review_analysis, total_reviews, reviews_failed
                    ) VALUES (%s, %s, %s, %s)
                    ON CONFLICT (product_id) DO UPDATE SET
                        review_analysis = EXCLUDED.review_analysis,
                        total_reviews = EXCLUDED.total_reviews,
                        reviews_failed = EXCLUDED.reviews_failed,
                        computed_at = NOW()
                """, (product_id, payload, summary.total_reviews, reviews_failed))

        logger.info(
            f"Saved review analysis for {product_id}: "
            f"{summary.total_reviews} reviews, {reviews_failed} failed"
        )

    def load_summary(self, product_id: str) -> Optional[Dict[str, Any]]:
        """
        Load the stored summary mapping, or None if the product has none.

        Raises:
            DatabaseError: If the read fails
        """
        with get_connection(self._db_pool) as conn:
            with conn.cursor() as cur:
                cur.execute(f"""
                    SELECT review_analysis
                    FROM {self.config.analysis_table}
                    WHERE product_id = %s
                """, (product_id,))
                row = cur.fetchone()

        if not row:
            return None
        # psycopg2 decodes json columns to dict (key order kept); text needs decoding
        return row[0] if isinstance(row[0], dict) else json.loads(row[0])
