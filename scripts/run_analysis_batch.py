#!/usr/bin/env python3
"""
Sentilytics Batch Analysis
==========================

Analyzes several products in one go and stores each summary.
Products are processed one after another; reviews of each product are
classified concurrently by the pipeline.

Usage:
    python scripts/run_analysis_batch.py B09AAAA B09BBBB
    python scripts/run_analysis_batch.py --file product_ids.txt

Env vars:
    See .env.example (AWS_REGION, DATABASE_*, ANALYSIS_*)
"""

import argparse
import sys
import logging
from pathlib import Path
from datetime import datetime, timezone

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")

logger = logging.getLogger("sentilytics.batch")


def read_product_ids(args) -> list:
    """Product ids from arguments and/or a file (one per line, # comments)."""
    product_ids = list(args.product_ids)
    if args.file:
        for line in Path(args.file).read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                product_ids.append(line)
    # Preserve order, drop duplicates
    return list(dict.fromkeys(product_ids))


def main():
    from src.data import database
    from src.orchestrator.analysis_pipeline import AnalysisError, SentimentAnalysisPipeline
    from src.orchestrator.logging_config import setup_logging_from_settings

    parser = argparse.ArgumentParser(description="Analyze reviews of several products")
    parser.add_argument("product_ids", nargs="*", help="Product identifiers")
    parser.add_argument("--file", help="File with one product id per line")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging_from_settings(args.verbose)

    product_ids = read_product_ids(args)
    if not product_ids:
        logger.error("No product ids given")
        return 1

    logger.info("=" * 60)
    logger.info(f"BATCH ANALYSIS — {datetime.now(timezone.utc).isoformat()}")
    logger.info(f"Products: {len(product_ids)}")
    logger.info("=" * 60)

    pipeline = SentimentAnalysisPipeline()
    analyzed, not_found, unpersisted, reviews_failed = 0, 0, 0, 0

    try:
        for product_id in product_ids:
            try:
                run = pipeline.analyze_product(product_id)
            except AnalysisError as e:
                not_found += 1
                logger.warning(f"  {product_id}: {e}")
                continue

            analyzed += 1
            reviews_failed += run.reviews_failed
            if not run.persisted:
                unpersisted += 1
            logger.info(
                f"  {product_id}: {run.summary.total_reviews} reviews, "
                f"dominant={run.summary.dominant_sentiment.value if run.summary.dominant_sentiment else 'n/a'}"
            )
    finally:
        database.close_pool()

    logger.info("=" * 60)
    logger.info(
        f"Done: {analyzed} analyzed, {not_found} without reviews, "
        f"{unpersisted} not persisted, {reviews_failed} reviews excluded"
    )
    return 0 if unpersisted == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
