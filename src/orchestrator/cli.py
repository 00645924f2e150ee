"""
Sentilytics CLI
===============

Command-line interface for product review sentiment analysis.

Commands:
    analyze  - Analyze a product's reviews and store the summary
    show     - Show the stored summary of a product
    init-db  - Create the review and analysis tables
    health   - Check database and detector health

Usage:
    python -m src.orchestrator.cli analyze --product-id B09XXXXX
    python -m src.orchestrator.cli analyze --product-id B09XXXXX --json
    python -m src.orchestrator.cli show --product-id B09XXXXX
    python -m src.orchestrator.cli init-db
    python -m src.orchestrator.cli health
"""

import argparse
import json
import sys

from ..data import database
from ..data.database import DatabaseError
from ..data.result_store import ResultStore
from ..sentiment.sentiment_models import AnalysisSummary, SentimentLabel
from .analysis_pipeline import AnalysisError, SentimentAnalysisPipeline
from .logging_config import setup_logging_from_settings


def print_summary(summary: AnalysisSummary):
    """Human-readable rendering of a summary."""
    print(f"Total reviews: {summary.total_reviews}")
    print()
    print(f"{'Sentiment':<10} {'Count':>6} {'Share':>8} {'Avg conf':>9}")
    for label in SentimentLabel:
        print(
            f"{label.value:<10} {summary.sentiment_counts[label]:>6} "
            f"{summary.sentiment_percentages[label]:>7.1f}% "
            f"{summary.average_confidence[label]:>9.3f}"
        )
    print()
    print(f"Short reviews (<50 chars): {summary.short_reviews_count}")
    print(f"Long reviews (>200 chars): {summary.long_reviews_count}")
    print()
    print("Top key phrases:")
    for phrase in summary.top_key_phrases:
        print(f"  - {phrase}")
    print()
    print("Top aspects (by positive mentions):")
    for aspect in summary.top_aspects:
        counts = ", ".join(f"{k}={v}" for k, v in aspect.histogram.to_dict().items())
        print(f"  - {aspect.phrase}: {counts}")


def cmd_analyze(args):
    """Analyze one product."""
    try:
        run = SentimentAnalysisPipeline().analyze_product(args.product_id)
    except AnalysisError as e:
        if args.json:
            print(json.dumps({"result": str(e)}))
        else:
            print(f"ERROR: {e}")
        return 1

    if args.json:
        print(json.dumps(run.summary.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print(f"SENTIMENT ANALYSIS — {run.product_id}")
    print("=" * 60)
    print_summary(run.summary)
    print()
    print(f"Reviews fetched: {run.reviews_fetched}, failed: {run.reviews_failed}")
    print(f"Persisted: {'yes' if run.persisted else 'NO (' + str(run.persistence_error) + ')'}")
    print(f"Duration: {run.duration_seconds:.1f} seconds")
    return 0


def cmd_show(args):
    """Show a stored summary."""
    try:
        stored = ResultStore().load_summary(args.product_id)
    except DatabaseError as e:
        print(f"ERROR: Failed to load summary: {e}")
        return 1

    if stored is None:
        print(f"No stored analysis for {args.product_id}.")
        return 1

    print(json.dumps(stored, indent=2))
    return 0


def cmd_init_db(args):
    """Create tables."""
    try:
        database.ensure_schema()
    except DatabaseError as e:
        print(f"ERROR: Schema creation failed: {e}")
        return 1
    print("Schema ready.")
    return 0


def cmd_health(args):
    """Check database and detector."""
    from ..ai.comprehend_client import ComprehendClient

    health = {
        "database": database.check_health(),
        "comprehend": ComprehendClient().health_check(),
    }
    healthy = (
        health["database"]["status"] == "connected"
        and health["comprehend"]["status"] == "healthy"
    )

    if args.json:
        print(json.dumps(health, indent=2, default=str))
    else:
        for component, status in health.items():
            icon = "✓" if status["status"] in ("connected", "healthy") else "✗"
            print(f"  {icon} {component}: {status['status']}")
    return 0 if healthy else 1


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Sentilytics review sentiment analysis",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a product's reviews")
    analyze_parser.add_argument(
        "--product-id",
        required=True,
        help="Product identifier",
    )
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        help="Output the summary as JSON",
    )

    show_parser = subparsers.add_parser("show", help="Show a stored summary")
    show_parser.add_argument(
        "--product-id",
        required=True,
        help="Product identifier",
    )

    subparsers.add_parser("init-db", help="Create database tables")

    health_parser = subparsers.add_parser("health", help="Check component health")
    health_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )

    args = parser.parse_args()
    setup_logging_from_settings(args.verbose)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "analyze": cmd_analyze,
        "show": cmd_show,
        "init-db": cmd_init_db,
        "health": cmd_health,
    }

    handler = commands.get(args.command)
    try:
        return handler(args)
    finally:
        database.close_pool()


if __name__ == "__main__":
    sys.exit(main())
