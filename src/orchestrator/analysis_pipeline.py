"""
Sentilytics Analysis Pipeline
=============================

Runs the sentiment analysis of one product end to end:
1. Validate the product id
2. Fetch the product's reviews from the review store
3. Classify every review (bounded worker pool)
4. Aggregate the per-review results in review order
5. Persist the summary in the result store

Failure policy:
    - Missing product id / no reviews: raised to the caller before any
      detector call
    - One review failing detection: that review is excluded, logged and
      counted, the run continues
    - Persistence failure: logged, the summary is still returned

Usage:
    from src.orchestrator.analysis_pipeline import SentimentAnalysisPipeline

    pipeline = SentimentAnalysisPipeline()
    run = pipeline.analyze_product("B09XXXXX")
    print(run.summary.to_dict())
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..ai.comprehend_client import ComprehendError
from ..ai.review_classifier import ReviewClassificationError, ReviewClassifier
from ..data.config import get_settings
from ..data.database import DatabaseError
from ..data.result_store import ResultStore
from ..data.review_store import ReviewStore
from ..sentiment.sentiment_aggregator import SentimentAggregator
from ..sentiment.sentiment_models import AnalysisSummary, PerReviewResult

logger = logging.getLogger(__name__)


MISSING_PRODUCT_ID_MESSAGE = "Error: product_id is missing."
PRODUCT_NOT_FOUND_MESSAGE = "Product not found!"


class AnalysisError(Exception):
    """Base class for errors surfaced to the caller."""
    pass


class InvalidInputError(AnalysisError):
    """The product id is missing or empty."""

    def __init__(self, message: str = MISSING_PRODUCT_ID_MESSAGE):
        super().__init__(message)


class ProductNotFoundError(AnalysisError):
    """The review store has no reviews for the product."""

    def __init__(self, product_id: str, message: str = PRODUCT_NOT_FOUND_MESSAGE):
        self.product_id = product_id
        super().__init__(message)


@dataclass
class AnalysisRun:
    """Outcome of one product analysis."""
    run_id: str
    product_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    summary: Optional[AnalysisSummary] = None
    reviews_fetched: int = 0
    failed_reviews: List[Dict[str, Any]] = field(default_factory=list)
    persisted: bool = False
    persistence_error: Optional[str] = None

    @property
    def reviews_failed(self) -> int:
        return len(self.failed_reviews)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def add_failure(self, index: int, error: Exception):
        """Record a review excluded from aggregation."""
        self.failed_reviews.append({
            "index": index,
            "type": type(error).__name__,
            "message": str(error),
        })

    def get_summary(self) -> Dict[str, Any]:
        """Run metadata (without the analysis itself)."""
        return {
            "run_id": self.run_id,
            "product_id": self.product_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "reviews_fetched": self.reviews_fetched,
            "reviews_analyzed": self.summary.total_reviews if self.summary else 0,
            "reviews_failed": self.reviews_failed,
            "persisted": self.persisted,
        }


class SentimentAnalysisPipeline:
    """
    Orchestrates review fetch, classification, aggregation and persistence.

    Collaborators are injected for tests; defaults are built from settings.
    Each call to analyze_product owns its own aggregator, so one pipeline
    instance can serve concurrent requests.
    """

    def __init__(
        self,
        review_store: Optional[ReviewStore] = None,
        classifier: Optional[ReviewClassifier] = None,
        result_store: Optional[ResultStore] = None,
        parallel_workers: Optional[int] = None,
        max_reviews: Optional[int] = None,
        max_aspects: Optional[int] = None,
    ):
        """
        Args:
            review_store: Source of review texts
            classifier: Per-review detector adapter
            result_store: Destination of summaries
            parallel_workers: Concurrent classifications (1 = sequential)
            max_reviews: Reviews fetched per product (0 = all)
            max_aspects: Aspect table cap (0 = unbounded)
        """
        config = get_settings().analysis
        self.review_store = review_store or ReviewStore()
        self.classifier = classifier or ReviewClassifier()
        self.result_store = result_store or ResultStore()
        self.parallel_workers = parallel_workers or config.parallel_workers
        self.max_reviews = config.max_reviews if max_reviews is None else max_reviews
        self.max_aspects = config.max_aspects if max_aspects is None else max_aspects

        logger.info(
            f"SentimentAnalysisPipeline initialized: "
            f"workers={self.parallel_workers}, max_reviews={self.max_reviews or 'all'}"
        )

    # =========================================================================
    # Classification
    # =========================================================================

    def _classify_one(self, text: str) -> PerReviewResult:
        return self.classifier.classify(text)

    def classify_reviews(
        self,
        reviews: Sequence[str],
    ) -> List[Tuple[int, Optional[PerReviewResult], Optional[Exception]]]:
        """
        Classify all reviews, returning (index, result, error) in review order.

        Detector failures are returned, not raised, so one bad review never
        aborts the others.
        """
        if self.parallel_workers <= 1 or len(reviews) <= 1:
            outcomes = []
            for index, text in enumerate(reviews):
                try:
                    outcomes.append((index, self._classify_one(text), None))
                except (ComprehendError, ReviewClassificationError) as e:
                    outcomes.append((index, None, e))
            return outcomes

        workers = min(self.parallel_workers, len(reviews))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="classify") as executor:
            futures = [executor.submit(self._classify_one, text) for text in reviews]
            outcomes = []
            # Collected in submission order to keep phrase order deterministic
            for index, future in enumerate(futures):
                try:
                    outcomes.append((index, future.result(), None))
                except (ComprehendError, ReviewClassificationError) as e:
                    outcomes.append((index, None, e))
        return outcomes

    # =========================================================================
    # Run
    # =========================================================================

    def analyze_product(self, product_id: Optional[str]) -> AnalysisRun:
        """
        Analyze, persist and return the sentiment summary of one product.

        Raises:
            InvalidInputError: If product_id is missing or empty
            ProductNotFoundError: If the product has no reviews
        """
        if not isinstance(product_id, str) or not product_id.strip():
            raise InvalidInputError()
        product_id = product_id.strip()

        run = AnalysisRun(
            run_id=str(uuid.uuid4()),
            product_id=product_id,
            started_at=datetime.now(timezone.utc),
        )
        log_extra = {"run_id": run.run_id, "product_id": product_id}

        reviews = self.review_store.fetch_reviews(product_id, limit=self.max_reviews or None)
        if not reviews:
            logger.info(
                f"No reviews found for {product_id}",
                extra={**log_extra, "stage": "fetch"},
            )
            raise ProductNotFoundError(product_id)
        run.reviews_fetched = len(reviews)

        aggregator = SentimentAggregator(max_aspects=self.max_aspects or None)
        for index, result, error in self.classify_reviews(reviews):
            if error is not None:
                run.add_failure(index, error)
                logger.warning(
                    f"Review {index} of {product_id} excluded: {error}",
                    extra={**log_extra, "stage": "classify"},
                )
                continue
            aggregator.add(result)

        run.summary = aggregator.summarize()

        try:
            self.result_store.save_summary(
                product_id, run.summary, reviews_failed=run.reviews_failed,
            )
            run.persisted = True
        except DatabaseError as e:
            run.persistence_error = str(e)
            logger.error(
                f"Failed to persist analysis for {product_id}: {e}",
                extra={**log_extra, "stage": "persist"},
            )

        run.completed_at = datetime.now(timezone.utc)

        log = logger.warning if run.reviews_failed else logger.info
        log(
            f"Analyzed {product_id}: {run.summary.total_reviews}/{run.reviews_fetched} reviews, "
            f"{run.reviews_failed} failed, persisted={run.persisted} "
            f"({run.duration_seconds:.2f}s)",
            extra={
                **log_extra,
                "stage": "complete",
                "duration": run.duration_seconds,
                "reviews_failed": run.reviews_failed,
            },
        )
        return run

    def analyze(self, product_id: Optional[str]) -> AnalysisSummary:
        """Shortcut returning only the summary."""
        return self.analyze_product(product_id).summary

    def handle_request(self, payload: Any) -> Dict[str, Any]:
        """
        Invocation interface: {"product_id": ...} → summary mapping,
        or {"result": message} for a missing id or an unknown product.

        A payload that is not a mapping counts as a missing id.
        """
        product_id = payload.get("product_id") if isinstance(payload, Mapping) else None
        try:
            return self.analyze(product_id).to_dict()
        except AnalysisError as e:
            return {"result": str(e)}
