"""
Sentiment Aggregator
====================

Reduces per-review detector results into a single AnalysisSummary per
product: sentiment distribution, average confidence per label, short/long
review counts, first-seen key phrases and per-phrase aspect sentiment.

Usage:
    aggregator = SentimentAggregator()
    for result in results:
        aggregator.add(result)
    summary = aggregator.summarize()

    # or in one call
    summary = aggregate(results)
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from .sentiment_models import (
    AnalysisSummary,
    PerReviewResult,
    SentimentHistogram,
    SentimentLabel,
    empty_label_map,
)
from .sentiment_ranking import (
    TOP_ASPECTS_LIMIT,
    TOP_PHRASES_LIMIT,
    top_aspect_sentiments,
    top_key_phrases,
)

logger = logging.getLogger(__name__)

# Review length buckets (characters). Lengths in [50, 200] are neither.
SHORT_REVIEW_MAX_EXCLUSIVE = 50
LONG_REVIEW_MIN_EXCLUSIVE = 200


class SentimentAggregator:
    """
    Accumulates PerReviewResults for one aggregation run.

    Counts, percentages and confidences do not depend on the order in which
    results are added. Only the phrase list (and therefore the top phrases
    and aspect tie-breaks) follows insertion order.
    """

    def __init__(
        self,
        max_aspects: Optional[int] = None,
        top_phrases_limit: int = TOP_PHRASES_LIMIT,
        top_aspects_limit: int = TOP_ASPECTS_LIMIT,
    ):
        """
        Args:
            max_aspects: Stop tracking new aspect phrases once the table
                holds this many (None or 0 = unbounded)
            top_phrases_limit: Size of the top phrases prefix
            top_aspects_limit: Maximum number of ranked aspects
        """
        self.max_aspects = max_aspects or None
        self.top_phrases_limit = top_phrases_limit
        self.top_aspects_limit = top_aspects_limit

        self._histogram = SentimentHistogram()
        # fsum over the kept values is exactly rounded, so averages do not
        # depend on input order
        self._confidences: Dict[SentimentLabel, List[float]] = {
            label: [] for label in SentimentLabel
        }
        self._aspects: Dict[str, SentimentHistogram] = {}
        self._phrases: List[str] = []
        self._short_reviews = 0
        self._long_reviews = 0
        self._confidence_skipped = 0
        self._aspects_dropped = 0

    @property
    def total_reviews(self) -> int:
        return self._histogram.total

    @property
    def confidence_skipped(self) -> int:
        """Reviews counted without a usable confidence score."""
        return self._confidence_skipped

    def add(self, result: PerReviewResult) -> None:
        """Fold one review's result into the running aggregates."""
        label = result.sentiment
        self._histogram.increment(label)

        max_confidence = result.max_confidence
        if math.isnan(max_confidence):
            self._confidence_skipped += 1
        else:
            self._confidences[label].append(max_confidence)

        if result.review_length < SHORT_REVIEW_MAX_EXCLUSIVE:
            self._short_reviews += 1
        elif result.review_length > LONG_REVIEW_MIN_EXCLUSIVE:
            self._long_reviews += 1

        for phrase in result.phrases:
            self._phrases.append(phrase)
            histogram = self._aspects.get(phrase)
            if histogram is None:
                if self.max_aspects is not None and len(self._aspects) >= self.max_aspects:
                    self._aspects_dropped += 1
                    continue
                histogram = self._aspects[phrase] = SentimentHistogram()
            histogram.increment(label)

    def add_all(self, results: Iterable[PerReviewResult]) -> "SentimentAggregator":
        for result in results:
            self.add(result)
        return self

    def sentiment_percentages(self) -> Dict[SentimentLabel, float]:
        total = self.total_reviews
        if total == 0:
            return empty_label_map()
        return {
            label: (self._histogram[label] / total) * 100
            for label in SentimentLabel
        }

    def average_confidence(self) -> Dict[SentimentLabel, float]:
        averages = empty_label_map()
        for label in SentimentLabel:
            count = self._histogram[label]
            if count > 0:
                averages[label] = math.fsum(self._confidences[label]) / count
        return averages

    def summarize(self) -> AnalysisSummary:
        """Build the immutable summary. The aggregator can keep accumulating."""
        if self._confidence_skipped:
            logger.debug(
                f"{self._confidence_skipped} review(s) had no usable confidence score"
            )
        if self._aspects_dropped:
            logger.info(
                f"Aspect table capped at {self.max_aspects}: "
                f"{self._aspects_dropped} phrase occurrence(s) not tracked"
            )

        return AnalysisSummary(
            total_reviews=self.total_reviews,
            sentiment_counts=dict(self._histogram.counts),
            sentiment_percentages=self.sentiment_percentages(),
            average_confidence=self.average_confidence(),
            short_reviews_count=self._short_reviews,
            long_reviews_count=self._long_reviews,
            top_key_phrases=tuple(top_key_phrases(self._phrases, self.top_phrases_limit)),
            top_aspects=tuple(top_aspect_sentiments(self._aspects, self.top_aspects_limit)),
        )


def aggregate(
    results: Iterable[PerReviewResult],
    max_aspects: Optional[int] = None,
) -> AnalysisSummary:
    """Aggregate a sequence of per-review results into a summary."""
    return SentimentAggregator(max_aspects=max_aspects).add_all(results).summarize()
