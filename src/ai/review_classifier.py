"""
Review Classifier
=================

Adapter between the external detector and the aggregation engine.

Turns one review text into a PerReviewResult with exactly one sentiment
call and one key phrase call. Phrases are lowercased here so the
aggregator can group aspects by exact string.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from ..sentiment.sentiment_models import PerReviewResult, SentimentLabel
from .comprehend_client import ComprehendClient

logger = logging.getLogger(__name__)

# Comprehend SentimentScore keys
SCORE_KEYS = {
    SentimentLabel.POSITIVE: "Positive",
    SentimentLabel.NEGATIVE: "Negative",
    SentimentLabel.NEUTRAL: "Neutral",
    SentimentLabel.MIXED: "Mixed",
}


class ReviewClassificationError(Exception):
    """The detector answered, but with data that cannot be aggregated."""
    pass


def parse_scores(raw_scores: Optional[Dict[str, Any]]) -> Dict[SentimentLabel, float]:
    """Map a SentimentScore payload to label scores. Missing or invalid → NaN."""
    raw_scores = raw_scores or {}
    scores = {}
    for label, key in SCORE_KEYS.items():
        value = raw_scores.get(key)
        try:
            scores[label] = float(value) if value is not None else math.nan
        except (TypeError, ValueError):
            scores[label] = math.nan
    return scores


def normalize_phrases(key_phrases: List[Dict[str, Any]]) -> List[str]:
    """Lowercased phrase texts, in detector order, duplicates kept."""
    phrases = []
    for phrase in key_phrases:
        text = phrase.get("Text")
        if isinstance(text, str) and text.strip():
            phrases.append(text.lower())
    return phrases


class ReviewClassifier:
    """
    Classifies single reviews through the Comprehend client.

    Usage:
        classifier = ReviewClassifier()
        result = classifier.classify("Holds my phone perfectly.")
    """

    def __init__(self, client: Optional[ComprehendClient] = None):
        self._client = client

    @property
    def client(self) -> ComprehendClient:
        if self._client is None:
            self._client = ComprehendClient()
        return self._client

    def classify(self, text: str) -> PerReviewResult:
        """
        Analyze one review.

        Raises:
            ComprehendError: If a detector call fails
            ReviewClassificationError: If the detector returns an unknown label
        """
        response = self.client.detect_sentiment(text)
        raw_label = response.get("Sentiment")
        try:
            sentiment = SentimentLabel.parse(raw_label)
        except ValueError:
            raise ReviewClassificationError(
                f"Detector returned unusable sentiment: {raw_label!r}"
            ) from None

        scores = parse_scores(response.get("SentimentScore"))
        phrases = normalize_phrases(self.client.detect_key_phrases(text))

        return PerReviewResult(
            sentiment=sentiment,
            confidence_scores=scores,
            phrases=tuple(phrases),
            review_length=len(text),
        )
