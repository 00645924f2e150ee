"""
Sentiment Summary Data Models
=============================

Structured inputs and outputs of the sentiment aggregation pipeline.
The summary maps directly to the JSONB document stored in
product_review_analysis.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Tuple, Union


class SentimentLabel(str, Enum):
    """Closed set of sentiment categories returned by the detector."""
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    MIXED = "MIXED"

    @classmethod
    def parse(cls, value: Union[str, "SentimentLabel"]) -> "SentimentLabel":
        """Parse a detector label ("positive", "POSITIVE", ...)."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid sentiment label: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid sentiment label: {value!r}") from None


def empty_label_map(initial: float = 0.0) -> Dict[SentimentLabel, float]:
    """A mapping with one entry per label, in enumeration order."""
    return {label: initial for label in SentimentLabel}


@dataclass
class SentimentHistogram:
    """Per-label review counts. All four labels are always present."""
    counts: Dict[SentimentLabel, int] = field(
        default_factory=lambda: {label: 0 for label in SentimentLabel}
    )

    def increment(self, label: SentimentLabel, amount: int = 1) -> None:
        label = SentimentLabel.parse(label)
        if amount < 0:
            raise ValueError("Histogram counts can only grow")
        self.counts[label] += amount

    def __getitem__(self, label: SentimentLabel) -> int:
        return self.counts[SentimentLabel.parse(label)]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def copy(self) -> "SentimentHistogram":
        return SentimentHistogram(counts=dict(self.counts))

    def to_dict(self) -> Dict[str, int]:
        return {label.value: self.counts[label] for label in SentimentLabel}


@dataclass(frozen=True)
class PerReviewResult:
    """Detector output for a single review."""
    sentiment: SentimentLabel
    confidence_scores: Mapping[SentimentLabel, float]
    phrases: Tuple[str, ...] = ()
    review_length: int = 0

    def __post_init__(self):
        object.__setattr__(self, "sentiment", SentimentLabel.parse(self.sentiment))
        object.__setattr__(self, "phrases", tuple(self.phrases))
        if self.review_length < 0:
            raise ValueError("review_length cannot be negative")

    @property
    def max_confidence(self) -> float:
        """
        Highest of the four label scores.

        NaN when any score is missing or not a number, in which case the
        review does not contribute to confidence averages.
        """
        scores = []
        for label in SentimentLabel:
            score = self.confidence_scores.get(label)
            if score is None:
                return math.nan
            try:
                score = float(score)
            except (TypeError, ValueError):
                return math.nan
            if math.isnan(score):
                return math.nan
            scores.append(score)
        return max(scores)


@dataclass(frozen=True)
class AspectSentiment:
    """Sentiment breakdown of the reviews mentioning one phrase."""
    phrase: str
    histogram: SentimentHistogram

    @property
    def positive_count(self) -> int:
        return self.histogram[SentimentLabel.POSITIVE]


@dataclass(frozen=True)
class AnalysisSummary:
    """Aggregated sentiment summary for one product."""
    total_reviews: int
    sentiment_counts: Dict[SentimentLabel, int]
    sentiment_percentages: Dict[SentimentLabel, float]
    average_confidence: Dict[SentimentLabel, float]
    short_reviews_count: int
    long_reviews_count: int
    top_key_phrases: Tuple[str, ...]
    top_aspects: Tuple[AspectSentiment, ...]

    @property
    def dominant_sentiment(self) -> Union[SentimentLabel, None]:
        """Most frequent label (enumeration order breaks ties), None if empty."""
        if self.total_reviews == 0:
            return None
        return max(SentimentLabel, key=lambda label: self.sentiment_counts[label])

    def to_dict(self) -> Dict:
        """Serializable mapping used by the API, the CLI and the result store."""
        return {
            "total_reviews": self.total_reviews,
            "sentiment_counts": {
                label.value: self.sentiment_counts[label] for label in SentimentLabel
            },
            "sentiment_percentages": {
                label.value: self.sentiment_percentages[label] for label in SentimentLabel
            },
            "average_sentiment_confidence": {
                label.value: self.average_confidence[label] for label in SentimentLabel
            },
            "short_reviews_count": self.short_reviews_count,
            "long_reviews_count": self.long_reviews_count,
            "top_key_phrases": list(self.top_key_phrases),
            "top_aspect_based_sentiments": {
                aspect.phrase: aspect.histogram.to_dict() for aspect in self.top_aspects
            },
        }

    def top_aspect_phrases(self) -> List[str]:
        return [aspect.phrase for aspect in self.top_aspects]
