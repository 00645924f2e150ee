"""
Sentilytics Sentiment Aggregation Engine
========================================

Reduces per-review detector results into a per-product sentiment summary.
Pure in-memory logic, no I/O.

Modules:
    sentiment_models     — Data models (SentimentLabel, PerReviewResult, AnalysisSummary)
    sentiment_aggregator — Histogram, confidence and length aggregation
    sentiment_ranking    — Top phrases and top aspect selection
"""

from .sentiment_models import (
    SentimentLabel,
    SentimentHistogram,
    PerReviewResult,
    AspectSentiment,
    AnalysisSummary,
)
from .sentiment_aggregator import SentimentAggregator, aggregate
from .sentiment_ranking import top_key_phrases, top_aspect_sentiments
