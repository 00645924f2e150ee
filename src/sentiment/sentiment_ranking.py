"""
Phrase and Aspect Ranking
=========================

Top-K selection over the structures built by the aggregator.

Top phrases are a prefix of the first-seen phrase list (duplicates kept),
not a frequency ranking. Top aspects are ordered by POSITIVE mentions.
"""

from typing import List, Mapping, Sequence

from .sentiment_models import AspectSentiment, SentimentHistogram, SentimentLabel

TOP_PHRASES_LIMIT = 5
TOP_ASPECTS_LIMIT = 5


def top_key_phrases(phrases: Sequence[str], limit: int = TOP_PHRASES_LIMIT) -> List[str]:
    """First `limit` phrases in first-seen order."""
    return list(phrases[:limit])


def top_aspect_sentiments(
    aspects: Mapping[str, SentimentHistogram],
    limit: int = TOP_ASPECTS_LIMIT,
) -> List[AspectSentiment]:
    """
    Aspects with the most POSITIVE mentions, at most `limit`.

    sorted() is stable, so phrases with equal POSITIVE counts keep the
    order in which they first appeared in the table.
    """
    ranked = sorted(
        aspects.items(),
        key=lambda item: item[1][SentimentLabel.POSITIVE],
        reverse=True,
    )
    return [
        AspectSentiment(phrase=phrase, histogram=histogram.copy())
        for phrase, histogram in ranked[:limit]
    ]
