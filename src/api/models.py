"""
Sentilytics API Models
======================

Pydantic models for API request/response serialization.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class AnalyzeRequest(BaseModel):
    """
    Request to analyze a product.

    product_id is left untyped so a non-string id reaches the pipeline,
    which answers with the missing-id descriptor.
    """
    product_id: Any = None


class ErrorResponse(BaseModel):
    """Error descriptor returned for a missing id or an unknown product."""
    result: str


class AnalysisSummaryModel(BaseModel):
    """Per-product sentiment summary."""
    total_reviews: int
    sentiment_counts: Dict[str, int]
    sentiment_percentages: Dict[str, float]
    average_sentiment_confidence: Dict[str, float]
    short_reviews_count: int
    long_reviews_count: int
    top_key_phrases: List[str]
    top_aspect_based_sentiments: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    database: str
    database_version: Optional[str] = None
