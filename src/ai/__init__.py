"""
Sentilytics Detector Module
===========================

Adapter to the external sentiment / key phrase detector (AWS Comprehend):
- ComprehendClient: boto3 wrapper with retry and error classification
- ReviewClassifier: one review text → PerReviewResult
"""

from .comprehend_client import ComprehendClient, ComprehendError
from .review_classifier import ReviewClassifier, ReviewClassificationError

__all__ = [
    "ComprehendClient",
    "ComprehendError",
    "ReviewClassifier",
    "ReviewClassificationError",
]
