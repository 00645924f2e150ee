"""
Serverless Entry Point
======================

Function-style invocation of the analysis pipeline, for runtimes that
call a handler with an event mapping (e.g. AWS Lambda).

Event:
    {"product_id": "B09XXXXX"}

Returns:
    The summary mapping, or {"result": message} when the product id is
    missing or the product has no reviews.
"""

import logging
from typing import Any, Dict, Optional

from ..orchestrator.analysis_pipeline import SentimentAnalysisPipeline
from ..orchestrator.logging_config import setup_logging_from_settings

logger = logging.getLogger(__name__)

# Reused across warm invocations
_pipeline: Optional[SentimentAnalysisPipeline] = None


def get_pipeline() -> SentimentAnalysisPipeline:
    global _pipeline
    if _pipeline is None:
        setup_logging_from_settings()
        _pipeline = SentimentAnalysisPipeline()
    return _pipeline


def handle_request(event: Any, context: Any = None) -> Dict[str, Any]:
    """Analyze the product named in the event."""
    request_id = getattr(context, "aws_request_id", None)
    if request_id:
        logger.info(f"Handling request {request_id}")
    return get_pipeline().handle_request(event)


lambda_handler = handle_request
