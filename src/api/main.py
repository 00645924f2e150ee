"""
Sentilytics FastAPI Application
===============================

REST API around the sentiment analysis pipeline.

Endpoints:
    GET  /api/health                   - Health check
    POST /api/analysis                 - Analyze a product ({"product_id": ...})
    GET  /api/analysis/{product_id}    - Stored summary of a product

Usage:
    uvicorn src.api.main:app --reload --port 8000

    Or with CLI:
    python -m src.api.main
"""

from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse

from ..data import database
from ..data.database import DatabaseError
from ..data.result_store import ResultStore
from ..orchestrator.analysis_pipeline import (
    InvalidInputError,
    ProductNotFoundError,
    SentimentAnalysisPipeline,
)
from ..orchestrator.logging_config import setup_logging_from_settings
from .models import AnalysisSummaryModel, AnalyzeRequest, ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

_pipeline: Optional[SentimentAnalysisPipeline] = None
_result_store: Optional[ResultStore] = None


def get_pipeline() -> SentimentAnalysisPipeline:
    """Shared pipeline instance (created on first request)."""
    global _pipeline
    if _pipeline is None:
        _pipeline = SentimentAnalysisPipeline()
    return _pipeline


def get_result_store() -> ResultStore:
    global _result_store
    if _result_store is None:
        _result_store = ResultStore()
    return _result_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging_from_settings()
    logger.info("Starting Sentilytics API...")

    yield

    database.close_pool()
    logger.info("Shutting down Sentilytics API...")


app = FastAPI(
    title="Sentilytics API",
    description="Per-product review sentiment summaries",
    version=API_VERSION,
    lifespan=lifespan,
)


# ============================================================================
# HEALTH ENDPOINT
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
def health_check():
    """Database connectivity. The detector is checked from the CLI only."""
    db_health = database.check_health()
    overall = "healthy" if db_health["status"] == "connected" else "degraded"
    return HealthResponse(
        status=overall,
        version=API_VERSION,
        database=db_health["status"],
        database_version=db_health.get("version"),
    )


# ============================================================================
# ANALYSIS ENDPOINTS
# ============================================================================

@app.post(
    "/api/analysis",
    response_model=AnalysisSummaryModel,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def analyze_product(
    request: AnalyzeRequest,
    pipeline: SentimentAnalysisPipeline = Depends(get_pipeline),
):
    """
    Analyze a product's reviews, store and return the summary.

    Returns {"result": message} with 400 for a missing product id and
    404 when the product has no reviews.
    """
    try:
        summary = pipeline.analyze(request.product_id)
    except InvalidInputError as e:
        return JSONResponse(status_code=400, content={"result": str(e)})
    except ProductNotFoundError as e:
        return JSONResponse(status_code=404, content={"result": str(e)})

    return summary.to_dict()


@app.get(
    "/api/analysis/{product_id}",
    response_model=AnalysisSummaryModel,
    responses={404: {"model": ErrorResponse}},
)
def get_stored_analysis(
    product_id: str,
    store: ResultStore = Depends(get_result_store),
):
    """Return the last stored summary of a product."""
    try:
        stored = store.load_summary(product_id)
    except DatabaseError as e:
        logger.error(f"Stored analysis fetch failed for {product_id}: {e}")
        raise HTTPException(status_code=503, detail="Database not reachable")

    if stored is None:
        return JSONResponse(
            status_code=404,
            content={"result": f"No stored analysis for {product_id}."},
        )
    return stored


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
