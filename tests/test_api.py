"""
Tests for the HTTP API and the serverless handler.

Uses FastAPI's TestClient with the pipeline and result store replaced
through dependency overrides.
"""

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient

from src.api import handler
from src.api.main import app, get_pipeline, get_result_store
from src.data.database import DatabaseError
from src.orchestrator.analysis_pipeline import (
    InvalidInputError,
    ProductNotFoundError,
    SentimentAnalysisPipeline,
)
from src.sentiment.sentiment_aggregator import aggregate
from src.sentiment.sentiment_models import PerReviewResult, SentimentLabel


def sample_summary():
    scores = {label: 0.1 for label in SentimentLabel}
    scores[SentimentLabel.NEGATIVE] = 0.6
    return aggregate([
        PerReviewResult(SentimentLabel.NEGATIVE, scores, ("battery", "screen"), 20),
        PerReviewResult(SentimentLabel.POSITIVE, scores, ("screen",), 120),
    ])


@pytest.fixture
def pipeline():
    return MagicMock(spec=SentimentAnalysisPipeline)


@pytest.fixture
def result_store():
    return MagicMock()


@pytest.fixture
def client(pipeline, result_store):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_result_store] = lambda: result_store
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAnalyzeEndpoint:
    """POST /api/analysis"""

    def test_returns_summary(self, client, pipeline):
        summary = sample_summary()
        pipeline.analyze.return_value = summary

        response = client.post("/api/analysis", json={"product_id": "P1"})

        assert response.status_code == 200
        body = response.json()
        assert body == summary.to_dict()
        assert body["sentiment_percentages"]["NEGATIVE"] == 50.0
        assert body["top_key_phrases"] == ["battery", "screen", "screen"]
        pipeline.analyze.assert_called_once_with("P1")

    def test_missing_product_id(self, client, pipeline):
        pipeline.analyze.side_effect = InvalidInputError()

        response = client.post("/api/analysis", json={})

        assert response.status_code == 400
        assert response.json() == {"result": "Error: product_id is missing."}
        pipeline.analyze.assert_called_once_with(None)

    def test_non_string_product_id_reaches_pipeline(self, client, pipeline):
        pipeline.analyze.side_effect = InvalidInputError()

        response = client.post("/api/analysis", json={"product_id": 42})

        assert response.status_code == 400
        assert response.json() == {"result": "Error: product_id is missing."}
        pipeline.analyze.assert_called_once_with(42)

    def test_product_not_found(self, client, pipeline):
        pipeline.analyze.side_effect = ProductNotFoundError("NOPE")

        response = client.post("/api/analysis", json={"product_id": "NOPE"})

        assert response.status_code == 404
        assert response.json() == {"result": "Product not found!"}


class TestStoredAnalysisEndpoint:
    """GET /api/analysis/{product_id}"""

    def test_returns_stored(self, client, result_store):
        stored = sample_summary().to_dict()
        result_store.load_summary.return_value = stored

        response = client.get("/api/analysis/P1")

        assert response.status_code == 200
        assert response.json() == stored
        result_store.load_summary.assert_called_once_with("P1")

    def test_not_stored(self, client, result_store):
        result_store.load_summary.return_value = None

        response = client.get("/api/analysis/P1")

        assert response.status_code == 404
        assert response.json() == {"result": "No stored analysis for P1."}

    def test_database_down(self, client, result_store):
        result_store.load_summary.side_effect = DatabaseError("Database pool not available")

        response = client.get("/api/analysis/P1")

        assert response.status_code == 503


class TestHealthEndpoint:
    """GET /api/health"""

    @patch("src.api.main.database.check_health")
    def test_healthy(self, mock_health, client):
        mock_health.return_value = {"status": "connected", "version": "PostgreSQL 16.2"}

        body = client.get("/api/health").json()

        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["database_version"] == "PostgreSQL 16.2"

    @patch("src.api.main.database.check_health")
    def test_degraded(self, mock_health, client):
        mock_health.return_value = {"status": "disconnected", "error": "refused"}

        body = client.get("/api/health").json()

        assert body["status"] == "degraded"
        assert body["database_version"] is None


class TestServerlessHandler:
    """handler.handle_request(event, context)"""

    def test_delegates_to_pipeline(self, pipeline):
        pipeline.handle_request.return_value = {"result": "Product not found!"}

        with patch.object(handler, "get_pipeline", return_value=pipeline):
            response = handler.lambda_handler({"product_id": "NOPE"}, MagicMock(aws_request_id="abc"))

        assert response == {"result": "Product not found!"}
        pipeline.handle_request.assert_called_once_with({"product_id": "NOPE"})

    def test_non_mapping_event(self):
        pipeline = SentimentAnalysisPipeline(
            review_store=MagicMock(),
            classifier=MagicMock(),
            result_store=MagicMock(),
            parallel_workers=1,
        )

        with patch.object(handler, "get_pipeline", return_value=pipeline):
            response = handler.handle_request("B09XXXXX")

        assert response == {"result": "Error: product_id is missing."}
        pipeline.review_store.fetch_reviews.assert_not_called()
