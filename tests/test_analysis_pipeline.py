"""
Tests for the Sentilytics analysis pipeline.

Tests the orchestration flow with in-memory fakes for the review store,
the detector and the result store:
- Input validation and product-not-found before any detector call
- Per-review detector failures excluded and counted
- Persistence failure does not lose the summary
- Parallel classification keeps review order
- Invocation interface error descriptors

Usage:
    pytest tests/test_analysis_pipeline.py -v
"""

import logging
import threading
import time

import psycopg2
import pytest
from unittest.mock import MagicMock

from src.ai.comprehend_client import ComprehendError
from src.ai.review_classifier import ReviewClassificationError
from src.data.config import DatabaseConfig
from src.data.database import DatabaseError
from src.data.result_store import ResultStore
from src.orchestrator.analysis_pipeline import (
    AnalysisRun,
    InvalidInputError,
    ProductNotFoundError,
    SentimentAnalysisPipeline,
)
from src.sentiment.sentiment_models import PerReviewResult, SentimentLabel


# ============================================================================
# FAKES
# ============================================================================

class FakeReviewStore:
    def __init__(self, reviews=None):
        self.reviews = reviews or {}
        self.calls = []

    def fetch_reviews(self, product_id, limit=None):
        self.calls.append((product_id, limit))
        reviews = self.reviews.get(product_id, [])
        return reviews[:limit] if limit else list(reviews)


class FakeResultStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.saved = {}

    def save_summary(self, product_id, summary, reviews_failed=0):
        if self.fail:
            raise DatabaseError("connection refused")
        self.saved[product_id] = (summary, reviews_failed)


class FakeClassifier:
    """
    Classifies by keyword: 'good' → POSITIVE, 'bad' → NEGATIVE, 'meh' → NEUTRAL,
    anything else → MIXED. Words of the text become phrases.
    """

    def __init__(self, fail_on=(), unusable_on=(), delays=None):
        self.fail_on = set(fail_on)
        self.unusable_on = set(unusable_on)
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def classify(self, text):
        with self._lock:
            self.calls.append(text)
        time.sleep(self.delays.get(text, 0))
        if text in self.fail_on:
            raise ComprehendError("ThrottlingException: all retries failed", retryable=True)
        if text in self.unusable_on:
            raise ReviewClassificationError("Detector returned unusable sentiment: None")

        if "good" in text:
            label = SentimentLabel.POSITIVE
        elif "bad" in text:
            label = SentimentLabel.NEGATIVE
        elif "meh" in text:
            label = SentimentLabel.NEUTRAL
        else:
            label = SentimentLabel.MIXED
        scores = {l: 0.1 for l in SentimentLabel}
        scores[label] = 0.7
        return PerReviewResult(
            sentiment=label,
            confidence_scores=scores,
            phrases=tuple(text.lower().split()),
            review_length=len(text),
        )


def make_pipeline(reviews=None, classifier=None, result_store=None, workers=1, **kwargs):
    return SentimentAnalysisPipeline(
        review_store=FakeReviewStore(reviews or {}),
        classifier=classifier or FakeClassifier(),
        result_store=result_store or FakeResultStore(),
        parallel_workers=workers,
        **kwargs,
    )


REVIEWS = {
    "P1": ["good zipper", "bad strap", "meh color", "good strap"],
}


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidation:
    """Missing id and unknown product."""

    @pytest.mark.parametrize("product_id", [None, "", "   ", 42])
    def test_invalid_product_id(self, product_id):
        pipeline = make_pipeline(REVIEWS)
        with pytest.raises(InvalidInputError) as exc_info:
            pipeline.analyze_product(product_id)
        assert str(exc_info.value) == "Error: product_id is missing."
        assert pipeline.review_store.calls == []

    def test_product_not_found(self):
        classifier = FakeClassifier()
        result_store = FakeResultStore()
        pipeline = make_pipeline(REVIEWS, classifier=classifier, result_store=result_store)

        with pytest.raises(ProductNotFoundError) as exc_info:
            pipeline.analyze_product("UNKNOWN")

        assert str(exc_info.value) == "Product not found!"
        assert classifier.calls == []
        assert result_store.saved == {}

    def test_product_id_is_stripped(self):
        pipeline = make_pipeline(REVIEWS)
        run = pipeline.analyze_product("  P1 ")
        assert run.product_id == "P1"


# ============================================================================
# RUN
# ============================================================================

class TestAnalyzeProduct:
    """Happy path and failure policies."""

    def test_full_run(self):
        result_store = FakeResultStore()
        pipeline = make_pipeline(REVIEWS, result_store=result_store)

        run = pipeline.analyze_product("P1")

        assert isinstance(run, AnalysisRun)
        assert run.reviews_fetched == 4
        assert run.reviews_failed == 0
        assert run.persisted is True
        assert run.duration_seconds is not None

        summary = run.summary
        assert summary.total_reviews == 4
        assert summary.sentiment_counts[SentimentLabel.POSITIVE] == 2
        assert summary.sentiment_percentages[SentimentLabel.POSITIVE] == 50.0
        assert summary.average_confidence[SentimentLabel.NEGATIVE] == pytest.approx(0.7)
        assert list(summary.top_key_phrases) == ["good", "zipper", "bad", "strap", "meh"]
        assert result_store.saved["P1"] == (summary, 0)

    def test_classifier_called_once_per_review(self):
        classifier = FakeClassifier()
        make_pipeline(REVIEWS, classifier=classifier).analyze_product("P1")
        assert sorted(classifier.calls) == sorted(REVIEWS["P1"])

    def test_detector_failure_excludes_review(self):
        classifier = FakeClassifier(fail_on={"bad strap"}, unusable_on={"meh color"})
        result_store = FakeResultStore()
        pipeline = make_pipeline(REVIEWS, classifier=classifier, result_store=result_store)

        run = pipeline.analyze_product("P1")

        assert run.reviews_fetched == 4
        assert run.reviews_failed == 2
        assert [f["index"] for f in run.failed_reviews] == [1, 2]
        assert run.failed_reviews[0]["type"] == "ComprehendError"
        assert run.summary.total_reviews == 2
        assert sum(run.summary.sentiment_counts.values()) == 2
        assert run.summary.sentiment_counts[SentimentLabel.NEGATIVE] == 0
        assert "strap" in run.summary.top_key_phrases  # from "good strap"
        assert result_store.saved["P1"][1] == 2

    def test_all_reviews_failing_yields_empty_summary(self):
        classifier = FakeClassifier(fail_on=set(REVIEWS["P1"]))
        run = make_pipeline(REVIEWS, classifier=classifier).analyze_product("P1")

        assert run.summary.total_reviews == 0
        assert all(v == 0.0 for v in run.summary.sentiment_percentages.values())
        assert run.reviews_failed == 4

    def test_persistence_failure_still_returns_summary(self):
        pipeline = make_pipeline(REVIEWS, result_store=FakeResultStore(fail=True))

        run = pipeline.analyze_product("P1")

        assert run.persisted is False
        assert "connection refused" in run.persistence_error
        assert run.summary.total_reviews == 4

    def test_dropped_database_connection_still_returns_summary(self):
        cursor = MagicMock()
        cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection unexpectedly")
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor
        conn.rollback.side_effect = psycopg2.InterfaceError("connection already closed")
        db_pool = MagicMock()
        db_pool.getconn.return_value = conn
        result_store = ResultStore(db_pool=db_pool, config=DatabaseConfig())

        run = make_pipeline(REVIEWS, result_store=result_store).analyze_product("P1")

        assert run.persisted is False
        assert "server closed the connection" in run.persistence_error
        assert run.summary.total_reviews == 4
        db_pool.putconn.assert_called_once_with(conn, close=True)

    def test_log_records_carry_stage(self, caplog):
        classifier = FakeClassifier(fail_on={"bad strap"})
        pipeline = make_pipeline(REVIEWS, classifier=classifier, result_store=FakeResultStore(fail=True))

        with caplog.at_level(logging.INFO, logger="src.orchestrator.analysis_pipeline"):
            run = pipeline.analyze_product("P1")

        stages = [getattr(r, "stage", None) for r in caplog.records if getattr(r, "stage", None)]
        assert stages == ["classify", "persist", "complete"]
        assert all(r.product_id == "P1" for r in caplog.records if hasattr(r, "stage"))
        assert run.summary.total_reviews == 4

    def test_unexpected_errors_propagate(self):
        class BrokenClassifier:
            def classify(self, text):
                raise RuntimeError("bug")

        pipeline = make_pipeline(REVIEWS, classifier=BrokenClassifier())
        with pytest.raises(RuntimeError):
            pipeline.analyze_product("P1")

    def test_max_reviews_passed_to_store(self):
        pipeline = make_pipeline(REVIEWS, max_reviews=2)
        run = pipeline.analyze_product("P1")
        assert pipeline.review_store.calls == [("P1", 2)]
        assert run.summary.total_reviews == 2

    def test_max_aspects_applied(self):
        pipeline = make_pipeline(REVIEWS, max_aspects=1)
        run = pipeline.analyze_product("P1")
        assert run.summary.top_aspect_phrases() == ["good"]

    def test_get_summary(self):
        run = make_pipeline(REVIEWS).analyze_product("P1")
        meta = run.get_summary()
        assert meta["product_id"] == "P1"
        assert meta["reviews_analyzed"] == 4
        assert meta["persisted"] is True


class TestParallelClassification:
    """Worker pool keeps review order and isolates failures."""

    def test_order_preserved_when_completion_order_differs(self):
        reviews = {"P2": ["good alpha", "bad bravo", "meh charlie", "good delta"]}
        # Earlier reviews finish last
        classifier = FakeClassifier(delays={
            "good alpha": 0.15, "bad bravo": 0.1, "meh charlie": 0.05,
        })
        sequential = make_pipeline(reviews, workers=1).analyze_product("P2").summary
        parallel = make_pipeline(reviews, classifier=classifier, workers=4).analyze_product("P2").summary

        assert list(parallel.top_key_phrases) == ["good", "alpha", "bad", "bravo", "meh"]
        assert parallel == sequential

    def test_failure_does_not_abort_other_reviews(self):
        reviews = {"P3": [f"good review {i}" for i in range(10)]}
        classifier = FakeClassifier(fail_on={"good review 3", "good review 7"})
        pipeline = make_pipeline(reviews, classifier=classifier, workers=3)

        run = pipeline.analyze_product("P3")

        assert len(classifier.calls) == 10
        assert run.summary.total_reviews == 8
        assert [f["index"] for f in run.failed_reviews] == [3, 7]

    def test_classify_reviews_outcomes_in_order(self):
        classifier = FakeClassifier(fail_on={"bad two"})
        pipeline = make_pipeline(classifier=classifier, workers=2)

        outcomes = pipeline.classify_reviews(["good one", "bad two", "meh three"])

        assert [index for index, _, _ in outcomes] == [0, 1, 2]
        assert outcomes[1][1] is None
        assert isinstance(outcomes[1][2], ComprehendError)
        assert outcomes[2][1].sentiment is SentimentLabel.NEUTRAL


# ============================================================================
# INVOCATION INTERFACE
# ============================================================================

class TestHandleRequest:
    """Mapping in, mapping out."""

    def test_success_returns_summary_mapping(self):
        response = make_pipeline(REVIEWS).handle_request({"product_id": "P1"})
        assert response["total_reviews"] == 4
        assert response["sentiment_percentages"]["POSITIVE"] == 50.0

    def test_missing_product_id(self):
        response = make_pipeline(REVIEWS).handle_request({})
        assert response == {"result": "Error: product_id is missing."}

    def test_none_payload(self):
        assert make_pipeline(REVIEWS).handle_request(None) == {
            "result": "Error: product_id is missing.",
        }

    @pytest.mark.parametrize("payload", ["P1", ["P1"], 42])
    def test_non_mapping_payload(self, payload):
        assert make_pipeline(REVIEWS).handle_request(payload) == {
            "result": "Error: product_id is missing.",
        }

    def test_non_string_product_id(self):
        assert make_pipeline(REVIEWS).handle_request({"product_id": 42}) == {
            "result": "Error: product_id is missing.",
        }

    def test_not_found(self):
        response = make_pipeline(REVIEWS).handle_request({"product_id": "NOPE"})
        assert response == {"result": "Product not found!"}
