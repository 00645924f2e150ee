"""
Sentilytics Comprehend Client
=============================

AWS Comprehend client for per-review sentiment and key phrase detection,
with retry logic and error classification.

Features:
    - Exponential backoff on throttling, service errors and timeouts
    - No retry on validation errors (oversized text, bad language code)
    - UTF-8 safe truncation to the per-document size limit
    - Call statistics for observability

Usage:
    from src.ai.comprehend_client import ComprehendClient

    client = ComprehendClient()
    sentiment = client.detect_sentiment("Great mount, holds my phone.")
    phrases = client.detect_key_phrases("Great mount, holds my phone.")
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
)

logger = logging.getLogger(__name__)


class ComprehendError(Exception):
    """Base exception for detector call failures."""

    def __init__(self, message: str, error_code: Optional[str] = None, retryable: bool = False):
        self.message = message
        self.error_code = error_code
        self.retryable = retryable
        super().__init__(self.message)


# Error codes that will fail again if retried
NON_RETRYABLE_CODES = frozenset({
    "InvalidRequestException",
    "TextSizeLimitExceededException",
    "UnsupportedLanguageException",
    "AccessDeniedException",
    "UnrecognizedClientException",
    "ValidationException",
})

RETRYABLE_CODES = frozenset({
    "ThrottlingException",
    "TooManyRequestsException",
    "InternalServerException",
    "ServiceUnavailableException",
    "RequestTimeoutException",
})


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text so its UTF-8 encoding fits in max_bytes, without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


class ComprehendClient:
    """
    Thin wrapper around the boto3 Comprehend client.

    boto3 clients are thread-safe, so one instance can serve the
    classification worker pool.
    """

    def __init__(
        self,
        client: Any = None,
        region: Optional[str] = None,
        language_code: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        retry_max_delay: Optional[float] = None,
        max_text_bytes: Optional[int] = None,
    ):
        """
        Initialize the Comprehend client.

        Args:
            client: Preconfigured boto3 comprehend client (created if None)
            region: AWS region (default from config)
            language_code: Review language (default from config)
            max_retries: Maximum retry attempts
            retry_base_delay: Base delay for exponential backoff (seconds)
            retry_max_delay: Maximum delay between retries (seconds)
            max_text_bytes: Per-document size limit
        """
        from ..data.config import get_settings
        config = get_settings().comprehend

        self.region = region or config.region
        self.language_code = language_code or config.language_code
        self.max_retries = config.max_retries if max_retries is None else max_retries
        self.retry_base_delay = config.retry_base_delay if retry_base_delay is None else retry_base_delay
        self.retry_max_delay = config.retry_max_delay if retry_max_delay is None else retry_max_delay
        self.max_text_bytes = max_text_bytes or config.max_text_bytes
        self._connect_timeout = config.connect_timeout
        self._read_timeout = config.read_timeout

        self._client = client
        self._client_lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self._stats = {
            "total_requests": 0,
            "total_retries": 0,
            "total_errors": 0,
            "truncated_documents": 0,
        }

        logger.info(
            f"ComprehendClient initialized: region={self.region}, "
            f"language={self.language_code}, max_retries={self.max_retries}"
        )

    @property
    def client(self):
        """Lazy-initialize and return the boto3 client."""
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    # Retries are handled here, not by botocore
                    self._client = boto3.client(
                        "comprehend",
                        region_name=self.region,
                        config=Config(
                            connect_timeout=self._connect_timeout,
                            read_timeout=self._read_timeout,
                            retries={"mode": "standard", "max_attempts": 1},
                        ),
                    )
                    logger.info("Comprehend client created")
        return self._client

    @property
    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return dict(self._stats)

    def _bump(self, key: str, amount: int = 1) -> None:
        with self._stats_lock:
            self._stats[key] += amount

    def _prepare_text(self, text: str) -> str:
        truncated = truncate_utf8(text, self.max_text_bytes)
        if truncated != text:
            self._bump("truncated_documents")
            logger.debug(
                f"Review truncated to {self.max_text_bytes} bytes for detection"
            )
        return truncated

    def _backoff_delay(self, attempt: int) -> float:
        return min(self.retry_base_delay * (2 ** attempt), self.retry_max_delay)

    def _retry_with_backoff(self, operation: str, func: Callable, **kwargs) -> Dict[str, Any]:
        """
        Execute a Comprehend call with exponential backoff retry.

        Raises:
            ComprehendError: On a non-retryable error or when all retries fail
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            self._bump("total_requests")
            try:
                return func(**kwargs)

            except ClientError as e:
                last_exception = e
                code = e.response.get("Error", {}).get("Code", "Unknown")
                status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)

                if code in NON_RETRYABLE_CODES:
                    self._bump("total_errors")
                    raise ComprehendError(
                        f"{operation} rejected: {code}: {e}",
                        error_code=code,
                    ) from e

                retryable = code in RETRYABLE_CODES or status >= 500
                if not retryable:
                    self._bump("total_errors")
                    raise ComprehendError(
                        f"{operation} failed: {code}: {e}",
                        error_code=code,
                    ) from e

            except (BotoConnectionError, HTTPClientError) as e:
                # Connection failures and read timeouts
                last_exception = e

            except BotoCoreError as e:
                # Credentials, parameter validation: retrying will not help
                self._bump("total_errors")
                raise ComprehendError(f"{operation} failed: {e}") from e

            if attempt < self.max_retries:
                wait_time = self._backoff_delay(attempt)
                logger.warning(
                    f"{operation} error (attempt {attempt + 1}/{self.max_retries + 1}): "
                    f"{last_exception}, retrying in {wait_time:.1f}s"
                )
                self._bump("total_retries")
                time.sleep(wait_time)

        # All retries exhausted
        self._bump("total_errors")
        raise ComprehendError(
            f"{operation}: all retries failed: {last_exception}",
            retryable=True,
        ) from last_exception

    def detect_sentiment(self, text: str) -> Dict[str, Any]:
        """
        Detect the dominant sentiment of one document.

        Returns:
            Raw response with "Sentiment" and "SentimentScore"
        """
        return self._retry_with_backoff(
            "DetectSentiment",
            self.client.detect_sentiment,
            Text=self._prepare_text(text),
            LanguageCode=self.language_code,
        )

    def detect_key_phrases(self, text: str) -> List[Dict[str, Any]]:
        """
        Extract key phrases of one document.

        Returns:
            List of key phrase dicts ("Text", "Score", offsets)
        """
        response = self._retry_with_backoff(
            "DetectKeyPhrases",
            self.client.detect_key_phrases,
            Text=self._prepare_text(text),
            LanguageCode=self.language_code,
        )
        return response.get("KeyPhrases", [])

    def health_check(self) -> Dict[str, Any]:
        """Probe the service with a tiny document."""
        try:
            self.detect_sentiment("ok")
            return {"status": "healthy", "region": self.region, **self.stats}
        except ComprehendError as e:
            return {"status": "unhealthy", "region": self.region, "error": str(e), **self.stats}
