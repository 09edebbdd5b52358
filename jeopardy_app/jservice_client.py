"""
Client for the jService trivia API.
Fetches categories with their clues; every failure surfaces as a ProviderError,
network errors are not retried here.
"""

import time
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

import requests
from django.conf import settings
from django.core.cache import cache

from jeopardy_app.exceptions import InvalidCategoryError, ProviderError
from jeopardy_app.metrics import record_provider_request

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://jservice.io/api"


def _text(value: Any) -> str:
    # Numeric answers such as 0 are kept
    return "" if value is None else str(value)


@dataclass
class SourceClue:
    question: str
    answer: str


@dataclass
class SourceCategory:
    """A category as the provider returns it, before trimming."""

    id: int
    title: str
    clues_count: int
    clues: List[SourceClue] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SourceCategory":
        """
        Build a SourceCategory from the provider's JSON body.

        Raises:
            InvalidCategoryError: If the body lacks the category fields
        """
        if not isinstance(payload, dict):
            raise InvalidCategoryError(f"Expected a category object, got {type(payload).__name__}")

        missing = [key for key in ("id", "title", "clues") if key not in payload]
        if missing:
            raise InvalidCategoryError(
                f"Category payload is missing {', '.join(missing)}", category_id=payload.get("id")
            )

        raw_clues = payload["clues"] or []
        if not isinstance(raw_clues, list):
            raise InvalidCategoryError(
                f"Expected a list of clues, got {type(raw_clues).__name__}", category_id=payload.get("id")
            )
        if not all(isinstance(clue, dict) for clue in raw_clues):
            raise InvalidCategoryError("Category payload has clues that aren't objects", category_id=payload.get("id"))

        clues = [
            SourceClue(question=_text(clue.get("question")), answer=_text(clue.get("answer")))
            for clue in raw_clues
        ]
        clues_count = payload.get("clues_count")
        if clues_count is None:
            clues_count = len(clues)

        try:
            return cls(id=int(payload["id"]), title=str(payload["title"]), clues_count=int(clues_count), clues=clues)
        except (TypeError, ValueError) as e:
            raise InvalidCategoryError(f"Malformed category payload: {e}", category_id=payload.get("id")) from e


class JServiceClient:
    """
    Thin wrapper around the jService HTTP API with optional caching and call tracking.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache_timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or getattr(settings, "JSERVICE_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")

        # No timeout unless configured
        self.request_timeout = timeout if timeout is not None else getattr(settings, "JSERVICE_TIMEOUT", None)

        # Category contents never change, so caching is safe; 0 disables it
        if cache_timeout is None:
            cache_timeout = getattr(settings, "JSERVICE_CACHE_TIMEOUT", 0)
        self.cache_timeout = cache_timeout
        self.cache_prefix = "jservice"

        self._session = session or requests.Session()

        # Track API calls for monitoring
        self.total_calls = 0
        self.successful_calls = 0
        self.failed_calls = 0
        self.cache_hits = 0

    def _get_cache_key(self, endpoint: str, params: Dict[str, Any]) -> str:
        """Generate a cache key for the API call."""
        sorted_params = sorted(params.items())
        param_str = "&".join(f"{k}={v}" for k, v in sorted_params)
        # URL-encode the parameter string to make it compatible with memcached
        encoded_param_str = urllib.parse.quote(param_str, safe="")
        return f"{self.cache_prefix}:{endpoint}:{encoded_param_str}"

    def _get_cached_response(self, cache_key: str) -> Optional[Dict[str, Any]]:
        if self.cache_timeout <= 0:
            return None
        try:
            cached = cache.get(cache_key)
        except Exception as e:
            logger.warning(f"Django cache error: {e}")
            return None
        if cached:
            logger.debug(f"Cache hit: {cache_key[:100]}")
        return cached

    def _set_cached_response(self, cache_key: str, response: Dict[str, Any]):
        if self.cache_timeout <= 0:
            return
        try:
            cache.set(cache_key, response, self.cache_timeout)
        except Exception as e:
            logger.warning(f"Django cache set error: {e}")

    def call_api(self, endpoint: str, **params) -> Dict[str, Any]:
        """
        GET an endpoint of the provider and return the decoded JSON body.

        Args:
            endpoint: Path below the base url, e.g. "category"
            **params: Query parameters

        Returns:
            The decoded JSON body

        Raises:
            ProviderError: On network errors, non-2xx answers or non-JSON bodies
        """
        cache_key = self._get_cache_key(endpoint, params)
        cached_response = self._get_cached_response(cache_key)
        if cached_response:
            self.cache_hits += 1
            record_provider_request("cache_hit", 0.0)
            return cached_response

        url = f"{self.base_url}/{endpoint}"
        category_id = params.get("id")
        self.total_calls += 1
        start_time = time.time()
        try:
            logger.debug(f"Requesting {url} with {params}")
            response = self._session.get(url, params=params, timeout=self.request_timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            self.failed_calls += 1
            record_provider_request("error", time.time() - start_time)
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"Provider answered {status_code} for {endpoint} {params}")
            raise ProviderError(
                f"Trivia provider answered with HTTP {status_code} for {endpoint} {params}",
                category_id=category_id,
                status_code=status_code,
            ) from e
        except requests.RequestException as e:
            self.failed_calls += 1
            record_provider_request("error", time.time() - start_time)
            logger.error(f"Request to {url} failed: {e}")
            raise ProviderError(f"Could not reach the trivia provider: {e}", category_id=category_id) from e

        try:
            data = response.json()
        except ValueError as e:
            self.failed_calls += 1
            record_provider_request("error", time.time() - start_time)
            logger.error(f"Invalid JSON from {url}: {e}")
            raise ProviderError(f"Trivia provider sent an invalid response: {e}", category_id=category_id) from e

        self.successful_calls += 1
        record_provider_request("success", time.time() - start_time)
        self._set_cached_response(cache_key, data)
        return data

    def get_category(self, category_id: int) -> SourceCategory:
        """Fetch a category with all its clues."""
        payload = self.call_api("category", id=category_id)
        return SourceCategory.from_payload(payload)

    def get_stats(self) -> Dict[str, Any]:
        """Get current call statistics."""
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "cache_hits": self.cache_hits,
            "success_rate": (self.successful_calls / max(self.total_calls, 1)) * 100,
        }

    def reset_counters(self):
        """Reset all counters (useful for testing)."""
        self.total_calls = 0
        self.successful_calls = 0
        self.failed_calls = 0
        self.cache_hits = 0
