"""
Tests for the jService trivia API client.
"""

from unittest.mock import Mock

import requests
from django.core.cache import cache
from django.test import TestCase, override_settings

from jeopardy_app.exceptions import InvalidCategoryError, ProviderError
from jeopardy_app.jservice_client import JServiceClient, SourceCategory


def make_response(status_code=200, payload=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error", response=response)
    else:
        response.raise_for_status.return_value = None
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


CATEGORY_PAYLOAD = {
    "id": 42,
    "title": "potent potables",
    "clues_count": 2,
    "clues": [
        {"id": 1, "question": "This gin drink has tonic", "answer": "gin and tonic", "value": 200},
        {"id": 2, "question": "Fermented grapes", "answer": "wine", "value": 400},
    ],
}


class TestSourceCategory(TestCase):
    def test_from_payload(self):
        category = SourceCategory.from_payload(CATEGORY_PAYLOAD)
        self.assertEqual(category.id, 42)
        self.assertEqual(category.title, "potent potables")
        self.assertEqual(category.clues_count, 2)
        self.assertEqual(category.clues[1].question, "Fermented grapes")
        self.assertEqual(category.clues[1].answer, "wine")

    def test_clues_count_falls_back_to_clue_list(self):
        payload = dict(CATEGORY_PAYLOAD)
        del payload["clues_count"]
        self.assertEqual(SourceCategory.from_payload(payload).clues_count, 2)

    def test_non_string_answers_are_text(self):
        payload = dict(CATEGORY_PAYLOAD, clues=[{"question": "1+1", "answer": 2}, {"question": None, "answer": None}])
        category = SourceCategory.from_payload(payload)
        self.assertEqual(category.clues[0].answer, "2")
        self.assertEqual(category.clues[1].question, "")

    def test_falsy_answers_are_kept(self):
        """Test that a numeric 0 answer isn't mistaken for a missing one"""
        payload = dict(CATEGORY_PAYLOAD, clues=[{"question": "1-1", "answer": 0}, {"question": 0, "answer": False}])
        category = SourceCategory.from_payload(payload)
        self.assertEqual(category.clues[0].answer, "0")
        self.assertEqual(category.clues[1].question, "0")
        self.assertEqual(category.clues[1].answer, "False")

    def test_clues_not_a_list(self):
        with self.assertRaises(InvalidCategoryError) as ctx:
            SourceCategory.from_payload(dict(CATEGORY_PAYLOAD, clues="abc"))
        self.assertEqual(ctx.exception.category_id, 42)

    def test_clue_not_an_object(self):
        with self.assertRaises(InvalidCategoryError):
            SourceCategory.from_payload(dict(CATEGORY_PAYLOAD, clues=[None] * 5))

    def test_missing_fields(self):
        with self.assertRaises(InvalidCategoryError) as ctx:
            SourceCategory.from_payload({"id": 42})
        self.assertEqual(ctx.exception.category_id, 42)

    def test_not_an_object(self):
        with self.assertRaises(InvalidCategoryError):
            SourceCategory.from_payload(["not", "a", "category"])

    def test_malformed_id(self):
        with self.assertRaises(InvalidCategoryError):
            SourceCategory.from_payload(dict(CATEGORY_PAYLOAD, id="forty-two"))


@override_settings(JSERVICE_BASE_URL="https://trivia.example.com/api/", JSERVICE_TIMEOUT=None, JSERVICE_CACHE_TIMEOUT=0)
class TestJServiceClient(TestCase):
    """Test cases for the jService client."""

    def setUp(self):
        self.session = Mock()
        self.client = JServiceClient(session=self.session)
        cache.clear()

    def tearDown(self):
        cache.clear()

    def test_initialization(self):
        """Test client initialization from settings."""
        self.assertEqual(self.client.base_url, "https://trivia.example.com/api")
        self.assertIsNone(self.client.request_timeout)
        self.assertEqual(self.client.cache_timeout, 0)

    def test_arguments_override_settings(self):
        client = JServiceClient(base_url="http://localhost:3000", timeout=2.5, cache_timeout=60, session=self.session)
        self.assertEqual(client.base_url, "http://localhost:3000")
        self.assertEqual(client.request_timeout, 2.5)
        self.assertEqual(client.cache_timeout, 60)

    def test_get_category(self):
        """Test fetching a category."""
        self.session.get.return_value = make_response(payload=CATEGORY_PAYLOAD)

        category = self.client.get_category(42)

        self.assertEqual(category.id, 42)
        self.session.get.assert_called_once_with(
            "https://trivia.example.com/api/category", params={"id": 42}, timeout=None
        )
        stats = self.client.get_stats()
        self.assertEqual(stats["total_calls"], 1)
        self.assertEqual(stats["successful_calls"], 1)
        self.assertEqual(stats["success_rate"], 100.0)

    def test_http_error(self):
        """Test that a 404 becomes a ProviderError carrying the status."""
        self.session.get.return_value = make_response(status_code=404)

        with self.assertRaises(ProviderError) as ctx:
            self.client.get_category(999999)

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.category_id, 999999)
        self.assertEqual(self.client.failed_calls, 1)

    def test_network_error(self):
        """Test that connection problems become ProviderErrors and are not retried."""
        self.session.get.side_effect = requests.ConnectionError("connection refused")

        with self.assertRaises(ProviderError) as ctx:
            self.client.get_category(1)

        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(self.session.get.call_count, 1)

    def test_timeout(self):
        self.session.get.side_effect = requests.Timeout("timed out")
        with self.assertRaises(ProviderError):
            self.client.get_category(1)

    def test_invalid_json(self):
        self.session.get.return_value = make_response(json_error=ValueError("Expecting value"))

        with self.assertRaises(ProviderError) as ctx:
            self.client.get_category(1)
        self.assertIn("invalid response", str(ctx.exception))

    def test_invalid_category_payload(self):
        self.session.get.return_value = make_response(payload={"error": "not found"})

        with self.assertRaises(InvalidCategoryError):
            self.client.get_category(1)

    def test_null_clues_are_invalid_category(self):
        """Test that null clue entries surface as a provider error, not an AttributeError."""
        self.session.get.return_value = make_response(
            payload={"id": 5, "title": "X", "clues_count": 5, "clues": [None] * 5}
        )

        with self.assertRaises(ProviderError):
            self.client.get_category(5)

    def test_no_caching_by_default(self):
        self.session.get.return_value = make_response(payload=CATEGORY_PAYLOAD)

        self.client.get_category(42)
        self.client.get_category(42)

        self.assertEqual(self.session.get.call_count, 2)
        self.assertEqual(self.client.cache_hits, 0)

    def test_caching(self):
        """Test that a cached category is served without a request."""
        client = JServiceClient(cache_timeout=60, session=self.session)
        self.session.get.return_value = make_response(payload=CATEGORY_PAYLOAD)

        first = client.get_category(42)
        second = client.get_category(42)

        self.assertEqual(first, second)
        self.assertEqual(self.session.get.call_count, 1)
        self.assertEqual(client.cache_hits, 1)

    def test_cache_key(self):
        key = self.client._get_cache_key("category", {"id": 42})
        self.assertEqual(key, "jservice:category:id%3D42")

    def test_reset_counters(self):
        self.client.total_calls = 5
        self.client.cache_hits = 2
        self.client.reset_counters()
        self.assertEqual(self.client.get_stats()["total_calls"], 0)
        self.assertEqual(self.client.cache_hits, 0)
