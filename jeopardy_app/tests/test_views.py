import base64
from unittest.mock import Mock, patch

from django.conf import settings
from django.contrib.sessions.backends.db import SessionStore
from django.core.cache import cache, caches
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from jeopardy_app.BoardBuilder import BoardBuilder
from jeopardy_app.BoardController import BoardController
from jeopardy_app.config import BoardConfig
from jeopardy_app.exceptions import BoardLoadingError, InvalidCategoryError
from jeopardy_app.tests.fakes import make_board_provider
from jeopardy_app.views import (
    BOARD_SESSION_KEY,
    GENERATION_SESSION_KEY,
    LOCK_CACHE_ALIAS,
    STARTED_SESSION_KEY,
    start_lock,
)


class BoardViewTestCase(TestCase):
    def setUp(self):
        self.client = Client()
        cache.clear()

        self.provider, rng = make_board_provider(num_categories=6, num_clues=5)
        self.builder = BoardBuilder(client=self.provider, config=BoardConfig(), rng=rng, sleep=Mock())

        # Every request builds its controller around the fake provider
        self.board_builder_patcher = patch("jeopardy_app.views.BoardBuilder")
        self.mock_board_builder = self.board_builder_patcher.start()
        self.mock_board_builder.return_value = self.builder

    def tearDown(self):
        self.board_builder_patcher.stop()
        cache.clear()


class IndexViewTests(BoardViewTestCase):
    def test_index_without_board(self):
        response = self.client.get(reverse("index"))
        self.assertEqual(response.status_code, 200)
        self.assertTemplateUsed(response, "jeopardy_app/index.html")
        self.assertIsNone(response.context["board"])
        self.assertEqual(response.context["button_label"], "Start!")
        self.assertContains(response, 'id="start-button"')

    def test_index_renders_session_board(self):
        """Test that a reload shows the session's board with its revealed cells"""
        self.client.post("/api/board/start")
        self.client.post("/api/board/reveal/2/3")

        response = self.client.get(reverse("index"))

        self.assertEqual(response.context["button_label"], "Restart!")
        self.assertEqual(response.context["board"]["headers"][0], "CATEGORY 100")
        self.assertContains(response, 'id="cell-2_3"')
        self.assertContains(response, "Question 102.3")
        self.assertNotContains(response, "Answer 102.3")

    def test_corrupt_session_board_is_dropped(self):
        session = self.client.session
        session[BOARD_SESSION_KEY] = {
            "categories": [{"id": 1, "title": "Math", "clues": [{"question": "2+2", "answer": "4", "reveal_state": "bogus"}]}]
        }
        session.save()

        response = self.client.get(reverse("index"))

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.context["board"])


class BoardApiTests(BoardViewTestCase):
    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_get_board_before_start(self):
        response = self.client.get("/api/board")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["phase"], "not_started")
        self.assertEqual(data["button"], {"label": "Start!", "enabled": True})
        self.assertIsNone(data["board"])

    def test_start(self):
        """Test that starting loads a 6x5 board into the session"""
        response = self.client.post("/api/board/start")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["phase"], "ready")
        self.assertEqual(data["button"]["label"], "Restart!")
        self.assertEqual(len(data["board"]["headers"]), 6)
        self.assertEqual(len(data["board"]["rows"]), 5)
        self.assertTrue(all(cell["text"] == "?" for row in data["board"]["rows"] for cell in row))
        self.assertEqual(data["events"], ["clear_board", "show_loading", "render_board", "hide_loading"])

        session = self.client.session
        self.assertEqual(len(session[BOARD_SESSION_KEY]["categories"]), 6)
        self.assertTrue(session[STARTED_SESSION_KEY])

    def test_start_failure(self):
        """Test that a provider failure answers 502 with one error and leaves the session board empty"""
        self.provider.fail_on_calls = {9}

        response = self.client.post("/api/board/start")

        self.assertEqual(response.status_code, 502)
        data = response.json()
        self.assertEqual(data["phase"], "not_started")
        self.assertIn("Could not load the board", data["error"])
        self.assertEqual(data["events"].count("show_error"), 1)
        self.assertEqual(data["button"], {"label": "Restart!", "enabled": True})
        self.assertIsNone(data["board"])

        board = self.client.get("/api/board").json()
        self.assertIsNone(board["board"])
        self.assertEqual(board["button"]["label"], "Restart!")

        # Start is available again
        self.provider.fail_on_calls = set()
        self.assertEqual(self.client.post("/api/board/start").status_code, 200)

    def test_start_while_loading_conflicts(self):
        """Test that a second start for the same session is refused while one is in flight"""
        session_key = self.client.session.session_key
        caches[LOCK_CACHE_ALIAS].add(f"board_start_lock:{session_key}", True)

        response = self.client.post("/api/board/start")

        self.assertEqual(response.status_code, 409)
        self.assertIn("already loading", response.json()["message"])
        self.assertEqual(self.provider.requested, [])

    def test_lock_released_after_start(self):
        self.client.post("/api/board/start")
        session_key = self.client.session.session_key
        self.assertIsNone(caches[LOCK_CACHE_ALIAS].get(f"board_start_lock:{session_key}"))

    def test_reveal(self):
        self.client.post("/api/board/start")

        question = self.client.post("/api/board/reveal/0/0").json()
        self.assertTrue(question["changed"])
        self.assertEqual(question["cells"], [{"key": "0_0", "state": "question", "text": "Question 100.0"}])
        self.assertEqual(question["effects"], [])

        answer = self.client.post("/api/board/reveal/0/0").json()
        self.assertEqual(answer["cells"], [{"key": "0_0", "state": "answer", "text": "Answer 100.0"}])
        self.assertEqual(answer["effects"], [{"key": "0_0", "delay_ms": 1500}])

        again = self.client.post("/api/board/reveal/0/0").json()
        self.assertFalse(again["changed"])
        self.assertEqual(again["cells"], [])

        clue = self.client.session[BOARD_SESSION_KEY]["categories"][0]["clues"][0]
        self.assertEqual(clue["reveal_state"], "answer")

    def test_reveal_out_of_range(self):
        self.client.post("/api/board/start")

        response = self.client.post("/api/board/reveal/6/0")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["changed"])

    def test_reveal_before_start(self):
        response = self.client.post("/api/board/reveal/0/0")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["changed"])

    def test_restart_resets_reveals(self):
        self.client.post("/api/board/start")
        self.client.post("/api/board/reveal/1/1")

        data = self.client.post("/api/board/start").json()

        states = {cell["state"] for row in data["board"]["rows"] for cell in row}
        self.assertEqual(states, {"hidden"})

    def test_malformed_provider_payload_answers_502(self):
        """Test that a provider payload that isn't a category gets the error payload, not a server error"""
        self.provider.get_category = Mock(
            side_effect=InvalidCategoryError("Expected a list of clues, got str", category_id=100)
        )

        response = self.client.post("/api/board/start")

        self.assertEqual(response.status_code, 502)
        data = response.json()
        self.assertEqual(data["phase"], "not_started")
        self.assertIn("Could not load the board", data["error"])
        self.assertEqual(data["button"], {"label": "Restart!", "enabled": True})

    def test_every_start_bumps_board_generation(self):
        self.client.post("/api/board/start")
        self.assertEqual(self.client.session[GENERATION_SESSION_KEY], 1)

        self.provider.fail_on_calls = {len(self.provider.requested) + 1}
        self.client.post("/api/board/start")
        self.assertEqual(self.client.session[GENERATION_SESSION_KEY], 2)

    def test_reveal_on_replaced_board_is_not_saved(self):
        """Test that a click handled while another request restarted the board doesn't overwrite the new board"""
        self.client.post("/api/board/start")
        session_key = self.client.session.session_key
        original_click = BoardController.handle_cell_click

        def click_while_restarted(controller, category_index, clue_index):
            stored = SessionStore(session_key=session_key)
            stored[GENERATION_SESSION_KEY] = stored[GENERATION_SESSION_KEY] + 1
            stored.save()
            return original_click(controller, category_index, clue_index)

        with patch.object(BoardController, "handle_cell_click", autospec=True, side_effect=click_while_restarted):
            response = self.client.post("/api/board/reveal/0/0")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["changed"])
        session = self.client.session
        self.assertEqual(session[GENERATION_SESSION_KEY], 2)
        self.assertEqual(session[BOARD_SESSION_KEY]["categories"][0]["clues"][0]["reveal_state"], "hidden")


class StartLockTests(TestCase):
    def test_lock_cache_is_shared_between_processes(self):
        """Test that the start lock lives in a cache every worker process sees"""
        self.assertNotIn("locmem", settings.CACHES[LOCK_CACHE_ALIAS]["BACKEND"].lower())

        # A separate backend instance shares no memory with this one, like another worker
        other_worker_cache = caches.create_connection(LOCK_CACHE_ALIAS)
        with start_lock("session-a"):
            self.assertTrue(other_worker_cache.has_key("board_start_lock:session-a"))
            self.assertFalse(other_worker_cache.add("board_start_lock:session-a", True))
        self.assertFalse(other_worker_cache.has_key("board_start_lock:session-a"))

    def test_second_start_for_same_session_is_refused(self):
        with start_lock("session-a"):
            with self.assertRaises(BoardLoadingError):
                with start_lock("session-a"):
                    pass
            # Other sessions are not blocked
            with start_lock("session-b"):
                pass


class MetricsViewTests(TestCase):
    def setUp(self):
        self.client = Client()

    def auth_header(self, username, password):
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return {"HTTP_AUTHORIZATION": f"Basic {token}"}

    @override_settings(PROMETHEUS_METRICS_ENABLED=False)
    def test_metrics_disabled(self):
        response = self.client.get(reverse("metrics"))
        self.assertEqual(response.status_code, 404)

    @override_settings(
        PROMETHEUS_METRICS_ENABLED=True,
        PROMETHEUS_METRICS_AUTH_USERNAME="prometheus",
        PROMETHEUS_METRICS_AUTH_PASSWORD="secret",
    )
    def test_metrics_require_auth(self):
        response = self.client.get(reverse("metrics"))
        self.assertEqual(response.status_code, 401)
        self.assertIn("Basic", response["WWW-Authenticate"])

        response = self.client.get(reverse("metrics"), **self.auth_header("prometheus", "wrong"))
        self.assertEqual(response.status_code, 401)

    @override_settings(
        PROMETHEUS_METRICS_ENABLED=True,
        PROMETHEUS_METRICS_AUTH_USERNAME="prometheus",
        PROMETHEUS_METRICS_AUTH_PASSWORD="secret",
    )
    def test_metrics_with_auth(self):
        response = self.client.get(reverse("metrics"), **self.auth_header("prometheus", "secret"))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "jeopardy_board_starts_total")

    @override_settings(
        PROMETHEUS_METRICS_ENABLED=True,
        PROMETHEUS_METRICS_AUTH_USERNAME="",
        PROMETHEUS_METRICS_AUTH_PASSWORD="",
    )
    def test_metrics_without_configured_credentials(self):
        response = self.client.get(reverse("metrics"), **self.auth_header("", ""))
        self.assertEqual(response.status_code, 401)
