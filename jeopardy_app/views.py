import logging
from contextlib import contextmanager
from typing import Optional

from django.conf import settings
from django.core.cache import caches
from django.http import HttpResponse
from django.shortcuts import render

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from jeopardy_app.auth import basic_auth_required
from jeopardy_app.BoardBuilder import BoardBuilder
from jeopardy_app.BoardController import BoardController, NullEffectScheduler
from jeopardy_app.BoardState import BoardState
from jeopardy_app.exceptions import BoardLoadingError, BoardStateError
from jeopardy_app.metrics import track_request_latency
from jeopardy_app.presenters import JsonBoardView, serialize_board
from jeopardy_app.tracing import trace_operation, trace_view

logger = logging.getLogger(__name__)

BOARD_SESSION_KEY = "board_state"
STARTED_SESSION_KEY = "board_started"
GENERATION_SESSION_KEY = "board_generation"

LOCK_CACHE_ALIAS = "locks"


def ensure_session_key(request) -> str:
    """Make sure the request has a persisted session and return its key."""
    if not request.session.session_key:
        request.session.save()
    return request.session.session_key


def load_board_state(request) -> BoardState:
    """Load the session's board; a corrupt stored board is dropped."""
    data = request.session.get(BOARD_SESSION_KEY)
    if not data:
        return BoardState()
    try:
        return BoardState.from_dict(data)
    except (BoardStateError, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Discarding unreadable board from session {request.session.session_key}: {e}")
        return BoardState()


def save_board_state(request, controller: BoardController, new_board: bool = False) -> None:
    """Store the controller's board in the session; a new board bumps the generation."""
    request.session[BOARD_SESSION_KEY] = controller.board_state.to_dict()
    request.session[STARTED_SESSION_KEY] = controller.has_started
    if new_board:
        request.session[GENERATION_SESSION_KEY] = request.session.get(GENERATION_SESSION_KEY, 0) + 1


def board_is_current(request) -> bool:
    """
    Whether the board this request loaded is still the stored one.

    A start in another request may have replaced it since; this re-reads the
    stored session rather than the copy loaded with the request.
    """
    session_key = request.session.session_key
    if not session_key:
        return True
    stored = type(request.session)(session_key=session_key)
    return stored.get(GENERATION_SESSION_KEY, 0) == request.session.get(GENERATION_SESSION_KEY, 0)


@trace_operation("views.build_controller")
def build_controller(request, view, builder: Optional[BoardBuilder] = None) -> BoardController:
    """Controller for the session's board. The page script runs the answer effect timer."""
    board_state = load_board_state(request)
    has_started = request.session.get(STARTED_SESSION_KEY, not board_state.is_empty)
    return BoardController(
        board_state,
        builder or BoardBuilder(),
        view,
        scheduler=NullEffectScheduler(),
        has_started=has_started,
    )


@contextmanager
def start_lock(session_key: str):
    """Refuse a second start for a session while one is in flight."""
    lock_cache = caches[LOCK_CACHE_ALIAS]
    lock_key = f"board_start_lock:{session_key}"
    timeout = getattr(settings, "JEOPARDY_START_LOCK_TIMEOUT", 300)
    if not lock_cache.add(lock_key, True, timeout):
        raise BoardLoadingError("A board is already loading")
    try:
        yield
    finally:
        lock_cache.delete(lock_key)


@trace_view("index")
def index(request):
    """Board page; renders the session's board if there is one."""
    timer_stop = track_request_latency("index")
    try:
        controller = build_controller(request, JsonBoardView())
        board_state = controller.board_state
        context = {
            "board": serialize_board(board_state.categories) if not board_state.is_empty else None,
            "button_label": controller.affordance_label,
        }
        return render(request, "jeopardy_app/index.html", context)
    finally:
        timer_stop()


@basic_auth_required
def metrics_view(request):
    """Prometheus metrics of the board."""
    timer_stop = track_request_latency("metrics")
    try:
        return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
    finally:
        timer_stop()
