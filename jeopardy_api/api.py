import logging
from typing import List, Optional

from ninja import NinjaAPI, Schema

from jeopardy_app.exceptions import BoardLoadingError
from jeopardy_app.metrics import track_request_latency
from jeopardy_app.presenters import JsonBoardView, board_snapshot
from jeopardy_app.views import board_is_current, build_controller, ensure_session_key, save_board_state, start_lock

logger = logging.getLogger(__name__)

api = NinjaAPI(title="Jeopardy API")


class CellSchema(Schema):
    key: str
    state: str
    text: str


class BoardSchema(Schema):
    headers: List[str]
    rows: List[List[CellSchema]]


class ButtonSchema(Schema):
    label: str
    enabled: bool


class EffectSchema(Schema):
    key: str
    delay_ms: int


class BoardPayloadSchema(Schema):
    phase: str
    loading: bool
    button: ButtonSchema
    error: Optional[str] = None
    board: Optional[BoardSchema] = None
    cells: List[CellSchema] = []
    effects: List[EffectSchema] = []
    events: List[str] = []


class RevealPayloadSchema(BoardPayloadSchema):
    changed: bool


class MessageSchema(Schema):
    message: str


@api.get("/health")
def health_check(request):
    return {"status": "ok"}


@api.get("/board", response=BoardPayloadSchema)
def get_board(request):
    timer_stop = track_request_latency("get_board")
    try:
        controller = build_controller(request, JsonBoardView())
        return board_snapshot(controller.board_state, controller.phase, controller.affordance_label)
    finally:
        timer_stop()


@api.post("/board/start", response={200: BoardPayloadSchema, 409: MessageSchema, 502: BoardPayloadSchema})
def start_board(request):
    timer_stop = track_request_latency("start_board")
    status = "success"
    try:
        session_key = ensure_session_key(request)
        view = JsonBoardView()
        controller = build_controller(request, view)
        try:
            with start_lock(session_key):
                started = controller.start()
        except BoardLoadingError as e:
            status = "conflict"
            return 409, {"message": str(e)}

        save_board_state(request, controller, new_board=True)
        payload = view.payload(controller.phase, controller.affordance_label)
        if not started:
            status = "error"
            return 502, payload
        return 200, payload
    finally:
        timer_stop(status)


@api.post("/board/reveal/{category_index}/{clue_index}", response=RevealPayloadSchema)
def reveal_clue(request, category_index: int, clue_index: int):
    timer_stop = track_request_latency("reveal_clue")
    try:
        view = JsonBoardView()
        controller = build_controller(request, view)
        reveal = controller.handle_cell_click(category_index, clue_index)
        changed = reveal is not None
        if changed and not board_is_current(request):
            # A start replaced the board while this click was handled
            logger.warning(f"Dropping reveal {category_index}_{clue_index} on a replaced board")
            changed = False
        if changed:
            save_board_state(request, controller)
        payload = view.payload(controller.phase, controller.affordance_label)
        payload["changed"] = changed
        return payload
    finally:
        timer_stop()
