"""Board lifecycle and click handling.

Owns a BoardState and drives a BoardView: loading -> populated -> interactive.
The view is whatever presents the board (browser payload, console); the
controller never touches presentation details itself.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence

from jeopardy_app.BoardBuilder import BoardBuilder
from jeopardy_app.BoardState import BoardState, Category, Reveal, RevealState
from jeopardy_app.config import BoardConfig
from jeopardy_app.exceptions import AcquisitionError, BoardLoadingError, BoardStateError
from jeopardy_app.metrics import record_board_start, record_clue_reveal
from jeopardy_app.tracing import record_exception, trace_operation

logger = logging.getLogger(__name__)

START_LABEL = "Start!"
LOADING_LABEL = "Loading..."
RESTART_LABEL = "Restart!"


class Phase(str, Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class AnswerEffect:
    """The enlarge-then-shrink effect shown when an answer is revealed."""

    category_index: int
    clue_index: int
    delay_ms: int

    @property
    def cell_key(self) -> str:
        return BoardState.cell_key(self.category_index, self.clue_index)


class BoardView(Protocol):
    def show_loading(self) -> None: ...

    def hide_loading(self, label: str) -> None: ...

    def clear_board(self) -> None: ...

    def render_board(self, categories: Sequence[Category]) -> None: ...

    def render_cell(self, category_index: int, clue_index: int, text: str, state: RevealState) -> None: ...

    def begin_answer_effect(self, effect: AnswerEffect) -> None: ...

    def end_answer_effect(self, effect: AnswerEffect) -> None: ...

    def show_error(self, message: str) -> None: ...


class EffectScheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> None: ...


class TimerEffectScheduler:
    """Runs each callback on a daemon timer thread."""

    def __init__(self):
        self.timers: List[threading.Timer] = []

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        self.timers = [t for t in self.timers if t.is_alive()] + [timer]

    def cancel_all(self) -> None:
        for timer in self.timers:
            timer.cancel()
        self.timers = []


class ManualEffectScheduler:
    """Queues callbacks until run_pending() is called."""

    def __init__(self):
        self.pending: List[tuple] = []

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self.pending.append((delay, callback))

    def run_pending(self) -> int:
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()
        return len(pending)


class NullEffectScheduler:
    """Drops every callback; the view runs the timed part of the effect itself."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        pass


class BoardController:
    def __init__(
        self,
        board_state: BoardState,
        builder: BoardBuilder,
        view: BoardView,
        scheduler: Optional[EffectScheduler] = None,
        config: Optional[BoardConfig] = None,
        phase: Optional[Phase] = None,
        has_started: Optional[bool] = None,
    ) -> None:
        self.board_state = board_state
        self.builder = builder
        self.view = view
        self.scheduler = scheduler or TimerEffectScheduler()
        self.config = config or builder.config
        if phase is None:
            phase = Phase.NOT_STARTED if board_state.is_empty else Phase.READY
        self.phase: Phase = phase
        if has_started is None:
            has_started = phase is not Phase.NOT_STARTED
        self.has_started: bool = has_started

    @property
    def affordance_label(self) -> str:
        if self.phase is Phase.LOADING:
            return LOADING_LABEL
        return RESTART_LABEL if self.has_started else START_LABEL

    @property
    def affordance_enabled(self) -> bool:
        return self.phase is not Phase.LOADING

    def start(self) -> bool:
        """Throw away the current board and load a new one.

        On failure the error is shown once, the board stays empty and the controller
        is ready for another start(). Errors other than acquisition and board errors
        are re-raised after that cleanup.

        Returns:
            True if a new board is ready, False if loading failed

        Raises:
            BoardLoadingError: If a board is already loading
        """
        if self.phase is Phase.LOADING:
            raise BoardLoadingError("A board is already loading")

        self.phase = Phase.LOADING
        self.has_started = True
        self.board_state.reset()
        self.view.clear_board()
        self.view.show_loading()

        start_time = time.time()
        try:
            with trace_operation("BoardController.start"):
                board = self.builder.acquire_board()
                self.board_state.set(board)
        except (AcquisitionError, BoardStateError) as e:
            logger.error(f"Failed to start a new board: {e}")
            self._abort_start(e)
            return False
        except Exception as e:
            logger.exception(f"Unexpected error while starting a new board: {e}")
            self._abort_start(e)
            raise

        duration = time.time() - start_time
        record_board_start("success", duration)
        logger.info(f"Board ready with {self.board_state.num_categories} categories in {duration:.1f}s")

        self.view.render_board(self.board_state.categories)
        self.phase = Phase.READY
        self.view.hide_loading(self.affordance_label)
        return True

    def _abort_start(self, error: Exception) -> None:
        """Leave LOADING with an empty board and the error shown once."""
        record_exception(error, operation="board_start")
        record_board_start("failure")
        self.board_state.reset()
        self.phase = Phase.NOT_STARTED
        self.view.show_error(str(error))
        self.view.hide_loading(self.affordance_label)

    def handle_cell_click(self, category_index: int, clue_index: int) -> Optional[Reveal]:
        """Reveal the next step of a clue. Ignored unless the board is ready."""
        if self.phase is not Phase.READY:
            logger.debug(f"Ignoring click on {category_index}_{clue_index} while {self.phase.value}")
            return None

        reveal = self.board_state.reveal(category_index, clue_index)
        if reveal is None:
            return None

        record_clue_reveal(reveal.state.value)
        self.view.render_cell(category_index, clue_index, reveal.text, reveal.state)

        if reveal.is_answer_reveal:
            effect = AnswerEffect(category_index, clue_index, self.config.answer_effect_delay_ms)
            self.view.begin_answer_effect(effect)
            self.scheduler.schedule(self.config.answer_effect_delay, lambda: self.view.end_answer_effect(effect))

        return reveal

    def handle_cell_key(self, cell_key: str) -> Optional[Reveal]:
        """Same as handle_cell_click, addressed by a "<category>_<clue>" key."""
        indices = BoardState.parse_cell_key(cell_key)
        if indices is None:
            return None
        return self.handle_cell_click(*indices)
