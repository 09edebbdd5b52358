"""UI adapters for the board controller.

JsonBoardView turns what the controller emits into a payload the page's script
applies; ConsoleBoardView prints it for the management command.
"""

import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO

from jeopardy_app.BoardController import AnswerEffect, Phase
from jeopardy_app.BoardState import BoardState, Category, Clue, RevealState

PLACEHOLDER = "?"


def cell_text(clue: Clue) -> str:
    """What a cell shows for a clue in its current reveal state."""
    if clue.reveal_state is RevealState.QUESTION:
        return clue.question
    if clue.reveal_state is RevealState.ANSWER:
        return clue.answer
    return PLACEHOLDER


def serialize_board(categories: Sequence[Category]) -> Dict[str, Any]:
    """Header titles plus one row per clue slot across all categories."""
    headers = [category.title.upper() for category in categories]
    num_rows = len(categories[0].clues) if categories else 0
    rows = [
        [
            {
                "key": BoardState.cell_key(category_index, clue_index),
                "state": category.clues[clue_index].reveal_state.value,
                "text": cell_text(category.clues[clue_index]),
            }
            for category_index, category in enumerate(categories)
        ]
        for clue_index in range(num_rows)
    ]
    return {"headers": headers, "rows": rows}


def board_snapshot(board_state: BoardState, phase: Phase, affordance_label: str) -> Dict[str, Any]:
    """Payload for a board that is already on the page, e.g. after a reload."""
    return {
        "phase": phase.value,
        "loading": phase is Phase.LOADING,
        "button": {"label": affordance_label, "enabled": phase is not Phase.LOADING},
        "error": None,
        "board": serialize_board(board_state.categories) if not board_state.is_empty else None,
        "cells": [],
        "effects": [],
        "events": [],
    }


class JsonBoardView:
    """Collects controller output for one request."""

    def __init__(self):
        self.events: List[str] = []
        self.loading: bool = False
        self.button_label: Optional[str] = None
        self.error: Optional[str] = None
        self.board: Optional[Dict[str, Any]] = None
        self.board_cleared: bool = False
        self.cells: List[Dict[str, Any]] = []
        self.effects: List[Dict[str, Any]] = []

    def show_loading(self) -> None:
        self.events.append("show_loading")
        self.loading = True

    def hide_loading(self, label: str) -> None:
        self.events.append("hide_loading")
        self.loading = False
        self.button_label = label

    def clear_board(self) -> None:
        self.events.append("clear_board")
        self.board = None
        self.board_cleared = True

    def render_board(self, categories: Sequence[Category]) -> None:
        self.events.append("render_board")
        self.board = serialize_board(categories)

    def render_cell(self, category_index: int, clue_index: int, text: str, state: RevealState) -> None:
        self.events.append("render_cell")
        self.cells.append({"key": BoardState.cell_key(category_index, clue_index), "state": state.value, "text": text})

    def begin_answer_effect(self, effect: AnswerEffect) -> None:
        self.events.append("begin_answer_effect")
        self.effects.append({"key": effect.cell_key, "delay_ms": effect.delay_ms})

    def end_answer_effect(self, effect: AnswerEffect) -> None:
        self.events.append("end_answer_effect")

    def show_error(self, message: str) -> None:
        self.events.append("show_error")
        self.error = message

    def payload(self, phase: Phase, affordance_label: str) -> Dict[str, Any]:
        return {
            "phase": phase.value,
            "loading": self.loading,
            "button": {"label": self.button_label or affordance_label, "enabled": phase is not Phase.LOADING},
            "error": self.error,
            "board": self.board,
            "cells": self.cells,
            "effects": self.effects,
            "events": self.events,
        }


class ConsoleBoardView:
    """Writes the board and its updates as plain text."""

    def __init__(self, stream: Optional[TextIO] = None, column_width: int = 24):
        self.stream = stream or sys.stdout
        self.column_width = column_width

    def _write(self, line: str = "") -> None:
        self.stream.write(line + "\n")

    def _fit(self, text: str) -> str:
        width = self.column_width
        text = " ".join(text.split())
        if len(text) > width:
            text = text[: width - 3] + "..."
        return text.ljust(width)

    def show_loading(self) -> None:
        self._write("Loading...")

    def hide_loading(self, label: str) -> None:
        self._write(f"[{label}]")

    def clear_board(self) -> None:
        pass

    def render_board(self, categories: Sequence[Category]) -> None:
        board = serialize_board(categories)
        self._write(" | ".join(self._fit(title) for title in board["headers"]))
        self._write("-+-".join("-" * self.column_width for _ in board["headers"]))
        for row in board["rows"]:
            self._write(" | ".join(self._fit(cell["text"]) for cell in row))

    def render_cell(self, category_index: int, clue_index: int, text: str, state: RevealState) -> None:
        self._write(f"{BoardState.cell_key(category_index, clue_index)} [{state.value}] {text}")

    def begin_answer_effect(self, effect: AnswerEffect) -> None:
        self._write(f"{effect.cell_key} *")

    def end_answer_effect(self, effect: AnswerEffect) -> None:
        pass

    def show_error(self, message: str) -> None:
        self._write(f"Error: {message}")
