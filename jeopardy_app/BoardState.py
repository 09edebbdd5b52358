from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from jeopardy_app.exceptions import BoardStateError


class RevealState(str, Enum):
    HIDDEN = "hidden"
    QUESTION = "question"
    ANSWER = "answer"


@dataclass
class Clue:
    question: str
    answer: str
    reveal_state: RevealState = RevealState.HIDDEN

    def to_dict(self) -> Dict[str, Any]:
        return {"question": self.question, "answer": self.answer, "reveal_state": self.reveal_state.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Clue":
        return cls(
            question=data.get("question", ""),
            answer=data.get("answer", ""),
            reveal_state=RevealState(data.get("reveal_state", RevealState.HIDDEN.value)),
        )


@dataclass
class Category:
    id: int
    title: str
    clues: List[Clue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "clues": [clue.to_dict() for clue in self.clues]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=data.get("id", 0),
            title=data.get("title", ""),
            clues=[Clue.from_dict(clue) for clue in data.get("clues", [])],
        )


@dataclass(frozen=True)
class Reveal:
    """Outcome of a click that moved a clue to its next state."""

    category_index: int
    clue_index: int
    previous: RevealState
    state: RevealState
    text: str

    @property
    def is_answer_reveal(self) -> bool:
        return self.previous is RevealState.QUESTION and self.state is RevealState.ANSWER


# Hidden -> Question -> Answer; Answer is terminal
_NEXT_STATE = {
    RevealState.HIDDEN: RevealState.QUESTION,
    RevealState.QUESTION: RevealState.ANSWER,
}


class BoardState:
    """
    The categories x clues grid of one game.

    The board is replaced wholesale by set() and cleared by reset(); between those
    only the reveal state of single clues changes, through reveal().
    """

    def __init__(self, categories: Optional[List[Category]] = None) -> None:
        self._categories: List[Category] = []
        if categories:
            self.set(categories)

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    @property
    def is_empty(self) -> bool:
        return not self._categories

    @property
    def num_categories(self) -> int:
        return len(self._categories)

    @property
    def clues_per_category(self) -> int:
        if not self._categories:
            return 0
        return len(self._categories[0].clues)

    def reset(self) -> None:
        """Clear the board."""
        self._categories = []

    def set(self, categories: Iterable[Category]) -> None:
        """
        Replace the whole board.

        Raises:
            BoardStateError: If the categories have unequal clue counts or share an id.
                The current board is left untouched in that case.
        """
        categories = list(categories)

        clue_counts = {len(category.clues) for category in categories}
        if len(clue_counts) > 1:
            raise BoardStateError(f"All categories need the same number of clues, got {sorted(clue_counts)}")

        ids = [category.id for category in categories]
        if len(set(ids)) != len(ids):
            raise BoardStateError(f"Category ids must be distinct, got {ids}")

        self._categories = categories

    def get_clue(self, category_index: int, clue_index: int) -> Optional[Clue]:
        """Get a clue, or None when the indices don't address a cell of the current board."""
        if not isinstance(category_index, int) or not isinstance(clue_index, int):
            return None
        if isinstance(category_index, bool) or isinstance(clue_index, bool):
            return None
        if not 0 <= category_index < len(self._categories):
            return None
        clues = self._categories[category_index].clues
        if not 0 <= clue_index < len(clues):
            return None
        return clues[clue_index]

    def reveal(self, category_index: int, clue_index: int) -> Optional[Reveal]:
        """
        Advance a clue to its next reveal state.

        Hidden -> Question returns the question text, Question -> Answer returns the
        answer text. Clicks on an answered clue, on a cell outside the board or on an
        empty board are ignored.

        Args:
            category_index: Column of the clicked cell
            clue_index: Row of the clicked cell

        Returns:
            The Reveal describing the transition, or None if nothing changed
        """
        clue = self.get_clue(category_index, clue_index)
        if clue is None:
            return None

        next_state = _NEXT_STATE.get(clue.reveal_state)
        if next_state is None:
            return None

        previous = clue.reveal_state
        clue.reveal_state = next_state
        text = clue.question if next_state is RevealState.QUESTION else clue.answer
        return Reveal(category_index, clue_index, previous, next_state, text)

    def rows(self) -> List[List[Tuple[int, int, Clue]]]:
        """Clue slots across all categories, one row per clue index."""
        return [
            [(category_index, clue_index, category.clues[clue_index])
             for category_index, category in enumerate(self._categories)]
            for clue_index in range(self.clues_per_category)
        ]

    @staticmethod
    def cell_key(category_index: int, clue_index: int) -> str:
        return f"{category_index}_{clue_index}"

    @staticmethod
    def parse_cell_key(cell_key: str) -> Optional[Tuple[int, int]]:
        """Split a "<category>_<clue>" key; None if it isn't one."""
        if not isinstance(cell_key, str):
            return None
        parts = cell_key.split("_")
        if len(parts) != 2 or not all(part.isdecimal() for part in parts):
            return None
        return int(parts[0]), int(parts[1])

    def to_dict(self) -> Dict[str, Any]:
        """Convert the BoardState instance to a dictionary."""
        return {"categories": [category.to_dict() for category in self._categories]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardState":
        """Create a BoardState instance from a dictionary."""
        board_state = cls()
        categories = [Category.from_dict(category) for category in (data or {}).get("categories", [])]
        if categories:
            board_state.set(categories)
        return board_state
