from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass

from django.conf import settings

from jeopardy_app.exceptions import ConfigurationError


DEFAULT_NUM_CATEGORIES = 6
DEFAULT_CLUES_PER_CATEGORY = 5
DEFAULT_MIN_SOURCE_CLUES = 5
DEFAULT_ID_RANGE = (1, 28163)
DEFAULT_ANSWER_EFFECT_DELAY_MS = 1500


@dataclass
class BoardConfig:
    """
    Configuration for one jeopardy board.
    """

    # Board shape
    num_categories: int = DEFAULT_NUM_CATEGORIES
    clues_per_category: int = DEFAULT_CLUES_PER_CATEGORY

    # Category acquisition
    min_source_clues: int = DEFAULT_MIN_SOURCE_CLUES
    id_range: Tuple[int, int] = DEFAULT_ID_RANGE
    max_id_attempts: Optional[int] = None
    id_retry_backoff: float = 0.0

    # Presentation
    answer_effect_delay_ms: int = DEFAULT_ANSWER_EFFECT_DELAY_MS

    @property
    def answer_effect_delay(self) -> float:
        """Answer effect delay in seconds."""
        return self.answer_effect_delay_ms / 1000.0

    def validate(self) -> 'BoardConfig':
        """
        Check the configuration values.

        Returns:
            Self for chaining

        Raises:
            ConfigurationError: If a value is out of range
        """
        if self.num_categories < 1:
            raise ConfigurationError(f"num_categories must be at least 1, got {self.num_categories}")
        if self.clues_per_category < 1:
            raise ConfigurationError(f"clues_per_category must be at least 1, got {self.clues_per_category}")
        if self.min_source_clues < 0:
            raise ConfigurationError(f"min_source_clues must not be negative, got {self.min_source_clues}")

        low, high = self.id_range
        if low < 1 or high < low:
            raise ConfigurationError(f"id_range must be a non-empty range of positive ids, got {self.id_range}")
        if high - low + 1 < self.num_categories:
            raise ConfigurationError(
                f"id_range {self.id_range} can't hold {self.num_categories} distinct categories"
            )

        if self.max_id_attempts is not None and self.max_id_attempts < 1:
            raise ConfigurationError(f"max_id_attempts must be at least 1, got {self.max_id_attempts}")
        if self.id_retry_backoff < 0:
            raise ConfigurationError(f"id_retry_backoff must not be negative, got {self.id_retry_backoff}")
        if self.answer_effect_delay_ms < 0:
            raise ConfigurationError(
                f"answer_effect_delay_ms must not be negative, got {self.answer_effect_delay_ms}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'num_categories': self.num_categories,
            'clues_per_category': self.clues_per_category,
            'min_source_clues': self.min_source_clues,
            'id_range': list(self.id_range),
            'max_id_attempts': self.max_id_attempts,
            'id_retry_backoff': self.id_retry_backoff,
            'answer_effect_delay_ms': self.answer_effect_delay_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BoardConfig':
        """Create from dictionary."""
        data = dict(data)
        if 'id_range' in data:
            data['id_range'] = tuple(data['id_range'])
        return cls(**data)

    @classmethod
    def from_settings(cls) -> 'BoardConfig':
        """Create from the Django settings, falling back to the defaults."""
        config = cls(
            num_categories=getattr(settings, 'JEOPARDY_NUM_CATEGORIES', DEFAULT_NUM_CATEGORIES),
            clues_per_category=getattr(settings, 'JEOPARDY_CLUES_PER_CATEGORY', DEFAULT_CLUES_PER_CATEGORY),
            min_source_clues=getattr(settings, 'JEOPARDY_MIN_SOURCE_CLUES', DEFAULT_MIN_SOURCE_CLUES),
            id_range=(1, getattr(settings, 'JEOPARDY_ID_RANGE_MAX', DEFAULT_ID_RANGE[1])),
            max_id_attempts=getattr(settings, 'JEOPARDY_MAX_ID_ATTEMPTS', None),
            id_retry_backoff=getattr(settings, 'JEOPARDY_ID_RETRY_BACKOFF', 0.0),
            answer_effect_delay_ms=getattr(
                settings, 'JEOPARDY_ANSWER_EFFECT_DELAY_MS', DEFAULT_ANSWER_EFFECT_DELAY_MS
            ),
        )
        return config.validate()
