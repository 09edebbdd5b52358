import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from jeopardy_app.BoardState import Category, Clue, RevealState
from jeopardy_app.config import BoardConfig
from jeopardy_app.exceptions import AcquisitionAttemptsExhausted, AcquisitionError, ProviderError
from jeopardy_app.jservice_client import JServiceClient
from jeopardy_app.metrics import record_category_id_attempt
from jeopardy_app.tracing import add_span_attribute, trace_function, trace_operation

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


@dataclass
class AcquisitionPolicy:
    """How hard to try when random category ids get rejected.

    max_attempts=None keeps trying until enough categories are found.
    """

    max_attempts: Optional[int] = None
    backoff_seconds: float = 0.0

    @classmethod
    def from_config(cls, config: BoardConfig) -> "AcquisitionPolicy":
        return cls(max_attempts=config.max_id_attempts, backoff_seconds=config.id_retry_backoff)


class BoardBuilder(object):
    def __init__(
        self,
        client: Optional[JServiceClient] = None,
        config: Optional[BoardConfig] = None,
        policy: Optional[AcquisitionPolicy] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client or JServiceClient()
        self.config = config or BoardConfig.from_settings()
        self.policy = policy or AcquisitionPolicy.from_config(self.config)
        self.rng = rng or random.Random()
        self.sleep = sleep

    @trace_function("BoardBuilder.acquire_category_ids")
    def acquire_category_ids(self, count: int, min_clue_count: int, id_range: Tuple[int, int]) -> List[int]:
        """Collect distinct category ids that have enough clues.

        Picks uniformly random ids from id_range (inclusive) until count ids are found.
        A pick is rejected when the category has fewer than min_clue_count clues or was
        already collected; rejected picks are retried according to the policy. Provider
        errors are not retried.

        Args:
            count: Number of distinct ids to collect
            min_clue_count: Minimum number of clues the source category must have
            id_range: (lowest, highest) id to pick from

        Returns:
            The ids in the order they were accepted

        Raises:
            ProviderError: If the provider fails on any pick
            AcquisitionAttemptsExhausted: If the policy's attempt budget runs out
        """
        low, high = id_range
        category_ids: List[int] = []
        attempts = 0

        while len(category_ids) < count:
            if self.policy.max_attempts is not None and attempts >= self.policy.max_attempts:
                raise AcquisitionAttemptsExhausted(
                    f"Found only {len(category_ids)} of {count} categories after {attempts} attempts"
                )
            attempts += 1

            candidate_id = self.rng.randint(low, high)
            source = self.client.get_category(candidate_id)

            # The provider's id is authoritative
            if source.clues_count < min_clue_count:
                logger.debug(f"Rejecting category {source.id}: only {source.clues_count} clues")
                record_category_id_attempt("too_few_clues")
            elif source.id in category_ids:
                logger.debug(f"Rejecting category {source.id}: already on the board")
                record_category_id_attempt("duplicate")
            else:
                logger.info(f"Accepted category {source.id} ({source.title!r}, {source.clues_count} clues)")
                record_category_id_attempt("accepted")
                category_ids.append(source.id)
                continue

            if self.policy.backoff_seconds > 0:
                self.sleep(self.policy.backoff_seconds)

        add_span_attribute("board.id_attempts", attempts)
        logger.info(f"Collected {count} category ids in {attempts} attempts")
        return category_ids

    def acquire_category(self, category_id: int, clues_per_category: int) -> Category:
        """Fetch a category and keep its first clues_per_category clues, all hidden.

        Clues are kept in source order. A category with fewer clues than requested is
        returned with what it has.
        """
        with trace_operation("BoardBuilder.acquire_category", category_id=category_id):
            source = self.client.get_category(category_id)

        clues = [
            Clue(question=clue.question, answer=clue.answer, reveal_state=RevealState.HIDDEN)
            for clue in source.clues[:clues_per_category]
        ]
        if len(clues) < clues_per_category:
            logger.warning(
                f"Category {source.id} has only {len(clues)} clues, wanted {clues_per_category}"
            )
        return Category(id=source.id, title=source.title, clues=clues)

    @trace_function("BoardBuilder.acquire_board")
    def acquire_board(
        self,
        count: Optional[int] = None,
        clues_per_category: Optional[int] = None,
        min_clue_count: Optional[int] = None,
        id_range: Optional[Tuple[int, int]] = None,
    ) -> List[Category]:
        """Acquire a complete board: the ids first, then each category in id order.

        Any provider failure aborts the whole acquisition; no partial board is returned.

        Raises:
            AcquisitionError: If any id or category could not be acquired
        """
        count = self.config.num_categories if count is None else count
        clues_per_category = self.config.clues_per_category if clues_per_category is None else clues_per_category
        min_clue_count = self.config.min_source_clues if min_clue_count is None else min_clue_count
        id_range = self.config.id_range if id_range is None else id_range

        try:
            category_ids = self.acquire_category_ids(count, min_clue_count, id_range)
            # Board order follows id acquisition order
            categories = [self.acquire_category(category_id, clues_per_category) for category_id in category_ids]
        except ProviderError as e:
            logger.error(f"Board acquisition failed: {e}")
            raise AcquisitionError(f"Could not load the board: {e}") from e

        return categories
