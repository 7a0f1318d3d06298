"""Scheduler choosing the cards of the next study session."""
import logging
import random
from datetime import UTC, datetime
from typing import Callable, List, Optional, Tuple, Union

from lingodeck import monitoring
from lingodeck.models.vocabulary_models import CardKind, SessionCard, VocabularyItem
from lingodeck.services.catalog_service import VocabularyCatalog
from lingodeck.services.progress_service import ProgressStore

logger = logging.getLogger(__name__)

SESSION_SIZE_ALL = "all"

SessionSize = Union[int, str]


class SessionScheduler:
    """Balances due reviews and new words against today's goals."""

    def __init__(
        self,
        progress_store: ProgressStore,
        catalog: VocabularyCatalog,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the scheduler with the progress store and the catalog."""
        self.progress_store = progress_store
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.clock = clock or progress_store.clock or (lambda: datetime.now(UTC))

    def partition(
        self, language_pair: str, now: Optional[datetime] = None
    ) -> Tuple[List[VocabularyItem], List[VocabularyItem]]:
        """Split the pair's vocabulary into new items and due items, most overdue first."""
        now = now or self.clock()
        cards = self.progress_store.cards_for(language_pair)

        new_items = []
        due = []
        for item in self.catalog.items(language_pair):
            progress = cards.get(item.key)
            if progress is None:
                new_items.append(item)
            elif progress.is_due(now):
                due.append((progress.next_review_at, item))

        due.sort(key=lambda entry: entry[0])
        return new_items, [item for _, item in due]

    def build_session(
        self,
        size: SessionSize,
        language_pair: str,
        now: Optional[datetime] = None,
    ) -> List[SessionCard]:
        """Select and shuffle the cards of one session.

        ``size`` is a positive card count, or ``"all"`` (also ``0``) to work
        through whatever is left of today's goals. Returns an empty list when
        there is nothing to study.
        """
        now = now or self.clock()
        new_items, due_items = self.partition(language_pair, now)
        logger.info(f"Available for {language_pair}: {len(new_items)} new, {len(due_items)} review cards")
        monitoring.due_cards.labels(language_pair=language_pair).set(len(due_items))

        goal = self.progress_store.daily_goal
        if size == SESSION_SIZE_ALL or size == 0:
            target_new = goal.new_gap
            target_review = goal.review_gap
        else:
            size = int(size)
            if size < 0:
                raise ValueError(f"Session size must be positive, got {size}")
            target_review, target_new = self._allocate(size, len(due_items), len(new_items), goal)

        selected = [SessionCard(item, CardKind.REVIEW) for item in due_items[:target_review]]
        selected.extend(SessionCard(item, CardKind.NEW) for item in new_items[:target_new])
        logger.info(f"Session for {language_pair}: {target_review} review, {target_new} new")

        # Selection follows priority; presentation order does not
        self.rng.shuffle(selected)
        return selected

    @staticmethod
    def _allocate(size, due_available, new_available, goal) -> Tuple[int, int]:
        target_review = min(size, due_available, goal.review_gap)
        remaining = size - target_review

        target_new = 0
        if remaining > 0:
            target_new = min(remaining, new_available, goal.new_gap)

        if target_new + target_review < size and goal.goals_met:
            extra_review = min(size - target_new - target_review, due_available - target_review)
            target_review += extra_review
            if target_new + target_review < size:
                target_new += min(size - target_new - target_review, new_available - target_new)

        return target_review, target_new
