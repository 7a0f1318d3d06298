"""Review-interval model: next-due time from a continuous mastery level."""
import logging
import math
from datetime import UTC, datetime, timedelta
from typing import Callable, Optional, Sequence

from lingodeck.config import settings
from lingodeck.models.progress_models import CardProgress

logger = logging.getLogger(__name__)


class IntervalModel:
    """Interpolates between base intervals using the fractional part of the level."""

    def __init__(
        self,
        intervals: Optional[Sequence[float]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.intervals = list(settings.learning.repetition_intervals if intervals is None else intervals)
        if not self.intervals:
            raise ValueError("At least one interval is required")
        self.clock = clock

    def days_for_level(self, level: float) -> float:
        """Days until the next review for a card at ``level``."""
        whole = math.floor(level)
        fraction = level - whole

        if whole >= len(self.intervals) - 1:
            return float(self.intervals[-1])

        lower = self.intervals[whole]
        upper = self.intervals[whole + 1] if whole + 1 < len(self.intervals) else lower * 2
        return lower + (upper - lower) * fraction

    def compute_next_review(self, progress: CardProgress, now: Optional[datetime] = None) -> datetime:
        """Absolute timestamp of the next review for ``progress``."""
        now = now or self.clock()
        days = self.days_for_level(progress.level)
        logger.debug(f"Card {progress.item_id} at level {progress.level:.2f}: next review in {days:.2f} days")
        return now + timedelta(days=days)
