"""Review statistics, progress summary and achievements."""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from lingodeck.config import settings
from lingodeck.models.progress_models import ProgressDocument
from lingodeck.models.vocabulary_models import SkillTier
from lingodeck.services.catalog_service import VocabularyCatalog
from lingodeck.services.progress_service import ProgressStore

logger = logging.getLogger(__name__)

LEVEL_BUCKETS = 6

STREAK_ACHIEVEMENTS = {
    7: ("Week Warrior", "7 day streak achieved!", "🔥"),
    30: ("Monthly Master", "30 day streak achieved!", "🏆"),
    100: ("Century Champion", "100 day streak achieved!", "👑"),
}

MASTERY_ACHIEVEMENTS = {
    10: ("First Ten", "10 words mastered!", "⭐"),
    50: ("Fifty Fantastic", "50 words mastered!", "🌟"),
    100: ("Vocabulary Centurion", "100 words mastered!", "💫"),
}


@dataclass
class ReviewStatistics:
    """Where the words of one language pair stand."""
    total: int = 0
    new: int = 0
    due: int = 0
    future: int = 0
    mastered: int = 0
    by_level: List[int] = field(default_factory=lambda: [0] * LEVEL_BUCKETS)
    by_skill_level: Dict[SkillTier, int] = field(default_factory=lambda: {tier: 0 for tier in SkillTier})


@dataclass
class ProgressSummary:
    daily_new: int
    daily_review: int
    time_spent: float
    sessions: int
    streak: int
    total_words: int
    mastered: int
    due: int
    new: int
    today_accuracy: int
    overall_accuracy: int


@dataclass(frozen=True)
class Achievement:
    title: str
    description: str
    icon: str


def calculate_today_accuracy(document: ProgressDocument) -> int:
    """Mean accuracy of today's sessions, rounded to a whole percent."""
    if not document.daily_progress.sessions:
        return 0
    return round(document.daily_progress.mean_accuracy)


class StatisticsService:
    """Read-only views over the progress document and the catalog."""

    def __init__(self, progress_store: ProgressStore, catalog: VocabularyCatalog):
        self.progress_store = progress_store
        self.catalog = catalog

    def review_statistics(self, language_pair: str, now: Optional[datetime] = None) -> ReviewStatistics:
        learning = settings.learning
        now = now or self.progress_store.clock()
        cards = self.progress_store.cards_for(language_pair)
        items = self.catalog.items(language_pair)
        stats = ReviewStatistics(total=len(items))

        for item in items:
            progress = cards.get(item.key)
            if progress is None:
                stats.new += 1
                continue

            if progress.is_due(now):
                stats.due += 1
            else:
                stats.future += 1

            level = math.floor(progress.level)
            if 0 <= level < LEVEL_BUCKETS:
                stats.by_level[level] += 1
            stats.by_skill_level[progress.current_skill_tier] += 1

            if progress.is_mastered(learning.promotion_min_attempts, learning.promotion_accuracy):
                stats.mastered += 1

        return stats

    def progress_summary(self, language_pair: str) -> ProgressSummary:
        document = self.progress_store.document
        stats = self.review_statistics(language_pair)
        daily = document.daily_progress
        return ProgressSummary(
            daily_new=daily.new,
            daily_review=daily.review,
            time_spent=daily.time_spent,
            sessions=len(daily.sessions),
            streak=document.streak,
            total_words=stats.total,
            mastered=stats.mastered,
            due=stats.due,
            new=stats.new,
            today_accuracy=calculate_today_accuracy(document),
            overall_accuracy=document.accuracy.percent,
        )

    def achievements(self, language_pair: str) -> List[Achievement]:
        """Milestones hit exactly right now, for a one-off celebration."""
        unlocked = []
        streak = self.progress_store.document.streak
        if streak in STREAK_ACHIEVEMENTS:
            unlocked.append(Achievement(*STREAK_ACHIEVEMENTS[streak]))

        mastered = self.review_statistics(language_pair).mastered
        if mastered in MASTERY_ACHIEVEMENTS:
            unlocked.append(Achievement(*MASTERY_ACHIEVEMENTS[mastered]))

        for achievement in unlocked:
            logger.info(f"Achievement unlocked: {achievement.title}")
        return unlocked
