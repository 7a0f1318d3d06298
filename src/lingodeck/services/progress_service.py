"""Progress store: per-card learning records, daily counters and streaks."""
import logging
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, Optional

from lingodeck import monitoring
from lingodeck.config import settings
from lingodeck.exceptions import StorageFailure, StorageQuotaExceeded
from lingodeck.models.progress_models import CardProgress, DailyGoal, DailyProgress, ProgressDocument, SessionSummary
from lingodeck.models.vocabulary_models import CardKind, ItemId, SkillTier
from lingodeck.services.interval_model import IntervalModel
from lingodeck.services.skill_service import attempt_promotion
from lingodeck.services.storage import PROGRESS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class ProgressStore:
    """Owns the progress document and every mutation of it.

    The document is read from the store once and kept in memory; each
    mutation writes the whole document back. A failed write is logged and
    reported through the return value of ``save`` while the in-memory state
    stays authoritative for the rest of the run.
    """

    def __init__(
        self,
        store: KeyValueStore,
        interval_model: Optional[IntervalModel] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        local_tz: Optional[tzinfo] = None,
        language_pair: Optional[str] = None,
    ):
        self.store = store
        self.language_pair = language_pair or settings.catalog.default_language_pair
        self.clock = clock
        self.local_tz = local_tz
        self.interval_model = interval_model or IntervalModel(clock=clock)
        self._document: Optional[ProgressDocument] = None

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def local_today(self) -> date:
        """Today's date on the device-local calendar."""
        return self.clock().astimezone(self.local_tz).date()

    @property
    def document(self) -> ProgressDocument:
        """The current document, rolled over to today if the day changed."""
        if self._document is None:
            self._document = self.load()
        elif self._document.last_studied != self.local_today():
            self._roll_over_day(self._document)
            self.save()
        return self._document

    def load(self) -> ProgressDocument:
        """Read the document from the store, creating one for a new learner."""
        learning = settings.learning
        data = self.store.get(PROGRESS_KEY)
        if data is None:
            document = self._new_document()
            logger.info("Created progress document for a new learner")
        else:
            document = ProgressDocument.from_dict(data, learning.daily_goal_new, learning.daily_goal_review)

        self._document = document
        if document.last_studied != self.local_today():
            self._roll_over_day(document)
            self.save()
        return document

    def _new_document(self) -> ProgressDocument:
        learning = settings.learning
        return ProgressDocument(
            adaptive_goal=DailyGoal(new_target=learning.daily_goal_new, review_target=learning.daily_goal_review),
            last_studied=self.local_today(),
        )

    def _roll_over_day(self, document: ProgressDocument) -> None:
        """Reset daily counters and break the streak if a day was skipped."""
        today = self.local_today()
        document.daily_progress = DailyProgress()
        yesterday = today - timedelta(days=1)
        if document.last_session_day is None or document.last_session_day < yesterday:
            if document.streak:
                logger.info("Streak reset - a day was skipped")
            document.streak = 0
        document.last_studied = today
        logger.debug(f"Daily progress reset for {today.isoformat()}")

    def save(self, document: Optional[ProgressDocument] = None) -> bool:
        """Write the whole document; on quota errors prune history and retry once."""
        document = document or self._document
        if document is None:
            return True
        try:
            self.store.set(PROGRESS_KEY, document.to_dict())
            return True
        except StorageQuotaExceeded as e:
            logger.warning(f"Failed to save progress: {e}")
            if self._prune_session_history(document):
                try:
                    self.store.set(PROGRESS_KEY, document.to_dict())
                    return True
                except StorageFailure as retry_error:
                    logger.error(f"Storage full even after cleanup: {retry_error}")
            else:
                logger.error("Storage full and there is no session history to prune")
        except StorageFailure as e:
            logger.error(f"Failed to save progress: {e}")
        monitoring.storage_errors.labels(key=PROGRESS_KEY).inc()
        return False

    def _prune_session_history(self, document: ProgressDocument) -> bool:
        keep = settings.storage.session_history_keep
        sessions = document.daily_progress.sessions
        if len(sessions) <= keep:
            return False
        document.daily_progress.sessions = sessions[-keep:]
        logger.info(f"Cleared old session history to save space, kept {keep} sessions")
        return True

    def replace(self, data: Dict[str, Any]) -> ProgressDocument:
        """Replace the whole document, e.g. from an imported backup."""
        learning = settings.learning
        document = ProgressDocument.from_dict(data, learning.daily_goal_new, learning.daily_goal_review)
        self._document = document
        if document.last_studied != self.local_today():
            self._roll_over_day(document)
        self.save()
        return document

    def reset(self) -> None:
        """Forget all learning progress; vocabulary is kept."""
        self.store.delete(PROGRESS_KEY)
        self._document = None
        logger.info("Progress reset")

    # ------------------------------------------------------------------
    # Card progress
    # ------------------------------------------------------------------

    def get_card_progress(self, item_id: ItemId, language_pair: Optional[str] = None) -> Optional[CardProgress]:
        return self.document.progress.get(language_pair or self.language_pair, {}).get(str(item_id))

    def cards_for(self, language_pair: Optional[str] = None) -> Dict[str, CardProgress]:
        return dict(self.document.progress.get(language_pair or self.language_pair, {}))

    @property
    def daily_goal(self) -> DailyGoal:
        return self.document.daily_goal

    def update_card_progress(
        self,
        item_id: ItemId,
        is_correct: bool,
        tier: SkillTier,
        kind: CardKind,
        language_pair: Optional[str] = None,
    ) -> CardProgress:
        """Apply one answer to a card and persist the document."""
        learning = settings.learning
        language_pair = language_pair or self.language_pair
        tier = SkillTier.parse(tier)
        document = self.document
        now = self.clock()
        key = str(item_id)

        logger.info(
            f"Updating card {key}: {'CORRECT' if is_correct else 'INCORRECT'} "
            f"at {tier.label} level ({kind.value})"
        )

        cards = document.cards_for(language_pair)
        card = cards.get(key)
        is_new_card = card is None
        if card is None:
            card = CardProgress.initial(key, tier, now)

        card.stats_for(tier).record(is_correct)

        if is_correct:
            multiplier = learning.skill_multipliers[int(tier)]
            card.level = min(learning.max_level, card.level + multiplier)
            card.times_correct += 1
            logger.debug(f"Card level increased by {multiplier} to {card.level}")
        else:
            penalty = learning.beginner_penalty if tier is SkillTier.BEGINNER else learning.default_penalty
            card.level = max(0.0, card.level - penalty)
            logger.debug(f"Card level decreased by {penalty} to {card.level}")

        card.times_seen += 1
        card.last_seen = now
        card.current_skill_tier = tier
        card.recommended_tier = max(card.recommended_tier, tier)
        card.next_review_at = self.interval_model.compute_next_review(card, now)

        previous = card.recommended_tier
        card.recommended_tier = attempt_promotion(tier, card.stats_for(tier), card.recommended_tier)
        if card.recommended_tier > previous:
            logger.info(f"Card {key} ready for promotion to {card.recommended_tier.label}")
            monitoring.promotions_total.labels(to_tier=card.recommended_tier.label).inc()

        cards[key] = card

        self._update_daily_progress(document, is_new_card, f"{language_pair}:{key}", kind, is_correct, tier)
        document.accuracy.total += 1
        if is_correct:
            document.accuracy.correct += 1

        monitoring.answers_total.labels(
            tier=tier.label, outcome="correct" if is_correct else "incorrect"
        ).inc()
        self.save()
        return card

    def _update_daily_progress(
        self,
        document: ProgressDocument,
        is_new_card: bool,
        seen_key: str,
        kind: CardKind,
        is_correct: bool,
        tier: SkillTier,
    ) -> None:
        daily = document.daily_progress
        if seen_key in daily.cards_seen:
            return
        daily.cards_seen.add(seen_key)

        slack = settings.learning.daily_counter_slack
        goal = document.adaptive_goal
        if is_new_card or kind is CardKind.NEW:
            daily.new = min(goal.new_target + slack, daily.new + 1)
            logger.debug(f"Daily new words: {daily.new}/{goal.new_target}")
            if is_correct and tier is SkillTier.ADVANCED:
                document.total_learned += 1
        else:
            daily.review = min(goal.review_target + slack, daily.review + 1)
            logger.debug(f"Daily review words: {daily.review}/{goal.review_target}")

    # ------------------------------------------------------------------
    # Sessions and preferences
    # ------------------------------------------------------------------

    def add_time_spent(self, minutes: float) -> None:
        self.document.daily_progress.time_spent += max(0.0, minutes)
        self.save()

    def record_session(self, summary: SessionSummary, minutes: float) -> ProgressDocument:
        """Append a completed session to today's history and extend the streak."""
        document = self.document
        today = self.local_today()
        document.daily_progress.sessions.append(summary)
        document.daily_progress.time_spent += max(0.0, minutes)

        if document.last_session_day != today:
            if document.last_session_day == today - timedelta(days=1):
                document.streak += 1
                logger.info(f"Streak increased to {document.streak} days")
            else:
                document.streak = 1
            document.last_session_day = today

        self.save()
        return document

    def set_default_skill_level(self, level: int) -> None:
        self.document.default_skill_level = level
        self.save()

    def set_goal_targets(self, new_target: int, review_target: int) -> None:
        goal = self.document.adaptive_goal
        goal.new_target = new_target
        goal.review_target = review_target
        self.save()
