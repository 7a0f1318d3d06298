"""Application context: learner preferences and the paused session."""
import logging
from typing import Any, Dict, Optional

from lingodeck import monitoring
from lingodeck.config import settings
from lingodeck.exceptions import StorageFailure
from lingodeck.models.progress_models import DailyGoal, PausedSession
from lingodeck.models.vocabulary_models import AUTO_TIER, SkillTier
from lingodeck.services.progress_service import ProgressStore
from lingodeck.services.storage import APP_STATE_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class AppContext:
    """Explicit state shared by the study flow, persisted under ``appState``."""

    def __init__(self, store: KeyValueStore, progress_store: Optional[ProgressStore] = None):
        self.store = store
        self.progress_store = progress_store
        self.current_language_pair = settings.catalog.default_language_pair
        self.default_skill_level = AUTO_TIER
        self.paused_session: Optional[PausedSession] = None
        self._sync_progress_store()

    def _sync_progress_store(self) -> None:
        if self.progress_store is not None:
            self.progress_store.language_pair = self.current_language_pair

    @property
    def daily_goal(self) -> DailyGoal:
        if self.progress_store is not None:
            return self.progress_store.daily_goal
        learning = settings.learning
        return DailyGoal(new_target=learning.daily_goal_new, review_target=learning.daily_goal_review)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentLanguagePair": self.current_language_pair,
            "defaultSkillLevel": self.default_skill_level,
            "dailyGoal": self.daily_goal.to_dict(),
            "pausedSession": self.paused_session.to_dict() if self.paused_session else None,
        }

    def restore(self, data: Dict[str, Any]) -> None:
        """Apply a persisted snapshot; unknown or invalid values are ignored."""
        pair = data.get("currentLanguagePair")
        if pair in settings.catalog.language_pairs:
            self.current_language_pair = pair
        level = data.get("defaultSkillLevel")
        if isinstance(level, int) and AUTO_TIER <= level <= SkillTier.ADVANCED:
            self.default_skill_level = level

        paused = data.get("pausedSession")
        self.paused_session = None
        if paused:
            try:
                self.paused_session = PausedSession.from_dict(paused)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding unreadable paused session: {e}")
        self._sync_progress_store()

    def load(self) -> bool:
        """Restore the persisted snapshot; False when there is none."""
        data = self.store.get(APP_STATE_KEY)
        if not data:
            if self.progress_store is not None:
                self.default_skill_level = self.progress_store.document.default_skill_level
            return False
        self.restore(data)
        logger.info("State restored from persistence")
        return True

    def save(self) -> bool:
        try:
            self.store.set(APP_STATE_KEY, self.to_dict())
            return True
        except StorageFailure as e:
            logger.error(f"Failed to save state: {e}")
            monitoring.storage_errors.labels(key=APP_STATE_KEY).inc()
            return False

    def reset(self) -> None:
        """Back to defaults, without touching the store."""
        self.current_language_pair = settings.catalog.default_language_pair
        self.default_skill_level = AUTO_TIER
        self.paused_session = None
        self._sync_progress_store()

    def set_language_pair(self, language_pair: str) -> bool:
        if language_pair not in settings.catalog.language_pairs:
            logger.warning(f"Unknown language pair: {language_pair}")
            return False
        self.current_language_pair = language_pair
        self._sync_progress_store()
        self.save()
        logger.info(f"Language pair changed to: {language_pair}")
        return True

    def set_default_skill_level(self, level: int) -> bool:
        """Set the learner default: AUTO_TIER or a fixed tier."""
        if not AUTO_TIER <= level <= SkillTier.ADVANCED:
            return False
        self.default_skill_level = int(level)
        if self.progress_store is not None:
            self.progress_store.set_default_skill_level(self.default_skill_level)
        self.save()
        label = "Auto" if level == AUTO_TIER else SkillTier(level).label
        logger.info(f"Default skill level set to: {label}")
        return True

    # ------------------------------------------------------------------
    # Paused session
    # ------------------------------------------------------------------

    def pause(self, paused: PausedSession) -> None:
        self.paused_session = paused
        self.save()
        logger.info("Session paused and saved")

    def paused_session_for_current_pair(self) -> Optional[PausedSession]:
        """The paused session, but only if it belongs to the current pair."""
        paused = self.paused_session
        if paused is not None and paused.language_pair == self.current_language_pair:
            return paused
        return None

    def take_paused_session(self) -> Optional[PausedSession]:
        """Remove and return the paused session of the current pair."""
        paused = self.paused_session_for_current_pair()
        if paused is not None:
            self.paused_session = None
            self.save()
        return paused

    def clear_paused_session(self) -> None:
        if self.paused_session is not None:
            self.paused_session = None
            self.save()
