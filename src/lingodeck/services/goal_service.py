"""Adaptive daily goals."""
import logging

from lingodeck import monitoring
from lingodeck.config import settings
from lingodeck.models.progress_models import ProgressDocument

logger = logging.getLogger(__name__)


class AdaptiveGoalController:
    """Nudges tomorrow's targets by one step from today's mean session accuracy."""

    def __init__(self, learning=None):
        self.learning = learning or settings.learning

    def adjust(self, document: ProgressDocument) -> bool:
        """Adjust ``document``'s goal targets in place; True if they changed."""
        learning = self.learning
        sessions = document.daily_progress.sessions
        if len(sessions) < learning.adaptive_min_sessions:
            return False

        mean_accuracy = document.daily_progress.mean_accuracy
        goal = document.daily_goal
        target = document.adaptive_goal
        before = (target.new_target, target.review_target)

        if mean_accuracy > learning.adaptive_raise_accuracy and goal.goals_met:
            target.new_target = min(learning.max_goal_new, target.new_target + 1)
            target.review_target = min(learning.max_goal_review, target.review_target + 1)
            direction = "up"
        elif mean_accuracy < learning.adaptive_lower_accuracy:
            target.new_target = max(learning.min_goal_new, target.new_target - 1)
            target.review_target = max(learning.min_goal_review, target.review_target - 1)
            direction = "down"
        else:
            return False

        changed = (target.new_target, target.review_target) != before
        if changed:
            logger.info(
                f"Daily goals moved {direction} to {target.new_target} new / "
                f"{target.review_target} review (mean accuracy {mean_accuracy:.0f}%)"
            )
            monitoring.goal_adjustments.labels(direction=direction).inc()
        return changed
