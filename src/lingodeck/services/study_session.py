"""Study session flow: start, answer, pause, resume and complete."""
import logging
import random
from dataclasses import dataclass
from typing import Optional

from lingodeck import monitoring
from lingodeck.exceptions import NoCardsAvailable, SessionStateError
from lingodeck.models.progress_models import PausedSession, SessionRecord, SessionSummary
from lingodeck.models.vocabulary_models import SessionCard, SkillTier
from lingodeck.services.app_state_service import AppContext
from lingodeck.services.catalog_service import VocabularyCatalog
from lingodeck.services.goal_service import AdaptiveGoalController
from lingodeck.services.progress_service import ProgressStore
from lingodeck.services.session_scheduler import SessionScheduler, SessionSize
from lingodeck.services.skill_service import (
    AnswerResult,
    Challenge,
    challenge_for,
    check_choice,
    determine_tier,
    validate_answer,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionOutcome:
    """What the completion screen shows."""
    summary: SessionSummary
    minutes: int
    goals_met: bool
    goals_adjusted: bool


class StudySession:
    """Drives one study session over the engine services.

    The front end calls ``start`` or ``resume``, shows ``challenge``, feeds
    the answer to ``submit_answer`` or ``select_choice``, then calls
    ``next_card`` until it returns False and finally ``complete``.
    """

    def __init__(
        self,
        context: AppContext,
        progress_store: ProgressStore,
        scheduler: SessionScheduler,
        catalog: VocabularyCatalog,
        goal_controller: Optional[AdaptiveGoalController] = None,
        rng: Optional[random.Random] = None,
    ):
        self.context = context
        self.progress_store = progress_store
        self.scheduler = scheduler
        self.catalog = catalog
        self.goal_controller = goal_controller or AdaptiveGoalController()
        self.rng = rng or random.Random()
        self.clock = progress_store.clock
        self.record: Optional[SessionRecord] = None
        self.challenge: Optional[Challenge] = None
        self.answered = False

    @property
    def is_active(self) -> bool:
        return self.record is not None

    @property
    def current_card(self) -> Optional[SessionCard]:
        return self.record.current_card if self.record else None

    @property
    def current_tier(self) -> Optional[SkillTier]:
        return self.challenge.tier if self.challenge else None

    def _require_card(self) -> SessionCard:
        card = self.current_card
        if card is None:
            raise SessionStateError("No card is being studied")
        return card

    def start(self, size: SessionSize) -> SessionRecord:
        """Build a new session for the current pair; drops any paused one."""
        pair = self.context.current_language_pair
        cards = self.scheduler.build_session(size, pair)
        if not cards:
            logger.info(f"No cards available for {pair}")
            raise NoCardsAvailable(f"Nothing to study for {pair} right now")

        self.record = SessionRecord(cards=cards, language_pair=pair, started_at=self.clock())
        self.context.clear_paused_session()
        monitoring.sessions_started.labels(language_pair=pair).inc()
        logger.info(f"Session created with {len(cards)} cards")
        self._prepare_card()
        return self.record

    def resume(self) -> bool:
        """Continue the paused session of the current pair, if there is one."""
        paused = self.context.take_paused_session()
        if paused is None:
            return False
        now = self.clock()
        self.record = paused.to_record(now)
        # Time before the pause was already booked
        self.record.started_at = now
        logger.info(f"Session resumed with {self.record.remaining} cards left")
        if self.record.is_finished:
            return True
        self._prepare_card()
        return True

    def _prepare_card(self, tier: Optional[SkillTier] = None) -> None:
        card = self._require_card()
        if tier is None:
            progress = self.progress_store.get_card_progress(card.item.id, self.record.language_pair)
            tier = determine_tier(progress, self.context.default_skill_level)
        self.challenge = challenge_for(tier).create_challenge(
            card.item, self.catalog.items(self.record.language_pair), self.rng
        )
        self.answered = False

    def override_tier_for_current_card(self, tier) -> Challenge:
        """Switch the tier of the current card only, before it is answered."""
        self._require_card()
        if self.answered:
            raise SessionStateError("The current card was already answered")
        tier = SkillTier.parse(tier)
        self._prepare_card(tier)
        logger.info(f"Tier for current card switched to {tier.label}")
        return self.challenge

    def submit_answer(self, user_input: str) -> AnswerResult:
        """Check a typed answer for the current card."""
        card = self._require_card()
        if not self.challenge.expects_text:
            raise SessionStateError("The current card expects a choice")
        result = validate_answer(user_input, card.item.accepted_translations, self.challenge.tier)
        self._record(card, result)
        return result

    def select_choice(self, index: int) -> AnswerResult:
        """Check a multiple-choice selection for the current card."""
        card = self._require_card()
        if self.challenge.expects_text:
            raise SessionStateError("The current card expects a typed answer")
        option = next((o for o in self.challenge.options if o.index == index), None)
        if option is not None and option.is_placeholder:
            raise ValueError("Placeholder options cannot be selected")
        result = check_choice(self.challenge.options, index)
        self._record(card, result)
        return result

    def _record(self, card: SessionCard, result: AnswerResult) -> None:
        if self.answered:
            raise SessionStateError("The current card was already answered")
        self.progress_store.update_card_progress(
            card.item.id,
            result.is_correct,
            self.challenge.tier,
            card.kind,
            self.record.language_pair,
        )
        self.record.record_answer(card.item.key, result.is_correct)
        self.answered = True

    def next_card(self) -> bool:
        """Advance after an answer; False once the session is exhausted."""
        self._require_card()
        if not self.answered:
            raise SessionStateError("Answer the current card first")
        if self.record.advance():
            self._prepare_card()
            return True
        self.challenge = None
        return False

    def _elapsed_minutes(self) -> float:
        return max(0.0, (self.clock() - self.record.started_at).total_seconds() / 60)

    def pause(self) -> PausedSession:
        """Book the time spent and snapshot the session for later."""
        if self.record is None:
            raise SessionStateError("No active session")
        if self.answered:
            self.record.advance()
        self.progress_store.add_time_spent(self._elapsed_minutes())
        paused = self.record.to_paused()
        self.context.pause(paused)
        monitoring.sessions_paused.inc()
        self.record = None
        self.challenge = None
        self.answered = False
        return paused

    def complete(self) -> SessionOutcome:
        """Record the session in today's history and adapt the daily goals."""
        if self.record is None:
            raise SessionStateError("No active session")
        record = self.record
        minutes = round(self._elapsed_minutes())
        local_now = self.clock().astimezone(self.progress_store.local_tz)
        summary = SessionSummary(
            time=local_now.strftime("%H:%M"),
            words=record.total_count,
            accuracy=record.accuracy_percent,
        )

        document = self.progress_store.record_session(summary, minutes)
        adjusted = self.goal_controller.adjust(document)
        if adjusted:
            self.progress_store.save()

        monitoring.sessions_completed.labels(language_pair=record.language_pair).inc()
        monitoring.session_accuracy.observe(summary.accuracy)
        logger.info(
            f"Session completed: {summary.words} words, {summary.accuracy}% accuracy, {minutes} min"
        )
        self.record = None
        self.challenge = None
        self.answered = False
        return SessionOutcome(
            summary=summary,
            minutes=minutes,
            goals_met=document.daily_goal.goals_met,
            goals_adjusted=adjusted,
        )
