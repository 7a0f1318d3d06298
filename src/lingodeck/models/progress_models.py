"""Models for learning progress, daily goals and study sessions.

Every model here round-trips through plain JSON documents via
``to_dict``/``from_dict``; the on-disk field names are camelCase so that
documents written by older versions of the trainer keep loading.
"""
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Dict, List, Optional, Set

from lingodeck.config import settings
from lingodeck.models.vocabulary_models import SessionCard, SkillTier

LEGACY_DATE_FORMAT = "%a %b %d %Y"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string or a legacy epoch-milliseconds number."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date or the ``Mon Oct 19 2026`` form of older documents."""
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.strptime(value, LEGACY_DATE_FORMAT).date()


@dataclass
class TierStats:
    """Answer counters for one skill tier of one card."""
    correct_count: int = 0
    total_count: int = 0
    current_streak: int = 0

    @property
    def accuracy(self) -> float:
        if not self.total_count:
            return 0.0
        return self.correct_count / self.total_count

    def record(self, is_correct: bool) -> None:
        self.total_count += 1
        if is_correct:
            self.correct_count += 1
            self.current_streak += 1
        else:
            self.current_streak = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "correct": self.correct_count,
            "total": self.total_count,
            "streak": self.current_streak,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TierStats":
        data = data or {}
        return cls(
            correct_count=int(data.get("correct", 0)),
            total_count=int(data.get("total", 0)),
            current_streak=int(data.get("streak", 0)),
        )


def empty_tier_stats() -> Dict[SkillTier, TierStats]:
    return {tier: TierStats() for tier in SkillTier}


@dataclass
class CardProgress:
    """Learning record of one vocabulary item."""
    item_id: str
    last_seen: datetime
    next_review_at: datetime
    level: float = 0.0
    times_seen: int = 0
    times_correct: int = 0
    current_skill_tier: SkillTier = SkillTier.BEGINNER
    recommended_tier: SkillTier = SkillTier.BEGINNER
    per_tier_stats: Dict[SkillTier, TierStats] = field(default_factory=empty_tier_stats)

    def __post_init__(self) -> None:
        for tier in SkillTier:
            self.per_tier_stats.setdefault(tier, TierStats())

    @classmethod
    def initial(cls, item_id: str, tier: SkillTier, now: datetime) -> "CardProgress":
        """Progress for an item answered for the first time."""
        return cls(
            item_id=item_id,
            last_seen=now,
            next_review_at=now,
            current_skill_tier=tier,
            recommended_tier=tier,
        )

    def stats_for(self, tier: SkillTier) -> TierStats:
        return self.per_tier_stats[tier]

    def is_due(self, now: datetime) -> bool:
        return self.next_review_at <= now

    def is_mastered(self, min_attempts: int = 3, min_accuracy: float = 0.8) -> bool:
        """Mastered means sustained accuracy at the advanced tier."""
        stats = self.per_tier_stats[SkillTier.ADVANCED]
        return stats.total_count >= min_attempts and stats.accuracy >= min_accuracy

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.item_id,
            "level": self.level,
            "lastSeen": format_timestamp(self.last_seen),
            "nextReview": format_timestamp(self.next_review_at),
            "timesSeen": self.times_seen,
            "timesCorrect": self.times_correct,
            "skillLevel": int(self.current_skill_tier),
            "recommendedSkillLevel": int(self.recommended_tier),
            "skillProgress": {
                str(int(tier)): stats.to_dict() for tier, stats in self.per_tier_stats.items()
            },
        }

    @classmethod
    def from_dict(cls, item_id: str, data: Dict[str, Any]) -> "CardProgress":
        # Records written before skill tiers existed carry no skill fields
        skill_progress = data.get("skillProgress") or {}
        current = SkillTier.parse(data.get("skillLevel") or SkillTier.BEGINNER)
        recommended = SkillTier.parse(data.get("recommendedSkillLevel") or current)
        last_seen = parse_timestamp(data.get("lastSeen")) or datetime.now(UTC)
        next_review = parse_timestamp(data.get("nextReview")) or last_seen
        return cls(
            item_id=str(data.get("id", item_id)),
            level=min(settings.learning.max_level, max(0.0, float(data.get("level", 0.0)))),
            last_seen=last_seen,
            next_review_at=max(next_review, last_seen),
            times_seen=int(data.get("timesSeen", 0)),
            times_correct=int(data.get("timesCorrect", 0)),
            current_skill_tier=current,
            recommended_tier=max(recommended, current),
            per_tier_stats={
                tier: TierStats.from_dict(skill_progress.get(str(int(tier))))
                for tier in SkillTier
            },
        )


@dataclass
class SessionSummary:
    """One completed session in today's history."""
    time: str
    words: int
    accuracy: int  # percent

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time, "words": self.words, "accuracy": self.accuracy}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionSummary":
        return cls(
            time=str(data.get("time", "")),
            words=int(data.get("words", 0)),
            accuracy=int(data.get("accuracy", 0)),
        )


@dataclass
class DailyProgress:
    """Counters reset at the start of each local calendar day."""
    new: int = 0
    review: int = 0
    sessions: List[SessionSummary] = field(default_factory=list)
    time_spent: float = 0.0  # minutes
    cards_seen: Set[str] = field(default_factory=set)

    @property
    def mean_accuracy(self) -> float:
        if not self.sessions:
            return 0.0
        return sum(s.accuracy for s in self.sessions) / len(self.sessions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "new": self.new,
            "review": self.review,
            "sessions": [s.to_dict() for s in self.sessions],
            "timeSpent": self.time_spent,
            "cardsSeen": {key: True for key in sorted(self.cards_seen)},
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DailyProgress":
        data = data or {}
        return cls(
            new=int(data.get("new", 0)),
            review=int(data.get("review", 0)),
            sessions=[SessionSummary.from_dict(s) for s in data.get("sessions") or []],
            time_spent=float(data.get("timeSpent", 0.0)),
            cards_seen={key for key, seen in (data.get("cardsSeen") or {}).items() if seen},
        )


@dataclass
class DailyGoal:
    """Today's new/review targets and how much of them is done."""
    new_target: int
    review_target: int
    completed_new: int = 0
    completed_review: int = 0
    adaptive_factor: float = 1.0

    @property
    def new_gap(self) -> int:
        return max(0, self.new_target - self.completed_new)

    @property
    def review_gap(self) -> int:
        return max(0, self.review_target - self.completed_review)

    @property
    def goals_met(self) -> bool:
        return self.completed_new >= self.new_target and self.completed_review >= self.review_target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "new": self.new_target,
            "review": self.review_target,
            "adaptiveFactor": self.adaptive_factor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_new: int, default_review: int) -> "DailyGoal":
        return cls(
            new_target=int(data.get("new", default_new)),
            review_target=int(data.get("review", default_review)),
            adaptive_factor=float(data.get("adaptiveFactor", 1.0)),
        )


@dataclass
class AccuracyCounter:
    correct: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.correct / self.total * 100)

    def to_dict(self) -> Dict[str, int]:
        return {"correct": self.correct, "total": self.total}


@dataclass
class ProgressDocument:
    """The whole persisted learning state of one learner."""
    adaptive_goal: DailyGoal
    progress: Dict[str, Dict[str, CardProgress]] = field(default_factory=dict)
    streak: int = 0
    last_studied: Optional[date] = None
    last_session_day: Optional[date] = None
    daily_progress: DailyProgress = field(default_factory=DailyProgress)
    accuracy: AccuracyCounter = field(default_factory=AccuracyCounter)
    total_learned: int = 0
    default_skill_level: int = 0

    @property
    def daily_goal(self) -> DailyGoal:
        """Targets joined with today's completed counters."""
        return DailyGoal(
            new_target=self.adaptive_goal.new_target,
            review_target=self.adaptive_goal.review_target,
            completed_new=self.daily_progress.new,
            completed_review=self.daily_progress.review,
            adaptive_factor=self.adaptive_goal.adaptive_factor,
        )

    def cards_for(self, language_pair: str) -> Dict[str, CardProgress]:
        return self.progress.setdefault(language_pair, {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "progress": {
                pair: {item_id: card.to_dict() for item_id, card in cards.items()}
                for pair, cards in self.progress.items()
            },
            "streak": self.streak,
            "lastStudied": self.last_studied.isoformat() if self.last_studied else None,
            "lastSessionDay": self.last_session_day.isoformat() if self.last_session_day else None,
            "dailyProgress": self.daily_progress.to_dict(),
            "accuracy": self.accuracy.to_dict(),
            "totalLearned": self.total_learned,
            "adaptiveGoal": self.adaptive_goal.to_dict(),
            "defaultSkillLevel": self.default_skill_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_new: int, default_review: int) -> "ProgressDocument":
        accuracy = data.get("accuracy") or {}
        return cls(
            progress={
                pair: {
                    str(item_id): CardProgress.from_dict(str(item_id), card)
                    for item_id, card in (cards or {}).items()
                }
                for pair, cards in (data.get("progress") or {}).items()
            },
            streak=int(data.get("streak", 0)),
            last_studied=parse_date(data.get("lastStudied")),
            last_session_day=parse_date(data.get("lastSessionDay")),
            daily_progress=DailyProgress.from_dict(data.get("dailyProgress")),
            accuracy=AccuracyCounter(
                correct=int(accuracy.get("correct", 0)),
                total=int(accuracy.get("total", 0)),
            ),
            total_learned=int(data.get("totalLearned", 0)),
            adaptive_goal=DailyGoal.from_dict(data.get("adaptiveGoal") or {}, default_new, default_review),
            default_skill_level=int(data.get("defaultSkillLevel", 0)),
        )


@dataclass
class SessionRecord:
    """In-memory state of the study session in progress."""
    cards: List[SessionCard]
    language_pair: str
    started_at: datetime
    cursor: int = 0
    correct_count: int = 0
    total_count: int = 0
    words_completed: List[str] = field(default_factory=list)

    @property
    def current_card(self) -> Optional[SessionCard]:
        if self.cursor < len(self.cards):
            return self.cards[self.cursor]
        return None

    @property
    def is_finished(self) -> bool:
        return self.cursor >= len(self.cards)

    @property
    def remaining(self) -> int:
        return max(0, len(self.cards) - self.cursor)

    @property
    def accuracy_percent(self) -> int:
        if not self.total_count:
            return 0
        return round(self.correct_count / self.total_count * 100)

    def record_answer(self, item_key: str, is_correct: bool) -> None:
        self.total_count += 1
        if is_correct:
            self.correct_count += 1
        self.words_completed.append(item_key)

    def advance(self) -> bool:
        """Move to the next card; False once the session is exhausted."""
        self.cursor += 1
        return not self.is_finished

    def to_paused(self) -> "PausedSession":
        return PausedSession(
            cards=list(self.cards),
            current_index=self.cursor,
            correct_count=self.correct_count,
            total_count=self.total_count,
            started_at=self.started_at,
            language_pair=self.language_pair,
            words_completed=list(self.words_completed),
        )


@dataclass
class PausedSession:
    """Serialized snapshot of a paused study session."""
    cards: List[SessionCard]
    current_index: int
    correct_count: int
    total_count: int
    started_at: Optional[datetime]
    language_pair: str
    words_completed: List[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, len(self.cards) - self.current_index)

    def to_record(self, resumed_at: datetime) -> SessionRecord:
        return SessionRecord(
            cards=list(self.cards),
            language_pair=self.language_pair,
            started_at=self.started_at or resumed_at,
            cursor=self.current_index,
            correct_count=self.correct_count,
            total_count=self.total_count,
            words_completed=list(self.words_completed),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cards": [card.to_dict() for card in self.cards],
            "currentIndex": self.current_index,
            "stats": {
                "correct": self.correct_count,
                "total": self.total_count,
                "startTime": format_timestamp(self.started_at),
                "wordsCompleted": list(self.words_completed),
            },
            "languagePair": self.language_pair,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PausedSession":
        stats = data.get("stats") or {}
        return cls(
            cards=[SessionCard.from_dict(card) for card in data.get("cards") or []],
            current_index=int(data.get("currentIndex", 0)),
            correct_count=int(stats.get("correct", 0)),
            total_count=int(stats.get("total", 0)),
            started_at=parse_timestamp(stats.get("startTime")),
            language_pair=data["languagePair"],
            words_completed=[str(w) for w in stats.get("wordsCompleted") or []],
        )
