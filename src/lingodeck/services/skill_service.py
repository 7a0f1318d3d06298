"""Skill tiers: tier selection, answer validation, choices and promotion."""
import logging
import random
import re
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Type, Union, final

from lingodeck.config import settings
from lingodeck.models.progress_models import CardProgress, TierStats
from lingodeck.models.vocabulary_models import AUTO_TIER, ItemId, SkillTier, VocabularyItem

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "---"
CHOICE_COUNT = 4

_NOT_ALLOWED = re.compile(r"[^a-z0-9\u4e00-\u9fff]")
_WHITESPACE = re.compile(r"\s+")


class AnswerVerdict(Enum):
    """How an answer was judged."""
    CORRECT = "correct"
    PERFECT = "perfect"
    CLOSE_ENOUGH = "close_enough"
    INCORRECT = "incorrect"


@dataclass
class AnswerResult:
    """Outcome of checking one answer."""
    is_correct: bool
    verdict: AnswerVerdict
    user_input: str
    correct_answer: str

    @property
    def show_answer(self) -> bool:
        return self.verdict in (AnswerVerdict.INCORRECT, AnswerVerdict.CLOSE_ENOUGH)


@dataclass(frozen=True)
class ChoiceOption:
    """One multiple-choice button. Placeholders carry no item id."""
    text: str
    romanization: str
    is_correct: bool
    index: int
    item_id: Optional[ItemId] = None

    @property
    def is_placeholder(self) -> bool:
        return self.item_id is None


@dataclass
class Challenge:
    """What the UI needs to present one card at one tier."""
    item: VocabularyItem
    tier: SkillTier
    prompt: str
    options: List[ChoiceOption] = field(default_factory=list)
    expects_text: bool = False


def normalize_answer(text: str) -> str:
    """Lowercase, drop diacritics and keep only letters, digits and CJK ideographs."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NOT_ALLOWED.sub("", stripped)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def get_all_subclasses(cls):
    """Get all subclasses of a class."""
    all_subclasses = []
    for subclass in cls.__subclasses__():
        all_subclasses.append(subclass)
        all_subclasses.extend(get_all_subclasses(subclass))
    return all_subclasses


class BaseTierChallenge(ABC):
    """Base class for the interaction mode of one skill tier."""

    tier: SkillTier
    expects_text: bool = True

    @abstractmethod
    def _check(self, user_input: str, correct_answer: str) -> AnswerResult:
        """Judge ``user_input`` against a single accepted answer."""
        raise NotImplementedError("Subclasses must implement this method")

    def _prompt(self, item: VocabularyItem) -> str:
        return f"Type the translation of: {item.term}"

    @final
    def validate(self, user_input: str, correct_answers: Union[str, Sequence[str]]) -> AnswerResult:
        """Check an answer against every accepted translation, best verdict wins."""
        if isinstance(correct_answers, str):
            correct_answers = [correct_answers]
        user_input = user_input.strip()

        results = [self._check(user_input, answer) for answer in correct_answers]
        for verdict in (AnswerVerdict.PERFECT, AnswerVerdict.CORRECT, AnswerVerdict.CLOSE_ENOUGH):
            for result in results:
                if result.verdict is verdict:
                    return result
        return results[0]

    @final
    def create_challenge(
        self,
        item: VocabularyItem,
        catalog: Sequence[VocabularyItem],
        rng: Optional[random.Random] = None,
    ) -> Challenge:
        options = []
        if not self.expects_text:
            options = generate_multiple_choice(item, catalog, rng)
        return Challenge(
            item=item,
            tier=self.tier,
            prompt=self._prompt(item),
            options=options,
            expects_text=self.expects_text,
        )


class MultipleChoiceChallenge(BaseTierChallenge):
    """Beginner: pick the translation from four options."""
    tier = SkillTier.BEGINNER
    expects_text = False

    def _prompt(self, item: VocabularyItem) -> str:
        return f"Choose the correct translation for: {item.term}"

    def _check(self, user_input: str, correct_answer: str) -> AnswerResult:
        is_correct = user_input == correct_answer
        return AnswerResult(
            is_correct=is_correct,
            verdict=AnswerVerdict.CORRECT if is_correct else AnswerVerdict.INCORRECT,
            user_input=user_input,
            correct_answer=correct_answer,
        )


class FuzzyTypingChallenge(BaseTierChallenge):
    """Intermediate: typed answer, diacritics optional, one typo tolerated."""
    tier = SkillTier.INTERMEDIATE

    def _prompt(self, item: VocabularyItem) -> str:
        return f"Type the translation of {item.term} (diacritics optional)"

    def _check(self, user_input: str, correct_answer: str) -> AnswerResult:
        if user_input.lower() == correct_answer.lower():
            verdict = AnswerVerdict.PERFECT
        else:
            normalized = normalize_answer(user_input)
            expected = normalize_answer(correct_answer)
            if normalized == expected or levenshtein_distance(normalized, expected) <= 1:
                verdict = AnswerVerdict.CLOSE_ENOUGH
            else:
                verdict = AnswerVerdict.INCORRECT
        return AnswerResult(
            is_correct=verdict is not AnswerVerdict.INCORRECT,
            verdict=verdict,
            user_input=user_input,
            correct_answer=correct_answer,
        )


class ExactTypingChallenge(BaseTierChallenge):
    """Advanced: typed answer, exact up to case and extra spaces."""
    tier = SkillTier.ADVANCED

    def _prompt(self, item: VocabularyItem) -> str:
        return f"Type the exact translation of: {item.term}"

    def _check(self, user_input: str, correct_answer: str) -> AnswerResult:
        given = user_input.lower()
        expected = correct_answer.lower()
        is_correct = (
            given == expected
            or _WHITESPACE.sub(" ", given) == expected
            or given == _WHITESPACE.sub("", expected)
        )
        return AnswerResult(
            is_correct=is_correct,
            verdict=AnswerVerdict.PERFECT if is_correct else AnswerVerdict.INCORRECT,
            user_input=user_input,
            correct_answer=correct_answer,
        )


_challenges: Dict[SkillTier, Type[BaseTierChallenge]] = {}


def challenge_for(tier: SkillTier) -> BaseTierChallenge:
    """Get the interaction mode implementing ``tier``."""
    if not _challenges:
        for challenge_class in get_all_subclasses(BaseTierChallenge):
            _challenges[challenge_class.tier] = challenge_class
    return _challenges[SkillTier.parse(tier)]()


def validate_answer(
    user_input: str,
    correct_answer: Union[str, Sequence[str]],
    tier: SkillTier,
) -> AnswerResult:
    """Judge an answer with the rules of ``tier``."""
    result = challenge_for(tier).validate(user_input, correct_answer)
    logger.debug(f"Answer {user_input!r} at {SkillTier.parse(tier).label}: {result.verdict.value}")
    return result


def check_choice(options: Sequence[ChoiceOption], selected_index: int) -> AnswerResult:
    """Resolve a multiple-choice selection by the option's correctness flag."""
    selected = next((o for o in options if o.index == selected_index), None)
    if selected is None:
        raise ValueError(f"No option with index {selected_index}")
    correct = next((o for o in options if o.is_correct), None)
    return AnswerResult(
        is_correct=selected.is_correct,
        verdict=AnswerVerdict.CORRECT if selected.is_correct else AnswerVerdict.INCORRECT,
        user_input=selected.text,
        correct_answer=correct.text if correct else "",
    )


def generate_multiple_choice(
    correct_item: VocabularyItem,
    catalog: Sequence[VocabularyItem],
    rng: Optional[random.Random] = None,
) -> List[ChoiceOption]:
    """Build four shuffled options: the answer plus three close distractors."""
    rng = rng or random.Random()
    candidates = [item for item in catalog if item.id != correct_item.id]
    # Stable sort keeps catalog order among equally good distractors
    candidates.sort(key=lambda item: (
        item.category != correct_item.category,
        abs(item.base_difficulty - correct_item.base_difficulty),
    ))
    distractors = candidates[:CHOICE_COUNT - 1]

    entries = [(correct_item.translation, correct_item.romanization, True, correct_item.id)]
    entries.extend((d.translation, d.romanization, False, d.id) for d in distractors)
    while len(entries) < CHOICE_COUNT:
        entries.append((PLACEHOLDER_TEXT, "", False, None))

    rng.shuffle(entries)
    return [
        ChoiceOption(text=text, romanization=romanization, is_correct=is_correct, index=index, item_id=item_id)
        for index, (text, romanization, is_correct, item_id) in enumerate(entries)
    ]


def determine_tier(progress: Optional[CardProgress], default_level: int = AUTO_TIER) -> SkillTier:
    """Pick the tier for the next attempt at a card."""
    if progress is None:
        return SkillTier.BEGINNER if default_level == AUTO_TIER else SkillTier.parse(default_level)

    if default_level == AUTO_TIER:
        return progress.recommended_tier or progress.current_skill_tier or SkillTier.BEGINNER

    # Manual mode - the learner's choice beats the card's history
    return SkillTier.parse(default_level)


def attempt_promotion(tier: SkillTier, stats: TierStats, recommended: SkillTier) -> SkillTier:
    """Recommended tier after an answer at ``tier``; never lower than ``recommended``."""
    learning = settings.learning
    next_tier = SkillTier.parse(tier).next_tier
    if next_tier is None:
        return recommended

    if (stats.current_streak >= learning.promotion_streak
            and stats.total_count >= learning.promotion_min_attempts
            and stats.accuracy >= learning.promotion_accuracy):
        return max(recommended, next_tier)
    return recommended
