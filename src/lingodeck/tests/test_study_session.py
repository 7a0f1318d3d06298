"""Tests for the study session flow."""
import random

import pytest

from lingodeck.exceptions import NoCardsAvailable, SessionStateError
from lingodeck.models.vocabulary_models import SkillTier
from lingodeck.services.catalog_service import VocabularyCatalog
from lingodeck.services.session_scheduler import SessionScheduler
from lingodeck.services.storage import APP_STATE_KEY
from lingodeck.services.study_session import StudySession


@pytest.fixture
def make_session(context, progress_store, scheduler, catalog):
    def _make_session(seed=3):
        return StudySession(context, progress_store, scheduler, catalog, rng=random.Random(seed))
    return _make_session


@pytest.fixture
def session(make_session) -> StudySession:
    return make_session()


def answer(session: StudySession, correct: bool = True):
    """Answer the current card in whatever mode it is shown."""
    if session.challenge.expects_text:
        return session.submit_answer(session.current_card.item.translation if correct else "zzzz")
    option = next(o for o in session.challenge.options if o.is_correct == correct and not o.is_placeholder)
    return session.select_choice(option.index)


def answer_all(session: StudySession, correct: bool = True) -> None:
    while True:
        answer(session, correct)
        if not session.next_card():
            return


def test_start_builds_session_for_current_pair(session):
    record = session.start(5)
    assert session.is_active
    assert record.language_pair == "cs-vi"
    assert len(record.cards) == 3
    assert session.current_tier is SkillTier.BEGINNER
    assert len(session.challenge.options) == 4


def test_start_without_cards_raises(context, progress_store, clock):
    empty = VocabularyCatalog()
    scheduler = SessionScheduler(progress_store, empty, clock=clock)
    session = StudySession(context, progress_store, scheduler, empty)
    with pytest.raises(NoCardsAvailable):
        session.start(5)
    assert not session.is_active


def test_correct_choice_updates_progress(session, progress_store):
    session.start(5)
    card = session.current_card
    result = answer(session)
    assert result.is_correct
    assert progress_store.get_card_progress(card.item.id).level == 0.5
    assert session.record.correct_count == 1


def test_answering_twice_is_rejected(session):
    session.start(5)
    answer(session)
    with pytest.raises(SessionStateError):
        answer(session)


def test_next_card_requires_answer(session):
    session.start(5)
    with pytest.raises(SessionStateError):
        session.next_card()


def test_choice_mode_rejects_typed_answer(session):
    session.start(5)
    with pytest.raises(SessionStateError):
        session.submit_answer("xin chào")


def test_placeholder_cannot_be_selected(context, progress_store, clock, make_item):
    small = VocabularyCatalog()
    small.set_base("cs-vi", [make_item(), make_item()])
    scheduler = SessionScheduler(progress_store, small, rng=random.Random(1), clock=clock)
    session = StudySession(context, progress_store, scheduler, small, rng=random.Random(1))
    session.start(5)

    placeholder = next(o for o in session.challenge.options if o.is_placeholder)
    with pytest.raises(ValueError):
        session.select_choice(placeholder.index)
    with pytest.raises(ValueError):
        session.select_choice(9)
    assert not session.answered


def test_manual_default_level(session, context):
    context.set_default_skill_level(3)
    session.start(5)
    assert session.current_tier is SkillTier.ADVANCED
    assert session.challenge.expects_text
    assert answer(session).is_correct


def test_override_tier_for_current_card(session, progress_store):
    session.start(5)
    challenge = session.override_tier_for_current_card(SkillTier.INTERMEDIATE)
    assert challenge.expects_text

    card = session.current_card
    assert not answer(session, correct=False).is_correct
    progress = progress_store.get_card_progress(card.item.id)
    assert progress.stats_for(SkillTier.INTERMEDIATE).total_count == 1

    with pytest.raises(SessionStateError):
        session.override_tier_for_current_card(SkillTier.ADVANCED)

    # The override does not carry over to the next card
    session.next_card()
    assert session.current_tier is SkillTier.BEGINNER


def test_complete_records_summary(session, progress_store, clock):
    session.start(5)
    answer_all(session)
    clock.advance(minutes=4)

    outcome = session.complete()
    assert outcome.summary.words == 3
    assert outcome.summary.accuracy == 100
    assert outcome.summary.time == "12:04"
    assert outcome.minutes == 4
    assert not outcome.goals_met
    assert not outcome.goals_adjusted

    document = progress_store.document
    assert len(document.daily_progress.sessions) == 1
    assert document.streak == 1
    assert not session.is_active


def test_struggling_learner_gets_smaller_goals(session, progress_store):
    session.start(5)
    answer_all(session, correct=False)
    assert not session.complete().goals_adjusted

    progress_store.set_goal_targets(6, 5)
    session.start(5)
    answer_all(session, correct=False)
    outcome = session.complete()
    assert outcome.summary.accuracy == 0
    assert outcome.goals_adjusted
    assert (progress_store.daily_goal.new_target, progress_store.daily_goal.review_target) == (5, 4)


def test_pause_after_answer_moves_past_card(session, context, progress_store, store, clock):
    session.start(5)
    answer(session)
    clock.advance(minutes=2)

    paused = session.pause()
    assert paused.current_index == 1
    assert paused.remaining == 2
    assert not session.is_active
    assert context.paused_session is paused
    assert store.get(APP_STATE_KEY)["pausedSession"]["currentIndex"] == 1
    assert progress_store.document.daily_progress.time_spent == 2.0


def test_pause_before_answer_keeps_card(session):
    session.start(5)
    assert session.pause().current_index == 0


def test_resume_continues_where_paused(session, make_session, context, clock):
    session.start(5)
    answer(session)
    paused = session.pause()

    clock.advance(hours=1)
    resumed = make_session()
    assert resumed.resume()
    assert resumed.current_card == paused.cards[1]
    assert resumed.record.correct_count == 1
    assert context.paused_session is None

    answer_all(resumed)
    clock.advance(minutes=3)
    outcome = resumed.complete()
    assert outcome.minutes == 3
    assert outcome.summary.words == 3


def test_resume_only_for_matching_pair(session, make_session, context):
    session.start(5)
    session.pause()

    context.set_language_pair("vi-en")
    other = make_session()
    assert not other.resume()
    assert context.paused_session is not None

    context.set_language_pair("cs-vi")
    assert other.resume()


def test_start_discards_paused_session(session, context):
    session.start(5)
    session.pause()
    session.start(5)
    assert context.paused_session is None


def test_resume_without_paused_session(session):
    assert not session.resume()
    assert not session.is_active
