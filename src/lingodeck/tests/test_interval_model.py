"""Tests for the review-interval model."""
from datetime import UTC, datetime, timedelta

import pytest

from lingodeck.models.progress_models import CardProgress
from lingodeck.models.vocabulary_models import SkillTier
from lingodeck.services.interval_model import IntervalModel

NOW = datetime(2024, 3, 14, 12, 0, tzinfo=UTC)


@pytest.fixture
def model() -> IntervalModel:
    return IntervalModel(clock=lambda: NOW)


@pytest.mark.parametrize("level, days", [
    (0.0, 1.0),
    (0.5, 2.0),
    (1.0, 3.0),
    (2.25, 8.75),
    (4.5, 60.0),
    (5.0, 90.0),
])
def test_days_for_level(model, level, days):
    assert model.days_for_level(level) == pytest.approx(days)


def test_next_review_is_now_plus_interpolated_days(model):
    progress = CardProgress.initial("1", SkillTier.BEGINNER, NOW)
    progress.level = 0.5
    assert model.compute_next_review(progress) == NOW + timedelta(days=2)


def test_next_review_uses_given_now(model):
    progress = CardProgress.initial("1", SkillTier.BEGINNER, NOW)
    later = NOW + timedelta(hours=5)
    assert model.compute_next_review(progress, later) == later + timedelta(days=1)


def test_monotonic_in_level(model):
    levels = [i / 20 for i in range(0, 101)]
    days = [model.days_for_level(level) for level in levels]
    assert days == sorted(days)


def test_beyond_last_interval_uses_last():
    model = IntervalModel([1, 3], clock=lambda: NOW)
    assert model.days_for_level(1.0) == 3.0
    assert model.days_for_level(4.7) == 3.0


def test_requires_intervals():
    with pytest.raises(ValueError):
        IntervalModel([])
