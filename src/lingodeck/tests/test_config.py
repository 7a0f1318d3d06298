"""Tests for configuration settings."""
import pytest

from lingodeck.config import (
    APP_VERSION,
    BASE_INTERVALS,
    DATA_DIR,
    EXPORTS_DIR,
    LearningSettings,
    Settings,
    settings,
)


def test_base_directories_exist():
    """Test that all required directories exist."""
    assert DATA_DIR.exists()
    assert EXPORTS_DIR.exists()


def test_learning_defaults():
    """Test default learning settings values."""
    learning = settings.learning
    assert learning.repetition_intervals == [1, 3, 7, 14, 30, 90]
    assert learning.max_level == 5.0
    assert learning.skill_multipliers == {1: 0.5, 2: 0.75, 3: 1.0}
    assert learning.promotion_streak == 3
    assert learning.promotion_accuracy == 0.8
    assert (learning.daily_goal_new, learning.daily_goal_review) == (3, 5)
    assert (learning.min_goal_new, learning.min_goal_review) == (2, 3)
    assert (learning.max_goal_new, learning.max_goal_review) == (10, 15)
    assert learning.daily_counter_slack == 10


def test_skill_multipliers_are_positive():
    """Every tier must move the level forward on a correct answer."""
    assert all(m > 0 for m in settings.learning.skill_multipliers.values())


def test_catalog_defaults():
    assert settings.catalog.cache_ttl_ms == 86_400_000
    assert settings.catalog.default_language_pair in settings.catalog.language_pairs
    assert set(settings.catalog.language_pairs) == {"cs-vi", "vi-zh", "vi-en"}


def test_constants():
    assert APP_VERSION == "2.1.0"
    assert BASE_INTERVALS == sorted(BASE_INTERVALS)


def test_validate_rejects_descending_intervals():
    broken = Settings(learning=LearningSettings(repetition_intervals=[3, 1]))
    with pytest.raises(ValueError, match="ascending"):
        broken.validate()


def test_validate_rejects_goal_outside_bounds():
    broken = Settings(learning=LearningSettings(daily_goal_new=50))
    with pytest.raises(ValueError, match="DAILY_GOAL_NEW"):
        broken.validate()


def test_validate_rejects_unknown_default_pair():
    broken = Settings()
    broken.catalog.default_language_pair = "xx-yy"
    with pytest.raises(ValueError, match="DEFAULT_LANGUAGE_PAIR"):
        broken.validate()
