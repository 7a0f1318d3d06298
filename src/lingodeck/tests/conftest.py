"""Test configuration."""
import os
import random
import tempfile
from datetime import UTC, datetime, timedelta

import pytest
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="lingodeck-test-"))

# Import after environment setup
from lingodeck.config import ensure_directories
from lingodeck.models.vocabulary_models import VocabularyItem
from lingodeck.services.app_state_service import AppContext
from lingodeck.services.catalog_service import VocabularyCatalog
from lingodeck.services.fallback_vocabulary import fallback_for
from lingodeck.services.progress_service import ProgressStore
from lingodeck.services.session_scheduler import SessionScheduler
from lingodeck.services.storage import InMemoryKeyValueStore

fake = Faker()

PAIR = "cs-vi"


class FakeClock:
    """Settable clock returning timezone-aware UTC datetimes."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def clock() -> FakeClock:
    """A clock at noon UTC, far from any day boundary."""
    return FakeClock(datetime(2024, 3, 14, 12, 0, tzinfo=UTC))


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def progress_store(store, clock) -> ProgressStore:
    return ProgressStore(store, clock=clock, local_tz=UTC, language_pair=PAIR)


@pytest.fixture
def catalog(store) -> VocabularyCatalog:
    """Catalog holding the bundled words of every pair."""
    catalog = VocabularyCatalog(store)
    for pair in ("cs-vi", "vi-zh", "vi-en"):
        catalog.set_base(pair, fallback_for(pair))
    return catalog


@pytest.fixture
def context(store, progress_store) -> AppContext:
    return AppContext(store, progress_store)


@pytest.fixture
def scheduler(progress_store, catalog, clock) -> SessionScheduler:
    return SessionScheduler(progress_store, catalog, rng=random.Random(7), clock=clock)


@pytest.fixture
def make_item():
    """Factory for vocabulary items with generated text."""
    def _make_item(item_id=None, category="basics", difficulty=1, **overrides) -> VocabularyItem:
        data = dict(
            id=item_id if item_id is not None else fake.unique.random_int(min=2000, max=99999),
            term=fake.unique.word(),
            translation=fake.unique.word(),
            category=category,
            base_difficulty=difficulty,
            romanization="",
        )
        data.update(overrides)
        return VocabularyItem(**data)

    return _make_item
