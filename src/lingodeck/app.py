"""Application wiring: builds every service around one key-value store."""
import logging
import random
from datetime import UTC, datetime
from typing import Callable, Optional

import httpx

from lingodeck.config import settings
from lingodeck.models.base import SessionLocal, init_db
from lingodeck.monitoring import start_monitoring
from lingodeck.services.app_state_service import AppContext
from lingodeck.services.backup_service import BackupService
from lingodeck.services.catalog_service import CatalogLoader, VocabularyCatalog, VocabularyImporter
from lingodeck.services.goal_service import AdaptiveGoalController
from lingodeck.services.progress_service import ProgressStore
from lingodeck.services.session_scheduler import SessionScheduler
from lingodeck.services.statistics_service import StatisticsService
from lingodeck.services.storage import KeyValueStore, SqlAlchemyKeyValueStore
from lingodeck.services.study_session import StudySession


class LingoDeck:
    """Main application class."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        rng: Optional[random.Random] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the application; the database backs the store unless one is given."""
        self.logger = logging.getLogger(__name__)
        self._uses_database = store is None
        self.store = store or SqlAlchemyKeyValueStore(SessionLocal, settings.storage.quota_bytes)
        self.clock = clock
        self.rng = rng or random.Random()
        self.running = False

        self.progress_store = ProgressStore(self.store, clock=clock)
        self.context = AppContext(self.store, self.progress_store)
        self.catalog = VocabularyCatalog(self.store)
        self.loader = CatalogLoader(self.store, client=http_client)
        self.importer = VocabularyImporter(self.catalog, self.store, clock=clock)
        self.scheduler = SessionScheduler(self.progress_store, self.catalog, rng=self.rng, clock=clock)
        self.session = StudySession(
            self.context,
            self.progress_store,
            self.scheduler,
            self.catalog,
            goal_controller=AdaptiveGoalController(),
            rng=self.rng,
        )
        self.statistics = StatisticsService(self.progress_store, self.catalog)
        self.backup = BackupService(self.store, self.progress_store, self.catalog, self.context, clock=clock)

    async def start(self) -> None:
        """Prepare storage, restore state and load every catalog."""
        if self.running:
            return

        if self._uses_database:
            init_db()
            self.logger.info("Database initialized")

        if settings.monitoring.enabled:
            start_monitoring(settings.monitoring.port)
            self.logger.info(f"Metrics exposed on port {settings.monitoring.port}")

        self.progress_store.load()
        self.context.load()
        await self.loader.load_into(self.catalog)
        self.running = True
        self.logger.info("Vocabulary initialization complete")

    async def refresh_vocabulary(self) -> None:
        await self.loader.refresh(self.catalog)
