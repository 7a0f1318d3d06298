"""Backups: export and import of everything the learner owns."""
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from lingodeck import monitoring
from lingodeck.config import APP_VERSION, ensure_directories, settings
from lingodeck.exceptions import StorageFailure, ValidationFailure
from lingodeck.models.progress_models import ProgressDocument
from lingodeck.models.vocabulary_models import VocabularyItem
from lingodeck.services.app_state_service import AppContext
from lingodeck.services.catalog_service import VocabularyCatalog
from lingodeck.services.progress_service import ProgressStore
from lingodeck.services.storage import APP_STATE_KEY, VOCABULARY_FILES_KEY, KeyValueStore

logger = logging.getLogger(__name__)


def generate_export_filename(prefix: str, now: datetime) -> str:
    return f"{prefix}-{now.date().isoformat()}.json"


class BackupService:
    """Bundles progress, user words, tracked files and app state into one document."""

    def __init__(
        self,
        store: KeyValueStore,
        progress_store: ProgressStore,
        catalog: VocabularyCatalog,
        context: AppContext,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.progress_store = progress_store
        self.catalog = catalog
        self.context = context
        self.clock = clock or progress_store.clock or (lambda: datetime.now(UTC))

    def export_all(self) -> Dict[str, Any]:
        return {
            "version": APP_VERSION,
            "exportDate": self.clock().isoformat(),
            "progress": self.progress_store.document.to_dict(),
            "userVocabulary": self.catalog.user_vocabulary_document(),
            "vocabularyFiles": self.store.get(VOCABULARY_FILES_KEY) or {},
            "appState": self.context.to_dict(),
        }

    def export_json(self) -> str:
        return json.dumps(self.export_all(), ensure_ascii=False, indent=2)

    def write_export(self, directory: Optional[Path] = None) -> Path:
        """Write a backup file and return its path."""
        if directory is None:
            ensure_directories()
            directory = settings.paths.exports_dir
        path = Path(directory) / generate_export_filename("language-learning-backup", self.clock())
        path.write_text(self.export_json(), encoding="utf-8")
        logger.info(f"Data exported to {path}")
        return path

    def import_data(self, data: Union[str, Dict[str, Any]]) -> None:
        """Replace stored data with a backup; nothing is written if it is invalid."""
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError as e:
                monitoring.validation_errors.labels(kind="backup").inc()
                raise ValidationFailure(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict) or not data.get("version") or not data.get("progress"):
            monitoring.validation_errors.labels(kind="backup").inc()
            raise ValidationFailure("Invalid import file format")

        progress = data["progress"]
        user_vocabulary = data.get("userVocabulary") or {}
        vocabulary_files = data.get("vocabularyFiles") or {}
        app_state = data.get("appState") or {}
        try:
            if not isinstance(progress, dict) or not isinstance(user_vocabulary, dict) \
                    or not isinstance(vocabulary_files, dict) or not isinstance(app_state, dict):
                raise TypeError("sections must be objects")
            learning = settings.learning
            ProgressDocument.from_dict(progress, learning.daily_goal_new, learning.daily_goal_review)
            for words in user_vocabulary.values():
                for word in words:
                    VocabularyItem.from_dict(word)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            monitoring.validation_errors.labels(kind="backup").inc()
            raise ValidationFailure(f"Invalid import file format: {e}") from e

        self.progress_store.replace(progress)
        self.catalog.load_user_vocabulary(user_vocabulary)
        self.catalog.save_user_vocabulary()
        try:
            self.store.set(VOCABULARY_FILES_KEY, vocabulary_files)
        except StorageFailure as e:
            logger.error(f"Failed to save vocabulary files: {e}")
            monitoring.storage_errors.labels(key=VOCABULARY_FILES_KEY).inc()
        if app_state:
            self.context.restore(app_state)
            self.context.save()
        logger.info("Data imported successfully")

    def export_vocabulary(self, language_pair: str) -> Dict[str, Any]:
        """A vocabulary file with every word of ``language_pair``."""
        words = self.catalog.items(language_pair)
        logger.info(f"Exported {len(words)} words of {language_pair}")
        return {
            "metadata": {
                "language_pair": language_pair,
                "exported_at": self.clock().isoformat(),
                "word_count": len(words),
                "version": APP_VERSION,
            },
            "words": [word.to_dict() for word in words],
        }

    def reset_progress(self) -> None:
        """Forget learning progress and app state; vocabulary is kept."""
        self.progress_store.reset()
        self.store.delete(APP_STATE_KEY)
        self.context.reset()
        logger.info("Progress reset")

    def clear_all(self) -> None:
        """Delete every stored document."""
        self.store.clear()
        self.progress_store.reset()
        self.catalog.load_user_vocabulary({})
        self.context.reset()
        logger.info("All data cleared")
