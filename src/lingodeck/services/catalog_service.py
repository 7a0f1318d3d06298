"""Vocabulary catalog: loading, caching, user words and vocabulary file imports."""
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import httpx

from lingodeck import monitoring
from lingodeck.config import settings
from lingodeck.exceptions import LoadFailure, StorageFailure, ValidationFailure
from lingodeck.models.vocabulary_models import ItemId, VocabularyItem
from lingodeck.services.fallback_vocabulary import fallback_for
from lingodeck.services.storage import (
    CATALOG_CACHE_PREFIX,
    USER_VOCABULARY_KEY,
    VOCABULARY_FILES_KEY,
    KeyValueStore,
)

logger = logging.getLogger(__name__)

# User-added words get ids above this floor
MIN_USER_ID = 1000


@dataclass
class CatalogStats:
    """Word counts of one language pair."""
    total: int
    by_category: Dict[str, int]
    by_difficulty: Dict[int, int]


class VocabularyCatalog:
    """Loaded words of every language pair merged with the learner's own words.

    A user word whose id matches a loaded word overrides it in place; other
    user words are appended after the loaded ones.
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store
        self._base: Dict[str, List[VocabularyItem]] = {}
        self._user: Dict[str, List[VocabularyItem]] = {}

    def set_base(self, language_pair: str, items: Iterable[VocabularyItem]) -> None:
        self._base[language_pair] = list(items)

    def language_pairs(self) -> List[str]:
        return sorted(set(self._base) | set(self._user))

    def items(self, language_pair: str) -> List[VocabularyItem]:
        """Every word of ``language_pair`` in catalog order."""
        overrides = {item.key: item for item in self._user.get(language_pair, [])}
        merged = [overrides.pop(item.key, item) for item in self._base.get(language_pair, [])]
        merged.extend(item for item in self._user.get(language_pair, []) if item.key in overrides)
        return merged

    def find_by_id(self, language_pair: str, item_id: ItemId) -> Optional[VocabularyItem]:
        key = str(item_id)
        return next((item for item in self.items(language_pair) if item.key == key), None)

    def by_category(self, language_pair: str, category: str) -> List[VocabularyItem]:
        return [item for item in self.items(language_pair) if item.category == category]

    def by_difficulty(self, language_pair: str, difficulty: int) -> List[VocabularyItem]:
        return [item for item in self.items(language_pair) if item.base_difficulty == difficulty]

    def categories(self, language_pair: str) -> List[str]:
        return sorted({item.category for item in self.items(language_pair)})

    def stats(self, language_pair: str) -> CatalogStats:
        items = self.items(language_pair)
        return CatalogStats(
            total=len(items),
            by_category=dict(Counter(item.category for item in items)),
            by_difficulty=dict(Counter(item.base_difficulty for item in items)),
        )

    # ------------------------------------------------------------------
    # User vocabulary
    # ------------------------------------------------------------------

    def user_words(self, language_pair: str) -> List[VocabularyItem]:
        return list(self._user.get(language_pair, []))

    def set_user_words(self, language_pair: str, items: Iterable[VocabularyItem]) -> bool:
        """Replace the user words of a pair and persist them."""
        self._user[language_pair] = list(items)
        return self.save_user_vocabulary()

    def delete_user_word(self, language_pair: str, item_id: ItemId) -> bool:
        """Remove a user-added word; loaded words cannot be deleted."""
        key = str(item_id)
        words = self._user.get(language_pair, [])
        remaining = [item for item in words if item.key != key]
        if len(remaining) == len(words):
            return False
        self.set_user_words(language_pair, remaining)
        logger.info(f"Word {key} deleted from {language_pair}")
        return True

    def user_vocabulary_document(self) -> Dict[str, List[Dict[str, Any]]]:
        return {pair: [item.to_dict() for item in items] for pair, items in self._user.items()}

    def load_user_vocabulary(self, document: Optional[Dict[str, Any]] = None) -> None:
        """Load user words from ``document`` or from the store."""
        if document is None and self.store is not None:
            document = self.store.get(USER_VOCABULARY_KEY)
        self._user = {}
        for pair, words in (document or {}).items():
            items = []
            for word in words or []:
                try:
                    items.append(VocabularyItem.from_dict(word))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed user word in {pair}: {e}")
            self._user[pair] = items

    def save_user_vocabulary(self) -> bool:
        if self.store is None:
            return True
        try:
            self.store.set(USER_VOCABULARY_KEY, self.user_vocabulary_document())
            return True
        except StorageFailure as e:
            logger.error(f"Failed to save user vocabulary: {e}")
            monitoring.storage_errors.labels(key=USER_VOCABULARY_KEY).inc()
            return False


class CatalogLoader:
    """Fetches core vocabulary over HTTP with a day-long cache and bundled fallback."""

    def __init__(
        self,
        store: KeyValueStore,
        base_url: Optional[str] = None,
        cache_ttl_ms: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.store = store
        self.base_url = (base_url or settings.catalog.base_url).rstrip("/")
        self.cache_ttl_ms = settings.catalog.cache_ttl_ms if cache_ttl_ms is None else cache_ttl_ms
        self.client = client
        self.clock_ms = clock_ms

    def url_for(self, language_pair: str) -> str:
        return f"{self.base_url}/{language_pair}/core.json"

    async def load(self, language_pair: str, force_refresh: bool = False) -> List[VocabularyItem]:
        """Words of ``language_pair``; never raises, falls back to bundled words."""
        if not force_refresh:
            cached = self._read_cache(language_pair)
            if cached is not None:
                logger.info(f"Loading vocabulary from cache for {language_pair}")
                monitoring.catalog_loads.labels(source="cache").inc()
                return cached

        try:
            words = await self._fetch(language_pair)
        except LoadFailure as e:
            logger.warning(f"Failed to load external vocabulary for {language_pair}: {e}")
            logger.info(f"Using fallback vocabulary for {language_pair}")
            monitoring.catalog_loads.labels(source="fallback").inc()
            return fallback_for(language_pair)

        self._write_cache(language_pair, words)
        logger.info(f"Loaded {len(words)} words from external file for {language_pair}")
        monitoring.catalog_loads.labels(source="network").inc()
        return words

    async def load_into(
        self,
        catalog: VocabularyCatalog,
        language_pairs: Optional[Sequence[str]] = None,
        force_refresh: bool = False,
    ) -> VocabularyCatalog:
        """Load every configured pair into ``catalog``, then the user's own words."""
        for pair in language_pairs or list(settings.catalog.language_pairs):
            catalog.set_base(pair, await self.load(pair, force_refresh=force_refresh))
        catalog.load_user_vocabulary()
        return catalog

    async def refresh(
        self,
        catalog: VocabularyCatalog,
        language_pairs: Optional[Sequence[str]] = None,
    ) -> VocabularyCatalog:
        """Reload every pair, ignoring the cache."""
        logger.info("Refreshing all vocabulary")
        return await self.load_into(catalog, language_pairs, force_refresh=True)

    def clear_cache(self) -> int:
        """Drop every cached catalog; returns how many entries were removed."""
        cleared = 0
        for key in self.store.keys():
            if key.startswith(CATALOG_CACHE_PREFIX):
                self.store.delete(key)
                cleared += 1
        logger.info(f"Cleared {cleared} vocabulary cache entries")
        return cleared

    async def _fetch(self, language_pair: str) -> List[VocabularyItem]:
        url = self.url_for(language_pair)
        logger.info(f"Fetching vocabulary files for {language_pair} from {url}")
        try:
            if self.client is not None:
                response = await self.client.get(url)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise LoadFailure(f"{url}: {e}") from e

        words = data.get("words", data) if isinstance(data, dict) else data
        if not isinstance(words, list):
            raise LoadFailure(f"{url}: expected a list of words")
        try:
            return [VocabularyItem.from_dict(word) for word in words]
        except (KeyError, TypeError, ValueError) as e:
            raise LoadFailure(f"{url}: malformed word {e}") from e

    def _read_cache(self, language_pair: str) -> Optional[List[VocabularyItem]]:
        cached = self.store.get(CATALOG_CACHE_PREFIX + language_pair)
        if not cached or not cached.get("timestamp"):
            return None
        if self.clock_ms() - cached["timestamp"] >= self.cache_ttl_ms:
            return None
        try:
            return [VocabularyItem.from_dict(word) for word in cached.get("words") or []]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring corrupt vocabulary cache for {language_pair}: {e}")
            return None

    def _write_cache(self, language_pair: str, words: List[VocabularyItem]) -> None:
        try:
            self.store.set(
                CATALOG_CACHE_PREFIX + language_pair,
                {"timestamp": self.clock_ms(), "words": [word.to_dict() for word in words]},
            )
        except StorageFailure as e:
            logger.warning(f"Could not cache vocabulary for {language_pair}: {e}")
            monitoring.storage_errors.labels(key=CATALOG_CACHE_PREFIX + language_pair).inc()


# ----------------------------------------------------------------------
# Vocabulary file uploads
# ----------------------------------------------------------------------


class DuplicateStrategy(Enum):
    """What to do with an uploaded word whose term already exists."""
    SKIP = "skip"
    REPLACE = "replace"
    ALTERNATE = "alternate"

    @classmethod
    def parse(cls, value) -> "DuplicateStrategy":
        if isinstance(value, cls):
            return value
        if value == "add":
            return cls.ALTERNATE
        return cls(value)


@dataclass
class VocabularyFile:
    """A validated vocabulary upload."""
    words: List[Dict[str, Any]]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def language_pair(self) -> Optional[str]:
        return self.metadata.get("language_pair")


@dataclass
class AnalyzedWord:
    """An uploaded word compared against the existing vocabulary."""
    data: Dict[str, Any]
    existing: Optional[VocabularyItem] = None
    selected: bool = True

    @property
    def is_duplicate(self) -> bool:
        return self.existing is not None

    @property
    def status(self) -> str:
        return "duplicate" if self.is_duplicate else "new"


@dataclass
class ImportReport:
    """Outcome of applying an upload."""
    language_pair: str
    file_name: str
    added: int = 0
    replaced: int = 0
    alternates: int = 0
    skipped: int = 0

    @property
    def imported(self) -> int:
        return self.added + self.replaced + self.alternates


def is_valid_difficulty(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return 1 <= int(value) <= 3
    except (TypeError, ValueError):
        return False


def parse_vocabulary_file(data: Any) -> VocabularyFile:
    """Validate an uploaded vocabulary document."""
    if not isinstance(data, dict) or not isinstance(data.get("words"), list):
        monitoring.validation_errors.labels(kind="vocabulary").inc()
        raise ValidationFailure("Missing or invalid words array")

    for word in data["words"]:
        if not isinstance(word, dict) or not word.get("word") or not word.get("translation"):
            monitoring.validation_errors.labels(kind="vocabulary").inc()
            raise ValidationFailure("Word missing required fields")
        if not isinstance(word["word"], str) or not isinstance(word["translation"], str):
            monitoring.validation_errors.labels(kind="vocabulary").inc()
            raise ValidationFailure("Word and translation must be text")
        if word.get("difficulty") is not None and not is_valid_difficulty(word["difficulty"]):
            monitoring.validation_errors.labels(kind="vocabulary").inc()
            raise ValidationFailure(f"Invalid difficulty for {word['word']}: {word['difficulty']!r}")

    metadata = data.get("metadata")
    return VocabularyFile(words=list(data["words"]), metadata=metadata if isinstance(metadata, dict) else {})


class VocabularyImporter:
    """Adds uploaded words to the learner's own vocabulary."""

    def __init__(
        self,
        catalog: VocabularyCatalog,
        store: KeyValueStore,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.catalog = catalog
        self.store = store
        self.clock = clock

    def analyze(self, words: Sequence[Dict[str, Any]], language_pair: str) -> List[AnalyzedWord]:
        """Flag words whose term matches an existing one, ignoring case."""
        existing = {}
        for item in self.catalog.items(language_pair):
            existing.setdefault(item.term.lower(), item)
        return [AnalyzedWord(data=dict(word), existing=existing.get(word["word"].lower())) for word in words]

    def import_file(
        self,
        data: Any,
        file_name: str,
        strategy="skip",
        language_pair: Optional[str] = None,
    ) -> ImportReport:
        """Validate and apply a whole vocabulary file."""
        upload = parse_vocabulary_file(data)
        pair = upload.language_pair or language_pair
        if not pair:
            monitoring.validation_errors.labels(kind="vocabulary").inc()
            raise ValidationFailure("No language pair given for the uploaded words")
        return self.apply(self.analyze(upload.words, pair), pair, strategy, file_name)

    def apply(
        self,
        analyzed: Sequence[AnalyzedWord],
        language_pair: str,
        strategy,
        file_name: str,
    ) -> ImportReport:
        """Apply the selected words of an analyzed upload."""
        strategy = DuplicateStrategy.parse(strategy)
        selected = [word for word in analyzed if word.selected]
        report = ImportReport(language_pair=language_pair, file_name=file_name)

        user_words = self.catalog.user_words(language_pair)
        taken = {item.key for item in self.catalog.items(language_pair)}
        numeric_ids = [item.id for item in self.catalog.items(language_pair) if isinstance(item.id, int)]
        max_id = max(numeric_ids + [MIN_USER_ID])

        def next_id() -> int:
            nonlocal max_id
            max_id += 1
            while str(max_id) in taken:
                max_id += 1
            return max_id

        def store_override(item: VocabularyItem) -> None:
            for index, existing in enumerate(user_words):
                if existing.key == item.key:
                    user_words[index] = item
                    return
            user_words.append(item)

        for word in selected:
            if not word.is_duplicate:
                item_id = word.data.get("id")
                if item_id is None or str(item_id) in taken:
                    item_id = next_id()
                item = VocabularyItem.from_dict({**word.data, "id": item_id})
                user_words.append(item)
                taken.add(item.key)
                report.added += 1
            elif strategy is DuplicateStrategy.SKIP:
                report.skipped += 1
            elif strategy is DuplicateStrategy.REPLACE:
                store_override(VocabularyItem.from_dict({**word.data, "id": word.existing.id}))
                report.replaced += 1
            else:
                store_override(word.existing.with_alternate(word.data["translation"]))
                report.alternates += 1

        self.catalog.set_user_words(language_pair, user_words)
        self._track_file(language_pair, file_name, len(selected))
        monitoring.words_imported.labels(language_pair=language_pair).inc(report.imported)
        logger.info(
            f"Import complete: {report.added} added, {report.replaced} replaced, "
            f"{report.alternates} alternates, {report.skipped} skipped"
        )
        return report

    def tracked_files(self) -> Dict[str, List[Dict[str, Any]]]:
        return self.store.get(VOCABULARY_FILES_KEY) or {}

    def _track_file(self, language_pair: str, file_name: str, word_count: int) -> None:
        files = self.tracked_files()
        files.setdefault(language_pair, []).append({
            "name": file_name,
            "wordCount": word_count,
            "uploadedAt": self.clock().isoformat(),
        })
        try:
            self.store.set(VOCABULARY_FILES_KEY, files)
        except StorageFailure as e:
            logger.error(f"Failed to save vocabulary files: {e}")
            monitoring.storage_errors.labels(key=VOCABULARY_FILES_KEY).inc()
