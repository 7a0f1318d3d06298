"""Key-value document stores backing all persisted state."""
import copy
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from lingodeck.exceptions import StorageFailure, StorageQuotaExceeded
from lingodeck.models.models import StoredDocument

logger = logging.getLogger(__name__)

PROGRESS_KEY = "languageApp"
APP_STATE_KEY = "appState"
USER_VOCABULARY_KEY = "userVocabulary"
VOCABULARY_FILES_KEY = "vocabularyFiles"
CATALOG_CACHE_PREFIX = "vocabularyCache_"


def encode_document(doc: Any) -> str:
    return json.dumps(doc, ensure_ascii=False, separators=(",", ":"))


def byte_size(text: str) -> int:
    return len(text.encode("utf-8"))


class KeyValueStore(ABC):
    """Whole-document store: every write replaces the document for a key."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the document stored under ``key`` or None."""

    @abstractmethod
    def set(self, key: str, doc: Any) -> None:
        """Store ``doc`` under ``key``; raises StorageFailure on failure."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def keys(self) -> List[str]:
        """List all stored keys."""

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)


class InMemoryKeyValueStore(KeyValueStore):
    """Store keeping JSON text in a dict, with an optional total byte quota."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def _size_without(self, key: str) -> int:
        return sum(byte_size(k) + byte_size(v) for k, v in self._data.items() if k != key)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, doc: Any) -> None:
        raw = encode_document(doc)
        size = self._size_without(key) + byte_size(key) + byte_size(raw)
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise StorageQuotaExceeded(f"Writing {key} would exceed the {self.quota_bytes} byte quota")
        self._data[key] = raw

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)

    def snapshot(self) -> Dict[str, Any]:
        """Decoded copy of everything, mostly for tests."""
        return {key: copy.deepcopy(self.get(key)) for key in self._data}


class SqlAlchemyKeyValueStore(KeyValueStore):
    """Store keeping one ``stored_documents`` row per key."""

    def __init__(self, session_factory: Callable[[], Session], max_document_bytes: Optional[int] = None):
        """Initialize the store with a session factory such as ``SessionLocal``."""
        self.session_factory = session_factory
        self.max_document_bytes = max_document_bytes

    def get(self, key: str) -> Optional[Any]:
        with self.session_factory() as db:
            row = db.query(StoredDocument).filter(StoredDocument.key == key).first()
            return json.loads(row.value) if row else None

    def set(self, key: str, doc: Any) -> None:
        raw = encode_document(doc)
        size = byte_size(raw)
        if self.max_document_bytes is not None and size > self.max_document_bytes:
            raise StorageQuotaExceeded(f"Document {key} is {size} bytes, quota is {self.max_document_bytes}")

        with self.session_factory() as db:
            try:
                row = db.query(StoredDocument).filter(StoredDocument.key == key).first()
                if row is None:
                    db.add(StoredDocument(key=key, value=raw, size_bytes=size))
                else:
                    row.value = raw
                    row.size_bytes = size
                db.commit()
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to write document {key}: {e}")
                raise StorageFailure(f"Failed to write document {key}") from e

    def delete(self, key: str) -> None:
        with self.session_factory() as db:
            db.query(StoredDocument).filter(StoredDocument.key == key).delete()
            db.commit()

    def keys(self) -> List[str]:
        with self.session_factory() as db:
            return [key for (key,) in db.query(StoredDocument.key).order_by(StoredDocument.key).all()]
