"""Tests for catalog loading, user vocabulary and vocabulary uploads."""
from datetime import UTC, datetime

import httpx
import pytest

from lingodeck.exceptions import ValidationFailure
from lingodeck.models.vocabulary_models import VocabularyItem
from lingodeck.services.catalog_service import (
    MIN_USER_ID,
    CatalogLoader,
    DuplicateStrategy,
    VocabularyCatalog,
    VocabularyImporter,
    parse_vocabulary_file,
)
from lingodeck.services.fallback_vocabulary import fallback_for
from lingodeck.services.storage import CATALOG_CACHE_PREFIX, VOCABULARY_FILES_KEY

BASE_URL = "https://vocab.example.test"
DAY_MS = 86_400_000

CS_VI_WORDS = [
    {"id": 1, "word": "ahoj", "translation": "xin chào", "category": "greetings", "difficulty": 1},
    {"id": 2, "word": "kočka", "translation": "con mèo", "category": "animals", "difficulty": 2},
]


class FakeCatalogServer:
    """Serves vocabulary files per pair and counts requests."""

    def __init__(self):
        self.requests = []
        self.responses = {
            "/cs-vi/core.json": httpx.Response(200, json={"words": CS_VI_WORDS}),
            "/vi-en/core.json": httpx.Response(200, json=[
                {"id": 31, "word": "xin chào", "translation": "hello"},
            ]),
            "/vi-zh/core.json": httpx.Response(404),
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        response = self.responses.get(request.url.path, httpx.Response(404))
        return httpx.Response(response.status_code, content=response.content, headers=response.headers)


class MsClock:
    def __init__(self, now_ms: int = 1_710_417_600_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture
def server() -> FakeCatalogServer:
    return FakeCatalogServer()


@pytest.fixture
def ms_clock() -> MsClock:
    return MsClock()


@pytest.fixture
def loader(store, server, ms_clock) -> CatalogLoader:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return CatalogLoader(store, base_url=BASE_URL + "/", client=client, clock_ms=ms_clock)


@pytest.fixture
def importer(catalog, store, clock) -> VocabularyImporter:
    return VocabularyImporter(catalog, store, clock)


def upload(*words, pair="cs-vi"):
    return {"metadata": {"language_pair": pair}, "words": list(words)}


def test_url_for(loader):
    assert loader.url_for("cs-vi") == f"{BASE_URL}/cs-vi/core.json"


@pytest.mark.asyncio
async def test_load_from_network_and_cache(loader, server, store, ms_clock):
    words = await loader.load("cs-vi")
    assert [w.term for w in words] == ["ahoj", "kočka"]
    cached = store.get(CATALOG_CACHE_PREFIX + "cs-vi")
    assert cached["timestamp"] == ms_clock.now_ms
    assert len(cached["words"]) == 2

    ms_clock.now_ms += DAY_MS - 1
    again = await loader.load("cs-vi")
    assert again == words
    assert server.requests == ["/cs-vi/core.json"]


@pytest.mark.asyncio
async def test_expired_cache_is_refetched(loader, server, ms_clock):
    await loader.load("cs-vi")
    ms_clock.now_ms += DAY_MS
    await loader.load("cs-vi")
    assert len(server.requests) == 2


@pytest.mark.asyncio
async def test_force_refresh_skips_cache(loader, server):
    await loader.load("cs-vi")
    await loader.load("cs-vi", force_refresh=True)
    assert len(server.requests) == 2


@pytest.mark.asyncio
async def test_bare_word_list_is_accepted(loader):
    words = await loader.load("vi-en")
    assert [w.translation for w in words] == ["hello"]
    assert words[0].category == "basics"


@pytest.mark.asyncio
async def test_http_error_uses_fallback(loader, store):
    words = await loader.load("vi-zh")
    assert words == fallback_for("vi-zh")
    assert store.get(CATALOG_CACHE_PREFIX + "vi-zh") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>not json</html>"),
    httpx.Response(200, json={"words": [{"id": 1, "word": "ahoj"}]}),
    httpx.Response(200, json={"words": "none"}),
])
async def test_bad_payload_uses_fallback(loader, server, response):
    server.responses["/cs-vi/core.json"] = response
    assert await loader.load("cs-vi") == fallback_for("cs-vi")


@pytest.mark.asyncio
async def test_unknown_pair_without_fallback_is_empty(loader):
    assert await loader.load("de-en") == []


@pytest.mark.asyncio
async def test_load_into_merges_user_words(loader, store):
    seeded = VocabularyCatalog(store)
    seeded.set_user_words("cs-vi", [VocabularyItem(id=1001, term="pes", translation="chó")])

    catalog = await loader.load_into(VocabularyCatalog(store))
    assert catalog.language_pairs() == ["cs-vi", "vi-en", "vi-zh"]
    assert [item.term for item in catalog.items("cs-vi")] == ["ahoj", "kočka", "pes"]


@pytest.mark.asyncio
async def test_refresh_and_clear_cache(loader, server, store):
    catalog = await loader.load_into(VocabularyCatalog(store))
    await loader.refresh(catalog)
    assert server.requests.count("/cs-vi/core.json") == 2
    assert loader.clear_cache() == 2
    assert not [key for key in store.keys() if key.startswith(CATALOG_CACHE_PREFIX)]


def test_catalog_queries(catalog):
    assert catalog.find_by_id("cs-vi", "2").term == "děkuji"
    assert catalog.find_by_id("cs-vi", 999) is None
    assert {item.id for item in catalog.by_category("cs-vi", "family")} == {12, 13, 14}
    assert len(catalog.by_difficulty("vi-en", 2)) == 1
    assert catalog.categories("vi-zh") == ["family", "food", "greetings", "numbers"]

    stats = catalog.stats("cs-vi")
    assert stats.total == 21
    assert stats.by_category["numbers"] == 5
    assert sum(stats.by_difficulty.values()) == 21


def test_parse_vocabulary_file_rejects_missing_words():
    with pytest.raises(ValidationFailure) as exc_info:
        parse_vocabulary_file({"metadata": {}})
    assert exc_info.value.reason == "Missing or invalid words array"

    with pytest.raises(ValidationFailure):
        parse_vocabulary_file(["ahoj"])


def test_parse_vocabulary_file_rejects_incomplete_word():
    with pytest.raises(ValidationFailure) as exc_info:
        parse_vocabulary_file({"words": [{"word": "pes"}]})
    assert exc_info.value.reason == "Word missing required fields"


@pytest.mark.parametrize("word, reason", [
    ({"word": 5, "translation": "pet"}, "Word and translation must be text"),
    ({"word": "pes", "translation": ["chó"]}, "Word and translation must be text"),
    ({"word": "pes", "translation": "chó", "difficulty": "hard"}, "Invalid difficulty for pes: 'hard'"),
    ({"word": "pes", "translation": "chó", "difficulty": 4}, "Invalid difficulty for pes: 4"),
])
def test_parse_vocabulary_file_rejects_bad_field_types(word, reason):
    with pytest.raises(ValidationFailure) as exc_info:
        parse_vocabulary_file({"words": [word]})
    assert exc_info.value.reason == reason


def test_import_with_bad_field_types_changes_nothing(importer, catalog, store):
    with pytest.raises(ValidationFailure):
        importer.import_file(upload({"word": 5, "translation": "pet"}), "bad.json")
    with pytest.raises(ValidationFailure):
        importer.import_file(upload({"word": "pes", "translation": "chó", "difficulty": "hard"}), "bad.json")
    assert catalog.user_words("cs-vi") == []
    assert store.get(VOCABULARY_FILES_KEY) is None


def test_numeric_text_difficulty_is_accepted(importer, catalog):
    importer.import_file(upload({"word": "pes", "translation": "chó", "difficulty": "2"}), "a.json")
    assert catalog.user_words("cs-vi")[0].base_difficulty == 2


def test_strategy_parse():
    assert DuplicateStrategy.parse("add") is DuplicateStrategy.ALTERNATE
    assert DuplicateStrategy.parse("replace") is DuplicateStrategy.REPLACE
    with pytest.raises(ValueError):
        DuplicateStrategy.parse("merge")


def test_import_new_words(importer, catalog, store):
    report = importer.import_file(upload(
        {"word": "pes", "translation": "chó", "category": "animals"},
        {"word": "kočka", "translation": "mèo", "category": "animals"},
    ), "animals.json")

    assert (report.added, report.imported) == (2, 2)
    added = catalog.user_words("cs-vi")
    assert [item.id for item in added] == [MIN_USER_ID + 1, MIN_USER_ID + 2]
    assert catalog.find_by_id("cs-vi", MIN_USER_ID + 1).translation == "chó"
    assert len(catalog.items("cs-vi")) == 23

    files = store.get(VOCABULARY_FILES_KEY)["cs-vi"]
    assert files == [{"name": "animals.json", "wordCount": 2, "uploadedAt": "2024-03-14T12:00:00+00:00"}]


def test_import_keeps_free_ids_and_replaces_taken_ones(importer, catalog):
    importer.import_file(upload(
        {"id": 5000, "word": "pes", "translation": "chó"},
        {"id": 2, "word": "kočka", "translation": "mèo"},
    ), "ids.json")
    ids = [item.id for item in catalog.user_words("cs-vi")]
    assert ids == [5000, MIN_USER_ID + 1]


def test_import_uses_pair_argument_without_metadata(importer, catalog):
    report = importer.import_file({"words": [{"word": "cat", "translation": "mèo"}]}, "x.json",
                                  language_pair="vi-en")
    assert report.language_pair == "vi-en"
    assert catalog.user_words("vi-en")[0].term == "cat"

    with pytest.raises(ValidationFailure):
        importer.import_file({"words": []}, "x.json")


def test_duplicate_skip(importer, catalog):
    report = importer.import_file(upload({"word": "Ahoj", "translation": "chào"}), "dup.json")
    assert (report.skipped, report.imported) == (1, 0)
    assert catalog.find_by_id("cs-vi", 1).translation == "xin chào"


def test_duplicate_replace_keeps_id(importer, catalog):
    report = importer.import_file(
        upload({"word": "ahoj", "translation": "chào bạn", "category": "greetings"}), "dup.json", "replace"
    )
    assert report.replaced == 1
    item = catalog.find_by_id("cs-vi", 1)
    assert item.translation == "chào bạn"
    assert len(catalog.items("cs-vi")) == 21
    assert [i.term for i in catalog.items("cs-vi")].count("ahoj") == 1


def test_duplicate_add_as_alternate(importer, catalog):
    report = importer.import_file(upload({"word": "ahoj", "translation": "chào"}), "dup.json", "add")
    assert report.alternates == 1
    item = catalog.find_by_id("cs-vi", 1)
    assert item.accepted_translations == ("xin chào", "chào")
    assert len(catalog.items("cs-vi")) == 21


def test_deselected_words_are_ignored(importer, catalog):
    analyzed = importer.analyze([
        {"word": "pes", "translation": "chó"},
        {"word": "ahoj", "translation": "chào"},
    ], "cs-vi")
    assert [word.status for word in analyzed] == ["new", "duplicate"]
    assert analyzed[1].existing.id == 1

    analyzed[0].selected = False
    report = importer.apply(analyzed, "cs-vi", DuplicateStrategy.REPLACE, "picked.json")
    assert (report.added, report.replaced) == (0, 1)
    assert importer.tracked_files()["cs-vi"][0]["wordCount"] == 1


def test_user_words_persist_and_delete(importer, catalog, store):
    importer.import_file(upload({"word": "pes", "translation": "chó"}), "a.json")

    reloaded = VocabularyCatalog(store)
    reloaded.load_user_vocabulary()
    assert [item.term for item in reloaded.user_words("cs-vi")] == ["pes"]

    assert catalog.delete_user_word("cs-vi", MIN_USER_ID + 1)
    assert not catalog.delete_user_word("cs-vi", 1)
    assert catalog.find_by_id("cs-vi", 1) is not None
    assert store.get("userVocabulary") == {"cs-vi": []}


def test_malformed_user_words_are_skipped(catalog):
    catalog.load_user_vocabulary({"cs-vi": [{"word": "bez id"}, {"id": 1001, "word": "pes", "translation": "chó"}]})
    assert [item.id for item in catalog.user_words("cs-vi")] == [1001]


def test_importer_clock_is_used(catalog, store):
    importer = VocabularyImporter(catalog, store, clock=lambda: datetime(2025, 1, 2, 3, 4, tzinfo=UTC))
    importer.import_file(upload({"word": "pes", "translation": "chó"}), "a.json")
    assert importer.tracked_files()["cs-vi"][0]["uploadedAt"].startswith("2025-01-02T03:04")
