"""Tests for docs_search.engine module."""

import json
import math
from datetime import datetime, timedelta, timezone

import pytest

from docs_search.engine import (
    IndexVersionError,
    ScoringWeights,
    SearchDocument,
    SearchEngine,
    cosine_similarity,
    edit_distance,
    fuzzy_match,
    generate_preview,
    load_index,
    match_type,
    save_index,
    tokenize,
)
from mintlify_scraper.models import CodeExample, Document

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def document(path: str, title: str, content: str, section: str = "guides", code: str | None = None) -> Document:
    return Document(
        url=f"https://docs.example.com{path}",
        path=path,
        title=title,
        content=content,
        section=section,
        code_examples=(CodeExample("python", code),) if code else (),
    )


CORPUS = [
    document(
        "/guides/authentication",
        "Authentication",
        "Use an API key to sign every request. Keys are created in the dashboard.",
    ),
    document(
        "/guides/webhooks",
        "Webhooks",
        "Receive events over HTTP. Verify each delivery with the signing secret.",
    ),
    document(
        "/api/clients",
        "Client library",
        "Install the client and connect to the service.",
        section="api",
        code="client = Client()\nclient.connect(timeout=5)\n",
    ),
]


@pytest.fixture
def engine() -> SearchEngine:
    engine = SearchEngine(clock=lambda: NOW)
    engine.build(CORPUS)
    return engine


class TestTokenize:
    def test_drops_short_and_stop_words(self):
        assert tokenize("The API is on the server") == ["api", "server"]

    def test_strips_code_fences(self):
        assert tokenize("Install ```pip install secret``` the package quickly") == [
            "install",
            "package",
            "quickly",
        ]

    def test_keeps_hyphens_and_digits(self):
        assert tokenize("Rate-limit: 100 requests/min!") == ["rate-limit", "100", "requests", "min"]


class TestPrimitives:
    def test_edit_distance(self):
        assert edit_distance("kitten", "sitting") == 3
        assert edit_distance("", "abc") == 3
        assert edit_distance("same", "same") == 0

    def test_cosine(self):
        assert cosine_similarity({"a": 1.0}, {"a": 2.0}) == pytest.approx(1.0)
        assert cosine_similarity({"a": 1.0}, {"b": 1.0}) == 0.0
        assert cosine_similarity({}, {"a": 1.0}) == 0.0

    def test_fuzzy_substring(self):
        assert fuzzy_match("api key", "Use an API key") == 1.0

    def test_fuzzy_typo(self):
        assert fuzzy_match("authentcation", "Authentication guide") == 1.0

    def test_fuzzy_partial(self):
        assert fuzzy_match("webhook zzzzzz", "Webhooks receive events") == 0.5

    def test_fuzzy_short_words_count_against(self):
        assert fuzzy_match("an webhook", "Webhooks receive events") == 0.5

    def test_preview_centres_on_match(self):
        content = "x" * 300 + " the needle is here " + "y" * 300
        preview = generate_preview(content, "needle")
        assert preview.startswith("...")
        assert preview.endswith("...")
        assert "needle" in preview

    def test_preview_without_match(self):
        content = "line one\nline two " + "z" * 300
        preview = generate_preview(content, "absent")
        assert preview.startswith("line one line two")
        assert preview.endswith("...")
        assert len(preview) == 203


class TestBuild:
    def test_idf(self, engine):
        assert engine.idf["webhooks"] == pytest.approx(math.log(3))
        assert "the" not in engine.idf

    def test_title_weighted_twice(self, engine):
        vector = engine.documents[1].vector
        idf = engine.idf["webhooks"]
        assert vector["webhooks"] == pytest.approx(2 * idf)

    def test_code_not_indexed(self, engine):
        assert "timeout" not in engine.idf

    def test_default_section(self):
        engine = SearchEngine()
        engine.build([document("/x", "X", "text", section="")])
        assert engine.documents[0].section == "General"


class TestSearch:
    def test_title_match_ranks_first(self, engine):
        results = engine.search("authentication")
        assert results[0].document.title == "Authentication"
        assert results[0].score >= 50
        assert results[0].match_type == "exact-title"

    def test_two_document_title_query(self):
        engine = SearchEngine()
        engine.build(
            [
                document("/a", "Pagination", "Results are returned in pages of fifty."),
                document("/b", "Errors", "Pagination errors return status 400."),
            ]
        )
        results = engine.search("pagination")
        assert [r.document.title for r in results] == ["Pagination", "Errors"]
        assert results[0].score >= 50 > results[1].score

    def test_code_bonus(self, engine):
        with_code = engine.search("client.connect")[0]
        without_code = engine.search("client.connect", include_code=False)[0]
        assert with_code.match_type == "code"
        assert with_code.score - without_code.score == pytest.approx(30)

    def test_section_filter(self, engine):
        results = engine.search("client", section="api")
        assert {r.document.section for r in results} == {"api"}

    def test_section_bonus(self, engine):
        result = engine.search("api", section="api")[0]
        assert result.match_type == "section"
        assert result.score >= 20

    def test_limit_and_min_score(self, engine):
        assert len(engine.search("request", limit=1)) == 1
        assert engine.search("request", min_score=1000) == []

    def test_sorted_descending(self, engine):
        scores = [r.score for r in engine.search("signing request secret")]
        assert scores == sorted(scores, reverse=True)

    def test_empty_query(self, engine):
        assert engine.search("") == []
        assert engine.search("   ") == []

    def test_unbuilt_index(self):
        engine = SearchEngine()
        assert engine.built is False
        assert engine.search("anything") == []

    def test_empty_corpus(self):
        engine = SearchEngine()
        assert engine.build([]) == 0
        assert engine.search("anything") == []


class TestBoosts:
    def _pair(self, **extra) -> SearchEngine:
        engine = SearchEngine(clock=lambda: NOW)
        base = document("/a", "Rate limits", "Requests are limited per key.")
        engine.build(
            [
                SearchDocument.from_document(0, base, **extra),
                SearchDocument.from_document(1, base),
            ]
        )
        return engine

    def _ratio(self, engine: SearchEngine) -> float:
        vector = engine.query_vector("rate limits")
        boosted, plain = engine.documents
        return engine.score("rate limits", boosted, vector) / engine.score("rate limits", plain, vector)

    def test_quality(self):
        assert self._ratio(self._pair(quality_score=80)) == pytest.approx(1.1)

    def test_low_quality_not_boosted(self):
        assert self._ratio(self._pair(quality_score=70)) == pytest.approx(1.0)

    def test_recent(self):
        assert self._ratio(self._pair(last_modified=NOW - timedelta(days=5))) == pytest.approx(1.05)

    def test_stale(self):
        assert self._ratio(self._pair(last_modified=NOW - timedelta(days=40))) == pytest.approx(1.0)

    def test_custom_weights(self):
        engine = SearchEngine(weights=ScoringWeights(title_bonus=0, fuzzy=0))
        engine.build([document("/a", "Alpha", ""), document("/b", "Beta", "")])
        assert engine.search("alpha")[0].score == pytest.approx(100.0)


class TestAuxiliary:
    def test_suggestions(self, engine):
        assert engine.suggestions("a") == []
        assert engine.suggestions("auth") == ["authentication"]
        engine.search("webhook retries")
        assert "retries" in engine.suggestions("ret")

    def test_suggestions_limit(self):
        engine = SearchEngine()
        engine.build([document(f"/{n}", f"install{n}", "x") for n in range(10)])
        assert len(engine.suggestions("inst")) == 5

    def test_history_capped(self, engine):
        for n in range(60):
            engine.search(f"query {n}")
        assert len(engine.history) == 50
        assert engine.history[0] == "query 59"

    def test_popular_searches(self, engine):
        for query in ["keys", "webhooks", "keys", "client", "keys", "webhooks"]:
            engine.search(query)
        assert engine.popular_searches(2) == [("keys", 3), ("webhooks", 2)]

    def test_sections(self, engine):
        assert engine.sections() == ["api", "guides"]

    def test_match_types(self, engine):
        doc = engine.documents[0]
        assert match_type("Authentication", doc) == "exact-title"
        assert match_type("auth", doc) == "title"
        assert match_type("guides", doc) == "section"
        assert match_type("dashboard", doc) == "content"
        assert match_type("oauth tokens", doc) == "semantic"


class TestPersistence:
    QUERIES = ["authentication", "signing secret", "client.connect", "connect service", "keyz"]

    def test_round_trip_scores(self, engine):
        engine.documents[0].quality_score = 90
        engine.documents[1].last_modified = NOW - timedelta(days=1)
        restored = SearchEngine(clock=lambda: NOW)
        restored.import_index(json.loads(json.dumps(engine.export_index())))

        for query in self.QUERIES:
            before = [(r.document.url, r.score) for r in engine.search(query)]
            after = [(r.document.url, r.score) for r in restored.search(query)]
            assert after == before

    def test_export_shape(self, engine):
        data = engine.export_index()
        assert data["version"] == "1.0"
        entry = data["documents"][0]
        assert {"id", "url", "title", "section", "content", "vector"} <= set(entry)
        assert all(len(pair) == 2 for pair in entry["vector"])
        assert all(len(pair) == 2 for pair in data["idf"])

    def test_content_truncated(self):
        engine = SearchEngine()
        engine.build([document("/a", "Long", "word " * 500)])
        assert len(engine.export_index()["documents"][0]["content"]) == 1000

    def test_version_mismatch(self, engine):
        data = engine.export_index()
        data["version"] = "2.0"
        fresh = SearchEngine()
        fresh.build([document("/keep", "Keep", "kept")])
        with pytest.raises(IndexVersionError):
            fresh.import_index(data)
        assert [d.title for d in fresh.documents] == ["Keep"]
        assert isinstance(IndexVersionError("x"), ValueError)

    def test_missing_version(self):
        with pytest.raises(IndexVersionError):
            SearchEngine().import_index({"documents": [], "idf": []})

    def test_save_and_load(self, engine, tmp_path):
        path = str(tmp_path / "index.json")
        save_index(engine, path)
        loaded = load_index(path, clock=lambda: NOW)
        assert loaded.search("webhooks")[0].document.title == "Webhooks"
        assert loaded.sections() == engine.sections()
