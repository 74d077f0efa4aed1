"""TF-IDF search over scraped documentation pages.

Each page gets a term vector built from its title (counted twice) and its
prose with fenced code removed. Queries are scored by cosine similarity plus
flat bonuses for title, section, code and fuzzy word matches.
"""

import json
import math
import os
import re
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from rich.console import Console

from mintlify_scraper.models import CodeExample, Document

console = Console()

INDEX_VERSION = "1.0"
MAX_HISTORY = 50
EXPORT_CONTENT_CHARS = 1000
FUZZY_CONTENT_CHARS = 500

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "should", "could", "may", "might", "must", "can", "this", "that",
        "these", "those", "it", "its", "they", "them", "their",
    }
)

CODE_FENCE_PATTERN = re.compile(r"```.*?```", re.DOTALL)
NON_TERM_PATTERN = re.compile(r"[^a-z0-9\s-]")

TermVector = dict[str, float]


class IndexVersionError(ValueError):
    """Raised when an exported index has an unknown version tag."""


@dataclass
class ScoringWeights:
    """Weights for each ranking signal."""

    similarity: float = 100.0
    title_bonus: float = 50.0
    section_bonus: float = 20.0
    code_bonus: float = 30.0
    fuzzy: float = 10.0
    quality_threshold: float = 70.0
    quality_boost: float = 1.1
    recency_days: int = 30
    recency_boost: float = 1.05


@dataclass
class SearchDocument:
    """A page as the search engine sees it."""

    id: int
    url: str
    title: str
    section: str
    content: str
    code_examples: list[CodeExample] = field(default_factory=list)
    quality_score: float | None = None
    last_modified: datetime | None = None
    vector: TermVector = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: int, document: Document, **extra: Any) -> "SearchDocument":
        return cls(
            id=doc_id,
            url=document.url,
            title=document.title,
            section=document.section or "General",
            content=document.content,
            code_examples=list(document.code_examples),
            **extra,
        )


@dataclass
class SearchResult:
    document: SearchDocument
    score: float
    preview: str
    match_type: str


def tokenize(text: str) -> list[str]:
    """Lowercase terms longer than two characters, code blocks and stop words removed."""
    prose = CODE_FENCE_PATTERN.sub(" ", text)
    prose = NON_TERM_PATTERN.sub(" ", prose.lower())
    return [term for term in prose.split() if len(term) > 2 and term not in STOP_WORDS]


def weigh_terms(terms: Iterable[str], idf: dict[str, float], default_idf: float) -> TermVector:
    return {term: count * idf.get(term, default_idf) for term, count in Counter(terms).items()}


def cosine_similarity(v1: TermVector, v2: TermVector) -> float:
    dot = sum(weight * v2.get(term, 0.0) for term, weight in v1.items())
    mag1 = sum(weight * weight for weight in v1.values())
    mag2 = sum(weight * weight for weight in v2.values())
    if mag1 == 0 or mag2 == 0:
        return 0.0
    return dot / (math.sqrt(mag1) * math.sqrt(mag2))


def edit_distance(s1: str, s2: str) -> int:
    """Levenshtein distance over the full table."""
    rows = [[0] * (len(s2) + 1) for _ in range(len(s1) + 1)]
    for i in range(len(s1) + 1):
        rows[i][0] = i
    for j in range(len(s2) + 1):
        rows[0][j] = j

    for i in range(1, len(s1) + 1):
        for j in range(1, len(s2) + 1):
            if s1[i - 1] == s2[j - 1]:
                rows[i][j] = rows[i - 1][j - 1]
            else:
                rows[i][j] = 1 + min(rows[i - 1][j], rows[i][j - 1], rows[i - 1][j - 1])

    return rows[len(s1)][len(s2)]


def _words_match(query_word: str, text_word: str) -> bool:
    if text_word.startswith(query_word) or query_word.startswith(text_word):
        return True
    return abs(len(text_word) - len(query_word)) <= 2 and edit_distance(query_word, text_word) <= 2


def fuzzy_match(query: str, text: str) -> float:
    """Share of query words found in ``text`` exactly, by prefix or within two edits.

    Words shorter than three characters never match but still count toward
    the total. A literal substring hit scores 1.0.
    """
    query_lower = query.lower()
    text_lower = text.lower()
    if query_lower in text_lower:
        return 1.0

    query_words = query_lower.split()
    text_words = text_lower.split()
    if not query_words:
        return 0.0

    matches = sum(
        1
        for query_word in query_words
        if len(query_word) >= 3 and any(_words_match(query_word, word) for word in text_words)
    )
    return matches / len(query_words)


def _collapse(text: str) -> str:
    return re.sub(r"\n+", " ", text).strip()


def generate_preview(content: str, query: str, max_length: int = 200) -> str:
    """A snippet around the first occurrence of ``query``, else the opening text."""
    index = content.lower().find(query.lower())
    if index != -1:
        start = max(0, index - 50)
        end = min(len(content), index + len(query) + 150)
        preview = _collapse(content[start:end])
        if start > 0:
            preview = "..." + preview
        if end < len(content):
            preview += "..."
        return preview

    preview = _collapse(content[:max_length])
    if len(content) > max_length:
        preview += "..."
    return preview


def _code_contains(document: SearchDocument, query_lower: str) -> bool:
    return any(query_lower in example.code.lower() for example in document.code_examples)


def match_type(query: str, document: SearchDocument) -> str:
    query_lower = query.lower()
    title = document.title.lower()
    if title == query_lower:
        return "exact-title"
    if query_lower in title:
        return "title"
    if query_lower in document.section.lower():
        return "section"
    if _code_contains(document, query_lower):
        return "code"
    if query_lower in document.content.lower():
        return "content"
    return "semantic"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class SearchEngine:
    """In-memory TF-IDF index with query history."""

    def __init__(
        self,
        weights: ScoringWeights | None = None,
        clock: Callable[[], datetime] = _utcnow,
        verbose: bool = False,
    ):
        self.weights = weights or ScoringWeights()
        self.clock = clock
        self.verbose = verbose
        self.documents: list[SearchDocument] = []
        self.idf: dict[str, float] = {}
        self.history: list[str] = []

    @property
    def built(self) -> bool:
        return bool(self.documents)

    def build(self, documents: Iterable[Document | SearchDocument]) -> int:
        """Index ``documents`` from scratch and return how many were indexed."""
        self.documents = [
            doc if isinstance(doc, SearchDocument) else SearchDocument.from_document(i, doc)
            for i, doc in enumerate(documents)
        ]
        if self.verbose:
            console.print(f"[cyan]Building search index for {len(self.documents)} pages...[/cyan]")

        doc_frequency: Counter[str] = Counter()
        for doc in self.documents:
            doc_frequency.update(set(tokenize(f"{doc.content} {doc.title}")))

        total = len(self.documents)
        self.idf = {term: math.log(total / count) for term, count in doc_frequency.items()}

        for doc in self.documents:
            doc.vector = weigh_terms(tokenize(f"{doc.title} {doc.title} {doc.content}"), self.idf, 0.0)

        return total

    def query_vector(self, query: str) -> TermVector:
        return weigh_terms(tokenize(query), self.idf, 1.0)

    def score(self, query: str, document: SearchDocument, query_vector: TermVector, include_code: bool = True) -> float:
        w = self.weights
        query_lower = query.lower()

        score = cosine_similarity(query_vector, document.vector) * w.similarity
        if query_lower in document.title.lower():
            score += w.title_bonus
        if query_lower in document.section.lower():
            score += w.section_bonus
        if include_code and _code_contains(document, query_lower):
            score += w.code_bonus
        score += fuzzy_match(query, f"{document.title} {document.content[:FUZZY_CONTENT_CHARS]}") * w.fuzzy

        if document.quality_score is not None and document.quality_score > w.quality_threshold:
            score *= w.quality_boost
        if document.last_modified is not None:
            if self.clock() - document.last_modified < timedelta(days=w.recency_days):
                score *= w.recency_boost

        return score

    def search(
        self,
        query: str,
        *,
        limit: int = 10,
        include_code: bool = True,
        section: str | None = None,
        min_score: float = 0.1,
    ) -> list[SearchResult]:
        """Rank indexed pages against ``query``; an empty index yields no results."""
        if not query or not query.strip():
            return []

        self.add_to_history(query)
        if not self.documents:
            return []

        vector = self.query_vector(query)
        results = []
        for document in self.documents:
            if section is not None and document.section != section:
                continue
            score = self.score(query, document, vector, include_code)
            if score < min_score:
                continue
            results.append(
                SearchResult(
                    document=document,
                    score=score,
                    preview=generate_preview(document.content, query),
                    match_type=match_type(query, document),
                )
            )

        results.sort(key=lambda result: result.score, reverse=True)
        return results[:limit]

    def add_to_history(self, query: str) -> None:
        self.history.insert(0, query)
        del self.history[MAX_HISTORY:]

    def suggestions(self, partial: str, limit: int = 5) -> list[str]:
        """Words from titles, then past queries, that extend ``partial``."""
        if len(partial) < 2:
            return []
        partial_lower = partial.lower()

        sources = [doc.title for doc in self.documents] + self.history
        found: dict[str, None] = {}
        for text in sources:
            for word in text.lower().split():
                if word.startswith(partial_lower) and len(word) > len(partial):
                    found.setdefault(word)
        return list(found)[:limit]

    def popular_searches(self, limit: int = 5) -> list[tuple[str, int]]:
        return Counter(self.history).most_common(limit)

    def sections(self) -> list[str]:
        return sorted({doc.section for doc in self.documents if doc.section})

    def export_index(self) -> dict[str, Any]:
        """JSON-ready snapshot of every term vector and the IDF table."""
        return {
            "documents": [
                {
                    "id": doc.id,
                    "url": doc.url,
                    "title": doc.title,
                    "section": doc.section,
                    "content": doc.content[:EXPORT_CONTENT_CHARS],
                    "vector": [[term, weight] for term, weight in doc.vector.items()],
                    "codeExamples": [
                        {"language": ex.language, "code": ex.code, "description": ex.description}
                        for ex in doc.code_examples
                    ],
                    "qualityScore": doc.quality_score,
                    "lastModified": doc.last_modified.isoformat() if doc.last_modified else None,
                }
                for doc in self.documents
            ],
            "idf": [[term, value] for term, value in self.idf.items()],
            "version": INDEX_VERSION,
        }

    def import_index(self, data: dict[str, Any]) -> None:
        """Replace the index with an exported snapshot.

        Raises:
            IndexVersionError: if the snapshot's version tag is not ``1.0``.
        """
        if data.get("version") != INDEX_VERSION:
            raise IndexVersionError(f"Incompatible index version: {data.get('version')!r}")

        documents = [
            SearchDocument(
                id=entry["id"],
                url=entry["url"],
                title=entry["title"],
                section=entry["section"],
                content=entry["content"],
                code_examples=[
                    CodeExample(language=ex["language"], code=ex["code"], description=ex.get("description"))
                    for ex in entry.get("codeExamples", [])
                ],
                quality_score=entry.get("qualityScore"),
                last_modified=_parse_timestamp(entry.get("lastModified")),
                vector={term: weight for term, weight in entry["vector"]},
            )
            for entry in data["documents"]
        ]
        self.documents = documents
        self.idf = {term: value for term, value in data["idf"]}
        if self.verbose:
            console.print(f"[green]Imported index with {len(documents)} documents[/green]")


def load_documents(docs_dir: str) -> list[Document]:
    """Read the ``documents.json`` written by the scraper."""
    with open(os.path.join(docs_dir, "documents.json"), encoding="utf-8") as f:
        return [Document.from_dict(entry) for entry in json.load(f)]


def save_index(engine: SearchEngine, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(engine.export_index(), f)


def load_index(path: str, **kwargs: Any) -> SearchEngine:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    engine = SearchEngine(**kwargs)
    engine.import_index(data)
    return engine
