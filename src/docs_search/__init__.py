"""Lexical search over scraped documentation."""

from docs_search.engine import (
    IndexVersionError,
    ScoringWeights,
    SearchDocument,
    SearchEngine,
    SearchResult,
    tokenize,
)

__all__ = [
    "IndexVersionError",
    "ScoringWeights",
    "SearchDocument",
    "SearchEngine",
    "SearchResult",
    "tokenize",
]
