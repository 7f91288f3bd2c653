"""
Main engine for executing built queries.

This module provides the `SearchEngine`, a high-level class that hands
composite queries to a pluggable search backend and wraps the hits into a
`SearchResult` with total hit count, elapsed time and paged access.
"""

import time
from typing import Any, Dict, Iterable, List, Optional

from crossquery.settings import settings

from .abc import SearchBackend
from .exceptions import InvalidArgumentError
from .logger import Logger
from .querydsl.compilers.utils import normalize_query_input
from .schema import SearchResult, Sort
from .types import QueryInput


class SearchEngine:
    """High-level orchestrator executing queries against a search backend.

    Key Features:
        - Flexible input: accepts a QueryBuilder, BuiltQuery, native query or dumped dict
        - Result limit with paged access beyond it
        - Elapsed time measurement around the backend call

    Attributes:
        backend: Search backend instance
    """

    def __init__(self, backend: SearchBackend) -> None:
        """Initialize SearchEngine with a search backend.

        Args:
            backend: Backend implementing the SearchBackend interface
        """
        self._backend = backend
        self.logger = Logger(self.__class__.__name__)
        self.logger.message("SearchEngine initialized: backend=%s", backend.__class__.__name__)

    @property
    def backend(self) -> SearchBackend:
        """Access the search backend instance."""
        return self._backend

    def add_documents(self, documents: Iterable[Dict[str, Any]]) -> List[int]:
        """Index documents through the backend and return their ids."""
        return self._backend.add_documents(documents)

    def count(self) -> int:
        return self._backend.count()

    def execute(
        self,
        query: QueryInput,
        limit: Optional[int] = None,
        sort: Optional[Sort] = None,
    ) -> SearchResult:
        """Execute a query and collect its hits.

        Args:
            query: QueryBuilder, BuiltQuery, native query or dumped dict
              (a built query's filter restricts the hits without changing scores)
            limit: Number of top hits exposed by `SearchResult.hits` (default from settings)
            sort: Sort overriding the one carried by the query

        Returns:
            SearchResult with every hit; `get_paged_documents` may reach past the limit

        Raises:
            InvalidArgumentError: If limit is negative
            EngineRejectedError: If the backend refuses the query (e.g. too many clauses)
            QueryParseError: If a deferred raw clause fails to parse

        Examples:
            >>> result = engine.execute(QueryBuilder(lambda q: q.term("title", "africa")), limit=10)
            >>> result.total_hits, result.get_top_documents()
        """
        if limit is None:
            limit = settings.SEARCH_LIMIT
        if limit < 0:
            raise InvalidArgumentError("Limit must not be negative", limit=limit)

        native, query_sort, filter_query = normalize_query_input(query)
        start = time.perf_counter()
        hits = self._backend.search(native, sort or query_sort, filter_query)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        self.logger.message(
            "Executed %s query%s on %s: %d hits in %.2f ms",
            getattr(native, "kind", type(native).__name__),
            "" if filter_query is None else " (filtered)",
            self._backend.name,
            len(hits),
            elapsed_ms,
        )
        return SearchResult(total_hits=len(hits), elapsed_ms=elapsed_ms, limit=limit, matches=hits)
