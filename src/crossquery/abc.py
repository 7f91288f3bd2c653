"""Abstract interfaces for the collaborators around the query builder.

- `Analyzer` turns field text into index/query terms.
- `QueryParser` turns raw query text into a native query (used by raw and
  keyword clauses).
- `SearchBackend` executes a composite query and sort.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from .schema import NativeQuery, SearchHit, Sort


class Analyzer(ABC):
    """Tokenizes text into an ordered list of terms (positions are list indexes)."""

    @abstractmethod
    def tokenize(self, text: str) -> List[str]:
        raise NotImplementedError

    def __call__(self, text: str) -> List[str]:
        return self.tokenize(text)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class QueryParser(ABC):
    """Parses free query text against a default field."""

    @abstractmethod
    def parse(self, field: str, text: str, analyzer: Optional[Analyzer] = None) -> NativeQuery:
        """Parse ``text`` into a native query.

        Args:
            field: Default field for terms without an explicit ``field:`` prefix
            text: Raw query text
            analyzer: Analyzer for plain terms and phrases (parser default when None)

        Raises:
            QueryParseError: If the text is not valid query syntax
        """
        raise NotImplementedError


class SearchBackend(ABC):
    """Search engine adapter executing composite queries.

    Implementations return every matching hit in result order; limiting and
    timing are handled by `SearchEngine`.
    """

    name: str = "backend"

    @abstractmethod
    def add_documents(self, documents: Iterable[Dict[str, Any]]) -> List[int]:
        """Index documents and return their ids."""
        raise NotImplementedError

    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def search(
        self, query: NativeQuery, sort: Optional[Sort] = None, filter_query: Optional[NativeQuery] = None
    ) -> List[SearchHit]:
        """Return every hit for ``query`` ordered by ``sort`` (relevance when None).

        ``filter_query`` restricts the hits without contributing to their score.

        Raises:
            EngineRejectedError: If the backend refuses the query
        """
        raise NotImplementedError
