"""Root query group with sort fields, build step and backend compilation.

Typical usage:

    query = QueryBuilder(lambda q: q.term("title", "Africa"))
    query.terms("title", ["wildlife", "safari"], occur="must")
    query.sort("published", descending=True, sort_type="long")
    built = query.build()
    query.to_where("elasticsearch")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from crossquery.constants import SortType
from crossquery.exceptions import InvalidArgumentError, InvalidConfigError
from crossquery.logger import Logger
from crossquery.schema import BuiltQuery, NativeQuery, SortField
from crossquery.types import OccurLike, QueryAction

from .clauses import require_field
from .config import BuilderConfig
from .group import QueryGroup
from .resolver import resolver

if TYPE_CHECKING:
    from .compilers.base import BaseCompiler

__all__ = ("QueryBuilder", "BackendType")

BackendType = Literal["generic", "lucene", "elasticsearch"]


class QueryBuilder(QueryGroup):
    """Root group of a query tree.

    Args:
        *actions: Setup callables run against the new builder, in order
        case_sensitive: Case flag for the whole tree (settings default when None)
        default_children_occur: Occurrence for root children added without one
        config: Builder configuration shared by every group of the tree
        raw_parsing: Shortcut overriding ``config.raw_parsing`` ("eager" or "deferred")
    """

    def __init__(
        self,
        *actions: QueryAction,
        case_sensitive: Optional[bool] = None,
        default_children_occur: Optional[OccurLike] = None,
        config: Optional[BuilderConfig] = None,
        raw_parsing: Optional[str] = None,
    ) -> None:
        config = config or BuilderConfig()
        if raw_parsing is not None:
            try:
                config = BuilderConfig(**{**dict(config), "raw_parsing": raw_parsing})
            except PydanticValidationError as exc:
                raise InvalidConfigError("Unknown raw parsing mode", raw_parsing=raw_parsing) from exc
        super().__init__(
            default_children_occur=default_children_occur,
            case_sensitive=case_sensitive,
            config=config,
        )
        self._sort_fields: List[SortField] = []
        self._filter: Optional[Union[NativeQuery, QueryGroup]] = None
        self.logger = Logger(self.__class__.__name__)
        self.setup(*actions)

    # -------------------
    # Sort fields
    # -------------------
    def sort(
        self, field: str, descending: bool = False, sort_type: Union[SortType, str] = SortType.STRING
    ) -> "QueryBuilder":
        """Append a sort field; earlier fields take precedence on ties.

        Score and doc order ignore ``field``, so it may be empty for them.
        """
        try:
            sort_field = SortField(field=field, descending=descending, sort_type=sort_type)
        except PydanticValidationError as exc:
            raise InvalidArgumentError("Invalid sort field", field=field, sort_type=sort_type) from exc
        if sort_field.sort_type not in (SortType.SCORE, SortType.DOC):
            require_field(field)
        self._sort_fields.append(sort_field)
        return self

    @property
    def sort_fields(self) -> Tuple[SortField, ...]:
        return tuple(self._sort_fields)

    def clear_sort(self) -> "QueryBuilder":
        self._sort_fields.clear()
        return self

    # -------------------
    # Filter
    # -------------------
    def filter(
        self,
        query: Union[NativeQuery, QueryGroup, QueryAction],
        *actions: QueryAction,
        default_children_occur: Optional[OccurLike] = None,
    ) -> "QueryBuilder":
        """Restrict matches to documents satisfying ``query`` without scoring it.

        ``query`` is a native query kept as is, a query group, or a setup
        action; setup actions run against a new detached group that shares
        this builder's configuration and case flag. Groups are flattened when
        the query is built. A later call replaces the current filter.

        Example:
            >>> query.filter(lambda f: f.term("category", "nature"), default_children_occur="must")
        """
        if query is self:
            raise InvalidArgumentError("A builder cannot filter on itself")
        if isinstance(query, (NativeQuery, QueryGroup)):
            if actions:
                raise InvalidArgumentError("Setup actions cannot follow a native query or group", got=type(query).__name__)
            current: Union[NativeQuery, QueryGroup] = query
        elif callable(query):
            current = self._child_group(default_children_occur=default_children_occur).setup(query, *actions)
        else:
            raise InvalidArgumentError(
                "Filter must be a native query, a query group or a setup action", got=type(query).__name__
            )
        self._filter = current
        self.logger.debug("Filter set from %s", type(query).__name__)
        return self

    @property
    def current_filter(self) -> Optional[Union[NativeQuery, QueryGroup]]:
        return self._filter

    def clear_filter(self) -> "QueryBuilder":
        self._filter = None
        return self

    def _resolve_filter(self) -> Optional[NativeQuery]:
        if isinstance(self._filter, QueryGroup):
            return resolver.resolve(self._filter)
        return self._filter

    # -------------------
    # Build
    # -------------------
    def build(self) -> BuiltQuery:
        """Flatten the tree into one composite query plus optional sort and filter.

        The tree is not modified; calling ``build()`` again after adding or
        removing clauses returns the updated query.

        Raises:
            QueryParseError: With deferred raw parsing, when a raw clause has invalid text
        """
        query = resolver.resolve(self)
        filter_query = self._resolve_filter()
        built = BuiltQuery(query=query, sort=resolver.resolve_sort(self._sort_fields), filter=filter_query)
        self.logger.message(
            "Built query with %d top-level clauses (%d total), sort fields: %d, filter: %s",
            len(query.clauses),
            query.clause_count(recursive=True),
            len(self._sort_fields),
            "none" if filter_query is None else filter_query.kind,
        )
        return built

    def to_dict(self) -> Dict[str, Any]:
        """Backend-neutral dict form of the built query."""
        return self.build().model_dump(mode="json")

    # -------------------
    # Backend-specific expression/dict
    # -------------------
    def _get_compiler(self, backend: BackendType) -> Optional[BaseCompiler]:
        """Return the backend-specific compiler, if any."""
        if backend == "lucene":
            from .compilers.lucene import lucene_compiler

            return lucene_compiler
        elif backend == "elasticsearch":
            from .compilers.elasticsearch import elasticsearch_compiler

            return elasticsearch_compiler
        elif backend == "generic":
            return None
        raise InvalidArgumentError("Unknown backend", backend=backend)

    def to_where(self, backend: BackendType = "generic") -> Any:
        """Compile to a backend-native query.

        - ``lucene`` returns a classic query syntax string.
        - ``elasticsearch`` returns a request body dict (``query`` and ``sort``).
        - ``generic`` returns the neutral dict form.
        """
        compiler = self._get_compiler(backend)
        if compiler:
            return compiler.to_where(self.build())
        return self.to_dict()

    def to_expr(self, backend: BackendType = "generic") -> str:
        """Compile to a string expression for logging and debugging."""
        compiler = self._get_compiler(backend)
        if compiler:
            return compiler.to_expr(self.build())
        return str(self.to_dict())
