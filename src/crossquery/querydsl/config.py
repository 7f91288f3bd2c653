"""Per-builder configuration shared by a root builder and all of its groups."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from crossquery.abc import Analyzer, QueryParser
from crossquery.analyzers import KeywordAnalyzer, StandardAnalyzer
from crossquery.settings import settings

from .parser import LuceneQueryParser

__all__ = ("BuilderConfig",)


class BuilderConfig(BaseModel):
    """Collaborators and defaults used while clauses are added and resolved.

    Defaults are read from settings when the config is created; a config is
    immutable afterwards so every group of a tree sees the same values.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    parser: QueryParser = Field(default_factory=LuceneQueryParser)
    analyzer: Analyzer = Field(default_factory=StandardAnalyzer, description="Default analyzer for raw clauses.")
    keyword_analyzer: Analyzer = Field(default_factory=KeywordAnalyzer)
    raw_parsing: Literal["eager", "deferred"] = Field(default_factory=lambda: settings.RAW_QUERY_PARSING)
    fuzzy_max_edits: int = Field(default_factory=lambda: settings.FUZZY_MAX_EDITS, ge=0, le=2)
    fuzzy_prefix_length: int = Field(default_factory=lambda: settings.FUZZY_PREFIX_LENGTH, ge=0)
