"""Settings for CrossQuery."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class CrossQuerySettings(BaseSettings):
    """CrossQuery configuration settings."""

    LOG_LEVEL: str = "INFO"

    # Query composition
    QUERY_CASE_SENSITIVE: bool = False

    # Raw query parsing
    RAW_QUERY_PARSING: Literal["eager", "deferred"] = "eager"  # eager: parse when the clause is added
    RAW_DEFAULT_OPERATOR: Literal["OR", "AND"] = "OR"
    RAW_LOWERCASE_EXPANDED_TERMS: bool = True

    # Fuzzy defaults
    FUZZY_MAX_EDITS: int = 2
    FUZZY_PREFIX_LENGTH: int = 0

    # Execution
    MAX_CLAUSE_COUNT: int = 1024
    SEARCH_LIMIT: int = 20

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = CrossQuerySettings()
