"""Pytest configuration and fixtures for query builder tests."""

from typing import Any, Dict, List

import pytest
from dotenv import load_dotenv

from crossquery.dbs.memory import MemoryIndex
from crossquery.engine import SearchEngine
from crossquery.querydsl.builder import QueryBuilder

# Load environment variables
load_dotenv()


# Title tokens after StandardAnalyzer (stop words removed):
#   0 wildlife africa             4 europe africa trade talks
#   1 europe road trip            5 polar bears arctic
#   2 africa road safety campaign 6 police arrest suspects
#   3 asia markets rally
NEWS_DOCUMENTS: List[Dict[str, Any]] = [
    {
        "title": "Wildlife of Africa",
        "description": "Elephants and lions roam the savanna",
        "category": "nature",
        "published": 20110105,
        "views": 1200,
    },
    {
        "title": "Europe road trip",
        "description": "Driving across Europe on a budget",
        "category": "travel",
        "published": 20110212,
        "views": 800,
    },
    {
        "title": "Africa road safety campaign",
        "description": "New police checks on African roads",
        "category": "news",
        "published": 20101120,
        "views": 450,
    },
    {
        "title": "Asia markets rally",
        "description": "Stocks climb in Tokyo and Hong Kong",
        "category": "business",
        "published": 20110301,
        "views": 300,
    },
    {
        "title": "Europe and Africa trade talks",
        "description": "Ministers meet to discuss tariffs",
        "category": "business",
        "published": 20110115,
        "views": 950,
    },
    {
        "title": "Polar bears in the Arctic",
        "description": "Melting ice threatens polar wildlife",
        "category": "nature",
        "published": 20100930,
        "views": 2100,
    },
    {
        "title": "Police arrest suspects",
        "description": "Police in London arrest three men",
        "category": "news",
        "published": 20110220,
        "views": 600,
    },
]


@pytest.fixture(scope="session")
def news_documents() -> List[Dict[str, Any]]:
    """Sample news documents for engine tests."""
    return [dict(doc) for doc in NEWS_DOCUMENTS]


@pytest.fixture
def memory_index(news_documents) -> MemoryIndex:
    index = MemoryIndex()
    index.add_documents(news_documents)
    return index


@pytest.fixture
def engine(memory_index) -> SearchEngine:
    return SearchEngine(memory_index)


@pytest.fixture
def builder() -> QueryBuilder:
    """Fresh case-insensitive builder with eager raw parsing."""
    return QueryBuilder(case_sensitive=False, raw_parsing="eager")
