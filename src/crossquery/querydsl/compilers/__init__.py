from .base import BaseCompiler
from .elasticsearch import ElasticsearchQueryCompiler, elasticsearch_compiler
from .lucene import LuceneQueryCompiler, lucene_compiler
from .utils import normalize_query_input

__all__ = (
    "BaseCompiler",
    "ElasticsearchQueryCompiler",
    "elasticsearch_compiler",
    "LuceneQueryCompiler",
    "lucene_compiler",
    "normalize_query_input",
)
