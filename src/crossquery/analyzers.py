"""Text analyzers used by the raw query parser and the in-memory index."""

import re
from typing import FrozenSet, Iterable, List, Optional

from .abc import Analyzer

# Stop set of the classic Lucene StandardAnalyzer
ENGLISH_STOP_WORDS: FrozenSet[str] = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if", "in", "into",
        "is", "it", "no", "not", "of", "on", "or", "such", "that", "the", "their", "then",
        "there", "these", "they", "this", "to", "was", "will", "with",
    }
)  # fmt: skip


class StandardAnalyzer(Analyzer):
    """Word tokenizer with lowercasing and stop-word removal.

    Apostrophes stay inside tokens (``o'neil``); any other non-word
    character separates tokens.
    """

    def __init__(
        self,
        stop_words: Optional[Iterable[str]] = ENGLISH_STOP_WORDS,
        lowercase: bool = True,
        pattern: str = r"[\w']+",
    ) -> None:
        self.stop_words: FrozenSet[str] = frozenset(stop_words or ())
        self.lowercase = lowercase
        self.pattern = re.compile(pattern, re.UNICODE)

    def tokenize(self, text: str) -> List[str]:
        tokens = []
        for match in self.pattern.finditer(text):
            token = match.group(0).strip("'")
            if not token:
                continue
            if self.lowercase:
                token = token.lower()
            if token in self.stop_words:
                continue
            tokens.append(token)
        return tokens

    def __repr__(self) -> str:
        return f"StandardAnalyzer(stop_words={len(self.stop_words)}, lowercase={self.lowercase})"


class KeywordAnalyzer(Analyzer):
    """Emits the whole input as a single token, untouched."""

    def tokenize(self, text: str) -> List[str]:
        return [text] if text else []


class WhitespaceAnalyzer(Analyzer):
    """Splits on whitespace only; case is preserved."""

    def tokenize(self, text: str) -> List[str]:
        return text.split()
