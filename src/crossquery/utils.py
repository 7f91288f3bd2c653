"""Utility functions for crossquery.

Text helpers shared by the builder, the raw parser, the compilers and the
in-memory index.
"""

import math
import re
from typing import Any, Iterator, Tuple

# Characters with a meaning in Lucene classic query syntax
QUERY_SPECIAL_CHARS = frozenset('+-&|!(){}[]^"~*?:\\/ ')
WILDCARD_CHARS = frozenset("*?")


def lowercase_invariant(value: str) -> str:
    """Lowercase ``value`` independently of the process locale.

    ``str.lower`` applies the Unicode default case mapping and never consults
    the C locale, so this is the invariant transform.
    """
    return value.lower()


def is_finite_number(value: Any) -> bool:
    """True for int/float values that are finite; bools are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def iter_escaped(text: str) -> Iterator[Tuple[str, bool]]:
    """Yield ``(char, escaped)`` pairs, consuming backslash escapes."""
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, None)
            if nxt is None:
                yield ch, False
                return
            yield nxt, True
        else:
            yield ch, False


def unescape_query_text(text: str) -> str:
    """Drop backslash escapes: ``a\\:b`` -> ``a:b``."""
    return "".join(ch for ch, _ in iter_escaped(text))


def escape_query_text(text: str) -> str:
    """Backslash-escape every character that is special in query syntax."""
    return "".join(f"\\{ch}" if ch in QUERY_SPECIAL_CHARS else ch for ch in text)


def escape_wildcard_pattern(pattern: str) -> str:
    """Escape special characters of a wildcard pattern, keeping ``*`` and ``?`` live."""
    out = []
    for ch, escaped in iter_escaped(pattern):
        if ch in WILDCARD_CHARS:
            out.append(f"\\{ch}" if escaped else ch)
        elif ch in QUERY_SPECIAL_CHARS:
            out.append(f"\\{ch}")
        else:
            out.append(ch)
    return "".join(out)


def has_wildcard(text: str) -> bool:
    """True when ``text`` holds an unescaped ``*`` or ``?``."""
    return any(ch in WILDCARD_CHARS and not escaped for ch, escaped in iter_escaped(text))


def wildcard_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a glob-style pattern (``*`` any run, ``?`` one char) to a full-match regex.

    Backslash-escaped ``*`` and ``?`` match literally.
    """
    parts = []
    for ch, escaped in iter_escaped(pattern):
        if ch == "*" and not escaped:
            parts.append(".*")
        elif ch == "?" and not escaped:
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)
