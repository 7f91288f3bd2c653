"""Keyed addressing of the entries of one query group."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from crossquery.exceptions import DuplicateKeyError, InvalidArgumentError

if TYPE_CHECKING:
    from crossquery.types import Entry

__all__ = ("ClauseRegistry",)


class ClauseRegistry:
    """Mapping from key to the clause (or keyed sub-group) it names.

    A registry belongs to exactly one group; nested groups keep their own.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Entry] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries)

    def check_available(self, key: Optional[str]) -> None:
        """Raise unless ``key`` is absent or free to use."""
        if key is None:
            return
        if not isinstance(key, str) or not key:
            raise InvalidArgumentError("Key must be a non-empty string", key=key)
        if key in self._entries:
            raise DuplicateKeyError("Key already registered in this group", key=key)

    def register(self, key: str, entry: Entry) -> None:
        self.check_available(key)
        self._entries[key] = entry

    def get(self, key: str) -> Optional[Entry]:
        return self._entries.get(key)

    def pop(self, key: str) -> Optional[Entry]:
        return self._entries.pop(key, None)
