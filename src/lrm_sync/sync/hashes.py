"""Two-level map of content hashes keyed by entry key, then language.

``EntryHashes`` is used for the baseline, for the hashes returned by the
server, and for the merged result of a cycle.  Empty inner maps are
pruned on removal so that a key without languages never survives into a
persisted baseline.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping


class EntryHashes:
    """Mutable ``key -> language -> hash`` map with explicit operations."""

    def __init__(
        self, data: Mapping[str, Mapping[str, str]] | None = None
    ) -> None:
        self._data: dict[str, dict[str, str]] = {}
        if data:
            for key, languages in data.items():
                for lang, value in languages.items():
                    self.set(key, lang, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, str]]) -> EntryHashes:
        return cls(data)

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Return a plain nested dict copy (keys sorted for stable output)."""
        return {
            key: dict(sorted(self._data[key].items()))
            for key in sorted(self._data)
        }

    def copy(self) -> EntryHashes:
        return EntryHashes(self._data)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, key: str, lang: str) -> str | None:
        return self._data.get(key, {}).get(lang)

    def contains(self, key: str, lang: str) -> bool:
        return lang in self._data.get(key, {})

    def keys(self) -> list[str]:
        return list(self._data)

    def languages(self, key: str) -> list[str]:
        return list(self._data.get(key, {}))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set(self, key: str, lang: str, value: str) -> None:
        self._data.setdefault(key, {})[lang] = value

    def remove(self, key: str, lang: str | None = None) -> None:
        """Remove one language of *key*, or the whole key if *lang* is None."""
        if lang is None:
            self._data.pop(key, None)
            return
        languages = self._data.get(key)
        if languages is None:
            return
        languages.pop(lang, None)
        if not languages:
            del self._data[key]

    def merge(self, other: EntryHashes) -> None:
        """Copy every pair of *other* into this map, overwriting on collision."""
        for key, lang, value in other:
            self.set(key, lang, value)

    # ------------------------------------------------------------------
    # Protocols
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[tuple[str, str, str]]:
        for key, languages in list(self._data.items()):
            for lang, value in list(languages.items()):
                yield key, lang, value

    def __len__(self) -> int:
        return sum(len(languages) for languages in self._data.values())

    def __bool__(self) -> bool:
        return bool(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EntryHashes):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == {k: dict(v) for k, v in other.items() if v}
        return NotImplemented

    def __repr__(self) -> str:
        return f"EntryHashes({self.to_dict()!r})"
