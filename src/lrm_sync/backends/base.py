"""Backend protocol for reading and writing resource files.

A backend knows one on-disk format.  The sync engine only needs three
operations: discover the language files under a directory, read one of
them into flat entries, and (optionally) write entries back after a
conflict was resolved in favour of the server or a hand-edited value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class LanguageInfo:
    """One discovered language file.

    ``code`` is empty for the default-language file (``strings.json``).
    """

    base_name: str
    code: str
    file_path: Path
    is_default: bool = False
    name: str = ""


@dataclass
class ResourceEntry:
    key: str
    value: str | None = None
    comment: str | None = None
    is_plural: bool = False
    plural_forms: dict[str, str] | None = None


@dataclass
class ResourceFile:
    language: LanguageInfo
    entries: list[ResourceEntry] = field(default_factory=list)

    def find(self, key: str) -> ResourceEntry | None:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None


@runtime_checkable
class ResourceBackend(Protocol):
    """Read access to one resource format."""

    name: str

    def discover_languages(self, path: Path) -> list[LanguageInfo]:
        ...  # pragma: no cover

    def read(self, language: LanguageInfo) -> ResourceFile:
        ...  # pragma: no cover


@runtime_checkable
class WritableBackend(ResourceBackend, Protocol):
    """A backend that can also persist entries."""

    def write(self, resource_file: ResourceFile) -> None:
        ...  # pragma: no cover
