"""Baseline persistence layer.

The baseline records, for every (key, language) pair, the content hash the
server last confirmed.  It lives in ``.lrm/sync-state.json``::

    {
      "version": 1,
      "timestamp": "2026-10-19T08:30:00+00:00",
      "entries": {"Greeting": {"en": "3b1f...", "fr": "a9c2..."}}
    }

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Soft failure on load** -- a missing, corrupted, or legacy file never
  raises.  ``load()`` reports what it found and the caller treats the cycle
  as a first sync.
* **One write per cycle** -- the engine calls ``save()`` only after every
  step of a cycle succeeded.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

from .hashes import EntryHashes

logger = logging.getLogger(__name__)

STATE_FILE = Path(".lrm") / "sync-state.json"
FORMAT_VERSION = 1

# Keys of the file-hash format used before key-level sync.
_LEGACY_KEYS = frozenset({"files", "Files", "configHash", "ConfigHash"})


@dataclass
class BaselineState:
    """Last-synced snapshot of per-entry hashes."""

    entries: EntryHashes = field(default_factory=EntryHashes)
    version: int = FORMAT_VERSION
    timestamp: str | None = None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "entries": self.entries.to_dict(),
        }


class LoadResult(NamedTuple):
    state: BaselineState | None
    was_corrupted: bool = False
    needs_migration: bool = False


class BaselineStore:
    """Load and save the baseline of one project directory.

    Args:
        project_dir: Directory containing the ``.lrm/`` folder.
    """

    def __init__(self, project_dir: Path) -> None:
        self._path = project_dir / STATE_FILE

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> LoadResult:
        """Load the baseline from disk.

        Returns:
            ``(None, False, False)`` when no baseline exists,
            ``(None, True, False)`` when the file cannot be parsed,
            ``(None, False, True)`` for the legacy file-hash format,
            otherwise ``(state, False, False)``.
        """
        if not self._path.exists():
            return LoadResult(None)

        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Baseline %s is unreadable: %s", self._path, exc)
            return LoadResult(None, was_corrupted=True)

        if not isinstance(data, dict):
            logger.warning("Baseline %s has a non-object root", self._path)
            return LoadResult(None, was_corrupted=True)

        if "entries" not in data and _LEGACY_KEYS & data.keys():
            logger.info("Baseline %s uses the legacy file-hash format", self._path)
            return LoadResult(None, needs_migration=True)

        entries = _parse_entries(data.get("entries", {}))
        if entries is None:
            logger.warning("Baseline %s has malformed entries", self._path)
            return LoadResult(None, was_corrupted=True)

        version = data.get("version", FORMAT_VERSION)
        timestamp = data.get("timestamp")
        return LoadResult(
            BaselineState(
                entries=entries,
                version=version if isinstance(version, int) else FORMAT_VERSION,
                timestamp=timestamp if isinstance(timestamp, str) else None,
            )
        )

    def save(self, state: BaselineState) -> None:
        """Persist the baseline atomically.

        The ``timestamp`` field is set to the current UTC ISO 8601 time
        before writing.  Creates ``.lrm/`` if it does not exist.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        state.timestamp = datetime.now(timezone.utc).isoformat()
        state.version = FORMAT_VERSION

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state.to_dict(), fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Saved baseline with %d pairs to %s", len(state.entries), self._path)

    def clear(self) -> None:
        """Delete the baseline file.  No-op if it does not exist."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass


def _parse_entries(raw: object) -> EntryHashes | None:
    """Validate the ``entries`` object, returning ``None`` if malformed."""
    if not isinstance(raw, dict):
        return None
    hashes = EntryHashes()
    for key, languages in raw.items():
        if not isinstance(languages, dict):
            return None
        for lang, value in languages.items():
            if not isinstance(value, str):
                return None
            hashes.set(key, lang, value)
    return hashes
