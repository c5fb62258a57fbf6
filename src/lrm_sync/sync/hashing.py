"""Content hashing for localization entries.

Hashes are lowercase SHA-256 hex digests of NFC-normalized text, so the
same value produces the same hash on every platform regardless of how an
editor composed its accented characters.  The comment is part of the
hashed content: editing only a comment is a change to push.

The server computes hashes with the same rules; a mismatch in either the
separator or the normalization form would make every entry look modified.
"""

from __future__ import annotations

import hashlib
import unicodedata
from collections.abc import Mapping


def _digest(text: str) -> str:
    normalized = unicodedata.normalize("NFC", text)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def compute_hash(value: str | None, comment: str | None = None) -> str:
    """Hash a simple (non-plural) entry."""
    return _digest(f"{value or ''}\0{comment or ''}")


def compute_plural_hash(
    forms: Mapping[str, str], comment: str | None = None
) -> str:
    """Hash a plural entry.

    Forms are sorted by category name and rendered as ``category=text|`` so
    that the hash does not depend on the order the backend returned them.
    """
    rendered = "".join(
        f"{category}={forms[category]}|" for category in sorted(forms)
    )
    return _digest(f"{rendered}\0{comment or ''}")
