"""Extraction of hashed local entries from resource files.

Pure read: nothing here writes to disk or talks to the network, and the
same files always produce the same entries and hashes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..backends.base import LanguageInfo, ResourceBackend
from ..core.cancellation import CancelToken
from .hashing import compute_hash, compute_plural_hash
from .models import LocalEntry

logger = logging.getLogger(__name__)


def language_code(language: LanguageInfo, default_language: str | None) -> str:
    """Return the code used on the wire for *language*.

    The default-language file has no culture in its name; it is reported
    under the project's default language when one is known.
    """
    if language.is_default and default_language:
        return default_language
    return language.code


def extract_entries(
    backend: ResourceBackend,
    languages: Iterable[LanguageInfo],
    default_language: str | None = None,
    cancel_token: CancelToken | None = None,
) -> list[LocalEntry]:
    """Read every language file and return one entry per (key, language)."""
    entries: list[LocalEntry] = []
    for language in languages:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("extraction")
        resource_file = backend.read(language)
        code = language_code(language, default_language)
        for item in resource_file.entries:
            if item.is_plural and item.plural_forms:
                content_hash = compute_plural_hash(item.plural_forms, item.comment)
            else:
                content_hash = compute_hash(item.value or "", item.comment)
            entries.append(
                LocalEntry(
                    key=item.key,
                    language=code,
                    value=item.value or "",
                    comment=item.comment,
                    is_plural=item.is_plural,
                    plural_forms=item.plural_forms,
                    content_hash=content_hash,
                )
            )
        logger.debug(
            "Extracted %d entries from %s",
            len(resource_file.entries),
            language.file_path,
        )
    return entries
