"""Changeset computation and baseline merging.

``compute_push_changes`` diffs the current local entries against the
baseline:

* entry missing from the baseline -> upsert with ``base_hash=None``;
* entry whose hash differs -> upsert with the stored hash as ``base_hash``;
* baseline pair with no current entry -> one per-language deletion;
* exact hash match -> nothing.

``merge_baseline`` builds the baseline to persist after a successful cycle
from the prior baseline, the hashes the server reported, and the local
entries.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from .hashes import EntryHashes
from .models import ChangeSet, EntryChange, EntryDeletion, LocalEntry
from .state import BaselineState

logger = logging.getLogger(__name__)


def _in_scope(lang: str, scope: Collection[str] | None) -> bool:
    return scope is None or lang in scope


def compute_push_changes(
    entries: Iterable[LocalEntry],
    baseline: BaselineState | None,
    scope: Collection[str] | None = None,
) -> ChangeSet:
    """Compute the minimal changeset for a push.

    Args:
        entries: Current local entries.
        baseline: Last-synced state, or ``None`` for a first sync.
        scope: Languages taking part in this push.  Baseline pairs in other
            languages are left alone.  ``None`` means every language.

    Returns:
        The upserts and deletions to send.  Empty when nothing changed.
    """
    stored = baseline.entries if baseline is not None else EntryHashes()
    changes: list[EntryChange] = []
    covered: set[tuple[str, str]] = set()

    for entry in entries:
        covered.add((entry.key, entry.language))
        base_hash = stored.get(entry.key, entry.language)
        if base_hash == entry.content_hash:
            continue
        changes.append(
            EntryChange(
                key=entry.key,
                lang=entry.language,
                value=entry.value,
                comment=entry.comment,
                is_plural=entry.is_plural,
                plural_forms=entry.plural_forms,
                base_hash=base_hash,
            )
        )

    deletions = [
        EntryDeletion(key=key, lang=lang, base_hash=value)
        for key, lang, value in stored
        if (key, lang) not in covered and _in_scope(lang, scope)
    ]

    logger.debug(
        "Computed %d upsert(s) and %d deletion(s)", len(changes), len(deletions)
    )
    return ChangeSet(entries=changes, deletions=deletions)


def merge_baseline(
    prior: BaselineState | None,
    new_hashes: EntryHashes,
    entries: Iterable[LocalEntry],
    deletions: Iterable[EntryDeletion] = (),
    keep: Iterable[tuple[str, str]] = (),
) -> EntryHashes:
    """Build the hash map to persist after a successful cycle.

    Order of precedence:

    1. Start from the prior baseline.
    2. Drop every pair the cycle deleted.
    3. Overwrite with every pair the server reported in *new_hashes*.
    4. Record any local entry still missing, using its local hash.
    5. Put every *keep* pair back to its prior state (its prior hash, or
       absent).  These are pairs the cycle did not settle, so the next push
       sees them again.
    """
    merged = prior.entries.copy() if prior is not None else EntryHashes()

    for deletion in deletions:
        merged.remove(deletion.key, deletion.lang)

    merged.merge(new_hashes)

    for entry in entries:
        if not merged.contains(entry.key, entry.language):
            merged.set(entry.key, entry.language, entry.content_hash)

    for key, lang in keep:
        previous = prior.entries.get(key, lang) if prior is not None else None
        if previous is None:
            merged.remove(key, lang)
        else:
            merged.set(key, lang, previous)

    return merged
