"""Tests for changeset computation and baseline merging.

Covers:
- New pair relative to baseline -> upsert with null base hash
- Missing local pair -> exactly one per-language deletion
- Exact hash matches are excluded
- Modified pairs carry the stored base hash
- First sync (no baseline) uploads everything as new
- Idempotence after merging a push outcome
- Language scope leaves out-of-scope pairs alone
- Empty-string values are entries, not deletions
- merge_baseline precedence, including pairs kept at their prior hash
"""

from __future__ import annotations

from lrm_sync.sync.hashes import EntryHashes
from lrm_sync.sync.merger import compute_push_changes, merge_baseline
from lrm_sync.sync.models import EntryDeletion, LocalEntry
from lrm_sync.sync.state import BaselineState

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entry(key: str, lang: str, value: str, content_hash: str) -> LocalEntry:
    return LocalEntry(key=key, language=lang, value=value, content_hash=content_hash)


def _baseline(entries: dict[str, dict[str, str]]) -> BaselineState:
    return BaselineState(entries=EntryHashes(entries))


# ---------------------------------------------------------------------------
# compute_push_changes
# ---------------------------------------------------------------------------


class TestComputePushChanges:
    def test_new_language_is_added_with_null_base_hash(self):
        baseline = _baseline({"Greeting": {"en": "h1"}})
        entries = [
            _entry("Greeting", "en", "Hello", "h1"),
            _entry("Greeting", "fr", "Bonjour", "h2"),
        ]

        changes = compute_push_changes(entries, baseline)

        assert [(c.key, c.lang, c.value, c.base_hash) for c in changes.entries] == [
            ("Greeting", "fr", "Bonjour", None)
        ]
        assert changes.deletions == []

    def test_missing_key_is_deleted_per_language(self):
        baseline = _baseline({"A": {"en": "h1"}})

        changes = compute_push_changes([], baseline)

        assert changes.entries == []
        assert [(d.key, d.lang) for d in changes.deletions] == [("A", "en")]

    def test_deletion_carries_stored_hash(self):
        changes = compute_push_changes([], _baseline({"A": {"en": "h1"}}))
        assert changes.deletions[0].base_hash == "h1"

    def test_one_deletion_per_uncovered_pair(self):
        baseline = _baseline({"A": {"en": "h1", "fr": "h2"}, "B": {"en": "h3"}})
        entries = [_entry("B", "en", "b", "h3")]

        changes = compute_push_changes(entries, baseline)

        assert sorted((d.key, d.lang) for d in changes.deletions) == [
            ("A", "en"),
            ("A", "fr"),
        ]

    def test_last_language_removed_while_others_remain(self):
        baseline = _baseline({"A": {"en": "h1", "fr": "h2"}})
        entries = [_entry("A", "en", "a", "h1")]

        changes = compute_push_changes(entries, baseline)

        assert [(d.key, d.lang) for d in changes.deletions] == [("A", "fr")]

    def test_never_emits_wildcard_deletion(self):
        baseline = _baseline({"A": {"en": "h1", "fr": "h2", "de": "h3"}})
        changes = compute_push_changes([], baseline)
        assert all(d.lang is not None for d in changes.deletions)
        assert len(changes.deletions) == 3

    def test_exact_match_is_excluded(self):
        baseline = _baseline({"A": {"en": "h1"}, "B": {"en": "h2"}})
        entries = [_entry("A", "en", "a", "h1"), _entry("B", "en", "b", "changed")]

        changes = compute_push_changes(entries, baseline)

        assert [c.key for c in changes.entries] == ["B"]

    def test_modified_entry_carries_base_hash(self):
        baseline = _baseline({"A": {"en": "old"}})
        changes = compute_push_changes([_entry("A", "en", "a", "new")], baseline)
        assert changes.entries[0].base_hash == "old"
        assert changes.modifications == changes.entries
        assert changes.additions == []

    def test_first_sync_uploads_everything_as_new(self):
        entries = [
            _entry("A", "en", "a", "h1"),
            _entry("A", "fr", "a-fr", "h2"),
            _entry("B", "en", "b", "h3"),
        ]

        changes = compute_push_changes(entries, None)

        assert len(changes.entries) == 3
        assert all(c.base_hash is None for c in changes.entries)
        assert changes.deletions == []

    def test_empty_string_value_is_not_a_deletion(self):
        baseline = _baseline({"A": {"en": "h-empty"}})
        changes = compute_push_changes([_entry("A", "en", "", "h-empty")], baseline)
        assert changes.is_empty

    def test_entry_fields_are_forwarded(self):
        entry = LocalEntry(
            key="Items",
            language="en",
            value="{n} items",
            comment="cart badge",
            is_plural=True,
            plural_forms={"one": "1 item", "other": "{n} items"},
            content_hash="hp",
        )
        change = compute_push_changes([entry], None).entries[0]
        assert change.comment == "cart badge"
        assert change.is_plural is True
        assert change.plural_forms == {"one": "1 item", "other": "{n} items"}

    def test_scope_protects_other_languages(self):
        baseline = _baseline({"A": {"en": "h1", "fr": "h2"}})
        entries = [_entry("A", "en", "a", "h1")]

        changes = compute_push_changes(entries, baseline, scope={"en"})

        assert changes.is_empty

    def test_scope_still_deletes_in_scope_pairs(self):
        baseline = _baseline({"A": {"en": "h1", "fr": "h2"}})

        changes = compute_push_changes([], baseline, scope={"fr"})

        assert [(d.key, d.lang) for d in changes.deletions] == [("A", "fr")]


# ---------------------------------------------------------------------------
# Idempotence and exclusion
# ---------------------------------------------------------------------------


class TestIdempotence:
    def test_second_push_after_merge_is_empty(self):
        entries = [
            _entry("A", "en", "a", "h1"),
            _entry("B", "en", "b", "h2"),
            _entry("B", "de", "b-de", "h3"),
        ]
        first = compute_push_changes(entries, None)
        # The server echoes the local hashes for applied changes.
        server_hashes = EntryHashes()
        for entry in entries:
            server_hashes.set(entry.key, entry.language, entry.content_hash)

        merged = merge_baseline(None, server_hashes, entries, first.deletions)
        second = compute_push_changes(entries, BaselineState(entries=merged))

        assert second.entries == []
        assert second.deletions == []

    def test_exclusion_law_holds_for_every_matching_entry(self):
        baseline = _baseline(
            {"A": {"en": "h1", "fr": "h2"}, "B": {"en": "h3"}, "C": {"en": "h4"}}
        )
        entries = [
            _entry("A", "en", "a", "h1"),
            _entry("A", "fr", "a", "changed"),
            _entry("B", "en", "b", "h3"),
            _entry("C", "en", "c", "h4"),
            _entry("D", "en", "d", "h5"),
        ]
        changes = compute_push_changes(entries, baseline)
        upserted = {(c.key, c.lang) for c in changes.entries}
        for entry in entries:
            if baseline.entries.get(entry.key, entry.language) == entry.content_hash:
                assert (entry.key, entry.language) not in upserted
        assert upserted == {("A", "fr"), ("D", "en")}


# ---------------------------------------------------------------------------
# merge_baseline
# ---------------------------------------------------------------------------


class TestMergeBaseline:
    def test_new_hashes_overwrite_prior(self):
        prior = _baseline({"A": {"en": "old"}})
        merged = merge_baseline(
            prior, EntryHashes({"A": {"en": "new"}}), [_entry("A", "en", "a", "local")]
        )
        assert merged.get("A", "en") == "new"

    def test_unreported_local_entries_use_local_hash(self):
        merged = merge_baseline(
            None, EntryHashes(), [_entry("A", "en", "a", "local-hash")]
        )
        assert merged.to_dict() == {"A": {"en": "local-hash"}}

    def test_prior_pairs_are_kept(self):
        prior = _baseline({"A": {"en": "h1"}, "B": {"fr": "h2"}})
        merged = merge_baseline(prior, EntryHashes(), [])
        assert merged.to_dict() == {"A": {"en": "h1"}, "B": {"fr": "h2"}}

    def test_deleted_pairs_are_removed(self):
        prior = _baseline({"A": {"en": "h1", "fr": "h2"}})
        merged = merge_baseline(
            prior,
            EntryHashes(),
            [_entry("A", "en", "a", "h1")],
            [EntryDeletion(key="A", lang="fr", base_hash="h2")],
        )
        assert merged.to_dict() == {"A": {"en": "h1"}}

    def test_prior_baseline_is_not_mutated(self):
        prior = _baseline({"A": {"en": "h1"}})
        merge_baseline(prior, EntryHashes({"A": {"en": "h2"}}), [])
        assert prior.entries.get("A", "en") == "h1"

    def test_kept_pairs_return_to_prior_hash(self):
        prior = _baseline({"A": {"en": "h1"}, "Old": {"en": "h-old"}})
        merged = merge_baseline(
            prior,
            EntryHashes({"A": {"en": "server"}}),
            [_entry("A", "en", "a", "local")],
            [EntryDeletion(key="Old", lang="en", base_hash="h-old")],
            keep=[("A", "en"), ("Old", "en")],
        )
        assert merged.to_dict() == {"A": {"en": "h1"}, "Old": {"en": "h-old"}}

    def test_kept_pair_without_prior_hash_stays_absent(self):
        merged = merge_baseline(
            None, EntryHashes(), [_entry("A", "en", "a", "local")], keep=[("A", "en")]
        )
        assert merged.to_dict() == {}
